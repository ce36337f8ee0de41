"""
設定（バックエンド・モデル・公開する関数・認証情報）
環境変数およびkey=value形式の設定ファイル（.env）から読み込み
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from dotenv import load_dotenv, dotenv_values

# .envファイルを自動読み込み
load_dotenv()

from .exceptions import LLMConfigError
from .types import Backend


# =============================================================================
# バックエンド
# =============================================================================
BACKEND_ORDER = tuple(backend.value for backend in Backend)

# Anthropicは同期呼び出しのみ
STREAMING_BACKENDS = ("openai", "azure_openai", "mistral", "vertex")

DISPLAY_NAMES = {
    "openai": "OPEN_AI",
    "azure_openai": "AZURE OPEN AI",
    "mistral": "MISTRAL AI",
    "vertex": "VERTEX_AI_GEMINI",
    "anthropic": "ANTHROPIC",
}


# =============================================================================
# デフォルトモデル
# =============================================================================
DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "azure_openai": "gpt-4o",  # Azureではデプロイ名
    "mistral": "mistral-small-latest",
    "vertex": "gemini-2.5-flash",
    "anthropic": "claude-sonnet-4-5-20250929",
}

# モデル上書き用の環境変数
MODEL_ENV_VARS = {
    "openai": "OPENAI_MODEL",
    "azure_openai": "AZURE_OPENAI_DEPLOYMENT",
    "mistral": "MISTRAL_MODEL",
    "vertex": "VERTEX_MODEL",
    "anthropic": "ANTHROPIC_MODEL",
}


# =============================================================================
# デフォルトプロバイダー・プロンプト
# =============================================================================
DEFAULT_PROVIDER = "openai"

DEFAULT_PROMPT = (
    "What is the statuses of the following payment transactions 003, 001, 002? "
    "Use multiple function calls if needed."
)

DEFAULT_FUNCTIONS = ("paymentStatus",)

AZURE_API_VERSION = "2024-10-21"
VERTEX_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


# =============================================================================
# 実行設定
# =============================================================================
@dataclass
class RunnerConfig:
    """起動時に一度だけ構築し、実行ループに渡す設定"""
    prompt: str = DEFAULT_PROMPT
    backends: list[str] = field(default_factory=lambda: list(BACKEND_ORDER))
    streaming: list[str] = field(default_factory=lambda: list(STREAMING_BACKENDS))
    functions: list[str] = field(default_factory=lambda: list(DEFAULT_FUNCTIONS))
    models: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_MODELS))
    max_tokens: int = 1024
    temperature: float = 0.0
    max_tool_rounds: int = 5

    def streams(self, backend: str) -> bool:
        return backend in self.streaming


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_backends(value: str) -> list[str]:
    """カンマ区切りのバックエンド名を検証してリスト化"""
    names = _split(value)
    unknown = [name for name in names if name not in BACKEND_ORDER]
    if unknown:
        raise LLMConfigError(
            f"Unknown backend(s): {', '.join(unknown)}. "
            f"Available: {', '.join(BACKEND_ORDER)}"
        )
    return names


def _number(values: Mapping[str, str], key: str, default, cast):
    raw = values.get(key)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise LLMConfigError(f"Invalid value for {key}: {raw!r}")


def load_config(
    env_file: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RunnerConfig:
    """
    設定を読み込み

    優先順位: 環境変数 > env_file

    キー:
        - FCP_BACKENDS: 実行するバックエンド（カンマ区切り、順序どおりに実行）
        - FCP_STREAMING_BACKENDS: ストリーミングも実行するバックエンド
        - FCP_FUNCTIONS: モデルに公開する関数名
        - FCP_PROMPT / FCP_MAX_TOKENS / FCP_TEMPERATURE / FCP_MAX_TOOL_ROUNDS
        - OPENAI_MODEL, AZURE_OPENAI_DEPLOYMENT, MISTRAL_MODEL, VERTEX_MODEL, ANTHROPIC_MODEL
    """
    values: dict[str, str] = {}
    if env_file:
        if not os.path.exists(env_file):
            raise LLMConfigError(f"Config file not found: {env_file}")
        values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        # 認証情報はos.environから読むため環境変数にも反映（既存の値は上書きしない）
        load_dotenv(env_file, override=False)
    values.update(os.environ if environ is None else environ)

    config = RunnerConfig()

    if values.get("FCP_BACKENDS"):
        config.backends = parse_backends(values["FCP_BACKENDS"])
    if "FCP_STREAMING_BACKENDS" in values:
        config.streaming = parse_backends(values["FCP_STREAMING_BACKENDS"])
    if values.get("FCP_FUNCTIONS"):
        config.functions = _split(values["FCP_FUNCTIONS"])
    if values.get("FCP_PROMPT"):
        config.prompt = values["FCP_PROMPT"]

    for backend, env_var in MODEL_ENV_VARS.items():
        if values.get(env_var):
            config.models[backend] = values[env_var]

    config.max_tokens = _number(values, "FCP_MAX_TOKENS", config.max_tokens, int)
    config.temperature = _number(values, "FCP_TEMPERATURE", config.temperature, float)
    config.max_tool_rounds = _number(values, "FCP_MAX_TOOL_ROUNDS", config.max_tool_rounds, int)

    return config


def validate_credentials(config: RunnerConfig) -> None:
    """
    有効なバックエンドの認証情報を事前チェック

    不足分はまとめてLLMConfigErrorとして報告
    """
    problems = []
    for backend in config.backends:
        try:
            if backend == "azure_openai":
                get_azure_config()
            elif backend == "vertex":
                get_vertex_config()
            else:
                get_api_key(backend)
        except LLMConfigError as e:
            problems.append(f"{backend}: {e}")

    if problems:
        raise LLMConfigError("Missing credentials:\n  " + "\n  ".join(problems))


# =============================================================================
# API KEY取得
# =============================================================================
def get_api_key(provider: str) -> str:
    """
    環境変数からAPI KEYを取得

    環境変数名:
        - openai: OPENAI_API_KEY
        - azure_openai: AZURE_OPENAI_API_KEY
        - mistral: MISTRAL_API_KEY
        - anthropic: ANTHROPIC_API_KEY
        - vertex: 不要（サービスアカウントJSONまたはADCで認証）
    """
    env_vars = {
        "openai": "OPENAI_API_KEY",
        "azure_openai": "AZURE_OPENAI_API_KEY",
        "mistral": "MISTRAL_API_KEY",
        "anthropic": "ANTHROPIC_API_KEY",
    }

    if provider == "vertex":
        return ""

    env_var = env_vars.get(provider)
    if not env_var:
        raise LLMConfigError(f"Unknown provider: {provider}")

    api_key = os.environ.get(env_var)
    if not api_key:
        raise LLMConfigError(
            f"API KEY not found. Set environment variable: {env_var}"
        )

    return api_key


def get_azure_config() -> dict:
    """
    Azure OpenAI用の設定を取得

    環境変数:
        - AZURE_OPENAI_API_KEY: API KEY（必須）
        - AZURE_OPENAI_ENDPOINT: https://<resource>.openai.azure.com/（必須）
        - AZURE_OPENAI_API_VERSION: APIバージョン（デフォルト: 2024-10-21）
    """
    api_key = get_api_key("azure_openai")

    endpoint = os.environ.get("AZURE_OPENAI_ENDPOINT")
    if not endpoint:
        raise LLMConfigError(
            "Azure endpoint not found. Set environment variable: AZURE_OPENAI_ENDPOINT"
        )

    return {
        "api_key": api_key,
        "endpoint": endpoint,
        "api_version": os.environ.get("AZURE_OPENAI_API_VERSION", AZURE_API_VERSION),
    }


def get_vertex_config() -> dict:
    """
    Vertex AI用の設定と認証情報を取得

    認証方式（優先順位）:
        1. GOOGLE_APPLICATION_CREDENTIALS: サービスアカウントJSONファイルのパス
        2. Application Default Credentials (ADC): gcloud auth application-default login

    環境変数:
        - GOOGLE_APPLICATION_CREDENTIALS: サービスアカウントJSONファイルのパス（任意）
        - VERTEX_PROJECT_ID: GCPプロジェクトID（必須、または GOOGLE_CLOUD_PROJECT）
        - VERTEX_LOCATION: リージョン（デフォルト: us-central1）

    プロジェクトIDが設定済みでも認証情報は必ずここで読み込む
    """
    import google.auth
    from google.auth.exceptions import GoogleAuthError
    from google.oauth2 import service_account

    credentials_path = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")
    # 優先順位: VERTEX_PROJECT_ID > GOOGLE_CLOUD_PROJECT > 認証情報から取得
    project_id = os.environ.get("VERTEX_PROJECT_ID") or os.environ.get("GOOGLE_CLOUD_PROJECT")

    if credentials_path:
        # 認証方式1: サービスアカウントJSONファイル
        if not os.path.exists(credentials_path):
            raise LLMConfigError(
                f"Service account JSON file not found: {credentials_path}"
            )
        try:
            credentials = service_account.Credentials.from_service_account_file(
                credentials_path, scopes=VERTEX_SCOPES
            )
        except (ValueError, OSError) as e:
            raise LLMConfigError(f"Failed to read service account JSON: {e}")
        project_id = project_id or credentials.project_id
        auth_method = "service_account"
    else:
        # 認証方式2: Application Default Credentials (ADC)
        try:
            credentials, adc_project_id = google.auth.default(scopes=VERTEX_SCOPES)
        except GoogleAuthError as e:
            raise LLMConfigError(f"Application Default Credentials not available: {e}")
        project_id = project_id or adc_project_id
        auth_method = "adc"

    if not project_id:
        raise LLMConfigError(
            "VERTEX_PROJECT_ID or GOOGLE_CLOUD_PROJECT not found. "
            "Set the environment variable or ensure gcloud is configured with a default project."
        )

    return {
        "credentials": credentials,
        "credentials_path": credentials_path,  # Noneの場合はADCを使用
        "project_id": project_id,
        "location": os.environ.get("VERTEX_LOCATION", "us-central1"),
        "auth_method": auth_method,
    }


def get_model(provider: str, model: Optional[str] = None) -> str:
    """モデル名を取得（指定がなければデフォルト）"""
    if model:
        return model

    default = DEFAULT_MODELS.get(provider)
    if not default:
        raise LLMConfigError(f"No default model for provider: {provider}")

    return default
