"""
LLMクライアント初期化（シングルトン）
"""

from functools import lru_cache

from openai import OpenAI, AzureOpenAI
from anthropic import Anthropic
from mistralai import Mistral
from google import genai

from .config import get_api_key, get_azure_config, get_vertex_config
from .exceptions import LLMConfigError


@lru_cache(maxsize=1)
def get_openai_client() -> OpenAI:
    """OpenAIクライアントを取得（シングルトン）"""
    return OpenAI(api_key=get_api_key("openai"))


@lru_cache(maxsize=1)
def get_azure_openai_client() -> AzureOpenAI:
    """Azure OpenAIクライアントを取得（シングルトン）"""
    config = get_azure_config()
    return AzureOpenAI(
        api_key=config["api_key"],
        azure_endpoint=config["endpoint"],
        api_version=config["api_version"],
    )


@lru_cache(maxsize=1)
def get_mistral_client() -> Mistral:
    """Mistralクライアントを取得（シングルトン）"""
    return Mistral(api_key=get_api_key("mistral"))


@lru_cache(maxsize=1)
def get_anthropic_client() -> Anthropic:
    """Anthropicクライアントを取得（シングルトン）"""
    return Anthropic(api_key=get_api_key("anthropic"))


@lru_cache(maxsize=1)
def get_vertex_client() -> genai.Client:
    """
    Vertex AI (Gemini) クライアントを取得（シングルトン）

    認証方式:
        1. サービスアカウントJSON (GOOGLE_APPLICATION_CREDENTIALS設定時)
        2. Application Default Credentials (ADC) - gcloud auth application-default login
    """
    config = get_vertex_config()

    try:
        return genai.Client(
            vertexai=True,
            project=config["project_id"],
            location=config["location"],
            credentials=config["credentials"],
        )
    except ValueError as e:
        raise LLMConfigError(f"Failed to create Vertex AI client: {e}")
