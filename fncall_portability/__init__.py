"""
fncall_portability - 決済ステータス照会関数を複数のLLMバックエンドから呼び出すデモ

Usage:
    from fncall_portability import ChatRequest, chat_completion, default_registry

    # 関数を公開してチャット（モデルが必要に応じてpaymentStatusを呼び出す）
    response = chat_completion(ChatRequest(
        prompt="What is the status of my payment transaction 003?",
        provider="anthropic",
        tools=default_registry(),
    ))
    print(response.content)
    print(response.tool_calls)

    # 全バックエンドで実行
    #   python -m fncall_portability

Required environment variables (有効なバックエンドの分のみ):
    - OPENAI_API_KEY
    - AZURE_OPENAI_API_KEY, AZURE_OPENAI_ENDPOINT
    - MISTRAL_API_KEY
    - ANTHROPIC_API_KEY
    - VERTEX_PROJECT_ID (+ GOOGLE_APPLICATION_CREDENTIALS or ADC)
"""

from .chat import (
    chat_completion,
    chat_completion_text,
    chat_completion_stream,
    collect_stream,
)

from .types import (
    Backend,
    ChatRequest,
    ChatResponse,
    StreamChunk,
    ToolCall,
    Usage,
    Transaction,
    Status,
    TransactionNotFound,
)

from .exceptions import (
    LLMError,
    LLMConfigError,
    LLMAPIError,
    LLMRateLimitError,
    LLMResponseError,
    ToolError,
    ToolRegistrationError,
    ToolNotFoundError,
    ToolArgumentError,
)

from .dataset import DATASET, lookup_status

from .tools import (
    FunctionTool,
    ToolRegistry,
    PAYMENT_STATUS_TOOL,
    default_registry,
)

from .runner import ChatBackend, BackendResult, build_backends, run

from . import usage_tracker as tracker

from .config import (
    RunnerConfig,
    load_config,
    DEFAULT_MODELS,
    DEFAULT_PROVIDER,
    DEFAULT_PROMPT,
)

__all__ = [
    # Main functions
    "chat_completion",
    "chat_completion_text",
    "chat_completion_stream",
    "collect_stream",
    # Types
    "Backend",
    "ChatRequest",
    "ChatResponse",
    "StreamChunk",
    "ToolCall",
    "Usage",
    "Transaction",
    "Status",
    "TransactionNotFound",
    # Exceptions
    "LLMError",
    "LLMConfigError",
    "LLMAPIError",
    "LLMRateLimitError",
    "LLMResponseError",
    "ToolError",
    "ToolRegistrationError",
    "ToolNotFoundError",
    "ToolArgumentError",
    # Dataset / tools
    "DATASET",
    "lookup_status",
    "FunctionTool",
    "ToolRegistry",
    "PAYMENT_STATUS_TOOL",
    "default_registry",
    # Runner
    "ChatBackend",
    "BackendResult",
    "build_backends",
    "run",
    # Tracker
    "tracker",
    # Config
    "RunnerConfig",
    "load_config",
    "DEFAULT_MODELS",
    "DEFAULT_PROVIDER",
    "DEFAULT_PROMPT",
]

__version__ = "1.0.0"
