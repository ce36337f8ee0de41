"""
型定義（決済データ、チャットリクエスト/レスポンス）
"""

from dataclasses import dataclass, field
from typing import Any, Optional
from enum import Enum


# =============================================================================
# 決済データ
# =============================================================================
@dataclass(frozen=True)
class Transaction:
    """決済トランザクション（IDで同一性を判定）"""
    id: str


@dataclass(frozen=True)
class Status:
    """決済ステータス"""
    name: str


@dataclass(frozen=True)
class TransactionNotFound:
    """データセットに存在しないトランザクション"""
    transaction: Transaction


# =============================================================================
# チャット
# =============================================================================
class Backend(str, Enum):
    """チャットバックエンド"""
    OPENAI = "openai"
    AZURE_OPENAI = "azure_openai"
    MISTRAL = "mistral"
    VERTEX = "vertex"
    ANTHROPIC = "anthropic"


@dataclass
class Usage:
    """トークン使用量"""
    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )


@dataclass
class ToolCall:
    """モデルが要求し、実行したツール呼び出し"""
    name: str
    arguments: Any
    result: dict


@dataclass
class ChatResponse:
    """LLMレスポンス"""
    content: str
    provider: str
    model: str
    usage: Optional[Usage] = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    raw_response: Optional[object] = None  # デバッグ用


@dataclass
class ChatRequest:
    """LLMリクエスト設定"""
    prompt: str
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    provider: Optional[str] = None
    max_tokens: int = 1024
    temperature: float = 0.0
    tools: Optional[object] = None  # ToolRegistry
    max_tool_rounds: int = 5
    track_usage: bool = True


@dataclass
class StreamChunk:
    """ストリームのチャンク"""
    content: str  # このチャンクのテキスト
    provider: str
    model: str
    is_final: bool = False  # 最後のチャンクかどうか
    usage: Optional[Usage] = None  # 最後のチャンクにのみ含まれる
