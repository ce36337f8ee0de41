"""
同じプロンプトを各バックエンドに順番に送り、回答をコンソールに出力する

Usage:
    from fncall_portability.config import load_config
    from fncall_portability.runner import build_backends, run
    from fncall_portability.tools import default_registry

    config = load_config()
    backends = build_backends(config, default_registry(config.functions))
    results = run(config.prompt, backends)
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence

from .chat import chat_completion_text, chat_completion_stream, collect_stream
from .config import DISPLAY_NAMES, RunnerConfig
from .exceptions import LLMError
from .tools import ToolRegistry
from .types import ChatRequest, StreamChunk

logger = logging.getLogger(__name__)


@dataclass
class ChatBackend:
    """1つのチャットバックエンド（起動時に明示的に構築する）"""
    provider: str
    display_name: str
    tools: ToolRegistry
    model: Optional[str] = None
    streaming: bool = False
    max_tokens: int = 1024
    temperature: float = 0.0
    max_tool_rounds: int = 5

    def _request(self, prompt: str) -> ChatRequest:
        return ChatRequest(
            prompt=prompt,
            provider=self.provider,
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            tools=self.tools,
            max_tool_rounds=self.max_tool_rounds,
        )

    def call(self, prompt: str) -> str:
        """同期呼び出し"""
        return chat_completion_text(self._request(prompt))

    def stream(self, prompt: str) -> Iterator[StreamChunk]:
        """ストリーム呼び出し"""
        return chat_completion_stream(self._request(prompt))


@dataclass
class BackendResult:
    """1回の呼び出し結果"""
    display_name: str
    streaming: bool
    answer: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def label(self) -> str:
        return f"{self.display_name} (Streaming)" if self.streaming else self.display_name


def build_backends(config: RunnerConfig, registry: ToolRegistry) -> list[ChatBackend]:
    """設定順にバックエンドを構築"""
    return [
        ChatBackend(
            provider=backend,
            display_name=DISPLAY_NAMES[backend],
            tools=registry,
            model=config.models.get(backend),
            streaming=config.streams(backend),
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            max_tool_rounds=config.max_tool_rounds,
        )
        for backend in config.backends
    ]


def format_line(display_name: str, answer: str, streaming: bool = False) -> str:
    """出力行: "<NAME>: <answer>" / "<NAME> (Streaming): <answer>" """
    label = f"{display_name} (Streaming)" if streaming else display_name
    return f"{label}: {answer}"


def _invoke(
    backend,
    streaming: bool,
    call: Callable[[], str],
    emit: Callable[[str], None],
) -> BackendResult:
    result = BackendResult(display_name=backend.display_name, streaming=streaming)
    try:
        result.answer = call()
    except LLMError as e:
        # 1つのバックエンドの失敗で全体を止めない
        logger.error("%s failed: %s", result.label, e)
        result.error = str(e)
        return result

    emit(format_line(backend.display_name, result.answer, streaming))
    return result


def run(
    prompt: str,
    backends: Sequence,
    emit: Callable[[str], None] = print,
) -> list[BackendResult]:
    """
    各バックエンドを設定順に1つずつ呼び出す

    同期呼び出しを1回、ストリーミングが有効なら続けてストリーム呼び出しを1回。
    ストリームは最後まで受信してから連結して出力する。

    Args:
        prompt: 全バックエンド共通のプロンプト
        backends: display_name, streaming, call(prompt), stream(prompt) を持つオブジェクト
        emit: 出力関数（デフォルトはprint）

    Returns:
        list[BackendResult]: 呼び出し順の結果
    """
    results = []
    for backend in backends:
        logger.info("Calling %s", backend.display_name)
        results.append(_invoke(backend, False, lambda: backend.call(prompt), emit))

        if backend.streaming:
            logger.info("Calling %s (Streaming)", backend.display_name)
            results.append(_invoke(
                backend, True, lambda: collect_stream(backend.stream(prompt)), emit,
            ))

    failed = [r.label for r in results if not r.ok]
    if failed:
        logger.warning("%d of %d call(s) failed: %s", len(failed), len(results), ", ".join(failed))
    return results
