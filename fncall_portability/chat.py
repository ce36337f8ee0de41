"""
チャット補完メイン関数
"""

import logging
from typing import Iterable, Iterator

from .config import get_model, DEFAULT_PROVIDER
from .types import ChatRequest, ChatResponse, StreamChunk
from .exceptions import LLMConfigError
from . import usage_tracker
from ._providers import (
    call_openai,
    stream_openai,
    call_azure_openai,
    stream_azure_openai,
    call_mistral,
    stream_mistral,
    call_anthropic,
    stream_anthropic,
    call_vertex,
    stream_vertex,
)

logger = logging.getLogger(__name__)


def _messages(request: ChatRequest) -> list[dict]:
    return [{"role": "user", "content": request.prompt}]


def chat_completion(request: ChatRequest) -> ChatResponse:
    """
    LLMにチャット補完リクエストを送信

    request.toolsに登録された関数は、モデルの要求に応じて実行され
    結果がモデルに返される（最終的なテキスト回答を返す）

    Args:
        request: ChatRequestオブジェクト

    Returns:
        ChatResponse: レスポンス
    """
    provider = request.provider or DEFAULT_PROVIDER
    model = get_model(provider, request.model)
    msg_list = _messages(request)
    common = dict(
        model=model,
        max_tokens=request.max_tokens,
        temperature=request.temperature,
        registry=request.tools,
        max_tool_rounds=request.max_tool_rounds,
    )

    logger.debug("chat_completion provider=%s model=%s", provider, model)

    if provider == "openai":
        # OpenAI系はsystem_promptをmessagesに含める
        if request.system_prompt:
            msg_list = [{"role": "system", "content": request.system_prompt}] + msg_list
        response = call_openai(msg_list, **common)

    elif provider == "azure_openai":
        if request.system_prompt:
            msg_list = [{"role": "system", "content": request.system_prompt}] + msg_list
        response = call_azure_openai(msg_list, **common)

    elif provider == "mistral":
        if request.system_prompt:
            msg_list = [{"role": "system", "content": request.system_prompt}] + msg_list
        response = call_mistral(msg_list, **common)

    elif provider == "anthropic":
        response = call_anthropic(msg_list, request.system_prompt, **common)

    elif provider == "vertex":
        response = call_vertex(msg_list, request.system_prompt, **common)

    else:
        raise LLMConfigError(f"Unknown provider: {provider}")

    if response.tool_calls:
        logger.info(
            "%s executed %d function call(s): %s",
            provider, len(response.tool_calls), ", ".join(c.name for c in response.tool_calls),
        )

    # 使用量記録
    if request.track_usage and response.usage:
        usage_tracker.add_usage(
            provider=provider,
            model=model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )

    return response


def chat_completion_text(request: ChatRequest) -> str:
    """
    テキストレスポンスのみを返す（シンプルなラッパー）

    Args:
        request: ChatRequestオブジェクト

    Returns:
        str: レスポンステキスト
    """
    response = chat_completion(request)
    return response.content


def chat_completion_stream(request: ChatRequest) -> Iterator[StreamChunk]:
    """
    LLMにストリーミングリクエストを送信

    ツール呼び出しはストリームの途中で実行され、続きの回答が同じストリームに流れる

    Args:
        request: ChatRequestオブジェクト

    Yields:
        StreamChunk: ストリームのチャンク

    Usage:
        request = ChatRequest(prompt="Hello!", provider="openai", tools=default_registry())
        for chunk in chat_completion_stream(request):
            print(chunk.content, end="", flush=True)
            if chunk.is_final and chunk.usage:
                print(f"\\nTokens: {chunk.usage.total_tokens}")
    """
    provider = request.provider or DEFAULT_PROVIDER
    model = get_model(provider, request.model)
    msg_list = _messages(request)
    common = dict(
        model=model,
        max_tokens=request.max_tokens,
        temperature=request.temperature,
        registry=request.tools,
        max_tool_rounds=request.max_tool_rounds,
    )

    logger.debug("chat_completion_stream provider=%s model=%s", provider, model)

    if provider in ("openai", "azure_openai", "mistral") and request.system_prompt:
        msg_list = [{"role": "system", "content": request.system_prompt}] + msg_list

    if provider == "openai":
        stream = stream_openai(msg_list, **common)

    elif provider == "azure_openai":
        stream = stream_azure_openai(msg_list, **common)

    elif provider == "mistral":
        stream = stream_mistral(msg_list, **common)

    elif provider == "anthropic":
        stream = stream_anthropic(msg_list, request.system_prompt, **common)

    elif provider == "vertex":
        stream = stream_vertex(msg_list, request.system_prompt, **common)

    else:
        raise LLMConfigError(f"Unknown provider: {provider}")

    # 使用量記録用
    final_usage = None

    for chunk in stream:
        if chunk.is_final and chunk.usage:
            final_usage = chunk.usage
        yield chunk

    # 使用量記録
    if request.track_usage and final_usage:
        usage_tracker.add_usage(
            provider=provider,
            model=model,
            input_tokens=final_usage.input_tokens,
            output_tokens=final_usage.output_tokens,
        )


def collect_stream(chunks: Iterable[StreamChunk]) -> str:
    """
    ストリームを最後まで受信してから、チャンクのテキストを到着順に連結

    例: ["Sta", "tus: pending"] -> "Status: pending"
    """
    received = list(chunks)
    return "".join(chunk.content for chunk in received)
