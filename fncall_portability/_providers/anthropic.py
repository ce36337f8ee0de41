"""
Anthropic プロバイダー実装
"""

import json
from typing import Iterator, Optional

from anthropic import APIError as AnthropicAPIError, RateLimitError as AnthropicRateLimitError

from ..types import ChatResponse, StreamChunk, ToolCall, Usage
from ..exceptions import LLMAPIError, LLMRateLimitError, LLMResponseError
from ..tools import ToolRegistry
from .._init_clients import get_anthropic_client


def _request_kwargs(messages, system_prompt, model, max_tokens, temperature, registry) -> dict:
    kwargs = {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": messages,
    }
    if system_prompt:
        kwargs["system"] = system_prompt
    if registry:
        kwargs["tools"] = registry.anthropic_tools()
    return kwargs


def _text(content) -> str:
    return "".join(block.text for block in content if block.type == "text")


def _to_usage(usage) -> Optional[Usage]:
    if not usage:
        return None
    return Usage(
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
    )


def _append_tool_round(
    registry: ToolRegistry,
    content: list,
    messages: list[dict],
    executed: list[ToolCall],
) -> None:
    """tool_useブロックを実行し、tool_resultをuserメッセージとして追加"""
    messages.append({"role": "assistant", "content": content})

    results = []
    for block in content:
        if block.type != "tool_use":
            continue
        result = registry.dispatch(block.name, block.input)
        executed.append(ToolCall(name=block.name, arguments=block.input, result=result))
        results.append({
            "type": "tool_result",
            "tool_use_id": block.id,
            "content": json.dumps(result),
        })
    messages.append({"role": "user", "content": results})


def call_anthropic(
    messages: list[dict],
    system_prompt: Optional[str],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry] = None,
    max_tool_rounds: int = 5,
) -> ChatResponse:
    """Anthropic API呼び出し"""
    client = get_anthropic_client()
    messages = list(messages)
    executed: list[ToolCall] = []
    usage = None

    for _ in range(max_tool_rounds + 1):
        try:
            response = client.messages.create(
                **_request_kwargs(messages, system_prompt, model, max_tokens, temperature, registry)
            )
        except AnthropicRateLimitError as e:
            raise LLMRateLimitError(str(e), provider="anthropic")
        except AnthropicAPIError as e:
            raise LLMAPIError(str(e), provider="anthropic", status_code=getattr(e, 'status_code', None))

        round_usage = _to_usage(response.usage)
        if round_usage:
            usage = round_usage if usage is None else usage + round_usage

        if response.stop_reason != "tool_use" or not registry:
            return ChatResponse(
                content=_text(response.content),
                provider="anthropic",
                model=model,
                usage=usage,
                tool_calls=executed,
                raw_response=response,
            )

        _append_tool_round(registry, response.content, messages, executed)

    raise LLMResponseError(f"anthropic: function call limit exceeded ({max_tool_rounds} rounds)")


def stream_anthropic(
    messages: list[dict],
    system_prompt: Optional[str],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry] = None,
    max_tool_rounds: int = 5,
) -> Iterator[StreamChunk]:
    """Anthropic APIストリーム呼び出し"""
    client = get_anthropic_client()
    return _stream(client, messages, system_prompt, model, max_tokens, temperature, registry, max_tool_rounds)


def _stream(client, messages, system_prompt, model, max_tokens, temperature, registry, max_tool_rounds):
    messages = list(messages)
    executed: list[ToolCall] = []
    usage = None

    for _ in range(max_tool_rounds + 1):
        try:
            with client.messages.stream(
                **_request_kwargs(messages, system_prompt, model, max_tokens, temperature, registry)
            ) as stream:
                for text in stream.text_stream:
                    yield StreamChunk(
                        content=text,
                        provider="anthropic",
                        model=model,
                    )
                # 最後にusageとtool_useを取得
                response = stream.get_final_message()
        except AnthropicRateLimitError as e:
            raise LLMRateLimitError(str(e), provider="anthropic")
        except AnthropicAPIError as e:
            raise LLMAPIError(str(e), provider="anthropic", status_code=getattr(e, 'status_code', None))

        round_usage = _to_usage(response.usage)
        if round_usage:
            usage = round_usage if usage is None else usage + round_usage

        if response.stop_reason != "tool_use" or not registry:
            yield StreamChunk(
                content="",
                provider="anthropic",
                model=model,
                is_final=True,
                usage=usage,
            )
            return

        _append_tool_round(registry, response.content, messages, executed)

    raise LLMResponseError(f"anthropic: function call limit exceeded ({max_tool_rounds} rounds)")
