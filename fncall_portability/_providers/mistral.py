"""
Mistral AI プロバイダー実装
"""

import json
from typing import Iterator, Optional

import httpx
from mistralai.models import HTTPValidationError, SDKError as MistralSDKError

from ..types import ChatResponse, StreamChunk, ToolCall, Usage
from ..exceptions import LLMAPIError, LLMRateLimitError, LLMResponseError
from ..tools import ToolRegistry
from .._init_clients import get_mistral_client


# 通信エラーはSDKErrorに変換されずhttpxの例外のまま送出される
MISTRAL_ERRORS = (MistralSDKError, HTTPValidationError, httpx.HTTPError)


def _raise_api_error(e: Exception):
    status_code = getattr(e, "status_code", None)
    if status_code == 429:
        raise LLMRateLimitError(str(e), provider="mistral", status_code=status_code)
    raise LLMAPIError(str(e), provider="mistral", status_code=status_code)


def _text(content) -> str:
    """contentはstrまたはチャンクのリスト"""
    if not content:
        return ""
    if isinstance(content, str):
        return content
    return "".join(getattr(part, "text", "") or "" for part in content)


def _arguments(arguments) -> str:
    # Mistralはargumentsをdictで返すことがある
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments or {})


def _request_kwargs(messages, model, max_tokens, temperature, registry) -> dict:
    kwargs = {
        "model": model,
        "messages": messages,
        "max_tokens": max_tokens,
        "temperature": temperature,
    }
    if registry:
        kwargs["tools"] = registry.openai_tools()
        kwargs["tool_choice"] = "auto"
    return kwargs


def _append_tool_round(
    registry: ToolRegistry,
    content: str,
    calls: list[dict],
    messages: list[dict],
    executed: list[ToolCall],
) -> None:
    """assistantのツール呼び出しと、その実行結果をメッセージに追加"""
    messages.append({
        "role": "assistant",
        "content": content,
        "tool_calls": [
            {
                "id": call["id"],
                "type": "function",
                "function": {"name": call["name"], "arguments": call["arguments"]},
            }
            for call in calls
        ],
    })
    for call in calls:
        result = registry.dispatch(call["name"], call["arguments"])
        executed.append(ToolCall(name=call["name"], arguments=call["arguments"], result=result))
        messages.append({
            "role": "tool",
            "name": call["name"],
            "tool_call_id": call["id"],
            "content": json.dumps(result),
        })


def _to_usage(usage) -> Optional[Usage]:
    if not usage:
        return None
    return Usage(
        input_tokens=usage.prompt_tokens or 0,
        output_tokens=usage.completion_tokens or 0,
    )


def call_mistral(
    messages: list[dict],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry] = None,
    max_tool_rounds: int = 5,
) -> ChatResponse:
    """Mistral API呼び出し"""
    client = get_mistral_client()
    messages = list(messages)
    executed: list[ToolCall] = []
    usage = None

    for _ in range(max_tool_rounds + 1):
        try:
            response = client.chat.complete(
                **_request_kwargs(messages, model, max_tokens, temperature, registry)
            )
        except MISTRAL_ERRORS as e:
            _raise_api_error(e)

        round_usage = _to_usage(response.usage)
        if round_usage:
            usage = round_usage if usage is None else usage + round_usage

        message = response.choices[0].message
        if not message.tool_calls or not registry:
            return ChatResponse(
                content=_text(message.content),
                provider="mistral",
                model=model,
                usage=usage,
                tool_calls=executed,
                raw_response=response,
            )

        calls = [
            {"id": c.id, "name": c.function.name, "arguments": _arguments(c.function.arguments)}
            for c in message.tool_calls
        ]
        _append_tool_round(registry, _text(message.content), calls, messages, executed)

    raise LLMResponseError(f"mistral: function call limit exceeded ({max_tool_rounds} rounds)")


def stream_mistral(
    messages: list[dict],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry] = None,
    max_tool_rounds: int = 5,
) -> Iterator[StreamChunk]:
    """Mistral APIストリーム呼び出し"""
    client = get_mistral_client()
    return _stream(client, messages, model, max_tokens, temperature, registry, max_tool_rounds)


def _stream(client, messages, model, max_tokens, temperature, registry, max_tool_rounds):
    messages = list(messages)
    executed: list[ToolCall] = []
    usage = None

    for _ in range(max_tool_rounds + 1):
        pending: list[dict] = []
        text = []
        try:
            stream = client.chat.stream(
                **_request_kwargs(messages, model, max_tokens, temperature, registry)
            )
            for event in stream:
                chunk = event.data
                if chunk.choices:
                    delta = chunk.choices[0].delta
                    content = _text(delta.content)
                    if content:
                        text.append(content)
                        yield StreamChunk(
                            content=content,
                            provider="mistral",
                            model=model,
                        )
                    # 新しいidを持つdeltaが新しい呼び出し、id無しは直前の呼び出しの続き
                    for part in delta.tool_calls or []:
                        if (part.id and part.id != "null") or not pending:
                            pending.append({"id": part.id, "name": "", "arguments": ""})
                        call = pending[-1]
                        call["name"] += part.function.name or ""
                        if part.function.arguments:
                            call["arguments"] += _arguments(part.function.arguments)
                round_usage = _to_usage(chunk.usage)
                if round_usage:
                    usage = round_usage if usage is None else usage + round_usage
        except MISTRAL_ERRORS as e:
            _raise_api_error(e)

        if not pending or not registry:
            yield StreamChunk(
                content="",
                provider="mistral",
                model=model,
                is_final=True,
                usage=usage,
            )
            return

        _append_tool_round(registry, "".join(text), pending, messages, executed)

    raise LLMResponseError(f"mistral: function call limit exceeded ({max_tool_rounds} rounds)")
