"""
OpenAI / Azure OpenAI プロバイダー実装
"""

import json
from typing import Iterator, Optional

from openai import APIError as OpenAIAPIError, RateLimitError as OpenAIRateLimitError

from ..types import ChatResponse, StreamChunk, ToolCall, Usage
from ..exceptions import LLMAPIError, LLMRateLimitError, LLMResponseError
from ..tools import ToolRegistry
from .._init_clients import get_openai_client, get_azure_openai_client


def _uses_max_completion_tokens(model: str) -> bool:
    """max_completion_tokensを使用するモデルかどうかを判定

    対象: o1, o3, o4シリーズ、GPT-5シリーズ、GPT-4.1シリーズ
    """
    return model.startswith(("o1", "o3", "o4", "gpt-5", "gpt-4.1"))


def _request_kwargs(
    messages: list[dict],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry],
) -> dict:
    kwargs = {
        "model": model,
        "messages": messages,
    }

    # 推論モデル（o1, o3, o4）は max_completion_tokens を使用
    if _uses_max_completion_tokens(model):
        kwargs["max_completion_tokens"] = max_tokens
    else:
        kwargs["max_tokens"] = max_tokens
        kwargs["temperature"] = temperature

    if registry:
        kwargs["tools"] = registry.openai_tools()
        kwargs["tool_choice"] = "auto"

    return kwargs


def _assistant_message(content: Optional[str], calls: list[dict]) -> dict:
    """ツール呼び出しを含むassistantメッセージ"""
    return {
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
    }


def _run_tools(
    registry: ToolRegistry,
    calls: list[dict],
    messages: list[dict],
    executed: list[ToolCall],
) -> None:
    """ツールを実行し、結果をtoolメッセージとして追加"""
    for call in calls:
        result = registry.dispatch(call["name"], call["arguments"])
        executed.append(ToolCall(name=call["name"], arguments=call["arguments"], result=result))
        messages.append({
            "role": "tool",
            "tool_call_id": call["id"],
            "content": json.dumps(result),
        })


def _to_usage(usage) -> Optional[Usage]:
    if not usage:
        return None
    return Usage(
        input_tokens=usage.prompt_tokens,
        output_tokens=usage.completion_tokens,
    )


def _merge_usage(total: Optional[Usage], usage: Optional[Usage]) -> Optional[Usage]:
    if usage is None:
        return total
    return usage if total is None else total + usage


def _complete(
    client,
    provider: str,
    messages: list[dict],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry],
    max_tool_rounds: int,
) -> ChatResponse:
    """ツール呼び出しが終わるまで chat.completions.create を繰り返す"""
    messages = list(messages)
    executed: list[ToolCall] = []
    usage = None

    for _ in range(max_tool_rounds + 1):
        kwargs = _request_kwargs(messages, model, max_tokens, temperature, registry)
        try:
            response = client.chat.completions.create(**kwargs)
        except OpenAIRateLimitError as e:
            raise LLMRateLimitError(str(e), provider=provider)
        except OpenAIAPIError as e:
            raise LLMAPIError(str(e), provider=provider, status_code=getattr(e, 'status_code', None))

        usage = _merge_usage(usage, _to_usage(response.usage))
        message = response.choices[0].message

        if not message.tool_calls or not registry:
            return ChatResponse(
                content=message.content or "",
                provider=provider,
                model=model,
                usage=usage,
                tool_calls=executed,
                raw_response=response,
            )

        calls = [
            {"id": c.id, "name": c.function.name, "arguments": c.function.arguments}
            for c in message.tool_calls
        ]
        messages.append(_assistant_message(message.content, calls))
        _run_tools(registry, calls, messages, executed)

    raise LLMResponseError(f"{provider}: function call limit exceeded ({max_tool_rounds} rounds)")


def _stream(
    client,
    provider: str,
    messages: list[dict],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry],
    max_tool_rounds: int,
) -> Iterator[StreamChunk]:
    """ストリーム版。ツール呼び出しのdeltaはindex単位で組み立てる"""
    messages = list(messages)
    executed: list[ToolCall] = []
    usage = None

    for _ in range(max_tool_rounds + 1):
        kwargs = _request_kwargs(messages, model, max_tokens, temperature, registry)
        kwargs["stream"] = True
        kwargs["stream_options"] = {"include_usage": True}

        pending: dict[int, dict] = {}
        text = []
        try:
            stream = client.chat.completions.create(**kwargs)
            for chunk in stream:
                if chunk.choices:
                    delta = chunk.choices[0].delta
                    if delta.content:
                        text.append(delta.content)
                        yield StreamChunk(
                            content=delta.content,
                            provider=provider,
                            model=model,
                        )
                    for part in delta.tool_calls or []:
                        call = pending.setdefault(part.index, {"id": None, "name": "", "arguments": ""})
                        if part.id:
                            call["id"] = part.id
                        if part.function:
                            call["name"] += part.function.name or ""
                            call["arguments"] += part.function.arguments or ""
                # 最後のチャンクにusageが含まれる
                if chunk.usage:
                    usage = _merge_usage(usage, _to_usage(chunk.usage))
        except OpenAIRateLimitError as e:
            raise LLMRateLimitError(str(e), provider=provider)
        except OpenAIAPIError as e:
            raise LLMAPIError(str(e), provider=provider, status_code=getattr(e, 'status_code', None))

        if not pending or not registry:
            yield StreamChunk(
                content="",
                provider=provider,
                model=model,
                is_final=True,
                usage=usage,
            )
            return

        calls = [pending[index] for index in sorted(pending)]
        messages.append(_assistant_message("".join(text) or None, calls))
        _run_tools(registry, calls, messages, executed)

    raise LLMResponseError(f"{provider}: function call limit exceeded ({max_tool_rounds} rounds)")


def call_openai(
    messages: list[dict],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry] = None,
    max_tool_rounds: int = 5,
) -> ChatResponse:
    """OpenAI API呼び出し"""
    return _complete(
        get_openai_client(), "openai", messages, model,
        max_tokens, temperature, registry, max_tool_rounds,
    )


def stream_openai(
    messages: list[dict],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry] = None,
    max_tool_rounds: int = 5,
) -> Iterator[StreamChunk]:
    """OpenAI APIストリーム呼び出し"""
    return _stream(
        get_openai_client(), "openai", messages, model,
        max_tokens, temperature, registry, max_tool_rounds,
    )


def call_azure_openai(
    messages: list[dict],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry] = None,
    max_tool_rounds: int = 5,
) -> ChatResponse:
    """Azure OpenAI API呼び出し（modelはデプロイ名）"""
    return _complete(
        get_azure_openai_client(), "azure_openai", messages, model,
        max_tokens, temperature, registry, max_tool_rounds,
    )


def stream_azure_openai(
    messages: list[dict],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry] = None,
    max_tool_rounds: int = 5,
) -> Iterator[StreamChunk]:
    """Azure OpenAI APIストリーム呼び出し"""
    return _stream(
        get_azure_openai_client(), "azure_openai", messages, model,
        max_tokens, temperature, registry, max_tool_rounds,
    )
