"""
Vertex AI (Gemini) プロバイダー実装
"""

from typing import Iterator, Optional

import httpx
from google.auth.exceptions import GoogleAuthError
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from ..types import ChatResponse, StreamChunk, ToolCall, Usage
from ..exceptions import LLMAPIError, LLMRateLimitError, LLMResponseError
from ..tools import ToolRegistry
from .._init_clients import get_vertex_client


def _raise_api_error(e: genai_errors.APIError):
    if e.code == 429:
        raise LLMRateLimitError(str(e), provider="vertex", status_code=e.code)
    raise LLMAPIError(str(e), provider="vertex", status_code=e.code)


def _contents(messages: list[dict]) -> list:
    """Vertex AI用にメッセージを変換"""
    contents = []
    for msg in messages:
        role = "user" if msg["role"] == "user" else "model"
        contents.append(genai_types.Content(role=role, parts=[genai_types.Part.from_text(text=msg["content"])]))
    return contents


def _generation_config(system_prompt, max_tokens, temperature, registry):
    kwargs = {
        "max_output_tokens": max_tokens,
        "temperature": temperature,
    }
    if system_prompt:
        kwargs["system_instruction"] = system_prompt
    if registry:
        kwargs["tools"] = [
            genai_types.Tool(function_declarations=[
                genai_types.FunctionDeclaration(**declaration)
                for declaration in registry.vertex_declarations()
            ])
        ]
        # 関数はレジストリ側で実行する
        kwargs["automatic_function_calling"] = genai_types.AutomaticFunctionCallingConfig(disable=True)
    return genai_types.GenerateContentConfig(**kwargs)


def _to_usage(metadata) -> Optional[Usage]:
    if not metadata:
        return None
    return Usage(
        input_tokens=metadata.prompt_token_count or 0,
        output_tokens=metadata.candidates_token_count or 0,
    )


def _function_call_parts(response) -> list:
    """function_callを含むPartを取得（thought_signatureを保持したまま）"""
    if not response.candidates or not response.candidates[0].content:
        return []
    return [part for part in response.candidates[0].content.parts or [] if part.function_call]


def _append_tool_round(
    registry: ToolRegistry,
    model_turn: genai_types.Content,
    contents: list,
    executed: list[ToolCall],
) -> None:
    """モデルの発話をそのまま追加し、function_callの実行結果を返す"""
    contents.append(model_turn)

    parts = []
    for part in model_turn.parts:
        call = part.function_call
        if not call:
            continue
        arguments = dict(call.args or {})
        result = registry.dispatch(call.name, arguments)
        executed.append(ToolCall(name=call.name, arguments=arguments, result=result))
        parts.append(genai_types.Part.from_function_response(name=call.name, response=result))
    contents.append(genai_types.Content(role="user", parts=parts))


def call_vertex(
    messages: list[dict],
    system_prompt: Optional[str],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry] = None,
    max_tool_rounds: int = 5,
) -> ChatResponse:
    """Vertex AI (Gemini) API呼び出し"""
    client = get_vertex_client()
    contents = _contents(messages)
    config = _generation_config(system_prompt, max_tokens, temperature, registry)
    executed: list[ToolCall] = []
    usage = None

    for _ in range(max_tool_rounds + 1):
        try:
            response = client.models.generate_content(
                model=model,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as e:
            _raise_api_error(e)
        except (httpx.HTTPError, GoogleAuthError) as e:
            raise LLMAPIError(str(e), provider="vertex")

        round_usage = _to_usage(response.usage_metadata)
        if round_usage:
            usage = round_usage if usage is None else usage + round_usage

        if not _function_call_parts(response) or not registry:
            return ChatResponse(
                content=response.text or "",
                provider="vertex",
                model=model,
                usage=usage,
                tool_calls=executed,
                raw_response=response,
            )

        _append_tool_round(registry, response.candidates[0].content, contents, executed)

    raise LLMResponseError(f"vertex: function call limit exceeded ({max_tool_rounds} rounds)")


def stream_vertex(
    messages: list[dict],
    system_prompt: Optional[str],
    model: str,
    max_tokens: int,
    temperature: float,
    registry: Optional[ToolRegistry] = None,
    max_tool_rounds: int = 5,
) -> Iterator[StreamChunk]:
    """Vertex AI (Gemini) APIストリーム呼び出し"""
    client = get_vertex_client()
    config = _generation_config(system_prompt, max_tokens, temperature, registry)
    return _stream(client, _contents(messages), config, model, registry, max_tool_rounds)


def _stream(client, contents, config, model, registry, max_tool_rounds):
    executed: list[ToolCall] = []
    usage = None

    for _ in range(max_tool_rounds + 1):
        call_parts = []
        round_usage = None
        try:
            for chunk in client.models.generate_content_stream(
                model=model,
                contents=contents,
                config=config,
            ):
                parts = _function_call_parts(chunk)
                if parts:
                    call_parts.extend(parts)
                elif chunk.text:
                    yield StreamChunk(
                        content=chunk.text,
                        provider="vertex",
                        model=model,
                    )
                # usage_metadataは累積値なので最後のものを使う
                if chunk.usage_metadata:
                    round_usage = _to_usage(chunk.usage_metadata)
        except genai_errors.APIError as e:
            _raise_api_error(e)
        except (httpx.HTTPError, GoogleAuthError) as e:
            raise LLMAPIError(str(e), provider="vertex")

        if round_usage:
            usage = round_usage if usage is None else usage + round_usage

        if not call_parts or not registry:
            yield StreamChunk(
                content="",
                provider="vertex",
                model=model,
                is_final=True,
                usage=usage,
            )
            return

        model_turn = genai_types.Content(role="model", parts=call_parts)
        _append_tool_round(registry, model_turn, contents, executed)

    raise LLMResponseError(f"vertex: function call limit exceeded ({max_tool_rounds} rounds)")
