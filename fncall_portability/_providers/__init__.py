"""
プロバイダー別LLM実装
"""

from .openai import call_openai, stream_openai, call_azure_openai, stream_azure_openai
from .mistral import call_mistral, stream_mistral
from .anthropic import call_anthropic, stream_anthropic
from .vertex import call_vertex, stream_vertex

__all__ = [
    "call_openai",
    "stream_openai",
    "call_azure_openai",
    "stream_azure_openai",
    "call_mistral",
    "stream_mistral",
    "call_anthropic",
    "stream_anthropic",
    "call_vertex",
    "stream_vertex",
]
