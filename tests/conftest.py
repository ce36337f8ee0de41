"""
Shared fixtures.

All tests run without network access: vendor SDK clients are replaced by
fakes that mimic the response shapes the provider modules read.
"""

import pytest

from fncall_portability import usage_tracker
from fncall_portability.tools import default_registry


ENV_VARS = [
    "FCP_BACKENDS",
    "FCP_STREAMING_BACKENDS",
    "FCP_FUNCTIONS",
    "FCP_PROMPT",
    "FCP_MAX_TOKENS",
    "FCP_TEMPERATURE",
    "FCP_MAX_TOOL_ROUNDS",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "AZURE_OPENAI_API_KEY",
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_API_VERSION",
    "AZURE_OPENAI_DEPLOYMENT",
    "MISTRAL_API_KEY",
    "MISTRAL_MODEL",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_MODEL",
    "GOOGLE_APPLICATION_CREDENTIALS",
    "GOOGLE_CLOUD_PROJECT",
    "VERTEX_PROJECT_ID",
    "VERTEX_LOCATION",
    "VERTEX_MODEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable the application reads."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def reset_usage():
    usage_tracker.reset_usage_stats()
    yield
    usage_tracker.reset_usage_stats()


@pytest.fixture
def registry():
    return default_registry()
