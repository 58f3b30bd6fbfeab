"""Shared test fixtures and configuration."""

from __future__ import annotations

import contextlib

import pytest

_ENV_VARS = (
    "OLLAMA_MODEL",
    "OLLAMA_BASE_URL",
    "DEEP_SEEK_API_KEY",
    "DEEPSEEK_MODEL",
    "EMBEDDING_TYPE",
    "EMBEDDING_MODEL",
    "OLLAMA_EMBEDDING_MODEL",
    "OPENAI_API_KEY",
    "CHROMA_HOST",
    "CHROMA_PORT",
    "CHROMA_COLLECTION",
    "RAG_ENABLED",
    "RAG_THRESHOLD",
    "RAG_K",
    "SYSTEM_PROMPT_PATH",
)


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Set default timeout for all tests."""
    for item in items:
        with contextlib.suppress(AttributeError):
            item.add_marker(pytest.mark.timeout(3))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment out of configuration defaults."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
