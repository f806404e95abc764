"""Unit tests for CLI API-key source resolution helpers."""

from __future__ import annotations

import pytest

from voicedraft.cli_runtime import resolve_runtime_sources
from voicedraft.config import VoicedraftConfig


class InMemoryCredentialStore:
    """In-memory credential store implementation for runtime-resolution tests."""

    def __init__(self, initial_api_key: str | None = None) -> None:
        """Initialize the store with an optional initial API key."""

        self._api_key = initial_api_key

    def get_api_key(self) -> str | None:
        """Return currently stored API key value."""

        return self._api_key


def test_resolve_runtime_sources_collects_cli_secure_and_env_values() -> None:
    """Resolver should normalize CLI overrides and include secure API key fallback."""

    sources = resolve_runtime_sources(
        " cli-key ",
        env={"GEMINI_API_KEY": "env-key"},
        credential_store_factory=lambda: InMemoryCredentialStore("secure-key"),
    )

    assert sources.cli == {"api_key": "cli-key"}
    assert sources.secure == {"api_key": "secure-key"}
    assert sources.env == {"GEMINI_API_KEY": "env-key"}


def test_blank_cli_key_is_ignored_and_precedence_falls_through() -> None:
    config = VoicedraftConfig(api_key="config-key")

    secure_only = resolve_runtime_sources(
        "   ",
        env={"GEMINI_API_KEY": "env-key"},
        credential_store_factory=lambda: InMemoryCredentialStore("secure-key"),
    )
    env_only = resolve_runtime_sources(
        None,
        env={"GEMINI_API_KEY": "env-key"},
        credential_store_factory=InMemoryCredentialStore,
    )
    nothing = resolve_runtime_sources(
        None,
        env={},
        credential_store_factory=InMemoryCredentialStore,
    )

    assert secure_only.cli == {}
    assert config.resolved_api_key(secure_only) == "secure-key"
    assert config.resolved_api_key(env_only) == "env-key"
    assert config.resolved_api_key(nothing) == "config-key"


def test_resolve_runtime_sources_defaults_to_process_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "process-env-key")

    sources = resolve_runtime_sources(None, credential_store_factory=InMemoryCredentialStore)

    assert VoicedraftConfig().resolved_api_key(sources) == "process-env-key"
