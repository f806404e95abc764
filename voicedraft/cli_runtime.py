"""CLI runtime source resolution helpers.

This module isolates API-key source assembly and secure-storage lookups from
the command wiring layer.
"""

from __future__ import annotations

import os
from typing import Callable, Mapping, Protocol

from .config import RuntimeConfigSources
from .credentials import create_credential_store
from .parsing import normalize_optional_string


class CredentialStoreProtocol(Protocol):
    """Protocol for secure credential store operations used by CLI runtime resolution."""

    def get_api_key(self) -> str | None:
        """Return currently stored API key, if available."""


def resolve_runtime_sources(
    api_key: str | None,
    *,
    env: Mapping[str, str] | None = None,
    credential_store_factory: Callable[[], CredentialStoreProtocol] = create_credential_store,
) -> RuntimeConfigSources:
    """Collect CLI, secure-storage, and environment sources for API-key precedence."""

    runtime_cli_values: dict[str, str] = {}
    normalized_cli_key = normalize_optional_string(api_key)
    if normalized_cli_key is not None:
        runtime_cli_values["api_key"] = normalized_cli_key

    runtime_secure_values: dict[str, str] = {}
    stored_api_key = credential_store_factory().get_api_key()
    if stored_api_key is not None:
        runtime_secure_values["api_key"] = stored_api_key

    return RuntimeConfigSources(
        cli=runtime_cli_values,
        secure=runtime_secure_values,
        env=os.environ if env is None else env,
    )
