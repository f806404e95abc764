"""Configuration model and loaders for Voicedraft.

Responsibilities:
- Define session configuration as a typed dataclass.
- Resolve the provider API key with deterministic source precedence.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `VoicedraftConfig`: normalized settings for one authoring session.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `VoicedraftConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .parsing import (
    normalize_optional_string,
    parse_permissive_boolean,
    parse_positive_float,
)
from .tts.synthesizer import (
    DEFAULT_CLONE_MODEL,
    DEFAULT_TRANSCRIBE_MODEL,
    DEFAULT_TTS_MODEL,
)
from .tts.voices import DEFAULT_VOICE, FALLBACK_VOICE, is_known_voice, voice_names

API_KEY_ENV_VAR = "GEMINI_API_KEY"
_ENV_PREFIX = "VOICEDRAFT_"


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class VoicedraftConfig:
    """Settings for one authoring session.

    Attributes:
        app_name: Default application label used in file and bundle names.
        feature_name: Default feature label used in file and bundle names.
        default_voice: Voice assigned to new sections and narration.
        fallback_voice: Prebuilt voice used when cloned-voice generation fails.
        tts_model: Gemini model for single-voice and dialogue speech.
        clone_model: Gemini model for reference-sample voice mimicry.
        transcribe_model: Gemini model for transcription.
        api_key: Optional provider API key.
        timeout_seconds: HTTP timeout for one provider request.
        discard_superseded_results: Apply only the latest issued generation per node.
        extra: Additional metadata for future extensions.
    """

    app_name: str = "MyApp"
    feature_name: str = "Tutorial"
    default_voice: str = DEFAULT_VOICE
    fallback_voice: str = FALLBACK_VOICE
    tts_model: str = DEFAULT_TTS_MODEL
    clone_model: str = DEFAULT_CLONE_MODEL
    transcribe_model: str = DEFAULT_TRANSCRIBE_MODEL
    api_key: str | None = None
    timeout_seconds: float = 60.0
    discard_superseded_results: bool = True
    extra: dict[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        """Validate configuration values before a session is built."""

        self._validate_voice(self.default_voice, "default_voice")
        self._validate_voice(self.fallback_voice, "fallback_voice")
        self._require_non_empty(self.tts_model, "tts_model")
        self._require_non_empty(self.clone_model, "clone_model")
        self._require_non_empty(self.transcribe_model, "transcribe_model")
        if self.timeout_seconds <= 0:
            raise ValueError("`timeout_seconds` must be a positive number.")

    def resolved_api_key(self, sources: RuntimeConfigSources | None = None) -> str | None:
        """Resolve the API key with precedence `cli` > `secure` > `env` > config field."""

        resolved_sources = sources if sources is not None else RuntimeConfigSources()
        for mapping, key in (
            (resolved_sources.cli, "api_key"),
            (resolved_sources.secure, "api_key"),
            (resolved_sources.env, API_KEY_ENV_VAR),
        ):
            value = normalize_optional_string(mapping.get(key))
            if value is not None:
                return value
        return normalize_optional_string(self.api_key)

    @staticmethod
    def _validate_voice(voice: str, field_name: str) -> None:
        """Validate voice identifiers against the prebuilt catalog."""

        if not is_known_voice(voice):
            supported = ", ".join(voice_names())
            raise ValueError(f"Unsupported `{field_name}` value `{voice}`; supported: {supported}.")

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        """Validate that string fields are not empty."""

        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"`{field_name}` must be a non-empty string.")


class ConfigLoader:
    """Factory methods for creating `VoicedraftConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(item.name for item in fields(VoicedraftConfig))
    _STRING_KEYS = (
        "app_name",
        "feature_name",
        "default_voice",
        "fallback_voice",
        "tts_model",
        "clone_model",
        "transcribe_model",
        "api_key",
    )

    @staticmethod
    def from_yaml(path: Path) -> VoicedraftConfig:
        """Create a validated config from a YAML file."""

        path_text = path.read_text(encoding="utf-8")
        payload = ConfigLoader._parse_yaml_payload(path_text, path)
        return ConfigLoader._build_config_from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> VoicedraftConfig:
        """Create a validated config from `VOICEDRAFT_*` and `GEMINI_API_KEY` variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}
        for key in ConfigLoader._STRING_KEYS + ("timeout_seconds", "discard_superseded_results"):
            if key == "api_key":
                continue
            value = normalize_optional_string(env_map.get(f"{_ENV_PREFIX}{key.upper()}"))
            if value is not None:
                payload[key] = value
        api_key = normalize_optional_string(env_map.get(API_KEY_ENV_VAR))
        if api_key is not None:
            payload["api_key"] = api_key
        return ConfigLoader._build_config_from_mapping(payload, source_label="environment")

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` is not valid YAML: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any], source_label: str
    ) -> VoicedraftConfig:
        """Build a validated config from a normalized mapping payload."""

        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

        values: dict[str, Any] = {}
        for key in ConfigLoader._STRING_KEYS:
            value = ConfigLoader._optional_non_empty_string(payload, key, source_label)
            if value is not None:
                values[key] = value
        if "timeout_seconds" in payload:
            values["timeout_seconds"] = parse_positive_float(
                payload["timeout_seconds"], "timeout_seconds"
            )
        if "discard_superseded_results" in payload:
            values["discard_superseded_results"] = ConfigLoader._required_boolean(
                payload, "discard_superseded_results", source_label
            )
        values["extra"] = ConfigLoader._optional_string_map(payload, "extra", source_label)

        config = VoicedraftConfig(**values)
        config.validate()
        return config

    @staticmethod
    def _optional_non_empty_string(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> str | None:
        """Read an optional string field and normalize blank values to `None`."""

        if key not in payload:
            return None
        value = payload[key]
        if value is not None and not isinstance(value, (str, int, float)):
            raise ValueError(f"{source_label} field `{key}` must be a string.")
        return normalize_optional_string(value)

    @staticmethod
    def _required_boolean(payload: Mapping[str, Any], key: str, source_label: str) -> bool:
        """Read a boolean field from permissive textual or YAML boolean values."""

        parsed = parse_permissive_boolean(payload[key])
        if parsed is None:
            raise ValueError(
                f"{source_label} field `{key}` must be a boolean "
                "(true/false, yes/no, on/off, 1/0)."
            )
        return parsed

    @staticmethod
    def _optional_string_map(
        payload: Mapping[str, Any], key: str, source_label: str
    ) -> dict[str, str]:
        """Read an optional mapping of string keys to string values."""

        if key not in payload or payload[key] is None:
            return {}
        value = payload[key]
        if not isinstance(value, Mapping):
            raise ValueError(f"{source_label} field `{key}` must be a mapping.")
        return {str(item_key): str(item_value) for item_key, item_value in value.items()}
