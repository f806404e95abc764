"""Integration-test fixtures for deterministic provider and credential behavior."""

from __future__ import annotations

import pytest

from voicedraft.llm.gemini_client import GeminiClient, GeminiProviderError


class InMemoryCredentialStore:
    """Simple in-memory credential store used for CLI tests."""

    def __init__(self, initial_api_key: str | None = None) -> None:
        """Initialize the store with an optional pre-seeded API key."""

        self._api_key = initial_api_key

    def is_available(self) -> bool:
        """Return availability flag expected by the CLI status command."""

        return True

    def get_api_key(self) -> str | None:
        """Return currently stored API key value."""

        return self._api_key

    def set_api_key(self, api_key: str) -> None:
        """Persist a normalized API key value."""

        self._api_key = api_key.strip()

    def clear_api_key(self) -> bool:
        """Clear API key and return whether one existed."""

        existed = self._api_key is not None
        self._api_key = None
        return existed


class GeminiCallLog:
    """Record mocked Gemini calls and hold texts that should fail."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, object]]] = []
        self.failing_texts: set[str] = set()


def _pcm(text: str) -> bytes:
    """Return deterministic 16-bit PCM whose length depends on the text length."""

    return b"\x01\x00" * (100 * len(text))


@pytest.fixture
def credential_store(monkeypatch: pytest.MonkeyPatch) -> InMemoryCredentialStore:
    """Replace keyring-backed storage with an in-memory store for every CLI command."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr("voicedraft.cli.create_credential_store", lambda: store)
    return store


@pytest.fixture(autouse=True)
def gemini_calls(
    monkeypatch: pytest.MonkeyPatch, credential_store: InMemoryCredentialStore
) -> GeminiCallLog:
    """Mock Gemini client calls in integration tests to avoid network/key requirements."""

    log = GeminiCallLog()
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)

    def _mock_generate_speech(self: GeminiClient, **kwargs: object) -> bytes:
        """Return deterministic PCM for single-voice speech, failing on request."""

        log.calls.append(("generate_speech", {"api_key": self.api_key, **kwargs}))
        text = str(kwargs["text"])
        if text in log.failing_texts:
            raise GeminiProviderError(
                "Gemini request failed (HTTP 500): Internal error.",
                failure_kind="http_error",
                status_code=500,
            )
        return _pcm(text)

    def _mock_generate_dialogue(self: GeminiClient, **kwargs: object) -> bytes:
        """Return deterministic PCM for a dialogue prompt."""

        log.calls.append(("generate_dialogue", {"api_key": self.api_key, **kwargs}))
        return _pcm(str(kwargs["prompt_text"]))

    def _mock_mimic_voice(self: GeminiClient, **kwargs: object) -> bytes:
        """Return deterministic PCM for cloned-voice speech."""

        log.calls.append(("mimic_voice", {"api_key": self.api_key, **kwargs}))
        return _pcm(str(kwargs["text"]))

    def _mock_transcribe(self: GeminiClient, **kwargs: object) -> str:
        """Return a fixed transcription."""

        log.calls.append(("transcribe", {"api_key": self.api_key, **kwargs}))
        return "integration transcript"

    monkeypatch.setattr(GeminiClient, "generate_speech", _mock_generate_speech)
    monkeypatch.setattr(GeminiClient, "generate_dialogue", _mock_generate_dialogue)
    monkeypatch.setattr(GeminiClient, "mimic_voice", _mock_mimic_voice)
    monkeypatch.setattr(GeminiClient, "transcribe", _mock_transcribe)
    return log
