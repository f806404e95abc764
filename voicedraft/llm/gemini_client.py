"""Gemini HTTP client utilities for speech and transcription requests.

Responsibilities:
- Send minimal `generateContent` requests to the Gemini REST API.
- Normalize inline-audio and text extraction from response payloads.
- Raise actionable provider exceptions for orchestration-level error mapping.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import socket
from typing import Any

import requests


DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
MIMIC_PROMPT_TEMPLATE = (
    "Please speak the following text. Try to mimic the voice, tone, and speaking style "
    "of the speaker in the provided audio file as closely as possible.\n\n"
    'Text: "{text}"'
)
TRANSCRIBE_PROMPT = (
    "Transcribe the speech in this audio file into text. "
    "Return only the transcription, no other text."
)


class GeminiProviderError(RuntimeError):
    """Raised when a Gemini request fails or returns malformed output."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        provider_code: str | None = None,
    ) -> None:
        """Initialize provider error metadata for stage-aware diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_code = provider_code


class GeminiClient:
    """Minimal requests-based Gemini `generateContent` HTTP client."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout_seconds: float = 60.0,
    ) -> None:
        """Initialize Gemini HTTP client settings."""

        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def generate_speech(self, *, model: str, text: str, voice: str) -> bytes:
        """Return raw PCM bytes for single-voice speech."""

        payload = {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}},
                },
            },
        }
        response = self._generate_content(model=model, payload=payload)
        return self._extract_inline_audio(response, "No audio data returned from Gemini API.")

    def generate_dialogue(
        self,
        *,
        model: str,
        prompt_text: str,
        speakers: list[tuple[str, str]],
    ) -> bytes:
        """Return raw PCM bytes for a multi-speaker dialogue prompt."""

        payload = {
            "contents": [{"parts": [{"text": prompt_text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "multiSpeakerVoiceConfig": {
                        "speakerVoiceConfigs": [
                            {
                                "speaker": speaker,
                                "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": voice}},
                            }
                            for speaker, voice in speakers
                        ]
                    }
                },
            },
        }
        response = self._generate_content(model=model, payload=payload)
        return self._extract_inline_audio(response, "No audio data returned from Gemini API.")

    def mimic_voice(
        self,
        *,
        model: str,
        text: str,
        reference_audio: bytes,
        mime_type: str,
    ) -> bytes:
        """Return raw audio bytes spoken in the style of a reference sample."""

        payload = {
            "contents": [
                {
                    "parts": [
                        {"inlineData": {"mimeType": mime_type, "data": self._b64(reference_audio)}},
                        {"text": MIMIC_PROMPT_TEMPLATE.format(text=text)},
                    ]
                }
            ],
            "generationConfig": {"responseModalities": ["AUDIO"]},
        }
        response = self._generate_content(model=model, payload=payload)
        return self._extract_inline_audio(response, "Model returned no audio data.")

    def transcribe(self, *, model: str, audio: bytes, mime_type: str) -> str:
        """Return the transcription of an audio sample."""

        payload = {
            "contents": [
                {
                    "parts": [
                        {"inlineData": {"mimeType": mime_type, "data": self._b64(audio)}},
                        {"text": TRANSCRIBE_PROMPT},
                    ]
                }
            ]
        }
        response = self._generate_content(model=model, payload=payload)
        text = self._extract_text(response)
        if not text.strip():
            raise GeminiProviderError(
                "No transcription generated.",
                failure_kind="empty_response",
            )
        return text

    def _require_api_key(self) -> None:
        """Require API key presence before issuing Gemini requests."""

        if not self.api_key:
            raise GeminiProviderError(
                "Missing Gemini API key. Set `GEMINI_API_KEY`, use `--api-key`, or "
                "store one with `voicedraft credentials --set-api-key`.",
                failure_kind="invalid_api_key",
            )

    def _generate_content(self, *, model: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a `generateContent` request and return the decoded JSON payload."""

        self._require_api_key()
        endpoint = f"{self.base_url}/models/{model}:generateContent"
        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        try:
            response = requests.post(
                endpoint,
                headers=headers,
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            response_bytes = bytes(response.content)
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except requests.RequestException as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = "Gemini request timed out."
            else:
                detail = f"Gemini request transport error: {self._short_message(str(exc))}"
            raise GeminiProviderError(detail, failure_kind=failure_kind) from exc
        except TimeoutError as exc:
            raise GeminiProviderError("Gemini request timed out.", failure_kind="timeout") from exc

        if not response_bytes:
            raise GeminiProviderError("Gemini response is empty.", failure_kind="empty_response")
        try:
            decoded = json.loads(response_bytes.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise GeminiProviderError("Gemini returned invalid JSON payload.") from exc
        if not isinstance(decoded, dict):
            raise GeminiProviderError("Gemini response root is not an object.")
        return decoded

    @staticmethod
    def _b64(data: bytes) -> str:
        return base64.b64encode(data).decode("ascii")

    @staticmethod
    def _response_parts(payload: dict[str, Any]) -> list[dict[str, Any]]:
        """Return the part list of the first candidate, or an empty list."""

        candidates = payload.get("candidates")
        if not isinstance(candidates, list) or not candidates:
            return []
        first = candidates[0]
        if not isinstance(first, dict):
            return []
        content = first.get("content")
        if not isinstance(content, dict):
            return []
        parts = content.get("parts")
        if not isinstance(parts, list):
            return []
        return [part for part in parts if isinstance(part, dict)]

    @classmethod
    def _extract_inline_audio(cls, payload: dict[str, Any], missing_message: str) -> bytes:
        """Decode the first inline audio part of a response."""

        for part in cls._response_parts(payload):
            inline = part.get("inlineData")
            if not isinstance(inline, dict):
                continue
            data = inline.get("data")
            if isinstance(data, str) and data:
                try:
                    return base64.b64decode(data, validate=True)
                except (binascii.Error, ValueError) as exc:
                    raise GeminiProviderError(
                        "Gemini returned malformed base64 audio data."
                    ) from exc
        raise GeminiProviderError(missing_message, failure_kind="empty_response")

    @classmethod
    def _extract_text(cls, payload: dict[str, Any]) -> str:
        """Concatenate text parts of the first candidate."""

        return "".join(
            part["text"]
            for part in cls._response_parts(payload)
            if isinstance(part.get("text"), str)
        )

    @staticmethod
    def _decode_error_body(exc: requests.HTTPError) -> str:
        """Decode an HTTP error body into a best-effort UTF-8 payload string."""

        response = exc.response
        if response is None:
            return ""
        return bytes(response.content).decode("utf-8", errors="replace").strip()

    @classmethod
    def _redact_sensitive_tokens(cls, text: str) -> str:
        """Redact API-key-like tokens from provider error content."""

        redacted = re.sub(r"\bAIza[0-9A-Za-z_-]{20,}", "[redacted-key]", text)
        redacted = re.sub(
            r"(?i)bearer\s+[A-Za-z0-9._-]{12,}",
            "Bearer [redacted-token]",
            redacted,
        )
        return redacted

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_provider_message(cls, body: str) -> tuple[str, str | None]:
        """Extract a concise provider-facing message and optional provider status code."""

        if not body:
            return "", None

        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return cls._short_message(cls._redact_sensitive_tokens(body)), None

        provider_code: str | None = None
        message: str | None = None
        if isinstance(payload, dict):
            error_payload = payload.get("error")
            if isinstance(error_payload, dict):
                status_value = error_payload.get("status")
                if isinstance(status_value, str) and status_value.strip():
                    provider_code = status_value.strip()
                message_value = error_payload.get("message")
                if isinstance(message_value, str) and message_value.strip():
                    message = message_value.strip()

        if message is None:
            message = body

        return cls._short_message(cls._redact_sensitive_tokens(message)), provider_code

    @staticmethod
    def _classify_http_failure(
        status_code: int,
        provider_message: str,
        provider_code: str | None,
    ) -> str:
        """Classify Gemini HTTP errors into deterministic diagnostic kinds."""

        message_lower = provider_message.lower()
        normalized_code = provider_code.upper() if provider_code is not None else ""

        if status_code in {401, 403} or "api key" in message_lower:
            return "invalid_api_key"
        if normalized_code == "RESOURCE_EXHAUSTED" or (
            status_code == 429 and "quota" in message_lower
        ):
            return "insufficient_quota"
        if status_code == 404 or (
            "model" in message_lower
            and any(phrase in message_lower for phrase in ("not found", "does not exist"))
        ):
            return "invalid_model"
        if status_code in {408, 504} or "timeout" in message_lower or "timed out" in message_lower:
            return "timeout"
        return "http_error"

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Classify network-layer failures into deterministic diagnostic kinds."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    @classmethod
    def _http_error_to_provider_error(cls, exc: requests.HTTPError) -> GeminiProviderError:
        """Convert HTTP errors into normalized provider exceptions with metadata."""

        status_code = exc.response.status_code if exc.response is not None else 0
        body = cls._decode_error_body(exc)
        provider_message, provider_code = cls._extract_provider_message(body)
        failure_kind = cls._classify_http_failure(status_code, provider_message, provider_code)

        headline = {
            "invalid_api_key": "Gemini authentication failed",
            "insufficient_quota": "Gemini quota is insufficient for this request",
            "invalid_model": "Gemini rejected the selected model",
            "timeout": "Gemini request timed out",
        }.get(failure_kind, "Gemini request failed")

        if provider_message:
            detail = f"{headline} (HTTP {status_code}): {provider_message}"
        else:
            detail = f"{headline} (HTTP {status_code})."

        return GeminiProviderError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            provider_code=provider_code,
        )
