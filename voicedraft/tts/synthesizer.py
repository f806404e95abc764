"""TTS synthesizer interfaces and Gemini-backed implementation.

Responsibilities:
- Define the async protocols the generation pipeline awaits.
- Run blocking Gemini HTTP calls off the event loop.
- Map provider failures to `ExternalServiceError`, including the cloned-voice fallback.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from ..errors import ExternalServiceError
from ..llm.gemini_client import GeminiClient, GeminiProviderError
from ..models.datatypes import ReferenceAudio
from ..telemetry.logger import RunLogger
from .voices import FALLBACK_VOICE

DEFAULT_TTS_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_CLONE_MODEL = "gemini-2.0-flash-exp"
DEFAULT_TRANSCRIBE_MODEL = "gemini-2.5-flash"


class SpeechSynthesizer(Protocol):
    """Protocol for single-voice speech synthesis."""

    async def synthesize(self, text: str, voice: str) -> bytes:
        """Return raw audio bytes for text spoken by one voice."""


class DocumentSynthesizer(SpeechSynthesizer, Protocol):
    """Protocol for the document-level modes on top of single-voice synthesis."""

    async def synthesize_dialogue(
        self, prompt_text: str, speakers: list[tuple[str, str]]
    ) -> bytes:
        """Return raw audio bytes for a multi-speaker prompt."""

    async def synthesize_cloned(self, text: str, reference: ReferenceAudio) -> bytes:
        """Return raw audio bytes mimicking a reference sample."""

    async def transcribe(self, sample: ReferenceAudio) -> str:
        """Return the transcription of an audio sample."""


class GeminiSpeechSynthesizer:
    """Gemini-backed synthesizer awaiting blocking HTTP calls in worker threads."""

    def __init__(
        self,
        client: GeminiClient,
        *,
        tts_model: str = DEFAULT_TTS_MODEL,
        clone_model: str = DEFAULT_CLONE_MODEL,
        transcribe_model: str = DEFAULT_TRANSCRIBE_MODEL,
        fallback_voice: str = FALLBACK_VOICE,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize synthesizer models around an injected client."""

        self.client = client
        self.tts_model = tts_model
        self.clone_model = clone_model
        self.transcribe_model = transcribe_model
        self.fallback_voice = fallback_voice
        self._run_logger = run_logger

    async def synthesize(self, text: str, voice: str) -> bytes:
        """Synthesize single-voice speech."""

        try:
            return await asyncio.to_thread(
                self.client.generate_speech,
                model=self.tts_model,
                text=text,
                voice=voice,
            )
        except GeminiProviderError as exc:
            raise ExternalServiceError(str(exc)) from exc

    async def synthesize_dialogue(
        self, prompt_text: str, speakers: list[tuple[str, str]]
    ) -> bytes:
        """Synthesize a multi-speaker dialogue."""

        try:
            return await asyncio.to_thread(
                self.client.generate_dialogue,
                model=self.tts_model,
                prompt_text=prompt_text,
                speakers=speakers,
            )
        except GeminiProviderError as exc:
            raise ExternalServiceError(str(exc)) from exc

    async def synthesize_cloned(self, text: str, reference: ReferenceAudio) -> bytes:
        """Mimic a reference voice, falling back to plain synthesis with the fallback voice."""

        try:
            return await asyncio.to_thread(
                self.client.mimic_voice,
                model=self.clone_model,
                text=text,
                reference_audio=reference.data,
                mime_type=reference.mime_type,
            )
        except GeminiProviderError as native_exc:
            if self._run_logger is not None:
                self._run_logger.event(
                    "WARNING",
                    "clone",
                    "fallback",
                    failure_kind=native_exc.failure_kind,
                    voice=self.fallback_voice,
                )
            try:
                return await asyncio.to_thread(
                    self.client.generate_speech,
                    model=self.tts_model,
                    text=text,
                    voice=self.fallback_voice,
                )
            except GeminiProviderError as fallback_exc:
                raise ExternalServiceError(
                    f"Voice generation failed. Native error: {native_exc}. "
                    f"Fallback error: {fallback_exc}",
                    stage="clone",
                ) from fallback_exc

    async def transcribe(self, sample: ReferenceAudio) -> str:
        """Transcribe an audio sample."""

        try:
            return await asyncio.to_thread(
                self.client.transcribe,
                model=self.transcribe_model,
                audio=sample.data,
                mime_type=sample.mime_type,
            )
        except GeminiProviderError as exc:
            raise ExternalServiceError(str(exc), stage="transcribe") from exc
