"""Shared pytest fixtures for the full Voicedraft test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime
import itertools

import pytest

from voicedraft.audio.codec import PcmWavCodec, build_artifact
from voicedraft.models.datatypes import GeneratedAudioArtifact, ReferenceAudio

FIXED_NOW = datetime(2024, 5, 6, 7, 8, 9)


def pcm_for_text(text: str) -> bytes:
    """Return deterministic 16-bit PCM whose length depends on the text length."""

    return b"\x01\x00" * (100 * len(text))


class FakeSynthesizer:
    """In-memory synthesizer recording calls; optionally holds each call until released."""

    def __init__(self, *, hold: bool = False) -> None:
        self.hold = hold
        self.calls: list[tuple[str, str]] = []
        self.dialogue_calls: list[tuple[str, list[tuple[str, str]]]] = []
        self.cloned_calls: list[tuple[str, ReferenceAudio]] = []
        self.transcribe_calls: list[ReferenceAudio] = []
        self.gates: list[asyncio.Event] = []
        self.errors: dict[str, Exception] = {}
        self.transcription = "hello from the sample"

    async def _pass_gate(self) -> None:
        gate = asyncio.Event()
        self.gates.append(gate)
        if not self.hold:
            gate.set()
        await gate.wait()

    async def wait_for_calls(self, count: int) -> None:
        """Yield to the event loop until `count` calls are in flight or done."""

        while len(self.gates) < count:
            await asyncio.sleep(0)

    def release(self, index: int) -> None:
        """Let the call with the given issue index resolve."""

        self.gates[index].set()

    async def synthesize(self, text: str, voice: str) -> bytes:
        self.calls.append((text, voice))
        await self._pass_gate()
        if text in self.errors:
            raise self.errors[text]
        return pcm_for_text(text)

    async def synthesize_dialogue(
        self, prompt_text: str, speakers: list[tuple[str, str]]
    ) -> bytes:
        self.dialogue_calls.append((prompt_text, speakers))
        await self._pass_gate()
        if prompt_text in self.errors:
            raise self.errors[prompt_text]
        return pcm_for_text(prompt_text)

    async def synthesize_cloned(self, text: str, reference: ReferenceAudio) -> bytes:
        self.cloned_calls.append((text, reference))
        await self._pass_gate()
        if text in self.errors:
            raise self.errors[text]
        return pcm_for_text(text)

    async def transcribe(self, sample: ReferenceAudio) -> str:
        self.transcribe_calls.append(sample)
        await self._pass_gate()
        return self.transcription


@pytest.fixture
def fake_synthesizer() -> FakeSynthesizer:
    """Provide a synthesizer that resolves immediately."""

    return FakeSynthesizer()


@pytest.fixture
def held_synthesizer() -> FakeSynthesizer:
    """Provide a synthesizer whose calls wait until the test releases them."""

    return FakeSynthesizer(hold=True)


@pytest.fixture
def sequential_ids() -> Callable[[], str]:
    """Provide a deterministic node id factory (`n1`, `n2`, ...)."""

    counter = itertools.count(1)
    return lambda: f"n{next(counter)}"


@pytest.fixture
def make_artifact() -> Callable[[str], GeneratedAudioArtifact]:
    """Build a real artifact from the PCM generated for a text."""

    codec = PcmWavCodec()
    return lambda text: build_artifact(codec, pcm_for_text(text))


@pytest.fixture
def wav_sample() -> ReferenceAudio:
    """Provide a small reference sample declared as WAV audio."""

    codec = PcmWavCodec()
    return ReferenceAudio(
        name="reference.wav",
        data=build_artifact(codec, pcm_for_text("sample")).wav_bytes,
        mime_type="audio/wav",
    )
