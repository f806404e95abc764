"""PCM/WAV codec for synthesis payloads.

Responsibilities:
- Decode raw synthesis bytes (headerless 16-bit PCM or RIFF/WAVE) into an `AudioBuffer`.
- Encode buffers into portable RIFF/WAVE container bytes.
- Build `GeneratedAudioArtifact` records from raw payloads.
"""

from __future__ import annotations

import io
from typing import Protocol
import wave

from ..errors import DecodeError
from ..models.datatypes import AudioBuffer, GeneratedAudioArtifact

DEFAULT_SAMPLE_RATE = 24000
DEFAULT_CHANNELS = 1
DEFAULT_SAMPLE_WIDTH = 2


class AudioCodec(Protocol):
    """Protocol for decoding synthesis payloads and encoding portable containers."""

    def decode(self, raw: bytes) -> AudioBuffer:
        """Decode raw synthesis bytes into a playable buffer."""

    def encode(self, buffer: AudioBuffer) -> bytes:
        """Encode a buffer into container bytes."""


def build_artifact(codec: AudioCodec, raw: bytes) -> GeneratedAudioArtifact:
    """Decode a synthesis payload and package it as a downloadable artifact."""

    buffer = codec.decode(raw)
    return GeneratedAudioArtifact(
        wav_bytes=codec.encode(buffer),
        duration_seconds=buffer.duration_seconds,
        buffer=buffer,
    )


class PcmWavCodec:
    """Codec for mono 24 kHz 16-bit PCM payloads and WAV containers."""

    def __init__(
        self,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        channels: int = DEFAULT_CHANNELS,
        sample_width: int = DEFAULT_SAMPLE_WIDTH,
    ) -> None:
        """Initialize the PCM layout assumed for headerless payloads."""

        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = sample_width

    def decode(self, raw: bytes) -> AudioBuffer:
        """Decode headerless PCM or a RIFF/WAVE payload."""

        if not raw:
            raise DecodeError("Audio payload is empty.")
        if raw[:4] == b"RIFF":
            return self._decode_wav(raw)

        frame_size = self.channels * self.sample_width
        if len(raw) % frame_size != 0:
            raise DecodeError(
                f"PCM payload length {len(raw)} is not a multiple of "
                f"the {frame_size}-byte frame size."
            )
        return AudioBuffer(
            frames=bytes(raw),
            sample_rate=self.sample_rate,
            channels=self.channels,
            sample_width=self.sample_width,
        )

    def encode(self, buffer: AudioBuffer) -> bytes:
        """Encode a buffer as RIFF/WAVE bytes."""

        output = io.BytesIO()
        with wave.open(output, "wb") as wav_file:
            wav_file.setnchannels(buffer.channels)
            wav_file.setsampwidth(buffer.sample_width)
            wav_file.setframerate(buffer.sample_rate)
            wav_file.writeframes(buffer.frames)
        return output.getvalue()

    def _decode_wav(self, raw: bytes) -> AudioBuffer:
        """Read frames and format from a RIFF/WAVE payload."""

        try:
            with wave.open(io.BytesIO(raw), "rb") as wav_file:
                channels = wav_file.getnchannels()
                sample_width = wav_file.getsampwidth()
                sample_rate = wav_file.getframerate()
                frames = wav_file.readframes(wav_file.getnframes())
        except (wave.Error, EOFError) as exc:
            raise DecodeError(f"Audio payload is not a readable WAV file: {exc}") from exc
        if sample_rate <= 0:
            raise DecodeError("Audio payload has an invalid WAV sample rate.")
        return AudioBuffer(
            frames=frames,
            sample_rate=sample_rate,
            channels=channels,
            sample_width=sample_width,
        )
