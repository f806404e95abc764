"""Core datatypes shared across Voicedraft modules.

Responsibilities:
- Represent immutable records exchanged between tree, generation, and export code.
- Keep node status transitions explicit and typed.

Key types:
- `NodeStatus`, `AudioBuffer`, `GeneratedAudioArtifact`, `ContentNode`,
  `Project`, `ReferenceAudio`, `AppMode`, and `ContentFingerprint`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from hashlib import sha256


class NodeStatus(str, Enum):
    """Generation status of one content node (or the document pseudo-node)."""

    IDLE = "idle"
    GENERATING = "generating"
    SUCCESS = "success"
    ERROR = "error"


class AppMode(str, Enum):
    """Document-level working mode."""

    NARRATION = "narration"
    DIALOGUE = "dialogue"
    CLONING = "cloning"
    TRANSCRIPTION = "transcription"


@dataclass(frozen=True, slots=True)
class AudioBuffer:
    """Decoded little-endian 16-bit PCM audio.

    Attributes:
        frames: Raw interleaved PCM frame bytes.
        sample_rate: Frames per second.
        channels: Channel count.
        sample_width: Bytes per sample.
    """

    frames: bytes
    sample_rate: int = 24000
    channels: int = 1
    sample_width: int = 2

    @property
    def frame_count(self) -> int:
        """Return the number of complete frames in the buffer."""

        return len(self.frames) // (self.channels * self.sample_width)

    @property
    def duration_seconds(self) -> float:
        """Return playback duration in seconds."""

        return self.frame_count / float(self.sample_rate)


@dataclass(frozen=True, slots=True)
class GeneratedAudioArtifact:
    """Playable and downloadable result of one successful generation.

    Attributes:
        wav_bytes: Portable RIFF/WAVE container bytes.
        duration_seconds: Duration estimate of the decoded audio.
        buffer: Decoded audio handle used for playback.
    """

    wav_bytes: bytes
    duration_seconds: float
    buffer: AudioBuffer = field(repr=False, compare=False)


@dataclass(frozen=True, slots=True)
class ContentNode:
    """One addressable unit of text with its own voice and generation status.

    Attributes:
        id: Unique opaque identifier.
        name: Author-facing label (`Section N` / `Part M` by default).
        text: Text to synthesize.
        voice: Voice identifier used for synthesis.
        artifact: Last successful generation result, if any.
        status: Current generation status.
        error_message: Last failure message when `status` is `error`.
        children: Subsections extracted from this node's text (sections only).
    """

    id: str
    name: str
    text: str
    voice: str
    artifact: GeneratedAudioArtifact | None = None
    status: NodeStatus = NodeStatus.IDLE
    error_message: str | None = None
    children: tuple[ContentNode, ...] = field(default_factory=tuple)


@dataclass(slots=True)
class Project:
    """Naming-only labels for one authoring session."""

    app_name: str = "MyApp"
    feature_name: str = "Tutorial"


@dataclass(frozen=True, slots=True)
class ReferenceAudio:
    """An uploaded or recorded audio sample with its mime type."""

    name: str
    data: bytes = field(repr=False)
    mime_type: str

    def identity(self) -> tuple[str, str]:
        """Return a stable identity for fingerprinting."""

        return self.name, sha256(self.data).hexdigest()


@dataclass(frozen=True, slots=True)
class ContentFingerprint:
    """Structural snapshot of the inputs relevant to document regeneration."""

    mode: AppMode
    payload: tuple[object, ...]
