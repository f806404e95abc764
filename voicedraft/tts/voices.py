"""Voice catalog for synthesis configuration.

Responsibilities:
- Represent the prebuilt provider voices offered to authors.
- Decouple tree and dialogue logic from provider-specific naming.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class VoiceProfile:
    """Declarative voice profile used by TTS providers.

    Attributes:
        name: Provider-native prebuilt voice name.
        description: Short human-readable character of the voice.
        gender: Perceived voice gender label.
    """

    name: str
    description: str
    gender: str


VOICE_CATALOG: tuple[VoiceProfile, ...] = (
    VoiceProfile(name="Kore", description="Balanced, calm", gender="Female"),
    VoiceProfile(name="Puck", description="Energetic, youthful", gender="Male"),
    VoiceProfile(name="Charon", description="Deep, authoritative", gender="Male"),
    VoiceProfile(name="Fenrir", description="Rough, intense", gender="Male"),
    VoiceProfile(name="Aoede", description="Classic, professional", gender="Female"),
)

DEFAULT_VOICE = "Kore"
FALLBACK_VOICE = "Aoede"


def voice_names() -> tuple[str, ...]:
    """Return catalog voice names in display order."""

    return tuple(profile.name for profile in VOICE_CATALOG)


def is_known_voice(name: str) -> bool:
    """Return whether a voice name belongs to the catalog."""

    return name in voice_names()
