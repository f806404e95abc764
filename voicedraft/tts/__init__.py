"""Text-to-speech provider abstractions.

This package contains the voice catalog and the async synthesizer interfaces
awaited by the generation pipeline.
"""

from .synthesizer import DocumentSynthesizer, GeminiSpeechSynthesizer, SpeechSynthesizer
from .voices import DEFAULT_VOICE, FALLBACK_VOICE, VOICE_CATALOG, VoiceProfile

__all__ = [
    "DEFAULT_VOICE",
    "FALLBACK_VOICE",
    "VOICE_CATALOG",
    "VoiceProfile",
    "SpeechSynthesizer",
    "DocumentSynthesizer",
    "GeminiSpeechSynthesizer",
]
