"""Provider HTTP clients.

This package contains the requests-based Gemini client used for speech,
voice mimicry, and transcription.
"""

from .gemini_client import GeminiClient, GeminiProviderError

__all__ = ["GeminiClient", "GeminiProviderError"]
