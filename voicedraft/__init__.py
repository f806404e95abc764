"""Top-level package for Voicedraft.

This package turns authored text into speech audio organized as sections and
subsections, with per-node generation, document-level narration modes, and
zip export. The main entry point is `VoicedraftSession`.
"""

from .session import VoicedraftSession, create_gemini_session

__all__ = ["VoicedraftSession", "create_gemini_session", "__version__"]

__version__ = "0.1.0"
