"""Domain exceptions for generation, export, and CLI diagnostics.

Key types:
- `VoicedraftError`: stage-scoped base error carrying a detail and optional hint.
- `ValidationError` and subclasses: input problems caught before any external call.
- `ExternalServiceError`, `DecodeError`, `ArchiveError`: collaborator failures.
"""

from __future__ import annotations


class VoicedraftError(RuntimeError):
    """Raised when a specific generation or export stage fails."""

    default_stage = "voicedraft"

    def __init__(
        self,
        detail: str,
        *,
        stage: str | None = None,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped error."""

        super().__init__(detail)
        self.stage = stage or self.default_stage
        self.detail = detail
        self.hint = hint


class ValidationError(VoicedraftError):
    """Raised for invalid author input before any collaborator is called."""

    default_stage = "validate"


class EmptyInputError(ValidationError):
    """Raised when there is no text (or sample) to generate from."""


class InvalidSelectionError(ValidationError):
    """Raised when a text selection cannot become a subsection."""

    default_stage = "extract"


class EmptyProjectError(ValidationError):
    """Raised when exporting a project without any sections."""

    default_stage = "export"


class NodeNotFoundError(ValidationError):
    """Raised when an operation addresses a node id that does not exist."""


class ExternalServiceError(VoicedraftError):
    """Raised when the synthesis or transcription backend fails or returns nothing usable."""

    default_stage = "synthesize"


class DecodeError(VoicedraftError):
    """Raised when returned audio bytes cannot be interpreted."""

    default_stage = "decode"


class ArchiveError(VoicedraftError):
    """Raised when the export bundle cannot be compressed."""

    default_stage = "export"
