"""Document-level staleness detection.

Responsibilities:
- Keep the fingerprint recorded at the last successful document generation.
- Report whether the current inputs no longer match the generated artifact.
"""

from __future__ import annotations

from ..models.datatypes import ContentFingerprint


class StalenessTracker:
    """Compare current document inputs with the last generated baseline.

    A `None` fingerprint marks a mode without regenerable source text (such as
    transcription); such a mode is never stale.
    """

    def __init__(self) -> None:
        """Initialize the tracker without a baseline."""

        self._baseline: ContentFingerprint | None = None

    @property
    def baseline(self) -> ContentFingerprint | None:
        """Return the fingerprint recorded at the last successful generation."""

        return self._baseline

    def record(self, fingerprint: ContentFingerprint | None) -> None:
        """Record the fingerprint of inputs that were just generated."""

        self._baseline = fingerprint

    def reset(self) -> None:
        """Forget the baseline (mode switch or project reset)."""

        self._baseline = None

    def is_stale(self, current: ContentFingerprint | None, *, has_artifact: bool) -> bool:
        """Return whether an existing artifact no longer reflects the current inputs."""

        if not has_artifact or current is None:
            return False
        return current != self._baseline
