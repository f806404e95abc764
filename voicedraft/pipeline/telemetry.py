"""Stage telemetry helper methods for generation and export.

Responsibilities:
- Emit stage start/complete/failure events to an optional `RunLogger`.
- Keep log context limited to ids, sizes, voices, and error kinds.
"""

from __future__ import annotations

from ..telemetry.logger import RunLogger


class PipelineTelemetryMixin:
    """Provide stage-telemetry helper methods."""

    _run_logger: RunLogger | None = None

    def _on_stage_start(self, stage_name: str, **context: object) -> None:
        """Emit a stage-start event to the structured logger."""

        if self._run_logger is not None:
            self._run_logger.log_stage_start(stage_name, **context)

    def _on_stage_complete(self, stage_name: str, **context: object) -> None:
        """Emit a stage-complete event to the structured logger."""

        if self._run_logger is not None:
            self._run_logger.log_stage_complete(stage_name, **context)

    def _on_stage_failure(self, stage_name: str, exc: Exception, **context: object) -> None:
        """Emit a stage-failure event with sanitized exception metadata."""

        if self._run_logger is not None:
            self._run_logger.log_stage_failure(stage_name, type(exc).__name__, **context)

    def _on_stage_event(self, stage_name: str, event: str, **context: object) -> None:
        """Emit an informational stage event that is neither start nor end."""

        if self._run_logger is not None:
            self._run_logger.event("INFO", stage_name, event, **context)
