"""Telemetry and observability helpers.

This package emits deterministic run events for generation and export.
"""

from .logger import RunLogger

__all__ = ["RunLogger"]
