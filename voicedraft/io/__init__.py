"""File loaders for outlines and dialogue scripts."""

from .outline import (
    Outline,
    OutlineSection,
    OutlineSubsection,
    load_dialogue_script,
    load_outline,
)

__all__ = [
    "Outline",
    "OutlineSection",
    "OutlineSubsection",
    "load_dialogue_script",
    "load_outline",
]
