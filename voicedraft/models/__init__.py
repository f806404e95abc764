"""Shared typed data models for Voicedraft.

This package contains dataclasses used across tree, generation, and export
modules to avoid cross-module coupling and circular imports.
"""

from .datatypes import (
    AppMode,
    AudioBuffer,
    ContentFingerprint,
    ContentNode,
    GeneratedAudioArtifact,
    NodeStatus,
    Project,
    ReferenceAudio,
)
from .dialogue import Character, DialogueScript, ScriptLine

__all__ = [
    "AppMode",
    "AudioBuffer",
    "Character",
    "ContentFingerprint",
    "ContentNode",
    "DialogueScript",
    "GeneratedAudioArtifact",
    "NodeStatus",
    "Project",
    "ReferenceAudio",
    "ScriptLine",
]
