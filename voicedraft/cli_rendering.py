"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
outline status rows, document results, and the voice catalog.
"""

from __future__ import annotations

from typing import NoReturn

import typer

from .content.tree import ContentTree
from .errors import VoicedraftError
from .models.datatypes import ContentNode, NodeStatus
from .tts.voices import DEFAULT_VOICE, VOICE_CATALOG


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, VoicedraftError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def _status_suffix(node: ContentNode) -> str:
    if node.status is NodeStatus.SUCCESS and node.artifact is not None:
        return f"success {node.artifact.duration_seconds:.2f}s"
    if node.status is NodeStatus.ERROR:
        return f"error: {node.error_message}"
    return node.status.value


def echo_outline_status(tree: ContentTree) -> None:
    """Print one numbered row per section and subsection with its generation status."""

    for section_number, section in enumerate(tree.roots, start=1):
        typer.echo(
            f"{section_number}. {section.name} ({section.voice}) - {_status_suffix(section)}"
        )
        for part_number, part in enumerate(section.children, start=1):
            typer.echo(
                f"   {section_number}.{part_number}. {part.name} ({part.voice}) - "
                f"{_status_suffix(part)}"
            )


def echo_voice_catalog() -> None:
    """Print the prebuilt voice catalog, marking the default voice."""

    for profile in VOICE_CATALOG:
        marker = " [default]" if profile.name == DEFAULT_VOICE else ""
        typer.echo(f"{profile.name}: {profile.description} ({profile.gender}){marker}")
