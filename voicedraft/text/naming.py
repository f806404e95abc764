"""Deterministic name helpers for downloadable audio files and export bundles.

Responsibilities:
- Join free-form labels into stable hyphenated names safe for archive members.
- Provide timestamp-based fallbacks for labels that sanitize to nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
import re

_WHITESPACE_RUN = re.compile(r"\s+")
_DISALLOWED_CHARACTERS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize(parts: Iterable[str | None]) -> str:
    """Join non-blank label parts into one `[A-Za-z0-9_-]` name.

    Each surviving part is trimmed, whitespace runs become one hyphen, every
    other disallowed character is dropped, and parts are joined with hyphens.
    Returns an empty string when every part is blank.
    """

    cleaned: list[str] = []
    for part in parts:
        if part is None or not part.strip():
            continue
        hyphenated = _WHITESPACE_RUN.sub("-", part.strip())
        cleaned.append(_DISALLOWED_CHARACTERS.sub("", hyphenated))
    return "-".join(cleaned)


def timestamp_fallback_name(now: datetime, prefix: str = "voicedraft") -> str:
    """Return a deterministic name derived from a timestamp."""

    return f"{prefix}-{now.strftime('%Y%m%d-%H%M%S')}"


def download_file_name(
    app_name: str,
    feature_name: str,
    section_name: str | None = None,
    subsection_name: str | None = None,
    *,
    now: datetime | None = None,
) -> str:
    """Build the single-file download name `<app>-<feature>[-<section>[-<sub>]].wav`."""

    base = sanitize([app_name, feature_name, section_name, subsection_name])
    if not base:
        base = timestamp_fallback_name(now or datetime.now())
    return f"{base}.wav"
