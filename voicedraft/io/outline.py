"""YAML loaders for project outlines and dialogue scripts.

Responsibilities:
- Parse outline files (labels, sections, quoted subsections) into typed records.
- Apply an outline to a content tree through the regular add/extract operations.
- Parse dialogue script files into a `DialogueScript`.

Outline shape::

    app_name: MyApp
    feature_name: Onboarding
    sections:
      - name: Welcome          # optional, defaults to `Section N`
        voice: Kore            # optional, defaults to the session voice
        text: Full section text.
        subsections:
          - text: section text   # exact substring of the section text
            name: Greeting       # optional, defaults to `Part M`
            voice: Puck          # optional, defaults to the section voice
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from ..content.tree import ContentTree
from ..errors import InvalidSelectionError, ValidationError
from ..models.dialogue import MAX_SPEAKERS, Character, DialogueScript, ScriptLine
from ..parsing import normalize_optional_string
from ..tts.voices import DEFAULT_VOICE, is_known_voice, voice_names


@dataclass(frozen=True, slots=True)
class OutlineSubsection:
    """Subsection located by exact quotation of its parent's text."""

    text: str
    name: str | None = None
    voice: str | None = None


@dataclass(frozen=True, slots=True)
class OutlineSection:
    """Section entry of an outline file."""

    text: str
    name: str | None = None
    voice: str | None = None
    subsections: tuple[OutlineSubsection, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class Outline:
    """Parsed outline file."""

    app_name: str | None = None
    feature_name: str | None = None
    sections: tuple[OutlineSection, ...] = field(default_factory=tuple)

    def apply_to(self, tree: ContentTree, default_voice: str = DEFAULT_VOICE) -> ContentTree:
        """Append every outlined section and subsection to `tree` and return the result.

        Raises:
            InvalidSelectionError: If a subsection quote is not found in its section text.
        """

        for section in self.sections:
            tree, node = tree.add_root_node(section.text, section.voice or default_voice)
            if section.name:
                tree = tree.update_node(node.id, name=section.name)
            for subsection in section.subsections:
                start = section.text.find(subsection.text)
                if start < 0:
                    raise InvalidSelectionError(
                        f"Subsection text not found in `{section.name or node.name}`.",
                        hint="Quote the subsection text exactly as it appears in the section.",
                    )
                tree, child = tree.extract_child(node.id, start, start + len(subsection.text))
                overrides = {
                    key: value
                    for key, value in (("name", subsection.name), ("voice", subsection.voice))
                    if value
                }
                if overrides:
                    tree = tree.update_node(child.id, **overrides)
        return tree


def load_outline(path: Path) -> Outline:
    """Load and validate an outline YAML file."""

    payload = _load_mapping(path)
    raw_sections = payload.get("sections") or []
    if not isinstance(raw_sections, list):
        raise ValidationError(f"Outline `{path}` field `sections` must be a list.")

    sections: list[OutlineSection] = []
    for index, raw_section in enumerate(raw_sections, start=1):
        label = f"Outline `{path}` section {index}"
        entry = _require_mapping(raw_section, label)
        raw_subsections = entry.get("subsections") or []
        if not isinstance(raw_subsections, list):
            raise ValidationError(f"{label} field `subsections` must be a list.")
        subsections = tuple(
            _parse_subsection(item, f"{label} subsection {sub_index}")
            for sub_index, item in enumerate(raw_subsections, start=1)
        )
        sections.append(
            OutlineSection(
                text=_required_text(entry, "text", label),
                name=normalize_optional_string(entry.get("name")),
                voice=_optional_voice(entry, label),
                subsections=subsections,
            )
        )

    return Outline(
        app_name=normalize_optional_string(payload.get("app_name")),
        feature_name=normalize_optional_string(payload.get("feature_name")),
        sections=tuple(sections),
    )


def load_dialogue_script(path: Path) -> DialogueScript:
    """Load a dialogue script YAML file.

    Expected shape: `characters` (list of `name`/`voice`) and `lines` (list of
    `speaker`/`text`, where `speaker` names a character).
    """

    payload = _load_mapping(path)
    raw_characters = payload.get("characters") or []
    raw_lines = payload.get("lines") or []
    if not isinstance(raw_characters, list) or not isinstance(raw_lines, list):
        raise ValidationError(
            f"Dialogue script `{path}` fields `characters` and `lines` must be lists."
        )
    if not raw_characters:
        raise ValidationError(f"Dialogue script `{path}` defines no characters.")
    if len(raw_characters) > MAX_SPEAKERS:
        raise ValidationError(
            f"A dialogue supports at most {MAX_SPEAKERS} speakers.",
            stage="dialogue",
        )

    characters: list[Character] = []
    ids_by_name: dict[str, str] = {}
    for index, raw_character in enumerate(raw_characters, start=1):
        label = f"Dialogue script `{path}` character {index}"
        entry = _require_mapping(raw_character, label)
        name = _required_text(entry, "name", label).strip()
        if name in ids_by_name:
            raise ValidationError(f"{label} repeats speaker name `{name}`.")
        character_id = str(index)
        ids_by_name[name] = character_id
        characters.append(
            Character(
                id=character_id,
                name=name,
                voice=_optional_voice(entry, label) or DEFAULT_VOICE,
            )
        )

    lines: list[ScriptLine] = []
    for index, raw_line in enumerate(raw_lines, start=1):
        label = f"Dialogue script `{path}` line {index}"
        entry = _require_mapping(raw_line, label)
        speaker = _required_text(entry, "speaker", label).strip()
        if speaker not in ids_by_name:
            raise ValidationError(f"{label} names unknown speaker `{speaker}`.")
        lines.append(
            ScriptLine(
                id=f"s{index}",
                character_id=ids_by_name[speaker],
                text=str(entry.get("text") or ""),
            )
        )

    return DialogueScript(characters=tuple(characters), lines=tuple(lines))


def _load_mapping(path: Path) -> Mapping[str, Any]:
    """Read a YAML file and enforce a mapping root payload."""

    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValidationError(f"`{path}` is not valid YAML: {exc}", stage="load") from exc
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise ValidationError(f"`{path}` must contain a top-level mapping/object.", stage="load")
    return payload


def _parse_subsection(value: object, label: str) -> OutlineSubsection:
    entry = _require_mapping(value, label)
    return OutlineSubsection(
        text=_required_text(entry, "text", label),
        name=normalize_optional_string(entry.get("name")),
        voice=_optional_voice(entry, label),
    )


def _require_mapping(value: object, label: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValidationError(f"{label} must be a mapping/object.")
    return value


def _required_text(entry: Mapping[str, Any], key: str, label: str) -> str:
    """Return a non-blank string field verbatim (whitespace preserved)."""

    value = entry.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} requires non-empty `{key}`.")
    return value


def _optional_voice(entry: Mapping[str, Any], label: str) -> str | None:
    voice = normalize_optional_string(entry.get("voice"))
    if voice is not None and not is_known_voice(voice):
        raise ValidationError(
            f"{label} uses unknown voice `{voice}`.",
            hint=f"Choose one of: {', '.join(voice_names())}.",
        )
    return voice
