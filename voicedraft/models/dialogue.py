"""Multi-speaker dialogue script model.

Responsibilities:
- Hold the speaker roster and ordered script lines for dialogue generation.
- Provide pure update operations returning new script snapshots.
- Render the speaker-prefixed prompt text sent to the synthesis backend.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from uuid import uuid4

from ..errors import ValidationError
from ..tts.voices import DEFAULT_VOICE

MAX_SPEAKERS = 5
UNKNOWN_SPEAKER = "Unknown"


def _new_id() -> str:
    return uuid4().hex


@dataclass(frozen=True, slots=True)
class Character:
    """One speaker in the dialogue roster."""

    id: str
    name: str
    voice: str


@dataclass(frozen=True, slots=True)
class ScriptLine:
    """One spoken line attributed to a roster character."""

    id: str
    character_id: str
    text: str


@dataclass(frozen=True, slots=True)
class DialogueScript:
    """Immutable dialogue roster plus script snapshot."""

    characters: tuple[Character, ...] = field(default_factory=tuple)
    lines: tuple[ScriptLine, ...] = field(default_factory=tuple)
    id_factory: Callable[[], str] = field(default=_new_id, repr=False, compare=False)

    @classmethod
    def default(cls) -> DialogueScript:
        """Return the two-speaker starter script."""

        return cls(
            characters=(
                Character(id="1", name="Speaker 1", voice="Kore"),
                Character(id="2", name="Speaker 2", voice="Puck"),
            ),
            lines=(
                ScriptLine(
                    id="s1",
                    character_id="1",
                    text="Hello! I am the first speaker using the Kore voice.",
                ),
                ScriptLine(
                    id="s2",
                    character_id="2",
                    text=(
                        "And I am the second speaker, using Puck. "
                        "We can talk to each other!"
                    ),
                ),
            ),
        )

    def character(self, character_id: str) -> Character | None:
        """Return the roster entry for an id, if present."""

        for character in self.characters:
            if character.id == character_id:
                return character
        return None

    def add_character(self, voice: str = DEFAULT_VOICE) -> DialogueScript:
        """Append a speaker named `Speaker N`."""

        if len(self.characters) >= MAX_SPEAKERS:
            raise ValidationError(
                f"A dialogue supports at most {MAX_SPEAKERS} speakers.",
                stage="dialogue",
            )
        added = Character(
            id=self.id_factory(),
            name=f"Speaker {len(self.characters) + 1}",
            voice=voice,
        )
        return replace(self, characters=self.characters + (added,))

    def remove_character(self, character_id: str) -> DialogueScript:
        """Remove a speaker; the last remaining speaker is kept."""

        if len(self.characters) <= 1:
            return self
        remaining = tuple(item for item in self.characters if item.id != character_id)
        return replace(self, characters=remaining)

    def rename_character(self, character_id: str, name: str) -> DialogueScript:
        """Rename one speaker."""

        return replace(
            self,
            characters=tuple(
                replace(item, name=name) if item.id == character_id else item
                for item in self.characters
            ),
        )

    def set_character_voice(self, character_id: str, voice: str) -> DialogueScript:
        """Change the voice of one speaker."""

        return replace(
            self,
            characters=tuple(
                replace(item, voice=voice) if item.id == character_id else item
                for item in self.characters
            ),
        )

    def add_line(self, text: str = "") -> DialogueScript:
        """Append a line spoken by the speaker after the previous line's speaker."""

        if not self.characters:
            raise ValidationError("Add a speaker before adding lines.", stage="dialogue")
        roster_ids = [item.id for item in self.characters]
        if not self.lines:
            next_id = roster_ids[0]
        else:
            last_id = self.lines[-1].character_id
            if last_id in roster_ids and len(roster_ids) > 1:
                next_id = roster_ids[(roster_ids.index(last_id) + 1) % len(roster_ids)]
            elif last_id in roster_ids:
                next_id = last_id
            else:
                next_id = roster_ids[0]
        added = ScriptLine(id=self.id_factory(), character_id=next_id, text=text)
        return replace(self, lines=self.lines + (added,))

    def update_line(
        self,
        line_id: str,
        *,
        character_id: str | None = None,
        text: str | None = None,
    ) -> DialogueScript:
        """Change the speaker and/or text of one line; unknown ids are ignored."""

        updated: list[ScriptLine] = []
        for line in self.lines:
            if line.id == line_id:
                line = replace(
                    line,
                    character_id=line.character_id if character_id is None else character_id,
                    text=line.text if text is None else text,
                )
            updated.append(line)
        return replace(self, lines=tuple(updated))

    def remove_line(self, line_id: str) -> DialogueScript:
        """Remove one line; unknown ids are ignored."""

        return replace(self, lines=tuple(line for line in self.lines if line.id != line_id))

    def prompt_text(self) -> str:
        """Render `<speaker>: <text>` lines joined by newlines."""

        rendered: list[str] = []
        for line in self.lines:
            character = self.character(line.character_id)
            speaker = character.name if character is not None else UNKNOWN_SPEAKER
            rendered.append(f"{speaker}: {line.text}")
        return "\n".join(rendered)

    def speaker_voices(self) -> list[tuple[str, str]]:
        """Return `(speaker name, voice)` pairs for multi-speaker configuration."""

        return [(item.name, item.voice) for item in self.characters]

    def fingerprint_payload(self) -> tuple[object, ...]:
        """Return the structural identity of script and roster."""

        return (
            tuple((line.id, line.character_id, line.text) for line in self.lines),
            tuple((item.id, item.name, item.voice) for item in self.characters),
        )
