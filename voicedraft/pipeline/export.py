"""Project export into one downloadable zip bundle.

Responsibilities:
- Derive the bundle folder and member names from project labels and node names.
- Render the `structure.md` outline manifest listing every node.
- Hand generated audio to the archive collaborator and return the finished blob.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from ..audio.archive import Archiver
from ..content.tree import ContentTree
from ..errors import ArchiveError, EmptyProjectError
from ..models.datatypes import ContentNode, Project
from ..telemetry.logger import RunLogger
from ..text.naming import sanitize, timestamp_fallback_name
from .telemetry import PipelineTelemetryMixin


def render_manifest(project: Project, tree: ContentTree, generated_at: datetime) -> str:
    """Render the markdown outline stored beside the audio files."""

    lines = [
        f"# {project.app_name} - {project.feature_name}",
        "",
        f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
        "",
        "## Structure",
        "",
    ]
    for section_number, section in enumerate(tree.roots, start=1):
        lines.append(f"{section_number}. {section.name} ({section.voice})")
        for part_number, part in enumerate(section.children, start=1):
            lines.append(f"   {section_number}.{part_number}. {part.name} ({part.voice})")
        lines.append("")
    return "\n".join(lines) + "\n"


def bundle_folder_name(project: Project, now: datetime) -> str:
    """Return the archive root folder, substituting a timestamp when labels are blank."""

    return sanitize([project.app_name, project.feature_name]) or timestamp_fallback_name(now)


@dataclass(frozen=True, slots=True)
class ExportBundle:
    """Finished export bundle ready to be written or downloaded.

    Attributes:
        file_name: Download name `<folder>.zip`.
        folder: Root folder holding every member inside the archive.
        data: Zip archive bytes.
    """

    file_name: str
    folder: str
    data: bytes


class ExportArchiver(PipelineTelemetryMixin):
    """Build deterministic zip bundles from a project and its content tree."""

    def __init__(
        self,
        archiver: Archiver,
        *,
        clock: Callable[[], datetime] = datetime.now,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize export collaborators."""

        self._archiver = archiver
        self._clock = clock
        self._run_logger = run_logger

    def package(self, project: Project, tree: ContentTree) -> ExportBundle:
        """Build the bundle and its download name from one clock reading."""

        now = self._clock()
        return ExportBundle(
            file_name=self.bundle_file_name(project, now=now),
            folder=bundle_folder_name(project, now),
            data=self.build(project, tree, now=now),
        )

    def build(self, project: Project, tree: ContentTree, *, now: datetime | None = None) -> bytes:
        """Return the zip bundle for every generated node plus the manifest.

        Nodes without audio are listed in the manifest only.

        Raises:
            EmptyProjectError: If the tree has no sections.
            ArchiveError: If compression fails.
        """

        if tree.is_empty:
            raise EmptyProjectError(
                "Nothing to export.",
                hint="Add at least one section before exporting.",
            )

        if now is None:
            now = self._clock()
        folder = bundle_folder_name(project, now)
        members = self._collect_members(project, tree)
        manifest = render_manifest(project, tree, now)

        self._on_stage_start("export", folder=folder, sections=len(tree))
        try:
            blob = self._archiver.compress(folder, members, manifest)
        except ArchiveError as exc:
            self._on_stage_failure("export", exc, folder=folder)
            raise
        except Exception as exc:
            self._on_stage_failure("export", exc, folder=folder)
            raise ArchiveError(f"Failed to create zip file: {exc}") from exc
        self._on_stage_complete("export", folder=folder, members=len(members), bytes=len(blob))
        return blob

    def bundle_file_name(self, project: Project, *, now: datetime | None = None) -> str:
        """Return the download name `<folder>.zip` for a project's bundle."""

        return f"{bundle_folder_name(project, now or self._clock())}.zip"

    def _collect_members(self, project: Project, tree: ContentTree) -> dict[str, bytes]:
        """Map unique `.wav` member names to artifact bytes in outline order."""

        members: dict[str, bytes] = {}
        for section_number, section in enumerate(tree.roots, start=1):
            self._add_member(
                members,
                section,
                sanitize([project.app_name, project.feature_name, section.name]),
                f"section-{section_number}",
            )
            for part_number, part in enumerate(section.children, start=1):
                self._add_member(
                    members,
                    part,
                    sanitize([project.app_name, project.feature_name, section.name, part.name]),
                    f"section-{section_number}-part-{part_number}",
                )
        return members

    @staticmethod
    def _add_member(
        members: dict[str, bytes],
        node: ContentNode,
        base_name: str,
        fallback_name: str,
    ) -> None:
        if node.artifact is None:
            return
        base = base_name or fallback_name
        candidate = f"{base}.wav"
        suffix = 2
        while candidate in members:
            candidate = f"{base}-{suffix}.wav"
            suffix += 1
        members[candidate] = node.artifact.wav_bytes
