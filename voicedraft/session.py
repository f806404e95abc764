"""Session-scoped wiring of tree, generators, and export.

Responsibilities:
- Own one project, its content tree, and the document generator.
- Inject the synthesis client, codec, and archiver collaborators explicitly.
- Expose authoring operations (add, extract, edit, delete, generate, export, reset).

Key types:
- `VoicedraftSession`: the object CLI commands and tests drive.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from .audio.archive import Archiver, ZipArchiver
from .audio.codec import AudioCodec, PcmWavCodec
from .config import RuntimeConfigSources, VoicedraftConfig
from .content.tree import ContentTree, TreeHolder
from .errors import NodeNotFoundError
from .io.outline import Outline
from .llm.gemini_client import GeminiClient
from .models.datatypes import ContentNode, Project
from .pipeline.document import DocumentGenerator
from .pipeline.export import ExportArchiver, ExportBundle
from .pipeline.orchestrator import GenerationOrchestrator
from .telemetry.logger import RunLogger
from .text.naming import download_file_name
from .tts.synthesizer import DocumentSynthesizer, GeminiSpeechSynthesizer

_EDITABLE_FIELDS = frozenset({"name", "text", "voice"})


class VoicedraftSession:
    """Authoring session holding one project and its generation state."""

    def __init__(
        self,
        config: VoicedraftConfig,
        synthesizer: DocumentSynthesizer,
        *,
        codec: AudioCodec | None = None,
        archiver: Archiver | None = None,
        run_logger: RunLogger | None = None,
        clock: Callable[[], datetime] = datetime.now,
        progress_callback: Callable[[ContentNode], None] | None = None,
    ) -> None:
        """Initialize session collaborators from config and injected services."""

        self.config = config
        self.project = Project(app_name=config.app_name, feature_name=config.feature_name)
        self.holder = TreeHolder()
        self._clock = clock
        resolved_codec = codec or PcmWavCodec()
        self.orchestrator = GenerationOrchestrator(
            self.holder,
            synthesizer,
            resolved_codec,
            discard_superseded_results=config.discard_superseded_results,
            run_logger=run_logger,
            progress_callback=progress_callback,
        )
        self.document = DocumentGenerator(
            synthesizer,
            resolved_codec,
            discard_superseded_results=config.discard_superseded_results,
            run_logger=run_logger,
        )
        self.document.narration_voice = config.default_voice
        self.exporter = ExportArchiver(
            archiver or ZipArchiver(),
            clock=clock,
            run_logger=run_logger,
        )

    @property
    def tree(self) -> ContentTree:
        """Return the current content tree snapshot."""

        return self.holder.tree

    def add_section(self, text: str, voice: str | None = None) -> ContentNode:
        """Append a `Section N` holding `text`, spoken by `voice` or the default voice."""

        created: list[ContentNode] = []

        def _add(tree: ContentTree) -> ContentTree:
            updated, node = tree.add_root_node(text, voice or self.config.default_voice)
            created.append(node)
            return updated

        self.holder.apply(_add)
        return created[0]

    def extract_subsection(
        self, parent_id: str, start_offset: int, end_offset: int
    ) -> ContentNode:
        """Create a `Part M` subsection from a selection of a section's text."""

        created: list[ContentNode] = []

        def _extract(tree: ContentTree) -> ContentTree:
            updated, child = tree.extract_child(parent_id, start_offset, end_offset)
            created.append(child)
            return updated

        self.holder.apply(_extract)
        return created[0]

    def apply_outline(self, outline: Outline) -> None:
        """Adopt outline labels and append its sections and subsections."""

        if outline.app_name:
            self.project.app_name = outline.app_name
        if outline.feature_name:
            self.project.feature_name = outline.feature_name
        self.holder.apply(lambda tree: outline.apply_to(tree, self.config.default_voice))

    def edit_node(self, node_id: str, **fields: str) -> ContentNode:
        """Update author-editable fields (`name`, `text`, `voice`) of a node."""

        unknown = sorted(set(fields).difference(_EDITABLE_FIELDS))
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(unknown)}.")
        self._require_node(node_id)
        updated = self.holder.apply(lambda tree: tree.update_node(node_id, **fields))
        return self._require_node(node_id, updated)

    def delete_node(self, node_id: str) -> None:
        """Delete a section with its subsections, or a single subsection."""

        self.holder.apply(lambda tree: tree.delete_node(node_id))

    async def generate(self, node_id: str) -> ContentNode | None:
        """Generate audio for one section or subsection."""

        return await self.orchestrator.generate(node_id)

    async def generate_all(self) -> list[ContentNode | None]:
        """Generate audio for every node with text, concurrently."""

        return await self.orchestrator.generate_all()

    def export(self) -> bytes:
        """Return the zip bundle of all generated audio plus the outline manifest."""

        return self.exporter.build(self.project, self.tree)

    def export_bundle(self) -> ExportBundle:
        """Return the zip bundle together with its matching download name."""

        return self.exporter.package(self.project, self.tree)

    def bundle_file_name(self) -> str:
        """Return the download name of the export bundle."""

        return self.exporter.bundle_file_name(self.project)

    def download_file_name(self, node_id: str | None = None) -> str:
        """Return the single-file download name for a node (or the document)."""

        if node_id is None:
            return download_file_name(
                self.project.app_name, self.project.feature_name, now=self._clock()
            )
        node = self._require_node(node_id)
        parent = self.tree.parent_of(node_id)
        if parent is None:
            return download_file_name(
                self.project.app_name,
                self.project.feature_name,
                node.name,
                now=self._clock(),
            )
        return download_file_name(
            self.project.app_name,
            self.project.feature_name,
            parent.name,
            node.name,
            now=self._clock(),
        )

    def reset(self) -> None:
        """Drop every section and restore default project labels."""

        self.holder.reset()
        self.project = Project(
            app_name=self.config.app_name,
            feature_name=self.config.feature_name,
        )

    def _require_node(self, node_id: str, tree: ContentTree | None = None) -> ContentNode:
        node = (tree if tree is not None else self.tree).find(node_id)
        if node is None:
            raise NodeNotFoundError(f"No section or subsection with id `{node_id}`.")
        return node


def create_gemini_session(
    config: VoicedraftConfig,
    *,
    sources: RuntimeConfigSources | None = None,
    run_logger: RunLogger | None = None,
    progress_callback: Callable[[ContentNode], None] | None = None,
) -> VoicedraftSession:
    """Build a session backed by a Gemini client resolved from config and key sources."""

    client = GeminiClient(
        api_key=config.resolved_api_key(sources),
        timeout_seconds=config.timeout_seconds,
    )
    synthesizer = GeminiSpeechSynthesizer(
        client,
        tts_model=config.tts_model,
        clone_model=config.clone_model,
        transcribe_model=config.transcribe_model,
        fallback_voice=config.fallback_voice,
        run_logger=run_logger,
    )
    return VoicedraftSession(
        config,
        synthesizer,
        run_logger=run_logger,
        progress_callback=progress_callback,
    )
