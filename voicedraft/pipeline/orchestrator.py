"""Per-node asynchronous generation against the synthesis and codec collaborators.

Responsibilities:
- Drive the idle -> generating -> success/error state machine of tree nodes.
- Record collaborator failures on the node instead of propagating them.
- Resolve overlapping generations of one node by issue order (sequence tickets).

Key types:
- `GenerationLedger`: per-key monotonically increasing issue counters.
- `GenerationOrchestrator`: async `generate` / `generate_many` / `generate_all`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable

from ..audio.codec import AudioCodec, build_artifact
from ..content.tree import TreeHolder
from ..errors import EmptyInputError, NodeNotFoundError
from ..models.datatypes import ContentNode, NodeStatus
from ..telemetry.logger import RunLogger
from ..tts.synthesizer import SpeechSynthesizer
from .telemetry import PipelineTelemetryMixin

GENERIC_FAILURE_MESSAGE = "An error occurred during generation."


def failure_message(exc: Exception) -> str:
    """Return the user-visible message recorded for a failed generation."""

    return str(exc).strip() or GENERIC_FAILURE_MESSAGE


class GenerationLedger:
    """Track the latest issued generation ticket per key.

    A key stays in the ledger while its owner exists or while any of its
    tickets is still outstanding; `prune` drops the rest.
    """

    def __init__(self) -> None:
        """Initialize an empty ledger."""

        self._latest: dict[str, int] = {}
        self._outstanding: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._latest)

    def issue(self, key: str) -> int:
        """Issue and return the next ticket for a key, counting it as outstanding."""

        ticket = self.invalidate(key)
        self._outstanding[key] = self._outstanding.get(key, 0) + 1
        return ticket

    def invalidate(self, key: str) -> int:
        """Advance a key's ticket so every earlier ticket stops being the latest."""

        ticket = self._latest.get(key, 0) + 1
        self._latest[key] = ticket
        return ticket

    def release(self, key: str) -> None:
        """Mark one issued ticket for a key as settled."""

        remaining = self._outstanding.get(key, 0) - 1
        if remaining > 0:
            self._outstanding[key] = remaining
        else:
            self._outstanding.pop(key, None)

    def prune(self, live_keys: Iterable[str]) -> None:
        """Forget keys that are not live and have no outstanding tickets."""

        live = set(live_keys)
        for key in [key for key in self._latest if key not in live]:
            if key not in self._outstanding:
                del self._latest[key]

    def is_latest(self, key: str, ticket: int) -> bool:
        """Return whether a ticket is still the most recently issued one for its key."""

        return self._latest.get(key) == ticket

    def latest(self, key: str) -> int:
        """Return the most recently issued ticket for a key (0 when none)."""

        return self._latest.get(key, 0)


class GenerationOrchestrator(PipelineTelemetryMixin):
    """Generate audio for sections and subsections held by a `TreeHolder`.

    Each call snapshots `(text, voice)` when issued and writes back only status,
    artifact, and error message. With `discard_superseded_results` enabled a
    completion is applied only if no newer call was issued for the same node
    meanwhile; disabled, every completion is applied in resolution order.
    """

    def __init__(
        self,
        holder: TreeHolder,
        synthesizer: SpeechSynthesizer,
        codec: AudioCodec,
        *,
        discard_superseded_results: bool = True,
        run_logger: RunLogger | None = None,
        progress_callback: Callable[[ContentNode], None] | None = None,
    ) -> None:
        """Initialize orchestrator collaborators and supersede policy."""

        self._holder = holder
        self._synthesizer = synthesizer
        self._codec = codec
        self.discard_superseded_results = discard_superseded_results
        self._run_logger = run_logger
        self._progress_callback = progress_callback
        self._ledger = GenerationLedger()

    async def generate(self, node_id: str) -> ContentNode | None:
        """Generate one node and return it as it stands afterwards.

        Returns `None` when the node was deleted before the call resolved.

        Raises:
            NodeNotFoundError: If no node has the id.
            EmptyInputError: If the node's text is blank; node state is untouched.
        """

        node = self._require_generatable(node_id)
        self._ledger.prune(live.id for live, _parent in self._holder.tree.walk())
        ticket = self._ledger.issue(node_id)
        text, voice = node.text, node.voice
        self._holder.apply(
            lambda tree: tree.update_node(
                node_id, status=NodeStatus.GENERATING, error_message=None
            )
        )
        self._on_stage_start("generate", node=node_id, ticket=ticket, voice=voice, chars=len(text))

        try:
            raw = await self._synthesizer.synthesize(text, voice)
            artifact = build_artifact(self._codec, raw)
        except Exception as exc:
            # One node's failure must never abort its siblings.
            self._on_stage_failure("generate", exc, node=node_id, ticket=ticket)
            return self._settle(
                node_id,
                ticket,
                status=NodeStatus.ERROR,
                error_message=failure_message(exc),
            )

        self._on_stage_complete(
            "generate",
            node=node_id,
            ticket=ticket,
            duration=f"{artifact.duration_seconds:.2f}",
        )
        return self._settle(
            node_id,
            ticket,
            status=NodeStatus.SUCCESS,
            artifact=artifact,
            error_message=None,
        )

    async def generate_many(self, node_ids: Iterable[str]) -> list[ContentNode | None]:
        """Generate several nodes concurrently and return results in input order.

        Every id is validated before any job starts, so a validation error
        leaves all nodes untouched.
        """

        ordered = list(node_ids)
        for node_id in ordered:
            self._require_generatable(node_id)
        return list(await asyncio.gather(*(self.generate(node_id) for node_id in ordered)))

    async def generate_all(self) -> list[ContentNode | None]:
        """Generate every section and subsection that has non-blank text."""

        node_ids = [node.id for node, _parent in self._holder.tree.walk() if node.text.strip()]
        return await self.generate_many(node_ids)

    def _require_generatable(self, node_id: str) -> ContentNode:
        """Return the node or raise the validation error that blocks generating it."""

        node = self._holder.tree.find(node_id)
        if node is None:
            raise NodeNotFoundError(f"No section or subsection with id `{node_id}`.")
        if not node.text.strip():
            raise EmptyInputError(
                f"`{node.name}` has no text to generate.",
                hint="Enter some text before generating audio.",
            )
        return node

    def _settle(self, node_id: str, ticket: int, **fields: object) -> ContentNode | None:
        """Apply a completion unless the node is gone or the result is superseded."""

        self._ledger.release(node_id)
        current = self._holder.tree.find(node_id)
        if current is None:
            self._ledger.prune(live.id for live, _parent in self._holder.tree.walk())
            self._on_stage_event("generate", "discarded", node=node_id, reason="deleted")
            return None
        if self.discard_superseded_results and not self._ledger.is_latest(node_id, ticket):
            self._on_stage_event(
                "generate",
                "superseded",
                node=node_id,
                ticket=ticket,
                latest=self._ledger.latest(node_id),
            )
            return current

        updated = self._holder.apply(lambda tree: tree.update_node(node_id, **fields)).find(node_id)
        if updated is not None and self._progress_callback is not None:
            self._progress_callback(updated)
        return updated
