"""Unit tests for per-node asynchronous generation."""

from __future__ import annotations

import asyncio
import io

import pytest

from voicedraft.audio.codec import PcmWavCodec
from voicedraft.content.tree import ContentTree, TreeHolder
from voicedraft.errors import EmptyInputError, ExternalServiceError, NodeNotFoundError
from voicedraft.models.datatypes import NodeStatus
from voicedraft.pipeline.orchestrator import (
    GENERIC_FAILURE_MESSAGE,
    GenerationLedger,
    GenerationOrchestrator,
)
from voicedraft.telemetry.logger import RunLogger


def _holder_with(sequential_ids, *texts: str) -> tuple[TreeHolder, list[str]]:
    tree = ContentTree(id_factory=sequential_ids)
    node_ids: list[str] = []
    for text in texts:
        tree, node = tree.add_root_node(text, "Kore")
        node_ids.append(node.id)
    return TreeHolder(tree), node_ids


@pytest.mark.asyncio
async def test_generate_attaches_artifact_on_success(sequential_ids, fake_synthesizer) -> None:
    holder, (node_id,) = _holder_with(sequential_ids, "Hello")
    orchestrator = GenerationOrchestrator(holder, fake_synthesizer, PcmWavCodec())

    result = await orchestrator.generate(node_id)

    assert fake_synthesizer.calls == [("Hello", "Kore")]
    assert result.status is NodeStatus.SUCCESS
    assert result.error_message is None
    assert result.artifact.wav_bytes[:4] == b"RIFF"
    assert result.artifact.duration_seconds == pytest.approx(500 / 24000)
    assert holder.tree.find(node_id) == result


@pytest.mark.asyncio
async def test_generate_rejects_blank_text_before_calling_synthesizer(
    sequential_ids, fake_synthesizer
) -> None:
    holder, (node_id,) = _holder_with(sequential_ids, "   \n")
    orchestrator = GenerationOrchestrator(holder, fake_synthesizer, PcmWavCodec())

    with pytest.raises(EmptyInputError):
        await orchestrator.generate(node_id)

    assert fake_synthesizer.calls == []
    assert holder.tree.find(node_id).status is NodeStatus.IDLE


@pytest.mark.asyncio
async def test_generate_rejects_unknown_node(sequential_ids, fake_synthesizer) -> None:
    holder, _ids = _holder_with(sequential_ids, "Hello")
    orchestrator = GenerationOrchestrator(holder, fake_synthesizer, PcmWavCodec())

    with pytest.raises(NodeNotFoundError):
        await orchestrator.generate("missing")


@pytest.mark.asyncio
async def test_generate_marks_node_generating_while_in_flight(
    sequential_ids, held_synthesizer
) -> None:
    holder, (node_id,) = _holder_with(sequential_ids, "Hello")
    holder.apply(
        lambda tree: tree.update_node(node_id, status=NodeStatus.ERROR, error_message="old")
    )
    orchestrator = GenerationOrchestrator(holder, held_synthesizer, PcmWavCodec())

    task = asyncio.create_task(orchestrator.generate(node_id))
    await held_synthesizer.wait_for_calls(1)

    in_flight = holder.tree.find(node_id)
    assert in_flight.status is NodeStatus.GENERATING
    assert in_flight.error_message is None

    held_synthesizer.release(0)
    assert (await task).status is NodeStatus.SUCCESS


@pytest.mark.asyncio
async def test_failure_records_message_and_keeps_previous_artifact(
    sequential_ids, fake_synthesizer
) -> None:
    """A failed regeneration must not discard audio from an earlier success."""

    holder, (node_id,) = _holder_with(sequential_ids, "Hello")
    orchestrator = GenerationOrchestrator(holder, fake_synthesizer, PcmWavCodec())
    first = await orchestrator.generate(node_id)

    fake_synthesizer.errors["Hello"] = ExternalServiceError("quota exceeded")
    failed = await orchestrator.generate(node_id)

    assert failed.status is NodeStatus.ERROR
    assert failed.error_message == "quota exceeded"
    assert failed.artifact == first.artifact


@pytest.mark.asyncio
async def test_failure_without_message_uses_generic_text(sequential_ids, fake_synthesizer) -> None:
    holder, (node_id,) = _holder_with(sequential_ids, "Hello")
    fake_synthesizer.errors["Hello"] = RuntimeError("")
    orchestrator = GenerationOrchestrator(holder, fake_synthesizer, PcmWavCodec())

    failed = await orchestrator.generate(node_id)

    assert failed.status is NodeStatus.ERROR
    assert failed.error_message == GENERIC_FAILURE_MESSAGE
    assert failed.artifact is None


@pytest.mark.asyncio
async def test_decode_failure_is_recorded_on_the_node(sequential_ids) -> None:
    class OddPayloadSynthesizer:
        async def synthesize(self, text: str, voice: str) -> bytes:
            return b"\x00\x01\x02"

    holder, (node_id,) = _holder_with(sequential_ids, "Hello")
    orchestrator = GenerationOrchestrator(holder, OddPayloadSynthesizer(), PcmWavCodec())

    failed = await orchestrator.generate(node_id)

    assert failed.status is NodeStatus.ERROR
    assert "frame size" in failed.error_message


@pytest.mark.asyncio
async def test_generation_uses_text_snapshot_taken_at_issue_time(
    sequential_ids, held_synthesizer
) -> None:
    holder, (node_id,) = _holder_with(sequential_ids, "Original")
    orchestrator = GenerationOrchestrator(holder, held_synthesizer, PcmWavCodec())

    task = asyncio.create_task(orchestrator.generate(node_id))
    await held_synthesizer.wait_for_calls(1)
    holder.apply(lambda tree: tree.update_node(node_id, text="Edited meanwhile"))
    held_synthesizer.release(0)
    result = await task

    assert held_synthesizer.calls == [("Original", "Kore")]
    assert result.text == "Edited meanwhile"
    assert result.artifact.duration_seconds == pytest.approx(800 / 24000)


async def _race(orchestrator, holder, synthesizer, node_id):
    """Issue two generations and let the later-issued one resolve first."""

    first = asyncio.create_task(orchestrator.generate(node_id))
    await synthesizer.wait_for_calls(1)
    holder.apply(lambda tree: tree.update_node(node_id, text="bb"))
    second = asyncio.create_task(orchestrator.generate(node_id))
    await synthesizer.wait_for_calls(2)

    synthesizer.release(1)
    await second
    synthesizer.release(0)
    await first
    return holder.tree.find(node_id)


@pytest.mark.asyncio
async def test_most_recently_issued_generation_wins_by_default(
    sequential_ids, held_synthesizer
) -> None:
    holder, (node_id,) = _holder_with(sequential_ids, "aaaa")
    sink = io.StringIO()
    orchestrator = GenerationOrchestrator(
        holder,
        held_synthesizer,
        PcmWavCodec(),
        run_logger=RunLogger(sink=sink),
    )

    node = await _race(orchestrator, holder, held_synthesizer, node_id)

    assert node.status is NodeStatus.SUCCESS
    assert node.artifact.duration_seconds == pytest.approx(200 / 24000)
    assert "stage=generate event=superseded" in sink.getvalue()


@pytest.mark.asyncio
async def test_legacy_policy_keeps_last_resolving_generation(
    sequential_ids, held_synthesizer
) -> None:
    holder, (node_id,) = _holder_with(sequential_ids, "aaaa")
    orchestrator = GenerationOrchestrator(
        holder,
        held_synthesizer,
        PcmWavCodec(),
        discard_superseded_results=False,
    )

    node = await _race(orchestrator, holder, held_synthesizer, node_id)

    assert node.status is NodeStatus.SUCCESS
    assert node.artifact.duration_seconds == pytest.approx(400 / 24000)


@pytest.mark.asyncio
async def test_completion_for_deleted_node_is_discarded(sequential_ids, held_synthesizer) -> None:
    holder, (node_id,) = _holder_with(sequential_ids, "Hello")
    orchestrator = GenerationOrchestrator(holder, held_synthesizer, PcmWavCodec())

    task = asyncio.create_task(orchestrator.generate(node_id))
    await held_synthesizer.wait_for_calls(1)
    holder.apply(lambda tree: tree.delete_node(node_id))
    held_synthesizer.release(0)

    assert await task is None
    assert holder.tree.is_empty
    assert len(orchestrator._ledger) == 0


def test_ledger_prunes_only_dead_keys_without_outstanding_tickets() -> None:
    ledger = GenerationLedger()
    ledger.issue("gone")
    ledger.issue("gone")
    ledger.issue("alive")
    ledger.release("alive")

    ledger.release("gone")
    ledger.prune(["alive"])
    assert len(ledger) == 2

    ledger.release("gone")
    ledger.prune(["alive"])
    assert len(ledger) == 1
    assert ledger.latest("gone") == 0
    assert ledger.latest("alive") == 1


def test_ledger_invalidate_supersedes_without_outstanding_ticket() -> None:
    ledger = GenerationLedger()
    ticket = ledger.issue("document")

    ledger.invalidate("document")
    ledger.release("document")
    ledger.prune([])

    assert not ledger.is_latest("document", ticket)
    assert len(ledger) == 0


@pytest.mark.asyncio
async def test_ledger_forgets_nodes_deleted_after_generation(
    sequential_ids, fake_synthesizer
) -> None:
    holder, (first_id, second_id) = _holder_with(sequential_ids, "one", "two")
    orchestrator = GenerationOrchestrator(holder, fake_synthesizer, PcmWavCodec())

    await orchestrator.generate(first_id)
    holder.apply(lambda tree: tree.delete_node(first_id))
    await orchestrator.generate(second_id)

    assert len(orchestrator._ledger) == 1
    assert orchestrator._ledger.latest(second_id) == 1
    assert orchestrator._ledger.latest(first_id) == 0


@pytest.mark.asyncio
async def test_generate_many_runs_jobs_concurrently_and_keeps_input_order(
    sequential_ids, held_synthesizer
) -> None:
    holder, node_ids = _holder_with(sequential_ids, "one", "three")
    settled: list[str] = []
    orchestrator = GenerationOrchestrator(
        holder,
        held_synthesizer,
        PcmWavCodec(),
        progress_callback=lambda node: settled.append(node.id),
    )

    task = asyncio.create_task(orchestrator.generate_many(node_ids))
    await held_synthesizer.wait_for_calls(2)
    held_synthesizer.release(1)
    held_synthesizer.release(0)
    results = await task

    assert [node.id for node in results] == node_ids
    assert all(node.status is NodeStatus.SUCCESS for node in results)
    assert sorted(settled) == sorted(node_ids)


@pytest.mark.asyncio
async def test_generate_many_validates_every_node_before_starting(
    sequential_ids, fake_synthesizer
) -> None:
    holder, node_ids = _holder_with(sequential_ids, "Hello", " ")
    orchestrator = GenerationOrchestrator(holder, fake_synthesizer, PcmWavCodec())

    with pytest.raises(EmptyInputError):
        await orchestrator.generate_many(node_ids)

    assert fake_synthesizer.calls == []
    assert all(node.status is NodeStatus.IDLE for node, _parent in holder.tree.walk())


@pytest.mark.asyncio
async def test_generate_all_covers_sections_and_subsections_with_text(
    sequential_ids, fake_synthesizer
) -> None:
    holder, (section_id, _blank_id) = _holder_with(sequential_ids, "Hello world", "")
    holder.apply(lambda tree: tree.extract_child(section_id, 0, 5)[0])
    orchestrator = GenerationOrchestrator(holder, fake_synthesizer, PcmWavCodec())

    results = await orchestrator.generate_all()

    assert len(results) == 2
    assert sorted(fake_synthesizer.calls) == [("Hello", "Kore"), ("Hello world", "Kore")]


@pytest.mark.asyncio
async def test_one_failing_node_does_not_abort_siblings(sequential_ids, fake_synthesizer) -> None:
    holder, node_ids = _holder_with(sequential_ids, "good", "bad")
    fake_synthesizer.errors["bad"] = ExternalServiceError("rejected")
    orchestrator = GenerationOrchestrator(holder, fake_synthesizer, PcmWavCodec())

    good, bad = await orchestrator.generate_many(node_ids)

    assert good.status is NodeStatus.SUCCESS
    assert bad.status is NodeStatus.ERROR
    assert bad.error_message == "rejected"
