"""Unit tests for zip bundle export."""

from __future__ import annotations

from datetime import datetime, timedelta
import io
import itertools
import zipfile

import pytest

from voicedraft.audio.archive import ZipArchiver
from voicedraft.content.tree import ContentTree
from voicedraft.errors import ArchiveError, EmptyProjectError
from voicedraft.models.datatypes import Project
from voicedraft.pipeline.export import ExportArchiver

FIXED_NOW = datetime(2024, 5, 6, 7, 8, 9)


def _exporter(archiver=None) -> ExportArchiver:
    return ExportArchiver(archiver or ZipArchiver(), clock=lambda: FIXED_NOW)


def _sample_tree(sequential_ids, make_artifact) -> ContentTree:
    """Section 1 (with artifact) -> Part 1 (with artifact); Section 2 without audio."""

    tree = ContentTree(id_factory=sequential_ids)
    tree, first = tree.add_root_node("Hello world", "Kore")
    tree, part = tree.extract_child(first.id, 0, 5)
    tree, _second = tree.add_root_node("Later", "Puck")
    tree = tree.update_node(first.id, artifact=make_artifact("Hello world"))
    return tree.update_node(part.id, artifact=make_artifact("Hello"))


def _read_zip(blob: bytes) -> dict[str, bytes]:
    with zipfile.ZipFile(io.BytesIO(blob)) as archive:
        return {name: archive.read(name) for name in archive.namelist()}


def test_build_writes_one_member_per_generated_node_plus_manifest(
    sequential_ids, make_artifact
) -> None:
    tree = _sample_tree(sequential_ids, make_artifact)

    members = _read_zip(_exporter().build(Project(), tree))

    assert sorted(members) == [
        "MyApp-Tutorial/MyApp-Tutorial-Section-1-Part-1.wav",
        "MyApp-Tutorial/MyApp-Tutorial-Section-1.wav",
        "MyApp-Tutorial/structure.md",
    ]
    assert members["MyApp-Tutorial/MyApp-Tutorial-Section-1.wav"] == (
        tree.roots[0].artifact.wav_bytes
    )


def test_manifest_lists_every_node_including_those_without_audio(
    sequential_ids, make_artifact
) -> None:
    tree = _sample_tree(sequential_ids, make_artifact)

    members = _read_zip(_exporter().build(Project(), tree))

    assert members["MyApp-Tutorial/structure.md"].decode("utf-8") == (
        "# MyApp - Tutorial\n"
        "\n"
        "Generated: 2024-05-06 07:08:09\n"
        "\n"
        "## Structure\n"
        "\n"
        "1. Section 1 (Kore)\n"
        "   1.1. Part 1 (Kore)\n"
        "\n"
        "2. Section 2 (Puck)\n"
        "\n"
    )


def test_build_rejects_empty_project() -> None:
    with pytest.raises(EmptyProjectError) as exc_info:
        _exporter().build(Project(), ContentTree())

    assert exc_info.value.stage == "export"


def test_project_without_any_audio_exports_manifest_only(sequential_ids) -> None:
    tree, _node = ContentTree(id_factory=sequential_ids).add_root_node("Hello", "Kore")

    members = _read_zip(_exporter().build(Project("Docs", "Setup"), tree))

    assert list(members) == ["Docs-Setup/structure.md"]


def test_blank_labels_fall_back_to_timestamp_folder_and_positional_members(
    sequential_ids, make_artifact
) -> None:
    tree, node = ContentTree(id_factory=sequential_ids).add_root_node("Hello", "Kore")
    tree = tree.update_node(node.id, name="!!!", artifact=make_artifact("Hello"))
    exporter = _exporter()
    project = Project(app_name=" ", feature_name="")

    members = _read_zip(exporter.build(project, tree))

    assert sorted(members) == [
        "voicedraft-20240506-070809/section-1.wav",
        "voicedraft-20240506-070809/structure.md",
    ]
    assert exporter.bundle_file_name(project) == "voicedraft-20240506-070809.zip"


def test_duplicate_member_names_receive_numeric_suffixes(sequential_ids, make_artifact) -> None:
    tree = ContentTree(id_factory=sequential_ids)
    for text in ("one", "two", "three"):
        tree, node = tree.add_root_node(text, "Kore")
        tree = tree.update_node(node.id, name="Intro", artifact=make_artifact(text))

    members = _read_zip(_exporter().build(Project(), tree))

    assert sorted(name for name in members if name.endswith(".wav")) == [
        "MyApp-Tutorial/MyApp-Tutorial-Intro-2.wav",
        "MyApp-Tutorial/MyApp-Tutorial-Intro-3.wav",
        "MyApp-Tutorial/MyApp-Tutorial-Intro.wav",
    ]


def test_archiver_failure_propagates_as_archive_error(sequential_ids, make_artifact) -> None:
    class FailingArchiver:
        def compress(self, root_folder, members, manifest_text) -> bytes:
            raise OSError("disk full")

    tree = _sample_tree(sequential_ids, make_artifact)

    with pytest.raises(ArchiveError, match="Failed to create zip file: disk full") as excinfo:
        _exporter(FailingArchiver()).build(Project(), tree)

    assert isinstance(excinfo.value.__cause__, OSError)
    assert excinfo.value.stage == "export"


def test_archive_error_from_archiver_is_not_rewrapped(sequential_ids, make_artifact) -> None:
    original = ArchiveError("Archive member name is empty.")

    class RejectingArchiver:
        def compress(self, root_folder, members, manifest_text) -> bytes:
            raise original

    tree = _sample_tree(sequential_ids, make_artifact)

    with pytest.raises(ArchiveError) as excinfo:
        _exporter(RejectingArchiver()).build(Project(), tree)

    assert excinfo.value is original


def test_package_uses_one_timestamp_for_file_name_and_folder(
    sequential_ids, make_artifact
) -> None:
    """The `.zip` name and its root folder share one clock reading."""

    ticks = itertools.count()
    exporter = ExportArchiver(
        ZipArchiver(),
        clock=lambda: FIXED_NOW + timedelta(seconds=next(ticks)),
    )
    tree = _sample_tree(sequential_ids, make_artifact)

    bundle = exporter.package(Project(app_name="", feature_name=" "), tree)

    assert bundle.folder == "voicedraft-20240506-070809"
    assert bundle.file_name == "voicedraft-20240506-070809.zip"
    assert {name.split("/")[0] for name in _read_zip(bundle.data)} == {bundle.folder}


def test_export_passes_folder_members_and_manifest_to_archiver(
    sequential_ids, make_artifact
) -> None:
    received: dict[str, object] = {}

    class RecordingArchiver:
        def compress(self, root_folder, members, manifest_text) -> bytes:
            received.update(folder=root_folder, members=dict(members), manifest=manifest_text)
            return b"zip-bytes"

    tree = _sample_tree(sequential_ids, make_artifact)

    assert _exporter(RecordingArchiver()).build(Project("App", "Feat"), tree) == b"zip-bytes"
    assert received["folder"] == "App-Feat"
    assert sorted(received["members"]) == [
        "App-Feat-Section-1-Part-1.wav",
        "App-Feat-Section-1.wav",
    ]
    assert received["manifest"].startswith("# App - Feat\n")


def test_bundle_file_name_uses_sanitized_labels() -> None:
    assert _exporter().bundle_file_name(Project("My App", "Getting Started")) == (
        "My-App-Getting-Started.zip"
    )
