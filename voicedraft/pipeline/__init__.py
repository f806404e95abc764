"""Generation and export pipeline for Voicedraft projects."""

from .document import DocumentGenerator, DocumentState
from .export import ExportArchiver, ExportBundle, bundle_folder_name, render_manifest
from .orchestrator import GenerationLedger, GenerationOrchestrator, failure_message
from .staleness import StalenessTracker

__all__ = [
    "DocumentGenerator",
    "DocumentState",
    "ExportArchiver",
    "ExportBundle",
    "bundle_folder_name",
    "render_manifest",
    "GenerationLedger",
    "GenerationOrchestrator",
    "failure_message",
    "StalenessTracker",
]
