"""Single-shot document generation for narration, dialogue, cloning, and transcription.

Responsibilities:
- Hold the editable document inputs of every mode.
- Run the document pseudo-node through the same generation sequence as tree nodes.
- Record the input fingerprint of each successful generation for staleness checks.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..audio.codec import AudioCodec, build_artifact
from ..errors import EmptyInputError, ValidationError
from ..models.datatypes import (
    AppMode,
    ContentFingerprint,
    GeneratedAudioArtifact,
    NodeStatus,
    ReferenceAudio,
)
from ..models.dialogue import DialogueScript
from ..telemetry.logger import RunLogger
from ..tts.synthesizer import DocumentSynthesizer
from ..tts.voices import DEFAULT_VOICE
from .orchestrator import GenerationLedger, failure_message
from .staleness import StalenessTracker
from .telemetry import PipelineTelemetryMixin

_DOCUMENT_KEY = "document"


@dataclass(frozen=True, slots=True)
class DocumentState:
    """Generation state of the document pseudo-node.

    Unlike tree nodes, a successful transcription carries its result in
    `transcription` and leaves `artifact` empty; every audio mode pairs
    `SUCCESS` with an artifact.

    Attributes:
        status: Current generation status.
        artifact: Last generated audio (audio modes only).
        error_message: Last failure message.
        transcription: Last transcription result (transcription mode only).
    """

    status: NodeStatus = NodeStatus.IDLE
    artifact: GeneratedAudioArtifact | None = None
    error_message: str | None = None
    transcription: str = ""


class DocumentGenerator(PipelineTelemetryMixin):
    """Generate the whole document in the active mode and track staleness."""

    def __init__(
        self,
        synthesizer: DocumentSynthesizer,
        codec: AudioCodec,
        *,
        discard_superseded_results: bool = True,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize collaborators and empty inputs for every mode."""

        self._synthesizer = synthesizer
        self._codec = codec
        self.discard_superseded_results = discard_superseded_results
        self._run_logger = run_logger
        self._ledger = GenerationLedger()
        self._staleness = StalenessTracker()

        self.mode = AppMode.NARRATION
        self.narration_text = ""
        self.narration_voice = DEFAULT_VOICE
        self.dialogue = DialogueScript.default()
        self.cloning_text = ""
        self.cloning_reference: ReferenceAudio | None = None
        self.transcription_sample: ReferenceAudio | None = None
        self.state = DocumentState()

    def set_mode(self, mode: AppMode) -> None:
        """Switch mode, dropping the generated artifact, error, and baseline."""

        self.mode = mode
        self.state = replace(self.state, status=NodeStatus.IDLE, artifact=None, error_message=None)
        self._staleness.reset()
        # In-flight results belong to the previous mode.
        self._ledger.invalidate(_DOCUMENT_KEY)

    def set_cloning_reference(self, sample: ReferenceAudio) -> None:
        """Attach the reference sample whose voice should be mimicked."""

        self.cloning_reference = self._require_audio_sample(sample)

    def set_transcription_sample(self, sample: ReferenceAudio) -> None:
        """Attach the sample to transcribe, clearing the previous result."""

        self.transcription_sample = self._require_audio_sample(sample)
        self.state = replace(self.state, transcription="")

    def fingerprint(self) -> ContentFingerprint | None:
        """Return the structural snapshot of the inputs the active mode generates from."""

        if self.mode is AppMode.NARRATION:
            return ContentFingerprint(self.mode, (self.narration_text, self.narration_voice))
        if self.mode is AppMode.DIALOGUE:
            return ContentFingerprint(self.mode, self.dialogue.fingerprint_payload())
        if self.mode is AppMode.CLONING:
            reference = (
                self.cloning_reference.identity() if self.cloning_reference is not None else None
            )
            return ContentFingerprint(self.mode, (self.cloning_text, reference))
        return None

    def is_stale(self) -> bool:
        """Return whether the generated artifact no longer matches the current inputs."""

        return self._staleness.is_stale(
            self.fingerprint(),
            has_artifact=self.state.artifact is not None,
        )

    async def generate(self) -> DocumentState:
        """Generate the document in the active mode and return the resulting state.

        Raises:
            EmptyInputError: If the active mode has nothing to generate from.
        """

        self._validate_inputs()
        mode = self.mode
        fingerprint = self.fingerprint()
        ticket = self._ledger.issue(_DOCUMENT_KEY)
        self.state = replace(self.state, status=NodeStatus.GENERATING, error_message=None)
        self._on_stage_start("document", mode=mode.value, ticket=ticket)

        try:
            if mode is AppMode.TRANSCRIPTION:
                transcription = await self._synthesizer.transcribe(self.transcription_sample)
                outcome = {"transcription": transcription}
            else:
                raw = await self._synthesize(mode)
                outcome = {"artifact": build_artifact(self._codec, raw)}
        except Exception as exc:
            self._on_stage_failure("document", exc, mode=mode.value, ticket=ticket)
            return self._settle(
                ticket,
                None,
                status=NodeStatus.ERROR,
                error_message=failure_message(exc),
            )

        self._on_stage_complete("document", mode=mode.value, ticket=ticket)
        return self._settle(
            ticket,
            fingerprint,
            status=NodeStatus.SUCCESS,
            error_message=None,
            **outcome,
        )

    async def _synthesize(self, mode: AppMode) -> bytes:
        """Call the synthesis collaborator for an audio-producing mode."""

        if mode is AppMode.NARRATION:
            return await self._synthesizer.synthesize(self.narration_text, self.narration_voice)
        if mode is AppMode.DIALOGUE:
            return await self._synthesizer.synthesize_dialogue(
                self.dialogue.prompt_text(),
                self.dialogue.speaker_voices(),
            )
        return await self._synthesizer.synthesize_cloned(self.cloning_text, self.cloning_reference)

    def _validate_inputs(self) -> None:
        """Raise `EmptyInputError` when the active mode lacks input."""

        if self.mode is AppMode.NARRATION and not self.narration_text.strip():
            raise EmptyInputError("Please enter some text.")
        if self.mode is AppMode.DIALOGUE and not self.dialogue.lines:
            raise EmptyInputError("Script cannot be empty.")
        if self.mode is AppMode.CLONING:
            if not self.cloning_text.strip():
                raise EmptyInputError("Please enter text for the cloned voice.")
            if self.cloning_reference is None:
                raise EmptyInputError("Please upload a reference audio file.")
        if self.mode is AppMode.TRANSCRIPTION and self.transcription_sample is None:
            raise EmptyInputError("Please upload an audio file to transcribe.")

    def _settle(
        self,
        ticket: int,
        fingerprint: ContentFingerprint | None,
        **fields: object,
    ) -> DocumentState:
        """Apply a completion unless a newer generation or mode switch superseded it."""

        self._ledger.release(_DOCUMENT_KEY)
        if self.discard_superseded_results and not self._ledger.is_latest(_DOCUMENT_KEY, ticket):
            self._on_stage_event("document", "superseded", ticket=ticket)
            return self.state
        self.state = replace(self.state, **fields)
        if self.state.status is NodeStatus.SUCCESS:
            self._staleness.record(fingerprint)
        return self.state

    @staticmethod
    def _require_audio_sample(sample: ReferenceAudio) -> ReferenceAudio:
        """Reject samples that are empty or not declared as audio."""

        if not sample.mime_type.startswith("audio/"):
            raise ValidationError(
                "Please upload a valid audio file.",
                hint=f"`{sample.name}` has mime type `{sample.mime_type}`.",
            )
        if not sample.data:
            raise ValidationError(f"Audio file `{sample.name}` is empty.")
        return sample
