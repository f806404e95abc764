"""Command-line interface for Voicedraft.

Responsibilities:
- Expose user-facing commands for document generation, outline builds, and credentials.
- Convert CLI arguments into `VoicedraftConfig` and a Gemini-backed session.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import asyncio
import mimetypes
from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import echo_outline_status, echo_voice_catalog, exit_with_command_error
from .cli_runtime import resolve_runtime_sources
from .config import ConfigLoader, VoicedraftConfig
from .credentials import create_credential_store
from .errors import ExternalServiceError, ValidationError, VoicedraftError
from .io.outline import load_dialogue_script, load_outline
from .models.datatypes import AppMode, ContentNode, NodeStatus, ReferenceAudio
from .parsing import normalize_optional_string
from .pipeline.document import DocumentState
from .session import VoicedraftSession, create_gemini_session
from .telemetry.logger import RunLogger
from .tts.voices import is_known_voice, voice_names

app = typer.Typer(
    name="voicedraft",
    no_args_is_help=True,
    help="Voicedraft CLI.",
)

ConfigOption = Annotated[
    Path | None,
    typer.Option("--config", help="Path to YAML config file with session defaults."),
]
ApiKeyOption = Annotated[
    str | None,
    typer.Option(
        "--api-key",
        help="Gemini API key override. Prefer `voicedraft credentials --set-api-key`.",
    ),
]
AppNameOption = Annotated[
    str | None,
    typer.Option("--app-name", help="Application label used in output file names."),
]
FeatureNameOption = Annotated[
    str | None,
    typer.Option("--feature-name", help="Feature label used in output file names."),
]


class BuildProgressIndicator:
    """Render deterministic per-node progress lines for outline builds."""

    def __init__(self, command_name: str) -> None:
        """Initialize progress indicator metadata for a command invocation."""

        self._command_name = command_name

    def on_node_settled(self, node: ContentNode) -> None:
        """Print one progress line when a node's generation settles."""

        typer.echo(
            f"[progress] command={self._command_name} node={node.name} status={node.status.value}"
        )


def _load_yaml_config(config_path: Path | None) -> VoicedraftConfig | None:
    """Load a YAML config file when requested and map failures to stage errors."""

    if config_path is None:
        return None

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise VoicedraftError(
            f"Config file not found: `{config_path}`.",
            stage="config",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise VoicedraftError(
            f"Invalid config file `{config_path}`: {exc}",
            stage="config",
            hint="Fix config schema/values and rerun.",
        ) from exc


def _build_session(
    config_file: Path | None,
    api_key: str | None,
    app_name: str | None,
    feature_name: str | None,
    progress: BuildProgressIndicator | None = None,
) -> VoicedraftSession:
    """Resolve effective config and build a Gemini-backed session."""

    config = _load_yaml_config(config_file) or VoicedraftConfig()
    resolved_app_name = normalize_optional_string(app_name)
    if resolved_app_name is not None:
        config.app_name = resolved_app_name
    resolved_feature_name = normalize_optional_string(feature_name)
    if resolved_feature_name is not None:
        config.feature_name = resolved_feature_name
    config.validate()

    return create_gemini_session(
        config,
        sources=resolve_runtime_sources(
            api_key, credential_store_factory=create_credential_store
        ),
        run_logger=RunLogger(),
        progress_callback=progress.on_node_settled if progress is not None else None,
    )


def _generate_document(session: VoicedraftSession) -> DocumentState:
    """Run the document generator and raise when it recorded a failure."""

    state = asyncio.run(session.document.generate())
    if state.status is NodeStatus.ERROR:
        raise ExternalServiceError(state.error_message or "Generation failed.")
    return state


def _read_audio_sample(path: Path, mime_type: str | None) -> ReferenceAudio:
    """Read an audio file and resolve its mime type from the option or file name."""

    resolved_mime = normalize_optional_string(mime_type) or mimetypes.guess_type(path.name)[0]
    if resolved_mime is None:
        raise ValidationError(
            f"Cannot determine the audio type of `{path}`.",
            hint="Pass `--mime audio/wav` (or the matching audio type).",
        )
    return ReferenceAudio(name=path.name, data=path.read_bytes(), mime_type=resolved_mime)


def _require_voice(voice: str) -> str:
    if not is_known_voice(voice):
        raise ValidationError(
            f"Unknown voice `{voice}`.",
            hint=f"Choose one of: {', '.join(voice_names())}.",
        )
    return voice


def _write_bytes(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


def _echo_audio_result(path: Path, state: DocumentState) -> None:
    typer.echo(f"Audio: {path}")
    if state.artifact is not None:
        typer.echo(f"Duration: {state.artifact.duration_seconds:.2f}s")


@app.command("narrate")
def narrate_command(
    text_file: Annotated[Path, typer.Argument(help="UTF-8 text file to narrate.")],
    voice: Annotated[
        str | None, typer.Option("--voice", help="Prebuilt voice name (see `voices`).")
    ] = None,
    out: Annotated[Path | None, typer.Option("--out", help="Output WAV path.")] = None,
    config_file: ConfigOption = None,
    api_key: ApiKeyOption = None,
    app_name: AppNameOption = None,
    feature_name: FeatureNameOption = None,
) -> None:
    """Narrate a text file with one voice."""

    try:
        session = _build_session(config_file, api_key, app_name, feature_name)
        document = session.document
        document.set_mode(AppMode.NARRATION)
        document.narration_text = text_file.read_text(encoding="utf-8")
        if voice is not None:
            document.narration_voice = _require_voice(voice)
        state = _generate_document(session)
        target = _write_bytes(out or Path(session.download_file_name()), state.artifact.wav_bytes)
    except Exception as exc:
        exit_with_command_error("narrate", exc)

    _echo_audio_result(target, state)


@app.command("dialogue")
def dialogue_command(
    script_file: Annotated[Path, typer.Argument(help="Dialogue script YAML file.")],
    out: Annotated[Path | None, typer.Option("--out", help="Output WAV path.")] = None,
    config_file: ConfigOption = None,
    api_key: ApiKeyOption = None,
    app_name: AppNameOption = None,
    feature_name: FeatureNameOption = None,
) -> None:
    """Generate a multi-speaker dialogue from a script file."""

    try:
        session = _build_session(config_file, api_key, app_name, feature_name)
        session.document.set_mode(AppMode.DIALOGUE)
        session.document.dialogue = load_dialogue_script(script_file)
        state = _generate_document(session)
        target = _write_bytes(out or Path(session.download_file_name()), state.artifact.wav_bytes)
    except Exception as exc:
        exit_with_command_error("dialogue", exc)

    _echo_audio_result(target, state)


@app.command("clone")
def clone_command(
    text_file: Annotated[Path, typer.Argument(help="UTF-8 text file to speak.")],
    reference: Annotated[
        Path, typer.Option("--reference", help="Reference audio sample to mimic.")
    ],
    mime_type: Annotated[
        str | None, typer.Option("--mime", help="Reference audio mime type override.")
    ] = None,
    out: Annotated[Path | None, typer.Option("--out", help="Output WAV path.")] = None,
    config_file: ConfigOption = None,
    api_key: ApiKeyOption = None,
    app_name: AppNameOption = None,
    feature_name: FeatureNameOption = None,
) -> None:
    """Speak a text file in the voice of a reference sample."""

    try:
        session = _build_session(config_file, api_key, app_name, feature_name)
        document = session.document
        document.set_mode(AppMode.CLONING)
        document.cloning_text = text_file.read_text(encoding="utf-8")
        document.set_cloning_reference(_read_audio_sample(reference, mime_type))
        state = _generate_document(session)
        target = _write_bytes(out or Path(session.download_file_name()), state.artifact.wav_bytes)
    except Exception as exc:
        exit_with_command_error("clone", exc)

    _echo_audio_result(target, state)


@app.command("transcribe")
def transcribe_command(
    audio_file: Annotated[Path, typer.Argument(help="Audio file to transcribe.")],
    mime_type: Annotated[
        str | None, typer.Option("--mime", help="Audio mime type override.")
    ] = None,
    config_file: ConfigOption = None,
    api_key: ApiKeyOption = None,
) -> None:
    """Print the transcription of an audio file."""

    try:
        session = _build_session(config_file, api_key, None, None)
        document = session.document
        document.set_mode(AppMode.TRANSCRIPTION)
        document.set_transcription_sample(_read_audio_sample(audio_file, mime_type))
        state = _generate_document(session)
    except Exception as exc:
        exit_with_command_error("transcribe", exc)

    typer.echo(state.transcription)


@app.command("build")
def build_command(
    outline_file: Annotated[Path, typer.Argument(help="Outline YAML file.")],
    out: Annotated[
        Path, typer.Option("--out", help="Directory receiving the zip bundle.")
    ] = Path("out"),
    config_file: ConfigOption = None,
    api_key: ApiKeyOption = None,
    app_name: AppNameOption = None,
    feature_name: FeatureNameOption = None,
) -> None:
    """Generate every outlined section and subsection and export one zip bundle."""

    try:
        outline = load_outline(outline_file)
        progress = BuildProgressIndicator(command_name="build")
        session = _build_session(config_file, api_key, app_name, feature_name, progress)
        session.apply_outline(outline)
        resolved_app_name = normalize_optional_string(app_name)
        if resolved_app_name is not None:
            session.project.app_name = resolved_app_name
        resolved_feature_name = normalize_optional_string(feature_name)
        if resolved_feature_name is not None:
            session.project.feature_name = resolved_feature_name
        asyncio.run(session.generate_all())
        bundle = session.export_bundle()
        bundle_path = _write_bytes(out / bundle.file_name, bundle.data)
    except Exception as exc:
        exit_with_command_error("build", exc)

    echo_outline_status(session.tree)
    failed = sum(1 for node, _parent in session.tree.walk() if node.status is NodeStatus.ERROR)
    if failed:
        typer.secho(
            f"{failed} node(s) failed; the bundle lists them without audio.",
            fg=typer.colors.YELLOW,
        )
    typer.echo(f"Bundle: {bundle_path}")


@app.command("voices")
def voices_command() -> None:
    """List the prebuilt voices."""

    echo_voice_catalog()


@app.command("credentials")
def credentials_command(
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage securely stored CLI credentials."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            VoicedraftError(
                "`--set-api-key` and `--clear-api-key` cannot be used together.",
                stage="credentials",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                "Gemini API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                VoicedraftError(
                    "No API key entered.",
                    stage="credentials",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                VoicedraftError(
                    f"Failed to store API key securely: {exc}",
                    stage="credentials",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        removed = credential_store.clear_api_key()
        if removed:
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    has_stored_key = credential_store.get_api_key() is not None
    status = "present" if has_stored_key else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored Gemini API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
