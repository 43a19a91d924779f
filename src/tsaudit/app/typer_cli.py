from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Any

import typer
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from tsaudit.core.errors import ConfigurationError
from tsaudit.core.publish import publish_transcript
from tsaudit.core.transcript_io import load_transcript
from tsaudit.core.validator import TranscriptValidator, ValidationState
from tsaudit.infra.config import AppConfig, build_app_config
from tsaudit.infra.doctor import collect_doctor_report, render_doctor_report
from tsaudit.infra.ledger import JsonIndexLedger
from tsaudit.infra.logger import configure_logging
from tsaudit.infra.media import LocalMediaSource
from tsaudit.infra.storage import (
    GatewayContentStore,
    LocalContentStore,
    ensure_directory,
    write_json,
)
from tsaudit.schemas.score import ScoreResult
from tsaudit.schemas.segment import Transcript

EXIT_INVALID = 1
EXIT_INCONCLUSIVE = 3

app = typer.Typer(
    name="tsaudit",
    add_completion=False,
    help="Audit published transcript chunks against regenerated transcripts.",
)

_STATE_LABELS = {
    ValidationState.IDLE: "Fetching video metadata...",
    ValidationState.WINDOW_SELECTED: "Regenerating reference transcript...",
    ValidationState.REFERENCE_FETCHED: "Loading published chunks...",
    ValidationState.CANDIDATE_FETCHED: "Scoring...",
    ValidationState.SCORED: "Scored.",
    ValidationState.DONE: "Done.",
    ValidationState.FAILED: "Failed.",
}


@app.callback()
def main_callback(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
) -> None:
    configure_logging(logging.DEBUG if verbose else logging.WARNING)


def _build_config(**kwargs: Any) -> AppConfig:
    try:
        return build_app_config(**kwargs)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _ledger_path(config: AppConfig) -> Path:
    return config.store_dir / "ledger.json"


def _local_store(config: AppConfig) -> LocalContentStore:
    return LocalContentStore(config.store_dir / "blobs")


def _load_transcript_option(path: Path, param_hint: str) -> Transcript:
    try:
        return load_transcript(path)
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint=param_hint) from exc


def _echo_result(result: ScoreResult, threshold: float) -> None:
    window = ""
    if result.time_range is not None:
        window = f"\n- window: [{result.time_range[0]:g}s, {result.time_range[1]:g}s]"
    typer.echo(
        f"[{result.status}] score={result.score:.4f} threshold={threshold:g}{window}"
    )


@app.command("score")
def score_command(
    candidate_path: Path = typer.Argument(..., help="Published transcript (.json or .srt)."),
    reference_path: Path = typer.Argument(..., help="Reference transcript (.json or .srt)."),
    start: float = typer.Option(..., "--start", help="Window start in seconds."),
    end: float = typer.Option(..., "--end", help="Window end in seconds."),
    threshold: float | None = typer.Option(
        None, "--threshold", help="Pass/fail cutoff in [0, 1] (default: 0.5)."
    ),
) -> None:
    """Score a candidate transcript against a reference for one window."""
    for path in (candidate_path, reference_path):
        if not path.exists() or not path.is_file():
            raise typer.BadParameter(f"Transcript not found: {path}")
    if end < start:
        raise typer.BadParameter(f"--end must be >= --start, got [{start}, {end}]")
    config = _build_config(score_threshold=threshold)
    candidate = _load_transcript_option(candidate_path, "CANDIDATE_PATH")
    reference = _load_transcript_option(reference_path, "REFERENCE_PATH")
    validator = TranscriptValidator(config)
    try:
        result = validator.validate_clip(candidate, reference, (start, end))
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    except Exception as exc:
        typer.echo(f"[inconclusive] validation inconclusive: {exc}")
        raise typer.Exit(code=EXIT_INCONCLUSIVE) from exc
    _echo_result(result, config.score_threshold)
    if not result.is_valid:
        raise typer.Exit(code=EXIT_INVALID)


@app.command("publish")
def publish_command(
    transcript_path: Path = typer.Argument(..., help="Transcript to publish (.json or .srt)."),
    video_id: str = typer.Option(..., "--video-id", help="Video identifier."),
    interval: float | None = typer.Option(
        None, "--interval", help="Chunk length in seconds (default: 30)."
    ),
    store_dir: Path | None = typer.Option(
        None, "--store-dir", help="Local content store and ledger directory."
    ),
    max_concurrency: int = typer.Option(
        3, "--max-concurrency", help="Max parallel chunk uploads."
    ),
) -> None:
    """Split a transcript into chunks and publish them to the local store."""
    if not transcript_path.exists() or not transcript_path.is_file():
        raise typer.BadParameter(f"Transcript not found: {transcript_path}")
    config = _build_config(
        time_interval_s=interval,
        store_dir=store_dir,
        max_fetch_concurrency=max_concurrency,
    )
    transcript = _load_transcript_option(transcript_path, "TRANSCRIPT_PATH")
    ensure_directory(config.store_dir)
    try:
        records = publish_transcript(
            video_id,
            transcript.segments,
            publisher=_local_store(config),
            writer=JsonIndexLedger(_ledger_path(config)),
            interval=config.time_interval_s,
            max_concurrency=config.max_fetch_concurrency,
        )
    except Exception as exc:
        typer.echo(f"[failed] Publishing failed: {exc}")
        raise typer.Exit(code=2) from exc
    typer.echo(
        "[done] Transcript published.\n"
        f"- video: {video_id}\n"
        f"- chunks: {len(records)}\n"
        f"- ledger: {_ledger_path(config)}"
    )


@app.command("validate")
def validate_command(
    video_id: str = typer.Argument(..., help="Video identifier to audit."),
    media_dir: Path = typer.Option(
        ..., "--media-dir", help="Directory holding <video_id>.<ext> media files."
    ),
    interval: float | None = typer.Option(
        None, "--interval", help="Sample window length in seconds (default: 30)."
    ),
    threshold: float | None = typer.Option(
        None, "--threshold", help="Pass/fail cutoff in [0, 1] (default: 0.5)."
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Abort the whole validation after N seconds."
    ),
    seed: int | None = typer.Option(None, "--seed", help="Seed for window sampling."),
    store_dir: Path | None = typer.Option(
        None, "--store-dir", help="Local content store and ledger directory."
    ),
    gateway_url: str | None = typer.Option(
        None, "--gateway-url", help="Fetch chunks from an HTTP content gateway instead."
    ),
    device: str = typer.Option("auto", "--device", help="auto|cpu|cuda|mps"),
    asr_model: str | None = typer.Option(
        None, "--asr-model", help="ASR model id (default: openai/whisper-small)."
    ),
    language: str | None = typer.Option(
        "en", "--language", help="Spoken language hint for ASR."
    ),
    hf_cache: Path | None = typer.Option(
        None, "--hf-cache", help="Custom Hugging Face cache path."
    ),
    report_path: Path | None = typer.Option(
        None, "--report", help="Write a JSON run record to this path."
    ),
) -> None:
    """Sample a window of a video and audit its published transcript."""
    if not media_dir.exists() or not media_dir.is_dir():
        raise typer.BadParameter(f"Media directory not found: {media_dir}")
    config = _build_config(
        score_threshold=threshold,
        time_interval_s=interval,
        timeout_s=timeout,
        seed=seed,
        store_dir=store_dir,
        gateway_url=gateway_url,
        device=device,
        asr_model_id=asr_model,
        hf_cache=hf_cache,
    )
    from tsaudit.core.asr import WhisperTranscriptGenerator

    media_source = LocalMediaSource(media_dir, config.store_dir / "work")
    content_store = (
        GatewayContentStore(config.gateway_url)
        if config.gateway_url
        else _local_store(config)
    )
    validator = TranscriptValidator(
        config,
        transcript_generator=WhisperTranscriptGenerator(config, language=language),
        metadata_source=media_source,
        audio_source=media_source,
        content_store=content_store,
        ledger=JsonIndexLedger(_ledger_path(config)),
        rng=random.Random(config.seed),
    )

    result: ScoreResult | None = None
    error: Exception | None = None
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        transient=True,
    ) as progress:
        task_id = progress.add_task(description=_STATE_LABELS[ValidationState.IDLE])

        def _on_state(state: ValidationState) -> None:
            progress.update(task_id, description=_STATE_LABELS[state])

        try:
            result = validator.validate(video_id, on_state=_on_state)
        except Exception as exc:
            error = exc

    if report_path is not None:
        ensure_directory(report_path.parent)
        write_json(
            report_path,
            {
                "video_id": video_id,
                "status": result.status if result is not None else "inconclusive",
                "score": result.score if result is not None else None,
                "time_range": list(result.time_range)
                if result is not None and result.time_range
                else None,
                "threshold": config.score_threshold,
                "interval_s": config.time_interval_s,
                "error": str(error) if error is not None else None,
            },
        )

    if isinstance(error, ConfigurationError):
        raise typer.BadParameter(str(error)) from error
    if error is not None or result is None:
        typer.echo(f"[inconclusive] validation inconclusive: {error}")
        raise typer.Exit(code=EXIT_INCONCLUSIVE) from error
    _echo_result(result, config.score_threshold)
    if not result.is_valid:
        raise typer.Exit(code=EXIT_INVALID)


@app.command("doctor")
def doctor_command(
    store_dir: Path | None = typer.Option(
        None, "--store-dir", help="Local content store and ledger directory."
    ),
    hf_cache: Path | None = typer.Option(
        None, "--hf-cache", help="Custom Hugging Face cache path."
    ),
) -> None:
    """Check runtime readiness (ffmpeg/cache/store/scoring config)."""
    config = _build_config(store_dir=store_dir, hf_cache=hf_cache)
    report = collect_doctor_report(config)
    typer.echo(render_doctor_report(report))
    if not report.ok:
        raise typer.Exit(code=1)


def run() -> None:
    """Console-script entrypoint."""
    app()
