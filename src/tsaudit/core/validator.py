from __future__ import annotations

import logging
import math
import random
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from typing import Any, Callable, TypeVar

from tsaudit.core.collaborators import (
    AudioSource,
    ContentStore,
    IndexLedger,
    PlatformMetadataSource,
    TranscriptGenerator,
)
from tsaudit.core.errors import (
    CollaboratorError,
    ConfigurationError,
    EmptyInputError,
    ValidationTimeoutError,
)
from tsaudit.core.segments import clip, decode_segments, shift, stitch
from tsaudit.core.transcript import build_timestamp_score, transcript_bleu
from tsaudit.infra.config import AppConfig
from tsaudit.schemas.index import IndexRecord
from tsaudit.schemas.score import ScoreResult
from tsaudit.schemas.segment import Segment, Transcript

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ValidationState(str, Enum):
    IDLE = "idle"
    WINDOW_SELECTED = "window_selected"
    REFERENCE_FETCHED = "reference_fetched"
    CANDIDATE_FETCHED = "candidate_fetched"
    SCORED = "scored"
    DONE = "done"
    FAILED = "failed"


StateCallback = Callable[[ValidationState], None]

_TERMINAL_STATES = frozenset({ValidationState.DONE, ValidationState.FAILED})


class _StateReporter:
    """Forward state changes of one validation run to the caller.

    Nothing is forwarded after the first terminal state. `abandon` closes
    the run from outside and makes the worker stop at its next checkpoint.
    """

    def __init__(self, on_state: StateCallback | None) -> None:
        self._on_state = on_state
        self._lock = threading.Lock()
        self._closed = False
        self._abandoned = threading.Event()

    def notify(self, state: ValidationState) -> None:
        with self._lock:
            if self._closed:
                return
            if state in _TERMINAL_STATES:
                self._closed = True
            logger.debug("Validation state -> %s", state.value)
            if self._on_state is None:
                return
            try:
                self._on_state(state)
            except Exception:
                # Caller-side progress reporting must not abort validation.
                logger.debug("State callback failed for %s", state.value, exc_info=True)

    def abandon(self) -> None:
        self._abandoned.set()
        self.notify(ValidationState.FAILED)

    def checkpoint(self) -> None:
        if self._abandoned.is_set():
            raise ValidationTimeoutError("Validation was abandoned after its timeout.")


class TranscriptValidator:
    """Audit a published transcript against a freshly generated one.

    One `validate` call samples an interval-aligned window of the video,
    regenerates the reference transcript for that window, loads the
    published candidate chunks overlapping it and scores the two. No
    state is kept between calls apart from the injected configuration
    and random generator.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        transcript_generator: TranscriptGenerator | None = None,
        metadata_source: PlatformMetadataSource | None = None,
        audio_source: AudioSource | None = None,
        content_store: ContentStore | None = None,
        ledger: IndexLedger | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if not 0.0 <= config.score_threshold <= 1.0:
            raise ConfigurationError(
                f"Score threshold must be within [0, 1], got {config.score_threshold}"
            )
        self._config = config
        self._transcript_generator = transcript_generator
        self._metadata_source = metadata_source
        self._audio_source = audio_source
        self._content_store = content_store
        self._ledger = ledger
        self._rng = rng or random.Random(config.seed)
        self._timestamp_scorer = build_timestamp_score(config.timestamp_weights)

    @property
    def config(self) -> AppConfig:
        return self._config

    def get_sample_time_range(
        self, video_duration: float, interval: float
    ) -> tuple[float, float]:
        if interval <= 0:
            raise ConfigurationError(f"Sampling interval must be > 0, got {interval}")
        upper = max(0.0, float(video_duration) - interval)
        offset = self._rng.uniform(0.0, upper)
        start = math.floor(offset / interval) * interval
        return float(start), float(start + interval)

    def validate_clip(
        self,
        candidate: Transcript,
        reference: Transcript,
        time_range: tuple[float, float],
    ) -> ScoreResult:
        start, end = time_range
        reference_segments = clip(reference.segments, start, end)
        if not reference_segments:
            raise EmptyInputError(
                f"Reference transcript has no segments in window [{start}, {end}]."
            )
        candidate_segments = clip(candidate.segments, start, end)
        if not candidate_segments:
            logger.warning(
                "No published segments in window [%s, %s]; marking invalid.", start, end
            )
            return ScoreResult(is_valid=False, score=0.0, time_range=(start, end))

        score = transcript_bleu(
            stitch(candidate_segments),
            stitch(reference_segments),
            self._config.transcript_weights,
            self._timestamp_scorer,
        )
        return ScoreResult(
            is_valid=score > self._config.score_threshold,
            score=score,
            time_range=(start, end),
        )

    def validate(
        self,
        video_id: str,
        interval: float | None = None,
        *,
        timeout_s: float | None = None,
        on_state: StateCallback | None = None,
    ) -> ScoreResult:
        timeout = timeout_s if timeout_s is not None else self._config.timeout_s
        reporter = _StateReporter(on_state)
        if timeout is None:
            return self._run(video_id, interval, reporter)

        outcome: dict[str, Any] = {}

        def _target() -> None:
            try:
                outcome["result"] = self._run(video_id, interval, reporter)
            except Exception as exc:
                outcome["error"] = exc

        # An abandoned run must not block interpreter exit.
        worker = threading.Thread(
            target=_target, name=f"tsaudit-validate-{video_id}", daemon=True
        )
        worker.start()
        worker.join(timeout)
        if worker.is_alive():
            reporter.abandon()
            logger.warning("Validation of %s timed out after %ss", video_id, timeout)
            raise ValidationTimeoutError(
                f"Validation of '{video_id}' timed out after {timeout}s."
            )
        if "error" in outcome:
            raise outcome["error"]
        return outcome["result"]

    def load_candidate_transcript(
        self, video_id: str, start_s: float, end_s: float
    ) -> Transcript:
        ledger = self._require(self._ledger, "ledger")
        records = self._call(
            "Ledger lookup", ledger.load_index_with_video, video_id, start_s, end_s
        )
        if not records:
            return Transcript(segments=[])
        chunks = self._fetch_chunks(records)
        return Transcript(segments=[segment for chunk in chunks for segment in chunk])

    def _run(
        self,
        video_id: str,
        interval: float | None,
        reporter: _StateReporter,
    ) -> ScoreResult:
        reporter.notify(ValidationState.IDLE)
        try:
            interval_s = self._config.time_interval_s if interval is None else float(interval)
            if interval_s <= 0:
                raise ConfigurationError(f"Sampling interval must be > 0, got {interval_s}")
            metadata_source = self._require(self._metadata_source, "metadata source")
            audio_source = self._require(self._audio_source, "audio source")
            generator = self._require(self._transcript_generator, "transcript generator")

            metadata = self._call(
                "Platform metadata", metadata_source.extract_platform_metadata, video_id
            )
            reporter.checkpoint()
            duration = metadata.duration or self._config.fallback_duration_s
            start, end = self.get_sample_time_range(duration, interval_s)
            logger.info(
                "Sampled window [%s, %s] of %s (duration=%s)", start, end, video_id, duration
            )
            reporter.notify(ValidationState.WINDOW_SELECTED)

            audio_path = self._call(
                "Audio extraction", audio_source.extract_audio, video_id, start, end
            )
            reporter.checkpoint()
            generated = self._call("ASR", generator.generate_transcript, audio_path)
            reporter.checkpoint()
            reference = Transcript(
                segments=shift(generated.segments, start),
                duration=generated.duration,
            )
            reporter.notify(ValidationState.REFERENCE_FETCHED)

            candidate = self.load_candidate_transcript(video_id, start, end)
            reporter.checkpoint()
            reporter.notify(ValidationState.CANDIDATE_FETCHED)

            result = self.validate_clip(candidate, reference, (start, end))
            reporter.notify(ValidationState.SCORED)
            logger.info(
                "Validation of %s: %s (score=%.4f, threshold=%s)",
                video_id,
                result.status,
                result.score,
                self._config.score_threshold,
            )
            reporter.notify(ValidationState.DONE)
            return result
        except Exception:
            reporter.notify(ValidationState.FAILED)
            raise

    def _fetch_chunk(self, record: IndexRecord) -> list[Segment]:
        store = self._require(self._content_store, "content store")
        return decode_segments(store.fetch(record.content_id))

    def _fetch_chunks(self, records: list[IndexRecord]) -> list[list[Segment]]:
        fetched: list[list[Segment] | None] = [None] * len(records)
        worker_count = min(self._config.max_fetch_concurrency, len(records))
        executor = ThreadPoolExecutor(max_workers=worker_count)
        try:
            future_to_index = {
                executor.submit(self._fetch_chunk, record): index
                for index, record in enumerate(records)
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    fetched[index] = future.result()
                except ConfigurationError:
                    raise
                except Exception as exc:
                    logger.warning(
                        "Chunk fetch failed for %s: %s", records[index].content_id, exc
                    )
                    raise CollaboratorError(
                        f"Chunk fetch failed for content id {records[index].content_id}: {exc}"
                    ) from exc
        finally:
            # Queued fetches are dropped once one chunk has failed.
            executor.shutdown(wait=True, cancel_futures=True)
        if any(chunk is None for chunk in fetched):
            raise CollaboratorError("Chunk fetch produced incomplete results.")
        return [chunk for chunk in fetched if chunk is not None]

    @staticmethod
    def _require(collaborator: T | None, name: str) -> T:
        if collaborator is None:
            raise ConfigurationError(f"No {name} configured for validation.")
        return collaborator

    @staticmethod
    def _call(what: str, fn: Callable[..., T], *args: Any) -> T:
        try:
            return fn(*args)
        except (CollaboratorError, ConfigurationError):
            raise
        except Exception as exc:
            logger.warning("%s failed: %s", what, exc)
            raise CollaboratorError(f"{what} failed: {exc}") from exc
