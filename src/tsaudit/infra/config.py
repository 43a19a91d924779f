from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from tsaudit.core.errors import ConfigurationError
from tsaudit.core.transcript import (
    DEFAULT_TIMESTAMP_WEIGHTS,
    DEFAULT_TRANSCRIPT_WEIGHTS,
    TimestampScoreWeights,
    TranscriptScoreWeights,
    validate_transcript_weights,
)

DEFAULT_SCORE_THRESHOLD = 0.5
DEFAULT_TIME_INTERVAL_S = 30.0
DEFAULT_FALLBACK_DURATION_S = 60.0
DEFAULT_MAX_FETCH_CONCURRENCY = 3
DEFAULT_ASR_MODEL_ID = "openai/whisper-small"
DEFAULT_STORE_DIR = Path(".tsaudit")
SUPPORTED_DEVICES = {"auto", "cpu", "cuda", "mps"}


@dataclass(frozen=True)
class AppConfig:
    score_threshold: float
    time_interval_s: float
    transcript_weights: TranscriptScoreWeights
    timestamp_weights: TimestampScoreWeights
    fallback_duration_s: float
    max_fetch_concurrency: int
    timeout_s: float | None
    seed: int | None
    device: str
    hf_cache: Path
    asr_model_id: str
    store_dir: Path
    gateway_url: str | None


def _env_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from exc


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from exc


def resolve_hf_cache_dir(custom_path: Path | None = None) -> Path:
    if custom_path is not None:
        return custom_path.expanduser().resolve()
    env_path = os.getenv("HF_HOME") or os.getenv("TRANSFORMERS_CACHE")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return (Path.home() / ".cache" / "huggingface").resolve()


def resolve_store_dir(custom_path: Path | None = None) -> Path:
    if custom_path is not None:
        return custom_path.expanduser().resolve()
    env_path = os.getenv("TSAUDIT_STORE_DIR")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return DEFAULT_STORE_DIR.resolve()


def normalize_score_threshold(value: float | None) -> float:
    if value is None:
        value = _env_float("TSAUDIT_SCORE_THRESHOLD")
    threshold = DEFAULT_SCORE_THRESHOLD if value is None else float(value)
    if not 0.0 <= threshold <= 1.0:
        raise ConfigurationError(
            f"Score threshold must be within [0, 1], got {threshold}"
        )
    return threshold


def normalize_time_interval(value: float | None) -> float:
    if value is None:
        value = _env_float("TSAUDIT_TIME_INTERVAL_S")
    interval = DEFAULT_TIME_INTERVAL_S if value is None else float(value)
    if interval <= 0:
        raise ConfigurationError(f"Time interval must be > 0 seconds, got {interval}")
    return interval


def normalize_timestamp_weights(weights: TimestampScoreWeights) -> TimestampScoreWeights:
    if len(weights) != 2:
        raise ConfigurationError(
            f"Timestamp weights must be an (edge, duration) pair, got {weights!r}"
        )
    edge_weight, duration_weight = (float(value) for value in weights)
    if not (0.0 <= edge_weight <= 1.0 and 0.0 <= duration_weight <= 1.0):
        raise ConfigurationError(
            f"Timestamp weights must be within [0, 1], got {weights!r}"
        )
    return edge_weight, duration_weight


def normalize_timeout(value: float | None) -> float | None:
    if value is None:
        value = _env_float("TSAUDIT_TIMEOUT_S")
    if value is None:
        return None
    timeout = float(value)
    if timeout <= 0:
        raise ConfigurationError(f"Timeout must be > 0 seconds, got {timeout}")
    return timeout


def normalize_device(value: str) -> str:
    device = value.strip().lower()
    if device not in SUPPORTED_DEVICES:
        raise ConfigurationError(
            f"Unsupported device '{value}'. Allowed: {', '.join(sorted(SUPPORTED_DEVICES))}"
        )
    return device


def build_app_config(
    *,
    score_threshold: float | None = None,
    time_interval_s: float | None = None,
    transcript_weights: TranscriptScoreWeights = DEFAULT_TRANSCRIPT_WEIGHTS,
    timestamp_weights: TimestampScoreWeights = DEFAULT_TIMESTAMP_WEIGHTS,
    fallback_duration_s: float = DEFAULT_FALLBACK_DURATION_S,
    max_fetch_concurrency: int = DEFAULT_MAX_FETCH_CONCURRENCY,
    timeout_s: float | None = None,
    seed: int | None = None,
    device: str = "auto",
    hf_cache: Path | None = None,
    asr_model_id: str | None = None,
    store_dir: Path | None = None,
    gateway_url: str | None = None,
) -> AppConfig:
    if fallback_duration_s <= 0:
        raise ConfigurationError(
            f"Fallback duration must be > 0 seconds, got {fallback_duration_s}"
        )
    if max_fetch_concurrency <= 0:
        raise ConfigurationError(
            f"max_fetch_concurrency must be > 0, got {max_fetch_concurrency}"
        )
    return AppConfig(
        score_threshold=normalize_score_threshold(score_threshold),
        time_interval_s=normalize_time_interval(time_interval_s),
        transcript_weights=validate_transcript_weights(transcript_weights),
        timestamp_weights=normalize_timestamp_weights(timestamp_weights),
        fallback_duration_s=float(fallback_duration_s),
        max_fetch_concurrency=max_fetch_concurrency,
        timeout_s=normalize_timeout(timeout_s),
        seed=seed if seed is not None else _env_int("TSAUDIT_SEED"),
        device=normalize_device(device),
        hf_cache=resolve_hf_cache_dir(hf_cache),
        asr_model_id=asr_model_id or os.getenv("TSAUDIT_ASR_MODEL") or DEFAULT_ASR_MODEL_ID,
        store_dir=resolve_store_dir(store_dir),
        gateway_url=gateway_url or os.getenv("TSAUDIT_GATEWAY_URL") or None,
    )
