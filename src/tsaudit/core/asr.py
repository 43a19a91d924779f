from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import numpy as np
import soundfile as sf
import torch
from transformers import pipeline

from tsaudit.infra.config import AppConfig
from tsaudit.schemas.segment import Segment, Transcript

logger = logging.getLogger(__name__)

WHISPER_SAMPLE_RATE = 16_000
WHISPER_CHUNK_SECONDS = 30
DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class _ASRRuntime:
    pipe: Any


def _runtime_device(config: AppConfig) -> tuple[str, torch.dtype]:
    if config.device in {"auto", "cuda"} and torch.cuda.is_available():
        return "cuda", torch.float16
    if config.device in {"auto", "mps"} and torch.backends.mps.is_available():
        return "mps", torch.float32
    return "cpu", torch.float32


@lru_cache(maxsize=2)
def _load_runtime(
    model_id: str,
    cache_dir: str,
    device: str,
    dtype_name: str,
) -> _ASRRuntime:
    logger.info("Loading ASR model %s on %s (%s)", model_id, device, dtype_name)
    pipe = pipeline(
        "automatic-speech-recognition",
        model=model_id,
        device=device,
        dtype=getattr(torch, dtype_name),
        model_kwargs={"cache_dir": cache_dir},
    )
    return _ASRRuntime(pipe=pipe)


def _read_audio(audio_path: Path) -> np.ndarray:
    audio, sr = sf.read(str(audio_path), dtype="float32", always_2d=False)
    if isinstance(audio, np.ndarray) and audio.ndim == 2:
        audio = audio.mean(axis=1).astype(np.float32)
    elif not isinstance(audio, np.ndarray):
        audio = np.asarray(audio, dtype=np.float32)
    if sr != WHISPER_SAMPLE_RATE:
        raise RuntimeError(
            f"Expected {WHISPER_SAMPLE_RATE}Hz audio for ASR, got {sr}Hz at {audio_path}."
        )
    return audio.astype(np.float32, copy=False)


def _parse_chunks(output: dict[str, Any], duration: float) -> list[Segment]:
    segments: list[Segment] = []
    for chunk in output.get("chunks") or []:
        timestamp = chunk.get("timestamp") or (None, None)
        start, end = timestamp[0], timestamp[1]
        if start is None:
            continue
        start = float(start)
        # The last chunk of a window may be open-ended.
        end = duration if end is None else float(end)
        segments.append(
            Segment(start=start, end=max(start, end), text=str(chunk.get("text", "")).strip())
        )
    if segments:
        return segments
    text = str(output.get("text", "")).strip()
    if not text:
        return []
    return [Segment(start=0.0, end=duration, text=text)]


class WhisperTranscriptGenerator:
    """Regenerate a time-stamped transcript from a 16 kHz wav window."""

    def __init__(self, config: AppConfig, *, language: str | None = DEFAULT_LANGUAGE) -> None:
        self._config = config
        self._language = language

    def generate_transcript(self, audio_path: Path) -> Transcript:
        audio = _read_audio(audio_path)
        duration = audio.shape[0] / WHISPER_SAMPLE_RATE
        if audio.shape[0] == 0:
            return Transcript(segments=[], duration=0.0)

        device, dtype = _runtime_device(self._config)
        runtime = _load_runtime(
            model_id=self._config.asr_model_id,
            cache_dir=str(self._config.hf_cache),
            device=device,
            dtype_name=str(dtype).replace("torch.", ""),
        )
        generate_kwargs: dict[str, Any] = {"task": "transcribe"}
        if self._language:
            generate_kwargs["language"] = self._language
        output = runtime.pipe(
            {"raw": audio, "sampling_rate": WHISPER_SAMPLE_RATE},
            return_timestamps=True,
            chunk_length_s=WHISPER_CHUNK_SECONDS,
            generate_kwargs=generate_kwargs,
        )
        segments = _parse_chunks(output, duration)
        logger.debug("ASR produced %d segments for %s", len(segments), audio_path)
        return Transcript(segments=segments, duration=duration)
