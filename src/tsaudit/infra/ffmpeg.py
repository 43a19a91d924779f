from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path

AUDIO_SAMPLE_RATE = 16_000


def _find_tool(name: str) -> Path | None:
    path = shutil.which(name)
    return Path(path) if path else None


def get_ffmpeg_path() -> Path | None:
    return _find_tool("ffmpeg")


def get_ffprobe_path() -> Path | None:
    return _find_tool("ffprobe")


def _run_tool(args: list[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(args, capture_output=True, text=True, check=False)


def get_ffmpeg_version() -> str | None:
    ffmpeg = get_ffmpeg_path()
    if ffmpeg is None:
        return None
    proc = _run_tool([str(ffmpeg), "-version"])
    if proc.returncode != 0 or not proc.stdout:
        return None
    return proc.stdout.splitlines()[0].strip()


def build_extract_command(
    ffmpeg: Path,
    input_path: Path,
    output_path: Path,
    *,
    start_s: float | None = None,
    end_s: float | None = None,
    sample_rate: int = AUDIO_SAMPLE_RATE,
) -> list[str]:
    """ffmpeg arguments decoding [start_s, end_s] of `input_path` to mono wav."""
    window: list[str] = []
    if start_s is not None:
        window += ["-ss", f"{start_s:.3f}"]
    if end_s is not None:
        length = end_s - (start_s or 0.0)
        if length <= 0:
            raise ValueError(f"Audio window must have positive length, got [{start_s}, {end_s}]")
        window += ["-t", f"{length:.3f}"]
    return [
        str(ffmpeg),
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        *window,
        "-i",
        str(input_path),
        "-vn",
        "-ac",
        "1",
        "-ar",
        str(sample_rate),
        "-f",
        "wav",
        str(output_path),
    ]


def extract_audio(
    input_path: Path,
    output_path: Path,
    *,
    start_s: float | None = None,
    end_s: float | None = None,
    sample_rate: int = AUDIO_SAMPLE_RATE,
) -> None:
    ffmpeg = get_ffmpeg_path()
    if ffmpeg is None:
        raise RuntimeError("ffmpeg not found in PATH.")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    proc = _run_tool(
        build_extract_command(
            ffmpeg,
            input_path,
            output_path,
            start_s=start_s,
            end_s=end_s,
            sample_rate=sample_rate,
        )
    )
    if proc.returncode != 0:
        detail = proc.stderr.strip() or "unknown ffmpeg error"
        raise RuntimeError(f"Failed to extract audio window: {detail}")


def probe_duration_seconds(input_path: Path) -> float | None:
    """Container duration in seconds, or None when ffprobe cannot tell."""
    ffprobe = get_ffprobe_path()
    if ffprobe is None:
        return None
    proc = _run_tool(
        [
            str(ffprobe),
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "json",
            str(input_path),
        ]
    )
    if proc.returncode != 0:
        return None
    try:
        return float(json.loads(proc.stdout)["format"]["duration"])
    except (ValueError, KeyError, TypeError):
        return None
