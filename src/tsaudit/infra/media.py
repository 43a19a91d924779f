from __future__ import annotations

import logging
from pathlib import Path

from tsaudit.infra.ffmpeg import extract_audio, probe_duration_seconds
from tsaudit.infra.storage import ensure_directory
from tsaudit.schemas.index import PlatformMetadata

logger = logging.getLogger(__name__)

MEDIA_SUFFIXES = (".wav", ".mp3", ".m4a", ".flac", ".ogg", ".opus", ".mp4", ".mkv", ".webm")


class LocalMediaSource:
    """Serve metadata and audio windows for media files named `<video_id>.<ext>`."""

    def __init__(self, media_dir: Path, work_dir: Path) -> None:
        self._media_dir = media_dir
        self._work_dir = work_dir

    def resolve_media_path(self, video_id: str) -> Path:
        for suffix in MEDIA_SUFFIXES:
            candidate = self._media_dir / f"{video_id}{suffix}"
            if candidate.is_file():
                return candidate
        raise FileNotFoundError(f"No media file for '{video_id}' under {self._media_dir}")

    def extract_platform_metadata(self, video_id: str) -> PlatformMetadata:
        media_path = self.resolve_media_path(video_id)
        return PlatformMetadata(
            video_id=video_id,
            duration=probe_duration_seconds(media_path),
        )

    def extract_audio(self, video_id: str, start_s: float, end_s: float) -> Path:
        media_path = self.resolve_media_path(video_id)
        output_path = ensure_directory(self._work_dir / video_id) / (
            f"window_{start_s:.3f}_{end_s:.3f}.wav"
        )
        logger.debug("Extracting [%s, %s] of %s to %s", start_s, end_s, media_path, output_path)
        extract_audio(media_path, output_path, start_s=start_s, end_s=end_s)
        return output_path
