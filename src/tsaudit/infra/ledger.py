from __future__ import annotations

import threading
from pathlib import Path

from tsaudit.core.errors import CollaboratorError
from tsaudit.infra.storage import ensure_directory, read_json, write_json
from tsaudit.schemas.index import IndexRecord


class JsonIndexLedger:
    """Chunk metadata rows persisted as a JSON document."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load_rows(self) -> list[IndexRecord]:
        if not self._path.exists():
            return []
        try:
            payload = read_json(self._path)
            return [IndexRecord.from_dict(row) for row in payload.get("records", [])]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            raise CollaboratorError(f"Ledger file is unreadable: {self._path}: {exc}") from exc

    def write_indices(self, records: list[IndexRecord]) -> None:
        with self._lock:
            rows = self._load_rows()
            replaced = {(record.video_id, record.content_key) for record in records}
            kept = [row for row in rows if (row.video_id, row.content_key) not in replaced]
            ensure_directory(self._path.parent)
            write_json(
                self._path,
                {"records": [row.to_dict() for row in [*kept, *records]]},
            )

    def load_index_with_video(
        self,
        video_id: str,
        chunk_start: float,
        chunk_end: float | None = None,
    ) -> list[IndexRecord]:
        """Rows of `video_id` whose [chunk_start, chunk_end) overlaps the range."""
        range_end = chunk_start if chunk_end is None else chunk_end
        with self._lock:
            rows = self._load_rows()
        matches = [
            row
            for row in rows
            if row.video_id == video_id
            and row.chunk_start <= range_end
            and row.chunk_end > chunk_start
        ]
        return sorted(matches, key=lambda row: row.chunk_start)
