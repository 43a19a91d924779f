from __future__ import annotations

import hashlib
import json
import re
from pathlib import Path
from typing import Any

import requests

from tsaudit.core.errors import CollaboratorError

_CONTENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9]+$")


def ensure_directory(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def compute_content_id(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


class LocalContentStore:
    """Content-addressed blobs on disk, keyed by their sha256 digest."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def _blob_path(self, content_id: str) -> Path:
        if not _CONTENT_ID_PATTERN.match(content_id):
            raise CollaboratorError(f"Invalid content id '{content_id}'.")
        return self._root / content_id[:2] / content_id

    def add(self, content: bytes) -> str:
        content_id = compute_content_id(content)
        path = self._blob_path(content_id)
        if not path.exists():
            ensure_directory(path.parent)
            path.write_bytes(content)
        return content_id

    def fetch(self, content_id: str) -> bytes:
        path = self._blob_path(content_id)
        if not path.exists():
            raise CollaboratorError(f"Content id not found in local store: {content_id}")
        return path.read_bytes()


class GatewayContentStore:
    """Read-only fetch through an HTTP content gateway (`<gateway>/ipfs/<cid>`)."""

    def __init__(self, gateway_url: str, *, timeout: float = 25.0) -> None:
        self._gateway_url = gateway_url.rstrip("/")
        self._timeout = timeout

    def content_url(self, content_id: str) -> str:
        return f"{self._gateway_url}/ipfs/{content_id}"

    def fetch(self, content_id: str) -> bytes:
        url = self.content_url(content_id)
        try:
            response = requests.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            raise CollaboratorError(f"Gateway request failed for {content_id}: {exc}") from exc
        if response.status_code != 200:
            raise CollaboratorError(
                f"Gateway returned HTTP {response.status_code} for {content_id}."
            )
        return response.content
