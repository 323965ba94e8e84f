"""Ephemeral, id-addressed storage for results downloaded by a later request."""

from __future__ import annotations

import json
import re
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Tuple

from .errors import BlobNotFoundError
from .logging_config import get_logger

LOGGER = get_logger(__name__)

_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9-]")


@dataclass(slots=True)
class StoredBlob:
    blob_id: str
    filename: str
    size: int


class BlobStore:
    """Write-once files on disk, readable by id until their TTL expires."""

    def __init__(
        self,
        root: Path,
        ttl_seconds: float,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._root = root
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.RLock()
        root.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _locked(self):
        with self._lock:
            yield

    @staticmethod
    def _sanitize(blob_id: str) -> str:
        return _UNSAFE_ID_CHARS.sub("", Path(blob_id).name)

    def _paths(self, safe_id: str) -> Tuple[Path, Path]:
        return self._root / f"{safe_id}.pdf", self._root / f"{safe_id}.json"

    def _created_at(self, meta_path: Path, data_path: Path) -> float:
        try:
            return float(json.loads(meta_path.read_text(encoding="utf-8"))["createdAt"])
        except (OSError, ValueError, KeyError):
            return data_path.stat().st_mtime

    def _is_expired(self, created_at: float) -> bool:
        return self._clock() - created_at >= self._ttl

    def _delete(self, safe_id: str) -> None:
        for path in self._paths(safe_id):
            path.unlink(missing_ok=True)

    def put(self, data: bytes, filename: str) -> StoredBlob:
        blob_id = str(uuid.uuid4())
        data_path, meta_path = self._paths(blob_id)
        with self._locked():
            self.purge_expired()
            data_path.write_bytes(data)
            meta_path.write_text(
                json.dumps({"filename": filename, "createdAt": self._clock()}),
                encoding="utf-8",
            )
        LOGGER.info("Stored blob", extra={"blobId": blob_id, "size": len(data)})
        return StoredBlob(blob_id=blob_id, filename=filename, size=len(data))

    def get(self, blob_id: str) -> Tuple[bytes, str]:
        """Return ``(data, filename)``; raises :class:`BlobNotFoundError` for unknown or expired ids."""

        safe_id = self._sanitize(blob_id)
        if not safe_id:
            raise BlobNotFoundError("File not found")
        data_path, meta_path = self._paths(safe_id)
        with self._locked():
            self.purge_expired()
            if not data_path.is_file():
                raise BlobNotFoundError("File not found")
            try:
                filename = json.loads(meta_path.read_text(encoding="utf-8"))["filename"]
            except (OSError, ValueError, KeyError):
                filename = "document.pdf"
            return data_path.read_bytes(), filename

    def purge_expired(self) -> int:
        removed = 0
        with self._locked():
            for data_path in self._root.glob("*.pdf"):
                meta_path = data_path.with_suffix(".json")
                if self._is_expired(self._created_at(meta_path, data_path)):
                    self._delete(data_path.stem)
                    removed += 1
        if removed:
            LOGGER.info("Evicted expired blobs", extra={"count": removed})
        return removed


__all__ = ["BlobStore", "StoredBlob"]
