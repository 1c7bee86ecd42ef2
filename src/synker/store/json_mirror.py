# src/synker/store/json_mirror.py

from __future__ import annotations

import contextlib
import copy
import json
import logging
import os
import threading
from pathlib import Path

from ..core.ports import Document
from .documents import COLLECTIONS

logger = logging.getLogger(__name__)

Snapshot = dict[str, dict[str, Document]]


class JsonFileMirror:
    """
    StoreMirror that keeps every collection in one local JSON file.

    Stands in for the remote document store during local runs: each
    upsert/delete rewrites the file atomically (tmp file + os.replace).
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._collections: Snapshot = {name: {} for name in COLLECTIONS}
        loaded = self._read()
        for name, docs in loaded.items():
            self._collections.setdefault(name, {}).update(docs)
        logger.info(
            "JsonFileMirror ready path=%s docs=%d",
            self._path,
            sum(len(d) for d in self._collections.values()),
        )

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Snapshot:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text("utf-8"))
        except (OSError, ValueError):
            logger.exception("Failed to read mirror snapshot from %s", self._path)
            return {}
        if not isinstance(data, dict):
            return {}
        out: Snapshot = {}
        for name, docs in data.items():
            if not isinstance(name, str) or not isinstance(docs, dict):
                continue
            out[name] = {str(k): v for k, v in docs.items() if isinstance(v, dict)}
        return out

    def _write(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(json.dumps(self._collections, ensure_ascii=False, indent=2), "utf-8")
        os.replace(tmp, self._path)
        with contextlib.suppress(OSError):
            # Contains emails and password hashes.
            os.chmod(self._path, 0o600)

    def upsert(self, collection: str, doc_id: str, document: Document) -> None:
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = dict(document)
            self._write()

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            if self._collections.get(collection, {}).pop(doc_id, None) is None:
                return
            self._write()

    def load(self) -> Snapshot:
        """Current content of all collections (copies)."""
        with self._lock:
            return copy.deepcopy(self._collections)

    def is_empty(self) -> bool:
        with self._lock:
            return not any(self._collections.values())
