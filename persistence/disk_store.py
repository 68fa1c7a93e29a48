from __future__ import annotations

import hashlib
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from json_store import atomic_write_bytes, atomic_write_json, read_json

from .errors import ConflictError, MalformedDocumentError, NotFoundError, TransportError
from .interfaces import ObjectStore, VersionedText
from .locks import SHARED_OBJECT_LOCKS, ObjectLocks
from .paths import collection_dir, ensure_dir, meta_path, object_path

logger = logging.getLogger(__name__)

DEFAULT_BINARY_CONTENT_TYPE = "application/octet-stream"
TEXT_CONTENT_TYPE = "application/json; charset=utf-8"


def _new_etag() -> str:
    return f'"{uuid.uuid4().hex}"'


def _content_etag(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(64 * 1024), b""):
            h.update(chunk)
    return f'"sha256-{h.hexdigest()}"'


@dataclass(frozen=True)
class DiskBinaryObject:
    key: str
    path: Path
    size: int
    content_type: str
    etag: str | None

    def iter_bytes(self, start: int = 0, end: int | None = None, *, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        last = self.size - 1 if end is None else min(end, self.size - 1)
        remaining = last - start + 1
        if remaining <= 0:
            return
        with self.path.open("rb") as f:
            f.seek(start)
            while remaining > 0:
                chunk = f.read(min(chunk_size, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk


class DiskObjectStore(ObjectStore):
    """
    Object store on the local filesystem.

    - One directory per collection, one file per key.
    - Per-object metadata (etag, content type) lives in <collection>/.meta/<key>.json.
    - Object bytes are written atomically; every write issues a fresh etag.
    - Reads and conditional writes of one object are serialized by a per-object lock.
    """

    def __init__(self, root: Path, *, locks: ObjectLocks | None = None):
        self._root = Path(root)
        self._locks = locks if locks is not None else SHARED_OBJECT_LOCKS

    @property
    def root(self) -> Path:
        return self._root

    def ensure_collection(self, name: str) -> None:
        try:
            ensure_dir(collection_dir(self._root, name))
        except OSError as e:
            raise TransportError(f"cannot create collection {name!r}: {e}") from e

    def put_binary(self, collection: str, key: str, data: bytes, content_type: str | None = None) -> str:
        path = object_path(self._root, collection, key)
        with self._locks.lock_for(path):
            try:
                self._write(collection, key, path, data, content_type or DEFAULT_BINARY_CONTENT_TYPE)
            except OSError as e:
                raise TransportError(f"write failed for {collection}/{key}: {e}") from e
        logger.debug("OBJECT STORE: stored %s/%s (%d bytes)", collection, key, len(data))
        return key

    def get_binary_stream(self, collection: str, key: str) -> DiskBinaryObject:
        path = object_path(self._root, collection, key)
        with self._locks.lock_for(path):
            try:
                if not path.is_file():
                    raise NotFoundError(collection, key)
                meta = self._read_meta(collection, key)
                etag = meta.get("etag") if isinstance(meta.get("etag"), str) else _content_etag(path)
                content_type = meta.get("content_type")
                return DiskBinaryObject(
                    key=key,
                    path=path,
                    size=path.stat().st_size,
                    content_type=content_type if isinstance(content_type, str) else DEFAULT_BINARY_CONTENT_TYPE,
                    etag=etag,
                )
            except OSError as e:
                raise TransportError(f"read failed for {collection}/{key}: {e}") from e

    def get_text(self, collection: str, key: str) -> VersionedText:
        path = object_path(self._root, collection, key)
        with self._locks.lock_for(path):
            try:
                if not path.is_file():
                    return VersionedText(None, None)
                raw = path.read_bytes()
                etag = self._current_etag(collection, key, path)
            except OSError as e:
                raise TransportError(f"read failed for {collection}/{key}: {e}") from e
        try:
            return VersionedText(raw.decode("utf-8"), etag)
        except UnicodeDecodeError as e:
            raise MalformedDocumentError(f"{collection}/{key} is not valid UTF-8: {e}", etag=etag) from e

    def put_text(self, collection: str, key: str, content: str, expected_etag: str | None) -> str:
        path = object_path(self._root, collection, key)
        with self._locks.lock_for(path):
            try:
                current = self._current_etag(collection, key, path) if path.is_file() else None
                if expected_etag is None and current is not None:
                    raise ConflictError(f"{collection}/{key} already exists")
                if expected_etag is not None and current != expected_etag:
                    raise ConflictError(f"{collection}/{key} changed (expected {expected_etag}, found {current})")
                return self._write(collection, key, path, content.encode("utf-8"), TEXT_CONTENT_TYPE)
            except OSError as e:
                raise TransportError(f"write failed for {collection}/{key}: {e}") from e

    def _write(self, collection: str, key: str, path: Path, data: bytes, content_type: str) -> str:
        etag = _new_etag()
        atomic_write_bytes(path, data)
        atomic_write_json(meta_path(self._root, collection, key), {"etag": etag, "content_type": content_type})
        return etag

    def _read_meta(self, collection: str, key: str) -> dict:
        raw = read_json(meta_path(self._root, collection, key))
        return raw if isinstance(raw, dict) else {}

    def _current_etag(self, collection: str, key: str, path: Path) -> str:
        etag = self._read_meta(collection, key).get("etag")
        # Objects placed without going through the store get a content-derived token.
        return etag if isinstance(etag, str) else _content_etag(path)
