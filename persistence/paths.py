from __future__ import annotations

import re
import time
import uuid
from pathlib import Path

from .errors import InvalidKeyError

# Collection and key names are single path segments; no separators, no dot-files.
_NAME_RE = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9._-]*$")
_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9._-]")

META_DIR_NAME = ".meta"
DEFAULT_VIDEO_NAME = "video.mp4"


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def validate_name(name: str, *, kind: str = "key") -> str:
    if not isinstance(name, str) or len(name) > 255 or not _NAME_RE.match(name):
        raise InvalidKeyError(f"invalid {kind}: {name!r}")
    return name


def collection_dir(root: Path, collection: str) -> Path:
    return root / validate_name(collection, kind="collection")


def object_path(root: Path, collection: str, key: str) -> Path:
    return collection_dir(root, collection) / validate_name(key)


def meta_path(root: Path, collection: str, key: str) -> Path:
    return collection_dir(root, collection) / META_DIR_NAME / f"{validate_name(key)}.json"


def sanitize_filename(name: str | None) -> str:
    cleaned = _UNSAFE_CHARS_RE.sub("_", (name or "").strip())
    # A leading dot would make a hidden file; keep keys addressable.
    cleaned = cleaned.lstrip(".")
    return cleaned or DEFAULT_VIDEO_NAME


def video_object_key(original_name: str | None, *, now_ms: int | None = None) -> str:
    """
    Build the storage key for an uploaded video:
      <epoch millis>_<8 hex>_<sanitized original name>
    """
    ts = int(time.time() * 1000) if now_ms is None else int(now_ms)
    key = f"{ts}_{uuid.uuid4().hex[:8]}_{sanitize_filename(original_name)}"
    return key[:255]
