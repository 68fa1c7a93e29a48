from __future__ import annotations

import json
import os
import uuid
from pathlib import Path
from typing import Any


def encode_json(payload: Any, *, indent: int = 2) -> str:
    """Serialize a JSON document the way it is persisted (pretty, trailing newline)."""
    return json.dumps(payload, indent=indent, ensure_ascii=False) + "\n"


def decode_json(raw: str) -> Any:
    """
    Parse JSON text.

    Raises ValueError (json.JSONDecodeError) for blank or invalid input.
    """
    if not raw.strip():
        raise ValueError("empty JSON document")
    return json.loads(raw)


def read_json(path: Path) -> Any | None:
    """
    Read JSON from disk.

    Returns None for missing files, empty files, or invalid JSON.
    """
    try:
        if not path.exists():
            return None
        return decode_json(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """
    Atomically write bytes to disk by writing to a temp file then replacing.

    The temp name is unique per call so concurrent writers never share it.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        with tmp_path.open("wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


def atomic_write_json(path: Path, payload: Any, *, indent: int = 2) -> None:
    atomic_write_bytes(path, encode_json(payload, indent=indent).encode("utf-8"))
