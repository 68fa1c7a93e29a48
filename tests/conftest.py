from __future__ import annotations

import dataclasses
from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import persistence...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """
    Temp object-store root so tests never touch real ./data.
    """
    root = tmp_path / "data"
    root.mkdir(parents=True, exist_ok=True)
    return root


@pytest.fixture
def objects(storage_root: Path):
    from persistence.disk_store import DiskObjectStore
    from persistence.locks import ObjectLocks

    return DiskObjectStore(storage_root, locks=ObjectLocks())


@pytest.fixture
def store_config():
    from persistence.document_store import DocumentStoreConfig

    # No backoff sleeps in tests.
    return DocumentStoreConfig(retry_base_delay=0.0, retry_max_delay=0.0)


@pytest.fixture
def document_store(objects, store_config):
    from persistence.document_store import VersionedDocumentStore

    return VersionedDocumentStore(objects, store_config)


@pytest.fixture
def test_settings(storage_root: Path, monkeypatch: pytest.MonkeyPatch):
    """
    Settings pointing at the sandbox; sentiment left unconfigured.
    """
    from settings import get_settings

    for name in ("TEXT_ANALYTICS_ENDPOINT", "TEXT_ANALYTICS_KEY", "STORAGE_ROOT"):
        monkeypatch.delenv(name, raising=False)

    return dataclasses.replace(
        get_settings(),
        storage_root=str(storage_root),
        metadata_retry_base_delay=0.0,
        metadata_retry_max_delay=0.0,
        text_analytics_endpoint="",
        text_analytics_key="",
    )
