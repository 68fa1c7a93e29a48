from __future__ import annotations

import pytest

from persistence.errors import ConflictError, InvalidKeyError, NotFoundError
from persistence.interfaces import VersionedText


def test_ensure_collection_is_idempotent(objects, storage_root):
    objects.ensure_collection("metadata")
    objects.ensure_collection("metadata")
    assert (storage_root / "metadata").is_dir()


def test_get_text_missing_key_is_absent_not_error(objects):
    objects.ensure_collection("metadata")
    assert objects.get_text("metadata", "data.json") == VersionedText(None, None)


def test_put_text_create_only_then_conflict(objects):
    objects.ensure_collection("metadata")
    etag = objects.put_text("metadata", "data.json", '{"videos": []}', None)
    assert etag

    with pytest.raises(ConflictError):
        objects.put_text("metadata", "data.json", '{"videos": [1]}', None)

    text, current = objects.get_text("metadata", "data.json")
    assert text == '{"videos": []}'
    assert current == etag


def test_put_text_conditional_on_token(objects):
    objects.ensure_collection("metadata")
    first = objects.put_text("metadata", "data.json", "a", None)
    second = objects.put_text("metadata", "data.json", "b", first)
    assert second != first

    # stale token is rejected and content is unchanged
    with pytest.raises(ConflictError):
        objects.put_text("metadata", "data.json", "c", first)
    assert objects.get_text("metadata", "data.json") == VersionedText("b", second)


def test_token_changes_even_when_content_does_not(objects):
    objects.ensure_collection("metadata")
    first = objects.put_text("metadata", "data.json", "same", None)
    second = objects.put_text("metadata", "data.json", "same", first)
    assert first != second


def test_externally_placed_object_gets_content_token(objects, storage_root):
    objects.ensure_collection("metadata")
    (storage_root / "metadata" / "data.json").write_text("hand-written", encoding="utf-8")

    text, etag = objects.get_text("metadata", "data.json")
    assert text == "hand-written"
    assert etag is not None and etag.startswith('"sha256-')

    # the derived token is usable for a conditional write
    objects.put_text("metadata", "data.json", "replaced", etag)
    assert objects.get_text("metadata", "data.json").content == "replaced"


def test_binary_roundtrip_and_ranges(objects):
    objects.ensure_collection("videos")
    payload = bytes(range(256)) * 4
    assert objects.put_binary("videos", "clip.mp4", payload, "video/mp4") == "clip.mp4"

    obj = objects.get_binary_stream("videos", "clip.mp4")
    assert obj.size == len(payload)
    assert obj.content_type == "video/mp4"
    assert b"".join(obj.iter_bytes(chunk_size=100)) == payload
    assert b"".join(obj.iter_bytes(10, 19)) == payload[10:20]
    assert b"".join(obj.iter_bytes(1000)) == payload[1000:]
    assert b"".join(obj.iter_bytes(5, 99999)) == payload[5:]


def test_binary_overwrite_is_unconditional(objects):
    objects.ensure_collection("videos")
    objects.put_binary("videos", "clip.mp4", b"one")
    objects.put_binary("videos", "clip.mp4", b"two")
    obj = objects.get_binary_stream("videos", "clip.mp4")
    assert b"".join(obj.iter_bytes()) == b"two"
    assert obj.content_type == "application/octet-stream"


def test_missing_binary_raises_not_found(objects):
    objects.ensure_collection("videos")
    with pytest.raises(NotFoundError) as exc:
        objects.get_binary_stream("videos", "nope.mp4")
    assert exc.value.key == "nope.mp4"


@pytest.mark.parametrize("key", ["../escape", "a/b", ".meta", "", ".hidden"])
def test_invalid_keys_are_rejected(objects, key):
    objects.ensure_collection("videos")
    with pytest.raises(InvalidKeyError):
        objects.get_binary_stream("videos", key)


def test_get_text_rejects_invalid_utf8(objects, storage_root):
    from persistence.errors import MalformedDocumentError

    objects.ensure_collection("metadata")
    etag = objects.put_text("metadata", "data.json", "ok", None)
    (storage_root / "metadata" / "data.json").write_bytes(b"caf\xe9")

    with pytest.raises(MalformedDocumentError) as exc:
        objects.get_text("metadata", "data.json")
    assert exc.value.etag == etag


def test_object_locks_are_shared_per_path_and_released(storage_root):
    from persistence.locks import ObjectLocks

    locks = ObjectLocks()
    a = storage_root / "videos" / "a.mp4"

    held = locks.lock_for(a)
    assert locks.lock_for(a) is held
    assert locks.lock_for(storage_root / "videos" / "b.mp4") is not held
    with held:
        assert held._mutex.locked()
    assert not held._mutex.locked()

    del held
    assert len(locks) == 0


def test_store_uses_its_own_lock_table(storage_root):
    from persistence.disk_store import DiskObjectStore
    from persistence.locks import SHARED_OBJECT_LOCKS, ObjectLocks

    own = ObjectLocks()
    assert DiskObjectStore(storage_root, locks=own)._locks is own
    assert DiskObjectStore(storage_root)._locks is SHARED_OBJECT_LOCKS
