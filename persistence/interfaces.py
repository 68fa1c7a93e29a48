from __future__ import annotations

from typing import Iterator, NamedTuple, Protocol


class VersionedText(NamedTuple):
    """Text object plus its version token; both None when the key does not exist."""

    content: str | None
    etag: str | None


class BinaryObject(Protocol):
    key: str
    size: int
    content_type: str
    etag: str | None

    def iter_bytes(self, start: int = 0, end: int | None = None, *, chunk_size: int = 64 * 1024) -> Iterator[bytes]:
        """Yield bytes in [start, end] (inclusive); end=None means until the last byte."""
        ...


class ObjectStore(Protocol):
    """
    Minimal object-store interface: named binary/text objects addressed by
    (collection, key), with conditional writes keyed on a version token.
    """

    def ensure_collection(self, name: str) -> None:
        """Create the collection if missing; never fails for "already exists"."""
        ...

    def put_binary(self, collection: str, key: str, data: bytes, content_type: str | None = None) -> str:
        """Unconditional overwrite. Returns the key."""
        ...

    def get_binary_stream(self, collection: str, key: str) -> BinaryObject:
        """Raises NotFoundError if the key is absent."""
        ...

    def get_text(self, collection: str, key: str) -> VersionedText:
        """
        Returns VersionedText(None, None) if the key is absent. Raises
        MalformedDocumentError (carrying the etag) if the bytes are not UTF-8.
        """
        ...

    def put_text(self, collection: str, key: str, content: str, expected_etag: str | None) -> str:
        """
        Conditional write. With expected_etag, succeeds only if it matches the
        current token; without it, succeeds only if the object does not exist.
        Raises ConflictError otherwise. Returns the new token.
        """
        ...
