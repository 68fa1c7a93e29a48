"""
Storage error taxonomy.

    StoreError
    ├── NotFoundError          : object key does not exist
    │   └── VideoNotFoundError : video id not present in the feed document
    ├── ConflictError          : conditional write rejected (stale token / already exists)
    ├── MalformedDocumentError : stored text is not a valid feed document
    ├── TransportError         : I/O failure talking to the backing store
    └── InvalidKeyError        : collection or key name not addressable
"""

from __future__ import annotations


class StoreError(Exception):
    """Base class for every storage-layer failure."""


class NotFoundError(StoreError):
    def __init__(self, collection: str, key: str, message: str | None = None):
        self.collection = collection
        self.key = key
        super().__init__(message or f"object not found: {collection}/{key}")


class VideoNotFoundError(NotFoundError):
    def __init__(self, video_id: int):
        self.video_id = video_id
        super().__init__("videos", str(video_id), f"video not found: {video_id}")


class ConflictError(StoreError):
    """
    A conditional write did not hold.

    `attempts` is set when the versioned document store gives up after
    retrying; a single adapter-level rejection leaves it as None.
    """

    def __init__(self, message: str, *, attempts: int | None = None):
        self.attempts = attempts
        super().__init__(message)


class MalformedDocumentError(StoreError):
    """
    Stored content cannot be read as a feed document. `etag` is the token of
    the unreadable object when the store reported one.
    """

    def __init__(self, message: str, *, etag: str | None = None):
        self.etag = etag
        super().__init__(message)


class TransportError(StoreError):
    pass


class InvalidKeyError(StoreError, ValueError):
    pass
