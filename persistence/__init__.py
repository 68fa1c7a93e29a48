from __future__ import annotations

from .disk_store import DiskObjectStore
from .document_store import DocumentStoreConfig, VersionedDocumentStore
from .errors import (
    ConflictError,
    InvalidKeyError,
    MalformedDocumentError,
    NotFoundError,
    StoreError,
    TransportError,
    VideoNotFoundError,
)
from .interfaces import ObjectStore, VersionedText
from .repositories import AsyncVideoRepository, DocumentVideoRepository
from .video_feed import CommentRecord, FeedDocument, VideoRecord

__all__ = [
    "DiskObjectStore",
    "ObjectStore",
    "VersionedText",
    "DocumentStoreConfig",
    "VersionedDocumentStore",
    "AsyncVideoRepository",
    "DocumentVideoRepository",
    "FeedDocument",
    "VideoRecord",
    "CommentRecord",
    "StoreError",
    "NotFoundError",
    "VideoNotFoundError",
    "ConflictError",
    "MalformedDocumentError",
    "TransportError",
    "InvalidKeyError",
]
