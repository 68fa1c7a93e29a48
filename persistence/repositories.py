from __future__ import annotations

from typing import Protocol

from .document_store import VersionedDocumentStore
from .video_feed import (
    ANONYMOUS_USER,
    CommentRecord,
    VideoRecord,
    append_comment,
    append_video,
    increment_likes,
    increment_views,
    normalize_sentiment,
    utc_timestamp,
)


class AsyncVideoRepository(Protocol):
    """
    Domain-level video metadata interface.
    Intentionally granular: mirrors how a real DB would be used.
    """

    async def list_videos(self) -> list[VideoRecord]: ...
    async def get_video(self, video_id: int) -> VideoRecord | None: ...

    async def add_video(self, *, filename: str, title: str, description: str) -> VideoRecord: ...

    async def record_like(self, video_id: int) -> VideoRecord: ...
    async def record_view(self, video_id: int) -> VideoRecord: ...

    async def add_comment(
        self,
        video_id: int,
        *,
        text: str,
        user: str | None = None,
        sentiment: str | None = None,
        at: str | None = None,
    ) -> CommentRecord: ...


class DocumentVideoRepository(AsyncVideoRepository):
    """
    VideoRepository backed by the single versioned feed document.

    Every write is a full read-modify-write of the document; unknown ids
    raise VideoNotFoundError and leave the document untouched.
    """

    def __init__(self, documents: VersionedDocumentStore) -> None:
        self._documents = documents

    async def list_videos(self) -> list[VideoRecord]:
        doc, _ = await self._documents.load_document()
        return list(doc.videos)

    async def get_video(self, video_id: int) -> VideoRecord | None:
        doc, _ = await self._documents.load_document()
        return doc.find_video(video_id)

    async def add_video(self, *, filename: str, title: str, description: str) -> VideoRecord:
        doc = await self._documents.mutate(
            append_video(filename=filename, title=title or "Untitled", description=description or "")
        )
        # mutate() returns the document we committed, so our record is the last one.
        return doc.videos[-1]

    async def record_like(self, video_id: int) -> VideoRecord:
        doc = await self._documents.mutate(increment_likes(video_id))
        return doc.find_video(video_id)  # type: ignore[return-value]

    async def record_view(self, video_id: int) -> VideoRecord:
        doc = await self._documents.mutate(increment_views(video_id))
        return doc.find_video(video_id)  # type: ignore[return-value]

    async def add_comment(
        self,
        video_id: int,
        *,
        text: str,
        user: str | None = None,
        sentiment: str | None = None,
        at: str | None = None,
    ) -> CommentRecord:
        body = (text or "").strip()
        if not body:
            raise ValueError("comment text is required")

        comment = CommentRecord(
            user=(user or "").strip() or ANONYMOUS_USER,
            text=body,
            sentiment=normalize_sentiment(sentiment),
            at=at or utc_timestamp(),
        )
        await self._documents.mutate(append_comment(video_id, comment))
        return comment
