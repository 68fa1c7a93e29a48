from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Literal, Mapping, get_args

from pydantic import BaseModel, Field, NonNegativeInt, ValidationError, field_validator, model_validator

from json_store import decode_json, encode_json

from .errors import MalformedDocumentError, VideoNotFoundError

logger = logging.getLogger(__name__)

Sentiment = Literal["positive", "neutral", "negative", "mixed"]
SENTIMENT_LABELS: tuple[str, ...] = get_args(Sentiment)
NEUTRAL: Sentiment = "neutral"
ANONYMOUS_USER = "Anonymous"


def _lenient_count(value: Any) -> int:
    # Older documents carry null or missing counters; treat anything unusable as 0.
    if isinstance(value, bool) or value is None:
        return 0
    try:
        n = int(value)
    except (TypeError, ValueError):
        return 0
    return n if n >= 0 else 0


def _salvage(items: Any, model: type[BaseModel], what: str) -> tuple[list[Any], list[dict[str, Any]]]:
    """
    Validate list items one by one. Returns (kept, dropped); dropped items are logged.
    """
    if items is None:
        return [], []
    if not isinstance(items, list):
        # Not a list at all: leave it for pydantic to reject.
        return items, []
    kept: list[Any] = []
    dropped: list[dict[str, Any]] = []
    for item in items:
        try:
            kept.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning("FEED DOC: dropping unreadable %s %.200r (%d error(s))", what, item, e.error_count())
            dropped.append(item if isinstance(item, dict) else {})
    return kept, dropped


class CommentRecord(BaseModel):
    user: str = ANONYMOUS_USER
    text: str
    sentiment: Sentiment = NEUTRAL
    at: str = ""

    @field_validator("user", mode="before")
    @classmethod
    def _default_user(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return ANONYMOUS_USER
        return value

    @field_validator("sentiment", mode="before")
    @classmethod
    def _known_sentiment(cls, value: Any) -> str:
        return normalize_sentiment(value)

    @field_validator("at", mode="before")
    @classmethod
    def _blank_timestamp(cls, value: Any) -> Any:
        return "" if value is None else value


class VideoRecord(BaseModel):
    id: int
    filename: str
    thumbnail: str | None = None
    title: str = "Untitled"
    description: str = ""
    likes: NonNegativeInt = 0
    views: NonNegativeInt = 0
    comments: list[CommentRecord] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, value: Any) -> Any:
        return "Untitled" if value is None else value

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("likes", "views", mode="before")
    @classmethod
    def _counters(cls, value: Any) -> int:
        return _lenient_count(value)

    @field_validator("comments", mode="before")
    @classmethod
    def _comments(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, list):
            logger.warning("FEED DOC: dropping non-list comments %.200r", value)
            return []
        kept, _ = _salvage(value, CommentRecord, "comment")
        return kept


class FeedDocument(BaseModel):
    """
    Mirrors the stored data.json schema:
      { "videos": [ {"id": 1, "filename": ..., "likes": 0, "views": 0, "comments": [...]}, ... ],
        "next_video_id": 2 }

    `next_video_id` is a high-water mark; older documents without it are read
    as if it were 1, so the next id falls back to max(ids) + 1.

    Reading is lenient per record: null or missing fields get their defaults,
    and a video that still cannot be read is dropped (and logged) on its own.
    Its id stays reserved through the high-water mark.
    """

    videos: list[VideoRecord] = Field(default_factory=list)
    next_video_id: int = 1

    @model_validator(mode="before")
    @classmethod
    def _salvage_videos(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        kept, dropped = _salvage(data.get("videos"), VideoRecord, "video")
        data["videos"] = kept

        high_water = _lenient_count(data.get("next_video_id")) or 1
        for raw in dropped:
            dropped_id = _lenient_count(raw.get("id"))
            high_water = max(high_water, dropped_id + 1)
        data["next_video_id"] = high_water
        return data

    @classmethod
    def from_disk_doc(cls, doc: Mapping[str, Any]) -> "FeedDocument":
        return cls.model_validate(doc)

    def to_disk_doc(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def find_video(self, video_id: int) -> VideoRecord | None:
        for v in self.videos:
            if v.id == video_id:
                return v
        return None

    def allocate_video_id(self) -> int:
        highest = max((v.id for v in self.videos), default=0)
        return max(self.next_video_id, highest + 1)


def parse_feed_document(text: str) -> FeedDocument:
    """
    Raises MalformedDocumentError when the text is not a JSON object or its
    `videos` is not a list. Damaged individual records are salvaged or dropped
    by the models instead.
    """
    try:
        raw = decode_json(text)
    except ValueError as e:
        raise MalformedDocumentError(f"invalid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise MalformedDocumentError(f"expected a JSON object, got {type(raw).__name__}")
    try:
        return FeedDocument.from_disk_doc(raw)
    except ValidationError as e:
        raise MalformedDocumentError(f"schema mismatch: {e.error_count()} error(s)") from e


def serialize_feed_document(doc: FeedDocument) -> str:
    return encode_json(doc.to_disk_doc())


def normalize_sentiment(label: Any) -> Sentiment:
    if isinstance(label, str) and label.strip().lower() in SENTIMENT_LABELS:
        return label.strip().lower()  # type: ignore[return-value]
    return NEUTRAL


def utc_timestamp(now: datetime | None = None) -> str:
    ts = now or datetime.now(timezone.utc)
    return ts.isoformat().replace("+00:00", "Z")


# -------------------------------------------------------------------
# Pure transforms: FeedDocument -> FeedDocument.
# No I/O, no clocks, no randomness; they may run several times per mutation.
# -------------------------------------------------------------------


def append_video(*, filename: str, title: str, description: str):
    def _transform(doc: FeedDocument) -> FeedDocument:
        video_id = doc.allocate_video_id()
        doc.videos.append(VideoRecord(id=video_id, filename=filename, title=title, description=description))
        doc.next_video_id = video_id + 1
        return doc

    return _transform


def _increment(video_id: int, field: Literal["likes", "views"]):
    def _transform(doc: FeedDocument) -> FeedDocument:
        video = doc.find_video(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)
        setattr(video, field, getattr(video, field) + 1)
        return doc

    return _transform


def increment_likes(video_id: int):
    return _increment(video_id, "likes")


def increment_views(video_id: int):
    return _increment(video_id, "views")


def append_comment(video_id: int, comment: CommentRecord):
    def _transform(doc: FeedDocument) -> FeedDocument:
        video = doc.find_video(video_id)
        if video is None:
            raise VideoNotFoundError(video_id)
        video.comments.append(comment.model_copy())
        return doc

    return _transform
