from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel

from persistence.errors import InvalidKeyError, NotFoundError, StoreError, VideoNotFoundError
from persistence.interfaces import ObjectStore
from persistence.paths import video_object_key
from persistence.repositories import AsyncVideoRepository
from sentiment import SentimentClassifier
from settings import Settings

router = APIRouter(tags=["videos"])
logger = logging.getLogger(__name__)

RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")
STREAM_CHUNK_SIZE = 256 * 1024


class CommentIn(BaseModel):
    text: str = ""
    username: str | None = None


# -------------------------------------------------------------------
# Collaborators live on app.state; wired once in create_app().
# -------------------------------------------------------------------


def _objects(request: Request) -> ObjectStore:
    return request.app.state.objects


def _videos(request: Request) -> AsyncVideoRepository:
    return request.app.state.videos


def _sentiment(request: Request) -> SentimentClassifier:
    return request.app.state.sentiment


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def _store_failure(error: str, e: Exception) -> JSONResponse:
    logger.error("%s: %r", error.upper(), e)
    return JSONResponse({"error": error, "details": str(e)}, status_code=500)


def parse_byte_range(header: str | None, size: int) -> tuple[int, int] | None:
    """
    Parse a single "bytes=" range against an object of `size` bytes.

    Returns None when no usable range was requested (serve everything),
    (start, end) inclusive otherwise. Raises ValueError when unsatisfiable.
    """
    if not header:
        return None
    m = RANGE_RE.match(header.strip())
    if m is None:
        # Multi-range or unknown unit: ignore and serve the full body.
        return None
    first, last = m.group(1), m.group(2)
    if not first and not last:
        return None
    if not first:
        suffix = int(last)
        if suffix == 0 or size == 0:
            raise ValueError("unsatisfiable range")
        return max(0, size - suffix), size - 1
    start = int(first)
    end = int(last) if last else size - 1
    if last and end < start:
        # last-pos below first-pos is a syntax error, not an unsatisfiable range: ignore it.
        return None
    if start >= size:
        raise ValueError("unsatisfiable range")
    return start, min(end, size - 1)


@router.get("/")
async def root() -> dict[str, str]:
    return {"message": "Backend API is running"}


@router.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "OK"


@router.post("/upload")
async def upload_video(
    request: Request,
    video: UploadFile | None = File(None),
    title: str = Form("Untitled"),
    description: str = Form(""),
):
    if video is None:
        raise HTTPException(status_code=400, detail="No video uploaded")

    settings = _settings(request)
    filename = video_object_key(video.filename)
    data = await video.read()
    try:
        await asyncio.to_thread(
            _objects(request).put_binary,
            settings.video_container,
            filename,
            data,
            video.content_type,
        )
        record = await _videos(request).add_video(
            filename=filename,
            title=title.strip() or "Untitled",
            description=description,
        )
    except StoreError as e:
        return _store_failure("Upload failed", e)

    logger.info("UPLOAD: stored video id=%s filename=%s (%d bytes)", record.id, filename, len(data))
    return {"message": "Upload successful", "filename": filename, "id": record.id}


@router.get("/api/videos")
async def list_videos(request: Request):
    try:
        videos = await _videos(request).list_videos()
    except StoreError as e:
        return _store_failure("Failed to load videos", e)
    return [v.model_dump(mode="json") for v in videos]


@router.get("/video/{filename}")
async def stream_video(filename: str, request: Request):
    settings = _settings(request)
    try:
        obj = await asyncio.to_thread(_objects(request).get_binary_stream, settings.video_container, filename)
    except (NotFoundError, InvalidKeyError):
        return PlainTextResponse("Not found", status_code=404)
    except StoreError as e:
        return _store_failure("Failed to read video", e)

    headers: dict[str, str] = {"Accept-Ranges": "bytes"}
    if obj.etag:
        headers["ETag"] = obj.etag

    try:
        byte_range = parse_byte_range(request.headers.get("range"), obj.size)
    except ValueError:
        headers["Content-Range"] = f"bytes */{obj.size}"
        return PlainTextResponse("Requested range not satisfiable", status_code=416, headers=headers)

    if byte_range is None:
        headers["Content-Length"] = str(obj.size)
        return StreamingResponse(
            obj.iter_bytes(chunk_size=STREAM_CHUNK_SIZE),
            media_type=obj.content_type,
            headers=headers,
        )

    start, end = byte_range
    headers["Content-Range"] = f"bytes {start}-{end}/{obj.size}"
    headers["Content-Length"] = str(end - start + 1)
    return StreamingResponse(
        obj.iter_bytes(start, end, chunk_size=STREAM_CHUNK_SIZE),
        status_code=206,
        media_type=obj.content_type,
        headers=headers,
    )


@router.get("/thumbnail/{filename}")
async def thumbnail(filename: str):
    return PlainTextResponse("No thumbnail", status_code=404)


@router.post("/api/like/{video_id}")
async def like_video(video_id: int, request: Request):
    try:
        video = await _videos(request).record_like(video_id)
    except VideoNotFoundError:
        raise HTTPException(status_code=404, detail="video not found")
    except StoreError as e:
        return _store_failure("Failed", e)
    return {"status": "ok", "likes": video.likes}


@router.post("/api/view/{video_id}")
async def view_video(video_id: int, request: Request):
    try:
        video = await _videos(request).record_view(video_id)
    except VideoNotFoundError:
        raise HTTPException(status_code=404, detail="video not found")
    except StoreError as e:
        return _store_failure("Failed", e)
    return {"status": "ok", "views": video.views}


@router.post("/api/comment/{video_id}")
async def comment_video(video_id: int, body: CommentIn, request: Request):
    text = (body.text or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail="Empty comment")

    sentiment = await _sentiment(request).classify(text)
    try:
        comment = await _videos(request).add_comment(video_id, text=text, user=body.username, sentiment=sentiment)
    except VideoNotFoundError:
        raise HTTPException(status_code=404, detail="video not found")
    except StoreError as e:
        return _store_failure("Failed", e)

    payload: dict[str, Any] = {"status": "ok", "sentiment": comment.sentiment, "comment": comment.model_dump(mode="json")}
    return payload
