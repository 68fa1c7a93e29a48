from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from dotenv import load_dotenv

from persistence.disk_store import DiskObjectStore
from persistence.document_store import DocumentStoreConfig, VersionedDocumentStore
from persistence.repositories import DocumentVideoRepository
from sentiment import SentimentClassifier
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


def document_store_config(settings: Settings) -> DocumentStoreConfig:
    return DocumentStoreConfig(
        collection=settings.metadata_container,
        key=settings.metadata_blob_name,
        max_attempts=settings.metadata_max_attempts,
        retry_base_delay=settings.metadata_retry_base_delay,
        retry_max_delay=settings.metadata_retry_max_delay,
    )


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    objects: DiskObjectStore = app.state.objects
    documents: VersionedDocumentStore = app.state.documents

    try:
        await asyncio.to_thread(objects.ensure_collection, settings.video_container)
        await documents.initialize()
        logger.info("STORAGE: ready at %s", objects.root)
        yield
    finally:
        await app.state.sentiment.aclose()


def create_app(settings: Settings | None = None) -> FastAPI:
    load_dotenv("local.env")
    settings = settings or get_settings()

    logging.basicConfig(level=settings.log_level)

    from endpoints.video_endpoints import router as video_router

    app = FastAPI(lifespan=lifespan)

    objects = DiskObjectStore(Path(settings.storage_root))
    documents = VersionedDocumentStore(objects, document_store_config(settings))
    app.state.settings = settings
    app.state.objects = objects
    app.state.documents = documents
    app.state.videos = DocumentVideoRepository(documents)
    app.state.sentiment = SentimentClassifier(
        settings.text_analytics_endpoint,
        settings.text_analytics_key,
        timeout=settings.sentiment_timeout,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Range"],
        expose_headers=["Content-Range", "Accept-Ranges", "Content-Length"],
    )

    if settings.debug_log_requests:

        @app.middleware("http")
        async def log_requests(request: Request, call_next):
            response = await call_next(request)
            logger.debug("REQUEST: %s %s -> %s", request.method, request.url.path, response.status_code)
            return response

    app.include_router(video_router)

    return app


app = create_app()
