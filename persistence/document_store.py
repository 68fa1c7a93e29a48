from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Callable

from .errors import ConflictError, MalformedDocumentError
from .interfaces import ObjectStore
from .video_feed import FeedDocument, parse_feed_document, serialize_feed_document

logger = logging.getLogger(__name__)

Transform = Callable[[FeedDocument], FeedDocument]


@dataclass(frozen=True)
class DocumentStoreConfig:
    collection: str = "metadata"
    key: str = "data.json"
    max_attempts: int = 5
    retry_base_delay: float = 0.05
    retry_max_delay: float = 1.0

    def backoff_delay(self, attempt: int, rng: random.Random | None = None) -> float:
        """Full-jitter exponential backoff after the given (1-based) failed attempt."""
        cap = min(self.retry_max_delay, self.retry_base_delay * (2 ** (attempt - 1)))
        if cap <= 0:
            return 0.0
        return (rng or random).uniform(0, cap)


class VersionedDocumentStore:
    """
    Holds the single feed document in an object store and mutates it with
    optimistic concurrency: load + token, apply a pure transform, conditional
    write, and on conflict reload and reapply.

    No in-process lock is taken; correctness rests on the object store's
    conditional write.
    """

    def __init__(self, objects: ObjectStore, config: DocumentStoreConfig | None = None):
        self._objects = objects
        self._config = config or DocumentStoreConfig()

    @property
    def config(self) -> DocumentStoreConfig:
        return self._config

    async def initialize(self) -> None:
        cfg = self._config
        await asyncio.to_thread(self._objects.ensure_collection, cfg.collection)

        try:
            current = await asyncio.to_thread(self._objects.get_text, cfg.collection, cfg.key)
        except MalformedDocumentError:
            # Present but unreadable; load_document() reports and recovers it.
            return
        if current.content is not None:
            return

        body = serialize_feed_document(FeedDocument())
        try:
            await asyncio.to_thread(self._objects.put_text, cfg.collection, cfg.key, body, None)
        except ConflictError:
            # Another process created it between our read and write.
            logger.info("DOC STORE INIT: %s/%s created concurrently; keeping theirs", cfg.collection, cfg.key)
            return
        logger.info("DOC STORE INIT: created empty document %s/%s", cfg.collection, cfg.key)

    async def load_document(self) -> tuple[FeedDocument, str | None]:
        cfg = self._config
        try:
            text, etag = await asyncio.to_thread(self._objects.get_text, cfg.collection, cfg.key)
        except MalformedDocumentError as e:
            return self._recover(e, e.etag)
        if text is None:
            return FeedDocument(), None
        try:
            return parse_feed_document(text), etag
        except MalformedDocumentError as e:
            return self._recover(e, etag)

    def _recover(self, error: MalformedDocumentError, etag: str | None) -> tuple[FeedDocument, str | None]:
        # Keep the token: the next conditional write replaces the corrupt object.
        logger.warning(
            "DOC STORE LOAD: %s/%s is malformed (%s); using empty document (etag=%s)",
            self._config.collection,
            self._config.key,
            error,
            etag,
        )
        return FeedDocument(), etag

    async def mutate(self, transform: Transform) -> FeedDocument:
        cfg = self._config
        for attempt in range(1, cfg.max_attempts + 1):
            doc, etag = await self.load_document()
            candidate = transform(doc)
            if not isinstance(candidate, FeedDocument):
                raise TypeError(f"transform must return FeedDocument, got {type(candidate).__name__}")

            body = serialize_feed_document(candidate)
            try:
                await asyncio.to_thread(self._objects.put_text, cfg.collection, cfg.key, body, etag)
            except ConflictError as e:
                if attempt >= cfg.max_attempts:
                    logger.warning(
                        "DOC STORE MUTATE: giving up on %s/%s after %d attempts",
                        cfg.collection,
                        cfg.key,
                        attempt,
                    )
                    raise ConflictError(
                        f"{cfg.collection}/{cfg.key}: conflict persisted after {attempt} attempts",
                        attempts=attempt,
                    ) from e
                delay = cfg.backoff_delay(attempt)
                logger.debug(
                    "DOC STORE MUTATE: conflict on attempt %d/%d, retrying in %.3fs",
                    attempt,
                    cfg.max_attempts,
                    delay,
                )
                await asyncio.sleep(delay)
                continue
            return candidate

        # max_attempts < 1: nothing was attempted.
        raise ConflictError(f"{cfg.collection}/{cfg.key}: no write attempts configured", attempts=0)
