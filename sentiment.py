from __future__ import annotations

import logging
from typing import Any

import httpx

from persistence.video_feed import NEUTRAL, Sentiment, normalize_sentiment

logger = logging.getLogger(__name__)

SENTIMENT_PATH = "/text/analytics/v3.1/sentiment"


class SentimentClassifier:
    """
    Thin client for the Azure AI Language sentiment endpoint.

    Never fails: returns "neutral" when unconfigured or when the call fails.
    Cancellation is not swallowed.
    """

    def __init__(
        self,
        endpoint: str,
        key: str,
        *,
        timeout: float = 5.0,
        language: str = "en",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint = (endpoint or "").rstrip("/")
        self._key = key or ""
        self._language = language
        self._client: httpx.AsyncClient | None = None
        if self.configured:
            self._client = httpx.AsyncClient(base_url=self._endpoint, timeout=timeout, transport=transport)

    @property
    def configured(self) -> bool:
        return bool(self._endpoint and self._key)

    async def classify(self, text: str) -> Sentiment:
        if self._client is None or not text.strip():
            return NEUTRAL

        payload = {"documents": [{"id": "1", "language": self._language, "text": text}]}
        try:
            resp = await self._client.post(
                SENTIMENT_PATH,
                json=payload,
                headers={"Ocp-Apim-Subscription-Key": self._key},
            )
            resp.raise_for_status()
            return _label_from_response(resp.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("SENTIMENT: classification failed, using neutral: %r", e)
            return NEUTRAL

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


def _label_from_response(body: Any) -> Sentiment:
    if not isinstance(body, dict):
        return NEUTRAL
    docs = body.get("documents")
    if not isinstance(docs, list) or not docs or not isinstance(docs[0], dict):
        errors = body.get("errors")
        if errors:
            logger.info("SENTIMENT: service returned errors: %s", errors)
        return NEUTRAL
    return normalize_sentiment(docs[0].get("sentiment"))
