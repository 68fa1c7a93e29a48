from __future__ import annotations

import asyncio
import json

import httpx

from sentiment import SENTIMENT_PATH, SentimentClassifier


def _classifier(handler) -> SentimentClassifier:
    return SentimentClassifier(
        "https://lang.example.com/",
        "secret",
        transport=httpx.MockTransport(handler),
    )


def test_unconfigured_classifier_is_neutral():
    clf = SentimentClassifier("", "")
    assert clf.configured is False
    assert asyncio.run(clf.classify("I love it")) == "neutral"


def test_classifier_posts_document_and_reads_label():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["key"] = request.headers.get("Ocp-Apim-Subscription-Key")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"documents": [{"id": "1", "sentiment": "positive"}], "errors": []})

    async def _run():
        clf = _classifier(handler)
        try:
            return await clf.classify("I love it")
        finally:
            await clf.aclose()

    assert asyncio.run(_run()) == "positive"
    assert seen["path"] == SENTIMENT_PATH
    assert seen["key"] == "secret"
    assert seen["body"]["documents"][0]["text"] == "I love it"


def test_classifier_falls_back_to_neutral_on_failures():
    responses = [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(200, content=b"not json"),
        httpx.Response(200, json={"documents": [], "errors": [{"id": "1"}]}),
        httpx.Response(200, json={"documents": [{"id": "1", "sentiment": "furious"}]}),
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    def broken(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    async def _run():
        clf = _classifier(handler)
        labels = [await clf.classify("text") for _ in range(4)]
        await clf.aclose()

        down = _classifier(broken)
        labels.append(await down.classify("text"))
        await down.aclose()
        return labels

    assert asyncio.run(_run()) == ["neutral"] * 5
