import asyncio
import json

import httpx
import pytest

from inflio.social.publishers import (
    InstagramPublisher,
    PublishOptions,
    publish_to_social_platform,
    sanitize,
)

pytestmark = pytest.mark.unit


class RecordingTransport:
    """Routes requests by ``METHOD path`` and records the call order."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        key = f"{request.method} {request.url.path}"
        responder = self.routes[key]
        return responder(request) if callable(responder) else responder

    @property
    def calls(self):
        return [f"{r.method} {r.url.path}" for r in self.requests]


def _publish(platform, options, routes, token="token-123"):
    transport = RecordingTransport(routes)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(transport)) as client:
            return await publish_to_social_platform(platform, token, options, client=client)

    return asyncio.run(run()), transport


def test_instagram_single_image_creates_container_then_publishes():
    result, transport = _publish(
        "instagram",
        PublishOptions(
            content="Big launch", media_urls=["https://img/1.png"], hashtags=["launch", "#saas"]
        ),
        {
            "POST /me/media": httpx.Response(200, json={"id": "container-1"}),
            "POST /me/media_publish": httpx.Response(200, json={"id": "1789"}),
        },
    )

    assert result.success
    assert result.platform_post_id == "1789"
    assert result.url == "https://www.instagram.com/p/1789/"
    assert transport.calls == ["POST /me/media", "POST /me/media_publish"]

    create, publish = (json.loads(r.content) for r in transport.requests)
    assert create["image_url"] == "https://img/1.png"
    assert create["caption"] == "Big launch\n\n#launch #saas"
    assert publish["creation_id"] == "container-1"


def test_instagram_publish_is_sent_once_when_it_times_out():
    def timeout(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    result, transport = _publish(
        "instagram",
        PublishOptions(content="Big launch", media_urls=["https://img/1.png"]),
        {
            "POST /me/media": httpx.Response(200, json={"id": "container-1"}),
            "POST /me/media_publish": timeout,
        },
    )

    assert not result.success
    assert "timed out" in result.error
    assert transport.calls == ["POST /me/media", "POST /me/media_publish"]


def test_server_errors_on_publish_calls_are_not_retried():
    result, transport = _publish(
        "instagram",
        PublishOptions(content="Big launch", media_urls=["https://img/1.png"]),
        {
            "POST /me/media": httpx.Response(200, json={"id": "container-1"}),
            "POST /me/media_publish": httpx.Response(
                503, json={"error": {"message": "Service temporarily unavailable"}}
            ),
        },
    )

    assert not result.success
    assert result.error == "Failed to publish Instagram media: Service temporarily unavailable"
    assert transport.calls == ["POST /me/media", "POST /me/media_publish"]

    tweet, transport = _publish(
        "x",
        PublishOptions(content="Shipping today"),
        {"POST /2/tweets": httpx.Response(500, json={"title": "Internal Error"})},
    )

    assert not tweet.success
    assert transport.calls == ["POST /2/tweets"]


def test_instagram_carousel_creates_children_first():
    ids = iter(["child-1", "child-2", "child-3", "carousel-1"])
    result, transport = _publish(
        "instagram",
        PublishOptions(content="Slides", media_urls=["https://img/1", "https://img/2", "https://img/3"]),
        {
            "POST /me/media": lambda request: httpx.Response(200, json={"id": next(ids)}),
            "POST /me/media_publish": httpx.Response(200, json={"id": "post-9"}),
        },
    )

    assert result.success
    assert transport.calls == ["POST /me/media"] * 4 + ["POST /me/media_publish"]
    bodies = [json.loads(r.content) for r in transport.requests]
    assert all(body["is_carousel_item"] for body in bodies[:3])
    assert bodies[3]["media_type"] == "CAROUSEL"
    assert bodies[3]["children"] == ["child-1", "child-2", "child-3"]
    assert bodies[4]["creation_id"] == "carousel-1"


def test_instagram_requires_media():
    result, transport = _publish("instagram", PublishOptions(content="text only"), {})

    assert not result.success
    assert "at least one image" in result.error
    assert transport.calls == []


def test_instagram_api_error_is_returned_not_raised():
    result, _ = _publish(
        "instagram",
        PublishOptions(content="x", media_urls=["https://img/1.png"]),
        {
            "POST /me/media": httpx.Response(
                400, json={"error": {"message": "Invalid image URL"}}
            ),
        },
    )

    assert not result.success
    assert result.error == "Failed to create Instagram media: Invalid image URL"


def test_x_uploads_media_before_tweeting():
    result, transport = _publish(
        "x",
        PublishOptions(content="Shipping today", media_urls=["https://cdn.test/a.png"]),
        {
            "GET /a.png": httpx.Response(200, content=b"png-bytes"),
            "POST /1.1/media/upload.json": httpx.Response(
                200, json={"media_id_string": "m-1"}
            ),
            "POST /2/tweets": httpx.Response(201, json={"data": {"id": "tw-1"}}),
        },
    )

    assert result.success
    assert result.url == "https://x.com/i/status/tw-1"
    assert transport.calls == ["GET /a.png", "POST /1.1/media/upload.json", "POST /2/tweets"]
    tweet = json.loads(transport.requests[-1].content)
    assert tweet == {"text": "Shipping today", "media": {"media_ids": ["m-1"]}}
    assert transport.requests[-1].headers["Authorization"] == "Bearer token-123"


def test_linkedin_posts_as_the_member():
    result, transport = _publish(
        "linkedin",
        PublishOptions(content="Hiring!"),
        {
            "GET /v2/me": httpx.Response(200, json={"id": "abc"}),
            "POST /v2/ugcPosts": httpx.Response(201, json={"id": "urn:li:share:42"}),
        },
    )

    assert result.success
    assert result.platform_post_id == "42"
    body = json.loads(transport.requests[-1].content)
    assert body["author"] == "urn:li:person:abc"
    share = body["specificContent"]["com.linkedin.ugc.ShareContent"]
    assert share["shareMediaCategory"] == "NONE"


def test_unsupported_platform_is_reported():
    result, _ = _publish("tiktok", PublishOptions(content="x"), {})

    assert not result.success
    assert result.error == "Publisher not implemented for tiktok"


def test_caption_and_sanitize_helpers():
    assert InstagramPublisher.build_caption("Hi", []) == "Hi"
    assert sanitize("failed: Bearer abc.def-123") == "failed: Bearer ***"
    assert sanitize("url?access_token=secret&x=1") == "url?access_token=***&x=1"
