"""
Platform publishing adapters.

Each publisher performs the platform's documented REST call sequence for a
single post. Calls that create or publish content are sent exactly once;
only reads and X media uploads go through ``request_with_retry``.
Publishers never raise out of ``publish``: any failure comes back as
``PublishResult(success=False, error=...)``.
"""

import abc
import asyncio
import os
import re
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
import google.oauth2.credentials
from googleapiclient.discovery import build
from googleapiclient.http import MediaFileUpload

from inflio.config import settings
from inflio.errors import AppError
from inflio.services.retry import request_with_retry
from inflio.social.oauth_config import PLATFORM_CONFIGS, PlatformConfig
from inflio.utils.logging import get_logger

logger = get_logger(__name__)

X_MEDIA_UPLOAD_URL = "https://upload.twitter.com/1.1/media/upload.json"
LINKEDIN_PROFILE_URL = "https://api.linkedin.com/v2/me"

INSTAGRAM_MAX_CAROUSEL_ITEMS = 10
X_MAX_MEDIA = 4

_TOKEN_PATTERNS = [
    (re.compile(r"Bearer\s+[A-Za-z0-9\-_\.]+", re.IGNORECASE), "Bearer ***"),
    (re.compile(r"access_token=[A-Za-z0-9\-_\.%]+", re.IGNORECASE), "access_token=***"),
]


def sanitize(text: Optional[str]) -> Optional[str]:
    """Strip tokens from error text before it is logged or stored."""
    if not text:
        return text
    for pattern, replacement in _TOKEN_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


@dataclass
class PublishOptions:
    content: str
    media_urls: List[str] = field(default_factory=list)
    hashtags: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PublishResult:
    """Outcome of one publish attempt."""
    success: bool
    platform_post_id: Optional[str] = None
    error: Optional[str] = None
    url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "platform_post_id": self.platform_post_id,
            "error": self.error,
            "url": self.url,
        }


def _error_detail(response: httpx.Response, *keys: str) -> str:
    """Best-effort extraction of an error message from a JSON error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    for key in keys:
        value: Any = body
        for part in key.split("."):
            value = value.get(part) if isinstance(value, dict) else None
        if value:
            return str(value)
    return f"HTTP {response.status_code}"


class PlatformPublisher(abc.ABC):
    """Base class for platform-specific publishers."""

    platform: str = "unknown"

    def __init__(
        self,
        access_token: str,
        platform: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.access_token = access_token
        platform = platform or self.platform
        config = PLATFORM_CONFIGS.get(platform)
        if not config:
            raise AppError(f"Platform {platform} not configured", "INVALID_PLATFORM")
        self.platform = platform
        self.config: PlatformConfig = config
        self._client = client

    @asynccontextmanager
    async def client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
            yield client

    async def publish(self, options: PublishOptions) -> PublishResult:
        try:
            result = await self._publish(options)
        except Exception as e:
            message = sanitize(getattr(e, "message", None) or str(e))
            logger.error("Publish failed", platform=self.platform, error=message)
            return PublishResult(success=False, error=message)

        logger.info(
            "Published post",
            platform=self.platform,
            platform_post_id=result.platform_post_id,
        )
        return result

    @abc.abstractmethod
    async def _publish(self, options: PublishOptions) -> PublishResult:
        """Run the platform call sequence; raise AppError on any failed step."""
        ...

    @property
    def bearer_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


class InstagramPublisher(PlatformPublisher):
    """Instagram Graph API: media container(s), then media_publish."""

    platform = "instagram"

    async def _publish(self, options: PublishOptions) -> PublishResult:
        caption = self.build_caption(options.content, options.hashtags)

        if not options.media_urls:
            raise AppError(
                "Instagram requires at least one image or video", "INVALID_CONTENT"
            )

        async with self.client() as client:
            if len(options.media_urls) == 1:
                return await self._publish_single(client, options.media_urls[0], caption)
            return await self._publish_carousel(client, options.media_urls, caption)

    async def _publish_single(
        self, client: httpx.AsyncClient, media_url: str, caption: str
    ) -> PublishResult:
        create = await client.post(
            f"{self.config.api_base_url}/me/media",
            json={
                "image_url": media_url,
                "caption": caption,
                "access_token": self.access_token,
            },
        )
        if not create.is_success:
            raise AppError(
                f"Failed to create Instagram media: {_error_detail(create, 'error.message')}",
                "INSTAGRAM_ERROR",
            )
        container_id = create.json()["id"]

        return await self._publish_container(client, container_id)

    async def _publish_carousel(
        self, client: httpx.AsyncClient, media_urls: List[str], caption: str
    ) -> PublishResult:
        children = []
        for media_url in media_urls[:INSTAGRAM_MAX_CAROUSEL_ITEMS]:
            item = await client.post(
                f"{self.config.api_base_url}/me/media",
                json={
                    "image_url": media_url,
                    "is_carousel_item": True,
                    "access_token": self.access_token,
                },
            )
            if not item.is_success:
                raise AppError("Failed to create carousel item", "INSTAGRAM_ERROR")
            children.append(item.json()["id"])

        carousel = await client.post(
            f"{self.config.api_base_url}/me/media",
            json={
                "media_type": "CAROUSEL",
                "children": children,
                "caption": caption,
                "access_token": self.access_token,
            },
        )
        if not carousel.is_success:
            raise AppError("Failed to create carousel", "INSTAGRAM_ERROR")

        return await self._publish_container(client, carousel.json()["id"])

    async def _publish_container(
        self, client: httpx.AsyncClient, container_id: str
    ) -> PublishResult:
        published = await client.post(
            f"{self.config.api_base_url}/me/media_publish",
            json={"creation_id": container_id, "access_token": self.access_token},
        )
        if not published.is_success:
            raise AppError(
                f"Failed to publish Instagram media: {_error_detail(published, 'error.message')}",
                "INSTAGRAM_ERROR",
            )
        post_id = published.json()["id"]
        return PublishResult(
            success=True,
            platform_post_id=post_id,
            url=f"https://www.instagram.com/p/{post_id}/",
        )

    @staticmethod
    def build_caption(content: str, hashtags: Optional[List[str]] = None) -> str:
        caption = content
        if hashtags:
            tags = [tag if tag.startswith("#") else f"#{tag}" for tag in hashtags]
            caption += "\n\n" + " ".join(tags)
        return caption


class XPublisher(PlatformPublisher):
    """X API v2 tweets with v1.1 media upload."""

    platform = "x"

    async def _publish(self, options: PublishOptions) -> PublishResult:
        async with self.client() as client:
            media_ids = []
            for media_url in options.media_urls[:X_MAX_MEDIA]:
                media_ids.append(await self._upload_media(client, media_url))

            tweet: Dict[str, Any] = {"text": options.content}
            if media_ids:
                tweet["media"] = {"media_ids": media_ids}

            response = await client.post(
                f"{self.config.api_base_url}/tweets",
                json=tweet,
                headers=self.bearer_headers,
            )
            if not response.is_success:
                raise AppError(
                    f"Failed to post tweet: {_error_detail(response, 'detail', 'title')}",
                    "X_ERROR",
                )

        tweet_id = response.json()["data"]["id"]
        return PublishResult(
            success=True,
            platform_post_id=tweet_id,
            url=f"https://x.com/i/status/{tweet_id}",
        )

    async def _upload_media(self, client: httpx.AsyncClient, media_url: str) -> str:
        media = await client.get(media_url, follow_redirects=True)
        if not media.is_success:
            raise AppError(f"Failed to download media {media_url}", "X_MEDIA_ERROR")

        upload = await request_with_retry(
            client,
            "POST",
            X_MEDIA_UPLOAD_URL,
            files={"media": ("media", media.content)},
            headers=self.bearer_headers,
        )
        if not upload.is_success:
            raise AppError("Failed to upload media to X", "X_MEDIA_ERROR")
        return upload.json()["media_id_string"]


class LinkedInPublisher(PlatformPublisher):
    """LinkedIn UGC posts authored by the connected member."""

    platform = "linkedin"

    async def _publish(self, options: PublishOptions) -> PublishResult:
        async with self.client() as client:
            profile = await request_with_retry(
                client, "GET", LINKEDIN_PROFILE_URL, headers=self.bearer_headers
            )
            if not profile.is_success:
                raise AppError("Failed to get LinkedIn profile", "LINKEDIN_ERROR")
            author_urn = f"urn:li:person:{profile.json()['id']}"

            share_content: Dict[str, Any] = {
                "shareCommentary": {"text": options.content},
                "shareMediaCategory": "IMAGE" if options.media_urls else "NONE",
            }
            if options.media_urls:
                share_content["media"] = [
                    {"status": "READY", "originalUrl": url} for url in options.media_urls
                ]

            response = await client.post(
                f"{self.config.api_base_url}/ugcPosts",
                json={
                    "author": author_urn,
                    "lifecycleState": "PUBLISHED",
                    "specificContent": {"com.linkedin.ugc.ShareContent": share_content},
                    "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
                },
                headers=self.bearer_headers,
            )
            if not response.is_success:
                raise AppError(
                    f"Failed to post to LinkedIn: {_error_detail(response, 'message')}",
                    "LINKEDIN_ERROR",
                )

        urn = response.json()["id"]
        return PublishResult(
            success=True,
            platform_post_id=urn.split(":")[-1],
            url=f"https://www.linkedin.com/feed/update/{urn}/",
        )


class FacebookPublisher(PlatformPublisher):
    """Facebook Graph API feed post, or a photo post for a single image."""

    platform = "facebook"

    async def _publish(self, options: PublishOptions) -> PublishResult:
        message = options.content
        if options.hashtags:
            message = InstagramPublisher.build_caption(message, options.hashtags)

        async with self.client() as client:
            if len(options.media_urls) == 1:
                response = await client.post(
                    f"{self.config.api_base_url}/me/photos",
                    data={
                        "url": options.media_urls[0],
                        "caption": message,
                        "access_token": self.access_token,
                    },
                )
            else:
                data = {"message": message, "access_token": self.access_token}
                if options.media_urls:
                    data["link"] = options.media_urls[0]
                response = await client.post(
                    f"{self.config.api_base_url}{self.config.publish_endpoint}",
                    data=data,
                )

            if not response.is_success:
                raise AppError(
                    f"Failed to post to Facebook: {_error_detail(response, 'error.message')}",
                    "FACEBOOK_ERROR",
                )

        body = response.json()
        post_id = body.get("post_id") or body["id"]
        return PublishResult(
            success=True,
            platform_post_id=post_id,
            url=f"https://www.facebook.com/{post_id}",
        )


class ThreadsPublisher(PlatformPublisher):
    """Threads API: create a container, then publish it."""

    platform = "threads"

    async def _publish(self, options: PublishOptions) -> PublishResult:
        text = InstagramPublisher.build_caption(options.content, options.hashtags)
        params: Dict[str, Any] = {"text": text, "access_token": self.access_token}
        if options.media_urls:
            params.update(media_type="IMAGE", image_url=options.media_urls[0])
        else:
            params["media_type"] = "TEXT"

        async with self.client() as client:
            container = await client.post(
                f"{self.config.api_base_url}/me/threads", params=params
            )
            if not container.is_success:
                raise AppError(
                    f"Failed to create Threads container: {_error_detail(container, 'error.message')}",
                    "THREADS_ERROR",
                )

            published = await client.post(
                f"{self.config.api_base_url}{self.config.publish_endpoint}",
                params={
                    "creation_id": container.json()["id"],
                    "access_token": self.access_token,
                },
            )
            if not published.is_success:
                raise AppError("Failed to publish Threads post", "THREADS_ERROR")

        post_id = published.json()["id"]
        return PublishResult(
            success=True,
            platform_post_id=post_id,
            url=f"https://www.threads.net/post/{post_id}",
        )


class YouTubePublisher(PlatformPublisher):
    """
    YouTube Data API upload.

    The first media URL must point at the video file; it is downloaded to a
    temporary file and sent with a resumable upload.
    """

    platform = "youtube"

    async def _publish(self, options: PublishOptions) -> PublishResult:
        if not options.media_urls:
            raise AppError("YouTube requires a video to upload", "INVALID_CONTENT")

        metadata = options.metadata or {}
        title = (metadata.get("title") or options.content.split("\n")[0] or "Untitled")[:100]
        body = {
            "snippet": {
                "title": title,
                "description": (metadata.get("description") or options.content)[:5000],
                "tags": [tag.lstrip("#") for tag in options.hashtags],
                "categoryId": metadata.get("category_id", "22"),
            },
            "status": {"privacyStatus": metadata.get("privacy_status", "public")},
        }

        fd, file_path = tempfile.mkstemp(suffix=".mp4")
        os.close(fd)
        try:
            async with self.client() as client:
                async with client.stream(
                    "GET", options.media_urls[0], follow_redirects=True
                ) as response:
                    if not response.is_success:
                        raise AppError("Failed to download video", "YOUTUBE_ERROR")
                    with open(file_path, "wb") as f:
                        async for chunk in response.aiter_bytes():
                            f.write(chunk)

            video_id = await asyncio.to_thread(self._upload_video, file_path, body)
        finally:
            os.remove(file_path)

        return PublishResult(
            success=True,
            platform_post_id=video_id,
            url=f"https://www.youtube.com/watch?v={video_id}",
        )

    def _upload_video(self, file_path: str, body: Dict[str, Any]) -> str:
        credentials = google.oauth2.credentials.Credentials(token=self.access_token)
        youtube = build("youtube", "v3", credentials=credentials, cache_discovery=False)

        media = MediaFileUpload(file_path, mimetype="video/mp4", resumable=True)
        request = youtube.videos().insert(part="snippet,status", body=body, media_body=media)

        logger.info("Starting YouTube upload", file=file_path)

        response = None
        while response is None:
            status, response = request.next_chunk()
            if status:
                logger.debug("Upload progress", progress=int(status.progress() * 100))

        video_id = response.get("id")
        if not video_id:
            raise AppError("YouTube upload returned no video id", "YOUTUBE_ERROR")
        return video_id


PUBLISHERS = {
    "instagram": InstagramPublisher,
    "x": XPublisher,
    "linkedin": LinkedInPublisher,
    "facebook": FacebookPublisher,
    "threads": ThreadsPublisher,
    "youtube": YouTubePublisher,
}


def get_platform_publisher(
    platform: str, access_token: str, client: Optional[httpx.AsyncClient] = None
) -> PlatformPublisher:
    """Publisher for ``platform``; raises NOT_IMPLEMENTED for platforms without one."""
    publisher_cls = PUBLISHERS.get(platform)
    if not publisher_cls:
        raise AppError(f"Publisher not implemented for {platform}", "NOT_IMPLEMENTED")
    return publisher_cls(access_token, platform, client=client)


async def publish_to_social_platform(
    platform: str,
    access_token: str,
    options: PublishOptions,
    client: Optional[httpx.AsyncClient] = None,
) -> PublishResult:
    """Publish one post; every failure is returned, never raised."""
    try:
        publisher = get_platform_publisher(platform, access_token, client=client)
        return await publisher.publish(options)
    except AppError as e:
        logger.error("Publishing failed", platform=platform, error=e.message, code=e.code)
        return PublishResult(success=False, error=e.message)
    except Exception as e:
        logger.exception("Publishing failed", platform=platform, error=sanitize(str(e)))
        return PublishResult(success=False, error=sanitize(str(e)) or "Publishing failed")
