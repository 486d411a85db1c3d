import asyncio
from datetime import timedelta

import httpx
import pytest

from inflio.crud.base import save
from inflio.crud.social import social_crud
from inflio.errors import AppError
from inflio.models import PostState, SocialIntegration, utc_now
from inflio.services.encryption_service import encryption_service
from inflio.social.oauth_service import TokenData
from inflio.social.publishers import PublishResult
from inflio.social.social_service import SocialService, calculate_content_mix

from tests.factories import TEST_USER


class FakePublisher:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def __call__(self, platform, access_token, options):
        self.calls.append((platform, access_token, options))
        return self.result


class RaisingPublisher:
    def __init__(self, error):
        self.error = error

    async def __call__(self, platform, access_token, options):
        raise self.error


class FakeOAuth:
    def __init__(self, error=None):
        self.error = error
        self.refreshed = []

    async def refresh_access_token(self, platform, refresh_token):
        self.refreshed.append((platform, refresh_token))
        if self.error:
            raise self.error
        return TokenData(access_token="fresh-token", refresh_token="fresh-refresh", expires_in=3600)


async def make_integration(session, platform="linkedin", **values):
    integration = SocialIntegration(
        user_id=TEST_USER,
        platform=platform,
        internal_id=values.pop("internal_id", "acct-1"),
        name="Acme",
        provider_identifier="acme",
        token=encryption_service.encrypt(values.pop("access_token", "stored-token")),
        **values,
    )
    return await save(session, integration)


def _published():
    return FakePublisher(
        PublishResult(success=True, platform_post_id="p-1", url="https://social/p-1")
    )


@pytest.mark.integration
def test_post_with_date_is_scheduled_and_published_when_due(db):
    publisher = _published()
    service = SocialService(oauth=FakeOAuth(), publish=publisher)

    async def scenario():
        async with db() as session:
            integration = await make_integration(session)
            [post] = await service.create_posts(
                session,
                TEST_USER,
                [integration.id],
                content="Hello LinkedIn",
                hashtags=["b2b"],
                publish_date=utc_now() - timedelta(minutes=1),
            )
            created_state = post.state
            summary = await service.publish_due_posts(session)
            return created_state, summary, await social_crud.get_post(session, post.id)

    created_state, summary, post = asyncio.run(scenario())

    assert created_state == PostState.SCHEDULED
    assert summary == {"processed": 1, "published": 1, "failed": 0}
    assert post.state == PostState.PUBLISHED
    assert post.platform_post_id == "p-1"
    assert post.url == "https://social/p-1"
    assert "published_at" in post.analytics

    platform, token, options = publisher.calls[0]
    assert (platform, token) == ("linkedin", "stored-token")
    assert options.hashtags == ["b2b"]


@pytest.mark.integration
def test_publish_failure_marks_post_failed(db):
    service = SocialService(
        oauth=FakeOAuth(), publish=FakePublisher(PublishResult(success=False, error="Rate limited"))
    )

    async def scenario():
        async with db() as session:
            integration = await make_integration(session)
            [post] = await service.create_posts(
                session, TEST_USER, [integration.id], content="Hi", publish_date=utc_now()
            )
            return await service.publish_post(session, post.id, TEST_USER)

    post = asyncio.run(scenario())

    assert post.state == PostState.FAILED
    assert post.error == "Rate limited"


@pytest.mark.integration
def test_draft_cannot_publish_until_scheduled_now(db):
    service = SocialService(oauth=FakeOAuth(), publish=_published())

    async def scenario():
        async with db() as session:
            integration = await make_integration(session)
            [draft] = await service.create_posts(session, TEST_USER, [integration.id], content="Hi")
            with pytest.raises(AppError) as exc_info:
                await service.publish_post(session, draft.id, TEST_USER)
            await service.schedule_now(session, TEST_USER, draft.id)
            published = await service.publish_post(session, draft.id, TEST_USER)
            return exc_info.value, published

    error, published = asyncio.run(scenario())

    assert error.status_code == 409
    assert published.state == PostState.PUBLISHED


@pytest.mark.integration
def test_content_over_platform_limit_is_rejected(db):
    service = SocialService(oauth=FakeOAuth(), publish=_published())

    async def scenario():
        async with db() as session:
            integration = await make_integration(session, platform="x")
            await service.create_posts(session, TEST_USER, [integration.id], content="x" * 281)

    with pytest.raises(AppError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.code == "CONTENT_TOO_LONG"


@pytest.mark.integration
def test_cancelled_post_cannot_be_edited(db):
    service = SocialService(oauth=FakeOAuth(), publish=_published())

    async def scenario():
        async with db() as session:
            integration = await make_integration(session)
            [post] = await service.create_posts(session, TEST_USER, [integration.id], content="Hi")
            await service.cancel_post(session, TEST_USER, post.id)
            await service.update_post(session, TEST_USER, post.id, {"content": "changed"})

    with pytest.raises(AppError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.code == "INVALID_STATE"


@pytest.mark.integration
def test_expired_token_is_refreshed_before_publishing(db):
    oauth = FakeOAuth()
    publisher = _published()
    service = SocialService(oauth=oauth, publish=publisher)

    async def scenario():
        async with db() as session:
            integration = await make_integration(
                session,
                refresh_token=encryption_service.encrypt("old-refresh"),
                token_expiration=utc_now() - timedelta(hours=1),
            )
            [post] = await service.create_posts(
                session, TEST_USER, [integration.id], content="Hi", publish_date=utc_now()
            )
            await service.publish_post(session, post.id)
            return await social_crud.get_integration(session, integration.id)

    integration = asyncio.run(scenario())

    assert oauth.refreshed == [("linkedin", "old-refresh")]
    assert publisher.calls[0][1] == "fresh-token"
    assert encryption_service.decrypt(integration.token) == "fresh-token"
    assert integration.refresh_needed is False


@pytest.mark.integration
def test_refresh_failure_flags_integration(db):
    oauth = FakeOAuth(error=AppError("refresh rejected", "OAUTH_TOKEN_ERROR"))
    service = SocialService(oauth=oauth, publish=_published())

    async def scenario():
        async with db() as session:
            integration = await make_integration(
                session,
                refresh_token=encryption_service.encrypt("old-refresh"),
                token_expiration=utc_now() - timedelta(hours=1),
            )
            [post] = await service.create_posts(
                session, TEST_USER, [integration.id], content="Hi", publish_date=utc_now()
            )
            post = await service.publish_post(session, post.id)
            return post, await social_crud.get_integration(session, integration.id)

    post, integration = asyncio.run(scenario())

    assert post.state == PostState.FAILED
    assert post.error == "refresh rejected"
    assert integration.refresh_needed is True


@pytest.mark.integration
def test_unexpected_publisher_error_marks_post_failed(db):
    service = SocialService(
        oauth=FakeOAuth(), publish=RaisingPublisher(RuntimeError("socket closed"))
    )

    async def scenario():
        async with db() as session:
            integration = await make_integration(session)
            [post] = await service.create_posts(
                session, TEST_USER, [integration.id], content="Hi", publish_date=utc_now()
            )
            return await service.publish_post(session, post.id, TEST_USER)

    post = asyncio.run(scenario())

    assert post.state == PostState.FAILED
    assert post.error == "socket closed"


@pytest.mark.integration
def test_network_error_on_refresh_does_not_stop_the_sweep(db):
    publisher = _published()
    service = SocialService(oauth=FakeOAuth(error=httpx.ConnectError("down")), publish=publisher)

    async def scenario():
        async with db() as session:
            expired = await make_integration(
                session,
                internal_id="acct-expired",
                refresh_token=encryption_service.encrypt("old-refresh"),
                token_expiration=utc_now() - timedelta(hours=1),
            )
            healthy = await make_integration(session, internal_id="acct-ok")
            [first] = await service.create_posts(
                session,
                TEST_USER,
                [expired.id],
                content="First",
                publish_date=utc_now() - timedelta(minutes=10),
            )
            [second] = await service.create_posts(
                session,
                TEST_USER,
                [healthy.id],
                content="Second",
                publish_date=utc_now() - timedelta(minutes=5),
            )
            summary = await service.publish_due_posts(session)

        async with db() as session:
            return (
                summary,
                await social_crud.get_post(session, first.id),
                await social_crud.get_post(session, second.id),
                await social_crud.get_integration(session, expired.id),
            )

    summary, first, second, expired = asyncio.run(scenario())

    assert summary == {"processed": 2, "published": 1, "failed": 1}
    assert first.state == PostState.FAILED
    assert first.error == "down"
    assert second.state == PostState.PUBLISHED
    assert expired.refresh_needed is True
    assert [call[2].content for call in publisher.calls] == ["Second"]


@pytest.mark.unit
def test_content_mix():
    assert calculate_content_mix(10) == {
        "educational": 4,
        "entertaining": 3,
        "promotional": 2,
        "engagement": 1,
    }
