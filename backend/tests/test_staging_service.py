import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest
from sqlmodel import select

from inflio.crud.staging import staging_crud
from inflio.models import PostContentType, PostSuggestion, StagedPost, SuggestionStatus, utc_now
from inflio.services.staging_service import (
    StagingService,
    get_missing_elements,
    is_post_ready_for_staging,
    map_content_type,
)

from tests.factories import TEST_USER, make_project

COMPLETE_COPY = {
    "instagram": {"caption": "Caption", "hashtags": ["growth"], "cta": "Save this"},
    "linkedin": {"caption": "Caption", "hashtags": ["b2b"], "cta": "Connect"},
}


def build_suggestion(project_id=None, **values):
    data = dict(
        project_id=project_id or uuid4(),
        user_id=TEST_USER,
        content_type=PostContentType.SINGLE,
        title="Key Takeaway",
        description="One idea",
        images=[{"id": "1", "url": "https://img/1.png", "position": 0}],
        copy_variants={k: dict(v) for k, v in COMPLETE_COPY.items()},
        eligible_platforms=["instagram", "linkedin"],
        engagement_prediction=0.72,
        status=SuggestionStatus.READY,
    )
    data.update(values)
    return PostSuggestion(**data)


@pytest.mark.unit
def test_complete_suggestion_is_ready():
    suggestion = build_suggestion()
    assert is_post_ready_for_staging(suggestion)
    assert get_missing_elements(suggestion) == []


@pytest.mark.unit
def test_missing_elements_are_listed_per_platform():
    copy = {k: dict(v) for k, v in COMPLETE_COPY.items()}
    copy["instagram"]["hashtags"] = []
    copy["linkedin"]["cta"] = "   "
    suggestion = build_suggestion(copy_variants=copy)

    assert get_missing_elements(suggestion) == ["instagram hashtags", "linkedin CTA"]
    assert get_missing_elements(suggestion, ["twitter"]) == ["Missing twitter content"]


@pytest.mark.unit
def test_missing_media_and_captions():
    no_images = build_suggestion(images=[])
    assert "No images" in get_missing_elements(no_images)

    pending = build_suggestion(images=[{"id": "1", "position": 0}])
    assert "Images not generated yet" in get_missing_elements(pending)

    bare = build_suggestion(copy_variants={}, eligible_platforms=[])
    assert get_missing_elements(bare) == ["No platforms selected", "No captions"]


@pytest.mark.unit
def test_content_type_mapping():
    assert map_content_type("carousel").value == "carousel"
    assert map_content_type("thread").value == "blog"
    assert map_content_type("reel").value == "clip"
    assert map_content_type("quote").value == "image"


@pytest.mark.integration
def test_batch_staging_reports_each_failure(db):
    service = StagingService()
    missing_id = uuid4()

    async def scenario():
        async with db() as session:
            project = await make_project(session)
            ready = build_suggestion(project.id)
            incomplete = build_suggestion(project.id, images=[])
            session.add_all([ready, incomplete])
            await session.commit()

            result = await service.send_batch_to_staging(
                session, TEST_USER, [ready.id, incomplete.id, missing_id]
            )
            await session.refresh(ready)
            return ready, incomplete, result

    ready, incomplete, result = asyncio.run(scenario())

    assert result.success == 1
    assert result.failed == 2
    errors = {e["id"]: e["error"] for e in result.errors}
    assert errors[str(incomplete.id)].startswith("Post is not ready. Missing: No images")
    assert errors[str(missing_id)] == "Suggestion not found"
    assert ready.status == SuggestionStatus.STAGED
    assert ready.staged_at is not None


@pytest.mark.integration
def test_only_ready_or_approved_suggestions_are_staged(db):
    service = StagingService()

    async def scenario():
        async with db() as session:
            project = await make_project(session)
            approved = build_suggestion(project.id, status=SuggestionStatus.APPROVED)
            failed = build_suggestion(project.id, status=SuggestionStatus.FAILED)
            session.add_all([approved, failed])
            await session.commit()

            first = await service.send_to_staging(session, approved, TEST_USER)
            again = await service.send_to_staging(session, approved, TEST_USER)
            refused = await service.send_to_staging(session, failed, TEST_USER)
            staged = (await session.execute(select(StagedPost))).scalars().all()
            return first, again, refused, staged

    first, again, refused, staged = asyncio.run(scenario())

    assert first.success
    assert not again.success
    assert again.error == "Post cannot be staged from status staged"
    assert refused.error == "Post cannot be staged from status failed"
    assert len(staged) == 1


@pytest.mark.integration
def test_staged_post_carries_platform_content(db):
    service = StagingService()

    async def scenario():
        async with db() as session:
            project = await make_project(session)
            suggestion = build_suggestion(project.id)
            session.add(suggestion)
            await session.commit()
            outcome = await service.send_to_staging(session, suggestion, TEST_USER)
            staged = await session.get(StagedPost, outcome.staged_id)
            return outcome, staged

    outcome, staged = asyncio.run(scenario())

    assert outcome.success
    assert staged.platforms == ["instagram", "linkedin"]
    assert staged.media_urls == ["https://img/1.png"]
    assert staged.thumbnail_url == "https://img/1.png"
    assert staged.platform_content["instagram"]["character_count"] == len("Caption")
    assert staged.meta["analytics"]["estimated_reach"] == 7200


@pytest.mark.integration
def test_saving_a_session_replaces_the_previous_one(db):
    service = StagingService()

    async def scenario():
        async with db() as session:
            project = await make_project(session)
            first = build_suggestion(project.id)
            second = build_suggestion(project.id, title="Second")
            await service.save_staging_session(session, TEST_USER, project.id, [first])
            await service.save_staging_session(session, TEST_USER, project.id, [second])
            count = await staging_crud.count_sessions(session, TEST_USER, project.id)
            data = await service.get_staging_session(session, TEST_USER, project.id)
            return second, count, data

    second, count, data = asyncio.run(scenario())

    assert count == 1
    assert data["ids"] == [str(second.id)]
    assert data["items"][0]["title"] == "Second"


@pytest.mark.integration
def test_expired_sessions_are_hidden_and_cleaned_up(db):
    service = StagingService()

    async def scenario():
        async with db() as session:
            project = await make_project(session)
            await staging_crud.replace_session(
                session,
                TEST_USER,
                project.id,
                {"ids": [], "items": []},
                utc_now() - timedelta(minutes=1),
            )
            visible = await service.get_staging_session(session, TEST_USER, project.id)
            removed = await service.cleanup_expired_sessions(session)
            remaining = await staging_crud.count_sessions(session, TEST_USER, project.id)
            return visible, removed, remaining

    visible, removed, remaining = asyncio.run(scenario())

    assert visible is None
    assert removed == 1
    assert remaining == 0
