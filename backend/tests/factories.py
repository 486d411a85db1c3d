"""Row builders shared by the database tests."""

from inflio.models import Project, ProjectStatus

TEST_USER = "user_test"


async def make_project(session, user_id: str = TEST_USER, **values) -> Project:
    project = Project(
        user_id=user_id,
        title=values.pop("title", "Scaling a SaaS to $1M ARR"),
        status=values.pop("status", ProjectStatus.READY),
        **values,
    )
    session.add(project)
    await session.commit()
    await session.refresh(project)
    return project
