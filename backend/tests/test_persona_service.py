import asyncio

import pytest

from inflio.crud.persona import persona_crud
from inflio.errors import AppError
from inflio.models import PersonaStatus, TrainingStatus
from inflio.services.persona_service import PersonaService

from tests.factories import TEST_USER

pytestmark = pytest.mark.integration

LORA_RESULT = {"diffusers_lora_file": {"url": "https://fal.media/lora.safetensors"}}


class DummyImages:
    def __init__(self, error=None):
        self.error = error
        self.requests = []

    async def train_lora(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return LORA_RESULT


def _train(db, images):
    service = PersonaService(images=images)

    async def scenario():
        async with db() as session:
            persona = await service.create_persona(session, TEST_USER, "  Dana  ")
            job = await service.start_lora_training(
                session, TEST_USER, persona.id, "https://files/photos.zip", steps=1000
            )
            queued = (await persona_crud.get_by_id(session, persona.id)).status
            job = await service.complete_training(session, job)
            persona = await persona_crud.get_by_id(session, persona.id)
            latest = await service.get_training_job(session, TEST_USER, persona_id=persona.id)
            return queued, job, persona, latest

    return asyncio.run(scenario())


def test_successful_training_attaches_lora(db):
    images = DummyImages()
    queued, job, persona, latest = _train(db, images)

    assert queued == PersonaStatus.TRAINING
    assert persona.name == "Dana"
    assert persona.trigger_phrase == "photo of Dana"
    assert images.requests[0]["trigger_phrase"] == "photo of Dana"
    assert images.requests[0]["steps"] == 1000

    assert job.status == TrainingStatus.COMPLETED
    assert job.completed_at is not None
    assert persona.status == PersonaStatus.TRAINED
    assert persona.lora_model_url == "https://fal.media/lora.safetensors"
    assert latest.id == job.id


def test_failed_training_marks_job_and_persona(db):
    _, job, persona, _ = _train(db, DummyImages(error=RuntimeError("trainer crashed")))

    assert job.status == TrainingStatus.FAILED
    assert job.error_message == "trainer crashed"
    assert persona.status == PersonaStatus.FAILED
    assert persona.lora_model_url is None


def test_persona_of_another_user_is_not_found(db):
    service = PersonaService(images=DummyImages())

    async def scenario():
        async with db() as session:
            persona = await service.create_persona(session, "someone_else", "Sam")
            await service.start_lora_training(session, TEST_USER, persona.id, "https://x.zip")

    with pytest.raises(AppError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.status_code == 404


def test_training_job_lookup_needs_an_id(db):
    service = PersonaService(images=DummyImages())

    async def scenario():
        async with db() as session:
            await service.get_training_job(session, TEST_USER)

    with pytest.raises(AppError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.status_code == 400


def test_global_persona_drops_project_and_delete_removes_jobs(db):
    service = PersonaService(images=DummyImages())

    async def scenario():
        async with db() as session:
            persona = await service.create_persona(
                session, TEST_USER, "Lee", is_global=True, project_id=None
            )
            job = await service.start_lora_training(session, TEST_USER, persona.id, "https://x.zip")
            await service.delete_persona(session, TEST_USER, persona.id)

        async with db() as session:
            return persona, await persona_crud.get_training_job(session, job.id)

    persona, job = asyncio.run(scenario())

    assert persona.project_id is None
    assert job is None
