"""
Persona models - a user's visual identity and its LoRA training jobs.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import JSON
from sqlmodel import Field, SQLModel

from inflio.models.base import BaseUUIDModel, TZDateTime, enum_type, utc_now
from inflio.models.enums import PersonaStatus, TrainingStatus


class Persona(BaseUUIDModel, table=True):
    """Table: personas"""

    __tablename__ = "personas"

    user_id: str = Field(max_length=255, nullable=False, index=True)
    name: str = Field(max_length=255, nullable=False)
    description: Optional[str] = Field(default=None)
    photos: List[str] = Field(default_factory=list, sa_type=JSON)
    is_global: bool = Field(default=True)
    project_id: Optional[UUID] = Field(default=None, index=True)
    status: PersonaStatus = Field(
        default=PersonaStatus.PENDING_UPLOAD,
        sa_type=enum_type(PersonaStatus),
        nullable=False,
    )
    lora_model_url: Optional[str] = Field(default=None, max_length=1000)
    trigger_phrase: Optional[str] = Field(default=None, max_length=255)
    meta: Dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=TZDateTime,
        nullable=False,
        sa_column_kwargs={"onupdate": utc_now},
    )


class PersonaRead(SQLModel):
    id: UUID
    name: str
    description: Optional[str]
    photos: List[str]
    is_global: bool
    project_id: Optional[UUID]
    status: PersonaStatus
    lora_model_url: Optional[str]
    trigger_phrase: Optional[str]
    created_at: datetime


class LoraTrainingJob(BaseUUIDModel, table=True):
    """Table: lora_training_jobs"""

    __tablename__ = "lora_training_jobs"

    user_id: str = Field(max_length=255, nullable=False, index=True)
    persona_id: UUID = Field(foreign_key="personas.id", nullable=False, index=True)
    images_data_url: str = Field(nullable=False)
    trigger_phrase: str = Field(max_length=255, nullable=False)
    learning_rate: float = Field(default=0.00009)
    steps: int = Field(default=2500)
    multiresolution_training: bool = Field(default=True)
    subject_crop: bool = Field(default=True)
    create_masks: bool = Field(default=False)
    status: TrainingStatus = Field(
        default=TrainingStatus.PROCESSING,
        sa_type=enum_type(TrainingStatus),
        nullable=False,
    )
    request_id: Optional[str] = Field(default=None, max_length=255)
    result: Optional[Dict[str, Any]] = Field(default=None, sa_type=JSON)
    error_message: Optional[str] = Field(default=None)
    started_at: datetime = Field(default_factory=utc_now, sa_type=TZDateTime)
    completed_at: Optional[datetime] = Field(default=None, sa_type=TZDateTime)
