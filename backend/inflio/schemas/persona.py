"""Persona schemas."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PersonaCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    photos: List[str] = Field(default_factory=list)
    is_global: bool = True
    project_id: Optional[UUID] = None


class PersonaUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    photos: Optional[List[str]] = None
    is_global: Optional[bool] = None
    project_id: Optional[UUID] = None
    meta: Optional[Dict[str, Any]] = None


class TrainLoraRequest(BaseModel):
    """LoRA training parameters; defaults suit portrait training."""

    persona_id: UUID
    images_data_url: str = Field(..., min_length=1)
    trigger_phrase: Optional[str] = None
    learning_rate: float = Field(default=0.00009, gt=0)
    steps: int = Field(default=2500, ge=1, le=10000)
    multiresolution_training: bool = True
    subject_crop: bool = True
    create_masks: bool = False


class TrainLoraResponse(BaseModel):
    success: bool
    job_id: UUID
    message: str
