"""
SQLModel ORM models for the application.
All models are exported here for convenient imports:
    from inflio.models import Project, PostSuggestion, SocialPost, ...
"""

from inflio.models.enums import (
    ProjectStatus,
    TaskType,
    TaskStatus,
    PostContentType,
    SuggestionStatus,
    JobStatus,
    Platform,
    SocialPlatform,
    PostState,
    StagedContentType,
    PersonaStatus,
    TrainingStatus,
)
from inflio.models.base import BaseUUIDModel, utc_now, ensure_utc
from inflio.models.project import Project, ProjectRead
from inflio.models.post_suggestion import (
    PostSuggestion,
    PostSuggestionRead,
    PostGenerationJob,
)
from inflio.models.staging import StagingSession, StagedPost
from inflio.models.social import (
    SocialIntegration,
    SocialIntegrationRead,
    SocialPost,
    SocialPostRead,
)
from inflio.models.persona import Persona, PersonaRead, LoraTrainingJob

__all__ = [
    # Enums
    "ProjectStatus",
    "TaskType",
    "TaskStatus",
    "PostContentType",
    "SuggestionStatus",
    "JobStatus",
    "Platform",
    "SocialPlatform",
    "PostState",
    "StagedContentType",
    "PersonaStatus",
    "TrainingStatus",
    # Base
    "BaseUUIDModel",
    "utc_now",
    "ensure_utc",
    # Project
    "Project",
    "ProjectRead",
    # Posts
    "PostSuggestion",
    "PostSuggestionRead",
    "PostGenerationJob",
    # Staging
    "StagingSession",
    "StagedPost",
    # Social
    "SocialIntegration",
    "SocialIntegrationRead",
    "SocialPost",
    "SocialPostRead",
    # Personas
    "Persona",
    "PersonaRead",
    "LoraTrainingJob",
]
