"""
Enum types for workflow states.
Stored as plain strings so rows stay readable from other clients.
"""
from enum import Enum


class ProjectStatus(str, Enum):
    """Project lifecycle."""
    DRAFT = "draft"
    PROCESSING = "processing"
    READY = "ready"
    PUBLISHED = "published"


class TaskType(str, Enum):
    """Kinds of per-project processing work."""
    TRANSCRIPTION = "transcription"
    CLIPS = "clips"
    BLOG = "blog"
    SOCIAL = "social"


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PostContentType(str, Enum):
    """Shapes a post suggestion can take."""
    CAROUSEL = "carousel"
    QUOTE = "quote"
    SINGLE = "single"
    THREAD = "thread"
    REEL = "reel"
    STORY = "story"


class SuggestionStatus(str, Enum):
    GENERATING = "generating"
    READY = "ready"
    APPROVED = "approved"
    STAGED = "staged"
    FAILED = "failed"


class JobStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Platform(str, Enum):
    """Platforms a post suggestion writes copy for."""
    INSTAGRAM = "instagram"
    TWITTER = "twitter"
    LINKEDIN = "linkedin"
    FACEBOOK = "facebook"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"


class SocialPlatform(str, Enum):
    """Platforms a social integration can connect to."""
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    X = "x"
    LINKEDIN = "linkedin"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    THREADS = "threads"


class PostState(str, Enum):
    """Social post publishing states."""
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"
    CANCELLED = "cancelled"


class StagedContentType(str, Enum):
    CLIP = "clip"
    BLOG = "blog"
    IMAGE = "image"
    CAROUSEL = "carousel"


class PersonaStatus(str, Enum):
    PENDING_UPLOAD = "pending_upload"
    TRAINING = "training"
    TRAINED = "trained"
    FAILED = "failed"


class TrainingStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
