"""
LangGraph state for post suggestion generation.
"""

from typing import Any, Dict, List, Optional, TypedDict


class SuggestionState(TypedDict):
    """State that flows through the suggestion pipeline.

    The suggestion row already exists (status ``generating``) when the
    pipeline starts; nodes fill in media and copy.
    """

    # Identifiers
    suggestion_id: str
    user_id: str

    # Input
    content_type: str
    content_idea: Dict[str, Any]
    platforms: List[str]
    persona_id: Optional[str]
    lora_url: Optional[str]

    # Generated data
    images: List[Dict[str, Any]]
    copy_variants: Dict[str, Dict[str, Any]]
    eligible_platforms: List[str]

    current_step: str
