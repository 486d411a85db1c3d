"""
Eligibility node - decides which platforms can take the suggestion as is.
"""

from langchain_core.runnables import RunnableConfig

from inflio.graph.state import SuggestionState


async def eligibility_node(state: SuggestionState, config: RunnableConfig) -> SuggestionState:
    posts_service = config["configurable"]["posts_service"]
    state["current_step"] = "checking_eligibility"
    state["eligible_platforms"] = posts_service.determine_eligibility(
        content_type=state["content_type"],
        image_count=len(state["images"]),
        copy_variants=state["copy_variants"],
    )
    state["current_step"] = "completed"
    return state
