"""
CopyWriter node - per-platform captions, hashtags and calls to action.
"""

from langchain_core.runnables import RunnableConfig

from inflio.graph.state import SuggestionState
from inflio.utils.logging import get_logger

logger = get_logger(__name__)


async def copy_writer_node(state: SuggestionState, config: RunnableConfig) -> SuggestionState:
    posts_service = config["configurable"]["posts_service"]
    state["current_step"] = "writing_copy"

    state["copy_variants"] = await posts_service.generate_platform_copy(
        content_idea=state["content_idea"],
        platforms=state["platforms"],
        content_type=state["content_type"],
    )

    logger.info(
        "Suggestion copy written",
        suggestion_id=state["suggestion_id"],
        platforms=list(state["copy_variants"].keys()),
    )
    return state


def should_check_eligibility(state: SuggestionState) -> str:
    """Skip eligibility when no platform produced copy."""
    if not state.get("copy_variants"):
        logger.warning("No platform copy produced", suggestion_id=state["suggestion_id"])
        return "end"
    return "eligibility"
