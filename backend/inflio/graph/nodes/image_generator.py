"""
ImageGenerator node - renders the post images for a suggestion.
"""

from langchain_core.runnables import RunnableConfig

from inflio.graph.state import SuggestionState
from inflio.utils.logging import get_logger

logger = get_logger(__name__)


async def image_generator_node(state: SuggestionState, config: RunnableConfig) -> SuggestionState:
    """
    Generate the images for the content type (carousel 5, thread 2, else 1).

    Failed renders are kept as placeholder entries so the slide order holds.
    """
    posts_service = config["configurable"]["posts_service"]
    state["current_step"] = "generating_images"

    state["images"] = await posts_service.generate_post_images(
        content_type=state["content_type"],
        content_idea=state["content_idea"],
        persona_id=state.get("persona_id"),
        lora_url=state.get("lora_url"),
    )

    logger.info(
        "Suggestion images generated",
        suggestion_id=state["suggestion_id"],
        count=len(state["images"]),
        failed=sum(1 for image in state["images"] if image.get("status") == "failed"),
    )
    return state
