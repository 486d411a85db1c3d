"""
LangGraph pipeline assembly for post suggestions.
"""

from typing import Any, Dict, List, Optional

from langgraph.graph import END, StateGraph

from inflio.graph.nodes.copy_writer import copy_writer_node, should_check_eligibility
from inflio.graph.nodes.eligibility import eligibility_node
from inflio.graph.nodes.image_generator import image_generator_node
from inflio.graph.state import SuggestionState
from inflio.utils.logging import get_logger

logger = get_logger(__name__)


def create_suggestion_pipeline() -> StateGraph:
    """
    Create the suggestion pipeline.

    Flow:
    1. ImageGenerator -> CopyWriter
    2. CopyWriter -> (has copy) -> Eligibility
                  -> (no copy) -> END
    3. Eligibility -> END
    """
    workflow = StateGraph(SuggestionState)

    workflow.add_node("image_generator", image_generator_node)
    workflow.add_node("copy_writer", copy_writer_node)
    workflow.add_node("eligibility", eligibility_node)

    workflow.set_entry_point("image_generator")
    workflow.add_edge("image_generator", "copy_writer")
    workflow.add_conditional_edges(
        "copy_writer",
        should_check_eligibility,
        {"eligibility": "eligibility", "end": END},
    )
    workflow.add_edge("eligibility", END)

    return workflow


suggestion_pipeline = create_suggestion_pipeline().compile()


async def run_suggestion_pipeline(
    posts_service: Any,
    suggestion_id: str,
    user_id: str,
    content_type: str,
    content_idea: Dict[str, Any],
    platforms: List[str],
    persona_id: Optional[str] = None,
    lora_url: Optional[str] = None,
) -> SuggestionState:
    """
    Generate media and copy for one suggestion.

    ``posts_service`` supplies the generation steps and is passed to the
    nodes through the run config.
    """
    logger.info(
        "Starting suggestion pipeline",
        suggestion_id=suggestion_id,
        content_type=content_type,
        platforms=platforms,
    )

    initial_state: SuggestionState = {
        "suggestion_id": suggestion_id,
        "user_id": user_id,
        "content_type": content_type,
        "content_idea": content_idea,
        "platforms": list(platforms),
        "persona_id": persona_id,
        "lora_url": lora_url,
        "images": [],
        "copy_variants": {},
        "eligible_platforms": [],
        "current_step": "initializing",
    }

    final_state = await suggestion_pipeline.ainvoke(
        initial_state, config={"configurable": {"posts_service": posts_service}}
    )

    logger.info(
        "Suggestion pipeline completed",
        suggestion_id=suggestion_id,
        final_step=final_state.get("current_step"),
        eligible=final_state.get("eligible_platforms"),
    )
    return final_state
