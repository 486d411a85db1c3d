"""LangGraph pipeline for post suggestion generation."""
from inflio.graph.pipeline import run_suggestion_pipeline, suggestion_pipeline
from inflio.graph.state import SuggestionState

__all__ = ["run_suggestion_pipeline", "suggestion_pipeline", "SuggestionState"]
