"""LangGraph nodes for the post suggestion pipeline."""
from inflio.graph.nodes.image_generator import image_generator_node
from inflio.graph.nodes.copy_writer import copy_writer_node
from inflio.graph.nodes.eligibility import eligibility_node

__all__ = [
    "image_generator_node",
    "copy_writer_node",
    "eligibility_node",
]
