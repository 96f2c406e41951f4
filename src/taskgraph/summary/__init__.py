"""AI summary generation."""

from taskgraph.summary.client import GenerationClient, OllamaClient, create_client
from taskgraph.summary.generator import SummaryGenerator

__all__ = ["GenerationClient", "OllamaClient", "create_client", "SummaryGenerator"]
