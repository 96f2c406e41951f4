"""Graph projection, force layout and viewport."""

from taskgraph.graph.layout import ForceLayout, LayoutSettings
from taskgraph.graph.projector import GraphEdge, GraphNode, GraphSettings, Projection, project
from taskgraph.graph.timer import SimulationTimer
from taskgraph.graph.viewport import ViewTransform, Viewport

__all__ = [
    "ForceLayout",
    "LayoutSettings",
    "GraphEdge",
    "GraphNode",
    "GraphSettings",
    "Projection",
    "project",
    "SimulationTimer",
    "ViewTransform",
    "Viewport",
]
