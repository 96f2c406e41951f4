"""Derive a renderable node/edge set from the task store."""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from pydantic import BaseModel

from taskgraph.tasks.models import Task, TaskPriority
from taskgraph.tasks.resolver import is_blocked

logger = logging.getLogger(__name__)


class GraphSettings(BaseModel):
    """Visibility filters for the dependency graph."""

    show_completed: bool = False
    highlight_blocked: bool = False


@dataclass
class GraphNode:
    """Task node with simulation state."""

    id: int
    text: str
    completed: bool
    priority: TaskPriority
    is_blocked: bool
    dependencies: list[int]
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    # Non-None only while pinned by a drag
    fx: Optional[float] = None
    fy: Optional[float] = None

    @property
    def status(self) -> str:
        if self.completed:
            return "Completed"
        if self.is_blocked:
            return "Blocked by dependencies"
        return "Available"


@dataclass(frozen=True)
class GraphEdge:
    """Directed edge from a dependency to the task it blocks."""

    source: int
    target: int
    is_blocking: bool


@dataclass
class Projection:
    """Nodes and edges visible under a set of graph settings."""

    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)
    settings: GraphSettings = field(default_factory=GraphSettings)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node(self, node_id: int) -> Optional[GraphNode]:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def emphasized_edges(self) -> list[GraphEdge]:
        """Blocking edges, when blocked highlighting is on."""
        if not self.settings.highlight_blocked:
            return []
        return [e for e in self.edges if e.is_blocking]

    def emphasized_nodes(self) -> list[GraphNode]:
        """Blocked incomplete nodes, when blocked highlighting is on."""
        if not self.settings.highlight_blocked:
            return []
        return [n for n in self.nodes if n.is_blocked and not n.completed]

    def neighbors(self, node_id: int) -> tuple[set[int], list[GraphEdge]]:
        """
        Get everything connected to a node.

        Returns:
            Tuple of (connected node ids including the node itself when it has
            any edge, edges touching the node)
        """
        connected: set[int] = set()
        touching = []
        for edge in self.edges:
            if node_id in (edge.source, edge.target):
                touching.append(edge)
                connected.add(edge.source)
                connected.add(edge.target)
        return connected, touching


def project(tasks: Sequence[Task], settings: Optional[GraphSettings] = None) -> Projection:
    """
    Build the graph projection for a task snapshot.

    Args:
        tasks: Every known task
        settings: Visibility filters

    Returns:
        Projection with one node per visible task and one edge per visible
        dependency pair
    """
    settings = settings or GraphSettings()
    visible = [t for t in tasks if settings.show_completed or not t.completed]
    visible_by_id = {t.id: t for t in visible}

    nodes = [
        GraphNode(
            id=t.id,
            text=t.text,
            completed=t.completed,
            priority=t.priority,
            is_blocked=is_blocked(t, tasks),
            dependencies=list(t.depends_on),
        )
        for t in visible
    ]

    edges = []
    for t in visible:
        for dep_id in t.depends_on:
            dep = visible_by_id.get(dep_id)
            if dep is None:
                continue
            edges.append(GraphEdge(source=dep_id, target=t.id, is_blocking=not dep.completed))

    logger.debug(f"Projected {len(nodes)} nodes and {len(edges)} edges")
    return Projection(nodes=nodes, edges=edges, settings=settings)
