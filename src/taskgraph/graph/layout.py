"""Force-directed layout for the dependency graph.

The simulation follows the usual velocity Verlet scheme: every tick the
energy parameter ``alpha`` moves toward ``alpha_target``, each force adds to
node velocities (the centering force shifts positions directly), and then
velocities are damped and integrated into positions. Once ``alpha`` falls
below ``alpha_min`` the layout is settled and ticking stops until something
reheats it (a new topology or a drag).
"""

import logging
import math
import random
from typing import Iterable, Optional

from pydantic import BaseModel

from taskgraph.graph.projector import GraphEdge, GraphNode

logger = logging.getLogger(__name__)

# Golden-angle spiral used to seed initial positions
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


class LayoutSettings(BaseModel):
    """Tuning knobs for the force simulation."""

    width: float = 800.0
    height: float = 400.0

    link_distance: float = 100.0
    charge_strength: float = -300.0
    charge_distance_min: float = 1.0
    charge_distance_max: float = math.inf
    center_strength: float = 1.0
    collision_radius: float = 35.0
    collision_strength: float = 1.0

    alpha_min: float = 0.001
    alpha_decay: Optional[float] = None  # None = settle in ~300 ticks
    velocity_decay: float = 0.4
    drag_alpha_target: float = 0.3
    initial_radius: float = 10.0

    @property
    def decay(self) -> float:
        if self.alpha_decay is not None:
            return self.alpha_decay
        return 1 - self.alpha_min ** (1 / 300)

    @property
    def center(self) -> tuple[float, float]:
        return self.width / 2, self.height / 2


class ForceLayout:
    """Physics simulation that assigns 2D positions to graph nodes."""

    def __init__(
        self,
        nodes: Iterable[GraphNode],
        edges: Iterable[GraphEdge],
        settings: Optional[LayoutSettings] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize and seed a fresh simulation.

        Args:
            nodes: Nodes to lay out; their x/y/vx/vy are overwritten
            edges: Edges between the nodes; edges to unknown nodes are dropped
            settings: Layout tuning
            rng: Random source for tie-breaking jiggle
        """
        self.settings = settings or LayoutSettings()
        self.rng = rng or random.Random()
        self.nodes = list(nodes)
        self._by_id = {n.id: n for n in self.nodes}

        self.edges = []
        for edge in edges:
            if edge.source in self._by_id and edge.target in self._by_id:
                self.edges.append(edge)
            else:
                logger.debug(f"Dropping edge with unknown endpoint: {edge.source} -> {edge.target}")

        self.alpha = 1.0
        self.alpha_target = 0.0
        self.tick_count = 0
        self._dragging: set[int] = set()

        self._seed_positions()
        self._init_links()

        logger.debug(f"Layout started with {len(self.nodes)} nodes and {len(self.edges)} edges")

    def _seed_positions(self) -> None:
        cx, cy = self.settings.center
        for i, node in enumerate(self.nodes):
            radius = self.settings.initial_radius * math.sqrt(0.5 + i)
            angle = i * INITIAL_ANGLE
            node.x = cx + radius * math.cos(angle)
            node.y = cy + radius * math.sin(angle)
            node.vx = 0.0
            node.vy = 0.0
            if node.fx is not None:
                node.x = node.fx
            if node.fy is not None:
                node.y = node.fy

    def _init_links(self) -> None:
        degree = {n.id: 0 for n in self.nodes}
        for edge in self.edges:
            degree[edge.source] += 1
            degree[edge.target] += 1

        # Springs on busy nodes are weaker so hubs are not yanked around
        self._link_strength = []
        self._link_bias = []
        for edge in self.edges:
            s, t = degree[edge.source], degree[edge.target]
            self._link_strength.append(1 / min(s, t))
            self._link_bias.append(s / (s + t))

    @property
    def settled(self) -> bool:
        """True once alpha has decayed below alpha_min."""
        return self.alpha < self.settings.alpha_min

    def node(self, node_id: int) -> GraphNode:
        node = self._by_id.get(node_id)
        if node is None:
            raise KeyError(f"Node not found: {node_id}")
        return node

    def reheat(self, alpha: float = 1.0) -> None:
        """Raise the simulation energy so it resumes moving."""
        self.alpha = max(self.alpha, alpha)

    def tick(self, iterations: int = 1) -> None:
        """Advance the simulation by a number of steps."""
        velocity_keep = 1 - self.settings.velocity_decay
        for _ in range(iterations):
            self.alpha += (self.alpha_target - self.alpha) * self.settings.decay

            self._apply_links()
            self._apply_charge()
            self._apply_center()
            self._apply_collision()

            for node in self.nodes:
                if node.fx is None:
                    node.vx *= velocity_keep
                    node.x += node.vx
                else:
                    node.x = node.fx
                    node.vx = 0.0
                if node.fy is None:
                    node.vy *= velocity_keep
                    node.y += node.vy
                else:
                    node.y = node.fy
                    node.vy = 0.0

            self.tick_count += 1

    def run_until_settled(self, max_ticks: int = 10_000) -> int:
        """
        Tick until the layout settles.

        Returns:
            Number of ticks run
        """
        ticks = 0
        while not self.settled and ticks < max_ticks:
            self.tick()
            ticks += 1
        if not self.settled:
            logger.warning(f"Layout not settled after {max_ticks} ticks (alpha={self.alpha:.4f})")
        return ticks

    def positions(self) -> dict[int, tuple[float, float]]:
        return {n.id: (n.x, n.y) for n in self.nodes}

    def find(self, x: float, y: float, radius: float = math.inf) -> Optional[GraphNode]:
        """Get the node closest to a point, if any lies within ``radius``."""
        closest = None
        best = radius * radius if radius != math.inf else math.inf
        for node in self.nodes:
            d2 = (node.x - x) ** 2 + (node.y - y) ** 2
            if d2 < best:
                closest = node
                best = d2
        return closest

    def drag_start(self, node_id: int) -> None:
        """Pin a node at its current position and wake the simulation."""
        node = self.node(node_id)
        self._dragging.add(node_id)
        self.alpha_target = self.settings.drag_alpha_target
        self.reheat(self.alpha_target)
        node.fx = node.x
        node.fy = node.y
        logger.debug(f"Drag started on node {node_id}")

    def drag_move(self, node_id: int, x: float, y: float) -> None:
        """Move a pinned node to the pointer location."""
        node = self.node(node_id)
        node.fx = x
        node.fy = y

    def drag_end(self, node_id: int) -> None:
        """Release the pin; alpha keeps its value and decays from there."""
        node = self.node(node_id)
        self._dragging.discard(node_id)
        if not self._dragging:
            self.alpha_target = 0.0
        node.fx = None
        node.fy = None
        logger.debug(f"Drag ended on node {node_id}")

    def _jiggle(self) -> float:
        return (self.rng.random() - 0.5) * 1e-6

    def _apply_links(self) -> None:
        distance = self.settings.link_distance
        for edge, strength, bias in zip(self.edges, self._link_strength, self._link_bias):
            source = self._by_id[edge.source]
            target = self._by_id[edge.target]
            x = target.x + target.vx - source.x - source.vx or self._jiggle()
            y = target.y + target.vy - source.y - source.vy or self._jiggle()
            length = math.sqrt(x * x + y * y)
            length = (length - distance) / length * self.alpha * strength
            x *= length
            y *= length
            target.vx -= x * bias
            target.vy -= y * bias
            source.vx += x * (1 - bias)
            source.vy += y * (1 - bias)

    def _apply_charge(self) -> None:
        strength = self.settings.charge_strength * self.alpha
        min2 = self.settings.charge_distance_min ** 2
        max2 = self.settings.charge_distance_max ** 2
        for node in self.nodes:
            for other in self.nodes:
                if other is node:
                    continue
                x = other.x - node.x
                y = other.y - node.y
                l2 = x * x + y * y
                if l2 >= max2:
                    continue
                if x == 0:
                    x = self._jiggle()
                    l2 += x * x
                if y == 0:
                    y = self._jiggle()
                    l2 += y * y
                if l2 < min2:
                    l2 = math.sqrt(min2 * l2)
                w = strength / l2
                node.vx += x * w
                node.vy += y * w

    def _apply_center(self) -> None:
        if not self.nodes:
            return
        cx, cy = self.settings.center
        n = len(self.nodes)
        sx = (sum(node.x for node in self.nodes) / n - cx) * self.settings.center_strength
        sy = (sum(node.y for node in self.nodes) / n - cy) * self.settings.center_strength
        for node in self.nodes:
            node.x -= sx
            node.y -= sy

    def _apply_collision(self) -> None:
        radius = self.settings.collision_radius
        if radius <= 0:
            return
        # Equal radii split every correction evenly between the pair
        share = 0.5
        reach = radius + radius
        for i, node in enumerate(self.nodes):
            xi = node.x + node.vx
            yi = node.y + node.vy
            for other in self.nodes[i + 1:]:
                x = xi - other.x - other.vx
                y = yi - other.y - other.vy
                l2 = x * x + y * y
                if l2 >= reach * reach:
                    continue
                if x == 0:
                    x = self._jiggle()
                    l2 += x * x
                if y == 0:
                    y = self._jiggle()
                    l2 += y * y
                length = math.sqrt(l2)
                length = (reach - length) / length * self.settings.collision_strength
                x *= length
                y *= length
                node.vx += x * share
                node.vy += y * share
                other.vx -= x * (1 - share)
                other.vy -= y * (1 - share)
