"""Unit tests for the force layout.

Trajectories are not asserted exactly; only convergence and the direction
each force pushes in.
"""

import math
import random

import pytest

from taskgraph.graph.layout import ForceLayout, LayoutSettings
from taskgraph.graph.projector import GraphEdge, GraphNode
from taskgraph.tasks.models import TaskPriority


def make_node(node_id):
    return GraphNode(
        id=node_id,
        text=f"node {node_id}",
        completed=False,
        priority=TaskPriority.MEDIUM,
        is_blocked=False,
        dependencies=[],
    )


def distance(a, b):
    return math.hypot(a.x - b.x, a.y - b.y)


@pytest.fixture
def rng():
    return random.Random(7)


class TestLayoutSettings:
    """Test derived settings."""

    def test_default_decay_settles_in_about_300_ticks(self):
        settings = LayoutSettings()
        alpha = 1.0
        for _ in range(300):
            alpha += (0 - alpha) * settings.decay
        assert alpha == pytest.approx(settings.alpha_min, rel=1e-6)

    def test_center(self):
        assert LayoutSettings(width=800, height=400).center == (400, 200)


class TestConvergence:
    """Test that the simulation settles."""

    def test_settles(self, rng):
        nodes = [make_node(i) for i in range(5)]
        edges = [GraphEdge(0, 1, True), GraphEdge(1, 2, True), GraphEdge(0, 3, False)]
        layout = ForceLayout(nodes, edges, rng=rng)

        ticks = layout.run_until_settled()

        assert layout.settled
        assert 250 <= ticks <= 350
        assert all(math.isfinite(n.x) and math.isfinite(n.y) for n in nodes)

    def test_centroid_stays_at_center(self, rng):
        nodes = [make_node(i) for i in range(4)]
        layout = ForceLayout(nodes, [], LayoutSettings(width=800, height=400), rng=rng)
        layout.run_until_settled()

        cx = sum(n.x for n in nodes) / len(nodes)
        cy = sum(n.y for n in nodes) / len(nodes)
        assert cx == pytest.approx(400, abs=1)
        assert cy == pytest.approx(200, abs=1)

    def test_empty_graph(self):
        layout = ForceLayout([], [])
        layout.run_until_settled()
        assert layout.settled
        assert layout.positions() == {}

    def test_edges_to_unknown_nodes_dropped(self, rng):
        layout = ForceLayout([make_node(1)], [GraphEdge(1, 2, True)], rng=rng)
        assert layout.edges == []


class TestForces:
    """Test force directions."""

    def test_linked_pair_settles_near_link_distance(self, rng):
        a, b = make_node(1), make_node(2)
        layout = ForceLayout([a, b], [GraphEdge(1, 2, True)], rng=rng)
        layout.run_until_settled()

        assert 90 < distance(a, b) < 130

    def test_linked_nodes_closer_than_unlinked(self, rng):
        a, b, c = make_node(1), make_node(2), make_node(3)
        layout = ForceLayout([a, b, c], [GraphEdge(1, 2, True)], rng=rng)
        layout.run_until_settled()

        assert distance(a, b) < distance(a, c)
        assert distance(a, b) < distance(b, c)

    def test_collision_separates_overlapping_nodes(self, rng):
        """With charge and links off, collision alone pushes nodes apart."""
        a, b = make_node(1), make_node(2)
        settings = LayoutSettings(charge_strength=0.0)
        layout = ForceLayout([a, b], [], settings, rng=rng)
        a.x, a.y = 400.0, 200.0
        b.x, b.y = 401.0, 200.0

        layout.run_until_settled()

        assert distance(a, b) > 60

    def test_charge_repels(self, rng):
        a, b = make_node(1), make_node(2)
        settings = LayoutSettings(collision_radius=0.0)
        layout = ForceLayout([a, b], [], settings, rng=rng)
        start = distance(a, b)

        layout.tick(10)

        assert distance(a, b) > start


class TestDrag:
    """Test pinning during a drag."""

    def test_drag_pins_and_reheats(self, rng):
        a, b = make_node(1), make_node(2)
        layout = ForceLayout([a, b], [GraphEdge(1, 2, True)], rng=rng)
        layout.run_until_settled()

        layout.drag_start(1)
        assert not layout.settled
        assert layout.alpha_target == pytest.approx(0.3)

        target = (a.x + 40.0, a.y + 20.0)
        b_before = (b.x, b.y)
        layout.drag_move(1, *target)
        layout.tick(50)

        # Pinned node sits exactly under the pointer; alpha holds at the drag target
        assert (a.x, a.y) == target
        assert (b.x, b.y) != b_before
        assert not layout.settled

    def test_drag_end_releases_pin_and_keeps_alpha(self, rng):
        a = make_node(1)
        layout = ForceLayout([a, make_node(2)], [], rng=rng)
        layout.drag_start(1)
        layout.tick(5)
        alpha = layout.alpha

        layout.drag_end(1)

        assert a.fx is None and a.fy is None
        assert layout.alpha_target == 0.0
        assert layout.alpha == alpha

        layout.run_until_settled()
        assert layout.settled

    def test_drag_unknown_node(self):
        layout = ForceLayout([make_node(1)], [])
        with pytest.raises(KeyError):
            layout.drag_start(99)


class TestFind:
    """Test nearest-node lookup."""

    def test_find(self, rng):
        a, b = make_node(1), make_node(2)
        layout = ForceLayout([a, b], [], rng=rng)
        a.x, a.y = 0.0, 0.0
        b.x, b.y = 100.0, 0.0

        assert layout.find(10, 0) is a
        assert layout.find(90, 0, radius=20) is b
        assert layout.find(50, 80, radius=20) is None
