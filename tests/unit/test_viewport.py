"""Unit tests for the zoom/pan viewport."""

import pytest

from taskgraph.graph.viewport import IDENTITY, Transition, ViewTransform, Viewport


@pytest.fixture
def viewport():
    return Viewport(width=800, height=400)


class TestViewTransform:
    """Test ViewTransform."""

    def test_apply_and_invert(self):
        t = ViewTransform(2.0, 10.0, -5.0)
        assert t.apply((1.0, 1.0)) == (12.0, -3.0)
        assert t.invert(t.apply((3.0, 4.0))) == pytest.approx((3.0, 4.0))


class TestTransition:
    """Test eased transitions."""

    def test_endpoints(self):
        tr = Transition(start=IDENTITY, end=ViewTransform(4.0, 100.0, 50.0), duration=0.3)
        assert tr.at(0) == ViewTransform(1.0, 0.0, 0.0)
        assert tr.at(1) == ViewTransform(4.0, 100.0, 50.0)

    def test_scale_is_geometric_at_midpoint(self):
        tr = Transition(start=IDENTITY, end=ViewTransform(4.0, 0.0, 0.0), duration=1.0)
        assert tr.at(0.5).k == pytest.approx(2.0)

    def test_advance(self):
        tr = Transition(start=IDENTITY, end=ViewTransform(2.0, 0.0, 0.0), duration=0.3)
        tr.advance(0.1)
        assert not tr.done
        tr.advance(0.3)
        assert tr.done


class TestZoomButtons:
    """Test zoom_in / zoom_out / reset_view."""

    def test_zoom_in_scales_by_factor(self, viewport):
        viewport.zoom_in()
        assert viewport.finish().k == pytest.approx(1.5)
        assert viewport.zoom_label == "150%"

    def test_zoom_keeps_center_fixed(self, viewport):
        viewport.zoom_in()
        t = viewport.finish()
        assert t.invert((400, 200)) == pytest.approx((400, 200))

    def test_repeated_zoom_in_clamped(self, viewport):
        for _ in range(20):
            viewport.zoom_in()
            viewport.advance(1.0)
            assert viewport.scale <= 5.0
        assert viewport.scale == pytest.approx(5.0)
        assert not viewport.can_zoom_in
        assert viewport.zoom_in() is None

    def test_repeated_zoom_out_clamped(self, viewport):
        for _ in range(20):
            viewport.zoom_out()
            assert viewport.scale >= 0.1
        assert viewport.scale == pytest.approx(0.1)
        assert viewport.zoom_out() is None

    def test_zoom_compounds_on_pending_target(self, viewport):
        """A second click before the first animation ends zooms from its target."""
        viewport.zoom_in()
        viewport.advance(0.1)
        viewport.zoom_in()
        assert viewport.finish().k == pytest.approx(2.25)

    def test_reset(self, viewport):
        viewport.zoom_in()
        viewport.pan(30, 40)
        viewport.reset_view()
        viewport.advance(0.25)
        assert viewport.transform != IDENTITY
        viewport.advance(0.25)
        assert viewport.transform == IDENTITY
        assert viewport.transition is None


class TestGestures:
    """Test pan and wheel zoom."""

    def test_pan(self, viewport):
        t = viewport.pan(10, -20)
        assert (t.k, t.x, t.y) == (1.0, 10.0, -20.0)

    def test_zoom_at_keeps_point_fixed(self, viewport):
        before = viewport.transform.invert((100, 50))
        t = viewport.zoom_at((100, 50), 3.0)
        assert t.invert((100, 50)) == pytest.approx(before)

    def test_gesture_clamped(self, viewport):
        assert viewport.apply_gesture(50.0, 0, 0).k == 5.0
        assert viewport.apply_gesture(0.01, 0, 0).k == 0.1

    def test_gesture_cancels_transition(self, viewport):
        viewport.zoom_in()
        viewport.pan(5, 5)
        assert viewport.transition is None
