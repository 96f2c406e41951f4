"""Zoom and pan state for the graph view."""

import logging
import math
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ViewTransform:
    """Screen = world * k + (x, y)."""

    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def apply(self, point: tuple[float, float]) -> tuple[float, float]:
        return point[0] * self.k + self.x, point[1] * self.k + self.y

    def invert(self, point: tuple[float, float]) -> tuple[float, float]:
        return (point[0] - self.x) / self.k, (point[1] - self.y) / self.k


IDENTITY = ViewTransform()


def _ease_cubic(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


@dataclass
class Transition:
    """Eased animation between two transforms."""

    start: ViewTransform
    end: ViewTransform
    duration: float
    elapsed: float = 0.0

    @property
    def done(self) -> bool:
        return self.elapsed >= self.duration

    def at(self, t: float) -> ViewTransform:
        """Interpolated transform at normalized time ``t`` in [0, 1]."""
        if t >= 1:
            return self.end
        e = _ease_cubic(max(t, 0.0))
        # Scale interpolates geometrically so zooming feels uniform
        k = math.exp(math.log(self.start.k) + (math.log(self.end.k) - math.log(self.start.k)) * e)
        x = self.start.x + (self.end.x - self.start.x) * e
        y = self.start.y + (self.end.y - self.start.y) * e
        return ViewTransform(k, x, y)

    def advance(self, dt: float) -> ViewTransform:
        self.elapsed += dt
        if self.duration <= 0:
            return self.end
        return self.at(self.elapsed / self.duration)


class Viewport:
    """Clamped zoom/pan controller."""

    def __init__(
        self,
        width: float = 800.0,
        height: float = 400.0,
        min_zoom: float = 0.1,
        max_zoom: float = 5.0,
        zoom_factor: float = 1.5,
        zoom_duration: float = 0.3,
        reset_duration: float = 0.5,
    ):
        """
        Initialize viewport.

        Args:
            width: Viewport width in screen units
            height: Viewport height in screen units
            min_zoom: Lower scale bound
            max_zoom: Upper scale bound
            zoom_factor: Multiplier applied by zoom_in / zoom_out
            zoom_duration: Seconds for zoom button animations
            reset_duration: Seconds for the reset animation
        """
        self.width = width
        self.height = height
        self.min_zoom = min_zoom
        self.max_zoom = max_zoom
        self.zoom_factor = zoom_factor
        self.zoom_duration = zoom_duration
        self.reset_duration = reset_duration

        self.transform = IDENTITY
        self.transition: Optional[Transition] = None

    @property
    def scale(self) -> float:
        return self.target.k

    @property
    def target(self) -> ViewTransform:
        """Where the view is heading: the transition end, or the current transform."""
        if self.transition is not None:
            return self.transition.end
        return self.transform

    @property
    def can_zoom_in(self) -> bool:
        return self.scale < self.max_zoom

    @property
    def can_zoom_out(self) -> bool:
        return self.scale > self.min_zoom

    @property
    def zoom_label(self) -> str:
        return f"{round(self.scale * 100)}%"

    def clamp(self, k: float) -> float:
        return min(max(k, self.min_zoom), self.max_zoom)

    def _centered(self, k: float, base: ViewTransform) -> ViewTransform:
        """Scale to ``k`` keeping the world point under the viewport center fixed."""
        center = (self.width / 2, self.height / 2)
        wx, wy = base.invert(center)
        return ViewTransform(k, center[0] - wx * k, center[1] - wy * k)

    def _animate(self, end: ViewTransform, duration: float) -> Transition:
        self.transition = Transition(start=self.transform, end=end, duration=duration)
        return self.transition

    def zoom_in(self) -> Optional[Transition]:
        """Zoom in by the zoom factor; None when already at max zoom."""
        if not self.can_zoom_in:
            return None
        k = self.clamp(self.scale * self.zoom_factor)
        logger.debug(f"Zoom in to {k:.3f}")
        return self._animate(self._centered(k, self.target), self.zoom_duration)

    def zoom_out(self) -> Optional[Transition]:
        """Zoom out by the zoom factor; None when already at min zoom."""
        if not self.can_zoom_out:
            return None
        k = self.clamp(self.scale / self.zoom_factor)
        logger.debug(f"Zoom out to {k:.3f}")
        return self._animate(self._centered(k, self.target), self.zoom_duration)

    def reset_view(self) -> Transition:
        """Animate back to scale 1 with no translation."""
        return self._animate(IDENTITY, self.reset_duration)

    def advance(self, dt: float) -> ViewTransform:
        """Step the running transition by ``dt`` seconds."""
        if self.transition is not None:
            self.transform = self.transition.advance(dt)
            if self.transition.done:
                self.transform = self.transition.end
                self.transition = None
        return self.transform

    def finish(self) -> ViewTransform:
        """Jump to the end of the running transition."""
        if self.transition is not None:
            self.transform = self.transition.end
            self.transition = None
        return self.transform

    def apply_gesture(self, k: float, x: float, y: float) -> ViewTransform:
        """Set the transform from an interactive gesture; cancels animations."""
        self.transition = None
        self.transform = ViewTransform(self.clamp(k), x, y)
        return self.transform

    def pan(self, dx: float, dy: float) -> ViewTransform:
        self.finish()
        t = self.transform
        return self.apply_gesture(t.k, t.x + dx, t.y + dy)

    def zoom_at(self, point: tuple[float, float], factor: float) -> ViewTransform:
        """Wheel-style zoom keeping the world point under ``point`` fixed."""
        self.finish()
        t = self.transform
        k = self.clamp(t.k * factor)
        wx, wy = t.invert(point)
        return self.apply_gesture(k, point[0] - wx * k, point[1] - wy * k)
