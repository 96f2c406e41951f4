"""Cooperative, frame-paced runner for the force layout."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Optional

from taskgraph.graph.layout import ForceLayout

logger = logging.getLogger(__name__)


class SimulationTimer:
    """
    Ticks a layout once per frame until it settles.

    Each tick is followed by ``asyncio.sleep(frame_interval)``, so the event
    loop keeps handling other work between steps.

    Usage:
        timer = SimulationTimer(layout, on_tick=redraw)
        await timer.run()

        # After a drag reheats the layout
        timer.wake()
    """

    def __init__(
        self,
        layout: ForceLayout,
        frame_interval: float = 1 / 60,
        on_tick: Optional[Callable[[ForceLayout], Any]] = None,
    ):
        self.layout = layout
        self.frame_interval = frame_interval
        self.on_tick = on_tick
        self._task: Optional[asyncio.Task] = None
        self._stop_requested = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, max_ticks: Optional[int] = None) -> int:
        """
        Tick until settled, stopped, or ``max_ticks`` is reached.

        Returns:
            Number of ticks run
        """
        self._stop_requested = False
        ticks = 0
        while not self.layout.settled and not self._stop_requested:
            if max_ticks is not None and ticks >= max_ticks:
                break
            self.layout.tick()
            ticks += 1
            if self.on_tick:
                self.on_tick(self.layout)
            await asyncio.sleep(self.frame_interval)

        logger.debug(f"Simulation timer idle after {ticks} ticks (alpha={self.layout.alpha:.4f})")
        return ticks

    def start(self) -> asyncio.Task:
        """Schedule ``run`` on the running event loop."""
        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    def wake(self) -> Optional[asyncio.Task]:
        """Restart ticking if the layout has been perturbed since it settled."""
        if self.layout.settled:
            return None
        return self.start()

    async def stop(self) -> None:
        """Stop after the current tick and wait for the runner to exit."""
        self._stop_requested = True
        if self._task is not None:
            await self._task
            self._task = None
