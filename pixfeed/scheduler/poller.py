"""
Polling Service
===============

Runs a cycle immediately at startup and then once per interval until the
stop event is set. A stop request never interrupts a cycle in progress; the
loop exits at the next wait.
"""

import threading
from typing import Callable, Optional

from ..config.settings import get_settings
from ..ingestion.feed_source import FeedSource
from ..utils.logging import get_logger_for_component
from .run_cycle import CycleResult, RunCycle


class PollingService:
    """Fixed-interval loop around feed refresh and ``RunCycle.run``."""

    def __init__(
        self,
        feed_source: FeedSource,
        cycle: RunCycle,
        interval_seconds: Optional[float] = None,
        stop_event: Optional[threading.Event] = None,
        on_cycle: Optional[Callable[[CycleResult], None]] = None,
    ):
        """Initialize polling service.

        Args:
            feed_source: Source of feed entries
            cycle: Run cycle to execute on every tick
            interval_seconds: Seconds between cycles (default from config)
            stop_event: Event that ends the loop when set
            on_cycle: Optional callback receiving each cycle's result
        """
        if interval_seconds is None:
            interval_seconds = get_settings().feed.poll_interval_seconds
        self.feed_source = feed_source
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.stop_event = stop_event or threading.Event()
        self.on_cycle = on_cycle
        self.logger = get_logger_for_component("poller")
        self.last_result: Optional[CycleResult] = None
        self.cycles_run = 0

    def start(self) -> None:
        """Run until stopped.

        Raises:
            FeedFetchError: If the initial feed fetch fails
        """
        self.feed_source.fetch()
        self._run_cycle()

        while not self.stop_event.wait(self.interval_seconds):
            self.feed_source.refresh()
            self._run_cycle()

        self.logger.info("Polling stopped")

    def stop(self) -> None:
        """Request shutdown after the current cycle."""
        self.logger.info("Stop requested, finishing current run")
        self.stop_event.set()

    def _run_cycle(self) -> None:
        result = self.cycle.run(self.feed_source.entries)
        self.last_result = result
        self.cycles_run += 1
        if self.on_cycle:
            self.on_cycle(result)
