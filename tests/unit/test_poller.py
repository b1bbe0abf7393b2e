"""
Unit Tests for Polling Service
==============================
"""

import threading
from unittest.mock import Mock

import pytest

from pixfeed.ingestion.feed_source import FeedEntry, FeedSource
from pixfeed.scheduler.poller import PollingService
from pixfeed.scheduler.run_cycle import CycleResult, RunCycle
from pixfeed.utils.exceptions import FeedFetchError


@pytest.fixture
def feed_source():
    source = Mock(spec=FeedSource)
    source.entries = [FeedEntry(content="<table></table>", link="http://reddit.com/r/x/1")]
    return source


@pytest.fixture
def cycle():
    cycle = Mock(spec=RunCycle)
    cycle.run.return_value = CycleResult()
    return cycle


class TestPollingService:
    """Test cases for PollingService.start and stop."""

    def test_first_cycle_runs_immediately(self, feed_source, cycle):
        stop = threading.Event()
        stop.set()
        service = PollingService(feed_source, cycle, interval_seconds=3600, stop_event=stop)

        service.start()

        feed_source.fetch.assert_called_once()
        feed_source.refresh.assert_not_called()
        cycle.run.assert_called_once_with(feed_source.entries)
        assert service.cycles_run == 1
        assert service.last_result is cycle.run.return_value

    def test_cycles_repeat_until_stopped(self, feed_source, cycle):
        stop = threading.Event()
        seen = []

        def on_cycle(result):
            seen.append(result)
            if len(seen) == 3:
                stop.set()

        service = PollingService(
            feed_source, cycle, interval_seconds=0, stop_event=stop, on_cycle=on_cycle
        )

        service.start()

        assert len(seen) == 3
        assert cycle.run.call_count == 3
        assert feed_source.fetch.call_count == 1
        assert feed_source.refresh.call_count == 2

    def test_only_latest_result_is_retained(self, feed_source, cycle):
        stop = threading.Event()
        produced = [CycleResult(skipped=i) for i in range(5)]
        cycle.run.side_effect = produced

        def on_cycle(result):
            if result is produced[-1]:
                stop.set()

        service = PollingService(
            feed_source, cycle, interval_seconds=0, stop_event=stop, on_cycle=on_cycle
        )

        service.start()

        assert service.cycles_run == 5
        assert service.last_result is produced[-1]
        assert not hasattr(service, "results")

    def test_initial_fetch_failure_propagates(self, feed_source, cycle):
        feed_source.fetch.side_effect = FeedFetchError("Failed to fetch feed")
        service = PollingService(feed_source, cycle, interval_seconds=0)

        with pytest.raises(FeedFetchError):
            service.start()

        cycle.run.assert_not_called()

    def test_stop_sets_event(self, feed_source, cycle):
        service = PollingService(feed_source, cycle, interval_seconds=3600)

        service.stop()

        assert service.stop_event.is_set()

    def test_stop_from_another_thread(self, feed_source, cycle):
        service = PollingService(feed_source, cycle, interval_seconds=3600)
        worker = threading.Thread(target=service.start)
        worker.start()

        service.stop()
        worker.join(timeout=5)

        assert not worker.is_alive()
        assert cycle.run.call_count >= 1

    def test_interval_defaults_from_settings(self, feed_source, cycle):
        service = PollingService(feed_source, cycle)

        assert service.interval_seconds == 3600
