"""
Run Cycle
=========

One polling pass: extract and download every entry's image, then sweep the
storage directory once. Per-entry failures are logged and skipped; the cycle
itself never raises.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..config.settings import get_settings
from ..ingestion.feed_source import FeedEntry
from ..ingestion.markup_extractor import MarkupExtractor
from ..storage.resource_fetcher import ResourceFetcher, StoredFile
from ..storage.retention import RetentionSweeper, SweepResult
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import (
    ExtractionError,
    FetchError,
    SweepListError,
    handle_exception,
)


@dataclass
class CycleResult:
    """Summary of a single run."""

    stored: List[StoredFile] = field(default_factory=list)
    skipped: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)
    sweep: Optional[SweepResult] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    overlapped: bool = False

    @property
    def duration_seconds(self) -> float:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0


class RunCycle:
    """Sequential extract → fetch → sweep orchestration."""

    def __init__(
        self,
        extractor: Optional[MarkupExtractor] = None,
        fetcher: Optional[ResourceFetcher] = None,
        sweeper: Optional[RetentionSweeper] = None,
        storage_dir: Optional[Union[str, Path]] = None,
        cap_bytes: Optional[int] = None,
    ):
        settings = get_settings()
        self.extractor = extractor or MarkupExtractor()
        self.fetcher = fetcher or ResourceFetcher()
        self.sweeper = sweeper or RetentionSweeper()
        self.storage_dir = Path(storage_dir or settings.storage.directory)
        self.cap_bytes = cap_bytes if cap_bytes is not None else settings.storage.max_total_bytes
        self.logger = get_logger_for_component("run_cycle")
        self._running = threading.Lock()

    def run(self, entries: Iterable[FeedEntry]) -> CycleResult:
        """Process all entries, then sweep once.

        A call made while another run is in progress returns immediately
        with ``overlapped`` set.
        """
        if not self._running.acquire(blocking=False):
            self.logger.warning("Previous run still in progress, skipping this trigger")
            return CycleResult(overlapped=True)

        try:
            result = CycleResult(started_at=datetime.now())
            with PerformanceLogger(self.logger, "run", storage_dir=str(self.storage_dir)):
                for entry in entries:
                    self._process_entry(entry, result)
                result.sweep = self._sweep(result)
            result.finished_at = datetime.now()

            self.logger.info(
                f"Run stored {len(result.stored)} images, skipped {result.skipped}, "
                f"{len(result.errors)} errors",
                extra={
                    "stored": len(result.stored),
                    "skipped": result.skipped,
                    "errors": len(result.errors),
                },
            )
            return result
        finally:
            self._running.release()

    def _process_entry(self, entry: FeedEntry, result: CycleResult) -> None:
        log = self.logger.bind(link=entry.link)

        try:
            target = self.extractor.extract(entry.content, link=entry.link)
        except ExtractionError as e:
            log.error(f"Couldn't parse html for {entry.link}: {e}", extra=e.to_dict())
            self._record(result, "extract", entry, e)
            return
        except Exception as e:
            error = handle_exception(e, log, "extract", {"link": entry.link})
            self._record(result, "extract", entry, error)
            return

        if not target.has_resource:
            log.info(f"No [link] found for {entry.link}, skipping")
            result.skipped += 1
            return

        title = target.title if target.has_title else ""
        try:
            stored = self.fetcher.fetch(target.resource_url, title, self.storage_dir)
        except FetchError as e:
            log.error(f"Couldn't store [{title}]: {e}", extra=e.to_dict())
            self._record(result, "fetch", entry, e, title=title)
            return
        except Exception as e:
            error = handle_exception(
                e, log, "fetch", {"link": entry.link, "title": title}
            )
            self._record(result, "fetch", entry, error, title=title)
            return

        result.stored.append(stored)

    def _sweep(self, result: CycleResult) -> Optional[SweepResult]:
        try:
            return self.sweeper.sweep(self.storage_dir, self.cap_bytes)
        except SweepListError as e:
            self.logger.error(f"Cleanup aborted: {e}", extra=e.to_dict())
            result.errors.append({"stage": "sweep", "error": str(e)})
        except Exception as e:
            error = handle_exception(e, self.logger, "sweep")
            result.errors.append({"stage": "sweep", "error": str(error)})
        return None

    @staticmethod
    def _record(
        result: CycleResult,
        stage: str,
        entry: FeedEntry,
        error: Exception,
        title: Optional[str] = None,
    ) -> None:
        record = {"stage": stage, "link": entry.link, "error": str(error)}
        if title is not None:
            record["title"] = title
        result.errors.append(record)
