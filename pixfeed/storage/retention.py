"""
Retention Sweeper
=================

Keeps the storage directory under a byte cap.

A sweep snapshots the directory, and when the total reaches the cap walks
the files oldest-first with a running size. Once the running size has
already reached the cap, every further file is deleted; the file whose own
size pushes the total over the cap is kept.
"""

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Set, Union

from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DeleteError, SweepListError


@dataclass
class DirectoryEntry:
    """Sweep-time view of one stored file."""

    name: str
    size_bytes: int
    modified_at: datetime


@dataclass
class SweepResult:
    """Outcome of one sweep."""

    total_size: int = 0
    removed: Set[str] = field(default_factory=set)
    failed: Dict[str, str] = field(default_factory=dict)
    retained_size: int = 0

    @property
    def removed_count(self) -> int:
        return len(self.removed)


class RetentionSweeper:
    """Size-bounded eviction over a flat directory."""

    def __init__(self):
        self.logger = get_logger_for_component("sweeper")

    def list_entries(self, directory: Union[str, Path]) -> List[DirectoryEntry]:
        """Snapshot the regular files in ``directory`` (non-recursive).

        Raises:
            SweepListError: If the directory cannot be listed
        """
        entries = []
        try:
            with os.scandir(directory) as scan:
                for item in scan:
                    try:
                        if not item.is_file(follow_symlinks=False):
                            continue
                        stat = item.stat(follow_symlinks=False)
                    except FileNotFoundError:
                        # Removed between listing and stat
                        continue
                    entries.append(
                        DirectoryEntry(
                            name=item.name,
                            size_bytes=stat.st_size,
                            modified_at=datetime.fromtimestamp(
                                stat.st_mtime, tz=timezone.utc
                            ),
                        )
                    )
        except OSError as e:
            raise SweepListError(
                f"Couldn't list storage directory: {e}", path=str(directory)
            ) from e
        return entries

    def sweep(self, directory: Union[str, Path], cap_bytes: int) -> SweepResult:
        """Delete files until the retained total is bounded by ``cap_bytes``.

        Args:
            directory: Storage directory
            cap_bytes: Retention cap in bytes

        Returns:
            SweepResult with the removed file names

        Raises:
            SweepListError: If the directory cannot be listed
        """
        entries = self.list_entries(directory)
        total_size = sum(entry.size_bytes for entry in entries)
        result = SweepResult(total_size=total_size, retained_size=total_size)

        self.logger.info(
            f"Starting cleanup, totalSize is {total_size}",
            extra={"entries": len(entries), "cap_bytes": cap_bytes},
        )

        if total_size < cap_bytes:
            return result

        entries.sort(key=lambda entry: (entry.modified_at, entry.name))

        current_size = 0
        for entry in entries:
            # Checked before this entry's size is added
            if current_size >= cap_bytes:
                try:
                    self._remove(Path(directory) / entry.name)
                    result.removed.add(entry.name)
                    result.retained_size -= entry.size_bytes
                except FileNotFoundError:
                    self.logger.debug(f"[{entry.name}] already removed")
                    result.retained_size -= entry.size_bytes
                except DeleteError as e:
                    self.logger.warning(
                        f"Couldn't remove [{entry.name}]: {e}", extra=e.to_dict()
                    )
                    result.failed[entry.name] = str(e)
            current_size += entry.size_bytes

        self.logger.info(
            f"Cleanup removed {result.removed_count} files, "
            f"{result.retained_size} bytes retained"
        )
        return result

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            raise
        except OSError as e:
            raise DeleteError(f"Couldn't remove file: {e}", path=str(path)) from e
