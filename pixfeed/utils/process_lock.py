"""
Process Lock Utilities
======================

Prevents two pollers from writing into (and sweeping) the same storage
directory at the same time.
"""

import os
import fcntl
import logging
import hashlib
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ProcessLock:
    """File-based process lock to prevent multiple instances."""

    def __init__(self, lock_name: str, lock_dir: Optional[str] = None):
        """
        Initialize process lock.

        Args:
            lock_name: Name for the lock file (without extension)
            lock_dir: Directory for lock files (defaults to /tmp or system temp)
        """
        if lock_dir is None:
            lock_dir = "/tmp" if os.name == "posix" else os.environ.get("TEMP", ".")

        self.lock_file = Path(lock_dir) / f"{lock_name}.lock"
        self.lock_fd: Optional[int] = None
        self.acquired = False

    def acquire(self) -> bool:
        """
        Acquire the lock without blocking.

        Returns:
            True if lock was acquired, False if another process holds it
        """
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            self.lock_fd = os.open(str(self.lock_file), os.O_CREAT | os.O_RDWR)
            fcntl.flock(self.lock_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)

            os.ftruncate(self.lock_fd, 0)
            os.write(self.lock_fd, f"{os.getpid()}\n".encode())
            os.fsync(self.lock_fd)

            self.acquired = True
            logger.info(f"Process lock acquired: {self.lock_file}")
            return True

        except OSError as e:
            if self.lock_fd is not None:
                try:
                    os.close(self.lock_fd)
                except OSError as close_error:
                    logger.debug(f"Error closing lock descriptor: {close_error}")
                self.lock_fd = None

            existing_pid = self.holder_pid()
            if existing_pid:
                logger.warning(
                    f"Process lock already held by PID {existing_pid}: {self.lock_file}"
                )
            else:
                logger.warning(f"Process lock unavailable: {self.lock_file} ({e})")

            return False

    def release(self) -> None:
        """Release the lock."""
        if self.lock_fd is not None and self.acquired:
            try:
                fcntl.flock(self.lock_fd, fcntl.LOCK_UN)
                os.close(self.lock_fd)
                self.lock_file.unlink(missing_ok=True)
                logger.info(f"Process lock released: {self.lock_file}")
            except OSError as e:
                logger.warning(f"Error releasing lock: {e}")
            finally:
                self.lock_fd = None
                self.acquired = False

    def holder_pid(self) -> Optional[int]:
        """PID recorded by the process currently holding the lock."""
        try:
            if self.lock_file.exists():
                return int(self.lock_file.read_text().strip())
        except (ValueError, OSError):
            pass
        return None

    def __enter__(self):
        if not self.acquire():
            raise RuntimeError(f"Could not acquire process lock: {self.lock_file}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()


def lock_for_storage_dir(storage_dir: str, lock_dir: Optional[str] = None) -> ProcessLock:
    """Build the lock guarding a given storage directory.

    The lock name is derived from the directory's absolute path so that two
    pollers using different directories do not block each other.
    """
    resolved = str(Path(storage_dir).resolve())
    digest = hashlib.sha256(resolved.encode()).hexdigest()[:16]
    return ProcessLock(f"pixfeed-{digest}", lock_dir=lock_dir)
