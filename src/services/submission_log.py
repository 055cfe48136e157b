"""
Append-only submissions log.

Each accepted submission is written as one formatted text block on an
O_APPEND descriptor while holding a process-wide lock, so concurrent
requests never interleave their blocks. Partial writes are resumed until
the whole block is on disk. The file is never read back, rotated or
truncated by this service.
"""

import logging
import os
import threading
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when a block cannot be appended to the log file."""
    pass


class SubmissionLog:
    """File sink that durably appends formatted text blocks."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, entry: str) -> None:
        """
        Append one block to the log file.

        Args:
            entry: Fully formatted text block

        Raises:
            PersistenceError: If the file cannot be opened or written. A block
                interrupted by an I/O error may be left partially written.
        """
        data = entry.encode('utf-8')

        with self._lock:
            try:
                fd = os.open(self.path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
                try:
                    self._write_all(fd, data)
                finally:
                    os.close(fd)
            except OSError as e:
                raise PersistenceError(f"Failed to append to {self.path}: {e}") from e

        logger.info(f"Submission saved to: {self.path}")

    def _write_all(self, fd: int, data: bytes) -> None:
        remaining = memoryview(data)
        while remaining:
            written = os.write(fd, remaining)
            if written == 0:
                raise PersistenceError(
                    f"Short write to {self.path}: {len(data) - len(remaining)} of {len(data)} bytes"
                )
            remaining = remaining[written:]
