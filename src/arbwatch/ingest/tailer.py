"""
Incremental log tailing.

Reads only the byte range appended since the previous poll, so no line
is delivered twice and none is skipped while the file only grows.
"""

import logging
from collections import deque
from pathlib import Path

from arbwatch.config.constants import BACKFILL_LINE_LIMIT
from arbwatch.ingest.cursor import WatchCursor


logger = logging.getLogger(__name__)


def decode_lines(data: bytes) -> list[str]:
    """Split a raw byte range into text lines."""
    return data.decode("utf-8", errors="replace").splitlines()


class LogTailer:
    """
    Polls a log source for growth.

    Each poll compares the current file size with the cursor offset and
    returns the lines contained in the newly appended bytes.
    """

    def __init__(
        self,
        path: Path,
        cursor: WatchCursor | None = None,
        from_start: bool = False,
    ) -> None:
        """
        Initialize tailer.

        Args:
            path: Log file to follow.
            cursor: Existing cursor to resume from.
            from_start: Start at offset 0 instead of the current end
                (ignored when a cursor is given).
        """
        self._path = Path(path)
        self._cursor = cursor
        self._from_start = from_start
        self._bytes_read = 0
        self._truncations = 0

    @property
    def path(self) -> Path:
        """Followed file."""
        return self._path

    @property
    def cursor(self) -> WatchCursor:
        """Read cursor, created on first observation of the source."""
        if self._cursor is None:
            if self._from_start:
                self._cursor = WatchCursor.at_start(self._path)
            else:
                self._cursor = WatchCursor.at_end(self._path)
        return self._cursor

    @property
    def bytes_read(self) -> int:
        """Total bytes delivered since construction."""
        return self._bytes_read

    @property
    def truncations(self) -> int:
        """Number of times the source was seen to shrink."""
        return self._truncations

    def ensure_source(self) -> bool:
        """
        Create the log file empty if it does not exist yet.

        Returns:
            True if the file was created.
        """
        if self._path.exists():
            return False

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.touch()
        logger.info(f"Created empty log source {self._path}")
        return True

    def poll(self) -> list[str]:
        """
        Read lines appended since the last poll.

        Returns:
            New lines in file order (possibly empty).
        """
        cursor = self.cursor

        try:
            size = self._path.stat().st_size
        except FileNotFoundError:
            return []

        if size < cursor.offset:
            logger.warning(
                f"{self._path} shrank from {cursor.offset} to {size} bytes, "
                f"reading from the start"
            )
            self._truncations += 1
            cursor.reset()

        length = cursor.pending(size)
        if length == 0:
            return []

        with self._path.open("rb") as f:
            f.seek(cursor.offset)
            data = f.read(length)

        # The file may be replaced between stat() and read()
        cursor.advance(cursor.offset + len(data))
        self._bytes_read += len(data)

        return decode_lines(data)


def read_recent_lines(path: Path, limit: int = BACKFILL_LINE_LIMIT) -> list[str]:
    """
    Read the last lines of an existing log.

    Used to seed aggregate state after a restart; does not involve any
    cursor.

    Args:
        path: Log file.
        limit: Maximum number of trailing lines.

    Returns:
        Up to `limit` lines, oldest first. Empty if the file is missing.
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"No history log at {path}, skipping backfill")
        return []

    if limit <= 0:
        return []

    with path.open("r", encoding="utf-8", errors="replace") as f:
        recent = deque((line.rstrip("\r\n") for line in f), maxlen=limit)

    return list(recent)
