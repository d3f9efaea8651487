"""Read offset tracking for an append-only log source."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class WatchCursor:
    """
    Last-read byte offset into a log source.

    The offset only moves forward through advance(); reset() exists for
    the truncation case, where the old offset no longer points into the
    file at all.
    """

    path: Path
    offset: int = 0

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError(f"Cursor offset must be >= 0, got {self.offset}")

    @classmethod
    def at_start(cls, path: Path) -> "WatchCursor":
        """Cursor that will deliver the whole file."""
        return cls(path=path, offset=0)

    @classmethod
    def at_end(cls, path: Path) -> "WatchCursor":
        """Cursor that will deliver only bytes appended from now on."""
        size = path.stat().st_size if path.exists() else 0
        return cls(path=path, offset=size)

    def pending(self, size: int) -> int:
        """Bytes available past the offset for a source of the given size."""
        return max(0, size - self.offset)

    def advance(self, new_offset: int) -> None:
        """
        Move the offset forward.

        Raises:
            ValueError: If new_offset is behind the current offset.
        """
        if new_offset < self.offset:
            raise ValueError(f"Cursor cannot move backwards ({self.offset} -> {new_offset})")
        self.offset = new_offset

    def reset(self) -> None:
        """Rewind to the start of a replaced or truncated source."""
        self.offset = 0
