"""
Logging for the monitor process.

Records go through a QueueHandler on the root logger and are written by
a QueueListener thread, so console and file writes never run on the
event loop. uvicorn's loggers propagate into the same queue.
"""

import logging
import sys
import time
from logging.handlers import QueueHandler, QueueListener
from pathlib import Path
from queue import Queue
from typing import Final

from arbwatch.config.constants import LOG_DATE_FORMAT, LOG_FORMAT, MAX_LOG_QUEUE_SIZE


# Libraries whose INFO output drowns out the monitor's own
QUIET_LOGGERS: Final[tuple[str, ...]] = ("aiohttp", "asyncio", "uvicorn.access", "watchdog")


class MicrosecondFormatter(logging.Formatter):
    """Formatter with microsecond precision timestamps."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = time.strftime(datefmt or LOG_DATE_FORMAT, time.localtime(record.created))
        return f"{stamp}.{int(record.created * 1_000_000) % 1_000_000:06d}"


class AsyncLogger:
    """
    Owns the record queue, its listener thread, and the output handlers.

    The console honours the configured level; the optional file receives
    whatever reaches the target logger.
    """

    def __init__(
        self,
        level: int = logging.INFO,
        log_file: Path | None = None,
        target: logging.Logger | None = None,
    ) -> None:
        """
        Args:
            level: Console and target logger level.
            log_file: Optional file that mirrors the console.
            target: Logger the queue handler is attached to (root if omitted).
        """
        self._level = level
        self._log_file = log_file
        self._target = target if target is not None else logging.getLogger()
        self._queue: Queue[logging.LogRecord] = Queue(maxsize=MAX_LOG_QUEUE_SIZE)
        self._handler: QueueHandler | None = None
        self._listener: QueueListener | None = None

    @property
    def is_running(self) -> bool:
        """Check if the listener thread is active."""
        return self._listener is not None

    @property
    def logger(self) -> logging.Logger:
        """Logger the queue is attached to."""
        return self._target

    def _build_handlers(self) -> list[logging.Handler]:
        console = logging.StreamHandler(sys.stdout)
        console.setLevel(self._level)
        handlers: list[logging.Handler] = [console]

        if self._log_file is not None:
            self._log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(self._log_file, encoding="utf-8")
            file_handler.setLevel(logging.DEBUG)
            handlers.append(file_handler)

        formatter = MicrosecondFormatter(LOG_FORMAT, LOG_DATE_FORMAT)
        for handler in handlers:
            handler.setFormatter(formatter)
        return handlers

    def start(self) -> None:
        """Start the listener and attach the queue handler."""
        if self._listener is not None:
            return

        self._listener = QueueListener(self._queue, *self._build_handlers(), respect_handler_level=True)
        self._listener.start()

        self._handler = QueueHandler(self._queue)
        self._target.addHandler(self._handler)
        self._target.setLevel(self._level)

    def stop(self) -> None:
        """Detach from the logger and drain queued records."""
        if self._handler is not None:
            self._target.removeHandler(self._handler)
            self._handler = None

        if self._listener is not None:
            self._listener.stop()
            for handler in self._listener.handlers:
                handler.close()
            self._listener = None


def setup_logging(level: str = "INFO", log_file: Path | None = None) -> AsyncLogger:
    """
    Route all process logging through one queue.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional file that mirrors the console.

    Returns:
        The started AsyncLogger; call stop() on shutdown.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    async_logger = AsyncLogger(
        level=getattr(logging, level.upper(), logging.INFO),
        log_file=log_file,
        target=root,
    )
    async_logger.start()

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return async_logger
