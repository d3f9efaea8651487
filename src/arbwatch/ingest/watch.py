"""
Change detection strategies for the log tailer.

Both strategies expose the same `wait()`/`close()` pair, so the follower
loop does not care whether it wakes on a timer or on a filesystem
notification.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from arbwatch.config.constants import DEFAULT_POLL_INTERVAL
from arbwatch.ingest.tailer import LogTailer


logger = logging.getLogger(__name__)


LinesHandler = Callable[[list[str]], Awaitable[Any] | Any]


class ChangeTrigger(Protocol):
    """Wakes the follower when the source may have grown."""

    async def wait(self) -> None: ...

    def close(self) -> None: ...


class IntervalTrigger:
    """Fixed-interval polling."""

    def __init__(self, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._interval = interval

    async def wait(self) -> None:
        await asyncio.sleep(self._interval)

    def close(self) -> None:
        pass


class _SourceEventHandler(FileSystemEventHandler):
    """Forwards modifications of one file to the event loop."""

    def __init__(self, path: Path, notify: Callable[[], None]) -> None:
        self._path = path
        self._notify = notify

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return

        src_path = event.src_path if isinstance(event.src_path, str) else event.src_path.decode()
        if Path(src_path).name == self._path.name:
            self._notify()


class FileChangeTrigger:
    """
    Filesystem notification trigger backed by watchdog.

    Notifications arrive on watchdog's observer thread and are handed to
    the loop with call_soon_threadsafe. The poll interval stays as a
    timeout so a missed notification only delays ingestion.
    """

    def __init__(self, path: Path, fallback_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._path = Path(path).resolve()
        self._fallback_interval = fallback_interval
        self._event = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._observer: Any = None

    def start(self) -> None:
        """Start the watchdog observer on the source's directory."""
        if self._observer is not None:
            return

        self._loop = asyncio.get_running_loop()
        handler = _SourceEventHandler(self._path, self._notify)

        self._observer = Observer()
        self._observer.schedule(handler, str(self._path.parent), recursive=False)
        self._observer.start()
        logger.info(f"Watching {self._path} for filesystem changes")

    def _notify(self) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._event.set)

    async def wait(self) -> None:
        if self._observer is None:
            self.start()

        try:
            await asyncio.wait_for(self._event.wait(), timeout=self._fallback_interval)
        except TimeoutError:
            pass
        self._event.clear()

    def close(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=1.0)
            self._observer = None


def create_trigger(strategy: str, path: Path, interval: float) -> ChangeTrigger:
    """
    Build the change trigger for a configured strategy.

    Args:
        strategy: "poll" or "notify".
        path: Followed file.
        interval: Poll interval (fallback timeout for notify).
    """
    if strategy == "notify":
        return FileChangeTrigger(path, fallback_interval=interval)
    if strategy == "poll":
        return IntervalTrigger(interval)
    raise ValueError(f"Unknown watch strategy: {strategy}")


class LogFollower:
    """
    Runs the tail loop.

    Waits on the trigger, polls the tailer, and hands each non-empty
    batch of lines to the handler in file order.
    """

    def __init__(
        self,
        tailer: LogTailer,
        trigger: ChangeTrigger,
        handler: LinesHandler,
    ) -> None:
        self._tailer = tailer
        self._trigger = trigger
        self._handler = handler
        self._running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        """Check if the follow loop is running."""
        return self._running

    async def poll_once(self) -> int:
        """
        Poll the tailer once and dispatch any new lines.

        Returns:
            Number of lines dispatched.
        """
        try:
            lines = self._tailer.poll()
        except OSError as e:
            logger.error(f"Failed to read {self._tailer.path}: {e}")
            return 0

        if not lines:
            return 0

        try:
            result = self._handler(lines)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Line handler error: {e}")

        return len(lines)

    async def run(self) -> None:
        """Follow the source until stopped."""
        self._running = True
        # Pin the cursor to the source as it is now
        _ = self._tailer.cursor

        while self._running:
            try:
                await self._trigger.wait()
                await self.poll_once()
            except asyncio.CancelledError:
                break

    def start(self) -> asyncio.Task[None]:
        """Start the follow loop as a task."""
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """Stop the loop and release the file watch."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        self._trigger.close()
