"""
Fan-out of named events to connected viewers.

Publishing is synchronous and never blocks: each viewer owns a bounded
outbound queue drained by its own sender task. A viewer whose queue
overflows, or whose transport errors, is dropped without affecting the
others.
"""

import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from arbwatch.config.constants import EVENT_SYSTEM_STATUS, VIEWER_QUEUE_SIZE
from arbwatch.core.types import Viewer
from arbwatch.telemetry.metrics import MetricsCollector
from arbwatch.telemetry.system import SystemSampler


logger = logging.getLogger(__name__)


Message = tuple[str, Any]
InitialEvents = Callable[[], list[Message]]


@dataclass
class Subscription:
    """A registered viewer and its outbound pipe."""

    viewer: Viewer
    queue: asyncio.Queue[Message]
    task: asyncio.Task[None] | None = None


class BroadcastHub:
    """
    Observer registry for dashboard viewers.

    Features:
    - register/unregister/publish over a snapshot of the registry
    - Initial state pushed to late joiners only
    - Per-viewer bounded queues instead of unbounded transport buffering
    - Optional periodic systemStatus publication
    """

    def __init__(
        self,
        initial_events: InitialEvents | None = None,
        queue_size: int = VIEWER_QUEUE_SIZE,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize hub.

        Args:
            initial_events: Returns the (event, payload) pairs a new viewer
                receives before anything else.
            queue_size: Outbound messages buffered per viewer.
            metrics: Optional collector for publish/drop counters.
        """
        self._initial_events = initial_events
        self._queue_size = queue_size
        self._metrics = metrics
        self._subscriptions: dict[int, Subscription] = {}
        self._status_task: asyncio.Task[None] | None = None

    @property
    def viewer_count(self) -> int:
        """Number of registered viewers."""
        return len(self._subscriptions)

    def is_registered(self, viewer: Viewer) -> bool:
        """Check if a viewer is currently registered."""
        return id(viewer) in self._subscriptions

    # =========================================================================
    # Registry
    # =========================================================================

    def register(self, viewer: Viewer) -> None:
        """
        Add a viewer and queue the current snapshot for it alone.

        Must be called from within the running event loop.
        """
        key = id(viewer)
        if key in self._subscriptions:
            return

        subscription = Subscription(viewer=viewer, queue=asyncio.Queue(maxsize=self._queue_size))
        self._subscriptions[key] = subscription

        if self._initial_events is not None:
            try:
                for message in self._initial_events():
                    subscription.queue.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("Initial snapshot exceeds viewer queue size")
            except Exception as e:
                logger.error(f"Failed to build initial snapshot: {e}")

        subscription.task = asyncio.create_task(self._pump(subscription))
        logger.info(f"Viewer connected ({self.viewer_count} active)")

    def unregister(self, viewer: Viewer) -> bool:
        """
        Remove a viewer. Idempotent.

        Returns:
            True if the viewer was registered.
        """
        subscription = self._subscriptions.pop(id(viewer), None)
        if subscription is None:
            return False

        if subscription.task is not None and subscription.task is not asyncio.current_task():
            subscription.task.cancel()
        self._discard_pending(subscription)

        logger.info(f"Viewer disconnected ({self.viewer_count} active)")
        return True

    @staticmethod
    def _discard_pending(subscription: Subscription) -> None:
        while not subscription.queue.empty():
            subscription.queue.get_nowait()
            subscription.queue.task_done()

    # =========================================================================
    # Publication
    # =========================================================================

    def publish(self, event: str, payload: Any) -> int:
        """
        Queue an event for every registered viewer.

        Args:
            event: Event name.
            payload: JSON-serializable payload.

        Returns:
            Number of viewers the event was queued for.
        """
        delivered = 0
        stalled: list[Viewer] = []

        for subscription in tuple(self._subscriptions.values()):
            try:
                subscription.queue.put_nowait((event, payload))
                delivered += 1
            except asyncio.QueueFull:
                stalled.append(subscription.viewer)

        for viewer in stalled:
            logger.warning(f"Dropping stalled viewer ({self._queue_size} messages pending)")
            self._drop(viewer)

        if self._metrics is not None:
            self._metrics.increment_counter("events_published")

        return delivered

    def _drop(self, viewer: Viewer) -> None:
        if self.unregister(viewer) and self._metrics is not None:
            self._metrics.increment_counter("viewers_dropped")

    async def _pump(self, subscription: Subscription) -> None:
        """Drain one viewer's queue into its transport."""
        queue = subscription.queue
        while True:
            event, payload = await queue.get()
            try:
                await subscription.viewer.send(event, payload)
            except asyncio.CancelledError:
                queue.task_done()
                raise
            except Exception as e:
                queue.task_done()
                logger.debug(f"Viewer send failed, dropping: {e}")
                self._drop(subscription.viewer)
                return
            queue.task_done()

    async def flush(self, timeout: float = 5.0) -> None:
        """Wait until every registered viewer's queue has drained."""
        queues = [s.queue.join() for s in tuple(self._subscriptions.values())]
        if queues:
            await asyncio.wait_for(asyncio.gather(*queues), timeout=timeout)

    # =========================================================================
    # System status
    # =========================================================================

    def publish_status(self, sampler: SystemSampler) -> None:
        """Publish a freshly sampled systemStatus."""
        try:
            snapshot = sampler.sample()
        except Exception as e:
            logger.error(f"System sampling failed: {e}")
            return
        self.publish(EVENT_SYSTEM_STATUS, snapshot.to_payload())

    def start_status_loop(self, sampler: SystemSampler, interval: float) -> asyncio.Task[None]:
        """Publish systemStatus every `interval` seconds until stopped."""
        if self._status_task is not None and not self._status_task.done():
            return self._status_task

        async def loop() -> None:
            while True:
                await asyncio.sleep(interval)
                if self._subscriptions:
                    self.publish_status(sampler)

        self._status_task = asyncio.create_task(loop())
        return self._status_task

    async def stop(self) -> None:
        """Stop the status loop and disconnect every viewer."""
        tasks: list[asyncio.Task[None]] = []

        if self._status_task is not None:
            self._status_task.cancel()
            tasks.append(self._status_task)
            self._status_task = None

        for subscription in tuple(self._subscriptions.values()):
            if subscription.task is not None:
                tasks.append(subscription.task)
            self.unregister(subscription.viewer)

        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
