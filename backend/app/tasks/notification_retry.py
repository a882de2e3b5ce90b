# backend/app/tasks/notification_retry.py
"""
Periodic retry of failed notification deliveries.

The scheduler is an explicit object owned by the application lifespan.
Its running state lives on the instance, so several schedulers (one per test,
for instance) never share a flag.
"""

import asyncio
import contextlib
from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import threading
from typing import TYPE_CHECKING, List, Optional

from ..core.timezone_utils import Clock, utc_now
from ..events.session_events import SessionEvent
from ..monitoring.prometheus_metrics import prometheus_metrics

if TYPE_CHECKING:
    from ..services.notification_dispatcher import Listener

logger = logging.getLogger(__name__)


@dataclass
class PendingDelivery:
    listener: "Listener"
    event: SessionEvent
    attempts: int
    next_attempt_at: datetime


class NotificationRetryScheduler:
    """Re-delivers failed notifications until they succeed or run out of attempts."""

    def __init__(
        self,
        *,
        interval_seconds: float,
        max_attempts: int,
        clock: Optional[Clock] = None,
    ):
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self.clock: Clock = clock or utc_now
        self._queue: List[PendingDelivery] = []
        self._lock = threading.Lock()
        self._task: Optional["asyncio.Task[None]"] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)

    def enqueue(self, listener: "Listener", event: SessionEvent, attempts: int = 1) -> None:
        """Queue a delivery that has already failed `attempts` times."""
        if attempts >= self.max_attempts:
            self._drop(event, attempts)
            return
        with self._lock:
            self._queue.append(
                PendingDelivery(
                    listener=listener,
                    event=event,
                    attempts=attempts,
                    next_attempt_at=self.clock() + timedelta(seconds=self.interval_seconds),
                )
            )
        prometheus_metrics.record_notification_outcome(event.event_name, "retried")

    def run_once(self) -> int:
        """
        Attempt every delivery that is due.

        Returns:
            Number of deliveries that succeeded on this pass
        """
        now = self.clock()
        with self._lock:
            due = [item for item in self._queue if item.next_attempt_at <= now]
            self._queue = [item for item in self._queue if item.next_attempt_at > now]

        delivered = 0
        for item in due:
            try:
                item.listener(item.event)
            except Exception as exc:
                logger.warning(
                    "Retry %s of %s for session %s failed: %s",
                    item.attempts + 1,
                    item.event.event_name,
                    item.event.session_id,
                    exc,
                )
                self.enqueue(item.listener, item.event, attempts=item.attempts + 1)
            else:
                delivered += 1
                prometheus_metrics.record_notification_outcome(item.event.event_name, "delivered")
        if due:
            logger.info("Notification retry pass: %s/%s delivered", delivered, len(due))
        return delivered

    def _drop(self, event: SessionEvent, attempts: int) -> None:
        logger.error(
            "Dropping %s for session %s after %s attempts",
            event.event_name,
            event.session_id,
            attempts,
        )
        prometheus_metrics.record_notification_outcome(event.event_name, "dropped")

    async def start(self) -> None:
        if self.is_running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._loop(self._stop_event))
        logger.info("Notification retry scheduler started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        self._stop_event = None
        logger.info("Notification retry scheduler stopped")

    async def _loop(self, stop_event: asyncio.Event) -> None:
        while not stop_event.is_set():
            try:
                await asyncio.to_thread(self.run_once)
            except Exception as exc:
                logger.error("Notification retry pass crashed: %s", exc)
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
