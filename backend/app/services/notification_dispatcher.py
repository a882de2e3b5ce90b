# backend/app/services/notification_dispatcher.py
"""
Fire-and-forget fan-out of session events to notification listeners.

Delivery failures never reach the caller: the state change that produced the
event is already committed. Failed deliveries are handed to the retry
scheduler when one is attached.
"""

from collections import defaultdict
import logging
import threading
from typing import TYPE_CHECKING, Callable, DefaultDict, List, Optional

from ..events.session_events import SessionEvent
from ..monitoring.prometheus_metrics import prometheus_metrics

if TYPE_CHECKING:
    from ..tasks.notification_retry import NotificationRetryScheduler

logger = logging.getLogger(__name__)

Listener = Callable[[SessionEvent], None]

WILDCARD = "*"


def log_session_event(event: SessionEvent) -> None:
    """Default listener: record the event for downstream log shipping."""
    logger.info(
        "Session event %s for session %s (recipients=%s)",
        event.event_name,
        event.session_id,
        ",".join(event.recipients),
    )


class SessionEventDispatcher:
    """Routes each event to listeners subscribed by event name or to all events."""

    def __init__(self, retry_scheduler: Optional["NotificationRetryScheduler"] = None):
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)
        self._lock = threading.Lock()
        self.retry_scheduler = retry_scheduler

    def subscribe(self, event_name: str, listener: Listener) -> None:
        with self._lock:
            self._listeners[event_name].append(listener)

    def listeners_for(self, event_name: str) -> List[Listener]:
        with self._lock:
            return list(self._listeners.get(event_name, [])) + list(
                self._listeners.get(WILDCARD, [])
            )

    def emit(self, event: SessionEvent) -> None:
        for listener in self.listeners_for(event.event_name):
            try:
                listener(event)
                prometheus_metrics.record_notification_outcome(event.event_name, "delivered")
            except Exception as exc:
                logger.error(
                    "Notification listener failed for %s on session %s: %s",
                    event.event_name,
                    event.session_id,
                    exc,
                )
                prometheus_metrics.record_notification_outcome(event.event_name, "failed")
                if self.retry_scheduler is not None:
                    self.retry_scheduler.enqueue(listener, event)


def build_default_dispatcher(
    retry_scheduler: Optional["NotificationRetryScheduler"] = None,
) -> SessionEventDispatcher:
    dispatcher = SessionEventDispatcher(retry_scheduler=retry_scheduler)
    dispatcher.subscribe(WILDCARD, log_session_event)
    return dispatcher
