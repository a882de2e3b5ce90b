"""Background tasks run inside the API process."""

from .notification_retry import NotificationRetryScheduler, PendingDelivery

__all__ = ["NotificationRetryScheduler", "PendingDelivery"]
