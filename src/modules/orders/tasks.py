"""Asynchronous tasks of the orders module."""

import structlog
from celery import shared_task

from modules.orders.exceptions import NotificationError
from modules.orders.notifications import get_notification_dispatcher

logger = structlog.get_logger(__name__)


@shared_task(
    bind=True,
    name="orders.notify_order_event",
    autoretry_for=(NotificationError,),
    retry_backoff=True,
    max_retries=3,
)
def notify_order_event(self, order_id: str, event: dict) -> dict:
    """Hand an order event to the configured notification dispatcher."""
    dispatcher = get_notification_dispatcher()
    dispatcher.notify(order_id, event)
    logger.info(
        "notification.task_completed",
        order_id=order_id,
        event_name=event.get("event_name"),
        retries=self.request.retries,
    )
    return {"order_id": order_id, "event_name": event.get("event_name")}
