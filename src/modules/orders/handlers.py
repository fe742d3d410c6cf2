"""Event handlers for Orders domain events.

Handlers run synchronously on the in-memory bus after the transaction
commits; the actual notification work is pushed to Celery.
"""

from __future__ import annotations

import structlog

from modules.orders.events import OrderPlaced, OrderStatusChanged
from modules.orders.tasks import notify_order_event
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderPlacedHandler(IEventHandler[OrderPlaced]):
    def handle(self, event: OrderPlaced) -> None:
        logger.info(
            "order.event.placed",
            order_id=str(event.aggregate_id),
            florist_id=event.florist_id,
        )
        notify_order_event.delay(str(event.aggregate_id), event.to_payload())


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )
        notify_order_event.delay(str(event.aggregate_id), event.to_payload())


order_placed_handler = OrderPlacedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
