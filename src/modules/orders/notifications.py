"""Order notification dispatchers.

``INotificationDispatcher`` is what the ``orders.notify_order_event``
task talks to.  The concrete dispatcher is chosen with the
``NOTIFICATION_DISPATCHER`` setting (a dotted path), so deployments can
switch between log-only and e-mail delivery without code changes.

Dispatchers raise ``NotificationError`` for failures worth retrying.
"""

from __future__ import annotations

from smtplib import SMTPException
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol, Tuple

import structlog
from django.conf import settings
from django.core.cache import cache
from django.core.mail import send_mail
from django.utils.module_loading import import_string

from modules.orders.constants import STATUS_DESCRIPTIONS, OrderStatus
from modules.orders.dtos import OrderOutputDTO
from modules.orders.exceptions import NotificationError

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

# (subject, body, recipient)
Message = Tuple[str, str, str]

SENT_MARKER_SECONDS = 60 * 60 * 24


class INotificationDispatcher(Protocol):
    def notify(self, order_id: str, event: Dict[str, Any]) -> None: ...


class LoggingNotificationDispatcher:
    """Records the notification in the structured log only."""

    def notify(self, order_id: str, event: Dict[str, Any]) -> None:
        logger.info(
            "notification.logged",
            order_id=order_id,
            event_name=event.get("event_name"),
            new_status=event.get("new_status"),
        )


class EmailNotificationDispatcher:
    """Sends plain-text e-mails with Django's ``send_mail``.

    ``OrderPlaced`` sends a confirmation to the customer and a new-order
    notice to the florist; ``OrderStatusChanged`` tells the customer the
    new status.  Missing addresses are skipped.

    Each delivered message is marked in the cache under the event id, so a
    retried task only sends the messages that failed the first time.
    """

    def __init__(
        self,
        repository: Optional[IOrderRepository] = None,
        from_email: Optional[str] = None,
    ) -> None:
        if repository is None:
            from modules.orders.repositories.django_repository import (
                OrderDjangoRepository,
            )

            repository = OrderDjangoRepository()
        self._repo = repository
        self._from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def notify(self, order_id: str, event: Dict[str, Any]) -> None:
        order = self._repo.get_by_id(order_id)
        if not order:
            logger.warning("notification.order_missing", order_id=order_id)
            return

        snapshot = OrderOutputDTO.from_entity(order)
        for subject, body, recipient in self.build_messages(snapshot, event):
            marker = self._sent_marker(event, recipient)
            if marker and cache.get(marker):
                logger.info(
                    "notification.email_already_sent",
                    order_id=order_id,
                    event_name=event.get("event_name"),
                    subject=subject,
                )
                continue
            try:
                send_mail(subject, body, self._from_email, [recipient])
            except (SMTPException, OSError) as exc:
                raise NotificationError(
                    f"Failed to e-mail {event.get('event_name')} for order {order_id}."
                ) from exc
            if marker:
                cache.set(marker, True, SENT_MARKER_SECONDS)
            logger.info(
                "notification.email_sent",
                order_id=order_id,
                event_name=event.get("event_name"),
                subject=subject,
            )

    @staticmethod
    def _sent_marker(event: Dict[str, Any], recipient: str) -> Optional[str]:
        event_id = event.get("event_id")
        if not event_id:
            return None
        return f"notifications:sent:{event_id}:{recipient}"

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def build_messages(
        self, order: OrderOutputDTO, event: Dict[str, Any]
    ) -> List[Message]:
        name = event.get("event_name")
        if name == "OrderPlaced":
            return self._placed_messages(order)
        if name == "OrderStatusChanged":
            return self._status_messages(order, event)
        logger.warning("notification.unknown_event", event_name=name)
        return []

    @staticmethod
    def _details(order: OrderOutputDTO) -> str:
        lines = [
            "Order Details:",
            f"Order number: {order.order_number}",
            f"Florist: {order.florist_name}",
            f"Fulfillment: {order.delivery_type}",
            f"Date: {order.delivery_date.isoformat()}",
        ]
        if order.delivery_time_slot:
            lines.append(f"Time slot: {order.delivery_time_slot}")
        if order.delivery_address:
            lines.append(f"Delivery address: {order.delivery_address}")
        lines.append(f"Total: {order.total_amount}")
        return "\n".join(lines)

    def _placed_messages(self, order: OrderOutputDTO) -> List[Message]:
        messages: List[Message] = []
        if order.contact_email:
            messages.append(
                (
                    f"Your Order Confirmation ({order.order_number})",
                    "Thank you for your order!\n\n" + self._details(order),
                    order.contact_email,
                )
            )
        if order.florist_email:
            messages.append(
                (
                    "New Order Received",
                    "You have received a new order.\n\n" + self._details(order),
                    order.florist_email,
                )
            )
        return messages

    def _status_messages(
        self, order: OrderOutputDTO, event: Dict[str, Any]
    ) -> List[Message]:
        if not order.contact_email:
            return []
        new_status = event.get("new_status") or order.status
        label = new_status
        if new_status in OrderStatus.values:
            label = OrderStatus(new_status).label
        body = (
            f"Your order #{order.order_number} is now {label}.\n"
            f"{STATUS_DESCRIPTIONS.get(new_status, '')}\n\n" + self._details(order)
        )
        return [("Order Status Updated", body, order.contact_email)]


def get_notification_dispatcher() -> INotificationDispatcher:
    return import_string(settings.NOTIFICATION_DISPATCHER)()
