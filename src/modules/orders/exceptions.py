"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.

The status machine itself never raises for an invalid transition; it
returns a ``TransitionResult`` which the service turns into
``InvalidOrderStatus``.
"""

from __future__ import annotations


class OrderNotFound(Exception):
    """The requested order does not exist or has been soft-deleted."""


class InvalidOrderStatus(Exception):
    """A status transition not allowed by the status machine was attempted."""


class ConcurrencyConflict(Exception):
    """The order's status changed between validation and write."""


class ImmutableHistoryError(Exception):
    """An existing status history record was modified or deleted."""


class FulfillmentUnavailable(Exception):
    """The florist cannot fulfil the order for the requested date/time."""


class BelowMinimumOrder(Exception):
    """The order subtotal is below the florist's delivery minimum."""


class OutsideDeliveryArea(Exception):
    """The delivery address is outside the florist's delivery area."""


class SlotUnavailable(Exception):
    """The requested delivery slot does not exist, is closed or is full."""


class NotificationError(Exception):
    """A notification could not be delivered (retryable)."""
