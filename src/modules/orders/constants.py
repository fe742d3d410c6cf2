"""Order domain constants.

Defines status choices, fulfillment tracks and the base transition graph
for the order status machine.  ``cancelled`` is deliberately absent from
``BASE_TRANSITIONS``: it is layered on by the state machine for every
non-terminal status.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PREPARING = "preparing", "Preparing"
    READY_FOR_DELIVERY = "ready_for_delivery", "Ready for delivery"
    READY_FOR_PICKUP = "ready_for_pickup", "Ready for pickup"
    OUT_FOR_DELIVERY = "out_for_delivery", "Out for delivery"
    DELIVERED = "delivered", "Delivered"
    PICKED_UP = "picked_up", "Picked up"
    CANCELLED = "cancelled", "Cancelled"


class DeliveryType(models.TextChoices):
    DELIVERY = "delivery", "Delivery"
    PICKUP = "pickup", "Pickup"


BASE_TRANSITIONS: dict[str, frozenset[str]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING}),
    OrderStatus.PREPARING: frozenset(
        {OrderStatus.READY_FOR_DELIVERY, OrderStatus.READY_FOR_PICKUP}
    ),
    OrderStatus.READY_FOR_DELIVERY: frozenset({OrderStatus.OUT_FOR_DELIVERY}),
    OrderStatus.READY_FOR_PICKUP: frozenset({OrderStatus.PICKED_UP}),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.PICKED_UP: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

DELIVERY_TRACK: frozenset[str] = frozenset(
    {
        OrderStatus.READY_FOR_DELIVERY,
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
    }
)

PICKUP_TRACK: frozenset[str] = frozenset(
    {OrderStatus.READY_FOR_PICKUP, OrderStatus.PICKED_UP}
)

TERMINAL_STATES: frozenset[str] = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.PICKED_UP, OrderStatus.CANCELLED}
)

STATUS_DESCRIPTIONS: dict[str, str] = {
    OrderStatus.PENDING: "Order received, awaiting florist confirmation.",
    OrderStatus.CONFIRMED: "The florist has accepted the order.",
    OrderStatus.PREPARING: "Your arrangement is being prepared.",
    OrderStatus.READY_FOR_DELIVERY: "Your order is ready and waiting for a courier.",
    OrderStatus.READY_FOR_PICKUP: "Your order is ready to be collected in store.",
    OrderStatus.OUT_FOR_DELIVERY: "Your order is on its way.",
    OrderStatus.DELIVERED: "Your order has been delivered.",
    OrderStatus.PICKED_UP: "Your order has been collected.",
    OrderStatus.CANCELLED: "This order has been cancelled.",
}

ORDER_NUMBER_MAX_RETRIES = 5

# One retry after a lost compare-and-set race.
STATUS_UPDATE_MAX_ATTEMPTS = 2
