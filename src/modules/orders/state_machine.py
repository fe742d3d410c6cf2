"""Order status machine.

Pure rules: which statuses may follow the current one for a given
fulfillment type.  Nothing here touches the database; persisting a
transition is the job of ``OrderService``.

The graph is ``BASE_TRANSITIONS`` with two layers applied on top:

1. the branch at ``preparing`` is resolved by dropping the statuses of
   the other fulfillment track;
2. ``cancelled`` is reachable from every non-terminal status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from modules.orders.constants import (
    BASE_TRANSITIONS,
    DELIVERY_TRACK,
    PICKUP_TRACK,
    TERMINAL_STATES,
    DeliveryType,
    OrderStatus,
)


@dataclass(frozen=True)
class TransitionResult:
    valid: bool
    reason: Optional[str] = None


def _check_current(current: str) -> str:
    if current not in BASE_TRANSITIONS:
        raise ValueError(f"Unknown order status '{current}'.")
    return current


def _other_track(delivery_type: str) -> frozenset[str]:
    if delivery_type == DeliveryType.DELIVERY:
        return PICKUP_TRACK
    if delivery_type == DeliveryType.PICKUP:
        return DELIVERY_TRACK
    raise ValueError(f"Unknown delivery type '{delivery_type}'.")


def is_terminal(status: str) -> bool:
    return _check_current(status) in TERMINAL_STATES


def next_statuses(current: str, delivery_type: str) -> frozenset[str]:
    """Statuses an order may move to from *current*.

    Raises:
        ValueError: for an unknown *current* status or delivery type.
    """
    _check_current(current)
    excluded = _other_track(delivery_type)
    if current in TERMINAL_STATES:
        return frozenset()
    allowed = BASE_TRANSITIONS[current] - excluded
    return allowed | {OrderStatus.CANCELLED}


def validate_transition(
    current: str, proposed: str, delivery_type: str
) -> TransitionResult:
    """Decide whether *current* -> *proposed* is allowed.

    An invalid transition is a result, not an exception.
    """
    if proposed in next_statuses(current, delivery_type):
        return TransitionResult(valid=True)
    return TransitionResult(
        valid=False,
        reason=f"Cannot transition from {current} to {proposed}",
    )


def can_cancel(current: str) -> bool:
    return not is_terminal(current)


def ready_status(delivery_type: str) -> str:
    """The "ready" status of the order's fulfillment track."""
    _other_track(delivery_type)
    if delivery_type == DeliveryType.DELIVERY:
        return OrderStatus.READY_FOR_DELIVERY
    return OrderStatus.READY_FOR_PICKUP


def completed_status(delivery_type: str) -> str:
    _other_track(delivery_type)
    if delivery_type == DeliveryType.DELIVERY:
        return OrderStatus.DELIVERED
    return OrderStatus.PICKED_UP
