"""Florist domain exceptions.

Raised by the Service Layer when business rules are violated.
The API layer (Views) catches these and translates them into
appropriate HTTP responses.

"Unavailable" outcomes of the availability evaluator are **not**
exceptions: they are returned as ``AvailabilityResult`` data.
"""

from __future__ import annotations


class ConfigurationError(Exception):
    """Business hours, delivery settings or slots are malformed.

    Never silently defaulted: surfaced to whoever supplied the config.
    """


class FloristNotFound(Exception):
    """The requested florist does not exist or has been soft-deleted."""


class FloristInactive(Exception):
    """The florist store is not active and cannot take orders."""


class DistanceProviderError(Exception):
    """The driving-distance provider could not produce a distance."""
