"""Driving-distance providers.

``IDistanceProvider`` is the contract the distance rules depend on.
``HereRoutingProvider`` answers it with the HERE v8 routing API and
caches distances in the Django cache.
"""

from __future__ import annotations

from typing import Optional, Protocol

import httpx
import structlog
from django.conf import settings
from django.core.cache import cache

from modules.florists.dtos import Coordinates
from modules.florists.exceptions import DistanceProviderError

logger = structlog.get_logger(__name__)


class IDistanceProvider(Protocol):
    def driving_distance_km(
        self, origin: Coordinates, destination: Coordinates
    ) -> float: ...


class HereRoutingProvider:
    """Road distance by car via HERE routing v8.

    Args:
        api_key: defaults to ``settings.HERE_API_KEY``.
        client: optional ``httpx.Client`` (tests pass one built on
            ``httpx.MockTransport``).
    """

    CACHE_PREFIX = "distance:here"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        cache_seconds: Optional[int] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.HERE_API_KEY
        self.base_url = base_url or settings.HERE_ROUTING_URL
        self.timeout = timeout if timeout is not None else settings.DISTANCE_PROVIDER_TIMEOUT
        self.cache_seconds = (
            cache_seconds if cache_seconds is not None else settings.DISTANCE_CACHE_SECONDS
        )
        self._client = client

    def cache_key(self, origin: Coordinates, destination: Coordinates) -> str:
        return (
            f"{self.CACHE_PREFIX}:{origin.lat:.5f},{origin.lng:.5f}:"
            f"{destination.lat:.5f},{destination.lng:.5f}"
        )

    def driving_distance_km(
        self, origin: Coordinates, destination: Coordinates
    ) -> float:
        key = self.cache_key(origin, destination)
        cached = cache.get(key)
        if cached is not None:
            return cached

        distance_km = self._fetch(origin, destination)
        cache.set(key, distance_km, self.cache_seconds)
        return distance_km

    def _fetch(self, origin: Coordinates, destination: Coordinates) -> float:
        if not self.api_key:
            raise DistanceProviderError("HERE_API_KEY is not configured.")

        params = {
            "transportMode": "car",
            "origin": f"{origin.lat},{origin.lng}",
            "destination": f"{destination.lat},{destination.lng}",
            "return": "summary",
            "apikey": self.api_key,
        }
        try:
            if self._client is not None:
                resp = self._client.get(self.base_url, params=params, timeout=self.timeout)
            else:
                with httpx.Client() as client:
                    resp = client.get(self.base_url, params=params, timeout=self.timeout)
        except httpx.HTTPError as exc:
            raise DistanceProviderError(f"Routing request failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.warning(
                "distance.provider_error",
                status_code=resp.status_code,
                body=resp.text[:200],
            )
            raise DistanceProviderError(f"Routing API returned HTTP {resp.status_code}.")

        try:
            meters = resp.json()["routes"][0]["sections"][0]["summary"]["length"]
            distance_km = float(meters) / 1000
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise DistanceProviderError("Malformed routing response.") from exc

        logger.info("distance.provider_resolved", distance_km=round(distance_km, 2))
        return distance_km


def get_distance_provider() -> IDistanceProvider:
    return HereRoutingProvider()
