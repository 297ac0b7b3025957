"""Toll resolution with an in-process TTL cache."""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from typing import Callable, Optional, Sequence

from ...config import settings
from ...models.domain import GeoPoint
from ...models.enums import TollSource
from .models import ProviderRoute, TollResult

logger = logging.getLogger(__name__)


def coordinate_hash(
    origin: GeoPoint,
    destination: GeoPoint,
    intermediates: Sequence[GeoPoint] = (),
    variant: str = "",
) -> str:
    """Stable cache key for a trip, coordinates rounded to 4 decimals (~11 m).

    Stops are part of the key in order; ``variant`` separates routes computed with
    different preferences (e.g. TRAFFIC_AWARE vs TRAFFIC_UNAWARE) for the same stops.
    """
    points = [origin, *intermediates, destination]
    raw = "|".join(f"{p.lat:.4f},{p.lng:.4f}" for p in points)
    if variant:
        raw = f"{raw}#{variant}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def estimate_tolls(distance_km: float, rate_per_km: float | None = None) -> float:
    rate = settings.fallback_toll_rate_per_km if rate_per_km is None else rate_per_km
    return distance_km * rate


class TollCache:
    def __init__(self, ttl_hours: float | None = None, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = (settings.toll_cache_ttl_hours if ttl_hours is None else ttl_hours) * 3600
        self._clock = clock
        self._entries: dict[str, tuple[float, float]] = {}
        self._lock = threading.Lock()

    def get(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        intermediates: Sequence[GeoPoint] = (),
        variant: str = "",
    ) -> Optional[float]:
        key = coordinate_hash(origin, destination, intermediates, variant)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            amount, stored_at = entry
            if self._clock() - stored_at > self.ttl_seconds:
                del self._entries[key]
                return None
            return amount

    def set(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        amount: float,
        intermediates: Sequence[GeoPoint] = (),
        variant: str = "",
    ) -> None:
        key = coordinate_hash(origin, destination, intermediates, variant)
        with self._lock:
            self._entries[key] = (amount, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


toll_cache = TollCache()


def resolve_tolls(
    origin: GeoPoint,
    destination: GeoPoint,
    route: ProviderRoute,
    fallback_rate_per_km: float | None = None,
    cache: TollCache | None = None,
    intermediates: Sequence[GeoPoint] = (),
    variant: str = "",
) -> TollResult:
    """Use provider toll data when present, otherwise a cached or per-km estimated amount."""
    cache = cache if cache is not None else toll_cache
    if route.toll_amount is not None:
        cache.set(origin, destination, route.toll_amount, intermediates, variant)
        return TollResult(amount=route.toll_amount, source=TollSource.GOOGLE_API)

    cached = cache.get(origin, destination, intermediates, variant)
    if cached is not None:
        return TollResult(amount=cached, source=TollSource.GOOGLE_API, is_from_cache=True)

    amount = estimate_tolls(route.distance_km, fallback_rate_per_km)
    logger.info(f"No provider toll data, estimated {amount:.2f} for {route.distance_km:.1f} km")
    return TollResult(amount=amount, source=TollSource.ESTIMATE)
