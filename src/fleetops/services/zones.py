"""Pricing zone matching and conflict resolution."""

from __future__ import annotations

from typing import Optional, Sequence

from ..models.domain import GeoPoint, PricingZone
from ..models.enums import ZoneConflictStrategy, ZoneType
from .geometry import distance, point_in_polygon, polygon_centroid

POINT_ZONE_RADIUS_KM = 0.1


def is_point_in_zone(point: GeoPoint, zone: PricingZone) -> bool:
    if not zone.is_active:
        return False
    match zone.zone_type:
        case ZoneType.POLYGON:
            return point_in_polygon(point, zone.polygon)
        case ZoneType.RADIUS:
            if zone.center is None or zone.radius_km is None:
                return False
            return distance(point, zone.center) <= zone.radius_km
        case ZoneType.POINT:
            if zone.center is None:
                return False
            return distance(point, zone.center) <= POINT_ZONE_RADIUS_KM
        case _:
            raise ValueError(f"Unknown zone type '{zone.zone_type}'.")


def find_zones_for_point(point: GeoPoint, zones: Sequence[PricingZone]) -> list[PricingZone]:
    return [zone for zone in zones if is_point_in_zone(point, zone)]


def _zone_center(zone: PricingZone) -> Optional[GeoPoint]:
    if zone.center is not None:
        return zone.center
    if len(zone.polygon) >= 3:
        return polygon_centroid(zone.polygon)
    return None


def _specificity_key(zone: PricingZone) -> tuple[int, float]:
    match zone.zone_type:
        case ZoneType.POINT:
            return (0, 0.0)
        case ZoneType.RADIUS:
            return (1, zone.radius_km if zone.radius_km is not None else float("inf"))
        case _:
            return (2, 0.0)


def resolve_zone_conflict(
    point: GeoPoint,
    zones: Sequence[PricingZone],
    strategy: ZoneConflictStrategy = ZoneConflictStrategy.SPECIFICITY,
) -> Optional[PricingZone]:
    """Pick one zone among several that all contain ``point``."""
    if not zones:
        return None
    if len(zones) == 1:
        return zones[0]

    match strategy:
        case ZoneConflictStrategy.PRIORITY:
            return max(zones, key=lambda zone: zone.priority)
        case ZoneConflictStrategy.MOST_EXPENSIVE:
            return max(zones, key=lambda zone: zone.price_multiplier)
        case ZoneConflictStrategy.CLOSEST:

            def center_distance(zone: PricingZone) -> float:
                center = _zone_center(zone)
                return distance(point, center) if center is not None else float("inf")

            return min(zones, key=center_distance)
        case ZoneConflictStrategy.COMBINED:
            return max(zones, key=lambda zone: (zone.priority, zone.price_multiplier))
        case ZoneConflictStrategy.SPECIFICITY:
            return min(zones, key=_specificity_key)
        case _:
            raise ValueError(f"Unknown zone conflict strategy '{strategy}'.")


def find_zone_for_point(
    point: GeoPoint,
    zones: Sequence[PricingZone],
    strategy: ZoneConflictStrategy = ZoneConflictStrategy.SPECIFICITY,
) -> Optional[PricingZone]:
    return resolve_zone_conflict(point, find_zones_for_point(point, zones), strategy)
