"""Trip analysis orchestration: approach, service and return legs with costs."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ...models.domain import CostBreakdown, GeoPoint, PricingZone
from ...models.enums import RoutingSource, TollSource, ZoneConflictStrategy
from ..zones import find_zone_for_point
from .costs import CostRates, compute_cost_breakdown
from .models import RoutesRequest, TripAnalysis, TripSegment
from .routes_client import RoutesClient, compute_routes_with_fallback
from .tolls import TollCache, resolve_tolls


def _segment(
    name: str,
    origin: GeoPoint,
    destination: GeoPoint,
    rates: CostRates,
    client: Optional[RoutesClient],
    cache: Optional[TollCache],
    intermediates: Sequence[GeoPoint] = (),
    parking: float = 0.0,
) -> tuple[TripSegment, TollSource]:
    request = RoutesRequest(origin, destination, list(intermediates))
    result = compute_routes_with_fallback(request, client)
    route = result.data
    tolls = resolve_tolls(
        origin,
        destination,
        route,
        rates.fallback_toll_rate_per_km,
        cache,
        intermediates=request.intermediates,
        variant=request.routing_preference,
    )
    costs = compute_cost_breakdown(route.distance_km, route.duration_minutes, tolls.amount, rates, parking)
    segment = TripSegment(
        name=name,
        distance_km=route.distance_km,
        duration_minutes=route.duration_minutes,
        cost_breakdown=costs,
        routing_source=RoutingSource.HAVERSINE_ESTIMATE if result.fallback else RoutingSource.GOOGLE_API,
    )
    return segment, tolls.source


def analyze_trip(
    pickup: GeoPoint,
    dropoff: GeoPoint,
    *,
    base: GeoPoint | None = None,
    intermediates: Sequence[GeoPoint] = (),
    rates: CostRates | None = None,
    client: RoutesClient | None = None,
    toll_cache: TollCache | None = None,
    parking: float = 0.0,
    zones: Sequence[PricingZone] = (),
    zone_strategy: ZoneConflictStrategy = ZoneConflictStrategy.SPECIFICITY,
) -> TripAnalysis:
    """Cost a trip segment by segment.

    When ``base`` is given the vehicle drives base -> pickup (approach) and
    dropoff -> base (return) around the service leg.
    """
    rates = rates or CostRates()
    legs: list[tuple[TripSegment, TollSource]] = []
    if base is not None:
        legs.append(_segment("approach", base, pickup, rates, client, toll_cache))
    legs.append(_segment("service", pickup, dropoff, rates, client, toll_cache, intermediates, parking))
    if base is not None:
        legs.append(_segment("return", dropoff, base, rates, client, toll_cache))

    segments = [segment for segment, _ in legs]
    total_costs = CostBreakdown()
    for segment in segments:
        total_costs = total_costs + segment.cost_breakdown

    estimated = any(segment.routing_source == RoutingSource.HAVERSINE_ESTIMATE for segment in segments)
    if estimated:
        logging.warning("Trip analysis used straight-line estimates for at least one segment")
    toll_source = TollSource.ESTIMATE if any(source == TollSource.ESTIMATE for _, source in legs) else TollSource.GOOGLE_API

    pickup_zone = find_zone_for_point(pickup, zones, zone_strategy) if zones else None
    dropoff_zone = find_zone_for_point(dropoff, zones, zone_strategy) if zones else None

    for segment in segments:
        segment.cost_breakdown = segment.cost_breakdown.rounded()
        segment.distance_km = round(segment.distance_km, 2)
        segment.duration_minutes = round(segment.duration_minutes, 2)

    return TripAnalysis(
        cost_breakdown=total_costs.rounded(),
        segments=segments,
        total_distance_km=round(sum(s.distance_km for s in segments), 2),
        total_duration_minutes=round(sum(s.duration_minutes for s in segments), 2),
        routing_source=RoutingSource.HAVERSINE_ESTIMATE if estimated else RoutingSource.GOOGLE_API,
        toll_source=toll_source,
        fuel_price_source=rates.fuel_price_source,
        pickup_zone_code=pickup_zone.code if pickup_zone else None,
        dropoff_zone_code=dropoff_zone.code if dropoff_zone else None,
    )
