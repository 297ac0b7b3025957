"""Margin analysis and subcontractor comparison."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from ...config import settings
from ...models.domain import GeoPoint
from ...models.enums import ProfitabilityLevel, Recommendation
from ..geometry import distance
from ..routing.models import TripAnalysis
from .models import (
    MissionCandidate,
    OperatingZone,
    SubcontractingSuggestion,
    SubcontractingThresholds,
    SubcontractorComparison,
    SubcontractorMatch,
    SubcontractorProfile,
)


def margin_percent(selling_price: float, cost: float) -> Optional[float]:
    """Margin as a percent of the selling price, ``None`` when the price is zero."""
    if selling_price == 0:
        return None
    return (selling_price - cost) / selling_price * 100


def is_structurally_unprofitable(
    selling_price: float,
    cost: float,
    threshold_percent: float | None = None,
) -> bool:
    if threshold_percent is None:
        threshold_percent = settings.unprofitable_threshold_percent
    if selling_price <= 0:
        return True
    return margin_percent(selling_price, cost) < threshold_percent


def profitability_level(
    margin: Optional[float],
    green_threshold: float | None = None,
    orange_threshold: float | None = None,
) -> ProfitabilityLevel:
    green = settings.profitability_green_threshold if green_threshold is None else green_threshold
    orange = settings.profitability_orange_threshold if orange_threshold is None else orange_threshold
    if margin is None:
        return ProfitabilityLevel.ORANGE
    if margin >= green:
        return ProfitabilityLevel.GREEN
    if margin >= orange:
        return ProfitabilityLevel.ORANGE
    return ProfitabilityLevel.RED


def subcontractor_price(
    rate_per_km: Optional[float],
    rate_per_hour: Optional[float],
    minimum_fare: Optional[float],
    distance_km: float,
    duration_minutes: float,
    thresholds: SubcontractingThresholds | None = None,
) -> float:
    """The larger of the distance and time based prices, floored by the minimum fare."""
    thresholds = thresholds or SubcontractingThresholds()
    per_km = thresholds.default_rate_per_km if rate_per_km is None else rate_per_km
    per_hour = thresholds.default_rate_per_hour if rate_per_hour is None else rate_per_hour
    price = max(distance_km * per_km, duration_minutes / 60 * per_hour, minimum_fare or 0)
    return round(price, 2)


def compare_margins(
    selling_price: float,
    internal_cost: float,
    subcontractor_cost: float,
    review_band_percent: float | None = None,
) -> SubcontractorComparison:
    """Recommend subcontracting only when the margin gain exceeds the review band.

    The band is a percent of the selling price; differences inside it need a human decision.
    """
    if review_band_percent is None:
        review_band_percent = settings.subcontracting_review_band_percent
    savings = internal_cost - subcontractor_cost
    savings_percent = savings / internal_cost * 100 if internal_cost else 0.0

    internal_margin = selling_price - internal_cost
    subcontractor_margin = selling_price - subcontractor_cost
    band = abs(selling_price) * review_band_percent / 100
    if subcontractor_margin > internal_margin + band:
        recommendation = Recommendation.SUBCONTRACT
    elif internal_margin > subcontractor_margin + band:
        recommendation = Recommendation.INTERNAL
    else:
        recommendation = Recommendation.REVIEW

    return SubcontractorComparison(
        internal_cost=round(internal_cost, 2),
        subcontractor_price=round(subcontractor_cost, 2),
        savings=round(savings, 2),
        savings_percent=round(savings_percent, 2),
        recommendation=recommendation,
    )


def point_in_zone(point: GeoPoint, zone: OperatingZone, default_radius_km: float | None = None) -> bool:
    if zone.center is None:
        return False
    radius = zone.radius_km or (settings.default_zone_radius_km if default_radius_km is None else default_radius_km)
    return distance(point, zone.center) <= radius


def zone_match_score(pickup_matches: bool, dropoff_matches: bool) -> int:
    if pickup_matches and dropoff_matches:
        return 100
    if pickup_matches or dropoff_matches:
        return 50
    return 0


def extract_trip_metrics(analysis: TripAnalysis | Mapping[str, Any] | None) -> tuple[float, float]:
    """Distance (km) and duration (minutes) from a trip analysis or its stored JSON."""
    if analysis is None:
        return 0.0, 0.0
    if isinstance(analysis, TripAnalysis):
        return analysis.total_distance_km, analysis.total_duration_minutes
    return float(analysis.get("totalDistanceKm") or 0), float(analysis.get("totalDurationMinutes") or 0)


def candidate_from_trip(
    mission_id: str,
    selling_price: float,
    analysis: TripAnalysis,
    pickup: GeoPoint | None = None,
    dropoff: GeoPoint | None = None,
    vehicle_category: str | None = None,
) -> MissionCandidate:
    distance_km, duration_minutes = extract_trip_metrics(analysis)
    return MissionCandidate(
        mission_id=mission_id,
        selling_price=selling_price,
        internal_cost=analysis.cost_breakdown.total,
        distance_km=distance_km,
        duration_minutes=duration_minutes,
        pickup=pickup,
        dropoff=dropoff,
        vehicle_category=vehicle_category,
    )


def _matches_zone(point: Optional[GeoPoint], zones: Sequence[OperatingZone], radius: float) -> bool:
    if point is None:
        return False
    return any(point_in_zone(point, zone, radius) for zone in zones)


def find_subcontractors_for_mission(
    candidate: MissionCandidate,
    subcontractors: Sequence[SubcontractorProfile],
    thresholds: SubcontractingThresholds | None = None,
) -> list[SubcontractorMatch]:
    """Active subcontractors able to serve the mission, best zone match then largest saving first."""
    thresholds = thresholds or SubcontractingThresholds()
    matches = []
    for sub in subcontractors:
        if not sub.is_active:
            continue
        if sub.vehicle_categories and candidate.vehicle_category not in sub.vehicle_categories:
            continue
        if sub.operating_zones:
            score = zone_match_score(
                _matches_zone(candidate.pickup, sub.operating_zones, thresholds.default_zone_radius_km),
                _matches_zone(candidate.dropoff, sub.operating_zones, thresholds.default_zone_radius_km),
            )
            if score == 0:
                continue
        else:
            score = 100

        price = subcontractor_price(
            sub.rate_per_km,
            sub.rate_per_hour,
            sub.minimum_fare,
            candidate.distance_km,
            candidate.duration_minutes,
            thresholds,
        )
        comparison = compare_margins(
            candidate.selling_price, candidate.internal_cost, price, thresholds.review_band_percent
        )
        matches.append(SubcontractorMatch(sub, price, comparison, score))

    matches.sort(key=lambda m: (-m.zone_match_score, -m.comparison.savings))
    return matches


def generate_suggestions(
    candidates: Sequence[MissionCandidate],
    subcontractors: Sequence[SubcontractorProfile],
    thresholds: SubcontractingThresholds | None = None,
) -> list[SubcontractingSuggestion]:
    """Pair unprofitable missions with the cheapest capable subcontractor."""
    thresholds = thresholds or SubcontractingThresholds()
    suggestions = []
    for candidate in candidates:
        if not is_structurally_unprofitable(
            candidate.selling_price, candidate.internal_cost, thresholds.unprofitable_threshold_percent
        ):
            continue
        matches = find_subcontractors_for_mission(candidate, subcontractors, thresholds)
        if not matches:
            continue
        best = min(matches, key=lambda m: m.estimated_price)
        suggestions.append(
            SubcontractingSuggestion(
                mission_id=candidate.mission_id,
                current_margin_percent=margin_percent(candidate.selling_price, candidate.internal_cost),
                margin_if_subcontracted=margin_percent(candidate.selling_price, best.estimated_price),
                best_match=best,
            )
        )

    suggestions.sort(
        key=lambda s: s.margin_if_subcontracted if s.margin_if_subcontracted is not None else float("-inf"),
        reverse=True,
    )
    return suggestions[: thresholds.max_suggestions]
