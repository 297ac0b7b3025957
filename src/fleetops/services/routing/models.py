"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from ...models.domain import CostBreakdown, GeoPoint
from ...models.enums import FuelPriceSource, RoutingSource, ScenarioType, TollSource


@dataclass(slots=True)
class RoutesRequest:
    origin: GeoPoint
    destination: GeoPoint
    intermediates: List[GeoPoint] = field(default_factory=list)
    travel_mode: str = "DRIVE"
    routing_preference: str = "TRAFFIC_AWARE"
    avoid_tolls: bool = False
    avoid_highways: bool = False
    avoid_ferries: bool = False
    compute_alternative_routes: bool = False

    def waypoints(self) -> List[GeoPoint]:
        return [self.origin, *self.intermediates, self.destination]

    def to_payload(self) -> dict[str, Any]:
        def waypoint(point: GeoPoint) -> dict:
            return {"location": {"latLng": {"latitude": point.lat, "longitude": point.lng}}}

        payload: dict[str, Any] = {
            "origin": waypoint(self.origin),
            "destination": waypoint(self.destination),
            "travelMode": self.travel_mode,
            "routingPreference": self.routing_preference,
            "routeModifiers": {
                "avoidTolls": self.avoid_tolls,
                "avoidHighways": self.avoid_highways,
                "avoidFerries": self.avoid_ferries,
            },
            "extraComputations": ["TOLLS"],
            "computeAlternativeRoutes": self.compute_alternative_routes,
        }
        if self.intermediates:
            payload["intermediates"] = [waypoint(point) for point in self.intermediates]
        return payload


@dataclass(slots=True)
class RouteLeg:
    distance_meters: int
    duration_seconds: float


@dataclass(slots=True)
class ProviderRoute:
    distance_meters: int
    duration_seconds: float
    encoded_polyline: Optional[str] = None
    legs: List[RouteLeg] = field(default_factory=list)
    toll_amount: Optional[float] = None
    bounds: Optional[dict[str, GeoPoint]] = None

    @property
    def distance_km(self) -> float:
        return self.distance_meters / 1000

    @property
    def duration_minutes(self) -> float:
        return self.duration_seconds / 60


@dataclass(slots=True)
class RoutesResult:
    """Outcome of a provider call that never raises."""

    success: bool
    fallback: bool
    routes: List[ProviderRoute]
    error: Optional[str] = None

    @property
    def data(self) -> ProviderRoute:
        return self.routes[0]


@dataclass(slots=True)
class TollResult:
    amount: float
    source: TollSource
    is_from_cache: bool = False


@dataclass(slots=True)
class RouteScenario:
    type: ScenarioType
    label: str
    duration_minutes: float
    distance_km: float
    cost_breakdown: CostBreakdown
    toll_source: TollSource
    encoded_polyline: Optional[str] = None
    is_from_cache: bool = False
    is_recommended: bool = False


@dataclass(slots=True)
class AlternativeScenario:
    type: ScenarioType
    total: float
    difference: float


@dataclass(slots=True)
class ScenarioSelectionRule:
    """Transparency record describing why a scenario was chosen."""

    description: str
    selected_scenario: ScenarioType
    selected_total: float
    alternatives: List[AlternativeScenario]
    savings_vs_worst: float
    percentage_savings: float


@dataclass(slots=True)
class RouteScenarios:
    scenarios: List[RouteScenario]
    selected_scenario: ScenarioType
    selection_reason: str
    fallback_used: bool
    calculated_at: datetime
    fallback_reason: Optional[str] = None
    selection_overridden: bool = False
    applied_rule: Optional[ScenarioSelectionRule] = None

    def selected(self) -> RouteScenario:
        for scenario in self.scenarios:
            if scenario.type == self.selected_scenario:
                return scenario
        return self.scenarios[0]


@dataclass(slots=True)
class TripSegment:
    name: str
    distance_km: float
    duration_minutes: float
    cost_breakdown: CostBreakdown
    routing_source: RoutingSource = RoutingSource.GOOGLE_API


@dataclass(slots=True)
class TripAnalysis:
    cost_breakdown: CostBreakdown
    segments: List[TripSegment]
    total_distance_km: float
    total_duration_minutes: float
    routing_source: RoutingSource
    toll_source: Optional[TollSource] = None
    fuel_price_source: Optional[FuelPriceSource] = None
    pickup_zone_code: Optional[str] = None
    dropoff_zone_code: Optional[str] = None

    def segment(self, name: str) -> Optional[TripSegment]:
        for segment in self.segments:
            if segment.name == name:
                return segment
        return None
