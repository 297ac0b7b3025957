"""Multi-scenario route comparison (fastest, shortest, cheapest)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Sequence

from ...models.domain import CostBreakdown, GeoPoint
from ...models.enums import ScenarioType, TollSource
from .costs import CostRates, compute_cost_breakdown
from .models import (
    AlternativeScenario,
    ProviderRoute,
    RouteScenario,
    RouteScenarios,
    RoutesRequest,
    ScenarioSelectionRule,
)
from .routes_client import RoutesClient, compute_routes_with_fallback
from .tolls import TollCache, resolve_tolls

SCENARIO_LABELS: dict[ScenarioType, str] = {
    ScenarioType.MIN_TIME: "Fastest route",
    ScenarioType.MIN_DISTANCE: "Shortest route",
    ScenarioType.MIN_TCO: "Lowest total cost",
}

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ScenarioPolicy:
    """Organization preference for which scenario gets selected."""

    default_scenario: ScenarioType = ScenarioType.MIN_TCO
    trip_type_overrides: dict[str, ScenarioType] = field(default_factory=dict)

    def preferred_for(self, trip_type: Optional[str]) -> ScenarioType:
        if trip_type is not None and trip_type in self.trip_type_overrides:
            return self.trip_type_overrides[trip_type]
        return self.default_scenario


@dataclass(slots=True)
class _Candidate:
    type: ScenarioType
    route: ProviderRoute
    costs: CostBreakdown
    toll_source: TollSource
    is_from_cache: bool

    def to_scenario(self, scenario_type: ScenarioType | None = None) -> RouteScenario:
        scenario_type = scenario_type or self.type
        return RouteScenario(
            type=scenario_type,
            label=SCENARIO_LABELS[scenario_type],
            duration_minutes=round(self.route.duration_minutes, 2),
            distance_km=round(self.route.distance_km, 2),
            cost_breakdown=self.costs.rounded(),
            toll_source=self.toll_source,
            encoded_polyline=self.route.encoded_polyline,
            is_from_cache=self.is_from_cache,
        )


def cheapest(candidates: Sequence[_Candidate]) -> _Candidate:
    """Lowest total cost, ties broken by lowest duration."""
    return min(candidates, key=lambda c: (c.costs.total, c.route.duration_seconds))


def build_selection_rule(scenarios: Sequence[RouteScenario], selected: RouteScenario) -> ScenarioSelectionRule:
    alternatives = [
        AlternativeScenario(
            type=s.type,
            total=s.cost_breakdown.total,
            difference=round(s.cost_breakdown.total - selected.cost_breakdown.total, 2),
        )
        for s in scenarios
        if s.type != selected.type
    ]
    worst = max(s.cost_breakdown.total for s in scenarios)
    savings = round(worst - selected.cost_breakdown.total, 2)
    percentage = round(savings / worst * 100, 2) if worst > 0 else 0.0
    return ScenarioSelectionRule(
        description=f"Route scenario: {selected.label} ({selected.cost_breakdown.total:.2f} EUR)",
        selected_scenario=selected.type,
        selected_total=selected.cost_breakdown.total,
        alternatives=alternatives,
        savings_vs_worst=savings,
        percentage_savings=percentage,
    )


class RouteScenarioEngine:
    def __init__(
        self,
        client: RoutesClient | None = None,
        rates: CostRates | None = None,
        policy: ScenarioPolicy | None = None,
        toll_cache: TollCache | None = None,
    ) -> None:
        self.client = client
        self.rates = rates or CostRates()
        self.policy = policy or ScenarioPolicy()
        self.toll_cache = toll_cache

    def _candidate(self, scenario_type: ScenarioType, request: RoutesRequest, route: ProviderRoute) -> _Candidate:
        tolls = resolve_tolls(
            request.origin,
            request.destination,
            route,
            fallback_rate_per_km=self.rates.fallback_toll_rate_per_km,
            cache=self.toll_cache,
            intermediates=request.intermediates,
            variant=request.routing_preference,
        )
        costs = compute_cost_breakdown(route.distance_km, route.duration_minutes, tolls.amount, self.rates)
        return _Candidate(scenario_type, route, costs, tolls.source, tolls.is_from_cache)

    def compute_scenarios(
        self,
        origin: GeoPoint,
        destination: GeoPoint,
        intermediates: Sequence[GeoPoint] | None = None,
        trip_type: str | None = None,
    ) -> RouteScenarios:
        """Compute MIN_TIME, MIN_DISTANCE and MIN_TCO scenarios and select one.

        Provider failures never propagate: they produce a single straight-line scenario
        with ``fallback_used`` set.
        """
        stops = list(intermediates or [])
        calculated_at = datetime.now(timezone.utc)

        fastest_request = RoutesRequest(origin, destination, stops, routing_preference="TRAFFIC_AWARE")
        fastest = compute_routes_with_fallback(fastest_request, self.client)
        if fastest.fallback:
            return self._fallback_scenarios(fastest_request, fastest.data, fastest.error, calculated_at)

        shortest_request = RoutesRequest(
            origin,
            destination,
            stops,
            routing_preference="TRAFFIC_UNAWARE",
            compute_alternative_routes=True,
        )
        shortest = compute_routes_with_fallback(shortest_request, self.client)
        if shortest.fallback:
            logger.warning(f"Shortest-route request failed, reusing fastest route: {shortest.error}")
            shortest_route = fastest.data
        else:
            shortest_route = min(shortest.routes, key=lambda route: route.distance_meters)

        candidates = [
            self._candidate(ScenarioType.MIN_TIME, fastest_request, fastest.data),
            self._candidate(ScenarioType.MIN_DISTANCE, shortest_request, shortest_route),
        ]
        best = cheapest(candidates)
        scenarios = [candidate.to_scenario() for candidate in candidates]
        scenarios.append(best.to_scenario(ScenarioType.MIN_TCO))

        preferred = self.policy.preferred_for(trip_type)
        selected = next(s for s in scenarios if s.type == preferred)
        selected.is_recommended = True
        rule = build_selection_rule(scenarios, selected)

        if preferred == ScenarioType.MIN_TCO:
            reason = (
                f"Lowest total cost: {selected.cost_breakdown.total:.2f} EUR "
                f"({rule.savings_vs_worst:.2f} EUR saved vs worst option)"
            )
        else:
            reason = f"Organization policy prefers '{selected.label}' for trip type '{trip_type or 'default'}'"

        return RouteScenarios(
            scenarios=scenarios,
            selected_scenario=preferred,
            selection_reason=reason,
            fallback_used=False,
            calculated_at=calculated_at,
            selection_overridden=preferred != ScenarioType.MIN_TCO,
            applied_rule=rule,
        )

    def _fallback_scenarios(
        self,
        request: RoutesRequest,
        route: ProviderRoute,
        error: Optional[str],
        calculated_at: datetime,
    ) -> RouteScenarios:
        candidate = self._candidate(ScenarioType.MIN_TCO, request, route)
        scenario = replace(candidate.to_scenario(), is_recommended=True)
        return RouteScenarios(
            scenarios=[scenario],
            selected_scenario=ScenarioType.MIN_TCO,
            selection_reason="Routing provider unavailable: straight-line distance estimate",
            fallback_used=True,
            fallback_reason=error,
            calculated_at=calculated_at,
        )
