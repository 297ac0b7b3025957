"""Routing and costing request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.domain import GeoPoint
from ..models.enums import FuelPriceSource, RoutingSource, ScenarioType, TollSource
from ..services.routing.costs import CostRates


class GeoPointModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_domain(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)


class CostRatesModel(BaseModel):
    """Organization cost rates; omitted values fall back to configured defaults."""

    fuel_price_per_liter: Optional[float] = Field(None, ge=0)
    fuel_consumption_l100km: Optional[float] = Field(None, ge=0)
    driver_hourly_cost: Optional[float] = Field(None, ge=0)
    wear_cost_per_km: Optional[float] = Field(None, ge=0)
    fallback_toll_rate_per_km: Optional[float] = Field(None, ge=0)

    def to_domain(self) -> CostRates:
        overrides = self.model_dump(exclude_none=True)
        rates = CostRates(**overrides)
        if "fuel_price_per_liter" in overrides:
            rates.fuel_price_source = FuelPriceSource.ORGANIZATION
        return rates


class CostBreakdownModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    fuel: float
    tolls: float
    wear: float
    driver: float
    parking: float
    total: float


class RouteScenarioRequest(BaseModel):
    origin: GeoPointModel
    destination: GeoPointModel
    intermediates: List[GeoPointModel] = Field(default_factory=list)
    trip_type: Optional[str] = Field(default=None, description="Trip type used to look up policy overrides.")
    rates: Optional[CostRatesModel] = None
    default_scenario: ScenarioType = ScenarioType.MIN_TCO
    trip_type_overrides: Dict[str, ScenarioType] = Field(
        default_factory=dict,
        description="Scenario forced for specific trip types, e.g. {'AIRPORT': 'MIN_TIME'}.",
    )


class RouteScenarioModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: ScenarioType
    label: str
    duration_minutes: float
    distance_km: float
    cost_breakdown: CostBreakdownModel
    toll_source: TollSource
    encoded_polyline: Optional[str] = None
    is_from_cache: bool
    is_recommended: bool


class AlternativeScenarioModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: ScenarioType
    total: float
    difference: float


class ScenarioSelectionRuleModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    description: str
    selected_scenario: ScenarioType
    selected_total: float
    alternatives: List[AlternativeScenarioModel]
    savings_vs_worst: float
    percentage_savings: float


class RouteScenariosResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    scenarios: List[RouteScenarioModel]
    selected_scenario: ScenarioType
    selection_reason: str
    fallback_used: bool
    fallback_reason: Optional[str] = None
    selection_overridden: bool
    calculated_at: datetime
    applied_rule: Optional[ScenarioSelectionRuleModel] = None


class TripAnalysisRequest(BaseModel):
    pickup: GeoPointModel
    dropoff: GeoPointModel
    base: Optional[GeoPointModel] = Field(default=None, description="Vehicle base for approach/return legs.")
    intermediates: List[GeoPointModel] = Field(default_factory=list)
    rates: Optional[CostRatesModel] = None
    parking: float = Field(default=0.0, ge=0)


class TripSegmentModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    distance_km: float
    duration_minutes: float
    cost_breakdown: CostBreakdownModel
    routing_source: RoutingSource


class TripAnalysisResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cost_breakdown: CostBreakdownModel
    segments: List[TripSegmentModel]
    total_distance_km: float
    total_duration_minutes: float
    routing_source: RoutingSource
    toll_source: Optional[TollSource] = None
    fuel_price_source: Optional[FuelPriceSource] = None
    pickup_zone_code: Optional[str] = None
    dropoff_zone_code: Optional[str] = None
