"""Compliance request/response schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.domain import CostBreakdown
from ..models.enums import (
    ComplianceStatus,
    RegulatoryRegime,
    RoutingSource,
    RuleResult,
    StaffingPlan,
    ViolationType,
)
from ..services.routing.models import TripAnalysis, TripSegment


class ActivityRequest(BaseModel):
    organization_id: str
    driver_id: str
    date: date
    regime: RegulatoryRegime
    driving_minutes: int = Field(..., ge=0)
    amplitude_minutes: Optional[int] = Field(default=None, ge=0, description="Defaults to the driving minutes.")
    break_minutes: int = Field(default=0, ge=0)
    rest_minutes: int = Field(default=0, ge=0)


class CounterModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    organization_id: str
    driver_id: str
    business_date: date
    regime: RegulatoryRegime
    driving_minutes: int
    amplitude_minutes: int
    break_minutes: int
    rest_minutes: int


class ActivityResponse(BaseModel):
    counter: CounterModel
    status: ComplianceStatus


class SegmentInput(BaseModel):
    name: Literal["approach", "service", "return"]
    distance_km: float = Field(..., ge=0)
    duration_minutes: float = Field(..., ge=0)


class TripValidationRequest(BaseModel):
    organization_id: str
    regime: RegulatoryRegime
    segments: List[SegmentInput] = Field(..., min_length=1)
    driver_id: Optional[str] = None
    pickup_at: Optional[datetime] = None
    dropoff_at: Optional[datetime] = None
    reference_id: Optional[str] = Field(default=None, description="Quote or mission id recorded in the audit log.")

    @model_validator(mode="after")
    def _check_window(self) -> "TripValidationRequest":
        if self.pickup_at and self.dropoff_at and self.dropoff_at < self.pickup_at:
            raise ValueError("dropoff_at must not be before pickup_at")
        return self

    def to_trip_analysis(self) -> TripAnalysis:
        segments = [
            TripSegment(
                name=s.name,
                distance_km=s.distance_km,
                duration_minutes=s.duration_minutes,
                cost_breakdown=CostBreakdown(),
            )
            for s in self.segments
        ]
        return TripAnalysis(
            cost_breakdown=CostBreakdown(),
            segments=segments,
            total_distance_km=sum(s.distance_km for s in segments),
            total_duration_minutes=sum(s.duration_minutes for s in segments),
            routing_source=RoutingSource.GOOGLE_API,
        )


class ViolationModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: ViolationType
    message: str
    actual: float
    limit: float
    unit: str
    severity: str


class WarningModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str
    message: str
    actual: float
    limit: float
    percent_of_limit: float


class RuleApplicationModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    rule_id: str
    rule_name: str
    threshold: float
    unit: str
    result: RuleResult
    actual_value: float


class AdjustedDurationsModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_driving_minutes: float
    total_amplitude_minutes: float
    injected_break_minutes: float
    capped_speed_applied: bool
    original_driving_minutes: float
    original_amplitude_minutes: float


class ValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_compliant: bool
    regulatory_category: RegulatoryRegime
    violations: List[ViolationModel]
    warnings: List[WarningModel]
    adjusted_durations: AdjustedDurationsModel
    rules_applied: List[RuleApplicationModel]


class ProjectionRequest(BaseModel):
    organization_id: str
    driver_id: str
    date: date
    regime: RegulatoryRegime
    additional_driving_minutes: int = Field(..., ge=0)
    additional_amplitude_minutes: Optional[int] = Field(default=None, ge=0)
    reference_id: Optional[str] = None


class ProjectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: ComplianceStatus
    would_exceed: bool
    projected_driving_minutes: int
    projected_amplitude_minutes: int
    violations: List[ViolationModel]
    warnings: List[WarningModel]


class RegimeSnapshotModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    regime: RegulatoryRegime
    driving_hours: float
    amplitude_hours: float
    break_minutes: int
    max_driving_hours: Optional[float] = None
    max_amplitude_hours: Optional[float] = None
    status: ComplianceStatus


class SnapshotResponse(BaseModel):
    driver_id: str
    date: date
    regimes: List[RegimeSnapshotModel]


class StaffingAlternativeModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plan: StaffingPlan
    title: str
    description: str
    is_feasible: bool
    would_be_compliant: bool
    total_cost: float
    extra_driver_cost: float
    hotel_cost: float
    meal_allowance: float
    days_required: int
    drivers_required: int
    hotel_nights_required: int
    remaining_violations: List[ViolationModel]
    feasibility_reason: Optional[str] = None


class AlternativesResponse(BaseModel):
    validation: ValidationResponse
    alternatives: List[StaffingAlternativeModel]
    recommended: Optional[StaffingPlan] = None
    message: str
