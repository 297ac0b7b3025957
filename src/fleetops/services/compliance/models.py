"""Regulatory compliance domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from ...models.enums import (
    AuditDecision,
    ComplianceStatus,
    RegulatoryRegime,
    RuleResult,
    StaffingPlan,
    ViolationType,
)


@dataclass(slots=True)
class DriverRSECounter:
    """Accumulated regulated time for one driver, business date and regime."""

    organization_id: str
    driver_id: str
    business_date: date
    regime: RegulatoryRegime
    driving_minutes: int = 0
    amplitude_minutes: int = 0
    break_minutes: int = 0
    rest_minutes: int = 0

    @property
    def key(self) -> tuple[str, str, date, RegulatoryRegime]:
        return (self.organization_id, self.driver_id, self.business_date, self.regime)


@dataclass(slots=True)
class ComplianceRule:
    regime: RegulatoryRegime
    max_daily_driving_hours: float
    max_daily_amplitude_hours: float
    break_minutes_per_driving_block: int
    driving_block_hours_for_break: float
    capped_average_speed_kmh: Optional[float] = None
    id: str = "default"
    name: str = "Default rule"
    organization_id: Optional[str] = None

    def __post_init__(self) -> None:
        if self.max_daily_driving_hours <= 0 or self.max_daily_amplitude_hours <= 0:
            raise ValueError("Daily driving and amplitude limits must be > 0")
        if self.driving_block_hours_for_break <= 0:
            raise ValueError("driving_block_hours_for_break must be > 0")
        if self.break_minutes_per_driving_block < 0:
            raise ValueError("break_minutes_per_driving_block must be >= 0")
        if self.capped_average_speed_kmh is not None and self.capped_average_speed_kmh <= 0:
            raise ValueError("capped_average_speed_kmh must be > 0")

    @property
    def max_driving_minutes(self) -> float:
        return self.max_daily_driving_hours * 60

    @property
    def max_amplitude_minutes(self) -> float:
        return self.max_daily_amplitude_hours * 60


DEFAULT_HEAVY_VEHICLE_RULE = ComplianceRule(
    regime=RegulatoryRegime.HEAVY,
    max_daily_driving_hours=10,
    max_daily_amplitude_hours=14,
    break_minutes_per_driving_block=45,
    driving_block_hours_for_break=4.5,
    capped_average_speed_kmh=85,
    id="default-heavy",
    name="Heavy vehicle daily limits",
)


@dataclass(slots=True)
class ComplianceViolation:
    type: ViolationType
    message: str
    actual: float
    limit: float
    unit: str = "hours"
    severity: str = "BLOCKING"


@dataclass(slots=True)
class ComplianceWarning:
    message: str
    actual: float
    limit: float
    percent_of_limit: float
    type: str = "APPROACHING_LIMIT"


@dataclass(slots=True)
class RuleApplication:
    rule_id: str
    rule_name: str
    threshold: float
    unit: str
    result: RuleResult
    actual_value: float


@dataclass(slots=True)
class AdjustedDurations:
    total_driving_minutes: float
    total_amplitude_minutes: float
    injected_break_minutes: float
    capped_speed_applied: bool
    original_driving_minutes: float
    original_amplitude_minutes: float


@dataclass(slots=True)
class ComplianceValidationResult:
    is_compliant: bool
    regulatory_category: RegulatoryRegime
    violations: List[ComplianceViolation]
    warnings: List[ComplianceWarning]
    adjusted_durations: AdjustedDurations
    rules_applied: List[RuleApplication]


@dataclass(slots=True)
class CumulativeCheckResult:
    status: ComplianceStatus
    projected_driving_minutes: int
    projected_amplitude_minutes: int
    violations: List[ComplianceViolation] = field(default_factory=list)
    warnings: List[ComplianceWarning] = field(default_factory=list)

    @property
    def would_exceed(self) -> bool:
        return bool(self.violations)


@dataclass(slots=True)
class RegimeSnapshot:
    regime: RegulatoryRegime
    driving_hours: float
    amplitude_hours: float
    break_minutes: int
    max_driving_hours: Optional[float]
    max_amplitude_hours: Optional[float]
    status: ComplianceStatus


@dataclass(slots=True)
class AuditEntry:
    organization_id: str
    driver_id: Optional[str]
    regime: RegulatoryRegime
    decision: AuditDecision
    reason: str
    created_at: datetime
    violations: List[ComplianceViolation] = field(default_factory=list)
    warnings: List[ComplianceWarning] = field(default_factory=list)
    reference_id: Optional[str] = None


@dataclass(slots=True)
class StaffingCostParameters:
    driver_hourly_cost: float
    hotel_cost_per_night: float
    meal_allowance_per_day: float


@dataclass(slots=True)
class StaffingAlternative:
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
    remaining_violations: List[ComplianceViolation] = field(default_factory=list)
    feasibility_reason: Optional[str] = None


@dataclass(slots=True)
class StaffingAlternatives:
    alternatives: List[StaffingAlternative]
    original_violations: List[ComplianceViolation]
    message: str
    recommended: Optional[StaffingPlan] = None

    @property
    def has_alternatives(self) -> bool:
        return bool(self.alternatives)
