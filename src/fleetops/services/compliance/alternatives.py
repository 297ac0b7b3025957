"""Staffing alternatives for trips that break daily regulatory limits."""

from __future__ import annotations

import math
from typing import Optional

from ...config import settings
from ...models.enums import RegulatoryRegime, StaffingPlan, ViolationType
from .models import (
    ComplianceRule,
    ComplianceValidationResult,
    ComplianceViolation,
    StaffingAlternative,
    StaffingAlternatives,
    StaffingCostParameters,
)

DOUBLE_CREW_AMPLITUDE_HOURS = 18
STANDARD_WORK_DAY_HOURS = 8
MIN_DAILY_REST_HOURS = 11


def default_cost_parameters() -> StaffingCostParameters:
    return StaffingCostParameters(
        driver_hourly_cost=settings.staffing_driver_hourly_cost,
        hotel_cost_per_night=settings.staffing_hotel_cost_per_night,
        meal_allowance_per_day=settings.staffing_meal_allowance_per_day,
    )


def _find(result: ComplianceValidationResult, violation_type: ViolationType) -> Optional[ComplianceViolation]:
    return next((v for v in result.violations if v.type == violation_type), None)


def double_crew(
    result: ComplianceValidationResult, costs: StaffingCostParameters, rule: ComplianceRule
) -> Optional[StaffingAlternative]:
    amplitude = _find(result, ViolationType.AMPLITUDE_EXCEEDED)
    if amplitude is None:
        return None

    feasible = amplitude.actual <= DOUBLE_CREW_AMPLITUDE_HOURS
    extra_driver_cost = round(max(0.0, amplitude.actual - STANDARD_WORK_DAY_HOURS) * costs.driver_hourly_cost, 2)
    remaining = [v for v in result.violations if v.type == ViolationType.DRIVING_TIME_EXCEEDED]
    if not feasible:
        remaining.append(
            ComplianceViolation(
                type=ViolationType.AMPLITUDE_EXCEEDED,
                message=f"Amplitude ({amplitude.actual}h) exceeds double crew limit ({DOUBLE_CREW_AMPLITUDE_HOURS}h)",
                actual=amplitude.actual,
                limit=DOUBLE_CREW_AMPLITUDE_HOURS,
            )
        )
    return StaffingAlternative(
        plan=StaffingPlan.DOUBLE_CREW,
        title="Double crew",
        description=(
            f"Add a second driver to extend the amplitude limit from "
            f"{rule.max_daily_amplitude_hours}h to {DOUBLE_CREW_AMPLITUDE_HOURS}h"
        ),
        is_feasible=feasible,
        would_be_compliant=feasible and not remaining,
        total_cost=extra_driver_cost,
        extra_driver_cost=extra_driver_cost,
        hotel_cost=0.0,
        meal_allowance=0.0,
        days_required=1,
        drivers_required=2,
        hotel_nights_required=0,
        remaining_violations=remaining,
        feasibility_reason=None if feasible else "Amplitude exceeds the double crew limit",
    )


def relay_driver(
    result: ComplianceValidationResult, costs: StaffingCostParameters, rule: ComplianceRule
) -> Optional[StaffingAlternative]:
    driving = _find(result, ViolationType.DRIVING_TIME_EXCEEDED)
    if driving is None:
        return None

    per_driver = driving.actual / 2
    feasible = per_driver <= rule.max_daily_driving_hours
    extra_driver_cost = round(per_driver * costs.driver_hourly_cost, 2)
    remaining = [v for v in result.violations if v.type == ViolationType.AMPLITUDE_EXCEEDED]
    if not feasible:
        remaining.append(
            ComplianceViolation(
                type=ViolationType.DRIVING_TIME_EXCEEDED,
                message=f"Driving per driver ({per_driver:.2f}h) still exceeds limit ({rule.max_daily_driving_hours}h)",
                actual=per_driver,
                limit=rule.max_daily_driving_hours,
            )
        )
    return StaffingAlternative(
        plan=StaffingPlan.RELAY_DRIVER,
        title="Relay driver",
        description=f"Split driving between two drivers ({per_driver:.1f}h each) with a handover at midpoint",
        is_feasible=feasible,
        would_be_compliant=feasible and not remaining,
        total_cost=extra_driver_cost,
        extra_driver_cost=extra_driver_cost,
        hotel_cost=0.0,
        meal_allowance=0.0,
        days_required=1,
        drivers_required=2,
        hotel_nights_required=0,
        remaining_violations=remaining,
        feasibility_reason=None if feasible else "Even split still exceeds the daily driving limit",
    )


def multi_day(
    result: ComplianceValidationResult, costs: StaffingCostParameters, rule: ComplianceRule
) -> Optional[StaffingAlternative]:
    if not result.violations:
        return None

    amplitude_hours = result.adjusted_durations.total_amplitude_minutes / 60
    driving_hours = result.adjusted_durations.total_driving_minutes / 60
    days = max(1, math.ceil(amplitude_hours / rule.max_daily_amplitude_hours))
    feasible = days <= settings.staffing_max_days
    hotel_nights = days - 1
    hotel_cost = round(hotel_nights * costs.hotel_cost_per_night, 2)
    meal_allowance = round(days * costs.meal_allowance_per_day, 2)
    extra_driver_cost = round((days - 1) * STANDARD_WORK_DAY_HOURS * costs.driver_hourly_cost, 2)

    remaining: list[ComplianceViolation] = []
    if driving_hours / days > rule.max_daily_driving_hours:
        remaining.append(
            ComplianceViolation(
                type=ViolationType.DRIVING_TIME_EXCEEDED,
                message=f"Daily driving ({driving_hours / days:.2f}h) exceeds limit even over {days} days",
                actual=round(driving_hours / days, 2),
                limit=rule.max_daily_driving_hours,
            )
        )
    if amplitude_hours / days > rule.max_daily_amplitude_hours:
        remaining.append(
            ComplianceViolation(
                type=ViolationType.AMPLITUDE_EXCEEDED,
                message=f"Daily amplitude ({amplitude_hours / days:.2f}h) exceeds limit even over {days} days",
                actual=round(amplitude_hours / days, 2),
                limit=rule.max_daily_amplitude_hours,
            )
        )
    return StaffingAlternative(
        plan=StaffingPlan.MULTI_DAY,
        title="Multi-day mission",
        description=(
            f"Convert to a {days}-day mission with {hotel_nights} overnight "
            f"stop{'s' if hotel_nights != 1 else ''} and {MIN_DAILY_REST_HOURS}h daily rest"
        ),
        is_feasible=feasible,
        would_be_compliant=feasible and not remaining,
        total_cost=round(hotel_cost + meal_allowance + extra_driver_cost, 2),
        extra_driver_cost=extra_driver_cost,
        hotel_cost=hotel_cost,
        meal_allowance=meal_allowance,
        days_required=days,
        drivers_required=1,
        hotel_nights_required=hotel_nights,
        remaining_violations=remaining,
        feasibility_reason=None if feasible else f"Mission needs {days} days, above the {settings.staffing_max_days}-day maximum",
    )


def generate_alternatives(
    result: ComplianceValidationResult,
    rule: Optional[ComplianceRule],
    costs: StaffingCostParameters | None = None,
) -> StaffingAlternatives:
    """Candidate staffing plans, feasible and compliant ones first, then cheapest."""
    if result.is_compliant:
        return StaffingAlternatives([], [], "Trip is compliant, no alternatives needed")
    if result.regulatory_category != RegulatoryRegime.HEAVY or rule is None:
        return StaffingAlternatives([], result.violations, "Alternatives are only available for regulated heavy vehicles")

    costs = costs or default_cost_parameters()
    alternatives = []
    for plan in StaffingPlan:
        match plan:
            case StaffingPlan.DOUBLE_CREW:
                option = double_crew(result, costs, rule)
            case StaffingPlan.RELAY_DRIVER:
                option = relay_driver(result, costs, rule)
            case StaffingPlan.MULTI_DAY:
                option = multi_day(result, costs, rule)
            case _:
                raise ValueError(f"Unknown staffing plan '{plan}'.")
        if option is not None:
            alternatives.append(option)

    alternatives.sort(key=lambda a: (not a.is_feasible, not a.would_be_compliant, a.total_cost))
    recommended = next((a.plan for a in alternatives if a.is_feasible and a.would_be_compliant), None)
    message = (
        f"{len(alternatives)} alternative{'s' if len(alternatives) != 1 else ''} available"
        if alternatives
        else "No alternatives available for this violation pattern"
    )
    return StaffingAlternatives(alternatives, result.violations, message, recommended)
