"""Trip-level regulatory validation with break injection and speed capping."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from ...config import settings
from ...models.enums import RegulatoryRegime, RuleResult, ViolationType
from ..routing.models import TripAnalysis, TripSegment
from .models import (
    AdjustedDurations,
    ComplianceRule,
    ComplianceValidationResult,
    ComplianceViolation,
    ComplianceWarning,
    RuleApplication,
)

DRIVING_SEGMENTS = ("approach", "service", "return")


def _driving_segments(analysis: TripAnalysis) -> list[TripSegment]:
    return [segment for segment in analysis.segments if segment.name in DRIVING_SEGMENTS]


def _segment_minutes(analysis: TripAnalysis, name: str) -> float:
    segment = analysis.segment(name)
    return segment.duration_minutes if segment else 0.0


def total_driving_minutes(analysis: TripAnalysis) -> float:
    return sum(segment.duration_minutes for segment in _driving_segments(analysis))


def total_amplitude_minutes(
    analysis: TripAnalysis,
    pickup_at: Optional[datetime] = None,
    dropoff_at: Optional[datetime] = None,
) -> float:
    """Working-day span: the booked service window plus approach and return when known."""
    if pickup_at is not None and dropoff_at is not None:
        service_window = (dropoff_at - pickup_at).total_seconds() / 60
        return service_window + _segment_minutes(analysis, "approach") + _segment_minutes(analysis, "return")
    return total_driving_minutes(analysis)


def capped_duration_minutes(distance_km: float, duration_minutes: float, cap_kmh: float) -> float:
    """Duration at the regulated speed when the estimate implies driving faster than the cap."""
    if distance_km <= 0 or duration_minutes <= 0:
        return duration_minutes
    implied_speed = distance_km / (duration_minutes / 60)
    if implied_speed <= cap_kmh:
        return duration_minutes
    return distance_km / cap_kmh * 60


def injected_break_minutes(driving_minutes: float, rule: ComplianceRule) -> float:
    block_minutes = rule.driving_block_hours_for_break * 60
    if driving_minutes <= block_minutes:
        return 0
    return math.floor(driving_minutes / block_minutes) * rule.break_minutes_per_driving_block


def _limit_check(
    rule_id: str,
    rule_name: str,
    violation_type: ViolationType,
    actual_minutes: float,
    limit_hours: float,
    warning_ratio: float,
    violations: list[ComplianceViolation],
    warnings: list[ComplianceWarning],
) -> RuleApplication:
    actual_hours = round(actual_minutes / 60, 2)
    ratio = actual_minutes / (limit_hours * 60)
    if ratio > 1:
        violations.append(
            ComplianceViolation(
                type=violation_type,
                message=f"{rule_name} ({actual_hours}h) exceeds the {limit_hours}h limit",
                actual=actual_hours,
                limit=limit_hours,
            )
        )
        result = RuleResult.FAIL
    elif ratio >= warning_ratio:
        percent = round(ratio * 100)
        warnings.append(
            ComplianceWarning(
                message=f"{rule_name} ({actual_hours}h) is at {percent}% of the {limit_hours}h limit",
                actual=actual_hours,
                limit=limit_hours,
                percent_of_limit=percent,
            )
        )
        result = RuleResult.WARNING
    else:
        result = RuleResult.PASS
    return RuleApplication(
        rule_id=rule_id,
        rule_name=rule_name,
        threshold=limit_hours,
        unit="hours",
        result=result,
        actual_value=actual_hours,
    )


def validate_trip(
    analysis: TripAnalysis,
    regime: RegulatoryRegime,
    rule: Optional[ComplianceRule],
    *,
    pickup_at: Optional[datetime] = None,
    dropoff_at: Optional[datetime] = None,
    warning_ratio: float | None = None,
) -> ComplianceValidationResult:
    """Validate a costed trip against a regime's daily limits.

    Adjusted durations (capped speed, injected breaks) are reported next to the
    original estimates rather than replacing them.
    """
    ratio = settings.compliance_warning_ratio if warning_ratio is None else warning_ratio
    original_driving = total_driving_minutes(analysis)
    original_amplitude = total_amplitude_minutes(analysis, pickup_at, dropoff_at)

    if rule is None:
        return ComplianceValidationResult(
            is_compliant=True,
            regulatory_category=regime,
            violations=[],
            warnings=[],
            adjusted_durations=AdjustedDurations(
                total_driving_minutes=original_driving,
                total_amplitude_minutes=original_amplitude,
                injected_break_minutes=0,
                capped_speed_applied=False,
                original_driving_minutes=original_driving,
                original_amplitude_minutes=original_amplitude,
            ),
            rules_applied=[],
        )

    rules_applied: list[RuleApplication] = []
    driving = original_driving
    capped = False
    if rule.capped_average_speed_kmh is not None:
        driving = sum(
            capped_duration_minutes(s.distance_km, s.duration_minutes, rule.capped_average_speed_kmh)
            for s in _driving_segments(analysis)
        )
        capped = driving > original_driving
        rules_applied.append(
            RuleApplication(
                rule_id=f"{rule.id}:speed-cap",
                rule_name="Capped average speed",
                threshold=rule.capped_average_speed_kmh,
                unit="km/h",
                result=RuleResult.WARNING if capped else RuleResult.PASS,
                actual_value=round(driving - original_driving, 2),
            )
        )

    breaks = injected_break_minutes(driving, rule)
    amplitude = original_amplitude + (driving - original_driving) + breaks
    if breaks:
        rules_applied.append(
            RuleApplication(
                rule_id=f"{rule.id}:breaks",
                rule_name="Mandatory break per driving block",
                threshold=rule.driving_block_hours_for_break,
                unit="hours",
                result=RuleResult.PASS,
                actual_value=breaks,
            )
        )

    violations: list[ComplianceViolation] = []
    warnings: list[ComplianceWarning] = []
    rules_applied.append(
        _limit_check(
            f"{rule.id}:driving",
            "Daily driving time",
            ViolationType.DRIVING_TIME_EXCEEDED,
            driving,
            rule.max_daily_driving_hours,
            ratio,
            violations,
            warnings,
        )
    )
    rules_applied.append(
        _limit_check(
            f"{rule.id}:amplitude",
            "Daily amplitude",
            ViolationType.AMPLITUDE_EXCEEDED,
            amplitude,
            rule.max_daily_amplitude_hours,
            ratio,
            violations,
            warnings,
        )
    )

    return ComplianceValidationResult(
        is_compliant=not violations,
        regulatory_category=regime,
        violations=violations,
        warnings=warnings,
        adjusted_durations=AdjustedDurations(
            total_driving_minutes=round(driving, 2),
            total_amplitude_minutes=round(amplitude, 2),
            injected_break_minutes=breaks,
            capped_speed_applied=capped,
            original_driving_minutes=round(original_driving, 2),
            original_amplitude_minutes=round(original_amplitude, 2),
        ),
        rules_applied=rules_applied,
    )
