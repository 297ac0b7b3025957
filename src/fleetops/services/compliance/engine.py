"""Per-driver daily regulatory counters and limit evaluation."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from ...config import settings
from ...models.enums import AuditDecision, ComplianceStatus, RegulatoryRegime, ViolationType
from ...persistence.base import AuditStore, CounterStore, RuleStore
from ..routing.models import TripAnalysis
from .models import (
    DEFAULT_HEAVY_VEHICLE_RULE,
    AuditEntry,
    ComplianceRule,
    ComplianceValidationResult,
    ComplianceViolation,
    ComplianceWarning,
    CumulativeCheckResult,
    DriverRSECounter,
    RegimeSnapshot,
)
from .validator import validate_trip

logger = logging.getLogger(__name__)


def business_date(value: date | datetime) -> date:
    """Calendar day of an activity, normalized to local midnight."""
    if isinstance(value, datetime):
        return value.date()
    return value


def minutes_to_hours(minutes: float) -> float:
    return round(minutes / 60, 2)


def _warning_ratio(ratio: float | None) -> float:
    return settings.compliance_warning_ratio if ratio is None else ratio


def evaluate(
    counter: DriverRSECounter,
    rule: Optional[ComplianceRule],
    warning_ratio: float | None = None,
) -> ComplianceStatus:
    """Status of an already-fetched counter. No rule means unregulated."""
    if rule is None:
        return ComplianceStatus.OK
    if counter.driving_minutes > rule.max_driving_minutes or counter.amplitude_minutes > rule.max_amplitude_minutes:
        return ComplianceStatus.VIOLATION
    ratio = _warning_ratio(warning_ratio)
    if (
        counter.driving_minutes / rule.max_driving_minutes >= ratio
        or counter.amplitude_minutes / rule.max_amplitude_minutes >= ratio
    ):
        return ComplianceStatus.WARNING
    return ComplianceStatus.OK


def check_cumulative(
    counter: DriverRSECounter,
    additional_driving_minutes: int,
    rule: Optional[ComplianceRule],
    additional_amplitude_minutes: int | None = None,
    warning_ratio: float | None = None,
) -> CumulativeCheckResult:
    """Project the counter forward and report what the extra time would break.

    Additional amplitude defaults to the additional driving time. Driving-time
    violations are always listed before amplitude violations.
    """
    if additional_amplitude_minutes is None:
        additional_amplitude_minutes = additional_driving_minutes
    projected_driving = counter.driving_minutes + additional_driving_minutes
    projected_amplitude = counter.amplitude_minutes + additional_amplitude_minutes
    result = CumulativeCheckResult(
        status=ComplianceStatus.OK,
        projected_driving_minutes=projected_driving,
        projected_amplitude_minutes=projected_amplitude,
    )
    if rule is None:
        return result

    ratio = _warning_ratio(warning_ratio)
    checks = [
        (ViolationType.DRIVING_TIME_EXCEEDED, "Daily driving time", projected_driving, rule.max_daily_driving_hours),
        (ViolationType.AMPLITUDE_EXCEEDED, "Daily amplitude", projected_amplitude, rule.max_daily_amplitude_hours),
    ]
    for violation_type, label, projected_minutes, limit_hours in checks:
        actual_hours = minutes_to_hours(projected_minutes)
        if projected_minutes > limit_hours * 60:
            result.violations.append(
                ComplianceViolation(
                    type=violation_type,
                    message=f"{label} would reach {actual_hours}h, exceeding the {limit_hours}h limit",
                    actual=actual_hours,
                    limit=limit_hours,
                )
            )
        elif projected_minutes / (limit_hours * 60) >= ratio:
            percent = round(projected_minutes / (limit_hours * 60) * 100)
            result.warnings.append(
                ComplianceWarning(
                    message=f"{label} would reach {percent}% of the {limit_hours}h limit",
                    actual=actual_hours,
                    limit=limit_hours,
                    percent_of_limit=percent,
                )
            )

    if result.violations:
        result.status = ComplianceStatus.VIOLATION
    elif result.warnings:
        result.status = ComplianceStatus.WARNING
    return result


def project_compliance(
    counter: DriverRSECounter,
    additional_minutes: int,
    rule: Optional[ComplianceRule],
) -> bool:
    """True when scheduling ``additional_minutes`` more driving would exceed a limit."""
    return check_cumulative(counter, additional_minutes, rule).would_exceed


class ComplianceEngine:
    """Organization-scoped facade over counters, rules and the audit trail.

    Counter increments are delegated to the store, which must apply them atomically.
    Each regime is read and evaluated on its own key only.
    """

    def __init__(
        self,
        organization_id: str,
        counters: CounterStore,
        rules: RuleStore | None = None,
        audit: AuditStore | None = None,
        warning_ratio: float | None = None,
    ) -> None:
        self.organization_id = organization_id
        self.counters = counters
        self.rules = rules
        self.audit = audit
        self.warning_ratio = warning_ratio

    def rule_for(self, regime: RegulatoryRegime) -> Optional[ComplianceRule]:
        if self.rules is not None:
            return self.rules.get_rule(self.organization_id, regime)
        return DEFAULT_HEAVY_VEHICLE_RULE if regime == RegulatoryRegime.HEAVY else None

    def record_activity(
        self,
        driver_id: str,
        activity_date: date | datetime,
        regime: RegulatoryRegime,
        driving_minutes: int,
        amplitude_minutes: int | None = None,
        break_minutes: int = 0,
        rest_minutes: int = 0,
    ) -> DriverRSECounter:
        """Add an activity to the driver's counter.

        Not deduplicated: each activity must be recorded exactly once by the caller.
        """
        if amplitude_minutes is None:
            amplitude_minutes = driving_minutes
        if min(driving_minutes, amplitude_minutes, break_minutes, rest_minutes) < 0:
            raise ValueError("Activity minutes must be >= 0")
        counter = self.counters.increment_counter(
            self.organization_id,
            driver_id,
            business_date(activity_date),
            regime,
            driving_minutes,
            amplitude_minutes,
            break_minutes,
            rest_minutes,
        )
        logger.debug(
            f"Recorded activity for driver {driver_id} ({regime}): "
            f"driving={counter.driving_minutes}min amplitude={counter.amplitude_minutes}min"
        )
        return counter

    def get_counter(self, driver_id: str, day: date | datetime, regime: RegulatoryRegime) -> DriverRSECounter:
        key_date = business_date(day)
        counter = self.counters.get_counter(self.organization_id, driver_id, key_date, regime)
        if counter is None:
            return DriverRSECounter(self.organization_id, driver_id, key_date, regime)
        return counter

    def status(self, driver_id: str, day: date | datetime, regime: RegulatoryRegime) -> ComplianceStatus:
        return evaluate(self.get_counter(driver_id, day, regime), self.rule_for(regime), self.warning_ratio)

    def can_schedule(
        self,
        driver_id: str,
        day: date | datetime,
        regime: RegulatoryRegime,
        additional_driving_minutes: int,
        additional_amplitude_minutes: int | None = None,
        reference_id: str | None = None,
    ) -> CumulativeCheckResult:
        counter = self.get_counter(driver_id, day, regime)
        result = check_cumulative(
            counter,
            additional_driving_minutes,
            self.rule_for(regime),
            additional_amplitude_minutes,
            self.warning_ratio,
        )
        self._audit(driver_id, regime, result.violations, result.warnings, reference_id)
        return result

    def snapshot(self, driver_id: str, day: date | datetime) -> list[RegimeSnapshot]:
        snapshots = []
        for regime in RegulatoryRegime:
            counter = self.get_counter(driver_id, day, regime)
            rule = self.rule_for(regime)
            snapshots.append(
                RegimeSnapshot(
                    regime=regime,
                    driving_hours=minutes_to_hours(counter.driving_minutes),
                    amplitude_hours=minutes_to_hours(counter.amplitude_minutes),
                    break_minutes=counter.break_minutes,
                    max_driving_hours=rule.max_daily_driving_hours if rule else None,
                    max_amplitude_hours=rule.max_daily_amplitude_hours if rule else None,
                    status=evaluate(counter, rule, self.warning_ratio),
                )
            )
        return snapshots

    def validate_trip(
        self,
        analysis: TripAnalysis,
        regime: RegulatoryRegime,
        *,
        driver_id: str | None = None,
        pickup_at: datetime | None = None,
        dropoff_at: datetime | None = None,
        reference_id: str | None = None,
    ) -> ComplianceValidationResult:
        result = validate_trip(
            analysis,
            regime,
            self.rule_for(regime),
            pickup_at=pickup_at,
            dropoff_at=dropoff_at,
            warning_ratio=self.warning_ratio,
        )
        self._audit(driver_id, regime, result.violations, result.warnings, reference_id)
        return result

    def _audit(
        self,
        driver_id: str | None,
        regime: RegulatoryRegime,
        violations: list[ComplianceViolation],
        warnings: list[ComplianceWarning],
        reference_id: str | None,
    ) -> None:
        if self.audit is None:
            return
        if violations:
            decision = AuditDecision.BLOCKED
            reason = "; ".join(v.message for v in violations)
        elif warnings:
            decision = AuditDecision.WARNING
            reason = "; ".join(w.message for w in warnings)
        else:
            decision = AuditDecision.APPROVED
            reason = "Within regulatory limits"
        self.audit.append_audit(
            AuditEntry(
                organization_id=self.organization_id,
                driver_id=driver_id,
                regime=regime,
                decision=decision,
                reason=reason,
                created_at=datetime.now(timezone.utc),
                violations=list(violations),
                warnings=list(warnings),
                reference_id=reference_id,
            )
        )
