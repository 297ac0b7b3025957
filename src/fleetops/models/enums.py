"""Closed value sets shared across the costing, compliance and dispatch services."""

from enum import Enum


class _StrEnum(str, Enum):
    def __str__(self) -> str:
        return self.value


class ScenarioType(_StrEnum):
    MIN_TIME = "MIN_TIME"
    MIN_DISTANCE = "MIN_DISTANCE"
    MIN_TCO = "MIN_TCO"


class RoutingSource(_StrEnum):
    GOOGLE_API = "GOOGLE_API"
    HAVERSINE_ESTIMATE = "HAVERSINE_ESTIMATE"


class TollSource(_StrEnum):
    GOOGLE_API = "GOOGLE_API"
    ESTIMATE = "ESTIMATE"


class FuelPriceSource(_StrEnum):
    DEFAULT = "DEFAULT"
    ORGANIZATION = "ORGANIZATION"


class DepreciationMethod(_StrEnum):
    LINEAR = "LINEAR"
    DECLINING_BALANCE = "DECLINING_BALANCE"


class RegulatoryRegime(_StrEnum):
    LIGHT = "LIGHT"
    HEAVY = "HEAVY"


class ComplianceStatus(_StrEnum):
    OK = "OK"
    WARNING = "WARNING"
    VIOLATION = "VIOLATION"


class ViolationType(_StrEnum):
    DRIVING_TIME_EXCEEDED = "DRIVING_TIME_EXCEEDED"
    AMPLITUDE_EXCEEDED = "AMPLITUDE_EXCEEDED"


class RuleResult(_StrEnum):
    PASS = "PASS"
    FAIL = "FAIL"
    WARNING = "WARNING"


class AuditDecision(_StrEnum):
    APPROVED = "APPROVED"
    BLOCKED = "BLOCKED"
    WARNING = "WARNING"


class StaffingPlan(_StrEnum):
    DOUBLE_CREW = "DOUBLE_CREW"
    RELAY_DRIVER = "RELAY_DRIVER"
    MULTI_DAY = "MULTI_DAY"


class QuoteLineType(_StrEnum):
    CALCULATED = "CALCULATED"
    MANUAL = "MANUAL"
    GROUP = "GROUP"


class MissionStatus(_StrEnum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class SyncErrorType(_StrEnum):
    CREATE_FAILED = "CREATE_FAILED"
    UPDATE_FAILED = "UPDATE_FAILED"
    DELETION_BLOCKED = "DELETION_BLOCKED"


class Recommendation(_StrEnum):
    INTERNAL = "INTERNAL"
    SUBCONTRACT = "SUBCONTRACT"
    REVIEW = "REVIEW"


class ProfitabilityLevel(_StrEnum):
    GREEN = "green"
    ORANGE = "orange"
    RED = "red"


class ZoneType(_StrEnum):
    POLYGON = "POLYGON"
    RADIUS = "RADIUS"
    POINT = "POINT"


class ZoneConflictStrategy(_StrEnum):
    SPECIFICITY = "SPECIFICITY"
    PRIORITY = "PRIORITY"
    MOST_EXPENSIVE = "MOST_EXPENSIVE"
    CLOSEST = "CLOSEST"
    COMBINED = "COMBINED"
