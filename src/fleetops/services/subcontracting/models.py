"""Subcontracting comparison models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ...config import settings
from ...models.domain import GeoPoint
from ...models.enums import Recommendation


@dataclass(slots=True)
class SubcontractingThresholds:
    """Organization-tunable knobs for the advisor."""

    review_band_percent: float = settings.subcontracting_review_band_percent
    unprofitable_threshold_percent: float = settings.unprofitable_threshold_percent
    default_rate_per_km: float = settings.subcontractor_rate_per_km
    default_rate_per_hour: float = settings.subcontractor_rate_per_hour
    default_zone_radius_km: float = settings.default_zone_radius_km
    max_suggestions: int = settings.max_subcontracting_suggestions


@dataclass(slots=True)
class SubcontractorComparison:
    internal_cost: float
    subcontractor_price: float
    savings: float
    savings_percent: float
    recommendation: Recommendation


@dataclass(slots=True)
class OperatingZone:
    id: str
    name: Optional[str] = None
    center: Optional[GeoPoint] = None
    radius_km: Optional[float] = None


@dataclass(slots=True)
class SubcontractorProfile:
    id: str
    company_name: str
    rate_per_km: Optional[float] = None
    rate_per_hour: Optional[float] = None
    minimum_fare: Optional[float] = None
    operating_zones: List[OperatingZone] = field(default_factory=list)
    vehicle_categories: List[str] = field(default_factory=list)
    is_active: bool = True


@dataclass(slots=True)
class MissionCandidate:
    """A priced mission considered for subcontracting."""

    mission_id: str
    selling_price: float
    internal_cost: float
    distance_km: float
    duration_minutes: float
    pickup: Optional[GeoPoint] = None
    dropoff: Optional[GeoPoint] = None
    vehicle_category: Optional[str] = None


@dataclass(slots=True)
class SubcontractorMatch:
    subcontractor: SubcontractorProfile
    estimated_price: float
    comparison: SubcontractorComparison
    zone_match_score: int


@dataclass(slots=True)
class SubcontractingSuggestion:
    mission_id: str
    current_margin_percent: Optional[float]
    margin_if_subcontracted: Optional[float]
    best_match: SubcontractorMatch
