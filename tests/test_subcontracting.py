import pytest

from fleetops.models.domain import CostBreakdown, GeoPoint
from fleetops.models.enums import ProfitabilityLevel, Recommendation, RoutingSource
from fleetops.services.routing.models import TripAnalysis
from fleetops.services.subcontracting.advisor import (
    candidate_from_trip,
    compare_margins,
    extract_trip_metrics,
    find_subcontractors_for_mission,
    generate_suggestions,
    is_structurally_unprofitable,
    margin_percent,
    profitability_level,
    subcontractor_price,
    zone_match_score,
)
from fleetops.services.subcontracting.models import (
    MissionCandidate,
    OperatingZone,
    SubcontractingThresholds,
    SubcontractorProfile,
)

PARIS = GeoPoint(lat=48.8566, lng=2.3522)
VERSAILLES = GeoPoint(lat=48.8049, lng=2.1204)
LYON = GeoPoint(lat=45.7640, lng=4.8357)

THRESHOLDS = SubcontractingThresholds(
    review_band_percent=5.0,
    unprofitable_threshold_percent=0.0,
    default_rate_per_km=2.0,
    default_rate_per_hour=40.0,
    default_zone_radius_km=20.0,
    max_suggestions=5,
)


def test_margin_percent():
    assert margin_percent(100, 75) == 25
    assert margin_percent(0, 50) is None
    assert margin_percent(100, 120) == -20


def test_structural_unprofitability_uses_strict_threshold():
    assert is_structurally_unprofitable(100, 120, 0)
    assert not is_structurally_unprofitable(100, 100, 0)
    assert is_structurally_unprofitable(0, 10, 0)


@pytest.mark.parametrize(
    "margin, expected",
    [
        (25, ProfitabilityLevel.GREEN),
        (20, ProfitabilityLevel.GREEN),
        (10, ProfitabilityLevel.ORANGE),
        (0, ProfitabilityLevel.ORANGE),
        (-5, ProfitabilityLevel.RED),
        (None, ProfitabilityLevel.ORANGE),
    ],
)
def test_profitability_level(margin, expected):
    assert profitability_level(margin, 20, 0) == expected


def test_subcontractor_price_takes_highest_of_distance_time_and_minimum():
    assert subcontractor_price(2, 40, None, 50, 60, THRESHOLDS) == 100
    assert subcontractor_price(2, 40, 25, 5, 10, THRESHOLDS) == 25
    assert subcontractor_price(1, 60, None, 50, 120, THRESHOLDS) == 120


def test_subcontractor_price_falls_back_to_default_rates():
    assert subcontractor_price(None, None, None, 10, 60, THRESHOLDS) == 40


def test_compare_margins_recommendations():
    subcontract = compare_margins(200, 180, 120, review_band_percent=5)
    internal = compare_margins(200, 100, 150, review_band_percent=5)
    review = compare_margins(200, 150, 145, review_band_percent=5)

    assert subcontract.recommendation == Recommendation.SUBCONTRACT
    assert subcontract.savings == 60
    assert subcontract.savings_percent == pytest.approx(33.33)
    assert internal.recommendation == Recommendation.INTERNAL
    assert review.recommendation == Recommendation.REVIEW


def test_zone_match_score():
    assert zone_match_score(True, True) == 100
    assert zone_match_score(True, False) == 50
    assert zone_match_score(False, True) == 50
    assert zone_match_score(False, False) == 0


def test_extract_trip_metrics_from_analysis_and_json():
    analysis = TripAnalysis(CostBreakdown(), [], 123.4, 95.0, RoutingSource.GOOGLE_API)

    assert extract_trip_metrics(analysis) == (123.4, 95.0)
    assert extract_trip_metrics({"totalDistanceKm": 12, "totalDurationMinutes": 30}) == (12.0, 30.0)
    assert extract_trip_metrics(None) == (0.0, 0.0)


def test_candidate_from_trip_uses_internal_cost_total():
    analysis = TripAnalysis(CostBreakdown(fuel=10, driver=40), [], 50.0, 60.0, RoutingSource.GOOGLE_API)

    candidate = candidate_from_trip("m1", 45.0, analysis, pickup=PARIS)

    assert candidate.internal_cost == 50
    assert (candidate.distance_km, candidate.duration_minutes) == (50.0, 60.0)
    assert candidate.pickup == PARIS


def _subcontractors() -> list[SubcontractorProfile]:
    paris_zone = OperatingZone(id="z-paris", name="Paris", center=PARIS, radius_km=30)
    return [
        SubcontractorProfile(
            id="s-paris",
            company_name="Paris Cars",
            rate_per_km=1.5,
            rate_per_hour=30,
            operating_zones=[paris_zone],
            vehicle_categories=["SEDAN"],
        ),
        SubcontractorProfile(id="s-anywhere", company_name="France Chauffeurs", rate_per_km=1.0, rate_per_hour=20),
        SubcontractorProfile(
            id="s-lyon",
            company_name="Lyon VTC",
            rate_per_km=0.5,
            operating_zones=[OperatingZone(id="z-lyon", center=LYON, radius_km=25)],
        ),
        SubcontractorProfile(id="s-off", company_name="Retired", rate_per_km=0.1, is_active=False),
        SubcontractorProfile(id="s-van", company_name="Vans Only", rate_per_km=0.2, vehicle_categories=["VAN"]),
    ]


def test_find_subcontractors_filters_and_ranks():
    candidate = MissionCandidate(
        mission_id="m1",
        selling_price=60,
        internal_cost=80,
        distance_km=20,
        duration_minutes=45,
        pickup=PARIS,
        dropoff=VERSAILLES,
        vehicle_category="SEDAN",
    )

    matches = find_subcontractors_for_mission(candidate, _subcontractors(), THRESHOLDS)

    assert [m.subcontractor.id for m in matches] == ["s-anywhere", "s-paris"]
    assert [m.zone_match_score for m in matches] == [100, 100]
    assert matches[0].estimated_price == 20
    assert matches[1].estimated_price == 30


def test_generate_suggestions_for_unprofitable_missions_only():
    candidates = [
        MissionCandidate("losing-a", 60, 80, 20, 45, PARIS, VERSAILLES, "SEDAN"),
        MissionCandidate("profitable", 200, 80, 20, 45, PARIS, VERSAILLES, "SEDAN"),
        MissionCandidate("losing-b", 50, 70, 30, 60, PARIS, VERSAILLES, "SEDAN"),
    ]

    suggestions = generate_suggestions(candidates, _subcontractors(), THRESHOLDS)

    assert [s.mission_id for s in suggestions] == ["losing-a", "losing-b"]
    first = suggestions[0]
    assert first.best_match.subcontractor.id == "s-anywhere"
    assert first.current_margin_percent == pytest.approx(-33.33, abs=0.01)
    assert first.margin_if_subcontracted == pytest.approx(66.67, abs=0.01)


def test_generate_suggestions_respects_cap():
    candidates = [MissionCandidate(f"m{i}", 60, 80, 20, 45, PARIS, VERSAILLES) for i in range(4)]
    thresholds = SubcontractingThresholds(max_suggestions=2)

    assert len(generate_suggestions(candidates, _subcontractors(), thresholds)) == 2
