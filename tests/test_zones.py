from fleetops.models.domain import GeoPoint, PricingZone
from fleetops.models.enums import ZoneConflictStrategy, ZoneType
from fleetops.services.zones import (
    find_zone_for_point,
    find_zones_for_point,
    is_point_in_zone,
    resolve_zone_conflict,
)

ORLY = GeoPoint(lat=48.7262, lng=2.3652)

SQUARE = [
    GeoPoint(48.6, 2.2),
    GeoPoint(48.6, 2.5),
    GeoPoint(48.9, 2.5),
    GeoPoint(48.9, 2.2),
]


def _zones() -> list[PricingZone]:
    return [
        PricingZone(id="z1", code="IDF", zone_type=ZoneType.POLYGON, polygon=SQUARE, priority=1, price_multiplier=1.0),
        PricingZone(
            id="z2",
            code="SOUTH-PARIS",
            zone_type=ZoneType.RADIUS,
            center=GeoPoint(48.75, 2.35),
            radius_km=15,
            priority=3,
            price_multiplier=1.1,
        ),
        PricingZone(
            id="z3",
            code="ORLY",
            zone_type=ZoneType.POINT,
            center=ORLY,
            priority=2,
            price_multiplier=1.5,
        ),
    ]


def test_point_matches_all_containing_zones():
    matched = find_zones_for_point(ORLY, _zones())

    assert [zone.code for zone in matched] == ["IDF", "SOUTH-PARIS", "ORLY"]


def test_inactive_zone_never_matches():
    zone = _zones()[0]
    zone.is_active = False

    assert not is_point_in_zone(ORLY, zone)


def test_point_zone_uses_small_fixed_radius():
    zone = _zones()[2]

    assert is_point_in_zone(GeoPoint(48.7265, 2.3655), zone)
    assert not is_point_in_zone(GeoPoint(48.74, 2.3652), zone)


def test_specificity_prefers_point_zone():
    assert find_zone_for_point(ORLY, _zones()).code == "ORLY"


def test_conflict_strategies():
    zones = find_zones_for_point(ORLY, _zones())

    assert resolve_zone_conflict(ORLY, zones, ZoneConflictStrategy.PRIORITY).code == "SOUTH-PARIS"
    assert resolve_zone_conflict(ORLY, zones, ZoneConflictStrategy.MOST_EXPENSIVE).code == "ORLY"
    assert resolve_zone_conflict(ORLY, zones, ZoneConflictStrategy.CLOSEST).code == "ORLY"
    assert resolve_zone_conflict(ORLY, zones, ZoneConflictStrategy.COMBINED).code == "SOUTH-PARIS"


def test_no_matching_zone_returns_none():
    assert find_zone_for_point(GeoPoint(43.3, 5.4), _zones()) is None
