import pytest
from fastapi.testclient import TestClient

from fleetops.api.routes import compliance as compliance_routes
from fleetops.api.routes import health as health_routes
from fleetops.api.routes import missions as missions_routes
from fleetops.api.routes import routes as routing_routes
from fleetops.main import create_app
from fleetops.models.domain import Mission, Quote, QuoteLine, TransferSourceData
from fleetops.models.enums import MissionStatus, QuoteLineType, RegulatoryRegime
from fleetops.persistence.memory import InMemoryStore
from fleetops.services.compliance.models import DEFAULT_HEAVY_VEHICLE_RULE
from fleetops.services.routing.models import ProviderRoute
from fleetops.services.routing.tolls import toll_cache

PARIS = {"lat": 48.8566, "lng": 2.3522}
LYON = {"lat": 45.7640, "lng": 4.8357}
RATES = {
    "fuel_price_per_liter": 1.789,
    "fuel_consumption_l100km": 8.5,
    "driver_hourly_cost": 30,
    "wear_cost_per_km": 0.10,
    "fallback_toll_rate_per_km": 0.12,
}


class DummyRoutesClient:
    def compute_routes(self, request):
        if request.routing_preference == "TRAFFIC_AWARE":
            return [ProviderRoute(distance_meters=470000, duration_seconds=14400, toll_amount=35.5)]
        return [ProviderRoute(distance_meters=450000, duration_seconds=18000, toll_amount=15.0)]


@pytest.fixture
def store(monkeypatch):
    store = InMemoryStore(default_rules={RegulatoryRegime.HEAVY: DEFAULT_HEAVY_VEHICLE_RULE})
    monkeypatch.setattr(compliance_routes, "get_compliance_store", lambda: store)
    monkeypatch.setattr(missions_routes, "get_mission_store", lambda: store)
    return store


@pytest.fixture
def client(monkeypatch, store):
    monkeypatch.setattr(routing_routes, "_get_routes_client", lambda: DummyRoutesClient())
    toll_cache.clear()
    yield TestClient(create_app())
    toll_cache.clear()


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_routing_health_reports_provider_status(client, monkeypatch):
    monkeypatch.setattr(health_routes, "_get_routing_health_check", lambda: (lambda: True))

    assert client.get("/api/health/routing").json() == {"service": "routing", "healthy": True}


def test_database_health_without_supabase(client, monkeypatch):
    from fleetops.db import supabase as supabase_module

    monkeypatch.setattr(supabase_module, "get_supabase_client", lambda: None)

    body = client.get("/api/health/database").json()
    assert body["configured"] is False


def test_route_scenarios_endpoint(client):
    response = client.post(
        "/api/routes/scenarios",
        json={"origin": PARIS, "destination": LYON, "rates": RATES},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["selected_scenario"] == "MIN_TCO"
    assert body["fallback_used"] is False
    totals = {s["type"]: s["cost_breakdown"]["total"] for s in body["scenarios"]}
    assert totals["MIN_TIME"] == pytest.approx(273.97)
    assert totals["MIN_DISTANCE"] == pytest.approx(278.43)
    assert totals["MIN_TCO"] == pytest.approx(273.97)


def test_route_scenarios_rejects_invalid_coordinates(client):
    response = client.post("/api/routes/scenarios", json={"origin": {"lat": 120, "lng": 0}, "destination": LYON})

    assert response.status_code == 422


def test_trip_analysis_endpoint(client):
    response = client.post(
        "/api/routes/trip-analysis",
        json={"pickup": PARIS, "dropoff": LYON, "rates": RATES, "parking": 8},
    )

    assert response.status_code == 200
    body = response.json()
    assert [s["name"] for s in body["segments"]] == ["service"]
    assert body["cost_breakdown"]["parking"] == 8
    assert body["fuel_price_source"] == "ORGANIZATION"


def test_record_activity_and_snapshot(client):
    payload = {
        "organization_id": "org-1",
        "driver_id": "d1",
        "date": "2025-03-14",
        "regime": "HEAVY",
        "driving_minutes": 540,
    }

    recorded = client.post("/api/compliance/activities", json=payload)
    snapshot = client.get(
        "/api/compliance/drivers/d1/snapshot", params={"organization_id": "org-1", "date": "2025-03-14"}
    )

    assert recorded.status_code == 200
    assert recorded.json()["status"] == "WARNING"
    assert recorded.json()["counter"]["amplitude_minutes"] == 540
    regimes = {r["regime"]: r for r in snapshot.json()["regimes"]}
    assert regimes["HEAVY"]["driving_hours"] == 9
    assert regimes["LIGHT"]["status"] == "OK"


def test_project_blocks_over_limit(client, store):
    client.post(
        "/api/compliance/activities",
        json={"organization_id": "org-1", "driver_id": "d1", "date": "2025-03-14", "regime": "HEAVY", "driving_minutes": 500},
    )

    response = client.post(
        "/api/compliance/project",
        json={
            "organization_id": "org-1",
            "driver_id": "d1",
            "date": "2025-03-14",
            "regime": "HEAVY",
            "additional_driving_minutes": 120,
        },
    )

    body = response.json()
    assert body["would_exceed"] is True
    assert body["violations"][0]["type"] == "DRIVING_TIME_EXCEEDED"
    assert store.audit_log[-1].decision == "BLOCKED"


def test_validate_and_alternatives(client):
    payload = {
        "organization_id": "org-1",
        "regime": "HEAVY",
        "segments": [
            {"name": "approach", "distance_km": 50, "duration_minutes": 60},
            {"name": "service", "distance_km": 700, "duration_minutes": 540},
            {"name": "return", "distance_km": 50, "duration_minutes": 60},
        ],
        "pickup_at": "2025-03-14T06:00:00",
        "dropoff_at": "2025-03-14T21:00:00",
    }

    validation = client.post("/api/compliance/validate", json=payload).json()
    alternatives = client.post("/api/compliance/alternatives", json=payload).json()

    assert validation["is_compliant"] is False
    assert [v["type"] for v in validation["violations"]] == ["DRIVING_TIME_EXCEEDED", "AMPLITUDE_EXCEEDED"]
    assert alternatives["recommended"] == "MULTI_DAY"


def test_validate_rejects_inverted_window(client):
    response = client.post(
        "/api/compliance/validate",
        json={
            "organization_id": "org-1",
            "regime": "HEAVY",
            "segments": [{"name": "service", "distance_km": 10, "duration_minutes": 20}],
            "pickup_at": "2025-03-14T10:00:00",
            "dropoff_at": "2025-03-14T09:00:00",
        },
    )

    assert response.status_code == 422


def test_mission_sync_endpoint(client, store):
    line = QuoteLine(
        id="l1",
        quote_id="q1",
        type=QuoteLineType.CALCULATED,
        source_data=TransferSourceData(label="Transfer"),
    )
    store.add_quote(
        Quote(
            id="q1",
            organization_id="org-1",
            lines=[line],
            missions=[
                Mission(id="m-run", organization_id="org-1", quote_id="q1", quote_line_id="old", status=MissionStatus.IN_PROGRESS)
            ],
        )
    )

    body = client.post("/api/missions/quotes/q1/sync").json()

    assert body["quote_id"] == "q1"
    assert (body["created"], body["detached"], body["deleted"]) == (1, 1, 0)
    assert body["errors"] == []


def test_mission_sync_unknown_quote_reports_error(client):
    body = client.post("/api/missions/quotes/nope/sync").json()

    assert body["errors"][0]["type"] == "UPDATE_FAILED"


def test_subcontracting_compare_and_price(client):
    compared = client.post(
        "/api/subcontracting/compare",
        json={"selling_price": 200, "internal_cost": 180, "subcontractor_cost": 120},
    ).json()
    priced = client.post(
        "/api/subcontracting/price",
        json={"rate_per_km": 2, "rate_per_hour": 40, "distance_km": 50, "duration_minutes": 60},
    ).json()

    assert compared["recommendation"] == "SUBCONTRACT"
    assert compared["internal_margin_percent"] == 10
    assert compared["subcontractor_margin_percent"] == 40
    assert compared["profitability"] == "orange"
    assert priced == {"price": 100}
