from datetime import date, datetime

import pytest

from fleetops.models.domain import Mission, Quote, QuoteLine, TransferSourceData
from fleetops.models.enums import AuditDecision, MissionStatus, QuoteLineType, RegulatoryRegime
from fleetops.persistence import database
from fleetops.persistence.base import QuoteNotFoundError
from fleetops.persistence.database import SupabaseComplianceStore, SupabaseMissionStore
from fleetops.persistence.memory import InMemoryStore
from fleetops.services.compliance.models import DEFAULT_HEAVY_VEHICLE_RULE, AuditEntry
from fleetops.services.missions.models import MissionDraft, MissionUpdate
from fleetops.services.missions.sync import MissionSyncReconciler

DAY = date(2025, 3, 14)


class DummyResponse:
    def __init__(self, data):
        self.data = data


class DummyQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.filters = {}

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self.filters[column] = value
        return self

    def limit(self, count):
        return self

    def order(self, column):
        return self

    def insert(self, row):
        self.client.inserted.append((self.table, row))
        return self

    def execute(self):
        rows = self.client.tables.get(self.table, [])
        return DummyResponse([r for r in rows if all(r.get(k) == v for k, v in self.filters.items())])


class DummyRpc:
    def __init__(self, client, name, params):
        self.client = client
        self.name = name
        self.params = params

    def execute(self):
        self.client.rpc_calls.append((self.name, self.params))
        return DummyResponse(self.client.rpc_results.get(self.name))


class DummySupabase:
    def __init__(self, tables=None, rpc_results=None):
        self.tables = tables or {}
        self.rpc_results = rpc_results or {}
        self.inserted = []
        self.rpc_calls = []

    def table(self, name):
        return DummyQuery(self, name)

    def rpc(self, name, params):
        return DummyRpc(self, name, params)


# In-memory store


def test_memory_transaction_rolls_back_on_error():
    store = InMemoryStore()
    store.add_quote(Quote(id="q1", organization_id="org-1"))

    with pytest.raises(RuntimeError):
        with store.transaction():
            store.create_mission(MissionDraft("org-1", "q1", "l1", None, None, None))
            raise RuntimeError("boom")

    assert store.get_quote("q1").missions == []


def test_memory_quote_snapshot_is_isolated():
    store = InMemoryStore()
    store.add_quote(Quote(id="q1", organization_id="org-1"))
    mission = store.create_mission(MissionDraft("org-1", "q1", "l1", None, None, None))

    snapshot = store.get_quote("q1")
    snapshot.missions[0].status = MissionStatus.COMPLETED

    assert store.get_mission(mission.id).status == MissionStatus.PENDING


def test_memory_unknown_mission_raises_lookup_error():
    store = InMemoryStore()

    with pytest.raises(LookupError):
        store.update_mission("nope", MissionUpdate(None, None, None))


def test_memory_unknown_quote_raises_quote_not_found():
    with pytest.raises(QuoteNotFoundError):
        InMemoryStore().get_quote("missing")


def test_memory_default_rules_apply_until_overridden():
    store = InMemoryStore(default_rules={RegulatoryRegime.HEAVY: DEFAULT_HEAVY_VEHICLE_RULE})

    assert store.get_rule("org-1", RegulatoryRegime.HEAVY) is DEFAULT_HEAVY_VEHICLE_RULE
    assert store.get_rule("org-1", RegulatoryRegime.LIGHT) is None


# Supabase stores


def test_supabase_store_requires_configuration(monkeypatch):
    monkeypatch.setattr(database, "get_supabase_client", lambda: None)

    with pytest.raises(ValueError):
        SupabaseComplianceStore()


def test_supabase_counter_increment_uses_rpc():
    row = {
        "organization_id": "org-1",
        "driver_id": "d1",
        "date": "2025-03-14",
        "regulatory_category": "HEAVY",
        "driving_minutes": 320,
        "amplitude_minutes": 400,
        "break_minutes": 45,
        "rest_minutes": 0,
    }
    client = DummySupabase(rpc_results={"increment_driver_rse_counter": [row]})
    store = SupabaseComplianceStore(client)

    counter = store.increment_counter("org-1", "d1", DAY, RegulatoryRegime.HEAVY, 120, 150, 0, 0)

    name, params = client.rpc_calls[0]
    assert name == "increment_driver_rse_counter"
    assert params["p_date"] == "2025-03-14"
    assert params["p_driving_minutes"] == 120
    assert counter.driving_minutes == 320
    assert counter.business_date == DAY


def test_supabase_rule_lookup_and_audit_insert():
    client = DummySupabase(
        tables={
            "compliance_rules": [
                {
                    "id": "r1",
                    "organization_id": "org-1",
                    "regulatory_category": "HEAVY",
                    "max_daily_driving_hours": 9,
                    "max_daily_amplitude_hours": 13,
                    "break_minutes_per_driving_block": 45,
                    "driving_block_hours_for_break": 4.5,
                    "capped_average_speed_kmh": None,
                }
            ]
        }
    )
    store = SupabaseComplianceStore(client)

    rule = store.get_rule("org-1", RegulatoryRegime.HEAVY)
    store.append_audit(
        AuditEntry("org-1", "d1", RegulatoryRegime.HEAVY, AuditDecision.APPROVED, "ok", datetime(2025, 3, 14, 9))
    )

    assert rule.max_daily_driving_hours == 9
    assert rule.capped_average_speed_kmh is None
    assert store.get_rule("org-2", RegulatoryRegime.HEAVY) is None
    table, inserted = client.inserted[0]
    assert table == "compliance_audit_logs"
    assert inserted["decision"] == "APPROVED"


def test_supabase_mission_sync_commits_one_batch():
    pickup = datetime(2025, 6, 2, 8, 0)
    client = DummySupabase(
        tables={
            "quotes": [{"id": "q1", "organization_id": "org-1", "pickup_at": pickup.isoformat()}],
            "quote_lines": [
                {
                    "id": "l1",
                    "quote_id": "q1",
                    "type": "CALCULATED",
                    "source_data": {"kind": "TRANSFER", "label": "Transfer", "pickupAt": pickup.isoformat()},
                }
            ],
            "missions": [
                {"id": "m-old", "organization_id": "org-1", "quote_id": "q1", "quote_line_id": "gone", "status": "PENDING"},
                {"id": "m-run", "organization_id": "org-1", "quote_id": "q1", "quote_line_id": "gone2", "status": "IN_PROGRESS"},
            ],
        }
    )

    result = MissionSyncReconciler(SupabaseMissionStore(client)).sync_quote_missions("q1")

    assert (result.created, result.deleted, result.detached) == (1, 1, 1)
    assert len(client.rpc_calls) == 1
    name, params = client.rpc_calls[0]
    assert name == "apply_mission_sync_batch"
    assert [op["op"] for op in params["operations"]] == ["create", "delete", "update"]
    assert params["operations"][0]["mission"]["source_data"]["kind"] == "TRANSFER"
    assert params["operations"][2] == {"op": "update", "id": "m-run", "fields": {"quote_line_id": None}}


def test_supabase_missing_quote_becomes_sync_error():
    client = DummySupabase(tables={"quotes": []})

    with pytest.raises(QuoteNotFoundError):
        SupabaseMissionStore(client).get_quote("q404")

    result = MissionSyncReconciler(SupabaseMissionStore(client)).sync_quote_missions("q404")

    assert [e.type.value for e in result.errors] == ["UPDATE_FAILED"]
    assert "q404" in result.errors[0].message
    assert client.rpc_calls == []


def test_row_mappers_parse_source_data():
    line = database.line_from_row(
        {
            "id": "l1",
            "quote_id": "q1",
            "type": "CALCULATED",
            "source_data": {"kind": "TRANSFER", "pickupAt": "2025-06-02T08:00:00Z", "passengerCount": 3},
        }
    )

    assert line.type == QuoteLineType.CALCULATED
    assert isinstance(line.source_data, TransferSourceData)
    assert line.source_data.passenger_count == 3
    assert line.source_data.pickup_at.hour == 8


def test_source_data_rejects_unknown_kind():
    with pytest.raises(ValueError):
        database.mission_from_row(
            {"id": "m", "organization_id": "o", "quote_id": "q", "source_data": {"kind": "SHUTTLE"}}
        )
