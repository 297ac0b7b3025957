from datetime import datetime

import pytest

from fleetops.models.domain import (
    GroupSourceData,
    InternalTaskSourceData,
    Mission,
    Quote,
    QuoteLine,
    TransferSourceData,
)
from fleetops.models.enums import MissionStatus, QuoteLineType, SyncErrorType
from fleetops.persistence.memory import InMemoryStore
from fleetops.services.missions.sync import MissionSyncReconciler, is_mission_eligible

PICKUP = datetime(2025, 6, 2, 8, 0)
END = datetime(2025, 6, 2, 12, 0)


def _transfer(line_id: str, pickup_at: datetime | None = PICKUP, label: str = "CDG -> Paris") -> QuoteLine:
    return QuoteLine(
        id=line_id,
        quote_id="q1",
        type=QuoteLineType.CALCULATED,
        label=label,
        source_data=TransferSourceData(
            label=label,
            pickup_address="CDG Terminal 2",
            dropoff_address="Paris 8e",
            pickup_at=pickup_at,
            vehicle_category="SEDAN",
            passenger_count=2,
        ),
    )


def _store(*lines: QuoteLine, missions: list[Mission] | None = None) -> InMemoryStore:
    store = InMemoryStore()
    store.add_quote(
        Quote(
            id="q1",
            organization_id="org-1",
            pickup_at=PICKUP,
            estimated_end_at=END,
            lines=list(lines),
            missions=missions or [],
        )
    )
    return store


def _missions(store: InMemoryStore) -> list[Mission]:
    return store.get_quote("q1").missions


def test_creates_one_pending_mission_per_eligible_line():
    store = _store(
        _transfer("l1"),
        _transfer("l2", pickup_at=datetime(2025, 6, 2, 14, 0)),
        QuoteLine(id="l3", quote_id="q1", type=QuoteLineType.MANUAL, label="Champagne"),
    )

    result = MissionSyncReconciler(store).sync_quote_missions("q1")

    assert (result.created, result.updated, result.deleted, result.detached) == (2, 0, 0, 0)
    assert result.errors == []
    missions = {m.quote_line_id: m for m in _missions(store)}
    assert set(missions) == {"l1", "l2"}
    assert missions["l2"].start_at == datetime(2025, 6, 2, 14, 0)
    assert missions["l2"].end_at == END
    assert all(m.status == MissionStatus.PENDING for m in missions.values())


def test_second_sync_is_a_no_op():
    store = _store(_transfer("l1"), _transfer("l2"))
    reconciler = MissionSyncReconciler(store)
    reconciler.sync_quote_missions("q1")

    again = reconciler.sync_quote_missions("q1")

    assert not again.changed
    assert again.errors == []
    assert len(_missions(store)) == 2


def test_line_without_start_uses_quote_pickup():
    store = _store(_transfer("l1", pickup_at=None))

    MissionSyncReconciler(store).sync_quote_missions("q1")

    assert _missions(store)[0].start_at == PICKUP


def test_update_keeps_dispatch_fields():
    store = _store(
        _transfer("l1"),
        missions=[
            Mission(
                id="m1",
                organization_id="org-1",
                quote_id="q1",
                quote_line_id="l1",
                status=MissionStatus.ASSIGNED,
                start_at=PICKUP,
                end_at=END,
                source_data=_transfer("l1", label="old label").source_data,
                driver_id="driver-7",
                vehicle_id="vehicle-3",
                notes="VIP, meet at gate",
            )
        ],
    )

    result = MissionSyncReconciler(store).sync_quote_missions("q1")

    assert result.updated == 1
    mission = store.get_mission("m1")
    assert mission.source_data.label == "CDG -> Paris"
    assert mission.status == MissionStatus.ASSIGNED
    assert (mission.driver_id, mission.vehicle_id, mission.notes) == ("driver-7", "vehicle-3", "VIP, meet at gate")


def test_orphans_are_deleted_or_detached_by_status():
    statuses = [
        MissionStatus.PENDING,
        MissionStatus.ASSIGNED,
        MissionStatus.IN_PROGRESS,
        MissionStatus.COMPLETED,
        MissionStatus.CANCELLED,
    ]
    lines = [_transfer(f"l-{status.value}") for status in statuses]
    missions = [
        Mission(
            id=f"m-{status.value}",
            organization_id="org-1",
            quote_id="q1",
            quote_line_id=f"l-{status.value}",
            status=status,
            start_at=PICKUP,
            end_at=END,
            source_data=line.source_data,
        )
        for status, line in zip(statuses, lines)
    ]
    store = _store(*lines, missions=missions)
    store.set_lines("q1", [])

    result = MissionSyncReconciler(store).sync_quote_missions("q1")

    assert result.deleted == 1
    assert result.detached == 4
    assert store.get_mission("m-PENDING") is None
    for status in statuses[1:]:
        mission = store.get_mission(f"m-{status.value}")
        assert mission.quote_line_id is None
        assert mission.status == status

    follow_up = MissionSyncReconciler(store).sync_quote_missions("q1")
    assert not follow_up.changed
    assert follow_up.preserved == 4


def test_in_progress_mission_survives_line_removal():
    store = _store(_transfer("l1"))
    MissionSyncReconciler(store).sync_quote_missions("q1")
    mission = _missions(store)[0]
    store.missions[mission.id].status = MissionStatus.IN_PROGRESS
    store.missions[mission.id].driver_id = "driver-1"

    store.set_lines("q1", [])
    result = MissionSyncReconciler(store).sync_quote_missions("q1")

    assert result.detached == 1
    kept = store.get_mission(mission.id)
    assert kept.driver_id == "driver-1"
    assert kept.quote_line_id is None


def test_group_line_needs_a_start_time():
    dated = QuoteLine(
        id="g1",
        quote_id="q1",
        type=QuoteLineType.GROUP,
        source_data=GroupSourceData(label="Wedding", start_at=PICKUP, child_line_ids=["a", "b"]),
    )
    undated = QuoteLine(id="g2", quote_id="q1", type=QuoteLineType.GROUP, source_data=GroupSourceData(label="TBD"))

    assert is_mission_eligible(dated)
    assert not is_mission_eligible(undated)
    assert is_mission_eligible(
        QuoteLine(id="t", quote_id="q1", type=QuoteLineType.CALCULATED, source_data=InternalTaskSourceData())
    )


def test_missing_quote_reports_error(caplog):
    with caplog.at_level("WARNING", logger="fleetops.services.missions.sync"):
        result = MissionSyncReconciler(InMemoryStore()).sync_quote_missions("missing")

    assert not result.changed
    assert [e.type for e in result.errors] == [SyncErrorType.UPDATE_FAILED]
    assert "missing" in result.errors[0].message
    assert "fleetops.services.missions.sync" in [r.name for r in caplog.records]


class FlakyStore(InMemoryStore):
    def __init__(
        self,
        failing_line: str | None = None,
        fail_deletes: bool = False,
        failing_updates: tuple[str, ...] = (),
        failing_detaches: tuple[str, ...] = (),
    ):
        super().__init__()
        self.failing_line = failing_line
        self.fail_deletes = fail_deletes
        self.failing_updates = failing_updates
        self.failing_detaches = failing_detaches

    def create_mission(self, draft):
        if draft.quote_line_id == self.failing_line:
            raise RuntimeError("insert rejected")
        return super().create_mission(draft)

    def delete_mission(self, mission_id):
        if self.fail_deletes:
            raise RuntimeError("mission is referenced by an invoice")
        super().delete_mission(mission_id)

    def update_mission(self, mission_id, update):
        if mission_id in self.failing_updates:
            raise RuntimeError("row is locked")
        super().update_mission(mission_id, update)

    def detach_mission(self, mission_id):
        if mission_id in self.failing_detaches:
            raise RuntimeError("mission is archived")
        super().detach_mission(mission_id)


def test_item_failure_does_not_stop_other_lines():
    store = FlakyStore(failing_line="l1")
    store.add_quote(Quote(id="q1", organization_id="org-1", lines=[_transfer("l1"), _transfer("l2")]))

    result = MissionSyncReconciler(store).sync_quote_missions("q1")

    assert result.created == 1
    assert len(result.errors) == 1
    error = result.errors[0]
    assert error.type == SyncErrorType.CREATE_FAILED
    assert error.quote_line_id == "l1"
    assert error.message == "insert rejected"


def test_blocked_deletion_is_reported():
    store = FlakyStore(fail_deletes=True)
    store.add_quote(
        Quote(
            id="q1",
            organization_id="org-1",
            missions=[Mission(id="m1", organization_id="org-1", quote_id="q1", quote_line_id="gone")],
        )
    )

    result = MissionSyncReconciler(store).sync_quote_missions("q1")

    assert result.deleted == 0
    assert [(e.type, e.mission_id) for e in result.errors] == [(SyncErrorType.DELETION_BLOCKED, "m1")]
    assert store.get_mission("m1") is not None


def test_unexpected_failure_rolls_back_whole_quote():
    bogus = QuoteLine(id="l2", quote_id="q1", type="BOGUS")
    store = _store(_transfer("l1"), bogus)

    with pytest.raises(ValueError):
        MissionSyncReconciler(store).sync_quote_missions("q1")

    assert _missions(store) == []


def _group(line_id: str, start_at: datetime | None) -> QuoteLine:
    return QuoteLine(
        id=line_id,
        quote_id="q1",
        type=QuoteLineType.GROUP,
        source_data=GroupSourceData(label="Wedding shuttle", start_at=start_at, child_line_ids=["a", "b"]),
    )


def test_group_line_losing_its_start_time_drops_pending_mission():
    store = _store(_group("g1", PICKUP))
    reconciler = MissionSyncReconciler(store)
    assert reconciler.sync_quote_missions("q1").created == 1

    store.set_lines("q1", [_group("g1", None)])
    result = reconciler.sync_quote_missions("q1")

    assert (result.created, result.updated, result.deleted, result.detached) == (0, 0, 1, 0)
    assert result.errors == []
    assert _missions(store) == []
    assert not reconciler.sync_quote_missions("q1").changed


@pytest.mark.parametrize(
    "status, deleted, detached",
    [(MissionStatus.PENDING, 1, 0), (MissionStatus.ASSIGNED, 0, 1)],
)
def test_line_turned_manual_no_longer_keeps_its_mission(status, deleted, detached):
    store = _store(_transfer("l1"))
    reconciler = MissionSyncReconciler(store)
    reconciler.sync_quote_missions("q1")
    mission_id = _missions(store)[0].id
    store.missions[mission_id].status = status

    manual = QuoteLine(id="l1", quote_id="q1", type=QuoteLineType.MANUAL, label="CDG -> Paris (flat rate)")
    store.set_lines("q1", [manual])
    result = reconciler.sync_quote_missions("q1")

    assert (result.deleted, result.detached) == (deleted, detached)
    kept = store.get_mission(mission_id)
    if deleted:
        assert kept is None
    else:
        assert kept.quote_line_id is None
        assert kept.status == status


def _linked_mission(mission_id: str, line_id: str, status: MissionStatus = MissionStatus.PENDING) -> Mission:
    return Mission(
        id=mission_id,
        organization_id="org-1",
        quote_id="q1",
        quote_line_id=line_id,
        status=status,
        start_at=PICKUP,
        end_at=END,
        source_data=_transfer(line_id, label="old label").source_data,
    )


def test_failed_update_is_reported_and_other_missions_still_sync():
    store = FlakyStore(failing_updates=("m1",))
    store.add_quote(
        Quote(
            id="q1",
            organization_id="org-1",
            pickup_at=PICKUP,
            estimated_end_at=END,
            lines=[_transfer("l1"), _transfer("l2")],
            missions=[
                _linked_mission("m1", "l1"),
                _linked_mission("m2", "l2"),
                _linked_mission("m3", "gone"),
            ],
        )
    )

    result = MissionSyncReconciler(store).sync_quote_missions("q1")

    assert (result.updated, result.deleted) == (1, 1)
    assert [(e.type, e.mission_id, e.quote_line_id) for e in result.errors] == [
        (SyncErrorType.UPDATE_FAILED, "m1", "l1")
    ]
    assert result.errors[0].message == "row is locked"
    assert store.get_mission("m1").source_data.label == "old label"
    assert store.get_mission("m2").source_data.label == "CDG -> Paris"
    assert store.get_mission("m3") is None


def test_failed_detach_is_reported_and_other_orphans_still_handled():
    store = FlakyStore(failing_detaches=("m1",))
    store.add_quote(
        Quote(
            id="q1",
            organization_id="org-1",
            missions=[
                _linked_mission("m1", "gone-1", MissionStatus.COMPLETED),
                _linked_mission("m2", "gone-2", MissionStatus.IN_PROGRESS),
                _linked_mission("m3", "gone-3"),
            ],
        )
    )

    result = MissionSyncReconciler(store).sync_quote_missions("q1")

    assert (result.detached, result.deleted) == (1, 1)
    assert [(e.type, e.mission_id, e.quote_line_id) for e in result.errors] == [
        (SyncErrorType.UPDATE_FAILED, "m1", "gone-1")
    ]
    assert store.get_mission("m1").quote_line_id == "gone-1"
    assert store.get_mission("m2").quote_line_id is None
    assert store.get_mission("m3") is None
