"""Supabase persistence for compliance counters, rules, audit entries and missions."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Iterator, Optional

from supabase import Client

from ..db.supabase import get_supabase_client
from ..models.domain import (
    Mission,
    Quote,
    QuoteLine,
    source_data_from_dict,
    source_data_to_dict,
)
from ..models.enums import MissionStatus, QuoteLineType, RegulatoryRegime
from ..services.compliance.models import AuditEntry, ComplianceRule, DriverRSECounter
from ..services.missions.models import MissionDraft, MissionUpdate
from .base import QuoteNotFoundError


def _require_client(client: Client | None) -> Client:
    client = client or get_supabase_client()
    if client is None:
        raise ValueError("Supabase is not configured. Set FLEETOPS_SUPABASE_URL and FLEETOPS_SUPABASE_KEY.")
    return client


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def counter_from_row(row: dict[str, Any]) -> DriverRSECounter:
    return DriverRSECounter(
        organization_id=row["organization_id"],
        driver_id=row["driver_id"],
        business_date=date.fromisoformat(str(row["date"])[:10]),
        regime=RegulatoryRegime(row["regulatory_category"]),
        driving_minutes=int(row.get("driving_minutes") or 0),
        amplitude_minutes=int(row.get("amplitude_minutes") or 0),
        break_minutes=int(row.get("break_minutes") or 0),
        rest_minutes=int(row.get("rest_minutes") or 0),
    )


def rule_from_row(row: dict[str, Any]) -> ComplianceRule:
    return ComplianceRule(
        id=str(row["id"]),
        name=row.get("name") or "Compliance rule",
        organization_id=row.get("organization_id"),
        regime=RegulatoryRegime(row["regulatory_category"]),
        max_daily_driving_hours=float(row["max_daily_driving_hours"]),
        max_daily_amplitude_hours=float(row["max_daily_amplitude_hours"]),
        break_minutes_per_driving_block=int(row["break_minutes_per_driving_block"]),
        driving_block_hours_for_break=float(row["driving_block_hours_for_break"]),
        capped_average_speed_kmh=(
            float(row["capped_average_speed_kmh"]) if row.get("capped_average_speed_kmh") is not None else None
        ),
    )


def mission_from_row(row: dict[str, Any]) -> Mission:
    return Mission(
        id=row["id"],
        organization_id=row["organization_id"],
        quote_id=row["quote_id"],
        quote_line_id=row.get("quote_line_id"),
        status=MissionStatus(row.get("status") or MissionStatus.PENDING),
        start_at=_parse_datetime(row.get("start_at")),
        end_at=_parse_datetime(row.get("end_at")),
        source_data=source_data_from_dict(row.get("source_data")),
        driver_id=row.get("driver_id"),
        vehicle_id=row.get("vehicle_id"),
        notes=row.get("notes"),
    )


def line_from_row(row: dict[str, Any]) -> QuoteLine:
    return QuoteLine(
        id=row["id"],
        quote_id=row["quote_id"],
        type=QuoteLineType(row["type"]),
        label=row.get("label"),
        source_data=source_data_from_dict(row.get("source_data")),
        sort_order=int(row.get("sort_order") or 0),
    )


class SupabaseComplianceStore:
    """Counters, rules and audit log backed by Supabase tables and RPCs."""

    def __init__(self, client: Client | None = None) -> None:
        self.client = _require_client(client)

    def get_counter(
        self, organization_id: str, driver_id: str, business_date: date, regime: RegulatoryRegime
    ) -> Optional[DriverRSECounter]:
        response = (
            self.client.table("driver_rse_counters")
            .select("*")
            .eq("organization_id", organization_id)
            .eq("driver_id", driver_id)
            .eq("date", business_date.isoformat())
            .eq("regulatory_category", regime.value)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return counter_from_row(rows[0]) if rows else None

    def increment_counter(
        self,
        organization_id: str,
        driver_id: str,
        business_date: date,
        regime: RegulatoryRegime,
        driving_minutes: int,
        amplitude_minutes: int,
        break_minutes: int,
        rest_minutes: int,
    ) -> DriverRSECounter:
        # INSERT ... ON CONFLICT DO UPDATE SET x = x + excluded.x, inside the database
        response = self.client.rpc(
            "increment_driver_rse_counter",
            {
                "p_organization_id": organization_id,
                "p_driver_id": driver_id,
                "p_date": business_date.isoformat(),
                "p_regulatory_category": regime.value,
                "p_driving_minutes": driving_minutes,
                "p_amplitude_minutes": amplitude_minutes,
                "p_break_minutes": break_minutes,
                "p_rest_minutes": rest_minutes,
            },
        ).execute()
        data = response.data
        row = data[0] if isinstance(data, list) else data
        if not row:
            raise RuntimeError(f"Counter increment returned no row for driver {driver_id}")
        return counter_from_row(row)

    def get_rule(self, organization_id: str, regime: RegulatoryRegime) -> Optional[ComplianceRule]:
        response = (
            self.client.table("compliance_rules")
            .select("*")
            .eq("organization_id", organization_id)
            .eq("regulatory_category", regime.value)
            .limit(1)
            .execute()
        )
        rows = response.data or []
        return rule_from_row(rows[0]) if rows else None

    def append_audit(self, entry: AuditEntry) -> None:
        try:
            self.client.table("compliance_audit_logs").insert(
                {
                    "organization_id": entry.organization_id,
                    "driver_id": entry.driver_id,
                    "regulatory_category": entry.regime.value,
                    "decision": entry.decision.value,
                    "reason": entry.reason,
                    "reference_id": entry.reference_id,
                    "violations": [
                        {"type": v.type.value, "message": v.message, "actual": v.actual, "limit": v.limit}
                        for v in entry.violations
                    ],
                    "warnings": [
                        {"message": w.message, "actual": w.actual, "limit": w.limit, "percentOfLimit": w.percent_of_limit}
                        for w in entry.warnings
                    ],
                    "created_at": entry.created_at.isoformat(),
                }
            ).execute()
        except Exception as e:
            # audit writes never change the returned decision
            logging.warning(f"Failed to write compliance audit entry: {e}")


class SupabaseMissionStore:
    """Quote/mission access; writes inside a transaction are committed through one RPC call."""

    def __init__(self, client: Client | None = None) -> None:
        self.client = _require_client(client)
        self._pending: Optional[list[dict[str, Any]]] = None
        self._known_missions: set[str] = set()

    def get_quote(self, quote_id: str) -> Quote:
        response = self.client.table("quotes").select("*").eq("id", quote_id).limit(1).execute()
        rows = response.data or []
        if not rows:
            raise QuoteNotFoundError(f"Quote {quote_id} not found")
        row = rows[0]
        lines_response = (
            self.client.table("quote_lines").select("*").eq("quote_id", quote_id).order("sort_order").execute()
        )
        missions_response = self.client.table("missions").select("*").eq("quote_id", quote_id).execute()
        missions = [mission_from_row(m) for m in missions_response.data or []]
        self._known_missions.update(m.id for m in missions)
        return Quote(
            id=row["id"],
            organization_id=row["organization_id"],
            pickup_at=_parse_datetime(row.get("pickup_at")),
            estimated_end_at=_parse_datetime(row.get("estimated_end_at")),
            lines=[line_from_row(line) for line in lines_response.data or []],
            missions=missions,
        )

    def _submit(self, operation: dict[str, Any]) -> None:
        if self._pending is not None:
            self._pending.append(operation)
        else:
            self.client.rpc("apply_mission_sync_batch", {"operations": [operation]}).execute()

    def _require_known(self, mission_id: str) -> None:
        if mission_id not in self._known_missions:
            raise LookupError(f"Mission {mission_id} not found")

    def create_mission(self, draft: MissionDraft) -> Mission:
        mission = Mission(
            id=str(uuid.uuid4()),
            organization_id=draft.organization_id,
            quote_id=draft.quote_id,
            quote_line_id=draft.quote_line_id,
            status=MissionStatus.PENDING,
            start_at=draft.start_at,
            end_at=draft.end_at,
            source_data=draft.source_data,
        )
        self._submit(
            {
                "op": "create",
                "mission": {
                    "id": mission.id,
                    "organization_id": mission.organization_id,
                    "quote_id": mission.quote_id,
                    "quote_line_id": mission.quote_line_id,
                    "status": mission.status.value,
                    "start_at": _iso(mission.start_at),
                    "end_at": _iso(mission.end_at),
                    "source_data": source_data_to_dict(mission.source_data),
                },
            }
        )
        self._known_missions.add(mission.id)
        return mission

    def update_mission(self, mission_id: str, update: MissionUpdate) -> None:
        self._require_known(mission_id)
        self._submit(
            {
                "op": "update",
                "id": mission_id,
                "fields": {
                    "start_at": _iso(update.start_at),
                    "end_at": _iso(update.end_at),
                    "source_data": source_data_to_dict(update.source_data),
                },
            }
        )

    def detach_mission(self, mission_id: str) -> None:
        self._require_known(mission_id)
        self._submit({"op": "update", "id": mission_id, "fields": {"quote_line_id": None}})

    def delete_mission(self, mission_id: str) -> None:
        self._require_known(mission_id)
        self._submit({"op": "delete", "id": mission_id})

    @contextmanager
    def transaction(self) -> Iterator[None]:
        if self._pending is not None:
            raise RuntimeError("Nested mission transactions are not supported")
        self._pending = []
        try:
            yield
            operations = self._pending
            self._pending = None
            if operations:
                logging.info(f"Committing {len(operations)} mission operations")
                self.client.rpc("apply_mission_sync_batch", {"operations": operations}).execute()
        finally:
            self._pending = None
