"""Store selection: Supabase when configured, otherwise a process-wide in-memory store."""

from __future__ import annotations

from functools import lru_cache

from ..db.supabase import get_supabase_client
from ..models.enums import RegulatoryRegime
from ..services.compliance.models import DEFAULT_HEAVY_VEHICLE_RULE
from .database import SupabaseComplianceStore, SupabaseMissionStore
from .memory import InMemoryStore


@lru_cache()
def get_memory_store() -> InMemoryStore:
    return InMemoryStore(default_rules={RegulatoryRegime.HEAVY: DEFAULT_HEAVY_VEHICLE_RULE})


def get_compliance_store() -> SupabaseComplianceStore | InMemoryStore:
    client = get_supabase_client()
    if client is None:
        return get_memory_store()
    return SupabaseComplianceStore(client)


def get_mission_store() -> SupabaseMissionStore | InMemoryStore:
    client = get_supabase_client()
    if client is None:
        return get_memory_store()
    return SupabaseMissionStore(client)
