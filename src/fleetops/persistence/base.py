"""Storage capabilities consumed by the compliance and mission services."""

from __future__ import annotations

from datetime import date
from typing import ContextManager, Optional, Protocol

from ..models.domain import Mission, Quote
from ..models.enums import RegulatoryRegime
from ..services.compliance.models import AuditEntry, ComplianceRule, DriverRSECounter
from ..services.missions.models import MissionDraft, MissionUpdate


class QuoteNotFoundError(LookupError):
    pass


class CounterStore(Protocol):
    def get_counter(
        self, organization_id: str, driver_id: str, business_date: date, regime: RegulatoryRegime
    ) -> Optional[DriverRSECounter]: ...

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
        """Atomic upsert-with-increment; returns the counter after the increment."""
        ...


class RuleStore(Protocol):
    def get_rule(self, organization_id: str, regime: RegulatoryRegime) -> Optional[ComplianceRule]: ...


class AuditStore(Protocol):
    def append_audit(self, entry: AuditEntry) -> None: ...


class MissionStore(Protocol):
    def get_quote(self, quote_id: str) -> Quote:
        """Quote with its current lines and every mission still pointing at the quote.

        Raises ``QuoteNotFoundError`` when no such quote exists.
        """
        ...

    def create_mission(self, draft: MissionDraft) -> Mission: ...

    def update_mission(self, mission_id: str, update: MissionUpdate) -> None: ...

    def detach_mission(self, mission_id: str) -> None: ...

    def delete_mission(self, mission_id: str) -> None: ...

    def transaction(self) -> ContextManager[None]:
        """All writes inside the block commit together or not at all."""
        ...
