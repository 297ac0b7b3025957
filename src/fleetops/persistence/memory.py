"""Thread-safe in-process storage for counters, rules, audit entries and missions."""

from __future__ import annotations

import copy
import threading
import uuid
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from ..models.domain import Mission, Quote, QuoteLine
from ..models.enums import MissionStatus, RegulatoryRegime
from ..services.compliance.models import AuditEntry, ComplianceRule, DriverRSECounter
from ..services.missions.models import MissionDraft, MissionUpdate
from .base import QuoteNotFoundError

CounterKey = tuple[str, str, date, RegulatoryRegime]


class InMemoryStore:
    """Process-local store.

    ``default_rules`` answer rule lookups for organizations without a configured rule.
    """

    def __init__(self, default_rules: Optional[dict[RegulatoryRegime, ComplianceRule]] = None) -> None:
        self.default_rules = dict(default_rules or {})
        self._lock = threading.RLock()
        self.counters: dict[CounterKey, DriverRSECounter] = {}
        self.rules: dict[tuple[str, RegulatoryRegime], ComplianceRule] = {}
        self.audit_log: list[AuditEntry] = []
        self.quotes: dict[str, Quote] = {}
        self.missions: dict[str, Mission] = {}

    # Compliance counters

    def get_counter(
        self, organization_id: str, driver_id: str, business_date: date, regime: RegulatoryRegime
    ) -> Optional[DriverRSECounter]:
        with self._lock:
            counter = self.counters.get((organization_id, driver_id, business_date, regime))
            return copy.copy(counter) if counter is not None else None

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
        key = (organization_id, driver_id, business_date, regime)
        with self._lock:
            counter = self.counters.get(key)
            if counter is None:
                counter = DriverRSECounter(organization_id, driver_id, business_date, regime)
                self.counters[key] = counter
            counter.driving_minutes += driving_minutes
            counter.amplitude_minutes += amplitude_minutes
            counter.break_minutes += break_minutes
            counter.rest_minutes += rest_minutes
            return copy.copy(counter)

    # Rules and audit

    def set_rule(self, organization_id: str, rule: ComplianceRule) -> None:
        with self._lock:
            self.rules[(organization_id, rule.regime)] = rule

    def get_rule(self, organization_id: str, regime: RegulatoryRegime) -> Optional[ComplianceRule]:
        with self._lock:
            rule = self.rules.get((organization_id, regime))
            return rule if rule is not None else self.default_rules.get(regime)

    def append_audit(self, entry: AuditEntry) -> None:
        with self._lock:
            self.audit_log.append(entry)

    # Quotes and missions

    def add_quote(self, quote: Quote) -> None:
        with self._lock:
            self.quotes[quote.id] = copy.deepcopy(quote)
            for mission in quote.missions:
                self.missions[mission.id] = copy.deepcopy(mission)
            self.quotes[quote.id].missions = []

    def set_lines(self, quote_id: str, lines: list[QuoteLine]) -> None:
        """Replace a quote's lines. Missions keep their line references until the next sync."""
        with self._lock:
            self.quotes[quote_id].lines = copy.deepcopy(lines)

    def add_mission(self, mission: Mission) -> None:
        with self._lock:
            self.missions[mission.id] = copy.deepcopy(mission)

    def get_mission(self, mission_id: str) -> Optional[Mission]:
        with self._lock:
            mission = self.missions.get(mission_id)
            return copy.deepcopy(mission) if mission is not None else None

    def get_quote(self, quote_id: str) -> Quote:
        with self._lock:
            quote = self.quotes.get(quote_id)
            if quote is None:
                raise QuoteNotFoundError(f"Quote {quote_id} not found")
            snapshot = copy.deepcopy(quote)
            snapshot.missions = [copy.deepcopy(m) for m in self.missions.values() if m.quote_id == quote_id]
            return snapshot

    def create_mission(self, draft: MissionDraft) -> Mission:
        mission = Mission(
            id=str(uuid.uuid4()),
            organization_id=draft.organization_id,
            quote_id=draft.quote_id,
            quote_line_id=draft.quote_line_id,
            status=MissionStatus.PENDING,
            start_at=draft.start_at,
            end_at=draft.end_at,
            source_data=copy.deepcopy(draft.source_data),
        )
        with self._lock:
            self.missions[mission.id] = mission
        return copy.deepcopy(mission)

    def _require(self, mission_id: str) -> Mission:
        mission = self.missions.get(mission_id)
        if mission is None:
            raise LookupError(f"Mission {mission_id} not found")
        return mission

    def update_mission(self, mission_id: str, update: MissionUpdate) -> None:
        with self._lock:
            mission = self._require(mission_id)
            mission.start_at = update.start_at
            mission.end_at = update.end_at
            mission.source_data = copy.deepcopy(update.source_data)

    def detach_mission(self, mission_id: str) -> None:
        with self._lock:
            self._require(mission_id).quote_line_id = None

    def delete_mission(self, mission_id: str) -> None:
        with self._lock:
            self._require(mission_id)
            del self.missions[mission_id]

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            saved_quotes = copy.deepcopy(self.quotes)
            saved_missions = copy.deepcopy(self.missions)
            try:
                yield
            except BaseException:
                self.quotes = saved_quotes
                self.missions = saved_missions
                raise
