"""Reconcile dispatch missions with the lines of a quote."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ...models.domain import Mission, Quote, QuoteLine, SourceData, source_data_to_dict
from ...models.enums import MissionStatus, QuoteLineType, SyncErrorType
from ...persistence.base import MissionStore, QuoteNotFoundError
from .models import MissionDraft, MissionUpdate, SyncError, SyncResult

logger = logging.getLogger(__name__)

# Orphans in these states reflect real operational work and are detached, never deleted.
DETACH_STATUSES = frozenset(
    {MissionStatus.ASSIGNED, MissionStatus.IN_PROGRESS, MissionStatus.COMPLETED, MissionStatus.CANCELLED}
)


def line_start_at(line: QuoteLine) -> Optional[datetime]:
    if line.source_data is None:
        return None
    return line.source_data.start_at


def is_mission_eligible(line: QuoteLine) -> bool:
    match line.type:
        case QuoteLineType.CALCULATED:
            return True
        case QuoteLineType.GROUP:
            return line_start_at(line) is not None
        case QuoteLineType.MANUAL:
            return False
        case _:
            raise ValueError(f"Unknown quote line type '{line.type}'.")


def mission_timing(line: QuoteLine, quote: Quote) -> tuple[Optional[datetime], Optional[datetime]]:
    start_at = line_start_at(line) or quote.pickup_at
    return start_at, quote.estimated_end_at


def needs_update(
    mission: Mission,
    start_at: Optional[datetime],
    end_at: Optional[datetime],
    source_data: Optional[SourceData],
) -> bool:
    if mission.start_at != start_at or mission.end_at != end_at:
        return True
    return source_data_to_dict(mission.source_data) != source_data_to_dict(source_data)


class MissionSyncReconciler:
    """Keeps one mission per eligible quote line without touching dispatch fields.

    A whole quote is reconciled inside one store transaction. Per-item failures are
    collected in the result; anything raised outside the per-item steps rolls back
    the transaction.
    """

    def __init__(self, store: MissionStore) -> None:
        self.store = store

    def sync_quote_missions(self, quote_id: str) -> SyncResult:
        result = SyncResult(quote_id=quote_id)
        with self.store.transaction():
            try:
                quote = self.store.get_quote(quote_id)
            except QuoteNotFoundError as exc:
                logger.warning(f"Mission sync skipped: {exc}")
                result.errors.append(SyncError(type=SyncErrorType.UPDATE_FAILED, message=str(exc)))
                return result
            self._sync_lines(quote, result)
            self._handle_orphans(quote, result)

        if result.changed or result.errors:
            logger.info(
                f"Mission sync for quote {quote_id}: created={result.created} updated={result.updated} "
                f"deleted={result.deleted} detached={result.detached} errors={len(result.errors)}"
            )
        return result

    def _sync_lines(self, quote: Quote, result: SyncResult) -> None:
        missions_by_line = {m.quote_line_id: m for m in quote.missions if m.quote_line_id is not None}
        for line in quote.lines:
            if not is_mission_eligible(line):
                continue
            start_at, end_at = mission_timing(line, quote)
            existing = missions_by_line.get(line.id)

            if existing is None:
                draft = MissionDraft(
                    organization_id=quote.organization_id,
                    quote_id=quote.id,
                    quote_line_id=line.id,
                    start_at=start_at,
                    end_at=end_at,
                    source_data=line.source_data,
                )
                try:
                    self.store.create_mission(draft)
                    result.created += 1
                except Exception as exc:
                    logger.warning(f"Failed to create mission for line {line.id}: {exc}")
                    result.errors.append(
                        SyncError(type=SyncErrorType.CREATE_FAILED, message=str(exc), quote_line_id=line.id)
                    )
                continue

            if not needs_update(existing, start_at, end_at, line.source_data):
                continue
            try:
                self.store.update_mission(
                    existing.id,
                    MissionUpdate(start_at=start_at, end_at=end_at, source_data=line.source_data),
                )
                result.updated += 1
            except Exception as exc:
                logger.warning(f"Failed to update mission {existing.id}: {exc}")
                result.errors.append(
                    SyncError(
                        type=SyncErrorType.UPDATE_FAILED,
                        message=str(exc),
                        quote_line_id=line.id,
                        mission_id=existing.id,
                    )
                )

    def _handle_orphans(self, quote: Quote, result: SyncResult) -> None:
        # Missions of lines that are gone or no longer mission-worthy are orphans.
        line_ids = {line.id for line in quote.lines if is_mission_eligible(line)}
        for mission in quote.missions:
            if mission.quote_line_id is None:
                result.preserved += 1
                continue
            if mission.quote_line_id in line_ids:
                continue

            if mission.status == MissionStatus.PENDING:
                try:
                    self.store.delete_mission(mission.id)
                    result.deleted += 1
                except Exception as exc:
                    logger.warning(f"Failed to delete orphaned mission {mission.id}: {exc}")
                    result.errors.append(
                        SyncError(
                            type=SyncErrorType.DELETION_BLOCKED,
                            message=str(exc),
                            quote_line_id=mission.quote_line_id,
                            mission_id=mission.id,
                        )
                    )
            elif mission.status in DETACH_STATUSES:
                try:
                    self.store.detach_mission(mission.id)
                    result.detached += 1
                except Exception as exc:
                    logger.warning(f"Failed to detach orphaned mission {mission.id}: {exc}")
                    result.errors.append(
                        SyncError(
                            type=SyncErrorType.UPDATE_FAILED,
                            message=str(exc),
                            quote_line_id=mission.quote_line_id,
                            mission_id=mission.id,
                        )
                    )
