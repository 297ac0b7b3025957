"""Mission reconciliation models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ...models.domain import SourceData
from ...models.enums import SyncErrorType


@dataclass(slots=True)
class MissionDraft:
    """Fields of a mission created from a quote line. New missions always start PENDING."""

    organization_id: str
    quote_id: str
    quote_line_id: str
    start_at: Optional[datetime]
    end_at: Optional[datetime]
    source_data: Optional[SourceData]


@dataclass(slots=True)
class MissionUpdate:
    """Line-derived fields the reconciler may overwrite. Dispatch fields are deliberately absent."""

    start_at: Optional[datetime]
    end_at: Optional[datetime]
    source_data: Optional[SourceData]


@dataclass(slots=True)
class SyncError:
    type: SyncErrorType
    message: str
    quote_line_id: Optional[str] = None
    mission_id: Optional[str] = None


@dataclass(slots=True)
class SyncResult:
    quote_id: str
    created: int = 0
    updated: int = 0
    deleted: int = 0
    detached: int = 0
    preserved: int = 0
    errors: List[SyncError] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.deleted or self.detached)
