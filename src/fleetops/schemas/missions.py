"""Mission synchronization schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from ..models.enums import SyncErrorType


class SyncErrorModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: SyncErrorType
    message: str
    quote_line_id: Optional[str] = None
    mission_id: Optional[str] = None


class SyncResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    quote_id: str
    created: int
    updated: int
    deleted: int
    detached: int
    preserved: int
    errors: List[SyncErrorModel]
