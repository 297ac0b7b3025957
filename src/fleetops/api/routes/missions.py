"""Quote to mission synchronization endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...persistence.stores import get_mission_store
from ...schemas.missions import SyncResultResponse
from ...services.missions.sync import MissionSyncReconciler

router = APIRouter(prefix="/missions", tags=["missions"])


@router.post("/quotes/{quote_id}/sync", response_model=SyncResultResponse, status_code=status.HTTP_200_OK)
def sync_quote(quote_id: str) -> SyncResultResponse:
    """Reconcile a quote's missions with its current lines.

    Item-level failures are reported in ``errors``; the call itself still succeeds.
    """
    try:
        result = MissionSyncReconciler(get_mission_store()).sync_quote_missions(quote_id)
        return SyncResultResponse.model_validate(result)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error syncing missions for quote {quote_id}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to sync missions: {str(exc)}"
        ) from exc
