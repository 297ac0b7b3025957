"""Driver regulatory compliance endpoints."""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, HTTPException, Query, status

from ...persistence.stores import get_compliance_store
from ...schemas.compliance import (
    ActivityRequest,
    ActivityResponse,
    AlternativesResponse,
    CounterModel,
    ProjectionRequest,
    ProjectionResponse,
    RegimeSnapshotModel,
    SnapshotResponse,
    StaffingAlternativeModel,
    TripValidationRequest,
    ValidationResponse,
)
from ...services.compliance.alternatives import generate_alternatives
from ...services.compliance.engine import ComplianceEngine

router = APIRouter(prefix="/compliance", tags=["compliance"])


def _engine(organization_id: str) -> ComplianceEngine:
    store = get_compliance_store()
    return ComplianceEngine(organization_id, counters=store, rules=store, audit=store)


def _failure(action: str, exc: Exception) -> HTTPException:
    if isinstance(exc, ValueError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logging.exception(f"Error {action}: {exc}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed {action}: {str(exc)}",
    )


@router.post("/activities", response_model=ActivityResponse, status_code=status.HTTP_200_OK)
def record_activity(payload: ActivityRequest) -> ActivityResponse:
    """Add a driving activity to the driver's daily counter for its regime."""
    try:
        engine = _engine(payload.organization_id)
        counter = engine.record_activity(
            payload.driver_id,
            payload.date,
            payload.regime,
            payload.driving_minutes,
            payload.amplitude_minutes,
            payload.break_minutes,
            payload.rest_minutes,
        )
        return ActivityResponse(
            counter=CounterModel.model_validate(counter),
            status=engine.status(payload.driver_id, payload.date, payload.regime),
        )
    except Exception as exc:
        raise _failure("recording activity", exc) from exc


@router.post("/validate", response_model=ValidationResponse, status_code=status.HTTP_200_OK)
def validate(payload: TripValidationRequest) -> ValidationResponse:
    try:
        result = _engine(payload.organization_id).validate_trip(
            payload.to_trip_analysis(),
            payload.regime,
            driver_id=payload.driver_id,
            pickup_at=payload.pickup_at,
            dropoff_at=payload.dropoff_at,
            reference_id=payload.reference_id,
        )
        return ValidationResponse.model_validate(result)
    except Exception as exc:
        raise _failure("validating trip", exc) from exc


@router.post("/project", response_model=ProjectionResponse, status_code=status.HTTP_200_OK)
def project(payload: ProjectionRequest) -> ProjectionResponse:
    """Cumulative pre-check before scheduling more driving for a driver."""
    try:
        result = _engine(payload.organization_id).can_schedule(
            payload.driver_id,
            payload.date,
            payload.regime,
            payload.additional_driving_minutes,
            payload.additional_amplitude_minutes,
            reference_id=payload.reference_id,
        )
        return ProjectionResponse.model_validate(result)
    except Exception as exc:
        raise _failure("projecting compliance", exc) from exc


@router.get("/drivers/{driver_id}/snapshot", response_model=SnapshotResponse, status_code=status.HTTP_200_OK)
def driver_snapshot(
    driver_id: str,
    organization_id: str = Query(...),
    day: date = Query(..., alias="date"),
) -> SnapshotResponse:
    try:
        snapshots = _engine(organization_id).snapshot(driver_id, day)
        return SnapshotResponse(
            driver_id=driver_id,
            date=day,
            regimes=[RegimeSnapshotModel.model_validate(s) for s in snapshots],
        )
    except Exception as exc:
        raise _failure("reading driver snapshot", exc) from exc


@router.post("/alternatives", response_model=AlternativesResponse, status_code=status.HTTP_200_OK)
def staffing_alternatives(payload: TripValidationRequest) -> AlternativesResponse:
    """Validate a trip and propose staffing plans when it breaks daily limits."""
    try:
        engine = _engine(payload.organization_id)
        result = engine.validate_trip(
            payload.to_trip_analysis(),
            payload.regime,
            driver_id=payload.driver_id,
            pickup_at=payload.pickup_at,
            dropoff_at=payload.dropoff_at,
            reference_id=payload.reference_id,
        )
        alternatives = generate_alternatives(result, engine.rule_for(payload.regime))
        return AlternativesResponse(
            validation=ValidationResponse.model_validate(result),
            alternatives=[StaffingAlternativeModel.model_validate(a) for a in alternatives.alternatives],
            recommended=alternatives.recommended,
            message=alternatives.message,
        )
    except Exception as exc:
        raise _failure("computing staffing alternatives", exc) from exc
