"""Route scenario and trip costing endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from ...config import settings
from ...schemas.routing import (
    RouteScenarioRequest,
    RouteScenariosResponse,
    TripAnalysisRequest,
    TripAnalysisResponse,
)
from ...services.routing.costs import CostRates
from ...services.routing.routes_client import RoutesClient
from ...services.routing.scenarios import RouteScenarioEngine, ScenarioPolicy
from ...services.routing.service import analyze_trip

router = APIRouter(prefix="/routes", tags=["routes"])


def _get_routes_client() -> RoutesClient | None:
    if not settings.routes_api_key:
        return None
    return RoutesClient()


@router.post("/scenarios", response_model=RouteScenariosResponse, status_code=status.HTTP_200_OK)
def compute_scenarios(payload: RouteScenarioRequest) -> RouteScenariosResponse:
    try:
        engine = RouteScenarioEngine(
            client=_get_routes_client(),
            rates=payload.rates.to_domain() if payload.rates else CostRates(),
            policy=ScenarioPolicy(payload.default_scenario, dict(payload.trip_type_overrides)),
        )
        scenarios = engine.compute_scenarios(
            payload.origin.to_domain(),
            payload.destination.to_domain(),
            [point.to_domain() for point in payload.intermediates],
            trip_type=payload.trip_type,
        )
        return RouteScenariosResponse.model_validate(scenarios)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error computing route scenarios: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to compute route scenarios: {str(exc)}"
        ) from exc


@router.post("/trip-analysis", response_model=TripAnalysisResponse, status_code=status.HTTP_200_OK)
def trip_analysis(payload: TripAnalysisRequest) -> TripAnalysisResponse:
    try:
        analysis = analyze_trip(
            payload.pickup.to_domain(),
            payload.dropoff.to_domain(),
            base=payload.base.to_domain() if payload.base else None,
            intermediates=[point.to_domain() for point in payload.intermediates],
            rates=payload.rates.to_domain() if payload.rates else None,
            client=_get_routes_client(),
            parking=payload.parking,
        )
        return TripAnalysisResponse.model_validate(analysis)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logging.exception(f"Error analyzing trip: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to analyze trip: {str(exc)}"
        ) from exc
