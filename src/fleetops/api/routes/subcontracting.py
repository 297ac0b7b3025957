"""Subcontracting comparison endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from ...schemas.subcontracting import ComparisonRequest, ComparisonResponse, PriceRequest, PriceResponse
from ...services.subcontracting.advisor import (
    compare_margins,
    margin_percent,
    profitability_level,
    subcontractor_price,
)

router = APIRouter(prefix="/subcontracting", tags=["subcontracting"])


@router.post("/compare", response_model=ComparisonResponse, status_code=status.HTTP_200_OK)
def compare(payload: ComparisonRequest) -> ComparisonResponse:
    """Compare keeping a mission internal against handing it to a subcontractor.

    When ``subcontractor_cost`` is omitted it is priced from the subcontractor rates.
    """
    sub_cost = payload.subcontractor_cost
    if sub_cost is None:
        sub_cost = subcontractor_price(
            payload.rate_per_km,
            payload.rate_per_hour,
            payload.minimum_fare,
            payload.distance_km,
            payload.duration_minutes,
        )
    try:
        comparison = compare_margins(
            payload.selling_price, payload.internal_cost, sub_cost, payload.review_band_percent
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    internal_margin = margin_percent(payload.selling_price, payload.internal_cost)
    return ComparisonResponse(
        internal_cost=comparison.internal_cost,
        subcontractor_price=comparison.subcontractor_price,
        savings=comparison.savings,
        savings_percent=comparison.savings_percent,
        recommendation=comparison.recommendation,
        internal_margin_percent=_rounded(internal_margin),
        subcontractor_margin_percent=_rounded(margin_percent(payload.selling_price, sub_cost)),
        profitability=profitability_level(internal_margin),
    )


def _rounded(value: float | None) -> float | None:
    return round(value, 2) if value is not None else None


@router.post("/price", response_model=PriceResponse, status_code=status.HTTP_200_OK)
def price(payload: PriceRequest) -> PriceResponse:
    return PriceResponse(
        price=subcontractor_price(
            payload.rate_per_km,
            payload.rate_per_hour,
            payload.minimum_fare,
            payload.distance_km,
            payload.duration_minutes,
        )
    )
