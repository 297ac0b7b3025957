"""Subcontracting request/response schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.enums import ProfitabilityLevel, Recommendation


class ComparisonRequest(BaseModel):
    selling_price: float
    internal_cost: float = Field(..., ge=0)
    subcontractor_cost: Optional[float] = Field(default=None, ge=0)
    rate_per_km: Optional[float] = Field(default=None, ge=0)
    rate_per_hour: Optional[float] = Field(default=None, ge=0)
    minimum_fare: Optional[float] = Field(default=None, ge=0)
    distance_km: float = Field(default=0.0, ge=0)
    duration_minutes: float = Field(default=0.0, ge=0)
    review_band_percent: Optional[float] = Field(default=None, ge=0)


class ComparisonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    internal_cost: float
    subcontractor_price: float
    savings: float
    savings_percent: float
    recommendation: Recommendation
    internal_margin_percent: Optional[float] = None
    subcontractor_margin_percent: Optional[float] = None
    profitability: ProfitabilityLevel


class PriceRequest(BaseModel):
    rate_per_km: Optional[float] = Field(default=None, ge=0)
    rate_per_hour: Optional[float] = Field(default=None, ge=0)
    minimum_fare: Optional[float] = Field(default=None, ge=0)
    distance_km: float = Field(..., ge=0)
    duration_minutes: float = Field(..., ge=0)


class PriceResponse(BaseModel):
    price: float
