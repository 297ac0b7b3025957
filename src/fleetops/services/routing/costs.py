"""Per-organization cost rates and trip cost computation."""

from __future__ import annotations

from dataclasses import dataclass, replace

from ...config import settings
from ...models.domain import CostBreakdown
from ...models.enums import FuelPriceSource
from .tco import VehicleTcoConfig, calculate_tco


@dataclass(slots=True)
class CostRates:
    fuel_price_per_liter: float = settings.fuel_price_per_liter
    fuel_consumption_l100km: float = settings.fuel_consumption_l100km
    driver_hourly_cost: float = settings.driver_hourly_cost
    wear_cost_per_km: float = settings.wear_cost_per_km
    fallback_toll_rate_per_km: float = settings.fallback_toll_rate_per_km
    fuel_price_source: FuelPriceSource = FuelPriceSource.DEFAULT

    def with_vehicle_tco(self, config: VehicleTcoConfig) -> "CostRates":
        """Replace the flat wear rate with the vehicle's TCO cost per km."""
        return replace(self, wear_cost_per_km=calculate_tco(config).total_cost_per_km)


def compute_cost_breakdown(
    distance_km: float,
    duration_minutes: float,
    tolls: float,
    rates: CostRates,
    parking: float = 0.0,
) -> CostBreakdown:
    """Unrounded cost of a trip; callers round once when exposing the result."""
    if distance_km < 0 or duration_minutes < 0:
        raise ValueError("distance_km and duration_minutes must be >= 0")
    return CostBreakdown(
        fuel=distance_km * (rates.fuel_consumption_l100km / 100) * rates.fuel_price_per_liter,
        tolls=tolls,
        wear=distance_km * rates.wear_cost_per_km,
        driver=duration_minutes / 60 * rates.driver_hourly_cost,
        parking=parking,
    )
