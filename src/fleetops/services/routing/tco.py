"""Vehicle total cost of ownership per kilometre."""

from __future__ import annotations

from dataclasses import dataclass

from ...models.enums import DepreciationMethod

DEFAULT_DECLINING_BALANCE_RATE = 0.20


@dataclass(slots=True)
class VehicleTcoConfig:
    purchase_price: float
    expected_lifespan_km: float
    expected_lifespan_years: float
    annual_maintenance_budget: float
    annual_insurance_cost: float
    annual_km: float
    depreciation_method: DepreciationMethod = DepreciationMethod.LINEAR
    declining_balance_rate: float = DEFAULT_DECLINING_BALANCE_RATE
    current_odometer_km: float = 0.0


@dataclass(slots=True)
class TcoBreakdown:
    depreciation_per_km: float
    maintenance_per_km: float
    insurance_per_km: float
    total_cost_per_km: float
    depreciation_method: DepreciationMethod


def validate_tco_config(config: VehicleTcoConfig) -> None:
    if config.purchase_price <= 0:
        raise ValueError("purchase_price must be > 0")
    if config.expected_lifespan_km <= 0:
        raise ValueError("expected_lifespan_km must be > 0")
    if config.expected_lifespan_years <= 0:
        raise ValueError("expected_lifespan_years must be > 0")
    if config.annual_km <= 0:
        raise ValueError("annual_km must be > 0")
    if config.annual_maintenance_budget < 0:
        raise ValueError("annual_maintenance_budget must be >= 0")
    if config.annual_insurance_cost < 0:
        raise ValueError("annual_insurance_cost must be >= 0")
    if config.current_odometer_km < 0:
        raise ValueError("current_odometer_km must be >= 0")
    if not 0 < config.declining_balance_rate < 1:
        raise ValueError("declining_balance_rate must be between 0 and 1")


def depreciation_per_km(config: VehicleTcoConfig) -> float:
    linear = config.purchase_price / config.expected_lifespan_km
    match config.depreciation_method:
        case DepreciationMethod.LINEAR:
            return linear
        case DepreciationMethod.DECLINING_BALANCE:
            if config.current_odometer_km <= 0:
                return linear
            km_per_year = config.expected_lifespan_km / config.expected_lifespan_years
            years_owned = config.current_odometer_km / km_per_year
            remaining = config.purchase_price * (1 - config.declining_balance_rate) ** years_owned
            return (config.purchase_price - remaining) / config.current_odometer_km
        case _:
            raise ValueError(f"Unknown depreciation method '{config.depreciation_method}'.")


def calculate_tco(config: VehicleTcoConfig) -> TcoBreakdown:
    validate_tco_config(config)
    depreciation = depreciation_per_km(config)
    maintenance = config.annual_maintenance_budget / config.annual_km
    insurance = config.annual_insurance_cost / config.annual_km
    return TcoBreakdown(
        depreciation_per_km=depreciation,
        maintenance_per_km=maintenance,
        insurance_per_km=insurance,
        total_cost_per_km=depreciation + maintenance + insurance,
        depreciation_method=config.depreciation_method,
    )

