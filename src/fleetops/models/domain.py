"""Domain models for geography, quotes, missions and pricing zones."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

from .enums import MissionStatus, QuoteLineType, ZoneType


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A WGS84 coordinate in degrees."""

    lat: float
    lng: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(slots=True)
class CostBreakdown:
    """Internal cost of a trip. ``total`` is always the sum of the components."""

    fuel: float = 0.0
    tolls: float = 0.0
    wear: float = 0.0
    driver: float = 0.0
    parking: float = 0.0
    total: float = field(init=False)

    def __post_init__(self) -> None:
        self.total = self.fuel + self.tolls + self.wear + self.driver + self.parking

    def rounded(self) -> "CostBreakdown":
        fuel = round(self.fuel, 2)
        tolls = round(self.tolls, 2)
        wear = round(self.wear, 2)
        driver = round(self.driver, 2)
        parking = round(self.parking, 2)
        breakdown = CostBreakdown(fuel=fuel, tolls=tolls, wear=wear, driver=driver, parking=parking)
        breakdown.total = round(breakdown.total, 2)
        return breakdown

    def __add__(self, other: "CostBreakdown") -> "CostBreakdown":
        return CostBreakdown(
            fuel=self.fuel + other.fuel,
            tolls=self.tolls + other.tolls,
            wear=self.wear + other.wear,
            driver=self.driver + other.driver,
            parking=self.parking + other.parking,
        )


# Source data carried by quote lines and missions, one shape per line kind.


@dataclass(slots=True)
class TransferSourceData:
    label: Optional[str] = None
    pickup_address: Optional[str] = None
    dropoff_address: Optional[str] = None
    pickup_at: Optional[datetime] = None
    vehicle_category: Optional[str] = None
    passenger_count: Optional[int] = None

    kind = "TRANSFER"

    @property
    def start_at(self) -> Optional[datetime]:
        return self.pickup_at


@dataclass(slots=True)
class InternalTaskSourceData:
    label: Optional[str] = None
    address: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    vehicle_category: Optional[str] = None

    kind = "INTERNAL_TASK"


@dataclass(slots=True)
class GroupSourceData:
    label: Optional[str] = None
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    pickup_address: Optional[str] = None
    child_line_ids: list[str] = field(default_factory=list)

    kind = "GROUP"


SourceData = Union[TransferSourceData, InternalTaskSourceData, GroupSourceData]


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def source_data_to_dict(data: Optional[SourceData]) -> Optional[dict[str, Any]]:
    """Serialize source data to the canonical JSON shape used for storage and drift checks."""
    if data is None:
        return None
    match data:
        case TransferSourceData():
            return {
                "kind": data.kind,
                "label": data.label,
                "pickupAddress": data.pickup_address,
                "dropoffAddress": data.dropoff_address,
                "pickupAt": _iso(data.pickup_at),
                "vehicleCategory": data.vehicle_category,
                "passengerCount": data.passenger_count,
            }
        case InternalTaskSourceData():
            return {
                "kind": data.kind,
                "label": data.label,
                "address": data.address,
                "startAt": _iso(data.start_at),
                "endAt": _iso(data.end_at),
                "vehicleCategory": data.vehicle_category,
            }
        case GroupSourceData():
            return {
                "kind": data.kind,
                "label": data.label,
                "startAt": _iso(data.start_at),
                "endAt": _iso(data.end_at),
                "pickupAddress": data.pickup_address,
                "childLineIds": list(data.child_line_ids),
            }
        case _:
            raise ValueError(f"Unsupported source data type '{type(data).__name__}'.")


def source_data_from_dict(payload: Optional[dict[str, Any]]) -> Optional[SourceData]:
    """Parse a stored JSON blob back into its typed shape."""
    if payload is None:
        return None
    match payload.get("kind"):
        case "TRANSFER":
            return TransferSourceData(
                label=payload.get("label"),
                pickup_address=payload.get("pickupAddress"),
                dropoff_address=payload.get("dropoffAddress"),
                pickup_at=_parse_datetime(payload.get("pickupAt")),
                vehicle_category=payload.get("vehicleCategory"),
                passenger_count=payload.get("passengerCount"),
            )
        case "INTERNAL_TASK":
            return InternalTaskSourceData(
                label=payload.get("label"),
                address=payload.get("address"),
                start_at=_parse_datetime(payload.get("startAt")),
                end_at=_parse_datetime(payload.get("endAt")),
                vehicle_category=payload.get("vehicleCategory"),
            )
        case "GROUP":
            return GroupSourceData(
                label=payload.get("label"),
                start_at=_parse_datetime(payload.get("startAt")),
                end_at=_parse_datetime(payload.get("endAt")),
                pickup_address=payload.get("pickupAddress"),
                child_line_ids=list(payload.get("childLineIds") or []),
            )
        case other:
            raise ValueError(f"Unknown source data kind '{other}'.")


@dataclass(slots=True)
class QuoteLine:
    """Commercial line of a quote."""

    id: str
    quote_id: str
    type: QuoteLineType
    label: Optional[str] = None
    source_data: Optional[SourceData] = None
    sort_order: int = 0


@dataclass(slots=True)
class Mission:
    """Operational dispatch record, weakly linked to a quote line."""

    id: str
    organization_id: str
    quote_id: str
    quote_line_id: Optional[str]
    status: MissionStatus = MissionStatus.PENDING
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    source_data: Optional[SourceData] = None
    driver_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    notes: Optional[str] = None


@dataclass(slots=True)
class Quote:
    id: str
    organization_id: str
    pickup_at: Optional[datetime] = None
    estimated_end_at: Optional[datetime] = None
    lines: list[QuoteLine] = field(default_factory=list)
    missions: list[Mission] = field(default_factory=list)


@dataclass(slots=True)
class PricingZone:
    """Commercial pricing zone matched against pickup and dropoff points."""

    id: str
    code: str
    zone_type: ZoneType
    name: Optional[str] = None
    center: Optional[GeoPoint] = None
    radius_km: Optional[float] = None
    polygon: list[GeoPoint] = field(default_factory=list)
    priority: int = 0
    price_multiplier: float = 1.0
    is_active: bool = True
