"""HTTP client for the Google Routes API."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from ...config import settings
from ...models.domain import GeoPoint
from ..geometry import bounds, encode, haversine_km, path_distance
from .models import ProviderRoute, RouteLeg, RoutesRequest, RoutesResult

FIELD_MASK = ",".join(
    [
        "routes.duration",
        "routes.distanceMeters",
        "routes.polyline.encodedPolyline",
        "routes.legs.duration",
        "routes.legs.distanceMeters",
        "routes.travelAdvisory.tollInfo",
    ]
)
TOLL_CURRENCY = "EUR"

logger = logging.getLogger(__name__)


class RoutesError(Exception):
    """Generic routing provider failure."""

    def __init__(self, message: str, status_code: int | None = None, response: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class InvalidApiKeyError(RoutesError):
    pass


class QuotaExceededError(RoutesError):
    pass


class RoutesTimeoutError(RoutesError):
    pass


class MalformedResponseError(RoutesError):
    pass


def parse_duration_seconds(value: Any) -> float:
    """Parse a protobuf duration such as ``"1234s"`` or ``"12.5s"``."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if text.endswith("s"):
        text = text[:-1]
    return float(text) if text else 0.0


def parse_toll_amount(route: dict) -> float:
    """Sum EUR toll prices from a route's travel advisory. Routes without toll info cost 0."""
    toll_info = (route.get("travelAdvisory") or {}).get("tollInfo") or {}
    prices = toll_info.get("estimatedPrice") or []
    total = 0.0
    for price in prices:
        if price.get("currencyCode", TOLL_CURRENCY) != TOLL_CURRENCY:
            continue
        total += int(price.get("units") or 0) + (price.get("nanos") or 0) / 1_000_000_000
    return total


def parse_route(route: dict) -> ProviderRoute:
    legs = [
        RouteLeg(
            distance_meters=int(leg.get("distanceMeters") or 0),
            duration_seconds=parse_duration_seconds(leg.get("duration")),
        )
        for leg in route.get("legs") or []
    ]
    return ProviderRoute(
        distance_meters=int(route.get("distanceMeters") or 0),
        duration_seconds=parse_duration_seconds(route.get("duration")),
        encoded_polyline=(route.get("polyline") or {}).get("encodedPolyline"),
        legs=legs,
        toll_amount=parse_toll_amount(route),
    )


def parse_routes(data: Any) -> list[ProviderRoute]:
    """Parse a computeRoutes body; any unexpected shape raises ``MalformedResponseError``."""
    try:
        return [parse_route(route) for route in data.get("routes") or []]
    except (AttributeError, TypeError, KeyError) as e:
        raise MalformedResponseError(f"Malformed routing response: {e}") from e


class RoutesClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.routes_api_key
        if not self.api_key:
            raise ValueError("Routing provider API key is not configured.")
        self.base_url = base_url or settings.routes_api_url
        self.timeout = timeout if timeout is not None else settings.routes_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.routes_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.routes_backoff_seconds
        self.transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(timeout=httpx.Timeout(self.timeout), transport=self.transport)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": FIELD_MASK,
        }

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            body = response.json()
        except ValueError:
            body = response.text
        code = response.status_code
        if code in (401, 403):
            raise InvalidApiKeyError("Routing provider rejected the API key.", code, body)
        if code == 429:
            raise QuotaExceededError("Routing provider quota exceeded.", code, body)
        raise RoutesError(f"Routing provider returned HTTP {code}.", code, body)

    def compute_routes(self, request: RoutesRequest) -> list[ProviderRoute]:
        """Call computeRoutes and return the parsed routes (possibly empty).

        Raises:
            InvalidApiKeyError: HTTP 401/403, never retried
            QuotaExceededError: HTTP 429, never retried
            MalformedResponseError: a 2xx body that is not a routes object, never retried
            RoutesTimeoutError: the request timed out on every attempt
            RoutesError: any other provider or network failure
        """
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.post(self.base_url, json=request.to_payload(), headers=self._headers())
                    self._raise_for_status(response)
                    return parse_routes(response.json())
                except (InvalidApiKeyError, QuotaExceededError, MalformedResponseError):
                    raise
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"Routes request timed out after {attempt} attempts: {e}")
                        raise RoutesTimeoutError(f"Routing provider timed out after {self.timeout}s.") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Routes request timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.HTTPError, RoutesError, ValueError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        if isinstance(e, RoutesError):
                            raise
                        raise RoutesError(f"Failed to call routing provider at {self.base_url}: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Routes request failed, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
        finally:
            client.close()


def straight_line_route(
    waypoints: list[GeoPoint],
    average_speed_kmh: float | None = None,
) -> ProviderRoute:
    """Build a haversine estimate through the waypoints, used when the provider is unavailable."""
    speed = average_speed_kmh or settings.fallback_average_speed_kmh
    legs = []
    for start, end in zip(waypoints, waypoints[1:]):
        leg_km = haversine_km(start.lat, start.lng, end.lat, end.lng)
        legs.append(RouteLeg(distance_meters=round(leg_km * 1000), duration_seconds=leg_km / speed * 3600))
    total_km = path_distance(waypoints)
    return ProviderRoute(
        distance_meters=round(total_km * 1000),
        duration_seconds=total_km / speed * 3600,
        encoded_polyline=encode(waypoints),
        legs=legs,
        toll_amount=None,
        bounds=bounds(waypoints),
    )


def compute_routes_with_fallback(
    request: RoutesRequest,
    client: Optional[RoutesClient] = None,
) -> RoutesResult:
    """Compute routes, degrading to a straight-line estimate on any provider failure."""
    try:
        routes_client = client or RoutesClient()
        routes = routes_client.compute_routes(request)
        if routes:
            return RoutesResult(success=True, fallback=False, routes=routes)
        error = "Routing provider returned no route."
    except (RoutesError, ValueError) as e:
        error = str(e)

    logger.warning(f"Routing provider unavailable, using straight-line estimate: {error}")
    return RoutesResult(
        success=False,
        fallback=True,
        routes=[straight_line_route(request.waypoints())],
        error=error,
    )


def check_health(api_key: str | None = None) -> bool:
    """Check the routing provider by computing a short known route."""
    key = api_key or settings.routes_api_key
    if not key:
        return False
    try:
        client = RoutesClient(api_key=key, timeout=5.0, max_retries=0)
        request = RoutesRequest(
            origin=GeoPoint(lat=48.8566, lng=2.3522),
            destination=GeoPoint(lat=48.8606, lng=2.3376),
        )
        return bool(client.compute_routes(request))
    except (RoutesError, ValueError):
        return False
