"""Route computation: upstream route providers + time-based midpoint + caching.

Each provider's response is wrapped in its own payload type and mapped to the
canonical RouteResult by an explicit adapter. Provider failures are fatal for
the request (RouteProviderError); each upstream call is attempted once.
"""

import logging
from dataclasses import dataclass, field

import httpx

import config
import polyline
from errors import RouteProviderError
from geo import Coordinate, TravelMode, format_distance, format_duration, parse_travel_mode, to_coordinate
from midpoint import locate_midpoint
from models import LatLon, MidpointModel, RouteResult, RouteSummary
from route_cache import RouteCache, generate_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteQuery:
    origin: Coordinate
    destination: Coordinate
    mode: TravelMode = TravelMode.DRIVE
    waypoints: tuple[Coordinate, ...] = ()

    @property
    def points(self) -> list[Coordinate]:
        return [self.origin, *self.waypoints, self.destination]


@dataclass(frozen=True)
class GoogleRoutesPayload:
    """Raw Google Routes API (directions/v2:computeRoutes) response body."""
    body: dict = field(default_factory=dict)


@dataclass(frozen=True)
class OsrmPayload:
    """Raw OSRM /route/v1 response body."""
    body: dict = field(default_factory=dict)


# ---------- Adapters ----------

def _seconds(value) -> float:
    """Routes API durations are strings like '1234s'."""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    return float(str(value).rstrip("s") or 0)


def _google_latlng(location: dict) -> Coordinate:
    ll = location["latLng"]
    return Coordinate(ll["latitude"], ll["longitude"])


def _scale(durations: list[float], total: float) -> list[float]:
    """Rescale step durations so they sum to the route total."""
    s = sum(durations)
    if s <= 0 or total <= 0:
        return durations
    return [d * total / s for d in durations]


def _summary(index: int, label: str, coords: list[Coordinate], durations: list[float] | None,
             total_duration: float, total_distance: float, encoded: str | None,
             warnings: list[str]) -> RouteSummary:
    mid = locate_midpoint(coords, total_duration, durations)
    return RouteSummary(
        index=index,
        summary=label or f"Route {index + 1}",
        total_duration=total_duration,
        total_distance=total_distance,
        midpoint=MidpointModel(
            lat=mid.coordinate.lat,
            lon=mid.coordinate.lon,
            time_from_start=mid.time_from_start,
            segment_index=mid.segment_index,
        ),
        polyline=encoded or polyline.encode(coords),
        warnings=warnings,
    )


def _adapt_google(payload: GoogleRoutesPayload, query: RouteQuery) -> list[RouteSummary]:
    routes = payload.body.get("routes") or []
    summaries = []
    for index, route in enumerate(routes):
        total_duration = _seconds(route.get("duration"))
        total_distance = float(route.get("distanceMeters") or 0)
        encoded = (route.get("polyline") or {}).get("encodedPolyline")

        coords: list[Coordinate] = []
        durations: list[float] = []
        for leg in route.get("legs") or []:
            for step in leg.get("steps") or []:
                if not coords:
                    coords.append(_google_latlng(step["startLocation"]))
                coords.append(_google_latlng(step["endLocation"]))
                durations.append(_seconds(step.get("staticDuration")))

        if durations:
            seg_durations = _scale(durations, total_duration) if sum(durations) > 0 else None
        else:
            coords = polyline.decode(encoded) or query.points
            seg_durations = None

        summaries.append(_summary(
            index, route.get("description", ""), coords, seg_durations,
            total_duration, total_distance, encoded, list(route.get("warnings") or []),
        ))
    return summaries


def _adapt_osrm(payload: OsrmPayload, query: RouteQuery) -> list[RouteSummary]:
    body = payload.body
    if body.get("code") not in (None, "Ok"):
        raise RouteProviderError(f"OSRM error: {body.get('code')} - {body.get('message', '')}")
    summaries = []
    for index, route in enumerate(body.get("routes") or []):
        encoded = route.get("geometry")
        coords = polyline.decode(encoded) or query.points
        legs = route.get("legs") or []
        # Per-coordinate-pair durations; length N-1 when overview=full.
        durations = [d for leg in legs for d in (leg.get("annotation") or {}).get("duration", [])]
        label = ", ".join(leg["summary"] for leg in legs if leg.get("summary"))
        summaries.append(_summary(
            index, label, coords, durations or None,
            float(route.get("duration") or 0), float(route.get("distance") or 0),
            encoded, [],
        ))
    return summaries


def adapt_route_payload(payload: GoogleRoutesPayload | OsrmPayload, query: RouteQuery) -> RouteResult:
    if isinstance(payload, GoogleRoutesPayload):
        adapter = _adapt_google
    elif isinstance(payload, OsrmPayload):
        adapter = _adapt_osrm
    else:
        raise TypeError(f"Unknown route payload: {type(payload).__name__}")
    try:
        routes = adapter(payload, query)
    except (KeyError, TypeError, ValueError) as e:
        raise RouteProviderError(f"Malformed route response: {e!r}") from e

    if not routes:
        raise RouteProviderError(
            "No route found between these locations. They may be unreachable with this travel mode."
        )

    primary = routes[0]
    return RouteResult(
        origin=LatLon.of(query.origin),
        destination=LatLon.of(query.destination),
        waypoints=[LatLon.of(w) for w in query.waypoints],
        travel_mode=query.mode,
        total_duration_seconds=primary.total_duration,
        total_distance_meters=primary.total_distance,
        midpoint=primary.midpoint,
        all_routes=routes,
        polyline=primary.polyline,
        cached=False,
    )


# ---------- Provider calls ----------

def _latlng_body(c: Coordinate) -> dict:
    return {"location": {"latLng": {"latitude": c.lat, "longitude": c.lon}}}


def _json_or_raise(resp: httpx.Response, provider: str) -> dict:
    if not resp.is_success:
        raise RouteProviderError(f"{provider} error: {resp.status_code} - {resp.text[:200]}", resp.status_code)
    try:
        return resp.json()
    except ValueError as e:
        raise RouteProviderError(f"{provider} returned invalid JSON") from e


async def fetch_google_route(client: httpx.AsyncClient, query: RouteQuery, api_key: str) -> GoogleRoutesPayload:
    if not api_key:
        raise RouteProviderError("Google Maps API key not configured")
    body = {
        "origin": _latlng_body(query.origin),
        "destination": _latlng_body(query.destination),
        "travelMode": query.mode.value,
        "computeAlternativeRoutes": not query.waypoints,
        "languageCode": "en-US",
        "units": "IMPERIAL",
    }
    if query.waypoints:
        body["intermediates"] = [_latlng_body(w) for w in query.waypoints]
    if query.mode is TravelMode.DRIVE:
        body["routingPreference"] = "TRAFFIC_AWARE"
        body["routeModifiers"] = {"avoidTolls": False, "avoidHighways": False, "avoidFerries": False}

    headers = {
        "X-Goog-Api-Key": api_key,
        "X-Goog-FieldMask": config.GOOGLE_ROUTES_FIELD_MASK,
    }
    try:
        resp = await client.post(config.GOOGLE_ROUTES_URL, json=body, headers=headers)
    except httpx.HTTPError as e:
        raise RouteProviderError(f"Routes API request failed: {e}") from e
    return GoogleRoutesPayload(_json_or_raise(resp, "Routes API"))


async def fetch_osrm_route(client: httpx.AsyncClient, query: RouteQuery, base_url: str) -> OsrmPayload:
    profile = config.OSRM_PROFILES[query.mode.value]
    coords = ";".join(f"{p.lon},{p.lat}" for p in query.points)
    url = f"{base_url.rstrip('/')}/route/v1/{profile}/{coords}"
    params = {
        "overview": "full",
        "geometries": "polyline",
        "annotations": "duration",
        "alternatives": "false" if query.waypoints else "true",
    }
    try:
        resp = await client.get(url, params=params)
    except httpx.HTTPError as e:
        raise RouteProviderError(f"OSRM request failed: {e}") from e
    return OsrmPayload(_json_or_raise(resp, "OSRM"))


class RouteService:
    """Cache-first route computation: cache → provider → midpoint → cache."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: RouteCache,
        provider: str = config.ROUTE_PROVIDER,
        api_key: str = config.GOOGLE_MAPS_API_KEY,
        osrm_base_url: str = config.OSRM_BASE_URL,
    ):
        if provider not in ("google", "osrm"):
            raise ValueError(f"Unknown route provider: {provider}")
        self.client = client
        self.cache = cache
        self.provider = provider
        self.api_key = api_key
        self.osrm_base_url = osrm_base_url

    async def fetch(self, query: RouteQuery) -> GoogleRoutesPayload | OsrmPayload:
        if self.provider == "osrm":
            return await fetch_osrm_route(self.client, query, self.osrm_base_url)
        return await fetch_google_route(self.client, query, self.api_key)

    async def compute_route(self, origin, destination, mode=TravelMode.DRIVE, waypoints=()) -> RouteResult:
        query = RouteQuery(
            origin=to_coordinate(origin, "from"),
            destination=to_coordinate(destination, "to"),
            mode=parse_travel_mode(mode),
            waypoints=tuple(to_coordinate(w, "waypoint") for w in waypoints),
        )
        key = generate_key(query.origin, query.destination, query.mode, query.waypoints)

        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        payload = await self.fetch(query)
        result = adapt_route_payload(payload, query)
        logger.info(
            "Route %s: %s, %s, %d route(s)",
            key, format_duration(result.total_duration_seconds), format_distance(result.total_distance_meters),
            len(result.all_routes),
        )
        await self.cache.put(key, result)
        return result
