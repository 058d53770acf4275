"""FastAPI application for fair midpoint routing, fairness zones and POI search."""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import config
import db
from errors import InvalidRequestError, RouteProviderError
from geo import format_short_distance
from geocoding import Geocoder, RateLimiter
from geofence import filter_inside
from isochrone import FairnessZone, FairnessZoneGenerator
from models import (
    GeocodeResult,
    LatLon,
    POIModel,
    POISearchRequest,
    POISearchResponse,
    RouteRequest,
    RouteResult,
    ZoneRequest,
    ZoneResponse,
)
from poi import POI, POIClassifier
from route_cache import RouteCache
from routing import RouteService

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db.init_db()
    logger.info("Database initialized")
    client = httpx.AsyncClient(timeout=config.HTTP_TIMEOUT_S)
    app.state.route_cache = RouteCache()
    app.state.route_service = RouteService(client, app.state.route_cache)
    app.state.zone_generator = FairnessZoneGenerator(client)
    app.state.poi_classifier = POIClassifier(client)
    app.state.geocoder = Geocoder(client, RateLimiter())
    logger.info("Route provider: %s", config.ROUTE_PROVIDER)
    yield
    await client.aclose()


app = FastAPI(title="Fair Midpoint", version="1.0.0", lifespan=lifespan)

# CORS for the frontend origin(s)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Errors ----------

@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())})


@app.exception_handler(RouteProviderError)
async def route_provider_handler(request: Request, exc: RouteProviderError):
    logger.error("Route provider error: %s", exc)
    return JSONResponse(status_code=502, content={"error": str(exc)})


# ---------- Dependencies ----------

def get_route_service(request: Request) -> RouteService:
    return request.app.state.route_service


def get_route_cache(request: Request) -> RouteCache:
    return request.app.state.route_cache


def get_zone_generator(request: Request) -> FairnessZoneGenerator:
    return request.app.state.zone_generator


def get_poi_classifier(request: Request) -> POIClassifier:
    return request.app.state.poi_classifier


def get_geocoder(request: Request) -> Geocoder:
    return request.app.state.geocoder


def _zone_response(zone: FairnessZone) -> ZoneResponse:
    return ZoneResponse(
        polygon_ring=[LatLon.of(p) for p in zone.polygon_ring],
        bounding_box=list(zone.bounding_box),
        minutes=zone.minutes,
        travel_mode=zone.travel_mode,
        state=zone.state.value,
        radius_miles=zone.radius_miles,
    )


def _poi_model(p: POI) -> POIModel:
    return POIModel(
        id=p.id,
        name=p.name,
        lat=p.coordinate.lat,
        lon=p.coordinate.lon,
        category=p.category,
        category_label=config.POI_CATEGORY_LABELS.get(p.category, p.category),
        distance_meters=round(p.distance_meters, 1),
        distance_formatted=format_short_distance(p.distance_meters),
        address=p.address,
        phone=p.metadata.get("phone"),
        website=p.metadata.get("website"),
        opening_hours=p.metadata.get("opening_hours"),
    )


# ---------- Health check ----------

@app.get("/health")
async def health():
    return {"status": "ok"}


# ---------- Routes ----------

@app.post("/api/route", response_model=RouteResult)
async def compute_route(body: RouteRequest, service: RouteService = Depends(get_route_service)):
    return await service.compute_route(
        body.origin.to_coordinate(),
        body.destination.to_coordinate(),
        body.travel_mode,
        [w.to_coordinate() for w in body.waypoints],
    )


@app.get("/api/route")
async def route_get():
    return JSONResponse(status_code=405, content={"error": "Use POST method"})


@app.get("/api/cache/stats")
async def cache_stats(cache: RouteCache = Depends(get_route_cache)):
    return cache.stats()


# ---------- Fairness zone ----------

@app.post("/api/zone", response_model=ZoneResponse)
async def fairness_zone(body: ZoneRequest, generator: FairnessZoneGenerator = Depends(get_zone_generator)):
    zone = await generator.generate(body.center.to_coordinate(), body.minutes, body.travel_mode)
    return _zone_response(zone)


# ---------- POIs ----------

@app.post("/api/pois", response_model=POISearchResponse)
async def search_pois(body: POISearchRequest, classifier: POIClassifier = Depends(get_poi_classifier)):
    pois = await classifier.search(body.center.to_coordinate(), body.categories, body.radius_meters)
    if body.zone is not None:
        before = len(pois)
        pois = filter_inside(pois, body.zone)
        logger.info("Zone filter kept %d/%d POIs", len(pois), before)
    return POISearchResponse(count=len(pois), pois=[_poi_model(p) for p in pois])


# ---------- Geocoding ----------

@app.get("/api/geocode", response_model=list[GeocodeResult])
async def geocode(q: str = Query(..., description="Free-form address or place"), geocoder: Geocoder = Depends(get_geocoder)):
    return await geocoder.search(q)


@app.get("/api/reverse-geocode")
async def reverse_geocode(
    lat: float = Query(..., ge=-90, le=90, description="Latitude"),
    lon: float = Query(..., ge=-180, le=180, description="Longitude"),
    geocoder: Geocoder = Depends(get_geocoder),
):
    return {"label": await geocoder.reverse({"lat": lat, "lon": lon})}


# ---------- Config (read-only) ----------

@app.get("/config")
async def get_config():
    return {
        "route_provider": config.ROUTE_PROVIDER,
        "route_cache_ttl_hours": config.ROUTE_CACHE_TTL_HOURS,
        "cache_key_decimals": config.CACHE_KEY_DECIMALS,
        "travel_modes": list(config.SPEED_MILES_PER_MINUTE),
        "speed_miles_per_minute": config.SPEED_MILES_PER_MINUTE,
        "zone_circle_points": config.ZONE_CIRCLE_POINTS,
        "default_zone_minutes": config.DEFAULT_ZONE_MINUTES,
        "poi_categories": config.POI_CATEGORY_LABELS,
        "poi_search_radius_m": config.POI_SEARCH_RADIUS_M,
    }
