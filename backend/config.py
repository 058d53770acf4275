import os
from dotenv import load_dotenv

load_dotenv()

# --- Upstream providers ---
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY", "")
GOOGLE_ROUTES_URL = "https://routes.googleapis.com/directions/v2:computeRoutes"
GOOGLE_ROUTES_FIELD_MASK = ",".join([
    "routes.duration",
    "routes.distanceMeters",
    "routes.polyline",
    "routes.legs",
    "routes.description",
    "routes.warnings",
])

# "google" (Routes API) or "osrm"
ROUTE_PROVIDER = os.getenv("ROUTE_PROVIDER", "google").lower()
OSRM_BASE_URL = os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org")

ORS_API_KEY = os.getenv("ORS_API_KEY", "")
ISOCHRONE_URL = os.getenv("ISOCHRONE_URL", "https://api.openrouteservice.org/v2/isochrones")

OVERPASS_URL = os.getenv("OVERPASS_URL", "https://overpass-api.de/api/interpreter")

NOMINATIM_URL = os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org")
NOMINATIM_USER_AGENT = os.getenv("NOMINATIM_USER_AGENT", "fair-midpoint/1.0")
GEOCODE_MIN_INTERVAL_S = float(os.getenv("GEOCODE_MIN_INTERVAL_S", "1.0"))  # Nominatim usage policy
GEOCODE_MAX_RESULTS = 5

HTTP_TIMEOUT_S = 15.0

# --- Turso Database (route cache) ---
TURSO_DATABASE_URL = os.getenv("TURSO_DATABASE_URL", "")
TURSO_AUTH_TOKEN = os.getenv("TURSO_AUTH_TOKEN", "")
DB_PATH = os.getenv("DB_PATH", "routes.db")

CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:8000,http://localhost:3000").split(",")

# --- Route cache ---
ROUTE_CACHE_TTL_HOURS = 4
CACHE_KEY_DECIMALS = 4     # ~11 m grid

# --- Fairness zone ---
DEFAULT_ZONE_MINUTES = 10
ZONE_CIRCLE_POINTS = 64
MILES_PER_DEGREE_LAT = 69.0

# Average speed per travel mode, miles per minute
SPEED_MILES_PER_MINUTE: dict[str, float] = {
    "DRIVE": 0.75,     # ~45 mph
    "BICYCLE": 0.2,    # ~12 mph
    "WALK": 0.05,      # ~3 mph
}

ORS_PROFILES: dict[str, str] = {
    "DRIVE": "driving-car",
    "BICYCLE": "cycling-regular",
    "WALK": "foot-walking",
}

OSRM_PROFILES: dict[str, str] = {
    "DRIVE": "driving",
    "BICYCLE": "cycling",
    "WALK": "foot",
}

# --- POI search ---
POI_SEARCH_RADIUS_M = 8000
POI_MAX_RADIUS_M = 50000
POI_DEDUP_DECIMALS = 3     # ~111 m
DEFAULT_POI_CATEGORIES = ["restaurant", "cafe"]

# Category → ordered OSM (tag key, tag value) pairs
POI_CATEGORY_TAGS: dict[str, list[tuple[str, str]]] = {
    "restaurant": [("amenity", "restaurant"), ("amenity", "fast_food")],
    "cafe":       [("amenity", "cafe"), ("shop", "coffee")],
    "park":       [("leisure", "park"), ("boundary", "national_park")],
    "activity":   [("tourism", "museum"), ("tourism", "attraction"), ("leisure", "amusement_arcade")],
    "fuel":       [("amenity", "fuel")],
    "hotel":      [("tourism", "hotel"), ("tourism", "motel")],
    "kids":       [("leisure", "playground"), ("tourism", "theme_park")],
}

POI_CATEGORY_LABELS: dict[str, str] = {
    "restaurant": "Restaurants & Food",
    "cafe": "Coffee & Cafes",
    "park": "Parks & Outdoors",
    "activity": "Activities & Entertainment",
    "fuel": "Gas Stations",
    "hotel": "Hotels & Lodging",
    "kids": "Kid-Friendly",
}
