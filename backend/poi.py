"""POI search over OpenStreetMap (Overpass API).

One Overpass query per search covers every requested category. Elements are
then filtered (named only), classified, deduplicated by name + ~111 m grid,
and ranked by haversine distance from the search center.

Classification picks the first *requested* category whose tags match, so the
caller's category order decides ties, not the order of POI_CATEGORY_TAGS.
"""

import logging
from dataclasses import dataclass, field

import httpx

import config
from geo import Coordinate, distance_between, to_coordinate

logger = logging.getLogger(__name__)


@dataclass
class POI:
    id: str
    name: str
    coordinate: Coordinate
    category: str
    distance_meters: float
    address: str | None = None
    metadata: dict = field(default_factory=dict)


def requested_categories(categories: list[str]) -> list[str]:
    """Known category keys in request order, duplicates dropped."""
    seen = []
    for key in categories or []:
        if key not in config.POI_CATEGORY_TAGS:
            logger.debug("Ignoring unknown POI category %r", key)
        elif key not in seen:
            seen.append(key)
    return seen


def build_overpass_query(center: Coordinate, categories: list[str], radius_m: float) -> str:
    radius = int(min(radius_m, config.POI_MAX_RADIUS_M))
    around = f"(around:{radius},{center.lat},{center.lon})"
    clauses = []
    for key in categories:
        for tag, value in config.POI_CATEGORY_TAGS[key]:
            clauses.append(f'  nwr["{tag}"="{value}"]{around};')
    return "[out:json][timeout:25];\n(\n" + "\n".join(clauses) + "\n);\nout center tags;"


def classify(tags: dict, categories: list[str]) -> str | None:
    for key in categories:
        for tag, value in config.POI_CATEGORY_TAGS.get(key, []):
            if tags.get(tag) == value:
                return key
    return None


def element_coordinate(element: dict) -> Coordinate | None:
    """Node position, or the centroid Overpass adds for ways/relations with `out center`."""
    if "lat" in element and "lon" in element:
        return Coordinate(float(element["lat"]), float(element["lon"]))
    center = element.get("center")
    if center and "lat" in center and "lon" in center:
        return Coordinate(float(center["lat"]), float(center["lon"]))
    return None


def format_address(tags: dict) -> str | None:
    street = " ".join(p for p in (tags.get("addr:housenumber"), tags.get("addr:street")) if p)
    parts = [p for p in (street, tags.get("addr:city"), tags.get("addr:state")) if p]
    return ", ".join(parts) or None


def _dedup_key(name: str, c: Coordinate) -> str:
    d = config.POI_DEDUP_DECIMALS
    return f"{name}|{c.lat:.{d}f},{c.lon:.{d}f}"


def rank_elements(elements: list[dict], categories: list[str], center: Coordinate) -> list[POI]:
    pois: list[POI] = []
    seen: set[str] = set()
    for el in elements:
        if not isinstance(el, dict):
            continue
        tags = el.get("tags") or {}
        if not isinstance(tags, dict):
            continue
        name = (tags.get("name") or "").strip()
        if not name:
            continue
        coord = element_coordinate(el)
        if coord is None:
            continue
        category = classify(tags, categories)
        if category is None:
            continue
        key = _dedup_key(name, coord)
        if key in seen:
            continue
        seen.add(key)
        pois.append(POI(
            id=f"{el.get('type', 'node')}/{el.get('id')}",
            name=name,
            coordinate=coord,
            category=category,
            distance_meters=distance_between(center, coord),
            address=format_address(tags),
            metadata={
                "phone": tags.get("phone") or tags.get("contact:phone"),
                "website": tags.get("website") or tags.get("contact:website"),
                "opening_hours": tags.get("opening_hours"),
            },
        ))
    pois.sort(key=lambda p: p.distance_meters)
    return pois


class POIClassifier:
    def __init__(self, client: httpx.AsyncClient, overpass_url: str = config.OVERPASS_URL):
        self.client = client
        self.overpass_url = overpass_url

    async def fetch_elements(self, center: Coordinate, categories: list[str], radius_m: float) -> list[dict]:
        query = build_overpass_query(center, categories, radius_m)
        try:
            resp = await self.client.post(self.overpass_url, data={"data": query})
        except httpx.HTTPError as e:
            logger.error("Overpass request failed: %s", e)
            return []
        if resp.status_code != 200:
            logger.error("Overpass HTTP %d", resp.status_code)
            return []
        try:
            data = resp.json()
        except ValueError:
            logger.error("Overpass returned invalid JSON")
            return []
        elements = data.get("elements") if isinstance(data, dict) else None
        if not isinstance(elements, list):
            logger.error("Overpass response has no elements list")
            return []
        return elements

    async def search(
        self,
        center,
        categories: list[str] | None = None,
        radius_m: float = config.POI_SEARCH_RADIUS_M,
    ) -> list[POI]:
        center = to_coordinate(center, "center")
        cats = requested_categories(config.DEFAULT_POI_CATEGORIES if categories is None else categories)
        if not cats:
            return []
        elements = await self.fetch_elements(center, cats, radius_m)
        pois = rank_elements(elements, cats, center)
        logger.info("POI search %s: %d elements -> %d POIs", ",".join(cats), len(elements), len(pois))
        return pois
