"""CareLens — Nearby Facilities

Hospital and clinic lookup via OpenStreetMap Overpass (no API key).
Nodes tagged amenity/healthcare = hospital|clinic around a point,
mapped into flat facility records sorted by Haversine distance.
"""
import math
import httpx
import structlog

from carelens.core.config import GeoConfig
from carelens.core.errors import ProviderError

logger = structlog.get_logger()

EARTH_RADIUS_M = 6_371_000


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def clamp_radius(radius, config: GeoConfig) -> int:
    """Default when missing/invalid/zero, capped at max_radius."""
    try:
        value = int(radius)
    except (TypeError, ValueError):
        return config.default_radius
    if value <= 0:
        return config.default_radius
    return min(value, config.max_radius)


def build_query(lat: float, lng: float, radius: int) -> str:
    around = f"around:{radius},{lat},{lng}"
    return (
        "[out:json];\n"
        "(\n"
        f"  node({around})[amenity=hospital];\n"
        f"  node({around})[amenity=clinic];\n"
        f"  node({around})[healthcare=hospital];\n"
        f"  node({around})[healthcare=clinic];\n"
        ");\n"
        "out body;\n"
        ">;\n"
        "out skel qt;"
    )


def to_facility(element: dict, index: int, origin: tuple[float, float]) -> dict:
    tags = element.get("tags") or {}
    address_parts = [tags.get(k) for k in ("addr:housenumber", "addr:street", "addr:city", "addr:state")]
    address = ", ".join(p for p in address_parts if p)
    lat, lng = element.get("lat"), element.get("lon")
    facility = {
        "id": str(element.get("id") or index),
        "name": tags.get("name") or "Unknown Facility",
        "address": address or tags.get("addr:full") or "Address not available",
        "phone": tags.get("phone") or tags.get("contact:phone") or "",
        "lat": lat,
        "lng": lng,
        "distanceMeters": None,
    }
    if lat is not None and lng is not None:
        facility["distanceMeters"] = round(haversine_m(origin[0], origin[1], lat, lng))
    return facility


def nearby_facilities(http: httpx.Client, config: GeoConfig, lat: float, lng: float, radius: int) -> list[dict]:
    """Query Overpass. Raises ProviderError on transport failure or non-2xx."""
    query = build_query(lat, lng, radius)
    try:
        resp = http.post(config.overpass_url, data={"data": query})
    except httpx.HTTPError as e:
        logger.error("overpass_fail", error=str(e))
        raise ProviderError("overpass", str(e)) from e
    if not resp.is_success:
        logger.error("overpass_fail", status=resp.status_code)
        raise ProviderError("overpass", resp.text, resp.status_code)

    try:
        data = resp.json()
    except ValueError as e:
        raise ProviderError("overpass", "invalid JSON", resp.status_code) from e
    elements = data.get("elements") if isinstance(data, dict) else None
    if not isinstance(elements, list):
        elements = []

    items = [
        to_facility(e, idx, (lat, lng))
        for idx, e in enumerate(elements)
        if isinstance(e, dict) and e.get("type") == "node"
    ]
    items.sort(key=lambda f: f["distanceMeters"] if f["distanceMeters"] is not None else float("inf"))
    logger.info("overpass_ok", count=len(items), radius=radius)
    return items
