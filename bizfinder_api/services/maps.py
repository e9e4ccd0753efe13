"""
Geocoding for business addresses, with Redis caching.

Lookup order:
  1. Redis cache (30-day TTL)
  2. Geoapify (when GEOAPIFY_API_KEY is set)
  3. Nominatim (OpenStreetMap), keyless fallback
"""

import hashlib
import logging
import math
import httpx
import redis.asyncio as aioredis

from bizfinder_api.config import settings

logger = logging.getLogger(__name__)

_redis: aioredis.Redis | None = None
_http: httpx.AsyncClient | None = None

GEOAPIFY_GEOCODE_URL = "https://api.geoapify.com/v1/geocode/search"
NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"

GEOCODE_CACHE_TTL = 30 * 24 * 3600   # 30 days

# Used when an address cannot be resolved (Ho Chi Minh City centre)
DEFAULT_LOCATION = {"latitude": 10.762622, "longitude": 106.660172}


async def _get_redis() -> aioredis.Redis:
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis


async def _get_http() -> httpx.AsyncClient:
    global _http
    if _http is None:
        _http = httpx.AsyncClient(timeout=10.0)
    return _http


def _address_hash(address: str) -> str:
    """Normalize and hash an address for cache key."""
    normalized = " ".join(address.strip().lower().split())
    return hashlib.sha256(normalized.encode()).hexdigest()[:16]


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Straight-line distance in km."""
    R = 6371  # Earth radius in km
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(R * c, 2)


async def _geoapify(address: str) -> dict | None:
    http = await _get_http()
    resp = await http.get(
        GEOAPIFY_GEOCODE_URL,
        params={"text": address, "apiKey": settings.GEOAPIFY_API_KEY},
    )
    features = resp.json().get("features") or []
    if not features:
        return None
    props = features[0].get("properties", {}) or {}
    if props.get("lat") is None or props.get("lon") is None:
        return None
    return {"latitude": float(props["lat"]), "longitude": float(props["lon"])}


async def _nominatim(address: str) -> dict | None:
    http = await _get_http()
    resp = await http.get(
        NOMINATIM_URL,
        params={"q": address, "format": "json", "limit": 1},
        headers={"User-Agent": "BizFinder/1.0"},
    )
    hits = resp.json()
    if not hits:
        return None
    return {"latitude": float(hits[0]["lat"]), "longitude": float(hits[0]["lon"])}


async def geocode(address: str) -> dict | None:
    """
    Resolve an address to ``{"latitude", "longitude"}``.

    Returns None when no provider knows the address. Cache and provider
    failures are logged and treated as misses.
    """
    cache_key = f"geo:{_address_hash(address)}"

    try:
        r = await _get_redis()
        cached = await r.hgetall(cache_key)
        if cached and "latitude" in cached:
            return {"latitude": float(cached["latitude"]), "longitude": float(cached["longitude"])}
    except aioredis.RedisError as e:
        logger.warning("Geocode cache unavailable: %s", e)
        r = None

    result = None
    if settings.GEOAPIFY_API_KEY:
        try:
            result = await _geoapify(address)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Geoapify geocode failed for %r: %s", address, e)

    if result is None:
        try:
            result = await _nominatim(address)
        except (httpx.HTTPError, ValueError, KeyError) as e:
            logger.warning("Nominatim geocode failed for %r: %s", address, e)

    if result and r is not None:
        try:
            await r.hset(cache_key, mapping={k: str(v) for k, v in result.items()})
            await r.expire(cache_key, GEOCODE_CACHE_TTL)
        except aioredis.RedisError as e:
            logger.warning("Geocode cache write failed: %s", e)

    return result
