"""
Identity provider client: Clerk Backend API.

The application never stores users itself. Role and subscription live in
each user's ``unsafe_metadata`` bag, which Clerk deep-merges on update
(a ``None`` value removes the key).
"""

import logging
from datetime import datetime, timezone

import httpx

from bizfinder_api.config import settings
from bizfinder_api.services.errors import IdentityError

logger = logging.getLogger(__name__)

_http: httpx.AsyncClient | None = None


async def _get_http() -> httpx.AsyncClient:
    global _http
    if _http is None:
        _http = httpx.AsyncClient(
            base_url=settings.CLERK_API_URL,
            headers={"Authorization": f"Bearer {settings.CLERK_SECRET_KEY}"},
            timeout=10.0,
        )
    return _http


async def _request(method: str, path: str, **kwargs) -> dict | list:
    http = await _get_http()
    try:
        resp = await http.request(method, path, **kwargs)
    except httpx.HTTPError as e:
        raise IdentityError(f"Identity provider unreachable: {e}") from e
    if resp.status_code == 404:
        raise IdentityError("User not found", status_code=404)
    if resp.status_code >= 400:
        raise IdentityError(
            f"Identity provider error {resp.status_code}: {resp.text}",
            status_code=resp.status_code,
        )
    return resp.json()


def summarize_user(raw: dict) -> dict:
    """Flatten a Clerk user object into the shape the app consumes."""
    metadata = raw.get("unsafe_metadata") or {}
    primary_id = raw.get("primary_email_address_id")
    email = None
    for entry in raw.get("email_addresses") or []:
        if entry.get("id") == primary_id or email is None:
            email = entry.get("email_address")
    name = " ".join(p for p in (raw.get("first_name"), raw.get("last_name")) if p)
    role = metadata.get("role")
    created_ms = raw.get("created_at")
    return {
        "id": raw["id"],
        "email": email,
        "name": name or raw.get("username") or "",
        "role": role if role in ("client", "owner", "admin") else "client",
        "subscription": metadata.get("subscription"),
        "unsafe_metadata": metadata,
        "created_at": (
            datetime.fromtimestamp(created_ms / 1000, tz=timezone.utc) if created_ms else None
        ),
    }


async def list_users(limit: int = 100, offset: int = 0) -> list[dict]:
    data = await _request(
        "GET", "/users",
        params={"limit": limit, "offset": offset, "order_by": "-created_at"},
    )
    return [summarize_user(u) for u in data]


async def count_users() -> int:
    data = await _request("GET", "/users/count")
    return int(data.get("total_count", 0))


async def get_user(user_id: str) -> dict:
    return summarize_user(await _request("GET", f"/users/{user_id}"))


async def update_unsafe_metadata(user_id: str, metadata: dict) -> dict:
    """Merge ``metadata`` into the user's unsafe metadata and return the user."""
    raw = await _request("PATCH", f"/users/{user_id}/metadata", json={"unsafe_metadata": metadata})
    logger.info("Identity metadata updated: user=%s keys=%s", user_id, sorted(metadata))
    return summarize_user(raw)


async def update_profile(
    user_id: str,
    *,
    username: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
) -> dict:
    payload = {
        k: v for k, v in
        {"username": username, "first_name": first_name, "last_name": last_name}.items()
        if v is not None
    }
    if not payload:
        return await get_user(user_id)
    return summarize_user(await _request("PATCH", f"/users/{user_id}", json=payload))
