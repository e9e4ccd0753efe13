"""Connectivity probes and the retry helper used around the identity handshake."""

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass

import httpx
from tenacity import (
    AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt, wait_exponential,
)

from bizfinder_app.config import settings

logger = logging.getLogger(__name__)

CONNECTIVITY_URL = "https://www.google.com"
BASIC_TIMEOUT = 3.0
SERVICE_TIMEOUT = 5.0


@dataclass
class NetworkInfo:
    is_connected: bool = False
    clerk_api_reachable: bool = False
    backend_reachable: bool = False


def clerk_frontend_api(publishable_key: str) -> str | None:
    """
    Frontend API host encoded in a Clerk publishable key
    (``pk_test_<base64("host$")>``).
    """
    encoded = publishable_key.split("_", 2)[-1]
    try:
        decoded = base64.b64decode(encoded + "=" * (-len(encoded) % 4)).decode()
    except (binascii.Error, UnicodeDecodeError):
        return None
    host = decoded.rstrip("$")
    return f"https://{host}" if host else None


async def _probe(http: httpx.AsyncClient, method: str, url: str, timeout: float) -> bool:
    try:
        resp = await http.request(method, url, timeout=timeout)
    except httpx.HTTPError as e:
        logger.warning("Probe %s %s failed: %s", method, url, e)
        return False
    return resp.is_success


async def check_network_connectivity(http: httpx.AsyncClient | None = None) -> NetworkInfo:
    """Probe general connectivity, then the identity provider and our backend."""
    info = NetworkInfo()
    own_client = http is None
    http = http or httpx.AsyncClient()
    try:
        info.is_connected = await _probe(http, "HEAD", CONNECTIVITY_URL, BASIC_TIMEOUT)
        if info.is_connected:
            clerk_api = clerk_frontend_api(settings.CLERK_PUBLISHABLE_KEY)
            if clerk_api:
                info.clerk_api_reachable = await _probe(
                    http, "HEAD", f"{clerk_api}/v1/client", SERVICE_TIMEOUT,
                )
            # /health only answers GET
            info.backend_reachable = await _probe(
                http, "GET", f"{settings.backend_url}/health", SERVICE_TIMEOUT,
            )
    finally:
        if own_client:
            await http.aclose()
    return info


async def debug_network_issues(http: httpx.AsyncClient | None = None) -> list[str]:
    """Human-readable suggestions for the connectivity problems found."""
    info = await check_network_connectivity(http)
    if not info.is_connected:
        return ["No internet connection detected. Please check your network settings."]

    suggestions = []
    if not info.clerk_api_reachable:
        suggestions += [
            "Clerk API is not reachable. This could be due to:",
            "- Custom domain configuration issues",
            "- DNS resolution problems",
            "- Firewall blocking the request",
            "- Clerk service temporarily unavailable",
        ]
    if not info.backend_reachable:
        suggestions.append("Backend API is not reachable. Check if your server is running.")
    if not suggestions:
        suggestions.append("Network connectivity appears normal. Issue might be temporary.")
    return suggestions


async def retry_with_backoff(
    fn,
    max_retries: int = 3,
    base_delay: float = 1.0,
    *,
    max_delay: float | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep=asyncio.sleep,
):
    """
    Await ``fn()`` up to ``max_retries`` times, waiting base_delay, 2x, 4x …
    between attempts, never more than ``max_delay``. The last error is
    re-raised.
    """
    wait = wait_exponential(multiplier=base_delay)
    if max_delay is not None:
        wait = wait_exponential(multiplier=base_delay, max=max_delay)
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries),
        wait=wait,
        retry=retry_if_exception_type(retry_on),
        before_sleep=before_sleep_log(logger, logging.INFO),
        sleep=sleep,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await fn()
