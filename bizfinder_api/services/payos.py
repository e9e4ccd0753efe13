"""
PayOS checkout-link gateway: payment links, status lookup, webhook checks.

Payment-link requests are signed over
``amount=…&cancelUrl=…&description=…&orderCode=…&returnUrl=…``;
webhook data is signed over all of its keys in sorted order.
"""

import hashlib
import hmac
import logging

import httpx

from bizfinder_api.config import settings
from bizfinder_api.services.errors import GatewayError

logger = logging.getLogger(__name__)

# PayOS rejects descriptions longer than this for non-linked bank accounts
MAX_DESCRIPTION_LENGTH = 25

CODE_SUCCESS = "00"
STATUS_MAP = {
    "PAID": "success",
    "PENDING": "pending",
    "PROCESSING": "pending",
    "CANCELLED": "failed",
    "EXPIRED": "failed",
    "FAILED": "failed",
}


def _hmac(raw: str) -> str:
    return hmac.new(settings.PAYOS_CHECKSUM_KEY.encode(), raw.encode(), hashlib.sha256).hexdigest()


def sign_payment_request(
    order_code: int, amount: int, description: str, return_url: str, cancel_url: str,
) -> str:
    raw = (
        f"amount={amount}&cancelUrl={cancel_url}&description={description}"
        f"&orderCode={order_code}&returnUrl={return_url}"
    )
    return _hmac(raw)


def _stringify(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def sign_data(data: dict) -> str:
    raw = "&".join(f"{k}={_stringify(data[k])}" for k in sorted(data))
    return _hmac(raw)


def verify_webhook(data: dict, signature: str) -> bool:
    return hmac.compare_digest(sign_data(data), signature or "")


def status_from_payos(status: str | None) -> str:
    return STATUS_MAP.get((status or "").upper(), "pending")


def _headers() -> dict:
    return {"x-client-id": settings.PAYOS_CLIENT_ID, "x-api-key": settings.PAYOS_API_KEY}


async def create_payment_link(
    order_code: int, amount: int, description: str, return_url: str, cancel_url: str,
) -> dict:
    """
    Create a PayOS checkout link.

    Returns the ``data`` object (``checkoutUrl``, ``paymentLinkId`` …).
    """
    description = description[:MAX_DESCRIPTION_LENGTH]
    body = {
        "orderCode": order_code,
        "amount": amount,
        "description": description,
        "returnUrl": return_url,
        "cancelUrl": cancel_url,
        "signature": sign_payment_request(order_code, amount, description, return_url, cancel_url),
    }
    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            resp = await client.post(
                f"{settings.PAYOS_ENDPOINT}/payment-requests", json=body, headers=_headers(),
            )
            payload = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        raise GatewayError(f"PayOS request failed: {e}") from e

    if payload.get("code") != CODE_SUCCESS or not payload.get("data"):
        raise GatewayError(f"PayOS rejected order {order_code}: {payload.get('desc')}")
    logger.info("PayOS link created: orderCode=%s", order_code)
    return payload["data"]


async def get_payment(order_code: int) -> dict:
    """Fetch payment-link information (``status`` is PAID/PENDING/CANCELLED/…)."""
    try:
        async with httpx.AsyncClient(timeout=15.0) as client:
            resp = await client.get(
                f"{settings.PAYOS_ENDPOINT}/payment-requests/{order_code}", headers=_headers(),
            )
            payload = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        raise GatewayError(f"PayOS request failed: {e}") from e

    if payload.get("code") != CODE_SUCCESS or not payload.get("data"):
        raise GatewayError(f"PayOS lookup failed for {order_code}: {payload.get('desc')}")
    return payload["data"]
