"""
MoMo wallet gateway: captureWallet orders, status queries and IPN checks.

Every request and notification is signed with HMAC-SHA256 over a canonical
``key=value&...`` string (keys in alphabetical order, accessKey included).
"""

import hashlib
import hmac
import logging
import uuid

import httpx

from bizfinder_api.config import settings
from bizfinder_api.services.errors import GatewayError

logger = logging.getLogger(__name__)

REQUEST_TYPE = "captureWallet"

RESULT_SUCCESS = 0
# Initiated / processing: the user has not finished in the MoMo app yet
PENDING_RESULT_CODES = {1000, 7000, 7002}

IPN_SIGNATURE_FIELDS = (
    "amount", "extraData", "message", "orderId", "orderInfo", "orderType",
    "partnerCode", "payType", "requestId", "responseTime", "resultCode", "transId",
)


def sign(fields: dict) -> str:
    """HMAC-SHA256 over ``accessKey`` + ``fields`` in alphabetical key order."""
    payload = {"accessKey": settings.MOMO_ACCESS_KEY, **fields}
    raw = "&".join(f"{k}={payload[k]}" for k in sorted(payload))
    return hmac.new(settings.MOMO_SECRET_KEY.encode(), raw.encode(), hashlib.sha256).hexdigest()


def status_from_result_code(result_code: int) -> str:
    if result_code == RESULT_SUCCESS:
        return "success"
    if result_code in PENDING_RESULT_CODES:
        return "pending"
    return "failed"


async def _post(path: str, body: dict) -> dict:
    try:
        async with httpx.AsyncClient(timeout=30.0) as client:
            resp = await client.post(f"{settings.MOMO_ENDPOINT}{path}", json=body)
            return resp.json()
    except (httpx.HTTPError, ValueError) as e:
        raise GatewayError(f"MoMo request failed: {e}") from e


async def create_payment(order_id: str, amount: int, order_info: str, extra_data: str = "") -> dict:
    """
    Create a MoMo order.

    Returns MoMo's response (``resultCode``, ``message``, ``payUrl`` …).
    """
    fields = {
        "amount": amount,
        "extraData": extra_data,
        "ipnUrl": f"{settings.public_base_url}/api/payment/momo/ipn",
        "orderId": order_id,
        "orderInfo": order_info,
        "partnerCode": settings.MOMO_PARTNER_CODE,
        "redirectUrl": f"{settings.public_base_url}/api/payment/momo/return",
        "requestId": uuid.uuid4().hex,
        "requestType": REQUEST_TYPE,
    }
    body = {**fields, "lang": "vi", "signature": sign(fields)}
    data = await _post("/create", body)
    logger.info(
        "MoMo create: order=%s resultCode=%s message=%s",
        order_id, data.get("resultCode"), data.get("message"),
    )
    return data


async def query_status(order_id: str) -> dict:
    """Ask MoMo for the current state of ``order_id``."""
    fields = {
        "orderId": order_id,
        "partnerCode": settings.MOMO_PARTNER_CODE,
        "requestId": uuid.uuid4().hex,
    }
    return await _post("/query", {**fields, "lang": "vi", "signature": sign(fields)})


def verify_ipn(payload: dict) -> bool:
    """Check the signature MoMo attached to an IPN body."""
    try:
        fields = {k: payload[k] for k in IPN_SIGNATURE_FIELDS}
    except KeyError:
        return False
    return hmac.compare_digest(sign(fields), str(payload.get("signature", "")))
