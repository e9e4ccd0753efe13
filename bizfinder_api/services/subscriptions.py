"""
Server-side role transitions driven by verified gateway callbacks.

  success → role=owner, subscription={id, startDate, status, paymentMethod, orderId}
  failure → role=client, subscription=None   (only for the failing order)

Both are safe to repeat: the client may already have written the same
subscription after its own outcome check.
"""

import logging
from datetime import datetime, timezone

from bizfinder_api.services import clerk

logger = logging.getLogger(__name__)


def build_subscription(plan_id: int, payment_method: str, order_id: str) -> dict:
    return {
        "id": plan_id,
        "startDate": datetime.now(timezone.utc).isoformat(),
        "status": "active",
        "paymentMethod": payment_method,
        "orderId": order_id,
    }


async def grant_subscription(
    user_id: str, plan_id: int, payment_method: str, order_id: str,
) -> bool:
    """
    Make ``user_id`` an owner on ``plan_id``.

    Returns False without writing when the user already holds this order or a
    higher tier.
    """
    user = await clerk.get_user(user_id)
    current = user.get("subscription") or {}
    if current.get("orderId") == order_id:
        logger.info("Subscription already granted: user=%s order=%s", user_id, order_id)
        return False
    current_tier = current.get("id")
    if isinstance(current_tier, int) and current_tier >= plan_id:
        logger.warning(
            "Refusing to lower tier: user=%s current=%s requested=%s order=%s",
            user_id, current_tier, plan_id, order_id,
        )
        return False

    await clerk.update_unsafe_metadata(user_id, {
        "role": "owner",
        "subscription": build_subscription(plan_id, payment_method, order_id),
    })
    logger.info("Subscription granted: user=%s plan=%s order=%s", user_id, plan_id, order_id)
    return True


async def revoke_subscription(user_id: str, order_id: str) -> bool:
    """Roll ``user_id`` back to client if their subscription came from ``order_id``."""
    user = await clerk.get_user(user_id)
    if user.get("role") == "admin":
        return False
    current = user.get("subscription") or {}
    if current and current.get("orderId") != order_id:
        logger.info(
            "Not revoking: user=%s holds order %s, failed order %s",
            user_id, current.get("orderId"), order_id,
        )
        return False

    await clerk.update_unsafe_metadata(user_id, {"role": "client", "subscription": None})
    logger.info("Subscription revoked: user=%s order=%s", user_id, order_id)
    return True


async def settle_payment(payment) -> bool:
    """Apply the role transition for a payment that reached a final status."""
    if payment.status == "success":
        return await grant_subscription(
            payment.user_id, payment.subscription_plan_id, payment.gateway, payment.order_id,
        )
    if payment.status == "failed":
        return await revoke_subscription(payment.user_id, payment.order_id)
    return False
