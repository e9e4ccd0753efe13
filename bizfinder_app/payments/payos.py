"""PayOS checkout-link adapter."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time

from bizfinder_app.api_client import BackendClient
from bizfinder_app.config import settings
from bizfinder_app.errors import ApiError, GatewayUnavailable

from .base import FAILED, PENDING, SUCCESS, PaymentGateway, PaymentOutcome, PaymentSession, UrlOpener

logger = logging.getLogger(__name__)

DESCRIPTION = "MMA Payment"


def new_order_code() -> int:
    """Positive order code of at most 9 digits."""
    raw = f"{int(time.time() * 1000) % 1_000_000}{100000 + secrets.randbelow(900000)}"
    return int(raw[-9:]) or 1


class PayOSGateway(PaymentGateway):
    """
    Opens a PayOS checkout link, then polls the backend until PayOS reports
    the link PAID or cancelled. Returning from the browser is not proof of
    payment.
    """

    name = "payos"

    def __init__(
        self,
        client: BackendClient,
        opener: UrlOpener,
        *,
        poll_interval: float | None = None,
        poll_attempts: int | None = None,
        sleep=asyncio.sleep,
    ):
        self.client = client
        self.opener = opener
        self.poll_interval = settings.PAYMENT_POLL_INTERVAL if poll_interval is None else poll_interval
        self.poll_attempts = settings.PAYMENT_POLL_ATTEMPTS if poll_attempts is None else poll_attempts
        self._sleep = sleep

    async def initiate(
        self, amount: int, description: str, user_id: str, plan_id: int,
    ) -> PaymentSession:
        del description  # PayOS caps descriptions; a fixed one is used.
        order_code = new_order_code()
        return_base = f"{self.client.base_url}/api/payos/return"
        data = await self.client.create_payos_link(
            order_code, amount, DESCRIPTION, user_id, plan_id,
            return_url=f"{return_base}?result=success",
            cancel_url=f"{return_base}?result=failed",
        )
        checkout_url = data.get("checkoutUrl")
        if not data.get("success") or not checkout_url:
            raise GatewayUnavailable("Failed to create PayOS payment")
        if not await self.opener.open(checkout_url):
            raise GatewayUnavailable("Cannot open PayOS payment gateway")

        logger.info("PayOS checkout opened: orderCode=%s plan=%s", order_code, plan_id)
        return PaymentSession(
            gateway=self.name, order_id=str(order_code), amount=amount,
            plan_id=plan_id, checkout_url=checkout_url,
        )

    async def await_outcome(self, session: PaymentSession) -> PaymentOutcome:
        for attempt in range(self.poll_attempts):
            if attempt:
                await self._sleep(self.poll_interval)
            try:
                data = await self.client.payos_payment_status(int(session.order_id))
            except ApiError as e:
                logger.warning("PayOS status check failed: orderCode=%s error=%s", session.order_id, e)
                continue
            status = data.get("status")
            if status == SUCCESS:
                return PaymentOutcome(SUCCESS, order_id=session.order_id)
            if status == FAILED:
                return PaymentOutcome(
                    FAILED, order_id=session.order_id, message="Payment was cancelled or failed",
                )
        return PaymentOutcome(
            PENDING, order_id=session.order_id, message="Payment is still being processed",
        )
