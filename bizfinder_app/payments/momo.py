"""
MoMo wallet adapter.

The order is created by the backend; the user pays in the MoMo app and then
tells us how it went. Every answer is checked against the backend status.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time

from bizfinder_app.api_client import BackendClient
from bizfinder_app.config import settings
from bizfinder_app.errors import ApiError, GatewayUnavailable

from .base import (
    FAILED, PENDING, SUCCESS,
    ConfirmationPrompt, PaymentGateway, PaymentOutcome, PaymentSession, UrlOpener,
)
from .mock import MockGateway

logger = logging.getLogger(__name__)

RESULT_SUCCESS = 0
_ALPHABET = string.ascii_lowercase + string.digits


def new_order_id() -> str:
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"ORDER_{int(time.time() * 1000)}_{suffix}"


class MomoGateway(PaymentGateway):
    name = "momo"

    def __init__(
        self,
        client: BackendClient,
        opener: UrlOpener,
        prompt: ConfirmationPrompt,
        *,
        fallback: PaymentGateway | None = None,
        poll_interval: float | None = None,
        poll_attempts: int | None = None,
        sleep=asyncio.sleep,
    ):
        self.client = client
        self.opener = opener
        self.prompt = prompt
        if fallback is None and settings.DEV_MODE:
            fallback = MockGateway(prompt)
        self.fallback = fallback
        self.poll_interval = settings.PAYMENT_POLL_INTERVAL if poll_interval is None else poll_interval
        self.poll_attempts = settings.PAYMENT_POLL_ATTEMPTS if poll_attempts is None else poll_attempts
        self._sleep = sleep

    async def initiate(
        self, amount: int, description: str, user_id: str, plan_id: int,
    ) -> PaymentSession:
        try:
            return await self._create_and_open(amount, description, user_id, plan_id)
        except (ApiError, GatewayUnavailable) as e:
            if self.fallback is None:
                raise
            logger.warning("MoMo unavailable (%s), falling back to %s", e, self.fallback.name)
            return await self.fallback.initiate(amount, description, user_id, plan_id)

    async def _create_and_open(
        self, amount: int, description: str, user_id: str, plan_id: int,
    ) -> PaymentSession:
        order_id = new_order_id()
        data = await self.client.create_momo_payment(order_id, amount, description, user_id, plan_id)
        pay_url = data.get("payUrl")
        if data.get("resultCode") != RESULT_SUCCESS or not pay_url:
            raise GatewayUnavailable(data.get("message") or "Failed to create MoMo payment")

        if not await self.opener.open(pay_url):
            raise GatewayUnavailable("Cannot open MoMo payment gateway")
        logger.info("MoMo checkout opened: order=%s plan=%s", order_id, plan_id)
        return PaymentSession(
            gateway=self.name, order_id=order_id, amount=amount, plan_id=plan_id, checkout_url=pay_url,
        )

    async def _status(self, order_id: str) -> str | None:
        try:
            data = await self.client.momo_payment_status(order_id)
        except ApiError as e:
            logger.warning("MoMo status check failed: order=%s error=%s", order_id, e)
            return None
        return data.get("status")

    async def await_outcome(self, session: PaymentSession) -> PaymentOutcome:
        if session.gateway != self.name and self.fallback is not None:
            return await self.fallback.await_outcome(session)

        while True:
            choice = await self.prompt.ask(session)
            if choice == "failed":
                return PaymentOutcome(FAILED, order_id=session.order_id, message="Payment failed")

            status = await self._status(session.order_id)
            if status == SUCCESS:
                return PaymentOutcome(SUCCESS, order_id=session.order_id)
            if status == FAILED:
                return PaymentOutcome(FAILED, order_id=session.order_id, message="Payment failed")
            if choice != "completed":
                continue

            # The user says it is done but MoMo has not confirmed yet
            for _ in range(self.poll_attempts):
                await self._sleep(self.poll_interval)
                status = await self._status(session.order_id)
                if status == SUCCESS:
                    return PaymentOutcome(SUCCESS, order_id=session.order_id)
                if status == FAILED:
                    return PaymentOutcome(FAILED, order_id=session.order_id, message="Payment failed")
            return PaymentOutcome(
                PENDING, order_id=session.order_id,
                message="Your payment is still being processed",
            )
