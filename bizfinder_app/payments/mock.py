"""Mock payment gateway for development builds."""

from __future__ import annotations

import secrets
import time

from .base import FAILED, SUCCESS, ConfirmationPrompt, PaymentGateway, PaymentOutcome, PaymentSession


class MockGateway(PaymentGateway):
    name = "mock"

    def __init__(self, prompt: ConfirmationPrompt):
        self.prompt = prompt

    async def initiate(
        self, amount: int, description: str, user_id: str, plan_id: int,
    ) -> PaymentSession:
        del description, user_id  # Not needed for mock order ids.
        order_id = f"MOCK_ORDER_{int(time.time() * 1000)}_{secrets.token_hex(3)}"
        return PaymentSession(gateway=self.name, order_id=order_id, amount=int(amount), plan_id=plan_id)

    async def await_outcome(self, session: PaymentSession) -> PaymentOutcome:
        choice = await self.prompt.ask(session)
        if choice == "completed":
            return PaymentOutcome(SUCCESS, order_id=session.order_id)
        if choice == "failed":
            return PaymentOutcome(FAILED, order_id=session.order_id, message="Demo payment failed")
        return PaymentOutcome(FAILED, order_id=session.order_id, message="Payment cancelled")
