"""Base contracts for subscription payment gateways."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from bizfinder_app.errors import BizFinderError

logger = logging.getLogger(__name__)

SUCCESS = "success"
FAILED = "failed"
PENDING = "pending"


@dataclass(frozen=True)
class PaymentSession:
    """A started checkout: what the user is paying and where."""

    gateway: str
    order_id: str
    amount: int
    plan_id: int
    checkout_url: str | None = None


@dataclass(frozen=True)
class PaymentOutcome:
    status: str  # success | failed | pending
    order_id: str | None = None
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCESS


class UrlOpener(Protocol):
    """Hands a checkout URL to the platform (browser, wallet app)."""

    async def open(self, url: str) -> bool:
        """Return False when the URL cannot be opened."""


class ConfirmationPrompt(Protocol):
    """Asks the user how the external payment went."""

    async def ask(self, session: PaymentSession) -> str:
        """Return ``"failed"``, ``"check"`` or ``"completed"``."""


class PaymentGateway:
    """
    Unified gateway interface.

    ``initiate`` creates the order and sends the user to the gateway;
    ``await_outcome`` resolves it to success, failed or pending.
    """

    name = ""

    async def initiate(
        self, amount: int, description: str, user_id: str, plan_id: int,
    ) -> PaymentSession:
        raise NotImplementedError

    async def await_outcome(self, session: PaymentSession) -> PaymentOutcome:
        raise NotImplementedError

    async def pay(self, amount: int, description: str, user_id: str, plan_id: int) -> dict:
        """Run a whole payment and return ``{success, orderId | message}``."""
        outcome = await self.process(amount, description, user_id, plan_id)
        if outcome.succeeded:
            return {"success": True, "orderId": outcome.order_id, "subscriptionPlanId": plan_id}
        result = {"success": False, "message": outcome.message}
        if outcome.status == PENDING:
            result.update(pending=True, orderId=outcome.order_id)
        return result

    async def process(self, amount: int, description: str, user_id: str, plan_id: int) -> PaymentOutcome:
        try:
            session = await self.initiate(amount, description, user_id, plan_id)
        except BizFinderError as e:
            logger.warning("%s payment initialization failed: %s", self.name, e)
            return PaymentOutcome(FAILED, message=f"Payment initialization failed: {e}")
        return await self.await_outcome(session)
