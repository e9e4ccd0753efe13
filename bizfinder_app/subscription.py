"""
Subscription and role state machine.

    unsubscribed --select paid plan--> pending_payment --success--> owner(N)
    owner(N) --select N+k--> pending_upgrade --success--> owner(N+k)
    pending_* --failed--> unsubscribed (role=client, subscription=None)

A free plan goes straight to owner without touching a gateway. A pending
outcome leaves the user record alone; the backend webhook finishes the
transition once the gateway reports.
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from bizfinder_app.api_client import BackendClient
from bizfinder_app.errors import (
    AlreadySubscribed, DowngradeNotAllowed, ValidationFailed,
)
from bizfinder_app.identity import UserSession
from bizfinder_app.payments import FAILED, PENDING, SUCCESS, PaymentGateway

logger = logging.getLogger(__name__)

UNSUBSCRIBED = "unsubscribed"
PENDING_PAYMENT = "pending_payment"
OWNER = "owner"
PENDING_UPGRADE = "pending_upgrade"


@dataclass(frozen=True)
class Toast:
    type: str  # success | error | info
    title: str
    message: str = ""


class Notifier(Protocol):
    def show(self, toast: Toast) -> None:
        ...


class ToastLog:
    """Notifier that keeps every toast and logs it."""

    def __init__(self):
        self.toasts: list[Toast] = []

    def show(self, toast: Toast) -> None:
        self.toasts.append(toast)
        logger.info("Toast [%s] %s: %s", toast.type, toast.title, toast.message)

    @property
    def last(self) -> Toast | None:
        return self.toasts[-1] if self.toasts else None


@dataclass(frozen=True)
class SubscribeResult:
    state: str
    route: str | None = None


def build_subscription(plan_id: int, payment_method: str, order_id: str) -> dict:
    return {
        "id": plan_id,
        "startDate": datetime.now(timezone.utc).isoformat(),
        "status": "active",
        "paymentMethod": payment_method,
        "orderId": order_id,
    }


class SubscriptionFlow:
    def __init__(
        self,
        client: BackendClient,
        session: UserSession | None,
        gateways: dict[str, PaymentGateway],
        notifier: Notifier,
        plans: list[dict] | None = None,
    ):
        self.client = client
        self.session = session
        self.gateways = gateways
        self.notifier = notifier
        self._plans = {p["id"]: p for p in plans} if plans is not None else None
        self._in_flight: str | None = None
        self.selected_plan: int | None = None

    @property
    def current_plan_id(self) -> int | None:
        if self.session is None:
            return None
        subscription = self.session.subscription or {}
        plan_id = subscription.get("id")
        return plan_id if isinstance(plan_id, int) else None

    @property
    def state(self) -> str:
        if self._in_flight is not None:
            return self._in_flight
        if self.session is not None and self.session.role == "owner" and self.current_plan_id:
            return OWNER
        return UNSUBSCRIBED

    async def plans(self) -> dict[int, dict]:
        if self._plans is None:
            self._plans = {p["id"]: p for p in await self.client.list_plans()}
        return self._plans

    def select_plan(self, plan_id: int | None) -> int:
        """Accept only strict upgrades; nothing changes on rejection."""
        if plan_id is None:
            raise ValidationFailed("No plan selected")
        current = self.current_plan_id
        if current is not None:
            if plan_id == current:
                raise AlreadySubscribed("You are already subscribed to this plan")
            if plan_id < current:
                raise DowngradeNotAllowed("You can only upgrade to a higher plan")
        self.selected_plan = plan_id
        return plan_id

    async def subscribe(self, plan_id: int | None = None, payment_method: str = "momo") -> SubscribeResult:
        if self.session is None:
            self.notifier.show(Toast("error", "Authentication Required", "You must be logged in to subscribe"))
            return SubscribeResult(self.state)

        try:
            plan_id = self.select_plan(plan_id if plan_id is not None else self.selected_plan)
        except AlreadySubscribed as e:
            self.notifier.show(Toast("info", "Already Subscribed", str(e)))
            return SubscribeResult(self.state)
        except DowngradeNotAllowed as e:
            self.notifier.show(Toast("error", "Downgrade Not Allowed", str(e)))
            return SubscribeResult(self.state)
        except ValidationFailed as e:
            self.notifier.show(Toast("error", "Subscription Error", str(e)))
            return SubscribeResult(self.state)

        try:
            plan = (await self.plans()).get(plan_id)
            if plan is None:
                raise ValidationFailed("Invalid plan selected")
            if plan["price"] == 0:
                return await self._activate_free(plan)
            return await self._pay(plan, payment_method)
        except Exception as e:
            logger.exception("Subscription error: plan=%s method=%s", plan_id, payment_method)
            self._in_flight = None
            self.notifier.show(Toast("error", "Subscription Error", f"Failed to process subscription: {e}"))
            return SubscribeResult(self.state)
        finally:
            self._in_flight = None

    async def _activate_free(self, plan: dict) -> SubscribeResult:
        order_id = f"FREE_{int(time.time() * 1000)}"
        await self.session.update(unsafe_metadata={
            **self.session.unsafe_metadata,
            "role": "owner",
            "subscription": build_subscription(plan["id"], "free", order_id),
        })
        await self.session.reload()
        logger.info("Free plan activated: user=%s plan=%s", self.session.id, plan["id"])
        self.notifier.show(Toast("success", f"Welcome to {plan['name']}!", f"{plan['name']} is now active!"))
        return SubscribeResult(OWNER, route="add-business")

    async def _pay(self, plan: dict, payment_method: str) -> SubscribeResult:
        gateway = self.gateways.get(payment_method)
        if gateway is None:
            raise ValidationFailed(f"Invalid payment method selected: {payment_method}")

        self._in_flight = PENDING_UPGRADE if self.state == OWNER else PENDING_PAYMENT
        self.notifier.show(Toast("info", "Opening Payment Gateway", f"Redirecting to {gateway.name}..."))
        description = f"Subscription {plan['name']} - BizFinder"
        outcome = await gateway.process(plan["price"], description, self.session.id, plan["id"])
        logger.info(
            "Payment outcome: user=%s plan=%s gateway=%s status=%s order=%s",
            self.session.id, plan["id"], gateway.name, outcome.status, outcome.order_id,
        )

        if outcome.status == SUCCESS:
            await self.session.update(unsafe_metadata={
                **self.session.unsafe_metadata,
                "role": "owner",
                "subscription": build_subscription(plan["id"], payment_method, outcome.order_id),
            })
            await self.session.reload()
            self.notifier.show(Toast(
                "success", "Payment Successful!", f"{plan['name']} subscription is now active!",
            ))
            self._in_flight = None
            return SubscribeResult(OWNER, route="my-business")

        if outcome.status == PENDING:
            self.notifier.show(Toast(
                "info", "Payment Pending",
                outcome.message or "Your payment is being processed. We will activate your plan shortly.",
            ))
            return SubscribeResult(self._in_flight)

        if outcome.status == FAILED:
            await self.session.update(unsafe_metadata={
                **self.session.unsafe_metadata,
                "role": "client",
                "subscription": None,
            })
            await self.session.reload()
            self.notifier.show(Toast(
                "error", "Payment Failed",
                outcome.message or "Payment was not successful. Please try again.",
            ))
            self._in_flight = None
            return SubscribeResult(UNSUBSCRIBED)

        raise ValidationFailed(f"Unknown payment status: {outcome.status}")
