"""
Subscription plan catalog.

Plan ids are ordinal: a higher id is a higher tier, and upgrades only move
upwards. Prices are monthly, in VND.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Plan:
    id: int
    name: str
    price: int
    description: str
    business_limit: int | None  # None → unlimited
    features: list[str] = field(default_factory=list)

    @property
    def is_free(self) -> bool:
        return self.price == 0


PLANS: list[Plan] = [
    Plan(
        id=1,
        name="Basic Owner",
        price=0,
        description="FREE plan for new business owners",
        business_limit=3,
        features=["Add up to 3 businesses", "Basic analytics", "Email support", "Standard listing"],
    ),
    Plan(
        id=2,
        name="Premium Owner",
        price=199000,
        description="Advanced features for growing businesses",
        business_limit=10,
        features=[
            "Add up to 10 businesses", "Advanced analytics", "Priority support",
            "Featured listing", "Customer reviews management",
        ],
    ),
    Plan(
        id=3,
        name="VIP Owner",
        price=299000,
        description="Premium features for established businesses",
        business_limit=None,
        features=[
            "Unlimited businesses", "Complete analytics dashboard", "24/7 VIP support",
            "Top featured listing", "Advanced business settings", "Marketing tools",
        ],
    ),
]

_BY_ID = {p.id: p for p in PLANS}


def get_plan(plan_id: int) -> Plan | None:
    return _BY_ID.get(plan_id)


def business_limit(plan_id: int | None) -> int:
    """How many businesses a subscriber of ``plan_id`` may list (0 without a plan)."""
    plan = _BY_ID.get(plan_id) if plan_id is not None else None
    if plan is None:
        return 0
    return plan.business_limit if plan.business_limit is not None else 10**9


def validate_paid_plan(plan_id: int, amount: int) -> Plan:
    """
    Check a gateway checkout against the catalog.

    Raises ValueError for unknown plans, free plans (they never go through a
    gateway) and amounts that differ from the plan price.
    """
    plan = _BY_ID.get(plan_id)
    if plan is None:
        raise ValueError(f"Unknown subscription plan {plan_id}")
    if plan.is_free:
        raise ValueError(f"Plan {plan.name} is free and needs no payment")
    if amount != plan.price:
        raise ValueError(f"Amount {amount} does not match {plan.name} price {plan.price}")
    return plan
