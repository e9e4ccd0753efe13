"""
Business catalog store.

Holds the lists the screens render and keeps them in sync with the backend
after each write. Fetch failures are recorded in ``error``; write failures
are recorded and re-raised so the caller can react.
"""

import logging
from datetime import datetime

from bizfinder_app.api_client import BackendClient
from bizfinder_app.errors import (
    AuthenticationRequired, BizFinderError, PlanLimitReached, ValidationFailed,
)
from bizfinder_app.hours import is_business_open
from bizfinder_app.identity import UserSession

logger = logging.getLogger(__name__)


def _by_views(businesses: list[dict]) -> list[dict]:
    return sorted(businesses, key=lambda b: b.get("viewCount") or 0, reverse=True)


def _open_at(business: dict, now: datetime) -> bool:
    hours = business.get("openingHours")
    if not hours:
        return False
    return is_business_open(hours["open"], hours["close"], hours.get("days") or [], now)


def normalize_products(products: list[dict]) -> list[dict]:
    """Validate product prices before they are sent; prices become floats."""
    normalized = []
    for product in products:
        name = (product.get("name") or "").strip()
        if not name:
            raise ValidationFailed("Product name is required")
        price = product.get("price")
        if isinstance(price, bool):
            raise ValidationFailed(f"Invalid price for {name}")
        try:
            price = float(price)
        except (TypeError, ValueError):
            raise ValidationFailed(f"Invalid price for {name}") from None
        if price < 0:
            raise ValidationFailed(f"Price for {name} cannot be negative")
        normalized.append({**product, "name": name, "price": price})
    return normalized


class BusinessStore:
    def __init__(self, client: BackendClient, session: UserSession | None = None):
        self.client = client
        self.session = session

        self.businesses: list[dict] = []
        self.filtered_businesses: list[dict] = []
        self.selected_business: dict | None = None
        self.search_query = ""
        self.selected_category: str | None = None
        self.open_now_only = False
        self.loading = False
        self.error: str | None = None

    def _start(self) -> None:
        self.loading = True
        self.error = None

    def _fail(self, e: Exception, fallback: str) -> None:
        self.error = str(e) or fallback
        self.loading = False
        logger.warning("%s: %s", fallback, e)

    def _set_all(self, businesses: list[dict]) -> None:
        self.businesses = businesses
        self.filtered_businesses = list(businesses)
        self.loading = False

    # ── Fetching ───────────────────────────────────────────

    async def fetch_businesses(self) -> None:
        self._start()
        try:
            self._set_all(_by_views(await self.client.list_businesses()))
        except BizFinderError as e:
            self._fail(e, "Failed to fetch businesses")

    async def fetch_business_by_id(self, business_id: str) -> None:
        self._start()
        try:
            self.selected_business = await self.client.get_business(business_id)
            self.loading = False
        except BizFinderError as e:
            self._fail(e, "Failed to fetch business details")

    async def fetch_businesses_by_category(self, category: str) -> None:
        self._start()
        self.selected_category = category
        try:
            self.filtered_businesses = _by_views(await self.client.businesses_by_category(category))
            self.loading = False
        except BizFinderError as e:
            self._fail(e, "Failed to fetch businesses by category")

    async def fetch_businesses_by_owner(self, owner_id: str) -> None:
        self._start()
        try:
            self._set_all(await self.client.businesses_by_owner(owner_id))
        except BizFinderError as e:
            self._fail(e, "Failed to fetch owner's businesses")

    async def fetch_most_viewed_businesses(self, limit: int = 5) -> None:
        self._start()
        try:
            self._set_all(await self.client.most_viewed(limit))
        except BizFinderError as e:
            self._fail(e, "Failed to fetch most viewed businesses")

    async def search_businesses(self, query: str) -> None:
        self._start()
        self.search_query = query
        if not query.strip():
            await self.fetch_businesses()
            return
        try:
            self.filtered_businesses = await self.client.search_businesses(query)
            self.loading = False
        except BizFinderError as e:
            self._fail(e, "Failed to search businesses")

    # ── Writes ─────────────────────────────────────────────

    async def _business_limit(self, plan_id: int | None) -> int | None:
        """Plan allowance; None means unlimited."""
        if plan_id is None:
            return 0
        for plan in await self.client.list_plans():
            if plan["id"] == plan_id:
                return plan.get("businessLimit")
        return 0

    async def validate_new_business(self, data: dict) -> dict:
        """Check a new listing locally and return the payload to send."""
        if self.session is None:
            raise AuthenticationRequired("You must be logged in to add a business")
        if self.session.role != "owner":
            raise ValidationFailed("Only business owners can add businesses")

        name = (data.get("name") or "").strip()
        address = (data.get("address") or "").strip()
        if not name:
            raise ValidationFailed("Business name is required")
        if not address:
            raise ValidationFailed("Business address is required")
        products = normalize_products(data.get("products") or [])

        plan_id = (self.session.subscription or {}).get("id")
        limit = await self._business_limit(plan_id)
        if limit is not None:
            owned = await self.client.businesses_by_owner(self.session.id)
            if len(owned) >= limit:
                raise PlanLimitReached(
                    f"Your plan allows {limit} businesses. Upgrade to add more."
                )

        return {
            **data,
            "ownerId": self.session.id,
            "name": name,
            "address": address,
            "products": products,
        }

    async def add_business(self, data: dict) -> dict:
        self._start()
        try:
            payload = await self.validate_new_business(data)
            created = await self.client.create_business(payload)
        except BizFinderError as e:
            self._fail(e, "Failed to add business")
            raise
        self._set_all([created, *self.businesses])
        logger.info("Business added: id=%s owner=%s", created.get("id"), created.get("ownerId"))
        return created

    async def update_business(self, business_id: str, data: dict) -> dict:
        self._start()
        try:
            if "products" in data:
                data = {**data, "products": normalize_products(data["products"] or [])}
            updated = await self.client.update_business(business_id, data)
        except BizFinderError as e:
            self._fail(e, "Failed to update business")
            raise
        self._set_all([updated if b.get("id") == business_id else b for b in self.businesses])
        self.selected_business = updated
        return updated

    async def delete_business(self, business_id: str) -> None:
        self._start()
        try:
            await self.client.delete_business(business_id)
        except BizFinderError as e:
            self._fail(e, "Failed to delete business")
            raise
        self._set_all([b for b in self.businesses if b.get("id") != business_id])
        if self.selected_business and self.selected_business.get("id") == business_id:
            self.selected_business = None

    async def rate_business(self, business_id: str, rating: int) -> dict:
        if self.session is None:
            raise AuthenticationRequired("You must be logged in to rate a business")
        if not 1 <= int(rating) <= 5:
            raise ValidationFailed("Rating must be between 1 and 5")
        summary = await self.client.submit_rating(business_id, int(rating), self.session.id)
        if self.selected_business and self.selected_business.get("id") == business_id:
            self.selected_business = {**self.selected_business, "rating": summary["rating"]}
        return summary

    # ── Local state ────────────────────────────────────────

    def set_search_query(self, query: str) -> None:
        self.search_query = query
        self.filter_businesses()

    def set_selected_category(self, category: str | None) -> None:
        self.selected_category = category
        self.filter_businesses()

    def set_open_now_only(self, enabled: bool, now: datetime | None = None) -> None:
        self.open_now_only = enabled
        self.filter_businesses(now)

    def filter_businesses(self, now: datetime | None = None) -> None:
        filtered = self.businesses
        if self.open_now_only:
            now = now or datetime.now()
            filtered = [b for b in filtered if _open_at(b, now)]
        if self.selected_category:
            filtered = [b for b in filtered if b.get("category") == self.selected_category]
        query = self.search_query.strip().lower()
        if query:
            filtered = [
                b for b in filtered
                if query in (b.get("name") or "").lower()
                or query in (b.get("description") or "").lower()
                or query in (b.get("address") or "").lower()
            ]
        self.filtered_businesses = filtered

    def clear_error(self) -> None:
        self.error = None

    def clear_selected_business(self) -> None:
        self.selected_business = None
