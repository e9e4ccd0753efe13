"""
HTTP client for the BizFinder REST backend.

Responses are returned as the backend sends them (camelCase dicts). Any
non-2xx answer becomes an ``ApiError`` carrying the server's ``detail``.
"""

import logging

import httpx

from bizfinder_app.config import settings
from bizfinder_app.errors import ApiError

logger = logging.getLogger(__name__)


class BackendClient:
    def __init__(self, base_url: str | None = None, *, http: httpx.AsyncClient | None = None):
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self._http = http or httpx.AsyncClient(
            base_url=self.base_url, timeout=settings.REQUEST_TIMEOUT,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, **kwargs):
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Backend unreachable: %s %s: %s", method, path, e)
            raise ApiError(f"Backend unreachable: {e}") from e

        if resp.is_error:
            message = f"HTTP error! status: {resp.status_code}"
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                detail = body.get("detail") or body.get("error")
                if isinstance(detail, str):
                    message = detail
                elif detail:
                    message = str(detail)
            raise ApiError(message, status_code=resp.status_code)

        if resp.status_code == 204 or not resp.content:
            return None
        return resp.json()

    # ── Businesses ─────────────────────────────────────────

    async def list_businesses(self) -> list[dict]:
        return await self._request("GET", "/api/businesses/")

    async def get_business(self, business_id: str) -> dict:
        return await self._request("GET", f"/api/businesses/{business_id}")

    async def search_businesses(self, query: str) -> list[dict]:
        return await self._request("GET", "/api/businesses/search", params={"q": query})

    async def businesses_by_category(self, category: str) -> list[dict]:
        return await self._request("GET", f"/api/businesses/category/{category}")

    async def businesses_by_owner(self, owner_id: str) -> list[dict]:
        return await self._request("GET", f"/api/businesses/owner/{owner_id}")

    async def most_viewed(self, limit: int = 5) -> list[dict]:
        return await self._request("GET", "/api/businesses/most-viewed", params={"limit": limit})

    async def nearby(self, lat: float, lng: float, radius_km: float = 5.0) -> list[dict]:
        return await self._request(
            "GET", "/api/businesses/nearby",
            params={"lat": lat, "lng": lng, "radius_km": radius_km},
        )

    async def create_business(self, data: dict) -> dict:
        return await self._request("POST", "/api/businesses/", json=data)

    async def update_business(self, business_id: str, data: dict) -> dict:
        return await self._request("PUT", f"/api/businesses/{business_id}", json=data)

    async def delete_business(self, business_id: str) -> None:
        await self._request("DELETE", f"/api/businesses/{business_id}")

    async def get_ratings(self, business_id: str) -> list[int]:
        return await self._request("GET", f"/api/businesses/{business_id}/ratings")

    async def submit_rating(self, business_id: str, rating: int, user_id: str) -> dict:
        return await self._request(
            "PUT", f"/api/businesses/{business_id}/ratings",
            json={"rating": rating, "userId": user_id},
        )

    # ── Plans & identity ───────────────────────────────────

    async def list_plans(self) -> list[dict]:
        return await self._request("GET", "/api/subscriptions/plans")

    async def get_user(self, user_id: str) -> dict:
        return await self._request("GET", f"/api/clerk/users/{user_id}")

    async def list_users(self, limit: int = 100, offset: int = 0) -> list[dict]:
        return await self._request("GET", "/api/clerk/users", params={"limit": limit, "offset": offset})

    async def update_user_metadata(self, user_id: str, unsafe_metadata: dict, **profile) -> dict:
        """PATCH the metadata bag; ``profile`` may carry username/firstName/lastName."""
        body = {"unsafeMetadata": unsafe_metadata}
        body.update({k: v for k, v in profile.items() if v is not None})
        return await self._request("PATCH", f"/api/clerk/users/{user_id}/metadata", json=body)

    # ── Payments ───────────────────────────────────────────

    async def create_momo_payment(
        self, order_id: str, amount: int, order_info: str, user_id: str, plan_id: int,
    ) -> dict:
        return await self._request("POST", "/api/payment/create-payment", json={
            "orderId": order_id,
            "amount": amount,
            "orderInfo": order_info,
            "userId": user_id,
            "subscriptionPlanId": plan_id,
        })

    async def momo_payment_status(self, order_id: str) -> dict:
        return await self._request("GET", f"/api/payment/status/{order_id}")

    async def create_payos_link(
        self,
        order_code: int,
        amount: int,
        description: str,
        user_id: str,
        plan_id: int,
        return_url: str | None = None,
        cancel_url: str | None = None,
    ) -> dict:
        body = {
            "orderCode": order_code,
            "amount": amount,
            "description": description,
            "userId": user_id,
            "subscriptionPlanId": plan_id,
        }
        if return_url:
            body["returnUrl"] = return_url
        if cancel_url:
            body["cancelUrl"] = cancel_url
        return await self._request("POST", "/api/payos/create-payment-link", json=body)

    async def payos_payment_status(self, order_code: int) -> dict:
        return await self._request("GET", f"/api/payos/status/{order_code}")

    async def payment_history(self, user_id: str | None = None) -> list[dict]:
        path = f"/api/payment/history/{user_id}" if user_id else "/api/payment/history/all"
        return (await self._request("GET", path))["payments"]

    # ── Admin ──────────────────────────────────────────────

    async def dashboard_stats(self) -> dict:
        return await self._request("GET", "/api/admin/stats")

    async def revenue_chart(self, months: int = 12) -> list[dict]:
        """Monthly revenue points, oldest first."""
        return (await self._request("GET", "/api/admin/revenue-chart", params={"months": months}))["data"]

    async def health(self) -> dict:
        return await self._request("GET", "/health")
