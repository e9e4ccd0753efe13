"""Admin aggregate endpoint tests."""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from bizfinder_api.models.payment import Payment
from bizfinder_api.routers.admin import _month_start, monthly_growth
from bizfinder_api.services.errors import IdentityError
from bizfinder_app.api_client import BackendClient


async def _seed_payment(session_factory, order_id, amount, status, created_at):
    async with session_factory() as db:
        db.add(Payment(
            order_id=order_id, gateway="momo", user_id="user_1", amount=amount,
            status=status, subscription_plan_id=2, created_at=created_at,
        ))
        await db.commit()


def test_monthly_growth():
    assert monthly_growth(150, 100) == 50.0
    assert monthly_growth(50, 100) == -50.0
    assert monthly_growth(100, 0) == 100.0
    assert monthly_growth(0, 0) == 0.0


def test_month_start_crosses_year():
    assert _month_start(datetime(2025, 2, 14), 3) == datetime(2024, 11, 1)
    assert _month_start(datetime(2025, 1, 31)) == datetime(2025, 1, 1)


@pytest.mark.asyncio
async def test_stats(api, session_factory):
    now = datetime.utcnow()
    last_month = _month_start(now, 1) + timedelta(days=2)
    await _seed_payment(session_factory, "O1", 199000, "success", now)
    await _seed_payment(session_factory, "O2", 299000, "success", now)
    await _seed_payment(session_factory, "O3", 199000, "success", last_month)
    await _seed_payment(session_factory, "O4", 199000, "failed", now)
    await api.post("/api/businesses/", json={
        "ownerId": "owner_1", "name": "Rex Hotel", "category": "hotel",
        "address": "141 Nguyen Hue", "location": {"latitude": 10.77, "longitude": 106.70},
    })

    with patch("bizfinder_api.services.clerk.count_users", AsyncMock(return_value=42)):
        resp = await api.get("/api/admin/stats")
    body = resp.json()

    assert body["totalUsers"] == 42
    assert body["totalBusinesses"] == 1
    assert body["totalRevenue"] == 697000
    assert body["successfulPayments"] == 3
    assert body["failedPayments"] == 1
    assert body["monthlyGrowth"] == monthly_growth(498000, 199000)
    assert len(body["recentBusinesses"]) == 1
    assert len(body["recentPayments"]) == 4


@pytest.mark.asyncio
async def test_stats_without_identity_provider(api):
    with patch("bizfinder_api.services.clerk.count_users", AsyncMock(side_effect=IdentityError("down"))):
        resp = await api.get("/api/admin/stats")
    assert resp.status_code == 200
    assert resp.json()["totalUsers"] is None


@pytest.mark.asyncio
async def test_revenue_chart(api, session_factory):
    now = datetime.utcnow()
    await _seed_payment(session_factory, "O1", 199000, "success", now)
    await _seed_payment(session_factory, "O2", 299000, "failed", now)
    await _seed_payment(session_factory, "O3", 299000, "success", _month_start(now, 2) + timedelta(days=1))

    resp = await api.get("/api/admin/revenue-chart", params={"months": 3})
    data = resp.json()["data"]

    assert [p["month"] for p in data] == [
        _month_start(now, 2).strftime("%Y-%m"),
        _month_start(now, 1).strftime("%Y-%m"),
        now.strftime("%Y-%m"),
    ]
    assert [p["revenue"] for p in data] == [299000, 0, 199000]


@pytest.mark.asyncio
async def test_backend_client_admin_calls(api, session_factory):
    await _seed_payment(session_factory, "O1", 199000, "success", datetime.utcnow())
    client = BackendClient("http://test", http=api)

    with patch("bizfinder_api.services.clerk.count_users", AsyncMock(return_value=7)):
        stats = await client.dashboard_stats()
    chart = await client.revenue_chart(months=2)

    assert stats["totalUsers"] == 7
    assert stats["totalRevenue"] == 199000
    assert [p["revenue"] for p in chart] == [0, 199000]
