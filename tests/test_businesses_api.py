"""Business catalog endpoint tests (in-memory SQLite)."""

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from bizfinder_api.services.maps import DEFAULT_LOCATION


def _business(**overrides):
    data = {
        "ownerId": "owner_1",
        "name": "Pho Hoa",
        "category": "restaurant",
        "description": "Noodle soup since 1968",
        "address": "260C Pasteur, District 3, Ho Chi Minh City",
        "location": {"latitude": 10.7829, "longitude": 106.6920},
        "phone": "028 3829 7943",
        "openingHours": {"open": "06:00", "close": "22:00", "days": [0, 1, 2, 3, 4, 5, 6]},
        "images": ["https://img.test/pho.jpg"],
        "products": [],
    }
    data.update(overrides)
    return data


async def _create(api, **overrides) -> dict:
    resp = await api.post("/api/businesses/", json=_business(**overrides))
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.mark.asyncio
async def test_products_round_trip_by_id(api):
    """A business created with N products comes back with the same N products."""
    products = [
        {"name": "Pho Bo", "price": 65000, "isAvailable": True},
        {"name": "Pho Ga", "price": 60000, "isAvailable": False},
        {"name": "Tra Da", "price": 0, "description": "Iced tea"},
    ]
    created = await _create(api, products=products)

    resp = await api.get(f"/api/businesses/{created['id']}")
    assert resp.status_code == 200
    fetched = resp.json()["products"]

    assert len(fetched) == 3
    assert [p["price"] for p in fetched] == [65000, 60000, 0]
    assert [p["isAvailable"] for p in fetched] == [True, False, True]
    assert all(p["businessId"] == created["id"] for p in fetched)
    assert len({p["id"] for p in fetched}) == 3


@pytest.mark.asyncio
async def test_get_increments_view_count(api):
    created = await _create(api)
    assert created["viewCount"] == 0

    await api.get(f"/api/businesses/{created['id']}")
    resp = await api.get(f"/api/businesses/{created['id']}")
    assert resp.json()["viewCount"] == 2


@pytest.mark.asyncio
async def test_missing_business_is_404(api):
    resp = await api.get(f"/api/businesses/{uuid.uuid4()}")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Business not found"


@pytest.mark.asyncio
async def test_create_geocodes_when_location_missing(api):
    with patch(
        "bizfinder_api.routers.businesses.geocode",
        AsyncMock(return_value={"latitude": 21.0285, "longitude": 105.8542}),
    ) as mock_geocode:
        created = await _create(api, location=None, address="Hoan Kiem, Ha Noi")

    mock_geocode.assert_awaited_once_with("Hoan Kiem, Ha Noi")
    assert created["location"] == {"latitude": 21.0285, "longitude": 105.8542}


@pytest.mark.asyncio
async def test_create_falls_back_to_default_location(api):
    with patch("bizfinder_api.routers.businesses.geocode", AsyncMock(return_value=None)):
        created = await _create(api, location=None)
    assert created["location"] == DEFAULT_LOCATION


@pytest.mark.asyncio
async def test_create_rejects_blank_name(api):
    resp = await api.post("/api/businesses/", json=_business(name=""))
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_search_is_case_insensitive(api):
    await _create(api, name="Pho Hoa")
    await _create(api, name="Long Chau Pharmacy", category="pharmacy", description="Medicine")
    await _create(api, name="Petrolimex 12", category="gas_station", address="12 Pho Quang")

    resp = await api.get("/api/businesses/search", params={"q": "PHO"})
    names = sorted(b["name"] for b in resp.json())
    assert names == ["Petrolimex 12", "Pho Hoa"]

    resp = await api.get("/api/businesses/search", params={"q": "  "})
    assert len(resp.json()) == 3


@pytest.mark.asyncio
async def test_filter_by_category(api):
    await _create(api, name="Rex Hotel", category="hotel")
    await _create(api, name="Pho Hoa")

    resp = await api.get("/api/businesses/category/hotel")
    assert [b["name"] for b in resp.json()] == ["Rex Hotel"]

    resp = await api.get("/api/businesses/category/bakery")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_owner_listing(api):
    await _create(api, ownerId="owner_a", name="A1")
    await _create(api, ownerId="owner_a", name="A2")
    await _create(api, ownerId="owner_b", name="B1")

    resp = await api.get("/api/businesses/owner/owner_a")
    assert sorted(b["name"] for b in resp.json()) == ["A1", "A2"]


@pytest.mark.asyncio
async def test_most_viewed_orders_by_views(api):
    quiet = await _create(api, name="Quiet")
    busy = await _create(api, name="Busy")
    for _ in range(3):
        await api.get(f"/api/businesses/{busy['id']}")
    await api.get(f"/api/businesses/{quiet['id']}")
    await _create(api, name="Unseen")

    resp = await api.get("/api/businesses/most-viewed", params={"limit": 2})
    assert [b["name"] for b in resp.json()] == ["Busy", "Quiet"]

    resp = await api.get("/api/businesses/")
    assert resp.json()[0]["name"] == "Busy"


@pytest.mark.asyncio
async def test_nearby_sorted_by_distance(api):
    await _create(api, name="Ben Thanh", location={"latitude": 10.7721, "longitude": 106.6983})
    await _create(api, name="District 3", location={"latitude": 10.7829, "longitude": 106.6920})
    await _create(api, name="Ha Noi", location={"latitude": 21.0285, "longitude": 105.8542})

    resp = await api.get(
        "/api/businesses/nearby", params={"lat": 10.7720, "lng": 106.6980, "radius_km": 5},
    )
    body = resp.json()
    assert [b["name"] for b in body] == ["Ben Thanh", "District 3"]
    assert body[0]["distanceKm"] < body[1]["distanceKm"]


@pytest.mark.asyncio
async def test_partial_update_keeps_other_fields(api):
    created = await _create(api, products=[{"name": "Pho Bo", "price": 65000}])

    resp = await api.put(
        f"/api/businesses/{created['id']}",
        json={"name": "Pho Hoa Pasteur", "isOpen": False},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["name"] == "Pho Hoa Pasteur"
    assert body["isOpen"] is False
    assert body["address"] == created["address"]
    assert len(body["products"]) == 1


@pytest.mark.asyncio
async def test_delete_business(api):
    created = await _create(api)

    resp = await api.delete(f"/api/businesses/{created['id']}")
    assert resp.status_code == 204
    assert (await api.get(f"/api/businesses/{created['id']}")).status_code == 404
    assert (await api.delete(f"/api/businesses/{created['id']}")).status_code == 404
