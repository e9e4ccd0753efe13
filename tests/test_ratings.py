"""Rating submission tests."""

import uuid

import pytest


async def _create_business(api) -> str:
    resp = await api.post("/api/businesses/", json={
        "ownerId": "owner_1",
        "name": "Rex Hotel",
        "category": "hotel",
        "address": "141 Nguyen Hue, District 1",
        "location": {"latitude": 10.7763, "longitude": 106.7009},
    })
    return resp.json()["id"]


@pytest.mark.asyncio
async def test_same_user_rating_twice_last_value_wins(api):
    business_id = await _create_business(api)

    await api.put(f"/api/businesses/{business_id}/ratings", json={"rating": 2, "userId": "user_1"})
    resp = await api.put(f"/api/businesses/{business_id}/ratings", json={"rating": 5, "userId": "user_1"})

    assert resp.json() == {"rating": 5.0, "count": 1}
    ratings = (await api.get(f"/api/businesses/{business_id}/ratings")).json()
    assert ratings == [5]


@pytest.mark.asyncio
async def test_average_across_users(api):
    business_id = await _create_business(api)

    await api.put(f"/api/businesses/{business_id}/ratings", json={"rating": 4, "userId": "user_1"})
    await api.put(f"/api/businesses/{business_id}/ratings", json={"rating": 3, "userId": "user_2"})
    resp = await api.put(f"/api/businesses/{business_id}/ratings", json={"rating": 2, "userId": "user_3"})

    assert resp.json() == {"rating": 3.0, "count": 3}
    business = (await api.get(f"/api/businesses/{business_id}")).json()
    assert business["rating"] == 3.0


@pytest.mark.asyncio
async def test_rating_out_of_range_rejected(api):
    business_id = await _create_business(api)
    resp = await api.put(f"/api/businesses/{business_id}/ratings", json={"rating": 6, "userId": "user_1"})
    assert resp.status_code == 422
    resp = await api.put(f"/api/businesses/{business_id}/ratings", json={"rating": 0, "userId": "user_1"})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_rating_unknown_business(api):
    resp = await api.put(f"/api/businesses/{uuid.uuid4()}/ratings", json={"rating": 4, "userId": "user_1"})
    assert resp.status_code == 404
