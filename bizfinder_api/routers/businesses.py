"""Business catalog API endpoints: CRUD, search, filters and ratings."""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from bizfinder_api.db.database import get_db
from bizfinder_api.models.business import Business, BusinessRating
from bizfinder_api.schemas import (
    BusinessCategory, BusinessCreate, BusinessUpdate, BusinessResponse,
    NearbyBusiness, ProductIn, RatingSubmit, RatingSummary,
)
from bizfinder_api.services.maps import geocode, haversine_distance, DEFAULT_LOCATION

router = APIRouter()
logger = logging.getLogger(__name__)


def _normalize_products(business_id: uuid.UUID, products: list[ProductIn]) -> list[dict]:
    """Embed products as plain documents, assigning ids where missing."""
    return [
        {
            "id": p.id or f"product_{business_id.hex}_{index}",
            "business_id": str(business_id),
            "name": p.name,
            "description": p.description,
            "price": p.price,
            "image": p.image,
            "is_available": p.is_available,
        }
        for index, p in enumerate(products)
    ]


async def _get_business_or_404(business_id: uuid.UUID, db: AsyncSession) -> Business:
    result = await db.execute(select(Business).where(Business.id == business_id))
    business = result.scalar_one_or_none()
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    return business


# ── Listing & filters ──────────────────────────────────────

@router.get("/", response_model=list[BusinessResponse])
async def list_businesses(db: AsyncSession = Depends(get_db)):
    """All businesses, most viewed first."""
    result = await db.execute(
        select(Business).order_by(Business.view_count.desc(), Business.created_at.desc())
    )
    return result.scalars().all()


@router.get("/search", response_model=list[BusinessResponse])
async def search_businesses(q: str = "", db: AsyncSession = Depends(get_db)):
    """Case-insensitive match on name, description or address."""
    query = select(Business).order_by(Business.view_count.desc())
    term = q.strip()
    if term:
        pattern = f"%{term}%"
        query = query.where(
            or_(
                Business.name.ilike(pattern),
                Business.description.ilike(pattern),
                Business.address.ilike(pattern),
            )
        )
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/category/{category}", response_model=list[BusinessResponse])
async def businesses_by_category(category: BusinessCategory, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Business)
        .where(Business.category == category.value)
        .order_by(Business.view_count.desc())
    )
    return result.scalars().all()


@router.get("/owner/{owner_id}", response_model=list[BusinessResponse])
async def businesses_by_owner(owner_id: str, db: AsyncSession = Depends(get_db)):
    """Businesses listed by one owner, newest first."""
    result = await db.execute(
        select(Business)
        .where(Business.owner_id == owner_id)
        .order_by(Business.created_at.desc())
    )
    return result.scalars().all()


@router.get("/most-viewed", response_model=list[BusinessResponse])
async def most_viewed(limit: int = Query(5, ge=1, le=100), db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Business).order_by(Business.view_count.desc()).limit(limit)
    )
    return result.scalars().all()


@router.get("/nearby", response_model=list[NearbyBusiness])
async def nearby_businesses(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(5.0, gt=0, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Businesses within ``radius_km`` straight-line distance, nearest first."""
    businesses = (await db.execute(select(Business))).scalars().all()

    hits = []
    for b in businesses:
        loc = b.location or {}
        if loc.get("latitude") is None or loc.get("longitude") is None:
            continue
        d = haversine_distance(lat, lng, float(loc["latitude"]), float(loc["longitude"]))
        if d <= radius_km:
            hits.append((d, b))
    hits.sort(key=lambda pair: pair[0])

    return [
        NearbyBusiness.model_validate(
            {**BusinessResponse.model_validate(b).model_dump(), "distance_km": d}
        )
        for d, b in hits
    ]


# ── Single business ────────────────────────────────────────

@router.get("/{business_id}", response_model=BusinessResponse)
async def get_business(business_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """Get a business by id. Each fetch counts as one view."""
    business = await _get_business_or_404(business_id, db)
    business.view_count = (business.view_count or 0) + 1
    await db.commit()
    await db.refresh(business)
    return business


@router.post("/", response_model=BusinessResponse, status_code=201)
async def create_business(data: BusinessCreate, db: AsyncSession = Depends(get_db)):
    """Create a business. The address is geocoded when no location is given."""
    business_id = uuid.uuid4()

    if data.location is not None:
        location = data.location.model_dump()
    else:
        location = await geocode(data.address) or dict(DEFAULT_LOCATION)

    business = Business(
        id=business_id,
        owner_id=data.owner_id,
        name=data.name.strip(),
        category=data.category.value,
        description=data.description,
        address=data.address.strip(),
        location=location,
        phone=data.phone,
        opening_hours=data.opening_hours.model_dump(),
        is_open=data.is_open,
        images=list(data.images),
        products=_normalize_products(business_id, data.products),
        view_count=0,
        rating=0.0,
    )
    db.add(business)
    await db.commit()
    await db.refresh(business)
    logger.info(
        "Business created: id=%s owner=%s products=%d",
        business.id, business.owner_id, len(business.products),
    )
    return business


@router.put("/{business_id}", response_model=BusinessResponse)
async def update_business(
    business_id: uuid.UUID, data: BusinessUpdate, db: AsyncSession = Depends(get_db),
):
    """Partial update; last write wins."""
    business = await _get_business_or_404(business_id, db)
    changes = data.model_dump(exclude_unset=True)

    if "category" in changes and data.category is not None:
        business.category = data.category.value
    if data.location is not None:
        business.location = data.location.model_dump()
    elif "address" in changes and data.address:
        business.location = await geocode(data.address) or business.location
    if "opening_hours" in changes and data.opening_hours is not None:
        business.opening_hours = data.opening_hours.model_dump()
    if "products" in changes and data.products is not None:
        business.products = _normalize_products(business.id, data.products)
    if "images" in changes and data.images is not None:
        business.images = list(data.images)
    for field in ("name", "description", "address", "phone", "is_open"):
        if field in changes and changes[field] is not None:
            setattr(business, field, changes[field])

    await db.commit()
    await db.refresh(business)
    logger.info("Business updated: id=%s fields=%s", business_id, sorted(changes))
    return business


@router.delete("/{business_id}", status_code=204)
async def delete_business(business_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    business = await _get_business_or_404(business_id, db)
    await db.delete(business)
    await db.commit()
    logger.info("Business deleted: id=%s", business_id)
    return Response(status_code=204)


# ── Ratings ────────────────────────────────────────────────

@router.get("/{business_id}/ratings", response_model=list[int])
async def list_ratings(business_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    """All submitted star scores for a business."""
    await _get_business_or_404(business_id, db)
    result = await db.execute(
        select(BusinessRating.score)
        .where(BusinessRating.business_id == business_id)
        .order_by(BusinessRating.created_at)
    )
    return list(result.scalars().all())


@router.put("/{business_id}/ratings", response_model=RatingSummary)
async def submit_rating(
    business_id: uuid.UUID, data: RatingSubmit, db: AsyncSession = Depends(get_db),
):
    """
    Submit a star rating. A user has at most one score per business:
    re-submitting replaces the earlier score (last value wins).
    """
    business = await _get_business_or_404(business_id, db)

    result = await db.execute(
        select(BusinessRating).where(
            BusinessRating.business_id == business_id,
            BusinessRating.user_id == data.user_id,
        )
    )
    existing = result.scalar_one_or_none()
    if existing:
        existing.score = data.rating
    else:
        db.add(BusinessRating(business_id=business_id, user_id=data.user_id, score=data.rating))
    await db.flush()

    agg = (await db.execute(
        select(func.avg(BusinessRating.score), func.count(BusinessRating.id))
        .where(BusinessRating.business_id == business_id)
    )).one()
    average = round(float(agg[0] or 0), 2)
    business.rating = average

    await db.commit()
    logger.info(
        "Rating submitted: business=%s user=%s score=%s avg=%s",
        business_id, data.user_id, data.rating, average,
    )
    return RatingSummary(rating=average, count=agg[1])
