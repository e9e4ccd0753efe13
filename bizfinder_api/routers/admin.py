"""Admin dashboard API endpoints: catalog, payment and user aggregates."""

import logging
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from bizfinder_api.db.database import get_db
from bizfinder_api.models.business import Business
from bizfinder_api.models.payment import Payment
from bizfinder_api.schemas import (
    BusinessResponse, DashboardStats, PaymentResponse, RevenueChart, RevenuePoint,
)
from bizfinder_api.services import clerk
from bizfinder_api.services.errors import IdentityError

router = APIRouter()
logger = logging.getLogger(__name__)


def _month_start(dt: datetime, months_back: int = 0) -> datetime:
    """First instant of the month ``months_back`` months before ``dt``."""
    index = dt.year * 12 + (dt.month - 1) - months_back
    return datetime(index // 12, index % 12 + 1, 1)


def monthly_growth(this_month: int, last_month: int) -> float:
    """Percent change of revenue month over month."""
    if last_month == 0:
        return 100.0 if this_month > 0 else 0.0
    return round((this_month - last_month) / last_month * 100, 2)


async def _revenue_between(db: AsyncSession, start: datetime, end: datetime | None = None) -> int:
    conditions = [Payment.status == "success", Payment.created_at >= start]
    if end is not None:
        conditions.append(Payment.created_at < end)
    total = (await db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(and_(*conditions))
    )).scalar()
    return int(total or 0)


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(db: AsyncSession = Depends(get_db)):
    """Dashboard KPIs. ``totalUsers`` is null when the identity provider is unreachable."""
    try:
        total_users = await clerk.count_users()
    except IdentityError as e:
        logger.warning("User count unavailable: %s", e)
        total_users = None

    total_businesses = (await db.execute(select(func.count(Business.id)))).scalar() or 0
    total_revenue = (await db.execute(
        select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.status == "success")
    )).scalar() or 0
    successful = (await db.execute(
        select(func.count(Payment.id)).where(Payment.status == "success")
    )).scalar() or 0
    failed = (await db.execute(
        select(func.count(Payment.id)).where(Payment.status == "failed")
    )).scalar() or 0

    now = datetime.utcnow()
    this_month = _month_start(now)
    last_month = _month_start(now, 1)
    revenue_this_month = await _revenue_between(db, this_month)
    revenue_last_month = await _revenue_between(db, last_month, this_month)

    recent_businesses = (await db.execute(
        select(Business).order_by(Business.created_at.desc()).limit(5)
    )).scalars().all()
    recent_payments = (await db.execute(
        select(Payment).order_by(Payment.created_at.desc(), Payment.id.desc()).limit(5)
    )).scalars().all()

    return DashboardStats(
        total_users=total_users,
        total_businesses=total_businesses,
        total_revenue=int(total_revenue),
        successful_payments=successful,
        failed_payments=failed,
        monthly_growth=monthly_growth(revenue_this_month, revenue_last_month),
        recent_businesses=[BusinessResponse.model_validate(b) for b in recent_businesses],
        recent_payments=[PaymentResponse.model_validate(p) for p in recent_payments],
    )


@router.get("/revenue-chart", response_model=RevenueChart)
async def revenue_chart(months: int = Query(12, ge=1, le=60), db: AsyncSession = Depends(get_db)):
    """Successful revenue per calendar month, oldest first, empty months as 0."""
    now = datetime.utcnow()
    start = _month_start(now, months - 1)
    buckets = {
        _month_start(now, back).strftime("%Y-%m"): 0
        for back in range(months - 1, -1, -1)
    }

    rows = (await db.execute(
        select(Payment.created_at, Payment.amount)
        .where(Payment.status == "success", Payment.created_at >= start)
    )).all()
    for created_at, amount in rows:
        key = created_at.strftime("%Y-%m")
        if key in buckets:
            buckets[key] += int(amount)

    return RevenueChart(data=[RevenuePoint(month=m, revenue=r) for m, r in buckets.items()])
