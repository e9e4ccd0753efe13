"""Pydantic schemas for API request/response models.

Wire format is camelCase to match the mobile client; Python attributes stay
snake_case.
"""

from __future__ import annotations
import uuid
from datetime import datetime
from enum import Enum
from pydantic import Field

from bizfinder_api.schemas.base import CamelModel
from bizfinder_api.schemas.payment import PaymentResponse


# ── Enums ──────────────────────────────────────────────────

class BusinessCategory(str, Enum):
    ACCOMMODATION = "accommodation"
    HOTEL = "hotel"
    RESTAURANT = "restaurant"
    PHARMACY = "pharmacy"
    GAS_STATION = "gas_station"


class UserRole(str, Enum):
    CLIENT = "client"
    OWNER = "owner"
    ADMIN = "admin"


# ── Business Schemas ───────────────────────────────────────

class Location(CamelModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class OpeningHours(CamelModel):
    open: str = Field("08:00", pattern=r"^\d{2}:\d{2}$")
    close: str = Field("22:00", pattern=r"^\d{2}:\d{2}$")
    days: list[int] = Field(default_factory=lambda: [0, 1, 2, 3, 4, 5, 6])


class ProductIn(CamelModel):
    id: str | None = None
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    price: float = Field(..., ge=0)
    image: str | None = None
    is_available: bool = True


class Product(CamelModel):
    id: str
    business_id: str
    name: str
    description: str | None = None
    price: float
    image: str | None = None
    is_available: bool = True


class BusinessCreate(CamelModel):
    owner_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    category: BusinessCategory
    description: str | None = None
    address: str = Field(..., min_length=1)
    location: Location | None = None
    phone: str | None = None
    opening_hours: OpeningHours = Field(default_factory=OpeningHours)
    is_open: bool = True
    images: list[str] = Field(default_factory=list)
    products: list[ProductIn] = Field(default_factory=list)


class BusinessUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    category: BusinessCategory | None = None
    description: str | None = None
    address: str | None = Field(None, min_length=1)
    location: Location | None = None
    phone: str | None = None
    opening_hours: OpeningHours | None = None
    is_open: bool | None = None
    images: list[str] | None = None
    products: list[ProductIn] | None = None


class BusinessResponse(CamelModel):
    id: uuid.UUID
    owner_id: str
    name: str
    category: str
    description: str | None
    address: str
    location: Location | None
    phone: str | None
    opening_hours: OpeningHours
    is_open: bool
    images: list[str]
    view_count: int
    rating: float
    products: list[Product]
    created_at: datetime
    updated_at: datetime


class NearbyBusiness(BusinessResponse):
    distance_km: float


# ── Rating Schemas ─────────────────────────────────────────

class RatingSubmit(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    user_id: str = Field(..., min_length=1)


class RatingSummary(CamelModel):
    rating: float
    count: int


# ── Plan Schemas ───────────────────────────────────────────

class PlanResponse(CamelModel):
    id: int
    name: str
    price: int
    description: str
    business_limit: int | None
    features: list[str]


# ── Identity Schemas ───────────────────────────────────────

class IdentityUser(CamelModel):
    """Summary of an identity-provider user."""
    id: str
    email: str | None = None
    name: str = ""
    role: UserRole = UserRole.CLIENT
    subscription: dict | None = None
    unsafe_metadata: dict = Field(default_factory=dict)
    created_at: datetime | None = None


class MetadataUpdate(CamelModel):
    unsafe_metadata: dict
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


# ── Admin Schemas ──────────────────────────────────────────

class DashboardStats(CamelModel):
    total_users: int | None
    total_businesses: int
    total_revenue: int
    successful_payments: int
    failed_payments: int
    monthly_growth: float
    recent_businesses: list[BusinessResponse]
    recent_payments: list[PaymentResponse]


class RevenuePoint(CamelModel):
    month: str
    revenue: int



class RevenueChart(CamelModel):
    data: list[RevenuePoint]
