"""Business and BusinessRating ORM models: catalog documents."""

import uuid
from datetime import datetime
from sqlalchemy import (
    JSON, String, Integer, Float, Boolean, DateTime, ForeignKey, Text, UniqueConstraint,
    Enum as PgEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from bizfinder_api.db.database import Base

BUSINESS_CATEGORIES = ("accommodation", "hotel", "restaurant", "pharmacy", "gas_station")


class Business(Base):
    __tablename__ = "businesses"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(
        PgEnum(*BUSINESS_CATEGORIES, name="business_category"),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(Text)
    address: Mapped[str] = mapped_column(Text, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32))

    # Embedded documents
    location: Mapped[dict] = mapped_column(JSON, default=dict)          # {latitude, longitude}
    opening_hours: Mapped[dict] = mapped_column(JSON, default=dict)     # {open, close, days}
    images: Mapped[list] = mapped_column(JSON, default=list)
    products: Mapped[list] = mapped_column(JSON, default=list)

    is_open: Mapped[bool] = mapped_column(Boolean, default=True)
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    rating: Mapped[float] = mapped_column(Float, default=0.0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    ratings = relationship(
        "BusinessRating", back_populates="business",
        cascade="all, delete-orphan", passive_deletes=True,
    )


class BusinessRating(Base):
    __tablename__ = "business_ratings"
    __table_args__ = (UniqueConstraint("business_id", "user_id", name="uq_rating_business_user"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    business_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    business = relationship("Business", back_populates="ratings")
