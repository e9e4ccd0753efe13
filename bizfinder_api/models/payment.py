"""Payment ORM model: gateway-reported subscription payments."""

from datetime import datetime
from sqlalchemy import String, Integer, BigInteger, DateTime, Text, Enum as PgEnum
from sqlalchemy.orm import Mapped, mapped_column
from bizfinder_api.db.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    order_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    gateway: Mapped[str] = mapped_column(
        PgEnum("momo", "payos", name="payment_gateway"),
        nullable=False,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)  # VND
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        PgEnum("pending", "success", "failed", name="payment_status"),
        default="pending",
    )
    subscription_plan_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # Gateway references
    checkout_url: Mapped[str | None] = mapped_column(Text)
    gateway_transaction_id: Mapped[str | None] = mapped_column(String(128))
    result_code: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)
