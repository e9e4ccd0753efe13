"""Pydantic schemas for MoMo and PayOS payment endpoints."""

from __future__ import annotations
from datetime import datetime
from enum import Enum
from pydantic import Field

from bizfinder_api.schemas.base import CamelModel


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class PaymentGateway(str, Enum):
    MOMO = "momo"
    PAYOS = "payos"


# ── MoMo ───────────────────────────────────────────────────

class MomoCreateRequest(CamelModel):
    order_id: str = Field(..., min_length=1, max_length=64)
    amount: int = Field(..., gt=0)
    order_info: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    subscription_plan_id: int


class MomoCreateResponse(CamelModel):
    order_id: str
    result_code: int
    message: str
    pay_url: str | None = None


class MomoIPN(CamelModel):
    """Instant payment notification posted by MoMo (already camelCase)."""
    partner_code: str
    order_id: str
    request_id: str
    amount: int
    order_info: str
    order_type: str
    trans_id: int
    result_code: int
    message: str
    pay_type: str
    response_time: int
    extra_data: str = ""
    signature: str


# ── PayOS ──────────────────────────────────────────────────

class PayOSCreateRequest(CamelModel):
    order_code: int = Field(..., gt=0)
    amount: int = Field(..., gt=0)
    description: str = Field(..., min_length=1)
    return_url: str | None = None
    cancel_url: str | None = None
    user_id: str = Field(..., min_length=1)
    subscription_plan_id: int


class PayOSCreateResponse(CamelModel):
    success: bool
    checkout_url: str | None = None
    order_code: int


class PayOSWebhook(CamelModel):
    code: str
    desc: str
    success: bool | None = None
    data: dict
    signature: str


# ── Shared ─────────────────────────────────────────────────

class PaymentStatusResponse(CamelModel):
    order_id: str
    status: PaymentStatus
    subscription_plan_id: int
    amount: int


class PaymentResponse(CamelModel):
    order_id: str
    gateway: str
    user_id: str
    amount: int
    description: str | None
    status: str
    subscription_plan_id: int
    gateway_transaction_id: str | None
    created_at: datetime


class PaymentHistory(CamelModel):
    payments: list[PaymentResponse]
