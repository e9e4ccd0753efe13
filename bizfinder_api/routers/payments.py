"""
MoMo wallet payment endpoints.

Flow:
  create-payment → MoMo captureWallet order, Payment row stays PENDING
  momo/ipn       → signed callback moves the Payment to SUCCESS/FAILED and
                   applies the role transition
  status         → polled by the app; a PENDING payment is refreshed from MoMo
"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizfinder_api.config import settings
from bizfinder_api.db.database import get_db
from bizfinder_api.models.payment import Payment
from bizfinder_api.schemas.payment import (
    MomoCreateRequest, MomoCreateResponse, MomoIPN,
    PaymentHistory, PaymentResponse, PaymentStatusResponse,
)
from bizfinder_api.services import momo
from bizfinder_api.services.errors import GatewayError, IdentityError
from bizfinder_api.services.plans import validate_paid_plan
from bizfinder_api.services.subscriptions import settle_payment

router = APIRouter()
logger = logging.getLogger(__name__)


async def get_payment_or_404(order_id: str, db: AsyncSession) -> Payment:
    result = await db.execute(select(Payment).where(Payment.order_id == order_id))
    payment = result.scalar_one_or_none()
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return payment


async def settle_quietly(payment: Payment) -> None:
    """Role transition from a status poll; the app writes the same change itself."""
    try:
        await settle_payment(payment)
    except IdentityError as e:
        logger.warning("Role transition deferred for order %s: %s", payment.order_id, e)


def status_response(payment: Payment) -> PaymentStatusResponse:
    return PaymentStatusResponse(
        order_id=payment.order_id,
        status=payment.status,
        subscription_plan_id=payment.subscription_plan_id,
        amount=payment.amount,
    )


@router.post("/create-payment", response_model=MomoCreateResponse)
async def create_payment(data: MomoCreateRequest, db: AsyncSession = Depends(get_db)):
    """Create a MoMo order for a paid subscription plan."""
    try:
        validate_paid_plan(data.subscription_plan_id, data.amount)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    existing = await db.execute(select(Payment.id).where(Payment.order_id == data.order_id))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="Order id already used")

    payment = Payment(
        order_id=data.order_id,
        gateway="momo",
        user_id=data.user_id,
        amount=data.amount,
        description=data.order_info,
        status="pending",
        subscription_plan_id=data.subscription_plan_id,
    )
    db.add(payment)
    await db.commit()

    try:
        result = await momo.create_payment(data.order_id, data.amount, data.order_info)
    except GatewayError as e:
        payment.status = "failed"
        await db.commit()
        logger.warning("MoMo create failed: order=%s error=%s", data.order_id, e)
        raise HTTPException(status_code=502, detail="Payment gateway unavailable")

    result_code = int(result.get("resultCode", -1))
    payment.result_code = result_code
    payment.checkout_url = result.get("payUrl")
    if result_code != momo.RESULT_SUCCESS:
        payment.status = "failed"
    await db.commit()

    return MomoCreateResponse(
        order_id=data.order_id,
        result_code=result_code,
        message=result.get("message", ""),
        pay_url=result.get("payUrl"),
    )


@router.get("/status/{order_id}", response_model=PaymentStatusResponse)
async def payment_status(order_id: str, db: AsyncSession = Depends(get_db)):
    """Current payment state; pending MoMo orders are re-queried."""
    payment = await get_payment_or_404(order_id, db)
    if payment.status != "pending" or payment.gateway != "momo":
        return status_response(payment)

    try:
        result = await momo.query_status(order_id)
    except GatewayError as e:
        logger.warning("MoMo status query failed: order=%s error=%s", order_id, e)
        return status_response(payment)

    result_code = int(result.get("resultCode", -1))
    new_status = momo.status_from_result_code(result_code)
    if new_status != payment.status:
        payment.status = new_status
        payment.result_code = result_code
        if result.get("transId"):
            payment.gateway_transaction_id = str(result["transId"])
        await db.commit()
        logger.info("Payment %s → %s (resultCode=%s)", order_id, new_status, result_code)
        await settle_quietly(payment)

    return status_response(payment)


@router.post("/momo/ipn", status_code=204)
async def momo_ipn(ipn: MomoIPN, db: AsyncSession = Depends(get_db)):
    """MoMo instant payment notification."""
    if not momo.verify_ipn(ipn.model_dump(by_alias=True)):
        logger.warning("MoMo IPN with bad signature: order=%s", ipn.order_id)
        raise HTTPException(status_code=401, detail="Invalid signature")

    payment = await get_payment_or_404(ipn.order_id, db)
    if ipn.amount != payment.amount:
        logger.warning(
            "MoMo IPN amount mismatch: order=%s expected=%s got=%s",
            ipn.order_id, payment.amount, ipn.amount,
        )
        raise HTTPException(status_code=400, detail="Amount mismatch")

    new_status = momo.status_from_result_code(ipn.result_code)
    payment.status = new_status
    payment.result_code = ipn.result_code
    payment.gateway_transaction_id = str(ipn.trans_id)
    await db.commit()
    logger.info("MoMo IPN: order=%s resultCode=%s → %s", ipn.order_id, ipn.result_code, new_status)

    try:
        await settle_payment(payment)
    except IdentityError as e:
        # MoMo retries the IPN on a non-2xx answer
        raise HTTPException(status_code=502, detail=str(e))
    return Response(status_code=204)


@router.get("/momo/return")
async def momo_return(request: Request):
    """Browser landing page after the MoMo app; hands control back to the app."""
    params = request.query_params
    order_id = params.get("orderId", "")
    try:
        result_code = int(params.get("resultCode", "-1"))
    except ValueError:
        result_code = -1

    status = momo.status_from_result_code(result_code)
    scheme = settings.APP_SCHEME
    if status == "success":
        target = f"{scheme}://payment-success?orderId={order_id}"
    elif status == "pending":
        target = f"{scheme}://payment-success?status=pending&orderId={order_id}"
    else:
        target = f"{scheme}://payment-cancel?orderId={order_id}"
    return RedirectResponse(url=target, status_code=302)


# ── History ────────────────────────────────────────────────

@router.get("/history/all", response_model=PaymentHistory)
async def all_payments(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Payment).order_by(Payment.created_at.desc(), Payment.id.desc()))
    return PaymentHistory(payments=[PaymentResponse.model_validate(p) for p in result.scalars().all()])


@router.get("/history/{user_id}", response_model=PaymentHistory)
async def user_payments(user_id: str, db: AsyncSession = Depends(get_db)):
    """Payments of one user, newest first."""
    result = await db.execute(
        select(Payment)
        .where(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
    )
    return PaymentHistory(payments=[PaymentResponse.model_validate(p) for p in result.scalars().all()])
