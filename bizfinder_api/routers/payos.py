"""PayOS checkout-link payment endpoints."""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bizfinder_api.config import settings
from bizfinder_api.db.database import get_db
from bizfinder_api.models.payment import Payment
from bizfinder_api.routers.payments import get_payment_or_404, settle_quietly, status_response
from bizfinder_api.schemas.payment import (
    PayOSCreateRequest, PayOSCreateResponse, PayOSWebhook, PaymentStatusResponse,
)
from bizfinder_api.services import payos
from bizfinder_api.services.errors import GatewayError, IdentityError
from bizfinder_api.services.plans import validate_paid_plan
from bizfinder_api.services.subscriptions import settle_payment

router = APIRouter()
logger = logging.getLogger(__name__)


def _default_return_url(result: str) -> str:
    return f"{settings.public_base_url}/api/payos/return?result={result}"


async def _refresh_from_gateway(payment: Payment, db: AsyncSession) -> None:
    """Pull the link status from PayOS and persist a changed outcome."""
    try:
        info = await payos.get_payment(int(payment.order_id))
    except GatewayError as e:
        logger.warning("PayOS lookup failed: orderCode=%s error=%s", payment.order_id, e)
        return

    new_status = payos.status_from_payos(info.get("status"))
    if new_status == payment.status:
        return
    payment.status = new_status
    transactions = info.get("transactions") or []
    if transactions and transactions[0].get("reference"):
        payment.gateway_transaction_id = str(transactions[0]["reference"])
    await db.commit()
    logger.info("PayOS payment %s → %s (%s)", payment.order_id, new_status, info.get("status"))
    await settle_quietly(payment)


@router.post("/create-payment-link", response_model=PayOSCreateResponse)
async def create_payment_link(data: PayOSCreateRequest, db: AsyncSession = Depends(get_db)):
    try:
        validate_paid_plan(data.subscription_plan_id, data.amount)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    order_id = str(data.order_code)
    existing = await db.execute(select(Payment.id).where(Payment.order_id == order_id))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=409, detail="Order code already used")

    payment = Payment(
        order_id=order_id,
        gateway="payos",
        user_id=data.user_id,
        amount=data.amount,
        description=data.description,
        status="pending",
        subscription_plan_id=data.subscription_plan_id,
    )
    db.add(payment)
    await db.commit()

    try:
        link = await payos.create_payment_link(
            data.order_code,
            data.amount,
            data.description,
            data.return_url or _default_return_url("success"),
            data.cancel_url or _default_return_url("failed"),
        )
    except GatewayError as e:
        payment.status = "failed"
        await db.commit()
        logger.warning("PayOS link failed: orderCode=%s error=%s", data.order_code, e)
        raise HTTPException(status_code=502, detail="Payment gateway unavailable")

    payment.checkout_url = link.get("checkoutUrl")
    if link.get("paymentLinkId"):
        payment.gateway_transaction_id = str(link["paymentLinkId"])
    await db.commit()

    return PayOSCreateResponse(
        success=True, checkout_url=payment.checkout_url, order_code=data.order_code,
    )


@router.get("/return")
async def payos_return(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Landing page for PayOS return/cancel URLs.

    ``result`` is ours; PayOS appends its own ``orderCode``, ``status`` and
    ``cancel`` parameters. A success redirect is only trusted after PayOS
    confirms the link is PAID.
    """
    params = request.query_params
    scheme = settings.APP_SCHEME
    order_code = params.get("orderCode", "")
    cancelled = params.get("result") == "failed" or params.get("cancel") == "true"

    payment = None
    if order_code:
        result = await db.execute(select(Payment).where(Payment.order_id == order_code))
        payment = result.scalar_one_or_none()
    if payment is None:
        logger.warning("PayOS return for unknown orderCode=%r", order_code)
        return RedirectResponse(url=f"{scheme}://payment-cancel", status_code=302)

    if cancelled:
        if payment.status == "pending":
            payment.status = "failed"
            await db.commit()
            logger.info("PayOS payment %s cancelled by user", order_code)
            await settle_quietly(payment)
        return RedirectResponse(url=f"{scheme}://payment-cancel?orderId={order_code}", status_code=302)

    if payment.status == "pending":
        await _refresh_from_gateway(payment, db)

    if payment.status == "success":
        target = f"{scheme}://payment-success?orderId={order_code}"
    elif payment.status == "pending":
        target = f"{scheme}://payment-success?status=pending&orderId={order_code}"
    else:
        target = f"{scheme}://payment-cancel?orderId={order_code}"
    return RedirectResponse(url=target, status_code=302)


@router.post("/webhook")
async def payos_webhook(body: PayOSWebhook, db: AsyncSession = Depends(get_db)):
    """PayOS payment webhook; ``data`` carries the signed payment details."""
    if not payos.verify_webhook(body.data, body.signature):
        logger.warning("PayOS webhook with bad signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    order_code = body.data.get("orderCode")
    result = await db.execute(select(Payment).where(Payment.order_id == str(order_code)))
    payment = result.scalar_one_or_none()
    if payment is None:
        # PayOS sends a test delivery when the webhook URL is registered
        logger.info("PayOS webhook for unknown orderCode=%s", order_code)
        return {"success": True}

    paid = body.code == payos.CODE_SUCCESS and body.data.get("code", payos.CODE_SUCCESS) == payos.CODE_SUCCESS
    if paid and int(body.data.get("amount", 0)) != payment.amount:
        logger.warning(
            "PayOS webhook amount mismatch: orderCode=%s expected=%s got=%s",
            order_code, payment.amount, body.data.get("amount"),
        )
        raise HTTPException(status_code=400, detail="Amount mismatch")

    payment.status = "success" if paid else "failed"
    if body.data.get("reference"):
        payment.gateway_transaction_id = str(body.data["reference"])
    await db.commit()
    logger.info("PayOS webhook: orderCode=%s code=%s → %s", order_code, body.code, payment.status)

    try:
        await settle_payment(payment)
    except IdentityError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"success": True}


@router.get("/status/{order_code}", response_model=PaymentStatusResponse)
async def payos_status(order_code: int, db: AsyncSession = Depends(get_db)):
    payment = await get_payment_or_404(str(order_code), db)
    if payment.status == "pending" and payment.gateway == "payos":
        await _refresh_from_gateway(payment, db)
    return status_response(payment)
