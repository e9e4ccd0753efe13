"""Client gateway adapter tests (MoMo, PayOS, mock) against a fake backend."""

import json
from unittest.mock import AsyncMock

import pytest

from bizfinder_app.payments import FAILED, PENDING, SUCCESS, MockGateway, MomoGateway, PayOSGateway
from bizfinder_app.payments.payos import new_order_code
from conftest import FakeOpener, ScriptedPrompt


def _momo(client, prompt, opener=None, **kwargs):
    kwargs.setdefault("poll_interval", 3.0)
    kwargs.setdefault("poll_attempts", 2)
    kwargs.setdefault("sleep", AsyncMock())
    return MomoGateway(client, opener or FakeOpener(), prompt, **kwargs)


@pytest.mark.asyncio
async def test_momo_completed_and_confirmed(client, backend):
    opener = FakeOpener()
    gateway = _momo(client, ScriptedPrompt("completed"), opener)

    session = await gateway.initiate(199000, "Premium", "user_1", 2)
    backend.payment_statuses[session.order_id] = ["success"]
    outcome = await gateway.await_outcome(session)

    assert opener.opened == ["https://momo.test/pay"]
    assert session.order_id.startswith("ORDER_")
    assert outcome.status == SUCCESS
    assert outcome.order_id == session.order_id


@pytest.mark.asyncio
async def test_momo_check_pending_then_user_reports_failure(client, backend):
    prompt = ScriptedPrompt("check", "failed")
    gateway = _momo(client, prompt)

    session = await gateway.initiate(199000, "Premium", "user_1", 2)
    outcome = await gateway.await_outcome(session)

    assert prompt.asked == 2
    assert outcome.status == FAILED
    assert outcome.message == "Payment failed"


@pytest.mark.asyncio
async def test_momo_completed_but_still_pending_polls_then_gives_up(client, backend):
    sleep = AsyncMock()
    gateway = _momo(client, ScriptedPrompt("completed"), sleep=sleep, poll_attempts=3)

    session = await gateway.initiate(199000, "Premium", "user_1", 2)
    outcome = await gateway.await_outcome(session)

    assert outcome.status == PENDING
    assert sleep.await_count == 3
    sleep.assert_awaited_with(3.0)


@pytest.mark.asyncio
async def test_momo_completed_confirmed_after_polling(client, backend):
    gateway = _momo(client, ScriptedPrompt("completed"), poll_attempts=5)

    session = await gateway.initiate(199000, "Premium", "user_1", 2)
    backend.payment_statuses[session.order_id] = ["pending", "pending", "success"]
    outcome = await gateway.await_outcome(session)

    assert outcome.status == SUCCESS


@pytest.mark.asyncio
async def test_momo_rejected_order_is_failed_payment(client, backend):
    backend.momo_create = {"resultCode": 22, "message": "Amount out of range", "payUrl": None}
    gateway = _momo(client, ScriptedPrompt(), fallback=None)

    result = await gateway.pay(199000, "Premium", "user_1", 2)

    assert result["success"] is False
    assert "Amount out of range" in result["message"]


@pytest.mark.asyncio
async def test_momo_dev_fallback_to_mock(client, backend):
    backend.momo_create = {"resultCode": 99, "message": "Unknown error", "payUrl": None}
    prompt = ScriptedPrompt("completed")
    gateway = _momo(client, prompt, fallback=MockGateway(prompt))

    result = await gateway.pay(199000, "Premium", "user_1", 2)

    assert result["success"] is True
    assert result["orderId"].startswith("MOCK_ORDER_")


@pytest.mark.asyncio
async def test_momo_unopenable_url(client, backend):
    gateway = _momo(client, ScriptedPrompt(), FakeOpener(ok=False))

    outcome = await gateway.process(199000, "Premium", "user_1", 2)

    assert outcome.status == FAILED
    assert "Cannot open MoMo payment gateway" in outcome.message


@pytest.mark.asyncio
async def test_payos_polls_until_paid(client, backend):
    opener = FakeOpener()
    sleep = AsyncMock()
    gateway = PayOSGateway(client, opener, poll_interval=2.0, poll_attempts=5, sleep=sleep)

    session = await gateway.initiate(299000, "VIP", "user_1", 3)
    backend.payment_statuses[session.order_id] = ["pending", "success"]
    outcome = await gateway.await_outcome(session)

    assert outcome.status == SUCCESS
    assert sleep.await_count == 1
    assert opener.opened == ["https://pay.payos.test/link"]

    body = json.loads(next(
        r for r in backend.requests if r.url.path == "/api/payos/create-payment-link"
    ).content)
    assert body["returnUrl"] == "http://backend.test/api/payos/return?result=success"
    assert body["cancelUrl"] == "http://backend.test/api/payos/return?result=failed"
    assert body["subscriptionPlanId"] == 3


@pytest.mark.asyncio
async def test_payos_redirect_alone_is_not_success(client, backend):
    gateway = PayOSGateway(client, FakeOpener(), poll_attempts=3, sleep=AsyncMock())

    result = await gateway.pay(299000, "VIP", "user_1", 3)

    assert result["success"] is False
    assert result["pending"] is True


@pytest.mark.asyncio
async def test_payos_cancelled(client, backend):
    gateway = PayOSGateway(client, FakeOpener(), poll_attempts=3, sleep=AsyncMock())

    session = await gateway.initiate(299000, "VIP", "user_1", 3)
    backend.payment_statuses[session.order_id] = ["failed"]
    outcome = await gateway.await_outcome(session)

    assert outcome.status == FAILED


def test_order_code_is_at_most_nine_digits():
    for _ in range(50):
        code = new_order_code()
        assert 0 < code < 1_000_000_000


@pytest.mark.asyncio
async def test_mock_gateway_choices():
    gateway = MockGateway(ScriptedPrompt("failed", "check"))
    session = await gateway.initiate(1000, "demo", "user_1", 2)

    assert (await gateway.await_outcome(session)).message == "Demo payment failed"
    assert (await gateway.await_outcome(session)).message == "Payment cancelled"
