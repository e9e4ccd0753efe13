"""Shared fixtures: in-memory database, API client and a fake backend for client-side tests."""

import json
import os
import re

os.environ.setdefault("CLERK_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("PUBLIC_BASE_URL", "https://api.bizfinder.test/")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("MOMO_ACCESS_KEY", "momo-access")
os.environ.setdefault("MOMO_SECRET_KEY", "momo-secret")
os.environ.setdefault("PAYOS_CHECKSUM_KEY", "payos-checksum")
os.environ.setdefault("BACKEND_URL", "http://backend.test")
# base64("clerk.bizfinder.test$")
os.environ.setdefault("CLERK_PUBLISHABLE_KEY", "pk_test_Y2xlcmsuYml6ZmluZGVyLnRlc3Qk")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import bizfinder_api.models  # noqa: F401
from bizfinder_api.db.database import Base, get_db
from bizfinder_api.main import app
from bizfinder_app.api_client import BackendClient
from bizfinder_app.identity import UserSession
from bizfinder_app.payments import PaymentGateway, PaymentOutcome, PaymentSession


# ── API side ───────────────────────────────────────────────

@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def api(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


# ── Client side ────────────────────────────────────────────

PLANS = [
    {"id": 1, "name": "Basic Owner", "price": 0, "businessLimit": 3},
    {"id": 2, "name": "Premium Owner", "price": 199000, "businessLimit": 10},
    {"id": 3, "name": "VIP Owner", "price": 299000, "businessLimit": None},
]


class FakeBackend:
    """In-memory stand-in for the REST backend, served through httpx.MockTransport."""

    def __init__(self):
        self.users: dict[str, dict] = {}
        self.businesses: list[dict] = []
        self.payment_statuses: dict[str, list[str]] = {}
        self.momo_create = {"resultCode": 0, "message": "Successful.", "payUrl": "https://momo.test/pay"}
        self.payos_create = {"success": True, "checkoutUrl": "https://pay.payos.test/link"}
        self.requests: list[httpx.Request] = []

    def add_user(self, user_id: str, **metadata) -> dict:
        self.users[user_id] = {"id": user_id, "email": f"{user_id}@example.com", "unsafeMetadata": metadata}
        return self.users[user_id]

    def metadata_writes(self) -> list[dict]:
        return [
            json.loads(r.content) for r in self.requests
            if r.method == "PATCH" and r.url.path.endswith("/metadata")
        ]

    def _next_status(self, order_id: str) -> str:
        queue = self.payment_statuses.get(order_id) or ["pending"]
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if m := re.fullmatch(r"/api/clerk/users/([^/]+)", path):
            user = self.users.get(m.group(1))
            if user is None:
                return httpx.Response(404, json={"detail": "User not found"})
            return httpx.Response(200, json=user)
        if m := re.fullmatch(r"/api/clerk/users/([^/]+)/metadata", path):
            user = self.users[m.group(1)]
            user["unsafeMetadata"] = json.loads(request.content)["unsafeMetadata"]
            return httpx.Response(200, json=user)
        if path == "/api/subscriptions/plans":
            return httpx.Response(200, json=PLANS)
        if path == "/api/payment/create-payment":
            body = json.loads(request.content)
            self.payment_statuses.setdefault(body["orderId"], ["pending"])
            return httpx.Response(200, json={"orderId": body["orderId"], **self.momo_create})
        if m := re.fullmatch(r"/api/payment/status/(.+)", path):
            return httpx.Response(200, json={"orderId": m.group(1), "status": self._next_status(m.group(1))})
        if path == "/api/payos/create-payment-link":
            body = json.loads(request.content)
            return httpx.Response(200, json={"orderCode": body["orderCode"], **self.payos_create})
        if m := re.fullmatch(r"/api/payos/status/(\d+)", path):
            return httpx.Response(200, json={"orderId": m.group(1), "status": self._next_status(m.group(1))})
        if m := re.fullmatch(r"/api/businesses/owner/(.+)", path):
            return httpx.Response(200, json=[b for b in self.businesses if b["ownerId"] == m.group(1)])
        if path == "/api/businesses/" and request.method == "POST":
            body = json.loads(request.content)
            created = {"id": f"biz-{len(self.businesses) + 1}", "viewCount": 0, "rating": 0.0, **body}
            self.businesses.append(created)
            return httpx.Response(201, json=created)
        if path == "/api/businesses/" and request.method == "GET":
            return httpx.Response(200, json=self.businesses)
        return httpx.Response(404, json={"detail": "Not Found"})


@pytest.fixture
def backend():
    return FakeBackend()


@pytest_asyncio.fixture
async def client(backend):
    http = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler), base_url="http://backend.test")
    async with BackendClient("http://backend.test", http=http) as c:
        yield c


@pytest_asyncio.fixture
async def make_session(backend, client):
    async def _make(user_id: str = "user_1", **metadata) -> UserSession:
        backend.add_user(user_id, **metadata)
        return await UserSession.load(client, user_id)
    return _make


class FakeGateway(PaymentGateway):
    """Gateway that resolves to a fixed outcome and records what it saw."""

    def __init__(self, outcome: PaymentOutcome, name: str = "momo", on_process=None):
        self.outcome = outcome
        self.name = name
        self.on_process = on_process
        self.calls: list[tuple] = []

    async def initiate(self, amount, description, user_id, plan_id) -> PaymentSession:
        self.calls.append((amount, description, user_id, plan_id))
        if self.on_process is not None:
            self.on_process()
        return PaymentSession(gateway=self.name, order_id=self.outcome.order_id or "", amount=amount, plan_id=plan_id)

    async def await_outcome(self, session: PaymentSession) -> PaymentOutcome:
        return self.outcome


class ScriptedPrompt:
    """Confirmation prompt answering from a fixed script."""

    def __init__(self, *answers: str):
        self.answers = list(answers)
        self.asked = 0

    async def ask(self, session) -> str:
        self.asked += 1
        return self.answers.pop(0)


class FakeOpener:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.opened: list[str] = []

    async def open(self, url: str) -> bool:
        self.opened.append(url)
        return self.ok
