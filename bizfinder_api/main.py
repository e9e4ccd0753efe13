"""
BizFinder FastAPI Backend
Local business directory with owner subscriptions (MoMo / PayOS).
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bizfinder_api.db.database import engine, init_models
from bizfinder_api.logging_setup import configure_logging
from bizfinder_api.routers import admin, businesses, identity, payments, payos, plans

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    configure_logging("bizfinder-api")
    await init_models()
    logger.info("BizFinder API starting")
    yield
    await engine.dispose()
    logger.info("BizFinder API shut down")


app = FastAPI(
    title="BizFinder API",
    description="Business directory, identity proxy and subscription payments",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ───────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ────────────────────────────────────────────────
app.include_router(businesses.router, prefix="/api/businesses", tags=["Businesses"])
app.include_router(plans.router, prefix="/api/subscriptions", tags=["Subscriptions"])
app.include_router(identity.router, prefix="/api/clerk", tags=["Identity"])
app.include_router(payments.router, prefix="/api/payment", tags=["MoMo Payments"])
app.include_router(payos.router, prefix="/api/payos", tags=["PayOS Payments"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin Dashboard"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "BizFinder API"}
