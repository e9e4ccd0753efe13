"""API configuration from environment variables.

CLERK_SECRET_KEY and PUBLIC_BASE_URL are required; the process refuses to
start without them.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Identity provider (required)
    CLERK_SECRET_KEY: str
    CLERK_API_URL: str = "https://api.clerk.com/v1"

    # Externally reachable base URL of this backend (required)
    PUBLIC_BASE_URL: str

    DATABASE_URL: str = "postgresql+asyncpg://bizfinder:bizfinder@db:5432/bizfinder"
    REDIS_URL: str = "redis://redis:6379/0"
    GEOAPIFY_API_KEY: str | None = None

    # MoMo wallet gateway
    MOMO_PARTNER_CODE: str = "MOMO"
    MOMO_ACCESS_KEY: str = ""
    MOMO_SECRET_KEY: str = ""
    MOMO_ENDPOINT: str = "https://test-payment.momo.vn/v2/gateway/api"

    # PayOS checkout-link gateway
    PAYOS_CLIENT_ID: str = ""
    PAYOS_API_KEY: str = ""
    PAYOS_CHECKSUM_KEY: str = ""
    PAYOS_ENDPOINT: str = "https://api-merchant.payos.vn/v2"

    # Deep link scheme of the mobile app
    APP_SCHEME: str = "app"

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "/data/logs"

    class Config:
        env_file = ".env"
        extra = "allow"

    @property
    def public_base_url(self) -> str:
        return self.PUBLIC_BASE_URL.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
