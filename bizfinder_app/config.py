"""Client configuration from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Required: the app cannot start without a backend and an identity key
    BACKEND_URL: str
    CLERK_PUBLISHABLE_KEY: str

    APP_SCHEME: str = "app"
    PAYMENT_POLL_INTERVAL: float = 3.0
    PAYMENT_POLL_ATTEMPTS: int = 5
    REQUEST_TIMEOUT: float = 10.0
    DEV_MODE: bool = False

    class Config:
        env_file = ".env"
        extra = "allow"

    @property
    def backend_url(self) -> str:
        return self.BACKEND_URL.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
