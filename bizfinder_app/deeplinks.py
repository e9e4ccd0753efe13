"""Deep-link routing: OAuth callback and payment return links."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from urllib.parse import parse_qs, urlsplit

from bizfinder_app.config import settings
from bizfinder_app.errors import AuthenticationRequired, BizFinderError
from bizfinder_app.identity import UserSession
from bizfinder_app.network import retry_with_backoff
from bizfinder_app.subscription import Notifier, Toast

logger = logging.getLogger(__name__)

SESSION_RETRIES = 15
SESSION_BASE_DELAY = 0.5
SESSION_MAX_DELAY = 1.5


class DeepLinkHandler:
    """
    Turns an incoming ``app://...`` URL into side effects and a route name.

    ``session_loader`` establishes the user session after an OAuth redirect
    when none exists yet.
    """

    def __init__(
        self,
        notifier: Notifier,
        session: UserSession | None = None,
        session_loader: Callable[[], Awaitable[UserSession]] | None = None,
        *,
        retries: int = SESSION_RETRIES,
        base_delay: float = SESSION_BASE_DELAY,
        max_delay: float = SESSION_MAX_DELAY,
        sleep=asyncio.sleep,
    ):
        self.notifier = notifier
        self.session = session
        self.session_loader = session_loader
        self.retries = retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    async def handle(self, url: str) -> str | None:
        logger.info("Deep link received: %s", url)
        parts = urlsplit(url)
        target = parts.netloc or parts.path.lstrip("/")
        query = parse_qs(parts.query)

        if (parts.scheme == settings.APP_SCHEME and target == "callback") or "oauth" in url:
            return await self._oauth_callback()
        if parts.scheme != settings.APP_SCHEME:
            return None
        if target == "payment-success":
            return self._payment_success(query.get("status", [""])[0])
        if target == "payment-cancel":
            return await self._payment_cancel()
        return None

    async def _establish_session(self) -> UserSession:
        if self.session is None:
            if self.session_loader is None:
                raise AuthenticationRequired("No user session yet")
            self.session = await self.session_loader()
        await self.session.reload()
        return self.session

    async def _oauth_callback(self) -> str | None:
        try:
            session = await retry_with_backoff(
                self._establish_session, self.retries, self.base_delay,
                max_delay=self.max_delay, retry_on=(BizFinderError,), sleep=self._sleep,
            )
        except BizFinderError as e:
            logger.warning("OAuth callback: no user session after %d attempts: %s", self.retries, e)
            return None
        return "tabs" if session.onboarding_completed else "complete-account"

    def _payment_success(self, status: str) -> str:
        if status == "pending":
            self.notifier.show(Toast(
                "info", "Payment Pending",
                "Your payment is being processed. Your plan will activate shortly.",
            ))
        else:
            self.notifier.show(Toast("success", "Payment Successful!", "Your subscription is now active!"))
        return "my-business"

    async def _payment_cancel(self) -> str:
        if self.session is not None:
            try:
                await self.session.update(unsafe_metadata={
                    **self.session.unsafe_metadata,
                    "role": "client",
                    "subscription": None,
                })
                await self.session.reload()
                logger.info("User %s reverted to client after cancelled payment", self.session.id)
            except BizFinderError as e:
                logger.error("Failed to revert user role: %s", e)
        self.notifier.show(Toast(
            "error", "Payment Failed",
            "Your payment was cancelled or failed. Role reverted to client.",
        ))
        return "subscription"
