"""Client error hierarchy."""


class BizFinderError(Exception):
    """Base class for client-side failures."""


class ApiError(BizFinderError):
    """Backend answered with a non-2xx status or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationFailed(BizFinderError):
    pass


class AuthenticationRequired(BizFinderError):
    pass


class AlreadySubscribed(BizFinderError):
    pass


class DowngradeNotAllowed(BizFinderError):
    pass


class PlanLimitReached(BizFinderError):
    pass


class GatewayUnavailable(BizFinderError):
    """A payment could not be started (rejected order, unopenable checkout URL)."""
