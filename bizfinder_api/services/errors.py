"""Errors raised by outbound service clients."""


class GatewayError(Exception):
    """Payment gateway unreachable or rejected the request."""


class IdentityError(Exception):
    """Identity provider unreachable or returned an error."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
