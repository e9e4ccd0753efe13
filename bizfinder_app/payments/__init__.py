"""Payment gateway adapters used by the subscription flow."""

from .base import (
    FAILED,
    PENDING,
    SUCCESS,
    ConfirmationPrompt,
    PaymentGateway,
    PaymentOutcome,
    PaymentSession,
    UrlOpener,
)
from .mock import MockGateway
from .momo import MomoGateway
from .payos import PayOSGateway

__all__ = [
    "FAILED",
    "PENDING",
    "SUCCESS",
    "ConfirmationPrompt",
    "PaymentGateway",
    "PaymentOutcome",
    "PaymentSession",
    "UrlOpener",
    "MockGateway",
    "MomoGateway",
    "PayOSGateway",
]
