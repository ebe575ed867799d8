"""Error types surfaced by CreditDesk services and routes."""

from typing import Optional


class CreditDeskError(Exception):
    """Base class for errors that map onto an HTTP response."""

    http_status = 500
    default_message = "Internal error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigurationError(CreditDeskError):
    """A required setting (usually a secret) is missing at first use."""

    default_message = "Service is not configured"


class AuthenticationRequiredError(CreditDeskError):
    http_status = 401
    default_message = "Not authenticated"


class AlreadyCompletedError(CreditDeskError):
    """The requested action has nothing left to do (e.g. email already verified)."""

    http_status = 400
    default_message = "Already completed"


class UpstreamServiceError(CreditDeskError):
    """A call into the billing provider failed.

    Raise with ``from exc`` so the provider's exception stays attached as ``__cause__``.
    """

    http_status = 502
    default_message = "Billing provider request failed"


class WebhookSignatureError(CreditDeskError):
    http_status = 400
    default_message = "Invalid signature"
