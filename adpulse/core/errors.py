"""
Error types raised across AdPulse.

Every error carries the HTTP status the API layer should answer with.
"""

from typing import Optional


class AdPulseError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


# Graph error codes for throttling and temporary outages
GRAPH_TRANSIENT_ERROR_CODES = frozenset({1, 2, 4, 17, 32, 341, 613})
GRAPH_BUSINESS_THROTTLE_CODES = range(80000, 80015)


class MetaApiError(AdPulseError):
    """
    Raised when the Meta Graph API answers with an error or cannot be reached.

    ``status`` is the normalized status reported to callers. ``http_status``
    is the status Graph actually answered with (None when no response
    arrived) and ``error_code`` the embedded Graph error code, if any.
    """

    def __init__(
        self,
        message: str,
        status: int = 500,
        http_status: Optional[int] = None,
        error_code: Optional[int] = None,
    ):
        super().__init__(message, status_code=status)
        self.http_status = http_status
        self.error_code = error_code

    @property
    def status(self) -> int:
        return self.status_code

    @property
    def is_transient(self) -> bool:
        """Throttling, server-side failures and lost connections are worth retrying."""
        if self.error_code in GRAPH_TRANSIENT_ERROR_CODES or self.error_code in GRAPH_BUSINESS_THROTTLE_CODES:
            return True
        observed = self.http_status if self.http_status is not None else self.status_code
        return observed == 429 or observed >= 500


class MissingIntegrationError(AdPulseError):
    """Raised when the tenant has no stored or decryptable Meta access token."""

    status_code = 400


class MissingConfigurationError(AdPulseError):
    """Raised when no Meta app secret is available for appsecret_proof."""

    status_code = 500


class ValidationError(AdPulseError):
    """Raised for malformed date ranges or filter parameters."""

    status_code = 400


class AccountNotFoundError(AdPulseError):
    """Raised when an ad account does not belong to the current tenant."""

    status_code = 404
