from typing import Any, Dict, Optional


class RateServiceError(Exception):
    """Base exception for all rate pipeline errors.

    ``code`` is the classified failure kind returned to callers, ``details``
    holds client-safe context only (never a full carrier payload).
    """

    code = "internal"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if code:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ValidationError(RateServiceError):
    """Raised when a request is missing a field or carries a malformed value."""
    code = "invalid-argument"


class UnsupportedCarrierError(ValidationError):
    """Raised when a carrier code has no registered adapter."""
    pass


class AuthenticationError(RateServiceError):
    """Raised when the internal caller's API key is missing or invalid."""
    code = "unauthenticated"


class ConfigurationError(RateServiceError):
    """Raised when carrier credentials or endpoints are missing."""
    code = "internal"


class TransportError(RateServiceError):
    """Raised on network failure, timeout or a non-2xx carrier response."""
    code = "internal"

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.status_code = status_code


class UnavailableError(TransportError):
    """Raised when the carrier endpoint reports temporary unavailability (503)."""
    code = "unavailable"


class BusinessError(RateServiceError):
    """Raised when the carrier accepted the call but flagged it as failed."""
    code = "failed-precondition"


class CarrierAuthenticationError(BusinessError):
    """Raised when the carrier rejects our stored credentials."""
    pass


class CarrierResponseError(RateServiceError):
    """Raised when a carrier response is malformed or missing required data."""
    code = "internal"


class NoRatesError(CarrierResponseError):
    """Raised when a successful carrier response yields zero rates."""
    pass
