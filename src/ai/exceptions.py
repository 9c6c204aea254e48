"""
AI Service Exceptions

This module contains the exception class raised by providers and the
translation service. Separated to avoid circular imports between service.py
and providers.py.
"""

# Error codes carried by TranslationError.code
MISSING_API_KEY = "missing_api_key"
MISSING_MODEL = "missing_model"
UNKNOWN_PROVIDER = "unknown_provider"
MALFORMED_RESPONSE = "malformed_response"
RATE_LIMITED = "rate_limited"
QUOTA_EXCEEDED = "quota_exceeded"
INVALID_CREDENTIALS = "invalid_credentials"
BACKEND_UNAVAILABLE = "backend_unavailable"
UNKNOWN_HTTP_ERROR = "unknown_http_error"

ERROR_CODES = (
    MISSING_API_KEY,
    MISSING_MODEL,
    UNKNOWN_PROVIDER,
    MALFORMED_RESPONSE,
    RATE_LIMITED,
    QUOTA_EXCEEDED,
    INVALID_CREDENTIALS,
    BACKEND_UNAVAILABLE,
    UNKNOWN_HTTP_ERROR,
)


class TranslationError(Exception):
    """Translation service error with optional code and details."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": str(self), "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload
