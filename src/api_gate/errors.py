"""Error types for the gate, the stores and the dashboard."""

from typing import Optional


class GateError(Exception):
    """Error rendered as an HTTP response by the application's exception handler."""

    status_code: int = 500
    error_type: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingCredential(GateError):
    status_code = 403
    error_type = "missing_credential"
    default_message = (
        "API key is required. Provide it as 'api' query parameter "
        "or authenticate via /auth page."
    )


class InvalidCredential(GateError):
    status_code = 403
    error_type = "invalid_credential"
    default_message = "Invalid or inactive API key"


class NotConfigured(GateError):
    status_code = 403
    error_type = "not_configured"
    default_message = (
        "Master API key not configured. Set MASTER_API_KEY environment variable."
    )


class LoginRequired(GateError):
    """Browser navigation without a credential; answered with a redirect."""

    status_code = 302
    error_type = "login_required"
    default_message = "Authentication required"

    def __init__(self, location: str, message: Optional[str] = None):
        self.location = location
        super().__init__(message)


class InternalError(GateError):
    pass


class InvalidQuery(GateError):
    status_code = 400
    error_type = "invalid_request"
    default_message = "Invalid query parameters"


class NotFound(GateError):
    status_code = 404
    error_type = "not_found"
    default_message = "Not found"


# =============================================================================
# Storage errors
# =============================================================================


class StoreError(Exception):
    """Base class for persistence failures."""


class StoreUnavailable(StoreError):
    """The backend could not complete the operation."""


class ConflictError(StoreError):
    """A record with the same unique token already exists."""


class StoreTimeout(StoreError):
    """The operation ran past its deadline and was rolled back."""
