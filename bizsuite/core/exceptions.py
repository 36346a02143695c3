"""
Domain exceptions for the authentication, routing and billing core

Each exception carries the HTTP status and the public detail it is mapped to.
The mapping happens once, in the FastAPI exception handler registered by
``bizsuite.main``; the internal message is only ever logged.
"""

from fastapi import status


class CoreError(Exception):
    """Base class for errors raised by the core"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_detail: str = "Internal server error"
    headers: dict = {}

    def __init__(self, message: str = ""):
        super().__init__(message or self.public_detail)
        self.message = message or self.public_detail


# Authentication failures

class AuthenticationError(CoreError):
    """Caller could not be authenticated"""

    status_code = status.HTTP_401_UNAUTHORIZED
    public_detail = "Invalid or missing token"
    headers = {"WWW-Authenticate": "Bearer"}
    reason = "unauthenticated"


class MissingToken(AuthenticationError):
    reason = "missing_token"


class InvalidToken(AuthenticationError):
    """Malformed, expired, wrongly signed or wrong-domain token"""

    reason = "invalid_token"


class TenantNotFound(AuthenticationError):
    public_detail = "Tenant not found or inactive"
    reason = "tenant_not_found"


class TenantInactive(AuthenticationError):
    public_detail = "Tenant not found or inactive"
    reason = "tenant_inactive"


class InactivePrincipal(AuthenticationError):
    public_detail = "Invalid or inactive user"
    reason = "inactive_principal"


class TenantMismatch(AuthenticationError):
    """Principal belongs to a different tenant than the one resolved for the request"""

    public_detail = "Invalid or inactive user"
    reason = "tenant_mismatch"


class InvalidCredentials(AuthenticationError):
    public_detail = "Invalid credentials"
    reason = "invalid_credentials"


# Authorization failures

class InsufficientRole(CoreError):
    status_code = status.HTTP_403_FORBIDDEN
    public_detail = "Insufficient permissions"
    reason = "insufficient_role"


# Infrastructure failures

class StoreUnavailable(CoreError):
    """Pool creation or a store query failed or timed out"""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    public_detail = "Service temporarily unavailable"


class HashingTimeout(CoreError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    public_detail = "Service temporarily unavailable"


class RecordConflict(CoreError):
    """A unique constraint rejected the write"""

    status_code = status.HTTP_409_CONFLICT
    public_detail = "Record already exists"

    def __init__(self, message: str = ""):
        super().__init__(message)
        if message:
            self.public_detail = message


class SeatLimitReached(CoreError):
    """Tenant already has as many users as its plan allows"""

    status_code = status.HTTP_400_BAD_REQUEST
    public_detail = "User limit reached"

    def __init__(self, message: str = ""):
        super().__init__(message)
        if message:
            self.public_detail = message


class BillingUnavailable(CoreError):
    """Billing provider could not be reached, timed out or is not configured"""

    status_code = status.HTTP_502_BAD_GATEWAY
    public_detail = "Billing provider unavailable"


class BillingError(BillingUnavailable):
    """Billing provider answered with an error response"""

    def __init__(self, message: str = "", provider_status: int = 0):
        super().__init__(message)
        self.provider_status = provider_status
