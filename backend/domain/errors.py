"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes and the
{ "success": false, "error": "...", "code": "..." } envelope by the
exception handlers in main.py. Messages are short and user-facing; raw
provider payloads belong in server logs, never in `message`.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    code = "domain_error"

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class UnauthenticatedError(DomainError):
    """No authenticated session (401)."""
    code = "unauthenticated"

    def __init__(self, message: str = "Authentication required", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class InvalidRequestError(DomainError):
    """Malformed or missing request fields (400)."""
    code = "invalid_request"

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Invalid {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class NotFoundError(DomainError):
    """Resource not found (404)."""
    code = "not_found"

    def __init__(self, resource_type: str, identifier: str | None = None, details: dict | None = None):
        message = f"{resource_type} not found"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)
        self.identifier = identifier


class NotPurchasableError(DomainError):
    """Course fails a moderation gate (400)."""
    code = "not_purchasable"

    def __init__(self, message: str = "Course is not available for purchase", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class FreeCourseNotPayableError(DomainError):
    """Zero-price course sent to checkout (400)."""
    code = "free_course_not_payable"

    def __init__(self, message: str = "This is a free course. Use direct enrollment.", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class AlreadyEnrolledError(DomainError):
    """User already owns the course (400)."""
    code = "already_enrolled"

    def __init__(self, message: str = "Already enrolled in this course", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class InvalidSignatureError(DomainError):
    """Payment confirmation signature did not verify (400)."""
    code = "invalid_signature"

    def __init__(self, message: str = "Invalid payment signature", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class GatewayError(DomainError):
    """Payment provider call failed (500)."""
    code = "gateway_error"

    def __init__(self, message: str = "Failed to create payment order", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)


class EnrollmentFailedError(DomainError):
    """Verified payment could not be recorded as an enrollment (500)."""
    code = "enrollment_failed"

    def __init__(
        self,
        message: str = "Payment received but enrollment could not be recorded. Contact support.",
        details: dict | None = None,
    ):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)


class RateLimitError(DomainError):
    """Rate limit exceeded (429)."""
    code = "rate_limited"

    def __init__(self, message: str = "Rate limit exceeded", details: dict | None = None, headers: dict | None = None):
        super().__init__(message, status_code=status.HTTP_429_TOO_MANY_REQUESTS, details=details)
        self.headers = headers
