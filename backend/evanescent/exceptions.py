"""
Evanescent Backend: Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for every anticipated failure.
Why:   Services raise domain outcomes; global handlers registered in main.py
       turn them into JSON responses with the right status code. Internal
       details (SQL, constraint names) never reach the client.
How:   Each exception carries a user-facing message and an optional context
       dict that is logged but not returned.

Exception Hierarchy:
    EvanescentError (base)
    ├── ValidationError               → 400 Bad Request
    │   ├── DuplicateEmailError       → 400 (signup with a taken email)
    │   └── AlreadyClaimedError       → 400 (bottle already has a claimant)
    ├── AuthError                     → status carried on the instance
    │   ├── InvalidCredentialsError   → 400 (unknown email OR wrong password)
    │   ├── UnauthenticatedError      → 401 (no bearer token)
    │   ├── NoRefreshTokenError       → 401 (no refresh cookie)
    │   ├── InvalidTokenError         → 403 (bad/expired access token)
    │   └── InvalidRefreshTokenError  → 403 (bad/expired refresh token)
    ├── NotFoundError                 → 404 Not Found
    ├── ForbiddenError                → 403 Forbidden (ownership/claim violation)
    └── StoreError                    → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class EvanescentError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(EvanescentError):
    """
    Raised when a request cannot be honoured as sent.

    HTTP: 400 Bad Request
    """

    error_code: str = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class DuplicateEmailError(ValidationError):
    """The store reported a uniqueness violation on users.email."""

    error_code = "duplicate_email"

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Email already exists.", field="email", context=context)


class AlreadyClaimedError(ValidationError):
    """
    The bottle already has a claimant.

    Raised both when the writeup was claimed long ago and when a concurrent
    claim won the conditional update a moment earlier; the two cases are
    the same outcome for the caller.
    """

    error_code = "already_claimed"

    def __init__(self, writeup_id: Optional[int] = None):
        ctx = {"writeup_id": writeup_id} if writeup_id is not None else {}
        super().__init__(message="Already claimed by someone else.", context=ctx)


class AuthError(EvanescentError):
    """
    Authentication failures.

    The status code differs per subclass (400 for a failed login, 401 for a
    missing credential, 403 for a credential that does not verify), so it is
    carried on the instance and read by the single handler in main.py.
    """

    status_code: int = 401
    error_code: str = "authentication_error"

    def __init__(
        self,
        message: str = "Authentication failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidCredentialsError(AuthError):
    """
    Login failed.

    The same message is used for an unknown email and a wrong password so the
    response never reveals which of the two was wrong.
    """

    status_code = 400
    error_code = "invalid_credentials"

    def __init__(self):
        super().__init__(message="Invalid credentials.")


class UnauthenticatedError(AuthError):
    status_code = 401
    error_code = "unauthenticated"

    def __init__(self, message: str = "Access denied. No token provided."):
        super().__init__(message=message)


class NoRefreshTokenError(AuthError):
    status_code = 401
    error_code = "unauthenticated"

    def __init__(self):
        super().__init__(message="No refresh token provided")


class InvalidTokenError(AuthError):
    status_code = 403
    error_code = "invalid_token"

    def __init__(self, message: str = "Invalid token.", context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, context=context)


class InvalidRefreshTokenError(InvalidTokenError):
    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid refresh token", context=context)


class NotFoundError(EvanescentError):
    """
    Raised when a requested resource does not exist.

    HTTP: 404 Not Found

    Missing bottles keep the original user-facing wording ("Bottle Empty");
    other resources get a generic "<resource> not found" message.
    """

    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message or f"{resource.capitalize()} not found", context=ctx)


class ForbiddenError(EvanescentError):
    """
    The caller is authenticated but does not own what they are acting on.

    HTTP: 403 Forbidden
    """

    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoreError(EvanescentError):
    """
    Raised when a database operation fails unexpectedly.

    HTTP: 500 Internal Server Error

    The message returned to the client is always generic; the context
    (operation name, original exception type) is logged server-side only.
    No retry is attempted.
    """

    def __init__(
        self,
        message: str = "Server error.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
