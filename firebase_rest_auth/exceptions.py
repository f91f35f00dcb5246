"""
Custom exceptions for Firebase authentication.

The REST transport is the only place that translates raw backend
error payloads into these exceptions. Everything above it (accounts,
the auth facade) only ever sees ``AuthError`` with a typed ``kind``.
"""

from enum import Enum


class AuthErrorKind(Enum):
    """Kinds of authentication failures."""

    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_EXISTS = "account_exists"
    PROVIDER_ALREADY_LINKED = "provider_already_linked"
    OPERATION_DISABLED = "operation_disabled"
    TOKEN_EXPIRED_OR_INVALID = "token_expired_or_invalid"
    NETWORK_FAILURE = "network_failure"
    UNKNOWN_BACKEND_ERROR = "unknown_backend_error"


# Backend error codes, as sent in ``error.message`` by the Identity Toolkit
# and Secure Token endpoints.
_ERROR_CODE_KINDS: dict[str, AuthErrorKind] = {
    "EMAIL_NOT_FOUND": AuthErrorKind.INVALID_CREDENTIALS,
    "INVALID_PASSWORD": AuthErrorKind.INVALID_CREDENTIALS,
    "INVALID_LOGIN_CREDENTIALS": AuthErrorKind.INVALID_CREDENTIALS,
    "INVALID_EMAIL": AuthErrorKind.INVALID_CREDENTIALS,
    "MISSING_PASSWORD": AuthErrorKind.INVALID_CREDENTIALS,
    "WEAK_PASSWORD": AuthErrorKind.INVALID_CREDENTIALS,
    "USER_DISABLED": AuthErrorKind.INVALID_CREDENTIALS,
    "INVALID_IDP_RESPONSE": AuthErrorKind.INVALID_CREDENTIALS,
    "INVALID_CUSTOM_TOKEN": AuthErrorKind.INVALID_CREDENTIALS,
    "CREDENTIAL_MISMATCH": AuthErrorKind.INVALID_CREDENTIALS,
    "INVALID_OOB_CODE": AuthErrorKind.INVALID_CREDENTIALS,
    "EXPIRED_OOB_CODE": AuthErrorKind.INVALID_CREDENTIALS,
    "EMAIL_EXISTS": AuthErrorKind.ACCOUNT_EXISTS,
    "FEDERATED_USER_ID_ALREADY_LINKED": AuthErrorKind.PROVIDER_ALREADY_LINKED,
    "OPERATION_NOT_ALLOWED": AuthErrorKind.OPERATION_DISABLED,
    "PASSWORD_LOGIN_DISABLED": AuthErrorKind.OPERATION_DISABLED,
    "ADMIN_ONLY_OPERATION": AuthErrorKind.OPERATION_DISABLED,
    "TOKEN_EXPIRED": AuthErrorKind.TOKEN_EXPIRED_OR_INVALID,
    "INVALID_ID_TOKEN": AuthErrorKind.TOKEN_EXPIRED_OR_INVALID,
    "INVALID_REFRESH_TOKEN": AuthErrorKind.TOKEN_EXPIRED_OR_INVALID,
    "MISSING_REFRESH_TOKEN": AuthErrorKind.TOKEN_EXPIRED_OR_INVALID,
    "INVALID_GRANT_TYPE": AuthErrorKind.TOKEN_EXPIRED_OR_INVALID,
    "USER_NOT_FOUND": AuthErrorKind.TOKEN_EXPIRED_OR_INVALID,
    "CREDENTIAL_TOO_OLD_LOGIN_AGAIN": AuthErrorKind.TOKEN_EXPIRED_OR_INVALID,
}


def kind_for_code(code: str) -> AuthErrorKind:
    """Map a backend error code to its error kind."""
    return _ERROR_CODE_KINDS.get(code, AuthErrorKind.UNKNOWN_BACKEND_ERROR)


class FirebaseAuthError(Exception):
    """Base exception for all Firebase authentication errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthError(FirebaseAuthError):
    """Raised when the backend rejects a request or cannot be reached.

    ``kind`` is the typed classification callers should branch on;
    ``code`` is the raw backend code (e.g. ``EMAIL_EXISTS``) kept for
    diagnostics.
    """

    def __init__(
        self,
        kind: AuthErrorKind,
        message: str,
        code: str | None = None,
        status: int | None = None,
    ):
        details: dict = {"kind": kind.value}
        if code:
            details["code"] = code
        if status is not None:
            details["status"] = status
        super().__init__(message, details)
        self.kind = kind
        self.code = code
        self.status = status

    @classmethod
    def from_backend(cls, code: str, detail: str | None = None, status: int | None = None) -> "AuthError":
        """Build an error from a backend error code."""
        message = f"{code}: {detail}" if detail else code
        return cls(kind_for_code(code), message, code=code, status=status)

    @classmethod
    def network(cls, cause: Exception) -> "AuthError":
        """Build an error for a failed network round trip."""
        error = cls(AuthErrorKind.NETWORK_FAILURE, f"Network request failed: {cause}")
        error.details["cause"] = str(cause)
        return error


class SessionClosedError(FirebaseAuthError):
    """Raised when an operation is attempted on a disposed or deleted account."""

    def __init__(self, local_id: str, reason: str = "disposed"):
        super().__init__(
            f"Account session {local_id} is {reason}",
            {"local_id": local_id, "reason": reason},
        )
        self.local_id = local_id
        self.reason = reason


class ConfigurationError(FirebaseAuthError):
    """Raised when the client configuration is missing or invalid."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            f"Invalid configuration for {field}: {reason}",
            {"field": field, "reason": reason},
        )
        self.field = field
        self.reason = reason
