"""
Custom Exceptions for the School Admin console
==============================================

Every failure raised by the session, the resource stores and the API client
is a SchoolAdminError, so the console can catch one type at its boundary and
show the message as a notification.

Usage:
    from schooladmin.exceptions import UnauthenticatedError, NetworkOrServerError

    try:
        await students.update(5, {"full_name": "..."})
    except NetworkOrServerError as e:
        console.print(f"[red]{e.message}[/red]")
"""

from typing import Optional, Any, Dict


class SchoolAdminError(Exception):
    """Base exception for all console errors"""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationFailedError(SchoolAdminError):
    """Login was rejected by the server or could not be completed"""

    def __init__(self, message: str = "Login failed", status_code: Optional[int] = None):
        super().__init__(
            message,
            code="AUTH_FAILED",
            details={"status_code": status_code} if status_code is not None else None
        )
        self.status_code = status_code


class InvalidTokenError(SchoolAdminError):
    """The login endpoint returned a token that could not be decoded"""

    def __init__(self, message: str = "Invalid token received"):
        super().__init__(message, code="INVALID_TOKEN")


class UnauthenticatedError(SchoolAdminError):
    """Operation attempted without a valid (present and unexpired) token"""

    def __init__(self, message: str = "No authentication token"):
        super().__init__(message, code="UNAUTHENTICATED")


class PermissionDeniedError(SchoolAdminError):
    """The current role may not use this feature"""

    def __init__(self, feature: str, role: Optional[str] = None):
        super().__init__(
            f"Role '{role or '-'}' is not allowed to use '{feature}'",
            code="NOT_AUTHORIZED",
            details={"feature": feature, "role": role}
        )
        self.feature = feature
        self.role = role


class DecodeFailure(SchoolAdminError):
    """Token is malformed: bad segments, base64, JSON or claims"""

    def __init__(self, reason: str):
        super().__init__(f"Cannot decode token: {reason}", code="DECODE_FAILURE")
        self.reason = reason


# ============================================
# Remote API Errors
# ============================================

class NetworkOrServerError(SchoolAdminError):
    """Non-2xx response, or the request never reached the server"""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        path: Optional[str] = None
    ):
        super().__init__(
            message,
            code="NETWORK_OR_SERVER_ERROR",
            details={"status_code": status_code, "method": method, "path": path}
        )
        self.status_code = status_code


# ============================================
# Validation Errors
# ============================================

class ValidationError(SchoolAdminError):
    """Field presence or format check failed"""

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None):
        super().__init__(message, code="VALIDATION_ERROR", details={"fields": fields or {}})
        self.fields = fields or {}
