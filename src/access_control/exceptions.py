"""Error taxonomy for the authorization core.

Registry and resolver errors are plain exceptions; ``core.exceptions``
maps them onto HTTP responses. ``PrivilegeDenied`` and
``PrivilegeCheckUnavailable`` are raised by the DRF permission classes
and already carry their status codes.
"""

from typing import Any

from rest_framework import status
from rest_framework.exceptions import APIException, PermissionDenied


class AccessControlError(Exception):
    """Base class for registry and resolution errors."""

    status_code = status.HTTP_400_BAD_REQUEST


class ValidationFailed(AccessControlError):
    """Malformed administrative input (bad category, unknown id, duplicate code)."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(AccessControlError):
    """Requested role or privilege does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(AccessControlError):
    """Mutation not allowed on the target (e.g. a system role)."""

    status_code = status.HTTP_403_FORBIDDEN


class Conflict(AccessControlError):
    """Mutation rejected because the target is still in use."""

    status_code = status.HTTP_409_CONFLICT


class PrincipalNotFound(AccessControlError):
    """User is missing or was deactivated after the token was issued."""

    status_code = status.HTTP_401_UNAUTHORIZED


class PrincipalResolutionError(AccessControlError):
    """User exists but its role reference cannot be resolved."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class PrivilegeVerificationError(Exception):
    """The evaluator could not compute a decision."""


class PrivilegeDenied(PermissionDenied):
    """Principal lacks the required privilege(s), category, role or store scope."""

    default_detail = "Access denied. Insufficient permissions."
    default_code = "privilege_denied"

    def __init__(self, detail: str | None = None, reason: dict[str, Any] | None = None):
        super().__init__(detail=detail)
        self.reason = reason or {}


class PrivilegeCheckUnavailable(APIException):
    """Decision could not be computed; never treated as grant or deny."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Server error verifying privileges"
    default_code = "privilege_check_failed"


__all__ = [
    "AccessControlError",
    "Conflict",
    "Forbidden",
    "NotFound",
    "PrincipalNotFound",
    "PrincipalResolutionError",
    "PrivilegeCheckUnavailable",
    "PrivilegeDenied",
    "PrivilegeVerificationError",
    "ValidationFailed",
]
