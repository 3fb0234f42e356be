"""Custom exception handling to enforce the API error envelope."""

import logging
from typing import Any

from django.conf import settings
from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed, NotAuthenticated, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from access_control.exceptions import AccessControlError, PrivilegeDenied
from authentication.services import BlocklistUnavailable
from core.response import error_payload

logger = logging.getLogger(__name__)

UNAUTHENTICATED_MESSAGE = "Authentication required"


def _error(message: str, status_code: int, **extra: Any) -> Response:
    return Response(error_payload(message, **extra), status=status_code)


def _first_message(payload: Any) -> str:
    """Pick a human-readable message out of DRF's response.data."""

    if isinstance(payload, dict) and "detail" in payload:
        return str(payload["detail"])
    if isinstance(payload, list) and payload:
        return str(payload[0])
    return "Request failed"


def custom_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    """Wrap errors in the `{ "success": false, "message": ... }` shape.

    - Domain errors from the registries carry their own status code.
    - Privilege denials add the stable reason fields next to the message.
    - Optionally exposes more detailed auth errors when DEBUG_AUTH_ERRORS is enabled.
    """

    # Blocklist failures are security-critical and must fail closed with 503.
    if isinstance(exc, BlocklistUnavailable):
        return _error(
            "Authentication service unavailable (blocklist).",
            status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    if isinstance(exc, AccessControlError):
        if exc.status_code >= 500:
            logger.error("Access control failure: %s", exc)
        return _error(str(exc), exc.status_code)

    # Database errors outside privilege evaluation are a temporary outage.
    if isinstance(exc, DatabaseError):
        logger.error("Database error while handling request: %s", exc)
        return _error("Service temporarily unavailable.", status.HTTP_503_SERVICE_UNAVAILABLE)

    response = drf_exception_handler(exc, context)

    if response is None:
        return response

    # DRF maps NotAuthenticated to 403 when no authenticator sends a
    # WWW-Authenticate header; this API always answers 401.
    if isinstance(exc, (AuthenticationFailed, NotAuthenticated)):
        response.status_code = status.HTTP_401_UNAUTHORIZED

    if response.status_code < 400:
        return response

    if isinstance(exc, PrivilegeDenied):
        response.data = error_payload(str(exc.detail), **exc.reason)
    elif response.status_code == status.HTTP_401_UNAUTHORIZED:
        if getattr(settings, "DEBUG_AUTH_ERRORS", False):
            message = _first_message(response.data)
        else:
            message = UNAUTHENTICATED_MESSAGE
        response.data = error_payload(message)
    elif isinstance(exc, ValidationError):
        response.data = error_payload("Validation failed", errors=response.data)
    else:
        response.data = error_payload(_first_message(response.data))

    return response
