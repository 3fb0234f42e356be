"""Middleware to authenticate requests via JWT and Redis blocklist."""

import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed

from access_control.principal import PrincipalClaims
from authentication.services import BlocklistUnavailable, TokenService
from core.response import error_payload

logger = logging.getLogger(__name__)


class JWTAuthMiddleware(MiddlewareMixin):
    """Decode access JWT, check blocklist, and attach the caller's identity.

    On success ``request.user`` is the active user and
    ``request.principal_claims`` holds the ``PrincipalClaims`` read from the
    token. Requests without a bearer token pass through anonymously so that
    the permission layer can answer 401 itself.
    """

    def process_request(self, request):  # type: ignore[override]
        """Authenticate request using Bearer access token if present."""
        request.principal_claims = None
        auth_header = request.META.get("HTTP_AUTHORIZATION", "")
        if not auth_header or not auth_header.startswith("Bearer "):
            request.user = AnonymousUser()
            return None

        token = auth_header.split(" ", 1)[1]

        try:
            payload = TokenService.decode_token(token, expected_type="access")
            jti = payload.get("jti")
            if not jti or not payload.get("sub"):
                return _unauthorized()

            if TokenService.is_token_blocked(jti):
                return _unauthorized()

            user = self._get_user(payload.get("sub"))
            if not user or not user.is_active:
                return _unauthorized()

            request.user = user
            request.principal_claims = PrincipalClaims.from_token(payload)
            return None

        except AuthenticationFailed as exc:
            logger.debug("Rejected bearer token: %s", exc.detail)
            return _unauthorized()
        except BlocklistUnavailable:
            logger.error("Token blocklist unavailable")
            return _service_unavailable()
        except DatabaseError:
            logger.exception("Database error while authenticating request")
            return JsonResponse(
                error_payload("Service temporarily unavailable."),
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )

    @staticmethod
    def _get_user(user_id: Optional[str]):
        if not user_id:
            return None
        user_model = get_user_model()
        try:
            return user_model.objects.get(id=user_id)
        except (user_model.DoesNotExist, ValueError, ValidationError):
            return None


def _unauthorized() -> JsonResponse:
    return JsonResponse(
        error_payload("Authentication required"),
        status=status.HTTP_401_UNAUTHORIZED,
    )


def _service_unavailable() -> JsonResponse:
    return JsonResponse(
        error_payload("Authentication service unavailable (blocklist)."),
        status=status.HTTP_503_SERVICE_UNAVAILABLE,
    )


__all__ = ["JWTAuthMiddleware"]
