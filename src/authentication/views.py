"""Authentication endpoints: login, refresh, logout, and profile."""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from rest_framework import status
from rest_framework.exceptions import AuthenticationFailed, NotAuthenticated
from rest_framework.response import Response

from core.response import BaseAPIView, api_response
from .serializers import LoginSerializer, ProfileUpdateSerializer, UserDetailSerializer
from .services import TokenService

logger = logging.getLogger(__name__)

User = get_user_model()


class LoginView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def post(self, request):
        """Authenticate and issue access + refresh tokens."""
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data["user"]
        access, refresh = TokenService.generate_tokens(user)
        logger.info("User logged in: %s", user.pk)
        return api_response({"access": access, "refresh": refresh})


class RefreshView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def post(self, request):
        """Exchange a valid refresh token for new access/refresh tokens.

        The new access token carries the user's current role code and store.
        """
        refresh_token = request.data.get("refresh")
        if not refresh_token:
            raise AuthenticationFailed("Refresh token required")

        payload = TokenService.decode_token(refresh_token, expected_type="refresh")
        if TokenService.is_token_blocked(payload.get("jti", "")):
            raise AuthenticationFailed("Invalid or revoked refresh token")

        user = _get_active_user(payload.get("sub"))
        if not user:
            raise AuthenticationFailed("User not found or inactive")

        # Refresh tokens are single use.
        TokenService.block_token(payload["jti"], payload["exp"])
        access, new_refresh = TokenService.generate_tokens(user)
        return api_response({"access": access, "refresh": new_refresh})


class LogoutView(BaseAPIView):
    """Invalidate the current access token by blocklisting its jti."""

    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def post(self, request):
        """Blocklist the bearer access token and return 204 No Content."""
        token = _get_bearer_token(request)
        if not token or not request.user.is_authenticated:
            raise NotAuthenticated("Authentication required")

        TokenService.revoke(token)
        logger.info("User logged out: %s", request.user.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(BaseAPIView):
    permission_classes: list[Any] = []

    # noinspection PyMethodMayBeStatic
    def get(self, request):
        """Return the current user's profile."""
        _require_user(request)
        return api_response(UserDetailSerializer(request.user).data)

    # noinspection PyMethodMayBeStatic
    def patch(self, request):
        """Update profile fields for the current user."""
        _require_user(request)
        serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return api_response(UserDetailSerializer(request.user).data)

    # noinspection PyMethodMayBeStatic
    def delete(self, request):
        """Soft-delete the current user and blocklist the current access token."""
        _require_user(request)
        token = _get_bearer_token(request)
        if token:
            TokenService.revoke(token)
        request.user.is_active = False
        request.user.save(update_fields=["is_active", "updated_at"])
        logger.info("User deactivated own account: %s", request.user.pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


def _require_user(request) -> None:
    if not request.user.is_authenticated:
        raise NotAuthenticated("Authentication required")


def _get_active_user(user_id):
    """Retrieve an active user by id, or None if missing/inactive."""
    if not user_id:
        return None
    try:
        user = User.objects.select_related("role").get(id=user_id)
    except (User.DoesNotExist, ValueError, ValidationError):
        return None
    if not user.is_active:
        return None
    return user


def _get_bearer_token(request) -> str | None:
    """Extract the Bearer token from Authorization header if present."""
    auth_header = request.META.get("HTTP_AUTHORIZATION", "")
    if auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1]
    return None
