"""Tests for authentication flows (login, refresh, logout, soft delete) and token claims."""

from __future__ import annotations

import time
from unittest import mock

import jwt
from django.conf import settings
from django.db import DatabaseError
from django.test import TestCase
from rest_framework.test import APIClient

from authentication.services import BlocklistUnavailable, TokenService
from tests.utils import FakeRedisMixin, create_user, seed_catalog


class AuthFlowTests(FakeRedisMixin, TestCase):
    """End-to-end tests covering auth endpoints and soft delete behavior."""

    @classmethod
    def setUpTestData(cls):
        """Seed system roles and a default active cashier."""
        cls.roles = seed_catalog()
        cls.password = "StrongPass123"
        cls.user = create_user(
            "cashier@example.com", cls.password, cls.roles["CASHIER"], store_id="store-7"
        )

    def setUp(self):
        """Fresh DRF APIClient per test."""
        self.api_client: APIClient = APIClient()

    def _login(self) -> dict:
        return self.api_client.post(
            "/auth/login/",
            {"email": self.user.email, "password": self.password},
            format="json",
        ).json()["data"]

    def _create_two_device_clients(self):
        """Helper to create two APIClients authenticated as the same user."""
        login_a, login_b = self._login(), self._login()
        client_a = APIClient()
        client_b = APIClient()
        client_a.credentials(HTTP_AUTHORIZATION=f"Bearer {login_a['access']}")
        client_b.credentials(HTTP_AUTHORIZATION=f"Bearer {login_b['access']}")
        return client_a, client_b

    def test_login_success_returns_tokens(self):
        """Valid credentials return access and refresh tokens."""
        response = self.api_client.post(
            "/auth/login/",
            {"email": self.user.email, "password": self.password},
            format="json",
        )
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertTrue(body["success"])
        self.assertIn("access", body["data"])
        self.assertIn("refresh", body["data"])

    def test_access_token_carries_role_code_and_store(self):
        """The access token exposes sub, role code and store id."""
        payload = TokenService.decode_token(self._login()["access"], expected_type="access")

        self.assertEqual(payload["sub"], str(self.user.pk))
        self.assertEqual(payload["role"], "CASHIER")
        self.assertEqual(payload["store"], "store-7")

    def test_login_invalid_credentials_401(self):
        """Bad password returns 401 with the error envelope."""
        response = self.api_client.post(
            "/auth/login/",
            {"email": self.user.email, "password": "wrongpass"},
            format="json",
        )
        body = response.json()

        self.assertEqual(response.status_code, 401)
        self.assertFalse(body["success"])
        self.assertTrue(body["message"])

    def test_login_inactive_user_401(self):
        """Inactive user cannot log in and receives 401."""
        self.user.is_active = False
        self.user.save(update_fields=["is_active"])

        response = self.api_client.post(
            "/auth/login/",
            {"email": self.user.email, "password": self.password},
            format="json",
        )

        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()["success"])

    def test_refresh_with_valid_refresh_token(self):
        """Refresh endpoint issues new access/refresh tokens."""
        login = self._login()

        response = self.api_client.post("/auth/refresh/", {"refresh": login["refresh"]}, format="json")
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertIn("access", body["data"])
        self.assertNotEqual(body["data"]["access"], login["access"])

    def test_refresh_token_is_single_use(self):
        """A refresh token cannot be exchanged twice."""
        refresh_token = self._login()["refresh"]

        first = self.api_client.post("/auth/refresh/", {"refresh": refresh_token}, format="json")
        second = self.api_client.post("/auth/refresh/", {"refresh": refresh_token}, format="json")

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 401)

    def test_refresh_picks_up_new_role(self):
        """Tokens minted by refresh carry the role assigned since login."""
        refresh_token = self._login()["refresh"]
        self.user.role = self.roles["PHARMACIST"]
        self.user.save(update_fields=["role"])

        response = self.api_client.post("/auth/refresh/", {"refresh": refresh_token}, format="json")
        payload = TokenService.decode_token(response.json()["data"]["access"])

        self.assertEqual(payload["role"], "PHARMACIST")

    def test_refresh_with_access_token_rejected(self):
        """Providing an access token to refresh endpoint returns 401."""
        tokens = self._login()

        response = self.api_client.post("/auth/refresh/", {"refresh": tokens["access"]}, format="json")

        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()["success"])

    def test_logout_blocklists_token(self):
        """Logout blocklists current access token causing subsequent 401."""
        tokens = self._login()
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")

        logout_response = self.api_client.post("/auth/logout/")
        self.assertEqual(logout_response.status_code, 204)

        # Reusing the same token should now fail because it was blocklisted.
        me_response = self.api_client.get("/auth/me/")
        self.assertEqual(me_response.status_code, 401)

    def test_logout_without_token_401(self):
        response = self.api_client.post("/auth/logout/")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["message"], "Authentication required")

    def test_me_returns_role_code_and_store(self):
        """GET /auth/me/ exposes the role code and store id."""
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {self._login()['access']}")

        body = self.api_client.get("/auth/me/").json()

        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["email"], self.user.email)
        self.assertEqual(body["data"]["role"], "CASHIER")
        self.assertEqual(body["data"]["store_id"], "store-7")

    def test_soft_delete_blocks_token_and_future_login(self):
        """Soft delete blocklists active token and prevents future logins."""
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {self._login()['access']}")

        delete_response = self.api_client.delete("/auth/me/")
        self.assertEqual(delete_response.status_code, 204)

        # Existing token is blocklisted.
        me_response = self.api_client.get("/auth/me/")
        self.assertEqual(me_response.status_code, 401)

        # User is inactive and cannot log in again.
        relogin = self.api_client.post(
            "/auth/login/",
            {"email": self.user.email, "password": self.password},
            format="json",
        )
        self.assertEqual(relogin.status_code, 401)

    def test_refresh_after_soft_delete_returns_401(self):
        """Refresh tokens issued before soft delete must not work afterwards."""
        login = self._login()
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {login['access']}")
        self.assertEqual(self.api_client.delete("/auth/me/").status_code, 204)

        refresh_response = self.api_client.post(
            "/auth/refresh/",
            {"refresh": login["refresh"]},
            format="json",
        )

        self.assertEqual(refresh_response.status_code, 401)
        self.assertFalse(refresh_response.json()["success"])

    def test_logout_redis_down_returns_503(self):
        """If Redis is unavailable during logout, the API should fail-closed."""
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {self._login()['access']}")

        with mock.patch.object(
                TokenService,
                "block_token",
                side_effect=BlocklistUnavailable("Redis unavailable while blocklisting"),
        ):
            response = self.api_client.post("/auth/logout/")

        body = response.json()
        self.assertEqual(response.status_code, 503)
        self.assertFalse(body["success"])
        self.assertTrue(body["message"])

    def test_blocklist_check_failure_returns_503(self):
        """Middleware fails closed when the blocklist cannot be consulted."""
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {self._login()['access']}")

        with mock.patch.object(
                TokenService,
                "is_token_blocked",
                side_effect=BlocklistUnavailable("Redis unavailable while checking blocklist"),
        ):
            response = self.api_client.get("/auth/me/")

        self.assertEqual(response.status_code, 503)
        self.assertFalse(response.json()["success"])

    def test_expired_refresh_token_returns_401(self):
        """Expired refresh tokens should be rejected with 401 Unauthorized."""
        now = int(time.time())
        payload = {
            "sub": str(self.user.id),
            "jti": "expired-jti",
            "exp": now - 60,  # expired 1 minute ago
            "iat": now - 120,
            "role": self.user.role.code,
            "type": "refresh",
        }
        expired_refresh = jwt.encode(payload, settings.SECRET_KEY, algorithm=TokenService.ALGORITHM)

        response = self.api_client.post(
            "/auth/refresh/",
            {"refresh": expired_refresh},
            format="json",
        )

        self.assertEqual(response.status_code, 401)
        self.assertFalse(response.json()["success"])

    def test_tampered_token_returns_401(self):
        """A token signed with another key is rejected by the middleware."""
        forged = jwt.encode(
            {"sub": str(self.user.id), "jti": "x", "type": "access", "role": "ADMINISTRATOR"},
            "not-the-secret",
            algorithm=TokenService.ALGORITHM,
        )
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {forged}")

        response = self.api_client.get("/auth/me/")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {"success": False, "message": "Authentication required"})

    def test_concurrent_logout_from_multiple_devices(self):
        """Multiple access tokens for the same user can be logged out independently."""
        client_a, client_b = self._create_two_device_clients()

        self.assertEqual(client_a.post("/auth/logout/").status_code, 204)
        self.assertEqual(client_b.post("/auth/logout/").status_code, 204)

        # Both tokens are now unusable.
        self.assertEqual(client_a.get("/auth/me/").status_code, 401)
        self.assertEqual(client_b.get("/auth/me/").status_code, 401)

        new_login = self.api_client.post(
            "/auth/login/",
            {"email": self.user.email, "password": self.password},
            format="json",
        )
        self.assertEqual(new_login.status_code, 200)

    def test_concurrent_soft_delete_is_idempotent_and_safe(self):
        """Repeated DELETE /auth/me/ calls do not corrupt state."""
        client_a, client_b = self._create_two_device_clients()

        self.assertEqual(client_a.delete("/auth/me/").status_code, 204)
        # Middleware rejects the second device because the user is inactive.
        self.assertEqual(client_b.delete("/auth/me/").status_code, 401)

        self.user.refresh_from_db()
        self.assertFalse(self.user.is_active)

    def test_patch_me_updates_full_name(self):
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {self._login()['access']}")

        response = self.api_client.patch("/auth/me/", {"full_name": "Casey Cashier"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["full_name"], "Casey Cashier")

    def test_patch_me_cannot_change_email_or_role(self):
        """PATCH /auth/me/ rejects identity and authorization fields."""
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {self._login()['access']}")

        for payload in ({"email": "new@example.com"}, {"role_id": self.roles["ADMINISTRATOR"].pk}):
            response = self.api_client.patch("/auth/me/", payload, format="json")
            body = response.json()

            self.assertEqual(response.status_code, 400)
            self.assertFalse(body["success"])
            self.assertTrue(body["errors"])

        self.user.refresh_from_db()
        self.assertEqual(self.user.role, self.roles["CASHIER"])

    def test_refresh_when_database_unavailable_returns_503_with_envelope(self):
        """Database errors during refresh should surface as 503 with JSON envelope."""
        refresh_token = self._login()["refresh"]

        with mock.patch(
                "authentication.views._get_active_user",
                side_effect=DatabaseError("DB down"),
        ):
            response = self.api_client.post(
                "/auth/refresh/",
                {"refresh": refresh_token},
                format="json",
            )

        body = response.json()
        self.assertEqual(response.status_code, 503)
        self.assertFalse(body["success"])
        self.assertEqual(body["message"], "Service temporarily unavailable.")

    def test_user_lookup_database_error_returns_503_with_envelope(self):
        """Middleware answers a database outage with the JSON envelope, not an HTML page."""
        self.api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {self._login()['access']}")

        with mock.patch(
                "core.middleware.JWTAuthMiddleware._get_user",
                side_effect=DatabaseError("DB down"),
        ):
            response = self.api_client.get("/authz/checks/single/")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response["Content-Type"], "application/json")
        self.assertEqual(
            response.json(), {"success": False, "message": "Service temporarily unavailable."}
        )
