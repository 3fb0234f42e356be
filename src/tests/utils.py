"""Shared helpers for tests (catalog seeding, user creation, fake Redis)."""

from __future__ import annotations

from typing import Dict
from unittest import mock

from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from access_control.models import Role
from access_control.seeding import seed_roles_and_privileges
from authentication.managers import UserManager
from authentication.services import TokenService
from core.redis_client import reset_redis_client

User = get_user_model()

DEFAULT_PASSWORD = "StrongPass123"


class FakeRedis:
    """Minimal Redis stub supporting the commands used by TokenService."""

    def __init__(self):
        self._store: Dict[str, str] = {}

    def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        """Mimic Redis SETEX; TTL is ignored in tests, value stored in-memory."""
        self._store[key] = value

    def get(self, key: str):
        """Return stored value for key or None, matching Redis GET semantics."""
        return self._store.get(key)


class FakeRedisMixin:
    """Route the token blocklist to an in-memory ``FakeRedis`` for a test class."""

    fake_redis: FakeRedis

    @classmethod
    def setUpClass(cls):
        """Patch Redis clients to use in-memory fake for all tests."""
        super().setUpClass()
        reset_redis_client()
        cls.fake_redis = FakeRedis()
        cls.patchers = [
            mock.patch("core.redis_client.get_redis_client", return_value=cls.fake_redis),
            mock.patch("authentication.services.get_redis_client", return_value=cls.fake_redis),
        ]
        for patcher in cls.patchers:
            patcher.start()

    @classmethod
    def tearDownClass(cls):
        """Stop Redis patches after all tests complete."""
        for patcher in cls.patchers:
            patcher.stop()
        super().tearDownClass()


def seed_catalog() -> Dict[str, Role]:
    """Seed the default privileges and system roles; return roles by code."""

    _, roles = seed_roles_and_privileges()
    return roles


def create_user(email: str, password: str = DEFAULT_PASSWORD, role: Role | None = None, **extra):
    """Create a user with a bcrypt-hashed password for tests."""

    return User.objects.create(
        email=email,
        password_hash=UserManager.hash_password(password),
        role=role,
        **extra,
    )


def auth_client(user) -> APIClient:
    """Return an APIClient authenticated with a fresh access token."""

    token, _ = TokenService.generate_tokens(user)
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
    return client
