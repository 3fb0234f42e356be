"""Custom User model using bcrypt-hashed passwords and RBAC role linkage.

Note: We intentionally avoid Django's built-in groups/permissions (no
PermissionsMixin). Every grant flows through the user's single Role and
its Privilege set.
"""

import uuid
from typing import Optional, ClassVar

from django.contrib.auth.models import AbstractBaseUser
from django.db import models

from .managers import UserManager


class User(AbstractBaseUser):
    """Custom user identified by email with bcrypt password hashes."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True)
    password_hash = models.CharField(max_length=128)
    full_name = models.CharField(max_length=100, blank=True)
    # Nullable only so that a lost role reference is representable; the
    # resolver treats a missing role as a resolution failure.
    role = models.ForeignKey(
        "access_control.Role",
        on_delete=models.PROTECT,
        related_name="users",
        null=True,
    )
    # Tenant/store scoping identity. Stores themselves live outside this service.
    store_id = models.CharField(max_length=64, blank=True, null=True)
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    is_superuser = models.BooleanField(default=False)
    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS: ClassVar[list[str]] = []

    objects = UserManager()

    class Meta:
        """Default ordering shows newest users first."""
        ordering = ["-date_joined"]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.email

    @property
    def role_code(self) -> Optional[str]:
        """Code of the assigned role, as embedded in access tokens."""
        return self.role.code if self.role_id is not None else None

    def set_password(self, raw_password: Optional[str]) -> None:  # type: ignore[override]
        """Override to ensure bcrypt hashing via manager utility."""

        if raw_password is None:
            self.password_hash = ""
        else:
            self.password_hash = UserManager.hash_password(raw_password)

    def check_password(self, raw_password: Optional[str]) -> bool:  # type: ignore[override]
        """Delegate to bcrypt verification helper."""

        if raw_password is None:
            return False
        return UserManager.verify_password(self, raw_password)


__all__ = ["User"]
