"""User manager: bcrypt hashing and role-aware user creation."""

import logging
import uuid

import bcrypt
from django.conf import settings
from django.contrib.auth.base_user import BaseUserManager

logger = logging.getLogger(__name__)


class UserManager(BaseUserManager):
    """Create users with bcrypt password hashes and a role reference."""

    use_in_migrations = True

    def _create_user(self, email: str, password: str, **extra_fields):
        if not email:
            raise ValueError("The Email must be set")
        email = self.normalize_email(email)
        user = self.model(id=uuid.uuid4(), email=email, **extra_fields)
        user.password_hash = self.hash_password(password)
        user.save(using=self._db)
        logger.info("Created user %s with role %s", user.pk, user.role_code)
        return user

    def create_user(self, email: str, password: str | None = None, **extra_fields):
        """Create a regular user. ``role`` may be a Role or a role code."""
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        if password is None:
            raise ValueError("Password must be provided")
        if isinstance(extra_fields.get("role"), str):
            extra_fields["role"] = self._role_by_code(extra_fields["role"])
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email: str, password: str, **extra_fields):
        """Create a staff user bound to the administrator role."""
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("is_active", True)
        if not extra_fields.get("is_staff"):
            raise ValueError("Superuser must have is_staff=True.")
        if not extra_fields.get("is_superuser"):
            raise ValueError("Superuser must have is_superuser=True.")
        extra_fields.setdefault("role", settings.AUTHZ_ADMIN_ROLE_CODE)
        return self.create_user(email, password, **extra_fields)

    @staticmethod
    def _role_by_code(code: str):
        from access_control.models import Role

        try:
            return Role.objects.get(code=code)
        except Role.DoesNotExist:
            raise ValueError(f"Role {code} does not exist; run seed_rbac first")

    @staticmethod
    def hash_password(raw_password: str) -> str:
        """Hash a raw password using bcrypt and return the utf-8 string."""
        hashed = bcrypt.hashpw(raw_password.encode(), bcrypt.gensalt())
        return hashed.decode()

    @staticmethod
    def verify_password(user, raw_password: str | None) -> bool:
        """Verify raw password against stored bcrypt hash."""
        if not user.password_hash or raw_password is None:
            return False
        return bcrypt.checkpw(raw_password.encode(), user.password_hash.encode("utf-8"))


__all__ = ["UserManager"]
