"""Resolve a user id into a Principal with its current privilege set.

Nothing here is cached: every call reads the user and its role again,
so deactivating a user or editing a role's privileges is visible on
the very next request.
"""

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError

from .exceptions import AccessControlError, PrincipalNotFound, PrincipalResolutionError
from .principal import GrantedPrivilege, Principal
from .registry import RoleRegistry

logger = logging.getLogger(__name__)


class PrincipalResolver:
    """Maps user ids to principals through an injected role registry."""

    def __init__(self, roles: RoleRegistry | None = None, user_model=None):
        self._user_model = user_model
        self.roles = roles or RoleRegistry(user_model=user_model)

    @property
    def user_model(self):
        return self._user_model or get_user_model()

    def resolve(self, user_id) -> Principal:
        """Load user, role and privileges.

        Raises ``PrincipalNotFound`` for a missing or inactive user and
        ``PrincipalResolutionError`` when the role reference is broken.
        Database errors propagate unchanged.
        """
        try:
            user = (
                self.user_model.objects.filter(pk=user_id, is_active=True)
                .only("id", "role", "store_id", "is_active")
                .first()
            )
        except (ValueError, DjangoValidationError):
            raise PrincipalNotFound("User not found")
        if user is None:
            raise PrincipalNotFound("User not found or inactive")

        if user.role_id is None:
            raise PrincipalResolutionError(f"User {user.pk} has no role assigned")

        role = self.roles.get_with_privileges(user.role_id)
        if role is None:
            raise PrincipalResolutionError(f"User {user.pk} references missing role {user.role_id}")

        # An inactive role keeps its assignment but grants nothing.
        privileges = ()
        if role.is_active:
            privileges = tuple(
                GrantedPrivilege(code=p.code, category=p.category, is_active=p.is_active)
                for p in role.privileges.all()
            )

        return Principal(
            user_id=str(user.pk),
            role_id=role.pk,
            role_code=role.code,
            role_active=role.is_active,
            store_id=user.store_id,
            privileges=privileges,
        )

    def has_privilege(self, user_id, code: str) -> bool:
        """Fail-closed membership test; never raises."""
        principal = self._resolve_quietly(user_id)
        if principal is None:
            return False
        granted = principal.has_privilege(code)
        if not granted:
            logger.debug(
                "User %s with role %s does not have privilege %s", user_id, principal.role_code, code
            )
        return granted

    def has_any_privilege_in_category(self, user_id, category: str) -> bool:
        """True if the user's role holds an active privilege in ``category``; never raises."""
        principal = self._resolve_quietly(user_id)
        if principal is None:
            return False
        return principal.has_any_privilege_in_category(category)

    def _resolve_quietly(self, user_id) -> Principal | None:
        try:
            return self.resolve(user_id)
        except PrincipalNotFound:
            logger.warning("User %s not found or inactive", user_id)
        except AccessControlError as exc:
            logger.warning("Could not resolve role for user %s: %s", user_id, exc)
        except DatabaseError:
            logger.exception("Error checking user privilege for user %s", user_id)
        except Exception:
            logger.exception("Unexpected error resolving user %s", user_id)
        return None


__all__ = ["PrincipalResolver"]
