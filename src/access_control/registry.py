"""Privilege and Role registries.

All administrative mutations go through these two classes. Operations
with an in-use precondition (delete, deactivate, assign) lock the rows
they depend on inside a transaction so the check and the write cannot
interleave with a concurrent assignment.
"""

import logging
from typing import Any, Iterable

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError

from .exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from .models import Privilege, PrivilegeCategory, Role, code_validator

logger = logging.getLogger(__name__)


def _validate_code(code: str) -> None:
    try:
        code_validator(code)
    except DjangoValidationError as exc:
        raise ValidationFailed(exc.messages[0]) from exc


def _validate_category(category: str) -> None:
    if category not in PrivilegeCategory.values:
        raise ValidationFailed(
            "Invalid category. Must be one of: " + ", ".join(PrivilegeCategory.values)
        )


class PrivilegeRegistry:
    """Catalog of privileges."""

    def get(self, privilege_id) -> Privilege:
        try:
            return Privilege.objects.get(pk=privilege_id)
        except (Privilege.DoesNotExist, ValueError, TypeError):
            raise NotFound("Privilege not found")

    def find_by_code(self, code: str) -> Privilege | None:
        return Privilege.objects.filter(code=code).first()

    def find_active(self) -> list[Privilege]:
        return list(Privilege.objects.filter(is_active=True).order_by("category", "name"))

    def all_ids(self) -> list[int]:
        return list(Privilege.objects.order_by("pk").values_list("pk", flat=True))

    def find_active_by_category(self, category: str) -> list[Privilege]:
        """Return active privileges of ``category`` sorted by name."""
        _validate_category(category)
        return list(Privilege.objects.filter(category=category, is_active=True).order_by("name"))

    def register(self, code: str, name: str, description: str, category: str) -> tuple[Privilege, bool]:
        """Insert the privilege if ``code`` is unknown; never overwrite an existing row.

        Administrators may have edited name/description of an existing
        privilege, so a repeated registration leaves it untouched.
        """
        _validate_code(code)
        _validate_category(category)
        privilege, created = Privilege.objects.get_or_create(
            code=code,
            defaults={"name": name, "description": description, "category": category},
        )
        if created:
            logger.info("Created privilege: %s", code)
        else:
            logger.debug("Privilege already exists: %s", code)
        return privilege, created

    def create(self, code: str, name: str, description: str, category: str) -> Privilege:
        """Administrative insert; duplicate codes are a validation error."""
        _validate_code(code)
        _validate_category(category)
        if Privilege.objects.filter(code=code).exists():
            raise ValidationFailed("Privilege code already exists")
        try:
            with transaction.atomic():
                privilege = Privilege.objects.create(
                    code=code, name=name, description=description, category=category
                )
        except IntegrityError as exc:
            raise ValidationFailed("Privilege code already exists") from exc
        logger.info("New privilege created: %s (%s)", privilege.name, privilege.code)
        return privilege

    def update(self, privilege_id, *, name=None, description=None, category=None) -> Privilege:
        """Update display fields and category. The code never changes."""
        privilege = self.get(privilege_id)
        update_fields = ["updated_at"]
        if category is not None:
            _validate_category(category)
            privilege.category = category
            update_fields.append("category")
        if name:
            privilege.name = name
            update_fields.append("name")
        if description:
            privilege.description = description
            update_fields.append("description")
        privilege.save(update_fields=update_fields)
        logger.info("Privilege updated: %s (%s)", privilege.name, privilege.code)
        return privilege

    def set_active(self, privilege_id, active: bool) -> Privilege:
        privilege = self.get(privilege_id)
        privilege.is_active = active
        privilege.save(update_fields=["is_active", "updated_at"])
        logger.info(
            "Privilege %s: %s", "activated" if active else "deactivated", privilege.code
        )
        return privilege

    def activate(self, privilege_id) -> Privilege:
        return self.set_active(privilege_id, True)

    def deactivate(self, privilege_id) -> Privilege:
        return self.set_active(privilege_id, False)

    def toggle_active(self, privilege_id) -> Privilege:
        privilege = self.get(privilege_id)
        return self.set_active(privilege.pk, not privilege.is_active)

    def delete(self, privilege_id) -> None:
        """Hard-delete a privilege that no active role references."""
        with transaction.atomic():
            try:
                privilege = Privilege.objects.select_for_update().get(pk=privilege_id)
            except (Privilege.DoesNotExist, ValueError, TypeError):
                raise NotFound("Privilege not found")

            in_use = Role.objects.filter(privileges=privilege, is_active=True).count()
            if in_use:
                raise Conflict(
                    f"Cannot delete privilege. It is assigned to {in_use} active role(s)"
                )
            privilege.delete()
        logger.info("Privilege deleted: %s", privilege.code)

    def stats(self, privilege_id) -> dict[str, Any]:
        privilege = self.get(privilege_id)
        return {
            "privilege_id": privilege.pk,
            "privilege_name": privilege.name,
            "privilege_code": privilege.code,
            "category": privilege.category,
            "role_count": Role.objects.filter(privileges=privilege, is_active=True).count(),
            "is_active": privilege.is_active,
        }

    def categories_summary(self) -> list[dict[str, Any]]:
        """Group active privileges by category, categories sorted ascending."""
        summary: dict[str, dict[str, Any]] = {}
        for privilege in Privilege.objects.filter(is_active=True).order_by("category", "name"):
            entry = summary.setdefault(
                privilege.category,
                {"category": privilege.category, "count": 0, "privileges": []},
            )
            entry["count"] += 1
            entry["privileges"].append(
                {
                    "id": privilege.pk,
                    "name": privilege.name,
                    "code": privilege.code,
                    "description": privilege.description,
                }
            )
        return [summary[key] for key in sorted(summary)]


class RoleRegistry:
    """Roles and their privilege sets; also the role lookup used by the resolver."""

    def __init__(self, user_model=None):
        self._user_model = user_model

    @property
    def user_model(self):
        return self._user_model or get_user_model()

    def get(self, role_id) -> Role:
        try:
            return Role.objects.get(pk=role_id)
        except (Role.DoesNotExist, ValueError, TypeError):
            raise NotFound("Role not found")

    def get_with_privileges(self, role_id) -> Role | None:
        """Load a role with its privileges in one prefetch, or None if it is gone."""
        return Role.objects.prefetch_related("privileges").filter(pk=role_id).first()

    def find_by_code(self, code: str) -> Role | None:
        return Role.objects.prefetch_related("privileges").filter(code=code).first()

    def find_active(self) -> list[Role]:
        return list(Role.objects.filter(is_active=True).prefetch_related("privileges").order_by("name"))

    def upsert_by_code(
        self,
        code: str,
        name: str,
        description: str,
        privilege_ids: Iterable[int],
        is_system: bool = False,
    ) -> tuple[Role, bool]:
        """Create the role, or refresh name/description/privileges of an existing one.

        Allowed for system roles; the stored ``is_system`` flag is kept.
        """
        _validate_code(code)
        with transaction.atomic():
            privileges = self._resolve_privileges(privilege_ids)
            role, created = Role.objects.select_for_update().get_or_create(
                code=code,
                defaults={"name": name, "description": description, "is_system": is_system},
            )
            if not created:
                role.name = name
                role.description = description
                role.save(update_fields=["name", "description", "updated_at"])
            role.privileges.set(privileges)
        logger.info(
            "%s role: %s with %d privileges", "Created" if created else "Updated", code, len(privileges)
        )
        return role, created

    def create(self, name: str, description: str, code: str, privilege_ids: Iterable[int]) -> Role:
        """Create a custom (non-system) role."""
        _validate_code(code)
        try:
            with transaction.atomic():
                if Role.objects.filter(code=code).exists():
                    raise ValidationFailed("Role code already exists")
                privileges = self._resolve_privileges(privilege_ids)
                role = Role.objects.create(
                    code=code, name=name, description=description, is_active=True, is_system=False
                )
                role.privileges.set(privileges)
        except IntegrityError as exc:
            raise ValidationFailed("Role code already exists") from exc
        logger.info("New role created: %s (%s)", role.name, role.code)
        return role

    def update(self, role_id, patch: dict[str, Any]) -> Role:
        """Apply ``name``/``description``/``privilege_ids`` to a custom role."""
        unknown = set(patch) - {"name", "description", "privilege_ids"}
        if unknown:
            raise ValidationFailed("Unsupported role fields: " + ", ".join(sorted(unknown)))

        with transaction.atomic():
            role = self._locked(role_id)
            if role.is_system:
                raise Forbidden("System roles cannot be modified")

            if patch.get("name"):
                role.name = patch["name"]
            if patch.get("description"):
                role.description = patch["description"]
            role.save(update_fields=["name", "description", "updated_at"])

            if patch.get("privilege_ids") is not None:
                role.privileges.set(self._resolve_privileges(patch["privilege_ids"]))
        logger.info("Role updated: %s (%s)", role.name, role.code)
        return role

    def delete(self, role_id) -> None:
        """Delete a custom role that no user references."""
        with transaction.atomic():
            role = self._locked(role_id)
            if role.is_system:
                raise Forbidden("System roles cannot be deleted")

            assigned = self.user_model.objects.filter(role=role).count()
            if assigned:
                raise Conflict(f"Cannot delete role. It is assigned to {assigned} user(s)")
            try:
                role.delete()
            except ProtectedError as exc:
                raise Conflict("Cannot delete role. It is assigned to users") from exc
        logger.info("Role deleted: %s (%s)", role.name, role.code)

    def set_active(self, role_id, active: bool) -> Role:
        with transaction.atomic():
            role = self._locked(role_id)
            if role.is_system and not active:
                raise Forbidden("System roles cannot be deactivated")
            if active:
                # Serialize with privilege deletion, which checks for active roles.
                list(Privilege.objects.select_for_update().filter(roles=role))
            role.is_active = active
            role.save(update_fields=["is_active", "updated_at"])
        logger.info("Role %s: %s", "activated" if active else "deactivated", role.code)
        return role

    def toggle_active(self, role_id) -> Role:
        role = self.get(role_id)
        return self.set_active(role.pk, not role.is_active)

    def stats(self, role_id) -> dict[str, Any]:
        role = self.get(role_id)
        return {
            "role_id": role.pk,
            "role_name": role.name,
            "role_code": role.code,
            "user_count": self.user_model.objects.filter(role=role, is_active=True).count(),
            "privilege_count": role.privileges.count(),
            "is_active": role.is_active,
            "is_system": role.is_system,
        }

    def assign_user(self, user_id, role_id):
        """Point a user at a role; the role row stays locked until commit."""
        with transaction.atomic():
            role = self._locked(role_id)
            if not role.is_active:
                raise ValidationFailed("Cannot assign an inactive role")
            try:
                user = self.user_model.objects.select_for_update().get(pk=user_id)
            except (self.user_model.DoesNotExist, ValueError, DjangoValidationError):
                raise NotFound("User not found")
            user.role = role
            user.save(update_fields=["role", "updated_at"])
        logger.info("User %s assigned to role %s", user.pk, role.code)
        return user

    @staticmethod
    def _locked(role_id) -> Role:
        try:
            return Role.objects.select_for_update().get(pk=role_id)
        except (Role.DoesNotExist, ValueError, TypeError):
            raise NotFound("Role not found")

    @staticmethod
    def _resolve_privileges(privilege_ids: Iterable[int]) -> list[Privilege]:
        """Lock and return the referenced privileges; every id must exist."""
        unique_ids = list(dict.fromkeys(privilege_ids))
        try:
            found = list(Privilege.objects.select_for_update().filter(pk__in=unique_ids))
        except (ValueError, TypeError) as exc:
            raise ValidationFailed("Some privileges are invalid") from exc
        if len(found) != len(unique_ids):
            raise ValidationFailed("Some privileges are invalid")
        return found


__all__ = ["PrivilegeRegistry", "RoleRegistry"]
