"""RBAC models: Privilege and Role."""

from django.core.validators import RegexValidator
from django.db import models

code_validator = RegexValidator(
    r"^[A-Z_]+$",
    "Code can only contain uppercase letters and underscores.",
)


class PrivilegeCategory(models.TextChoices):
    """Fixed set of privilege categories."""

    USER_MANAGEMENT = "user_management", "User management"
    INVENTORY = "inventory", "Inventory"
    SALES = "sales", "Sales"
    PRESCRIPTIONS = "prescriptions", "Prescriptions"
    REPORTS = "reports", "Reports"
    SYSTEM = "system", "System"
    STORE_MANAGEMENT = "store_management", "Store management"
    DRUG_MANAGEMENT = "drug_management", "Drug management"


class Privilege(models.Model):
    """Fine-grained permission identified by a stable uppercase code."""

    code = models.CharField(max_length=64, unique=True, validators=[code_validator])
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=500)
    category = models.CharField(max_length=32, choices=PrivilegeCategory.choices)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["category", "name"]
        indexes = [
            models.Index(fields=["category"], name="privilege_category_idx"),
            models.Index(fields=["is_active"], name="privilege_active_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.code


class Role(models.Model):
    """Named bundle of privileges; system roles are managed by the seeder only."""

    code = models.CharField(max_length=64, unique=True, validators=[code_validator])
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=500)
    privileges = models.ManyToManyField(Privilege, related_name="roles", blank=True)
    is_active = models.BooleanField(default=True)
    is_system = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="role_active_idx"),
            models.Index(fields=["is_system"], name="role_system_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.code


__all__ = ["Privilege", "PrivilegeCategory", "Role", "code_validator"]
