"""DRF permission classes enforcing privilege requirements.

Routes declare what they need with the factories below::

    permission_classes = [require_privilege("VIEW_INVENTORY")]
    permission_classes = [require_all_of(["EDIT_USERS", "SYSTEM_SETTINGS"]), StoreAccess]

Permission checks run before the view body, so a denied caller never
reaches the handler (nor learns whether the addressed object exists).
On denial the permission raises ``PrivilegeDenied`` with a stable reason
payload and writes an audit record; on a failed lookup it raises
``PrivilegeCheckUnavailable`` (500), which is never a grant and never a
plain 403.
"""

from typing import Iterable

from rest_framework import permissions
from rest_framework.exceptions import NotAuthenticated

from .audit import log_denial, log_grant, log_verification_failure
from .evaluator import AuthorizationEvaluator, Requirement
from .exceptions import PrincipalNotFound, PrivilegeCheckUnavailable, PrivilegeDenied, PrivilegeVerificationError
from .principal import PrincipalClaims


def get_principal_claims(request) -> PrincipalClaims | None:
    """Return the claims attached by the JWT middleware, if any."""
    claims = getattr(request, "auth", None)
    if isinstance(claims, PrincipalClaims):
        return claims
    return None


def _require_claims(request) -> PrincipalClaims:
    claims = get_principal_claims(request)
    if claims is None:
        raise NotAuthenticated("Authentication required")
    return claims


class IsPrincipal(permissions.BasePermission):
    """Only checks that a principal is attached to the request."""

    def has_permission(self, request, view) -> bool:
        _require_claims(request)
        return True


class PrivilegePermission(permissions.BasePermission):
    """Evaluate ``requirement`` for the request's principal."""

    requirement: Requirement | None = None
    evaluator_class = AuthorizationEvaluator

    def get_evaluator(self) -> AuthorizationEvaluator:
        return self.evaluator_class()

    def has_permission(self, request, view) -> bool:
        claims = _require_claims(request)
        if self.requirement is None:
            return False

        try:
            decision = self.get_evaluator().evaluate(claims, self.requirement)
        except PrincipalNotFound:
            log_denial(claims, request, reason="principal_not_found")
            raise NotAuthenticated("Authentication required")
        except PrivilegeVerificationError as exc:
            log_verification_failure(claims, request, exc)
            raise PrivilegeCheckUnavailable()

        if not decision.granted:
            log_denial(claims, request, decision)
            raise PrivilegeDenied(decision.message, decision.reason())

        log_grant(claims, request, decision)
        return True


class StoreAccess(permissions.BasePermission):
    """Tenant scoping: administrators pass, everyone else needs a store id."""

    def has_permission(self, request, view) -> bool:
        claims = _require_claims(request)
        if AuthorizationEvaluator.check_store_scope(claims):
            return True
        log_denial(claims, request, requiredScope="store")
        raise PrivilegeDenied("Store access required", {"requiredScope": "store"})


def _permission_class(name: str, requirement: Requirement) -> type[PrivilegePermission]:
    return type(name, (PrivilegePermission,), {"requirement": requirement, "__module__": __name__})


def require_privilege(code: str) -> type[PrivilegePermission]:
    return _permission_class(f"RequirePrivilege_{code}", Requirement.privilege(code))


def require_all_of(codes: Iterable[str]) -> type[PrivilegePermission]:
    requirement = Requirement.all_of(codes)
    return _permission_class("RequireAllOf_" + "_".join(requirement.codes), requirement)


def require_any_of(codes: Iterable[str]) -> type[PrivilegePermission]:
    requirement = Requirement.any_of(codes)
    return _permission_class("RequireAnyOf_" + "_".join(requirement.codes), requirement)


def require_category(category: str) -> type[PrivilegePermission]:
    return _permission_class(f"RequireCategory_{category}", Requirement.in_category(category))


def require_role(role_codes: Iterable[str]) -> type[PrivilegePermission]:
    """Legacy role-code check; prefer the privilege-based factories."""
    requirement = Requirement.role_in(role_codes)
    return _permission_class("RequireRole_" + "_".join(requirement.codes), requirement)


class ActionPermissionsMixin:
    """Let a viewset declare permission classes per action."""

    action_permissions: dict[str, list] | None = None

    def get_permissions(self):
        classes = (self.action_permissions or {}).get(self.action, self.permission_classes)
        return [permission() for permission in classes]


# Category gates
RequireUserManagement = require_category("user_management")
RequireInventoryAccess = require_category("inventory")
RequireSalesAccess = require_category("sales")
RequirePrescriptionAccess = require_category("prescriptions")
RequireReportAccess = require_category("reports")
RequireSystemAccess = require_category("system")
RequireStoreManagement = require_category("store_management")
RequireDrugManagement = require_category("drug_management")

# Specific privileges
RequireViewUsers = require_privilege("VIEW_USERS")
RequireCreateUsers = require_privilege("CREATE_USERS")
RequireEditUsers = require_privilege("EDIT_USERS")
RequireDeleteUsers = require_privilege("DELETE_USERS")
RequireManageInventory = require_privilege("MANAGE_INVENTORY")
RequireAdjustStock = require_privilege("ADJUST_STOCK")
RequireCreateSales = require_privilege("CREATE_SALES")
RequireManageSales = require_privilege("MANAGE_SALES")
RequireManagePrescriptions = require_privilege("MANAGE_PRESCRIPTIONS")
RequireDispenseMedications = require_privilege("DISPENSE_MEDICATIONS")
RequireGenerateReports = require_privilege("GENERATE_REPORTS")
RequireSystemSettings = require_privilege("SYSTEM_SETTINGS")

# Legacy role-code gates
RequireAdmin = require_role(["ADMINISTRATOR"])
RequirePharmacistOrHigher = require_role(["ADMINISTRATOR", "PHARMACIST"])
RequireStoreManagerOrHigher = require_role(["ADMINISTRATOR", "STORE_MANAGER"])
RequireCashierOrHigher = require_role(["ADMINISTRATOR", "PHARMACIST", "CASHIER", "STORE_MANAGER"])


__all__ = [
    "ActionPermissionsMixin",
    "IsPrincipal",
    "PrivilegePermission",
    "StoreAccess",
    "get_principal_claims",
    "require_all_of",
    "require_any_of",
    "require_category",
    "require_privilege",
    "require_role",
]
