"""Authorization decisions.

A ``Requirement`` describes what a route needs; ``AuthorizationEvaluator``
turns a principal's claims plus a requirement into a ``Decision``. Five
modes are supported:

* ``single``   - the principal holds privilege P
* ``all_of``   - the principal holds every listed privilege; the first
  missing one (in declared order) is reported
* ``any_of``   - the principal holds at least one listed privilege
* ``category`` - the principal's role has an active privilege in category C
* ``role``     - legacy: the token's role claim is in an allow-list

The first four resolve the principal once and test membership with
``Principal.has_privilege``. ``role`` never touches the database.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable

from django.conf import settings
from django.db import DatabaseError

from .exceptions import PrincipalNotFound, PrincipalResolutionError, PrivilegeVerificationError
from .principal import Principal, PrincipalClaims
from .resolver import PrincipalResolver

logger = logging.getLogger(__name__)


class Mode(str, enum.Enum):
    SINGLE = "single"
    ALL_OF = "all_of"
    ANY_OF = "any_of"
    CATEGORY = "category"
    ROLE = "role"


@dataclass(frozen=True)
class Requirement:
    """A required-privilege expression with its parameters."""

    mode: Mode
    codes: tuple[str, ...] = ()
    category: str | None = None

    @classmethod
    def privilege(cls, code: str) -> "Requirement":
        return cls(Mode.SINGLE, (code,))

    @classmethod
    def all_of(cls, codes: Iterable[str]) -> "Requirement":
        return cls(Mode.ALL_OF, _as_codes(codes))

    @classmethod
    def any_of(cls, codes: Iterable[str]) -> "Requirement":
        return cls(Mode.ANY_OF, _as_codes(codes))

    @classmethod
    def in_category(cls, category: str) -> "Requirement":
        return cls(Mode.CATEGORY, category=category)

    @classmethod
    def role_in(cls, role_codes: Iterable[str]) -> "Requirement":
        return cls(Mode.ROLE, _as_codes(role_codes))

    def describe(self) -> str:
        if self.mode is Mode.CATEGORY:
            return f"category:{self.category}"
        return f"{self.mode.value}:{','.join(self.codes)}"


def _as_codes(codes: Iterable[str]) -> tuple[str, ...]:
    if isinstance(codes, str):
        raise TypeError("Expected a sequence of codes, got a single string")
    result = tuple(codes)
    if not result:
        raise ValueError("At least one code is required")
    return result


@dataclass(frozen=True)
class Decision:
    granted: bool
    requirement: Requirement
    missing_privilege: str | None = None

    @property
    def message(self) -> str:
        requirement = self.requirement
        if self.granted:
            return "Access granted"
        if requirement.mode is Mode.SINGLE:
            return f"Access denied. Required privilege: {requirement.codes[0]}"
        if requirement.mode is Mode.ALL_OF:
            return f"Access denied. Missing required privilege: {self.missing_privilege}"
        if requirement.mode is Mode.ANY_OF:
            return "Access denied. At least one of the required privileges is needed"
        if requirement.mode is Mode.CATEGORY:
            return f"Access denied. Category access required: {requirement.category}"
        return "Access denied. Insufficient permissions."

    def reason(self) -> dict[str, Any]:
        """Machine-readable denial detail; only codes, never catalog text."""
        requirement = self.requirement
        if requirement.mode is Mode.SINGLE:
            return {"requiredPrivilege": requirement.codes[0]}
        if requirement.mode is Mode.ALL_OF:
            return {
                "requiredPrivileges": list(requirement.codes),
                "missingPrivilege": self.missing_privilege,
            }
        if requirement.mode is Mode.ANY_OF:
            return {"requiredPrivileges": list(requirement.codes)}
        if requirement.mode is Mode.CATEGORY:
            return {"requiredCategory": requirement.category}
        return {"requiredRoles": list(requirement.codes)}


class AuthorizationEvaluator:
    """Decision engine shared by every enforcement point."""

    def __init__(self, resolver: PrincipalResolver | None = None):
        self.resolver = resolver or PrincipalResolver()

    def evaluate(self, claims: PrincipalClaims, requirement: Requirement) -> Decision:
        """Return a decision for ``claims``.

        ``PrincipalNotFound`` propagates (the caller is no longer a valid
        principal). Any other failure to resolve raises
        ``PrivilegeVerificationError``.
        """
        if requirement.mode is Mode.ROLE:
            return self.check_role(claims, requirement.codes)

        principal = self._resolve(claims)
        if requirement.mode is Mode.SINGLE:
            return self._single(principal, requirement)
        if requirement.mode is Mode.ALL_OF:
            return self._all_of(principal, requirement)
        if requirement.mode is Mode.ANY_OF:
            return self._any_of(principal, requirement)
        if requirement.mode is Mode.CATEGORY:
            return Decision(principal.has_any_privilege_in_category(requirement.category), requirement)
        raise ValueError(f"Unsupported requirement mode: {requirement.mode}")

    def check_privilege(self, claims: PrincipalClaims, code: str) -> Decision:
        return self.evaluate(claims, Requirement.privilege(code))

    def check_all_of(self, claims: PrincipalClaims, codes: Iterable[str]) -> Decision:
        return self.evaluate(claims, Requirement.all_of(codes))

    def check_any_of(self, claims: PrincipalClaims, codes: Iterable[str]) -> Decision:
        return self.evaluate(claims, Requirement.any_of(codes))

    def check_category(self, claims: PrincipalClaims, category: str) -> Decision:
        return self.evaluate(claims, Requirement.in_category(category))

    @staticmethod
    def check_role(claims: PrincipalClaims, role_codes: Iterable[str]) -> Decision:
        """Legacy allow-list check against the token's role claim."""
        requirement = Requirement.role_in(role_codes)
        return Decision(claims.role_claim in requirement.codes, requirement)

    @staticmethod
    def check_store_scope(claims: PrincipalClaims) -> bool:
        """Administrators bypass store scoping; everyone else needs a tenant id."""
        if claims.role_claim == settings.AUTHZ_ADMIN_ROLE_CODE:
            return True
        return bool(claims.tenant_id)

    @staticmethod
    def _single(principal: Principal, requirement: Requirement) -> Decision:
        return Decision(principal.has_privilege(requirement.codes[0]), requirement)

    @staticmethod
    def _all_of(principal: Principal, requirement: Requirement) -> Decision:
        for code in requirement.codes:
            if not principal.has_privilege(code):
                return Decision(False, requirement, missing_privilege=code)
        return Decision(True, requirement)

    @staticmethod
    def _any_of(principal: Principal, requirement: Requirement) -> Decision:
        for code in requirement.codes:
            if principal.has_privilege(code):
                return Decision(True, requirement)
        return Decision(False, requirement)

    def _resolve(self, claims: PrincipalClaims) -> Principal:
        try:
            return self.resolver.resolve(claims.user_id)
        except PrincipalResolutionError as exc:
            raise PrivilegeVerificationError(str(exc)) from exc
        except DatabaseError as exc:
            raise PrivilegeVerificationError("Database error while resolving principal") from exc
        except PrincipalNotFound:
            raise
        except Exception as exc:
            logger.exception("Unexpected error resolving principal for user %s", claims.user_id)
            raise PrivilegeVerificationError("Unexpected error while resolving principal") from exc


__all__ = ["AuthorizationEvaluator", "Decision", "Mode", "Requirement"]
