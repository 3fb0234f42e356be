"""Principal types: token claims attached to a request and the resolved principal."""

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class PrincipalClaims:
    """Identity asserted by a verified access token.

    ``role_claim`` is the role code embedded at issuance time. It is only
    trusted by the legacy role-code checks and the store-scope bypass;
    privilege checks always re-read the role from the database.
    """

    user_id: str
    role_claim: str | None = None
    tenant_id: str | None = None

    @classmethod
    def from_token(cls, payload: Mapping[str, Any]) -> "PrincipalClaims":
        return cls(
            user_id=str(payload["sub"]),
            role_claim=payload.get("role"),
            tenant_id=payload.get("store") or None,
        )


@dataclass(frozen=True)
class GrantedPrivilege:
    code: str
    category: str
    is_active: bool = True


@dataclass(frozen=True)
class Principal:
    """A user joined with the privilege set of its role at lookup time."""

    user_id: str
    role_id: int
    role_code: str
    role_active: bool
    store_id: str | None = None
    privileges: tuple[GrantedPrivilege, ...] = field(default_factory=tuple)

    @property
    def privilege_codes(self) -> frozenset[str]:
        return frozenset(p.code for p in self.privileges)

    def has_privilege(self, code: str) -> bool:
        return any(p.code == code for p in self.privileges)

    def has_any_privilege_in_category(self, category: str) -> bool:
        # Deactivated privileges still count for code checks but not here.
        return any(p.category == category and p.is_active for p in self.privileges)


__all__ = ["GrantedPrivilege", "Principal", "PrincipalClaims"]
