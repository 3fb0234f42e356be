"""Audit records for authorization outcomes.

Denials and verification failures are always recorded on the
``access_control.audit`` logger. Grants are recorded only when
``settings.AUTHZ_LOG_GRANTS`` is enabled.
"""

import json
import logging

from django.conf import settings

from .evaluator import Decision
from .principal import PrincipalClaims

audit_logger = logging.getLogger("access_control.audit")


def _resource(request) -> str:
    return f"{request.method} {request.path}"


def log_denial(claims: PrincipalClaims | None, request, decision: Decision | None = None, **detail) -> None:
    """Record a denied request with principal id, resource and missing detail."""
    entry = {
        "event": "authorization.denied",
        "user_id": claims.user_id if claims else None,
        "role": claims.role_claim if claims else None,
        "resource": _resource(request),
    }
    if decision is not None:
        entry["requirement"] = decision.requirement.describe()
        entry.update(decision.reason())
    entry.update(detail)
    audit_logger.warning("AUDIT: %s", json.dumps(entry, sort_keys=True))


def log_grant(claims: PrincipalClaims, request, decision: Decision) -> None:
    if not getattr(settings, "AUTHZ_LOG_GRANTS", False):
        return
    entry = {
        "event": "authorization.granted",
        "user_id": claims.user_id,
        "resource": _resource(request),
        "requirement": decision.requirement.describe(),
    }
    audit_logger.info("AUDIT: %s", json.dumps(entry, sort_keys=True))


def log_verification_failure(claims: PrincipalClaims, request, error: Exception) -> None:
    entry = {
        "event": "authorization.error",
        "user_id": claims.user_id,
        "resource": _resource(request),
        "error": type(error).__name__,
    }
    audit_logger.error("AUDIT: %s", json.dumps(entry, sort_keys=True), exc_info=error)


__all__ = ["log_denial", "log_grant", "log_verification_failure"]
