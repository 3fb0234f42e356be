"""Authentication helpers that bridge JWT middleware into DRF.

DRF's ``Request.user`` normally relies on its own authentication classes.
Since this project performs JWT verification in ``JWTAuthMiddleware``, this
module provides a lightweight authenticator that surfaces the user and the
token's principal claims already attached to the underlying Django request.
"""

from typing import Any, Optional, Tuple

from django.contrib.auth.models import AnonymousUser
from rest_framework.authentication import BaseAuthentication

from access_control.principal import PrincipalClaims


class MiddlewareUserAuthentication(BaseAuthentication):
    """Expose the middleware's user as ``request.user`` and claims as ``request.auth``.

    No credential parsing happens here. If the user is anonymous or the
    middleware attached no claims, authentication is skipped and the
    permission classes answer 401.
    """

    def authenticate(self, request) -> Optional[Tuple[Any, PrincipalClaims]]:
        # DRF's Request wraps the original Django HttpRequest as ``._request``.
        django_request = getattr(request, "_request", None)
        if django_request is None:
            return None

        user = getattr(django_request, "user", None)
        if user is None or isinstance(user, AnonymousUser):
            return None

        if not getattr(user, "is_authenticated", False):
            return None

        claims = getattr(django_request, "principal_claims", None)
        if not isinstance(claims, PrincipalClaims):
            return None

        return user, claims

    def authenticate_header(self, request) -> str:
        return 'Bearer realm="api"'


__all__ = ["MiddlewareUserAuthentication"]
