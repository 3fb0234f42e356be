"""Success and error envelopes shared by views, the exception handler and middleware.

Successful responses look like ``{"success": true, "data": ...}``; errors
look like ``{"success": false, "message": "...", ...}`` where the extra
keys carry machine-readable detail such as ``requiredPrivilege``.
"""

from typing import Any

from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import ModelViewSet


def success_payload(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


def error_payload(message: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "message": message, **extra}


def api_response(data: Any, status: int = 200) -> Response:
    """Return ``data`` wrapped in the success envelope."""

    return Response(success_payload(data), status=status)


def is_enveloped(payload: Any) -> bool:
    return isinstance(payload, dict) and isinstance(payload.get("success"), bool)


class EnvelopeMixin:
    """Wrap plain 2xx DRF responses (e.g. ModelViewSet.list) in the success envelope."""

    def finalize_response(self, request, response, *args, **kwargs):  # type: ignore[override]
        status_code = getattr(response, "status_code", None)
        if (
            status_code
            and status_code < 400
            and status_code != 204
            and hasattr(response, "data")
            and not is_enveloped(response.data)
        ):
            response.data = success_payload(response.data)
        # DRF's APIView/ModelViewSet provide finalize_response; mixin alone doesn't.
        return super().finalize_response(request, response, *args, **kwargs)  # type: ignore[attr-defined]


class BaseAPIView(EnvelopeMixin, APIView):
    """APIView whose successful responses use the standard envelope."""


class BaseViewSet(EnvelopeMixin, ModelViewSet):
    """ModelViewSet whose successful responses use the standard envelope."""
