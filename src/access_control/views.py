"""Administrative endpoints for roles and privileges, plus principal introspection.

Every endpoint here is itself gated by privileges, so managing the
catalog goes through the same evaluator as any business route.
"""

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response

from core.response import BaseAPIView, BaseViewSet, api_response
from .models import Privilege, Role
from .permissions import (
    ActionPermissionsMixin,
    IsPrincipal,
    RequireInventoryAccess,
    RequirePharmacistOrHigher,
    RequireSystemSettings,
    RequireUserManagement,
    RequireViewUsers,
    StoreAccess,
    require_all_of,
    require_any_of,
)
from .registry import PrivilegeRegistry, RoleRegistry
from .resolver import PrincipalResolver
from .serializers import (
    PrivilegeCreateSerializer,
    PrivilegeSerializer,
    PrivilegeUpdateSerializer,
    RoleCreateSerializer,
    RoleSerializer,
    RoleUpdateSerializer,
    UserRoleSerializer,
)

RequireCreateRole = require_all_of(["CREATE_USERS", "SYSTEM_SETTINGS"])
RequireEditRole = require_all_of(["EDIT_USERS", "SYSTEM_SETTINGS"])
RequireDeleteRole = require_all_of(["DELETE_USERS", "SYSTEM_SETTINGS"])


class RoleViewSet(ActionPermissionsMixin, BaseViewSet):
    """CRUD endpoints for roles; system roles are read-only here."""

    serializer_class = RoleSerializer
    queryset = Role.objects.prefetch_related("privileges").order_by("name")
    permission_classes = [RequireSystemSettings]
    action_permissions = {
        "list": [RequireViewUsers],
        "retrieve": [RequireViewUsers],
        "stats": [RequireViewUsers],
        "create": [RequireCreateRole],
        "update": [RequireEditRole],
        "partial_update": [RequireEditRole],
        "toggle_status": [RequireEditRole],
        "destroy": [RequireDeleteRole],
    }
    registry = RoleRegistry()

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action == "list":
            return queryset.filter(is_active=True)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = RoleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        role = self.registry.create(**serializer.validated_data)
        return api_response(self._represent(role), status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        serializer = RoleUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        role = self.registry.update(kwargs["pk"], serializer.validated_data)
        return api_response(self._represent(role))

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        self.registry.delete(kwargs["pk"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["patch"], url_path="toggle-status")
    def toggle_status(self, request, pk=None):
        """Flip ``is_active``; deactivating a system role is rejected."""
        role = self.registry.toggle_active(pk)
        return api_response({"is_active": role.is_active})

    @action(detail=True, methods=["get"])
    def stats(self, request, pk=None):
        return api_response(self.registry.stats(pk))

    def _represent(self, role: Role):
        return RoleSerializer(self.registry.get_with_privileges(role.pk)).data


class PrivilegeViewSet(BaseViewSet):
    """Privilege catalog administration; all actions need SYSTEM_SETTINGS."""

    serializer_class = PrivilegeSerializer
    queryset = Privilege.objects.order_by("category", "name")
    permission_classes = [RequireSystemSettings]
    registry = PrivilegeRegistry()

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action == "list":
            return queryset.filter(is_active=True)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = PrivilegeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        privilege = self.registry.create(**serializer.validated_data)
        return api_response(PrivilegeSerializer(privilege).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        serializer = PrivilegeUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        privilege = self.registry.update(kwargs["pk"], **serializer.validated_data)
        return api_response(PrivilegeSerializer(privilege).data)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        self.registry.delete(kwargs["pk"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["patch"], url_path="toggle-status")
    def toggle_status(self, request, pk=None):
        privilege = self.registry.toggle_active(pk)
        return api_response({"is_active": privilege.is_active})

    @action(detail=True, methods=["get"])
    def stats(self, request, pk=None):
        return api_response(self.registry.stats(pk))

    @action(detail=False, methods=["get"], url_path=r"category/(?P<category>[a-z_]+)")
    def by_category(self, request, category=None):
        privileges = self.registry.find_active_by_category(category)
        return api_response(PrivilegeSerializer(privileges, many=True).data)

    @action(detail=False, methods=["get"], url_path="categories/summary")
    def categories_summary(self, request):
        return api_response(self.registry.categories_summary())


class UserRoleView(BaseAPIView):
    """Assign a role to a user."""

    permission_classes = [RequireEditRole]

    # noinspection PyMethodMayBeStatic
    def put(self, request, user_id):
        serializer = UserRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = RoleRegistry().assign_user(user_id, serializer.validated_data["role_id"])
        return api_response({"user_id": str(user.pk), "role": user.role.code})


class PrincipalView(BaseAPIView):
    """Return the caller's role and effective privilege codes."""

    permission_classes = [IsPrincipal]

    # noinspection PyMethodMayBeStatic
    def get(self, request):
        principal = PrincipalResolver().resolve(request.auth.user_id)
        categories = {p.category for p in principal.privileges if p.is_active}
        return api_response(
            {
                "user_id": principal.user_id,
                "role": principal.role_code,
                "role_active": principal.role_active,
                "store_id": principal.store_id,
                "privileges": sorted(principal.privilege_codes),
                "categories": sorted(categories),
            }
        )


class PrivilegeProbeView(BaseAPIView):
    """Diagnostic routes that only answer when their requirement passes."""

    check = ""

    def get(self, request):
        return api_response({"check": self.check, "user_id": request.auth.user_id})


class SinglePrivilegeProbe(PrivilegeProbeView):
    check = "single"
    permission_classes = [RequireViewUsers]


class AllPrivilegesProbe(PrivilegeProbeView):
    check = "all_of"
    permission_classes = [require_all_of(["VIEW_USERS", "VIEW_INVENTORY"])]


class AnyPrivilegeProbe(PrivilegeProbeView):
    check = "any_of"
    permission_classes = [require_any_of(["VIEW_USERS", "VIEW_INVENTORY"])]


class CategoryProbe(PrivilegeProbeView):
    check = "category"
    permission_classes = [RequireUserManagement]


class AdminOnlyProbe(PrivilegeProbeView):
    check = "admin_only"
    permission_classes = [RequireSystemSettings]


class LegacyRoleProbe(PrivilegeProbeView):
    check = "role"
    permission_classes = [RequirePharmacistOrHigher]


class StoreScopedProbe(PrivilegeProbeView):
    check = "store_scoped"
    permission_classes = [RequireInventoryAccess, StoreAccess]


__all__ = [
    "PrincipalView",
    "PrivilegeViewSet",
    "RoleViewSet",
    "UserRoleView",
]
