"""Routing for access control admin endpoints."""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AdminOnlyProbe,
    AllPrivilegesProbe,
    AnyPrivilegeProbe,
    CategoryProbe,
    LegacyRoleProbe,
    PrincipalView,
    PrivilegeViewSet,
    RoleViewSet,
    SinglePrivilegeProbe,
    StoreScopedProbe,
    UserRoleView,
)

router = DefaultRouter()
router.register(r"roles", RoleViewSet, basename="role")
router.register(r"privileges", PrivilegeViewSet, basename="privilege")

urlpatterns = [
    path("", include(router.urls)),
    path("users/<uuid:user_id>/role/", UserRoleView.as_view(), name="user-role"),
    path("authz/me/", PrincipalView.as_view(), name="authz-me"),
    path("authz/checks/single/", SinglePrivilegeProbe.as_view(), name="authz-check-single"),
    path("authz/checks/all-of/", AllPrivilegesProbe.as_view(), name="authz-check-all-of"),
    path("authz/checks/any-of/", AnyPrivilegeProbe.as_view(), name="authz-check-any-of"),
    path("authz/checks/category/", CategoryProbe.as_view(), name="authz-check-category"),
    path("authz/checks/admin-only/", AdminOnlyProbe.as_view(), name="authz-check-admin-only"),
    path("authz/checks/role/", LegacyRoleProbe.as_view(), name="authz-check-role"),
    path("authz/checks/store/", StoreScopedProbe.as_view(), name="authz-check-store"),
]
