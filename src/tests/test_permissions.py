"""Tests for the permission factories and their named bindings."""

from __future__ import annotations

from unittest import mock

from django.test import SimpleTestCase
from rest_framework.exceptions import NotAuthenticated
from rest_framework.test import APIRequestFactory

from access_control import permissions
from access_control.evaluator import AuthorizationEvaluator, Decision, Mode, Requirement
from access_control.exceptions import PrivilegeCheckUnavailable, PrivilegeDenied, PrivilegeVerificationError
from access_control.principal import PrincipalClaims


class PermissionFactoryTests(SimpleTestCase):
    def setUp(self):
        self.request = APIRequestFactory().get("/inventory/")
        self.request.auth = PrincipalClaims("user-1", role_claim="CASHIER", tenant_id="s1")

    def test_factories_capture_their_requirement(self):
        self.assertEqual(
            permissions.require_privilege("ADJUST_STOCK").requirement, Requirement.privilege("ADJUST_STOCK")
        )
        self.assertEqual(permissions.require_all_of(["A", "B"]).requirement.mode, Mode.ALL_OF)
        self.assertEqual(permissions.require_any_of(["A", "B"]).requirement.mode, Mode.ANY_OF)
        self.assertEqual(permissions.require_category("sales").requirement.category, "sales")
        self.assertEqual(permissions.require_role(["CASHIER"]).requirement.codes, ("CASHIER",))

    def test_named_bindings_are_preapplied_factories(self):
        self.assertEqual(
            permissions.RequireManageInventory.requirement, Requirement.privilege("MANAGE_INVENTORY")
        )
        self.assertEqual(permissions.RequireInventoryAccess.requirement, Requirement.in_category("inventory"))
        self.assertTrue(issubclass(permissions.RequireAdmin, permissions.PrivilegePermission))

    def test_missing_claims_raise_not_authenticated(self):
        self.request.auth = None

        with self.assertRaises(NotAuthenticated):
            permissions.RequireViewUsers().has_permission(self.request, view=None)

    def test_denied_decision_raises_with_reason(self):
        requirement = Requirement.privilege("VIEW_USERS")
        with mock.patch.object(
            AuthorizationEvaluator, "evaluate", return_value=Decision(False, requirement)
        ), self.assertLogs("access_control.audit", level="WARNING"):
            with self.assertRaises(PrivilegeDenied) as raised:
                permissions.RequireViewUsers().has_permission(self.request, view=None)

        self.assertEqual(raised.exception.reason, {"requiredPrivilege": "VIEW_USERS"})

    def test_verification_error_raises_500_exception(self):
        with mock.patch.object(
            AuthorizationEvaluator, "evaluate", side_effect=PrivilegeVerificationError("down")
        ), self.assertLogs("access_control.audit", level="ERROR"):
            with self.assertRaises(PrivilegeCheckUnavailable):
                permissions.RequireViewUsers().has_permission(self.request, view=None)

    def test_granted_decision_returns_true(self):
        requirement = Requirement.privilege("VIEW_USERS")
        with mock.patch.object(AuthorizationEvaluator, "evaluate", return_value=Decision(True, requirement)):
            self.assertTrue(permissions.RequireViewUsers().has_permission(self.request, view=None))

    def test_action_permissions_mixin_picks_per_action_classes(self):
        class View(permissions.ActionPermissionsMixin):
            permission_classes = [permissions.RequireSystemSettings]
            action_permissions = {"list": [permissions.RequireViewUsers]}

        view = View()
        view.action = "list"
        self.assertIsInstance(view.get_permissions()[0], permissions.RequireViewUsers)
        view.action = "destroy"
        self.assertIsInstance(view.get_permissions()[0], permissions.RequireSystemSettings)

    def test_action_permissions_mixin_defaults_to_permission_classes(self):
        class View(permissions.ActionPermissionsMixin):
            permission_classes = [permissions.RequireSystemSettings]

        view = View()
        view.action = "list"
        self.assertIsNone(permissions.ActionPermissionsMixin.action_permissions)
        self.assertIsInstance(view.get_permissions()[0], permissions.RequireSystemSettings)
