"""Tests for principal resolution and the fail-closed membership checks."""

from __future__ import annotations

from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from access_control.exceptions import PrincipalNotFound, PrincipalResolutionError
from access_control.models import Privilege, PrivilegeCategory, Role
from access_control.registry import PrivilegeRegistry, RoleRegistry
from access_control.resolver import PrincipalResolver
from tests.utils import create_user


class PrincipalResolverTests(TestCase):
    """Resolution always reads current state and never grants on failure."""

    @classmethod
    def setUpTestData(cls):
        privileges = PrivilegeRegistry()
        cls.view, _ = privileges.register(
            "VIEW_INVENTORY", "View Inventory", "See stock", PrivilegeCategory.INVENTORY
        )
        cls.manage, _ = privileges.register(
            "MANAGE_INVENTORY", "Manage Inventory", "Edit stock", PrivilegeCategory.INVENTORY
        )
        cls.role, _ = RoleRegistry().upsert_by_code(
            "STOCK_CLERK", "Stock Clerk", "Counts boxes", [cls.view.pk, cls.manage.pk]
        )
        cls.user = create_user("clerk@example.com", role=cls.role, store_id="store-1")

    def setUp(self):
        self.resolver = PrincipalResolver()

    def test_resolve_returns_role_and_privileges(self):
        principal = self.resolver.resolve(self.user.pk)

        self.assertEqual(principal.user_id, str(self.user.pk))
        self.assertEqual(principal.role_code, "STOCK_CLERK")
        self.assertEqual(principal.store_id, "store-1")
        self.assertEqual(principal.privilege_codes, {"VIEW_INVENTORY", "MANAGE_INVENTORY"})

    def test_unknown_inactive_or_malformed_user_is_not_found(self):
        inactive = create_user("gone@example.com", role=self.role, is_active=False)

        for user_id in ("6b0f5c7e-0000-4000-8000-000000000000", inactive.pk, "not-a-uuid"):
            with self.subTest(user_id=user_id):
                with self.assertRaises(PrincipalNotFound):
                    self.resolver.resolve(user_id)

    def test_user_without_role_fails_resolution(self):
        orphan = create_user("orphan@example.com", role=None)

        with self.assertRaises(PrincipalResolutionError):
            self.resolver.resolve(orphan.pk)

    def test_dangling_role_reference_fails_resolution(self):
        with mock.patch.object(RoleRegistry, "get_with_privileges", return_value=None):
            with self.assertRaises(PrincipalResolutionError):
                self.resolver.resolve(self.user.pk)

    def test_inactive_role_grants_nothing(self):
        Role.objects.filter(pk=self.role.pk).update(is_active=False)

        principal = self.resolver.resolve(self.user.pk)

        self.assertFalse(principal.role_active)
        self.assertEqual(principal.privilege_codes, frozenset())

    def test_has_privilege_fails_closed(self):
        """Every resolution failure answers False instead of raising."""
        orphan = create_user("orphan@example.com", role=None)
        inactive = create_user("gone@example.com", role=self.role, is_active=False)

        self.assertTrue(self.resolver.has_privilege(self.user.pk, "VIEW_INVENTORY"))
        self.assertFalse(self.resolver.has_privilege(orphan.pk, "VIEW_INVENTORY"))
        self.assertFalse(self.resolver.has_privilege(inactive.pk, "VIEW_INVENTORY"))
        self.assertFalse(self.resolver.has_privilege("not-a-uuid", "VIEW_INVENTORY"))

        with mock.patch.object(
            RoleRegistry, "get_with_privileges", side_effect=DatabaseError("timeout")
        ):
            self.assertFalse(self.resolver.has_privilege(self.user.pk, "VIEW_INVENTORY"))
            self.assertFalse(
                self.resolver.has_any_privilege_in_category(self.user.pk, PrivilegeCategory.INVENTORY)
            )

        with mock.patch.object(
            RoleRegistry, "get_with_privileges", side_effect=RuntimeError("corrupt row")
        ):
            self.assertFalse(self.resolver.has_privilege(self.user.pk, "VIEW_INVENTORY"))
            self.assertFalse(
                self.resolver.has_any_privilege_in_category(self.user.pk, PrivilegeCategory.INVENTORY)
            )

    def test_revocation_is_visible_on_next_lookup(self):
        """Removing a privilege or deactivating the user takes effect immediately."""
        self.assertTrue(self.resolver.has_privilege(self.user.pk, "MANAGE_INVENTORY"))

        self.role.privileges.remove(self.manage)
        self.assertFalse(self.resolver.has_privilege(self.user.pk, "MANAGE_INVENTORY"))
        self.assertTrue(self.resolver.has_privilege(self.user.pk, "VIEW_INVENTORY"))

        type(self.user).objects.filter(pk=self.user.pk).update(is_active=False)
        self.assertFalse(self.resolver.has_privilege(self.user.pk, "VIEW_INVENTORY"))

    def test_deactivated_privilege_counts_for_codes_but_not_categories(self):
        Privilege.objects.filter(code__in=["VIEW_INVENTORY", "MANAGE_INVENTORY"]).update(is_active=False)

        self.assertTrue(self.resolver.has_privilege(self.user.pk, "VIEW_INVENTORY"))
        self.assertFalse(
            self.resolver.has_any_privilege_in_category(self.user.pk, PrivilegeCategory.INVENTORY)
        )

    def test_uses_injected_role_registry(self):
        roles = mock.Mock(spec=RoleRegistry)
        roles.get_with_privileges.return_value = None

        resolver = PrincipalResolver(roles=roles)

        self.assertFalse(resolver.has_privilege(self.user.pk, "VIEW_INVENTORY"))
        roles.get_with_privileges.assert_called_once_with(self.role.pk)
