from types import SimpleNamespace

from django.test import SimpleTestCase

from core.exceptions import Unauthorized
from projects.policies import can_manage, check_permissions
from users.models import Role


def actor(id, role):
    return SimpleNamespace(id=id, role=role)


class PermissionGuardTests(SimpleTestCase):
    def test_admin_manages_anything(self):
        check_permissions(actor(1, Role.ADMIN), owner_id=99)
        self.assertTrue(can_manage(actor(1, "admin"), 99))

    def test_owner_manages_own_resource(self):
        for role in (Role.BARANGAY, Role.USER):
            with self.subTest(role=role):
                check_permissions(actor(7, role), owner_id=7)

    def test_non_owner_is_denied(self):
        for role in (Role.BARANGAY, Role.USER):
            with self.subTest(role=role), self.assertRaises(Unauthorized):
                check_permissions(actor(7, role), owner_id=8)

    def test_unknown_role_is_treated_as_plain_user(self):
        self.assertFalse(can_manage(actor(7, "superhero"), 8))
        self.assertTrue(can_manage(actor(7, "superhero"), 7))

    def test_missing_actor_is_denied(self):
        with self.assertRaises(Unauthorized):
            check_permissions(None, owner_id=1)

    def test_role_capability(self):
        self.assertTrue(Role.ADMIN.can_manage(1, 2))
        self.assertFalse(Role.USER.can_manage(None, None))
