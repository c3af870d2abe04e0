from django.test import SimpleTestCase

from taskhub.permissions import COUNTERPART_ROLES, permissions_for_role, role_has_permission


class RolePermissionTest(SimpleTestCase):
    def test_admin_holds_every_permission(self):
        for permission in ["read", "send", "moderate", "delete", "bypass_moderation"]:
            self.assertTrue(role_has_permission("admin", permission))

    def test_clients_and_freelancers_read_and_send(self):
        for role in ["client", "freelancer"]:
            self.assertTrue(role_has_permission(role, "send"))
            self.assertFalse(role_has_permission(role, "moderate"))
            self.assertFalse(role_has_permission(role, "delete"))

    def test_unknown_role_has_nothing(self):
        self.assertFalse(role_has_permission("guest", "read"))
        self.assertEqual(permissions_for_role("guest"), [])

    def test_unknown_permission(self):
        with self.assertRaises(KeyError):
            role_has_permission("admin", "fly")

    def test_counterparts(self):
        self.assertEqual(COUNTERPART_ROLES["client"], "freelancer")
        self.assertEqual(COUNTERPART_ROLES["freelancer"], "client")
        self.assertNotIn("admin", COUNTERPART_ROLES)
