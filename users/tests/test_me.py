from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.models import Barangay
from users.models import Role, User


class MeAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.barangay = Barangay.objects.create(name="Santa Cruz")
        self.user = User.objects.create_user(
            username="captain", password="pass", role=Role.BARANGAY, barangay=self.barangay
        )
        self.client.force_authenticate(user=self.user)
        self.url = reverse("user-me")

    def test_me_shows_role_and_barangay(self):
        data = self.client.get(self.url).json()
        self.assertEqual(data["role"], "barangay")
        self.assertEqual(data["barangay_name"], "Santa Cruz")

    def test_role_cannot_be_self_assigned(self):
        resp = self.client.patch(self.url, {"phone": "0917", "role": "admin"}, format="json")
        self.assertEqual(resp.status_code, 200)

        self.user.refresh_from_db()
        self.assertEqual(self.user.phone, "0917")
        self.assertEqual(self.user.role, Role.BARANGAY)
        self.assertFalse(self.user.is_admin)
