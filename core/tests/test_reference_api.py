from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.models import Barangay, Tag

User = get_user_model()


class ReferenceDataAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(username="admin", password="pass", role="admin")
        self.resident = User.objects.create_user(username="resident", password="pass")
        Tag.objects.create(name="roads")
        Barangay.objects.create(name="Poblacion")

    def test_anyone_signed_in_can_read(self):
        self.client.force_authenticate(user=self.resident)
        self.assertEqual(len(self.client.get(reverse("tag-list")).json()), 1)
        self.assertEqual(self.client.get(reverse("barangay-list")).json()[0]["name"], "Poblacion")

    def test_only_admins_create(self):
        self.client.force_authenticate(user=self.resident)
        resp = self.client.post(reverse("tag-list"), {"name": "health"}, format="json")
        self.assertEqual(resp.status_code, 403)

        self.client.force_authenticate(user=self.admin)
        resp = self.client.post(reverse("tag-list"), {"name": "health"}, format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertTrue(Tag.objects.filter(name="health").exists())

    def test_health_is_public(self):
        resp = self.client.get(reverse("health-check"))
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["db"])
        self.assertEqual(resp.json()["media_store"], "local")
