from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from projects.models import Comment, Project, Reaction, Report

User = get_user_model()


class EngagementAPITestCase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.owner = User.objects.create_user(username="captain", password="pass", role="barangay")
        self.resident = User.objects.create_user(username="resident", password="pass")
        self.project = Project.objects.create(title="Streetlights", created_by=self.owner)

        self.client.force_authenticate(user=self.resident)

        self.comments_url = reverse("project-comments", args=[self.project.id])
        self.react_url = reverse("project-react", args=[self.project.id])
        self.report_url = reverse("project-report", args=[self.project.id])

    def test_comment_is_sanitized_and_listed(self):
        resp = self.client.post(self.comments_url, {"content": "  <b>Salamat</b> po  "}, format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["content"], "Salamat po")

        data = self.client.get(self.comments_url).json()
        self.assertEqual(data["count"], 1)
        self.assertEqual(data["comments"][0]["username"], "resident")

    def test_blank_comment_is_rejected(self):
        resp = self.client.post(self.comments_url, {"content": "<i></i>"}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(Comment.objects.exists())

    def test_reaction_toggles(self):
        first = self.client.post(self.react_url).json()
        self.assertEqual(first, {"reacted": True, "reaction_count": 1})

        second = self.client.post(self.react_url).json()
        self.assertEqual(second, {"reacted": False, "reaction_count": 0})
        self.assertFalse(Reaction.objects.exists())

    def test_report(self):
        resp = self.client.post(self.report_url, {"reason": "Budget looks wrong"}, format="json")
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(Report.objects.get().user, self.resident)

    def test_unknown_project(self):
        resp = self.client.post(reverse("project-react", args=[999]))
        self.assertEqual(resp.status_code, 404)
