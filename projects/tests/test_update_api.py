from unittest.mock import patch

from rest_framework import status

from core.models import Barangay
from core.storage import StorageError
from projects.models import Media, PendingUpload, Project, Update
from users.models import User

from .utils import MediaTestCase


class UpdateApiTestCase(MediaTestCase):
    def setUp(self):
        super().setUp()
        self.barangay = Barangay.objects.create(name="Poblacion")
        self.owner = User.objects.create_user(
            username="captain", password="pass", role="barangay", barangay=self.barangay
        )
        self.other = User.objects.create_user(username="resident", password="pass", role="user")
        self.project = Project.objects.create(title="Covered Court", created_by=self.owner)
        self.url = f"/api/projects/{self.project.id}/updates/"
        self.auth(self.owner)

    def post_update(self, progress, remarks="Work in progress", **extra):
        payload = {"remarks": remarks, "progress": progress}
        payload.update(extra)
        return self.client.post(self.url, payload, format="json")

    def assertProject(self, status_, progress):
        self.project.refresh_from_db()
        self.assertEqual((self.project.status, self.project.progress), (status_, progress))


class UpdateCreateTests(UpdateApiTestCase):
    def test_partial_progress_starts_the_project(self):
        resp = self.post_update(40)
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)
        self.assertEqual(resp.json()["update"]["progress"], 40)
        self.assertProject("ongoing", 40)

    def test_full_progress_completes_and_deleting_does_not_revert(self):
        resp = self.post_update(100, remarks="Turned over to the community")
        self.assertProject("completed", 100)

        update_id = resp.json()["update"]["id"]
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.client.delete(f"{self.url}{update_id}/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertFalse(Update.objects.exists())
        self.assertProject("completed", 100)

    def test_lower_progress_reopens_completed_project(self):
        self.post_update(100)
        self.post_update(70, remarks="Punch list found more work")
        self.assertProject("ongoing", 70)

    def test_uploaded_refs_are_attached(self):
        refs = [self.pending_ref(self.owner, "ref1.png")]
        resp = self.post_update(10, uploadedImages=refs)
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)

        media = Media.objects.get()
        self.assertEqual(media.update_id, resp.json()["update"]["id"])
        self.assertEqual(media.project_id, self.project.id)
        self.assertEqual(len(resp.json()["update"]["media"]), 1)
        self.assertFalse(PendingUpload.objects.exists())

    def test_files_are_stored_as_update_media(self):
        resp = self.client.post(
            self.url,
            {"remarks": "Photos", "progress": "25", "files": [self.image()]},
            format="multipart",
        )
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.content)
        update = Update.objects.get()
        self.assertEqual(update.media.count(), 1)
        self.assertEqual(len(self.store.uploaded), 1)

    def test_store_failure_rolls_back_the_update(self):
        self.store.fail_upload = True
        resp = self.client.post(
            self.url,
            {"remarks": "Photos", "progress": "25", "files": [self.image()]},
            format="multipart",
        )
        self.assertEqual(resp.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertFalse(Update.objects.exists())
        self.assertEqual(self.staged_files(), [])
        self.assertProject("pending", 0)

    def test_failed_update_deletes_client_refs(self):
        refs = [self.pending_ref(self.owner, "orphan.png")]
        with patch(
            "projects.services.updates.create_media_records",
            side_effect=StorageError("bucket unavailable"),
        ):
            resp = self.post_update(25, uploadedImages=refs)

        self.assertEqual(resp.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertFalse(Update.objects.exists())
        self.assertFalse(Media.objects.exists())
        self.assertEqual(self.store.deleted, ["orphan.png"])
        self.assertProject("pending", 0)

    def test_refs_must_be_own_pending_uploads(self):
        other_ref = self.pending_ref(self.other, "theirs.png")
        for refs in ([{"url": "/media/uploads/never-uploaded.png"}], [other_ref]):
            with self.subTest(refs=refs):
                resp = self.post_update(30, uploadedImages=refs)
                self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        self.assertFalse(Update.objects.exists())
        self.assertFalse(Media.objects.exists())
        self.assertProject("pending", 0)

    def attached_media_of_another_project(self):
        victim_project = Project.objects.create(title="Health Center", created_by=self.other)
        return Media.objects.create(
            url="https://cdn.example/media/victim.png",
            mime_type="image/png",
            size=9,
            project=victim_project,
        )

    def test_attached_media_cannot_be_claimed(self):
        victim = self.attached_media_of_another_project()
        for url in (victim.url, "http://elsewhere.example/x/victim.png"):
            with self.subTest(url=url):
                with self.captureOnCommitCallbacks(execute=True):
                    resp = self.post_update(30, uploadedImages=[{"url": url}])
                self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        self.assertEqual(list(Media.objects.values_list("pk", flat=True)), [victim.pk])
        self.assertEqual(self.store.deleted, [])

    def test_attached_media_survive_a_failed_update(self):
        victim = self.attached_media_of_another_project()
        with patch(
            "projects.services.updates.create_media_records",
            side_effect=StorageError("bucket unavailable"),
        ):
            resp = self.post_update(25, uploadedImages=[{"url": victim.url}])

        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.store.deleted, [])
        self.assertTrue(Media.objects.filter(pk=victim.pk).exists())

    def test_non_owner_cannot_post(self):
        self.auth(self.other)
        resp = self.post_update(50)
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Update.objects.exists())
        self.assertProject("pending", 0)

    def test_missing_project_is_404(self):
        resp = self.client.post("/api/projects/999/updates/", {"remarks": "x", "progress": 1}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_invalid_progress_is_rejected(self):
        resp = self.post_update(120)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_scoped_and_ordered(self):
        self.post_update(10, remarks="First")
        self.post_update(20, remarks="Second")
        other = Project.objects.create(title="Other", created_by=self.owner)
        Update.objects.create(project=other, remarks="Elsewhere", progress=5)

        data = self.client.get(self.url).json()
        self.assertEqual(data["totalCount"], 2)
        self.assertEqual([u["remarks"] for u in data["updates"]], ["First", "Second"])

    def test_update_from_another_project_is_404(self):
        other = Project.objects.create(title="Other", created_by=self.owner)
        foreign = Update.objects.create(project=other, remarks="Elsewhere", progress=5)
        resp = self.client.get(f"{self.url}{foreign.id}/")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)


class UpdateEditTests(UpdateApiTestCase):
    def setUp(self):
        super().setUp()
        resp = self.post_update(40, remarks="Foundation poured")
        self.update_url = f"{self.url}{resp.json()['update']['id']}/"

    def test_remarks_only_leaves_project_alone(self):
        Project.objects.filter(pk=self.project.pk).update(progress=55)
        resp = self.client.patch(self.update_url, {"remarks": "Foundation cured"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.content)
        self.assertEqual(resp.json()["update"]["remarks"], "Foundation cured")
        self.assertEqual(resp.json()["update"]["progress"], 40)
        self.assertProject("ongoing", 55)

    def test_progress_edit_is_mirrored(self):
        self.client.patch(self.update_url, {"progress": 100}, format="json")
        self.assertProject("completed", 100)

    def test_media_are_appended(self):
        first = [self.pending_ref(self.owner, "a.png")]
        second = [self.pending_ref(self.owner, "b.png")]
        self.client.patch(self.update_url, {"uploadedImages": first}, format="json")
        resp = self.client.patch(self.update_url, {"uploadedImages": second}, format="json")
        self.assertEqual(len(resp.json()["update"]["media"]), 2)

    def test_non_owner_cannot_edit(self):
        self.auth(self.other)
        resp = self.client.patch(self.update_url, {"remarks": "Hijacked"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_all_updates(self):
        self.post_update(60, remarks="Walls up")
        Media.objects.create(
            url="/media/uploads/wall.png",
            mime_type="image/png",
            size=3,
            project=self.project,
            update=Update.objects.last(),
        )
        Media.objects.create(url="/media/uploads/cover.png", mime_type="image/png", size=3, project=self.project)

        with self.captureOnCommitCallbacks(execute=True):
            resp = self.client.delete(self.url)

        self.assertEqual(resp.json()["deleted"], 2)
        self.assertFalse(Update.objects.filter(project=self.project).exists())
        self.assertEqual(self.store.deleted, ["wall.png"])
        self.assertEqual(list(Media.objects.values_list("url", flat=True)), ["/media/uploads/cover.png"])
        self.assertProject("ongoing", 60)

    def test_delete_all_with_nothing_to_delete(self):
        Update.objects.all().delete()
        resp = self.client.delete(self.url)
        self.assertEqual(resp.json(), {"msg": "No update", "deleted": 0})
