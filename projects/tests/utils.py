import os
import shutil
import tempfile
from unittest.mock import patch

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from core.storage import LocalMediaStore, StorageError
from projects.models import PendingUpload

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\nIDATx\x9cc\x00\x01"
    b"\x00\x00\x05\x00\x01\r\n-\xb4\x00\x00\x00\x00IEND\xaeB`\x82"
)


class RecordingStore(LocalMediaStore):
    """Local store that remembers every call and can be told to fail."""

    def __init__(self):
        self.uploaded = []
        self.deleted = []
        self.fail_upload = False
        self.fail_delete = False

    def upload(self, local_path):
        if self.fail_upload:
            raise StorageError(f"Upload failed for {local_path}")
        result = super().upload(local_path)
        self.uploaded.append(result["url"])
        return result

    def delete(self, object_id):
        self.deleted.append(object_id)
        if self.fail_delete:
            raise StorageError(f"Delete failed for {object_id}")
        super().delete(object_id)


class MediaTestCase(TestCase):
    """
    TestCase with a throwaway MEDIA_ROOT and a RecordingStore standing in
    for the configured media store.
    """

    def setUp(self):
        super().setUp()
        self.client = APIClient()

        self.media_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)
        media_override = override_settings(MEDIA_ROOT=self.media_root)
        media_override.enable()
        self.addCleanup(media_override.disable)

        self.store = RecordingStore()
        for target in ("core.storage.get_media_store", "projects.services.media.get_media_store"):
            patcher = patch(target, side_effect=lambda: self.store)
            patcher.start()
            self.addCleanup(patcher.stop)

    def auth(self, user):
        self.client.force_authenticate(user=user)

    def image(self, name="photo.png"):
        return SimpleUploadedFile(name, PNG_BYTES, content_type="image/png")

    def pending_ref(self, user, name):
        """A direct-upload ref owned by ``user``, as /media/upload/ would record it."""
        upload = PendingUpload.objects.create(
            object_id=name,
            url=f"/media/uploads/{name}",
            mime_type="image/png",
            size=12,
            uploaded_by=user,
        )
        return {"url": upload.url, "mime_type": upload.mime_type, "size": upload.size}

    def staged_files(self):
        upload_dir = os.path.join(self.media_root, "uploads")
        if not os.path.isdir(upload_dir):
            return []
        return sorted(os.listdir(upload_dir))
