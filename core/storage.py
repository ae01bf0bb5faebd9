# core/storage.py
# Object storage for project/update media (Supabase bucket or local disk)

import logging
import mimetypes
import os
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import urlparse

from django.conf import settings
from django.core.files.storage import default_storage
from supabase import create_client

logger = logging.getLogger("tracker.storage")

_supabase_client = None


class StorageError(Exception):
    """Raised when the object store rejects an upload or delete."""


def get_supabase_client():
    """
    Get the Supabase client instance (singleton pattern).
    Uses service_role key for admin access.
    """
    global _supabase_client

    if _supabase_client is None:
        url = settings.SUPABASE_URL
        key = settings.SUPABASE_SERVICE_ROLE_KEY

        if not url or not key:
            raise StorageError("Supabase credentials not configured")

        _supabase_client = create_client(url, key)
        logger.info("Supabase client initialized")

    return _supabase_client


def object_id_from_url(url: str) -> str:
    """
    The object id is the tail segment of the stored URL.

    "https://x.supabase.co/storage/v1/object/public/media/abc.jpg?t=1" -> "abc.jpg"
    """
    path = urlparse(url).path
    return path.rstrip("/").split("/")[-1]


class LocalMediaStore:
    """
    Dev/test backend: staged files under MEDIA_ROOT are the stored objects.
    An object id maps back to its file in the upload directory.
    """
    name = "local"

    def upload(self, local_path: str) -> dict:
        mime_type = mimetypes.guess_type(local_path)[0] or "application/octet-stream"
        return {
            "url": default_storage.url(local_path),
            "mime_type": mime_type,
            "size": default_storage.size(local_path),
        }

    def delete(self, object_id: str) -> None:
        path = f"{settings.MEDIA_UPLOAD_DIR}/{object_id}"
        try:
            default_storage.delete(path)
        except OSError as e:
            raise StorageError(f"Delete failed for {object_id}") from e
        logger.debug(f"Local store: removed {path}")


class SupabaseMediaStore:
    name = "supabase"

    def __init__(self, client, bucket: str):
        self.client = client
        self.bucket = bucket

    def upload(self, local_path: str) -> dict:
        """
        Push a staged file to the bucket.

        Returns {"url", "mime_type", "size"}; raises StorageError on failure.
        """
        object_id = os.path.basename(local_path)
        mime_type = mimetypes.guess_type(local_path)[0] or "application/octet-stream"

        with default_storage.open(local_path, "rb") as fh:
            content = fh.read()

        try:
            bucket = self.client.storage.from_(self.bucket)
            bucket.upload(
                object_id,
                content,
                file_options={"content-type": mime_type, "upsert": "true"},
            )
            url = bucket.get_public_url(object_id)
        except Exception as e:
            logger.error(f"Failed to upload {local_path} to bucket {self.bucket}: {e}")
            raise StorageError(f"Upload failed for {object_id}") from e

        logger.info(f"Uploaded media to storage: {object_id}")
        return {"url": url, "mime_type": mime_type, "size": len(content)}

    def delete(self, object_id: str) -> None:
        try:
            self.client.storage.from_(self.bucket).remove([object_id])
        except Exception as e:
            raise StorageError(f"Delete failed for {object_id}") from e
        logger.info(f"Deleted media from storage: {object_id}")


def get_media_store():
    if settings.MEDIA_STORE_BACKEND == "supabase":
        return SupabaseMediaStore(get_supabase_client(), settings.SUPABASE_MEDIA_BUCKET)
    return LocalMediaStore()


def _delete_one(store, url):
    object_id = object_id_from_url(url)
    try:
        store.delete(object_id)
    except StorageError as e:
        logger.warning(f"Failed to delete media object {object_id}: {e}")
        return url, e
    return None


def delete_objects(urls) -> list:
    """
    Delete every object behind ``urls`` from the store.

    Deletes are dispatched concurrently and awaited together. A failing delete
    never stops the others; failures are logged and returned as
    ``[(url, exception), ...]``. No retries.
    """
    urls = [url for url in urls if url]
    if not urls:
        return []

    try:
        store = get_media_store()
    except StorageError as e:
        logger.error(f"Media store unavailable, {len(urls)} object(s) left behind: {e}")
        return [(url, e) for url in urls]

    workers = max(1, min(settings.MEDIA_DELETE_WORKERS, len(urls)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        results = list(pool.map(lambda url: _delete_one(store, url), urls))

    return [failure for failure in results if failure is not None]


def delete_local_files(paths) -> list:
    """
    Remove staged files from MEDIA_ROOT. Best-effort: returns the paths
    that could not be removed.
    """
    failed = []
    for path in paths:
        if not path:
            continue
        try:
            default_storage.delete(path)
        except OSError as e:
            logger.warning(f"Failed to remove local file {path}: {e}")
            failed.append(path)
    return failed
