# tracker/projects/services/media.py
"""
Media synchronizer.

Keeps Media rows consistent with the object store and the staged copies
under MEDIA_ROOT:

* creation runs inside the caller's unit of work and records every
  external upload so a rollback can delete it again;
* deletes remove rows inside the transaction and purge files after
  commit (fire-and-forget);
* replace deletes the old external objects *before* commit. If the new
  rows then fail, the old rows come back but their objects are gone.

Project-level media are the rows with no update. Update media carry both
the update and its project.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional
import logging
import os
import uuid

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import transaction
from django.db.models import Q
from rest_framework.exceptions import ValidationError

from core.storage import delete_local_files, delete_objects, get_media_store, object_id_from_url
from ..models import Media, PendingUpload, Project, Update
from ..policies import check_permissions
from ..query import build_media_query
from .lookups import get_project_or_404, get_update_or_404
from .transactions import unit_of_work

logger = logging.getLogger("tracker.media")


@dataclass(frozen=True)
class StagedFile:
    """An uploaded file written to MEDIA_ROOT, not yet tied to a row."""
    path: str
    content_type: str
    size: int
    original_name: str = ""


# ─────────────────────────────────────────────────────────────
# Staging
# ─────────────────────────────────────────────────────────────

def validate_uploads(files) -> None:
    if len(files) > settings.MEDIA_MAX_FILES:
        raise ValidationError({"files": f"At most {settings.MEDIA_MAX_FILES} files per request."})

    allowed = set(settings.MEDIA_ALLOWED_TYPES)
    for upload in files:
        if upload.content_type not in allowed:
            raise ValidationError(
                {"files": f"Unsupported file type '{upload.content_type}' for {upload.name}."}
            )


def stage_uploads(files) -> List[StagedFile]:
    """
    Write request files under ``MEDIA_UPLOAD_DIR`` with random names.
    No files is not an error: returns [].
    """
    files = list(files or [])
    if not files:
        return []

    validate_uploads(files)

    staged = []
    try:
        for upload in files:
            ext = os.path.splitext(upload.name)[1].lower()
            name = f"{settings.MEDIA_UPLOAD_DIR}/{uuid.uuid4().hex}{ext}"
            path = default_storage.save(name, upload)
            staged.append(
                StagedFile(
                    path=path,
                    content_type=upload.content_type,
                    size=upload.size,
                    original_name=upload.name,
                )
            )
    except Exception:
        delete_uploaded_files(staged)
        raise

    logger.debug(f"Staged {len(staged)} upload(s)")
    return staged


def delete_uploaded_files(files: Iterable[StagedFile]) -> List[str]:
    """
    Compensating delete for staged files that never made it into a
    committed row. Best-effort; returns the paths left behind.
    """
    paths = [staged.path for staged in files]
    if not paths:
        return []
    failed = delete_local_files(paths)
    if failed:
        logger.warning(f"Could not remove {len(failed)} staged file(s): {failed}")
    return failed


# ─────────────────────────────────────────────────────────────
# Create
# ─────────────────────────────────────────────────────────────

def _owner_fields(project: Optional[Project], update: Optional[Update]) -> dict:
    if update is not None:
        return {"project_id": update.project_id, "update": update}
    if project is None:
        raise ValueError("Media needs a project or an update")
    return {"project": project, "update": None}


def create_media_records(files, project=None, update=None, uow=None) -> List[Media]:
    """
    One Media row per staged file, attributed to the project and, when
    given, the update. Must run inside ``uow``; a store failure raises and
    aborts the whole unit.
    """
    files = list(files or [])
    if not files:
        return []

    owner = _owner_fields(project, update)
    store = get_media_store()

    records = []
    for staged in files:
        stored = store.upload(staged.path)
        if uow is not None:
            uow.record_upload(stored["url"])

        records.append(
            Media.objects.create(
                url=stored["url"],
                mime_type=staged.content_type or stored["mime_type"],
                size=stored.get("size") or staged.size,
                local_path=staged.path,
                **owner,
            )
        )

    project_id = update.project_id if update is not None else project.id
    logger.info(
        f"Created {len(records)} media record(s) for project={project_id}, "
        f"update={getattr(update, 'id', None)}"
    )
    return records


# ─────────────────────────────────────────────────────────────
# Direct uploads
# ─────────────────────────────────────────────────────────────

def attached_object_ids(object_ids) -> set:
    """The subset of ``object_ids`` already referenced by a Media row."""
    object_ids = set(object_ids)
    if not object_ids:
        return set()

    query = Q()
    for object_id in object_ids:
        query |= Q(url=object_id) | Q(url__endswith=f"/{object_id}")
    urls = Media.objects.filter(query).values_list("url", flat=True)
    return {object_id_from_url(url) for url in urls} & object_ids


def _pending_for(urls, actor, param) -> List[PendingUpload]:
    """
    Pending uploads behind ``urls``, matched by object id. Each must be
    unattached and uploaded by ``actor``; otherwise the request is a 400.
    """
    object_ids = list(dict.fromkeys(object_id_from_url(url) for url in urls))

    attached = sorted(attached_object_ids(object_ids))
    if attached:
        raise ValidationError({param: f"Media already attached: {attached}"})

    pending = {
        upload.object_id: upload
        for upload in PendingUpload.objects.filter(object_id__in=object_ids, uploaded_by=actor)
    }
    unknown = sorted(set(object_ids) - set(pending))
    if unknown:
        logger.warning(f"Actor {getattr(actor, 'id', None)} referenced uploads it does not own: {unknown}")
        raise ValidationError({param: f"Unknown uploads: {unknown}"})

    return [pending[object_id] for object_id in object_ids]


def claim_refs(refs, actor) -> List[PendingUpload]:
    """Resolve ``uploadedImages`` refs to the actor's own pending uploads."""
    refs = list(refs or [])
    if not refs:
        return []
    return _pending_for([ref["url"] for ref in refs], actor, "uploadedImages")


def attach_media_refs(pending, project=None, update=None) -> List[Media]:
    """
    Rows for pending uploads (see ``claim_refs``). The stored url, type
    and size are taken from the upload record, not from the client.
    """
    pending = list(pending or [])
    if not pending:
        return []

    owner = _owner_fields(project, update)
    records = [
        Media.objects.create(
            url=upload.url,
            mime_type=upload.mime_type or "application/octet-stream",
            size=upload.size,
            local_path=upload.local_path,
            **owner,
        )
        for upload in pending
    ]
    PendingUpload.objects.filter(id__in=[upload.id for upload in pending]).delete()
    return records


def upload_refs(files, actor) -> List[dict]:
    """
    Direct upload: stage and push files to the store without creating Media
    rows. Each object is recorded as a pending upload of ``actor``; the
    returned refs are later attached to an update or discarded.
    """
    staged = stage_uploads(files)
    store = get_media_store()
    local = store.name == "local"

    refs = []
    try:
        with transaction.atomic():
            for item in staged:
                stored = store.upload(item.path)
                refs.append(
                    {
                        "url": stored["url"],
                        "mime_type": item.content_type or stored["mime_type"],
                        "size": stored.get("size") or item.size,
                    }
                )
                PendingUpload.objects.create(
                    object_id=object_id_from_url(stored["url"]),
                    uploaded_by=actor,
                    local_path=item.path if local else "",
                    **refs[-1],
                )
    except Exception:
        delete_objects([ref["url"] for ref in refs])
        delete_uploaded_files(staged)
        raise

    if not local:
        # The bucket holds the object now; the staged copy is not referenced
        delete_uploaded_files(staged)

    return refs


def discard_refs(urls, actor) -> dict:
    """
    Delete the actor's own pending uploads. URLs are matched by object id,
    so an alias of an attached object is refused like the original.
    """
    pending = _pending_for(urls, actor, "urls")

    failures = delete_objects([upload.url for upload in pending])
    delete_local_files([upload.local_path for upload in pending if upload.local_path])

    failed_urls = {url for url, _ in failures}
    removed = [upload.id for upload in pending if upload.url not in failed_urls]
    PendingUpload.objects.filter(id__in=removed).delete()

    logger.info(f"Actor {actor.id} discarded {len(removed)} uploaded object(s)")
    return {"deleted": len(removed), "failed": sorted(failed_urls)}


# ─────────────────────────────────────────────────────────────
# Replace / delete
# ─────────────────────────────────────────────────────────────

def media_for(owner):
    """Media addressed by ``owner``: an update's own media, or a project's top-level media."""
    if isinstance(owner, Update):
        return Media.objects.filter(update=owner)
    return Media.objects.filter(project=owner, update__isnull=True)


def replace_media(owner, new_files, uow) -> List[Media]:
    """
    Swap ``owner``'s media for ``new_files``.

    Old external objects are deleted before the unit commits; failures are
    logged and do not stop the row delete. Zero new files is a no-op.
    """
    new_files = list(new_files or [])
    if not new_files:
        return list(media_for(owner))

    existing = list(media_for(owner).select_for_update())
    if existing:
        failures = delete_objects([media.url for media in existing])
        if failures:
            logger.warning(
                f"Replace on {type(owner).__name__} {owner.id}: "
                f"{len(failures)} old object(s) could not be deleted"
            )
        Media.objects.filter(id__in=[media.id for media in existing]).delete()
        uow.after_commit(delete_local_files, [media.local_path for media in existing if media.local_path])

    if isinstance(owner, Update):
        return create_media_records(new_files, update=owner, uow=uow)
    return create_media_records(new_files, project=owner, uow=uow)


def delete_media_files(media_list, uow) -> int:
    """
    Delete rows now; purge their files once the unit commits.
    """
    media_list = list(media_list)
    if not media_list:
        return 0

    urls = [media.url for media in media_list]
    local_paths = [media.local_path for media in media_list if media.local_path]

    deleted, _ = Media.objects.filter(id__in=[media.id for media in media_list]).delete()
    uow.after_commit(schedule_purge, urls, local_paths)
    return deleted


def schedule_purge(urls, local_paths=()) -> None:
    from ..tasks import purge_media_task

    if not urls and not local_paths:
        return
    purge_media_task.delay(list(urls), list(local_paths))


def purge_media(urls, local_paths=()) -> dict:
    """
    Best-effort removal of external objects and staged copies.
    Deletes are concurrent, single attempt, never raised.
    """
    failures = delete_objects(urls)
    failed_local = delete_local_files(local_paths)

    if failures or failed_local:
        logger.warning(
            f"Media purge incomplete: {len(failures)} object(s), "
            f"{len(failed_local)} local file(s) left behind"
        )
    else:
        logger.info(f"Purged {len(urls)} object(s), {len(local_paths)} local file(s)")

    return {
        "failed_urls": [url for url, _ in failures],
        "failed_paths": failed_local,
    }


# ─────────────────────────────────────────────────────────────
# Owner-level operations (project or update media sets)
# ─────────────────────────────────────────────────────────────

def resolve_owner(project_id, update_id=None):
    """(project, owner) where owner is the update when ``update_id`` is given."""
    project = get_project_or_404(project_id)
    if update_id is None:
        return project, project
    return project, get_update_or_404(project, update_id)


def list_media(project_id, update_id, params) -> dict:
    _, owner = resolve_owner(project_id, update_id)
    spec = build_media_query(params)
    base = media_for(owner)

    media = list(spec.apply(base))
    key = "update_id" if isinstance(owner, Update) else "project_id"
    return {key: owner.id, "totalCount": spec.count(base), "count": len(media), "media": media}


def replace_owner_media(project_id, update_id, files, actor) -> List[Media]:
    """
    Replace a project's (or one update's) media with uploaded files.
    No files: nothing changes and the current set is returned.
    """
    project, owner = resolve_owner(project_id, update_id)
    check_permissions(actor, project.created_by_id)

    with unit_of_work() as uow:
        staged = stage_uploads(files)
        for item in staged:
            uow.record_staged(item.path)
        return replace_media(owner, staged, uow)


def delete_owner_media(project_id, update_id, actor) -> int:
    project, owner = resolve_owner(project_id, update_id)
    check_permissions(actor, project.created_by_id)

    with unit_of_work() as uow:
        return delete_media_files(media_for(owner), uow)
