# tracker/projects/services/updates.py
"""
Update lifecycle: progress reports nested under a project.

Creating or editing an update with a progress value mirrors it onto the
project (100 completes it, anything lower makes it ongoing). Deleting
updates never touches the project's status or progress.
"""
import logging

from ..models import Media, Update
from ..policies import check_permissions
from ..query import build_update_query
from ..state import apply_progress
from .lookups import get_project_or_404, get_update_or_404, lock_project
from .media import attach_media_refs, claim_refs, create_media_records, delete_media_files, stage_uploads
from .transactions import unit_of_work

logger = logging.getLogger("tracker.projects")


def _ref_urls(pending):
    return [upload.url for upload in pending]


def _stage(files, uow):
    staged = stage_uploads(files)
    for item in staged:
        uow.record_staged(item.path)
    return staged


def _fetch(update_id) -> Update:
    return Update.objects.prefetch_related("media").get(pk=update_id)


def create_update(project_id, remarks: str, progress: int, media_refs, actor, files=()) -> Update:
    """
    Post an update and mirror its progress onto the project.

    ``media_refs`` must be the actor's own pending uploads; ``files`` are
    request uploads staged here. If anything fails, both are deleted again
    before the error propagates.
    """
    project = get_project_or_404(project_id)
    check_permissions(actor, project.created_by_id)
    pending = claim_refs(media_refs, actor)

    with unit_of_work(uploaded_refs=_ref_urls(pending)) as uow:
        staged = _stage(files, uow)
        project = lock_project(project.pk)
        apply_progress(project, progress, actor)

        update = Update.objects.create(project=project, remarks=remarks, progress=progress)
        attach_media_refs(pending, update=update)
        create_media_records(staged, update=update, uow=uow)

    return _fetch(update.pk)


def list_updates(project_id, params) -> dict:
    project = get_project_or_404(project_id)
    spec = build_update_query(params)
    base = Update.objects.filter(project=project)

    updates = list(spec.apply(base))
    return {
        "project_id": project.id,
        "totalCount": spec.count(base),
        "count": len(updates),
        "updates": updates,
    }


def get_update(project_id, update_id) -> Update:
    project = get_project_or_404(project_id)
    return get_update_or_404(project, update_id, Update.objects.prefetch_related("media"))


def edit_update(project_id, update_id, fields: dict, media_refs, actor, files=()) -> Update:
    """
    Partial edit: only supplied fields change. New media are appended, not
    swapped in. The project follows only when ``progress`` is supplied.
    """
    project = get_project_or_404(project_id)
    check_permissions(actor, project.created_by_id)
    update = get_update_or_404(project, update_id)
    pending = claim_refs(media_refs, actor)

    with unit_of_work(uploaded_refs=_ref_urls(pending)) as uow:
        staged = _stage(files, uow)
        locked = lock_project(project.pk)
        update = get_update_or_404(locked, update.pk, Update.objects.select_for_update())

        if "remarks" in fields:
            update.remarks = fields["remarks"]
        if "progress" in fields:
            update.progress = fields["progress"]
            apply_progress(locked, update.progress, actor)
        update.save()

        attach_media_refs(pending, update=update)
        create_media_records(staged, update=update, uow=uow)

    return _fetch(update.pk)


def delete_update(project_id, update_id, actor) -> None:
    project = get_project_or_404(project_id)
    check_permissions(actor, project.created_by_id)
    update = get_update_or_404(project, update_id)

    with unit_of_work() as uow:
        delete_media_files(Media.objects.filter(update=update), uow)
        update.delete()

    logger.info(f"Update {update_id} deleted from project {project.id} by {actor.id}")


def delete_all_updates(project_id, actor) -> int:
    """Delete every update of the project. Returns how many were removed."""
    project = get_project_or_404(project_id)
    check_permissions(actor, project.created_by_id)

    with unit_of_work() as uow:
        delete_media_files(Media.objects.filter(update__project=project), uow)
        _, per_model = Update.objects.filter(project=project).delete()
        deleted = per_model.get(Update._meta.label, 0)

    logger.info(f"{deleted} update(s) deleted from project {project.id} by {actor.id}")
    return deleted
