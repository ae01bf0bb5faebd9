# tracker/projects/services/projects.py
"""
Project lifecycle: create, list, read, edit and delete projects.

Views pass validated field dicts (see ProjectWriteSerializer) and the
authenticated actor. Permission checks and reference validation happen
before any transaction opens.
"""
from typing import Iterable, List
import logging

from django.db import transaction
from django.db.models import Count, F
from rest_framework.exceptions import NotFound

from core.exceptions import Conflict
from core.models import Barangay, Tag
from core.storage import delete_local_files
from ..models import Media, Project, View
from ..policies import check_permissions, is_admin
from ..query import build_project_query
from ..state import log_transition, resolve_direct_edit
from .lookups import get_project_or_404
from .media import (
    create_media_records,
    delete_media_files,
    delete_uploaded_files,
    schedule_purge,
    stage_uploads,
)
from .transactions import unit_of_work

logger = logging.getLogger("tracker.projects")

# Scalar fields a project edit may touch, compared one by one for changes
EDITABLE_FIELDS = (
    "title",
    "description",
    "objectives",
    "budget",
    "progress",
    "start_date",
    "due_date",
    "completion_date",
    "status",
)


def project_read_queryset():
    """Projects with the associations and live counts the read model shows."""
    return (
        Project.objects.select_related("created_by")
        .prefetch_related("tags", "barangays", "media")
        .annotate(
            reaction_count=Count("reactions", distinct=True),
            report_count=Count("reports", distinct=True),
        )
    )


# ─────────────────────────────────────────────────────────────
# Reference validation
# ─────────────────────────────────────────────────────────────

def resolve_references(model, ids: Iterable[int], label: str) -> List:
    """All rows for ``ids`` or NotFound naming the missing ones."""
    wanted = set(ids)
    if not wanted:
        return []
    found = list(model.objects.filter(id__in=wanted))
    missing = wanted - {obj.id for obj in found}
    if missing:
        raise NotFound(f"Some {label} do not exist: {sorted(missing)}")
    return found


def include_actor_barangay(barangay_ids: List[int], actor) -> List[int]:
    """
    Non-admins always take part through their own barangay. Naming it
    explicitly as well is a duplicate membership.
    """
    if is_admin(actor):
        return list(barangay_ids)

    own = getattr(actor, "barangay_id", None)
    if own is None:
        logger.warning(f"Actor {actor.id} has no barangay; nothing to add to the project")
        return list(barangay_ids)

    if own in barangay_ids:
        raise Conflict("Your barangay is already in this project.")
    return list(barangay_ids) + [own]


# ─────────────────────────────────────────────────────────────
# Create
# ─────────────────────────────────────────────────────────────

def add_project(fields: dict, files, actor) -> Project:
    """
    Create a project with its tags, barangays and media in one unit.

    Staged files are removed on every failure path, including reference
    validation that fails before the transaction opens.
    """
    fields = dict(fields)
    tag_ids = fields.pop("tag_ids", None) or []
    barangay_ids = fields.pop("barangay_ids", None) or []

    staged = stage_uploads(files)

    try:
        barangay_ids = include_actor_barangay(barangay_ids, actor)
        tags = resolve_references(Tag, tag_ids, "tags")
        barangays = resolve_references(Barangay, barangay_ids, "barangays")
        fields["status"], fields["progress"] = resolve_direct_edit(
            Project.STATUS_PENDING, 0, fields.get("status"), fields.get("progress")
        )
    except Exception:
        delete_uploaded_files(staged)
        raise

    with unit_of_work(staged_files=[item.path for item in staged]) as uow:
        project = Project.objects.create(created_by=actor, **fields)
        project.tags.set(tags)
        project.barangays.set(barangays)
        create_media_records(staged, project=project, uow=uow)

    return project_read_queryset().get(pk=project.pk)


# ─────────────────────────────────────────────────────────────
# Read
# ─────────────────────────────────────────────────────────────

def list_projects(params) -> dict:
    spec = build_project_query(params)
    base = Project.objects.all()

    total = spec.count(base)
    projects = list(
        spec.apply(
            base.annotate(
                reaction_count=Count("reactions", distinct=True),
                report_count=Count("reports", distinct=True),
            )
        )
    )
    return {"totalCount": total, "count": len(projects), "projects": projects}


def record_view(project: Project, actor) -> bool:
    """
    Count ``actor``'s first view of ``project``. The (user, project) unique
    constraint makes repeat and racing views no-ops.
    """
    with transaction.atomic():
        _, created = View.objects.get_or_create(user=actor, project=project)
        if created:
            Project.objects.filter(pk=project.pk).update(views=F("views") + 1)
    return created


def get_project(project_id, actor) -> Project:
    project = get_project_or_404(project_id)

    if not is_admin(actor):
        record_view(project, actor)

    return project_read_queryset().annotate(
        comment_count=Count("comments", distinct=True),
    ).get(pk=project.pk)


# ─────────────────────────────────────────────────────────────
# Edit
# ─────────────────────────────────────────────────────────────

def changed_fields(project: Project, fields: dict, tag_ids=None, barangay_ids=None) -> List[str]:
    """Names of supplied fields whose value differs from what is stored."""
    changed = [
        name for name in EDITABLE_FIELDS
        if name in fields and fields[name] != getattr(project, name)
    ]
    if tag_ids is not None and set(tag_ids) != set(project.tags.values_list("id", flat=True)):
        changed.append("tags")
    if barangay_ids is not None and set(barangay_ids) != set(project.barangays.values_list("id", flat=True)):
        changed.append("barangays")
    return changed


def update_project(project_id, fields: dict, actor) -> Project:
    """
    Apply a partial edit. Rejected with Conflict when nothing supplied
    differs from the stored project; tag and barangay sets are replaced,
    not merged.
    """
    project = get_project_or_404(project_id)
    check_permissions(actor, project.created_by_id)

    fields = dict(fields)
    tag_ids = fields.pop("tag_ids", None)
    barangay_ids = fields.pop("barangay_ids", None)

    if barangay_ids is not None:
        barangay_ids = include_actor_barangay(barangay_ids, actor)

    changed = changed_fields(project, fields, tag_ids, barangay_ids)
    if not changed:
        raise Conflict("No field differs from the current value.")

    tags = resolve_references(Tag, tag_ids, "tags") if tag_ids is not None else None
    barangays = resolve_references(Barangay, barangay_ids, "barangays") if barangay_ids is not None else None

    with transaction.atomic():
        project = Project.objects.select_for_update().get(pk=project.pk)
        old_status = project.status

        status, progress = resolve_direct_edit(
            project.status, project.progress, fields.pop("status", None), fields.pop("progress", None)
        )
        for name, value in fields.items():
            setattr(project, name, value)
        project.status = status
        project.progress = progress
        project.save()

        if tags is not None:
            project.tags.set(tags)
        if barangays is not None:
            project.barangays.set(barangays)

    log_transition(project, old_status, actor)
    logger.info(f"Project {project.id} updated by {actor.id}: {', '.join(changed)}")
    return project_read_queryset().get(pk=project.pk)


# ─────────────────────────────────────────────────────────────
# Delete
# ─────────────────────────────────────────────────────────────

def delete_project(project_id, actor) -> None:
    """
    Delete the project with its updates, media and engagement rows in one
    transaction. External objects are purged after commit.
    """
    project = get_project_or_404(project_id)
    check_permissions(actor, project.created_by_id)

    with unit_of_work() as uow:
        # Update media carry the project too, so this covers both levels
        delete_media_files(Media.objects.filter(project=project), uow)
        project.delete()


def delete_all_projects(actor) -> int:
    """
    Admins delete every project, everyone else only their own.

    Staged copies on disk are removed first, best-effort; the bulk row
    delete runs regardless and external objects are purged after commit.
    Returns the number of projects deleted.
    """
    queryset = Project.objects.all() if is_admin(actor) else Project.objects.filter(created_by=actor)
    project_ids = list(queryset.values_list("id", flat=True))
    if not project_ids:
        return 0

    media = list(Media.objects.filter(project_id__in=project_ids).values_list("url", "local_path"))
    urls = [url for url, _ in media]
    local_paths = [path for _, path in media if path]

    failed = delete_local_files(local_paths)
    if failed:
        logger.warning(f"Bulk project delete left {len(failed)} local file(s) behind")

    with unit_of_work() as uow:
        _, per_model = Project.objects.filter(id__in=project_ids).delete()
        uow.after_commit(schedule_purge, urls)

    deleted = per_model.get(Project._meta.label, 0)
    logger.info(f"Actor {actor.id} deleted {deleted} project(s)")
    return deleted
