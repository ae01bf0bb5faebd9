# tracker/projects/state.py
"""
Project status derivation.

pending → ongoing → completed, driven by update progress or by a direct
status edit on the project. No transition is blocked: a completed project
moves back to ongoing when an update reports less than 100%.

Invariant maintained here: status == completed  <=>  progress == 100
"""
from typing import Optional, Tuple
import logging

from rest_framework.exceptions import ValidationError

from .models import Project

logger = logging.getLogger("tracker.projects")

COMPLETE = 100


def derive_from_update_progress(progress: int) -> Tuple[str, int]:
    """(status, progress) a project takes on after an update reports ``progress``."""
    if progress == COMPLETE:
        return Project.STATUS_COMPLETED, COMPLETE
    return Project.STATUS_ONGOING, progress


def resolve_direct_edit(
    current_status: str,
    current_progress: int,
    status: Optional[str] = None,
    progress: Optional[int] = None,
) -> Tuple[str, int]:
    """
    Final (status, progress) after a direct project edit.

    - status=completed forces progress=100
    - progress=100 without a status completes the project
    - progress<100 without a status reopens a completed project as ongoing
    - any other status paired with progress 100 is rejected
    """
    if status == Project.STATUS_COMPLETED:
        return Project.STATUS_COMPLETED, COMPLETE

    if status is None and progress is not None:
        if progress == COMPLETE:
            return Project.STATUS_COMPLETED, COMPLETE
        if current_status == Project.STATUS_COMPLETED:
            return Project.STATUS_ONGOING, progress

    new_status = status if status is not None else current_status
    new_progress = progress if progress is not None else current_progress

    if new_progress == COMPLETE:
        raise ValidationError(
            {"progress": f"A {new_status} project cannot be at 100%; lower the progress or complete it."}
        )
    return new_status, new_progress


def log_transition(project: Project, old_status: str, actor=None) -> None:
    if old_status == project.status:
        return
    logger.info(
        f"Project state transition: project={project.id}, "
        f"from={old_status}, to={project.status}, progress={project.progress}, "
        f"actor={getattr(actor, 'id', 'unknown')}"
    )


def apply_progress(project: Project, progress: int, actor=None, save: bool = True) -> Project:
    """
    Mirror an update's progress onto its project.

    The caller holds the project row lock (select_for_update) and the
    surrounding transaction.
    """
    old_status = project.status
    project.status, project.progress = derive_from_update_progress(progress)

    if save:
        project.save(update_fields=["status", "progress", "updated_at"])

    log_transition(project, old_status, actor)
    return project
