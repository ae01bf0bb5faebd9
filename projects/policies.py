# tracker/projects/policies.py
"""
Permission checks for project mutations.

Every mutating service calls ``check_permissions`` before it opens a
transaction, so a denied request leaves no partial side effects.
"""
import logging

from core.exceptions import Unauthorized
from users.models import Role

logger = logging.getLogger("tracker.projects")


def role_of(actor) -> Role:
    """The actor's role as a closed enum; unknown values fall back to USER."""
    try:
        return Role(getattr(actor, "role", Role.USER))
    except ValueError:
        return Role.USER


def can_manage(actor, owner_id) -> bool:
    if actor is None:
        return False
    return role_of(actor).can_manage(actor.id, owner_id)


def check_permissions(actor, owner_id) -> None:
    """Raise Unauthorized unless ``actor`` is an admin or owns the resource."""
    if can_manage(actor, owner_id):
        return

    logger.warning(
        f"Permission denied: actor={getattr(actor, 'id', None)}, owner={owner_id}"
    )
    raise Unauthorized("You are not allowed to modify this project.")


def is_admin(actor) -> bool:
    return role_of(actor) is Role.ADMIN
