from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver
import logging

from .models import Project, Update

logger = logging.getLogger("tracker.projects")


@receiver(post_save, sender=Project)
def log_project_created(sender, instance, created, **kwargs):
    if created:
        logger.info(
            f"Project created: project={instance.id}, owner={instance.created_by_id}, "
            f"status={instance.status}"
        )


@receiver(post_delete, sender=Project)
def log_project_deleted(sender, instance, **kwargs):
    logger.info(f"Project deleted: project={instance.id}, owner={instance.created_by_id}")


@receiver(post_save, sender=Update)
def log_update_saved(sender, instance, created, **kwargs):
    verb = "created" if created else "edited"
    logger.info(
        f"Update {verb}: update={instance.id}, project={instance.project_id}, "
        f"progress={instance.progress}"
    )
