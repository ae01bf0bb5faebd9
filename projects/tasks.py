# projects/tasks.py

from celery import shared_task

from .services.media import purge_media


@shared_task
def purge_media_task(urls, local_paths=None):
    """
    Post-commit purge of deleted media: external objects plus staged
    copies on disk. Failures are logged inside ``purge_media``; the task
    itself never retries.
    """
    return purge_media(urls or [], local_paths or [])
