# tracker/projects/services/transactions.py
"""
Unit of work around one logical mutation.

    with unit_of_work(staged_files=paths) as uow:
        ...row changes...
        uow.record_upload(url)          # external object created in this unit
        uow.after_commit(purge, urls)   # runs only if the unit commits

Row changes happen inside a single ``transaction.atomic()`` block. When the
block raises, the rows roll back and the unit then deletes every external
object recorded as uploaded plus every staged local file. Compensation is
best-effort: its failures are logged and the original exception is the one
the caller sees.
"""
from contextlib import contextmanager
from functools import partial
import logging

from django.db import transaction

from core.storage import delete_local_files, delete_objects

logger = logging.getLogger("tracker.media")


class UnitOfWork:
    def __init__(self, staged_files=(), uploaded_refs=()):
        self.staged_files = [path for path in staged_files if path]
        self.uploaded_urls = [url for url in uploaded_refs if url]

    def record_upload(self, url: str) -> None:
        if url:
            self.uploaded_urls.append(url)

    def record_staged(self, path: str) -> None:
        if path:
            self.staged_files.append(path)

    def after_commit(self, func, *args, **kwargs) -> None:
        """
        Schedule ``func`` for after the outermost commit. Each callback is
        independent: one failing is logged and the rest still run.
        """
        transaction.on_commit(partial(func, *args, **kwargs), robust=True)

    def compensate(self) -> None:
        if self.uploaded_urls:
            failures = delete_objects(self.uploaded_urls)
            if failures:
                logger.error(
                    f"Compensation left {len(failures)} external object(s) behind: "
                    f"{[url for url, _ in failures]}"
                )
        if self.staged_files:
            failed = delete_local_files(self.staged_files)
            if failed:
                logger.error(f"Compensation could not remove staged files: {failed}")


@contextmanager
def unit_of_work(staged_files=(), uploaded_refs=()):
    """
    Atomic block with rollback-triggered compensation.

    ``staged_files`` are local paths written before the unit started;
    ``uploaded_refs`` are URLs of external objects the client already
    uploaded. Both are removed if the unit fails.
    """
    uow = UnitOfWork(staged_files, uploaded_refs)
    try:
        with transaction.atomic():
            yield uow
    except Exception as exc:
        logger.warning(f"Unit of work rolled back ({type(exc).__name__}: {exc}); compensating")
        try:
            uow.compensate()
        except Exception:
            logger.exception("Compensation failed")
        raise
