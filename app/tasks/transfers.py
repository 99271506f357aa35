"""Celery tasks for transfer side effects."""

from __future__ import annotations

import logging

from app.celery_app import celery_app
from app.services.object_storage import ObjectStorageError, get_s3_storage

logger = logging.getLogger(__name__)


@celery_app.task(name="app.tasks.transfers.delete_orphaned_object")
def delete_orphaned_object(storage_key: str) -> bool:
    """Remove an object whose transfer record was never persisted."""
    try:
        get_s3_storage().delete(storage_key)
    except ObjectStorageError as exc:
        logger.warning("orphaned_object_delete_failed key=%s error=%s", storage_key, exc)
        return False
    logger.info("orphaned_object_deleted key=%s", storage_key)
    return True
