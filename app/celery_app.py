from celery import Celery

from app.config import settings


def get_celery_config() -> dict:
    return {
        "broker_url": settings.celery_broker_url,
        "result_backend": settings.celery_result_backend,
        "timezone": "UTC",
        "task_always_eager": settings.celery_task_always_eager,
        "task_ignore_result": True,
    }


celery_app = Celery("file_transfers", include=["app.tasks.transfers"])
celery_app.conf.update(get_celery_config())
