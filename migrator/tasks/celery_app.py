from celery import Celery
from migrator.core.config import settings

celery_app = Celery("script_migrator", broker=settings.redis_url, backend=settings.redis_url, include=["migrator.tasks.runs"])
celery_app.conf.update(task_track_started=True, result_expires=3600, broker_connection_retry_on_startup=True,)
