from __future__ import annotations
import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "crm_site.settings")

celery_app = Celery("crm_site")

# every CELERY_* Django setting configures the app
celery_app.config_from_object("django.conf:settings", namespace="CELERY")

# Invoice generation re-validates under row locks, so a task redelivered
# after a worker crash ends in NothingToInvoice instead of a duplicate
celery_app.conf.task_acks_late = True
celery_app.conf.worker_prefetch_multiplier = 1

# picks up billing_core/tasks.py
celery_app.autodiscover_tasks()
