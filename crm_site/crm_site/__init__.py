# Load the Celery app whenever Django starts, so @shared_task
# functions in billing_core bind to it
from .celery import celery_app

__all__ = ("celery_app",)

""" Worker: "celery -A crm_site worker -l info"
    -A crm_site imports this package, which exposes celery_app. """
