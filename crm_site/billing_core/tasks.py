import logging

from celery import shared_task

from .exceptions import BillingConflict, NothingToInvoice

logger = logging.getLogger(__name__)


@shared_task(  # register this function as a Celery task
    bind=True,
    autoretry_for=(BillingConflict,),
    retry_backoff=True,
    max_retries=3,
)
def generate_invoice_task(self, tenant_id, company_id, service_ids=None):
    """Issue the pending invoice of one client outside the request cycle."""
    # import lazily to avoid circular imports at module import time
    from .services.invoicing import generate_invoice

    try:
        invoice = generate_invoice(tenant_id, company_id, service_ids=service_ids)
    except NothingToInvoice:
        # already billed (or skipped) by someone else since it was queued
        logger.info(
            "Nothing left to invoice for company %s (tenant %s)", company_id, tenant_id)
        return None
    return invoice.pk
