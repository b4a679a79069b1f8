import logging
from decimal import Decimal

from django.db import transaction

from ..exceptions import TenantNotFound
from ..models import Service, Tenant
from .audit_helper import log_action
from .clock import resolve_now
from .eligibility import evaluate, to_cents

logger = logging.getLogger(__name__)


def get_tenant(tenant_id, for_update=False):
    """Load a tenant or fail hard: callers must not run against a ghost tenant."""
    if isinstance(tenant_id, Tenant):
        tenant_id = tenant_id.pk
    qs = Tenant.objects.all()
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=tenant_id)
    except Tenant.DoesNotExist:
        raise TenantNotFound(tenant_id)


def _eligible(services, reference_date):
    """Run the evaluator over `services`, yielding (service, result) for pending ones."""
    for service in services:
        result = evaluate(service, reference_date)
        if not result.eligible:
            logger.debug("Service %s not pending: %s", service.pk, result.reason)
            continue
        logger.debug(
            "Service %s pending: %s", service.pk, result.final_amount)
        yield service, result


def pending_service_ids(tenant, reference_date):
    """Ids of every active service of `tenant` with an outstanding charge."""
    services = Service.objects.active(tenant)
    return {service.pk for service, _ in _eligible(services, reference_date)}


def list_pending(tenant_id, reference_date=None):
    """
    Draft invoice bundles, one per client with pending services.

    Returns a list of dicts:
        {"company_id", "company_name", "items": [EligibilityResult], "total"}
    Clients appear in the order their first pending service was seen.
    """
    tenant = get_tenant(tenant_id)
    now = reference_date or resolve_now(tenant)

    services = (
        Service.objects.active(tenant)
        .select_related("company")
        .order_by("id")
    )
    logger.debug("Listing pending services for tenant %s at %s", tenant.pk, now)

    bundles = {}
    for service, result in _eligible(services, now):
        bundle = bundles.get(service.company_id)
        if bundle is None:
            bundle = bundles[service.company_id] = {
                "company_id": service.company_id,
                "company_name": service.company.name,
                "items": [],
            }
        bundle["items"].append(result)

    # Same rounding as the invoice subtotal: one rounding over the sum
    for bundle in bundles.values():
        bundle["total"] = to_cents(
            sum((item.net_amount for item in bundle["items"]), Decimal("0")))
    return list(bundles.values())


def skip(tenant_id, company_id, reference_date=None, user=None):
    """
    Mark the client's pending cycle as billed without issuing an invoice.
    Returns how many services were advanced.
    """
    with transaction.atomic():
        tenant = get_tenant(tenant_id)
        now = reference_date or resolve_now(tenant)

        # Lock the rows so a concurrent invoice run sees the new marker
        services = (
            Service.objects.active(tenant)
            .filter(company_id=company_id)
            .select_for_update()
            .order_by("id")
        )
        skipped = []
        for service, _ in _eligible(services, now):
            service.last_billed_at = now
            service.save(update_fields=["last_billed_at"])
            skipped.append(service.pk)

        if skipped:
            log_action(
                action="service.skip",
                instance=tenant.companies.get(pk=company_id),
                user=user,
                tenant=tenant,
                changes={"services": skipped, "last_billed_at": now.isoformat()},
            )
    logger.info(
        "Skipped %d pending services of company %s (tenant %s)",
        len(skipped), company_id, tenant.pk,
    )
    return len(skipped)
