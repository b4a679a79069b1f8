import logging
from decimal import Decimal

from django.db import transaction

from ..exceptions import BillingConflict, NothingToInvoice
from ..models import Invoice, InvoiceStatus, Service
from .audit_helper import log_action
from .clock import resolve_now
from .eligibility import apply_discount, evaluate, to_cents
from .pending import get_tenant

logger = logging.getLogger(__name__)


def line_net(line):
    """price × (100 − discount) / 100 for one snapshot line."""
    return apply_discount(Decimal(str(line["price"])), line.get("discount") or 0)


def compute_totals(lines, tax_rate, withholding_rate):
    """
    Invoice arithmetic:
        subtotal = Σ line net
        tax = subtotal × tax_rate / 100
        withholding = subtotal × withholding_rate / 100
        total = subtotal + tax − withholding
    """
    subtotal = to_cents(sum((line_net(line) for line in lines), Decimal("0")))
    tax_rate = Decimal(tax_rate or 0)
    withholding_rate = Decimal(withholding_rate or 0)
    tax_amount = to_cents(subtotal * tax_rate / 100)
    withholding_amount = to_cents(subtotal * withholding_rate / 100)
    return {
        "subtotal": subtotal,
        "tax_rate": tax_rate,
        "tax_amount": tax_amount,
        "withholding_rate": withholding_rate,
        "withholding_amount": withholding_amount,
        "total_amount": subtotal + tax_amount - withholding_amount,
    }


def generate_invoice(tenant_id, company_id, service_ids=None, user=None,
                     issue_date=None):
    """
    Issue one invoice for a client's pending services.

    Single unit of work: invoice row, every referenced service's
    last_billed_at and the tenant counter commit together or not at all.
    `service_ids` restricts the run to the lines the operator confirmed;
    if any of them stopped being pending, BillingConflict is raised.
    """
    with transaction.atomic():
        # Lock the tenant row: the invoice counter is a serialisation point
        tenant = get_tenant(tenant_id, for_update=True)
        issue_date = issue_date or resolve_now(tenant)
        company = tenant.companies.get(pk=company_id)

        services = (
            Service.objects.active(tenant)
            .filter(company=company)
            .select_for_update()
            .order_by("id")
        )
        if service_ids is not None:
            service_ids = set(service_ids)
            services = services.filter(pk__in=service_ids)

        # Re-validate with the same predicate the operator saw
        billed = []
        stale = set(service_ids or ())
        for service in services:
            result = evaluate(service, issue_date)
            if result.eligible:
                billed.append((service, result))
                stale.discard(service.pk)

        if stale:
            raise BillingConflict(stale)
        if not billed:
            raise NothingToInvoice(
                f"Company {company_id} has no pending services to invoice")

        lines = [result.as_line() for _, result in billed]
        totals = compute_totals(
            lines,
            tenant.effective_tax_rate,
            tenant.effective_withholding_rate,
        )
        invoice = Invoice.objects.create(
            tenant=tenant,
            company=company,
            number=tenant.format_invoice_number(issue_date),
            issue_date=issue_date,
            items=lines,
            status=InvoiceStatus.DRAFT,
            **totals,
        )

        # Advance every billed service to the issue date
        for service, _ in billed:
            service.last_billed_at = issue_date
            service.save(update_fields=["last_billed_at"])

        tenant.invoice_next_number += 1
        tenant.save(update_fields=["invoice_next_number"])

        log_action(
            action="invoice.generate",
            instance=invoice,
            user=user,
            tenant=tenant,
            changes={
                "number": invoice.number,
                "total": str(invoice.total_amount),
                "services": [service.pk for service, _ in billed],
            },
        )

    logger.info(
        "Generated invoice %s for company %s (tenant %s): %s",
        invoice.number, company.pk, tenant.pk, invoice.total_amount,
    )
    return invoice


# ----------------------------------------------
# Invoice status update workflows
# ----------------------------------------------
def _tenant_invoice(tenant_id, invoice_id, for_update=False):
    qs = Invoice.objects.for_tenant(tenant_id)
    if for_update:
        qs = qs.select_for_update()
    # foreign invoices raise Invoice.DoesNotExist
    return qs.get(pk=invoice_id)


def update_invoice_status(tenant_id, invoice_id, status, user=None):
    with transaction.atomic():
        invoice = _tenant_invoice(tenant_id, invoice_id, for_update=True)
        previous = invoice.status
        invoice.transition_to(status)
        log_action(
            action="invoice.status",
            instance=invoice,
            user=user,
            changes={"from": previous, "to": status},
        )
    return invoice


def set_invoice_archived(tenant_id, invoice_id, archived=True):
    invoice = _tenant_invoice(tenant_id, invoice_id)
    invoice.is_archived = archived
    invoice.save(update_fields=["is_archived"])
    return invoice


def delete_invoice(tenant_id, invoice_id, user=None):
    """
    Remove an invoice record.
    Billed services keep their last_billed_at: deleting does not re-open a cycle.
    """
    with transaction.atomic():
        invoice = _tenant_invoice(tenant_id, invoice_id, for_update=True)
        log_action(
            action="invoice.delete",
            instance=invoice,
            user=user,
            changes={"number": invoice.number, "total": str(invoice.total_amount)},
        )
        invoice.delete()
    logger.info("Deleted invoice %s (tenant %s)", invoice_id, tenant_id)
