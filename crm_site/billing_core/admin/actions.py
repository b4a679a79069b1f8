from django.contrib import admin, messages
from django.core.exceptions import ValidationError
from django.utils.translation import gettext_lazy as _

from ..models import InvoiceStatus
from ..services.catalog import set_service_active
from ..services.invoicing import update_invoice_status
from ..services.pending import list_pending
from ..tasks import generate_invoice_task

# ---------- Admin actions ----------


def _set_active(queryset, is_active):
    # one save per service so model validation runs
    for service in queryset:
        set_service_active(service.tenant_id, service.pk, is_active)
    return len(queryset)


@admin.action(description="Activate selected services")
def activate_services(modeladmin, request, queryset):
    updated = _set_active(queryset, True)
    modeladmin.message_user(request, _("%(n)d services activated.") % {"n": updated})


@admin.action(description="Deactivate selected services")
def deactivate_services(modeladmin, request, queryset):
    updated = _set_active(queryset, False)
    modeladmin.message_user(request, _("%(n)d services deactivated.") % {"n": updated})


def _transition(modeladmin, request, queryset, status):
    """Move each invoice through the status workflow, reporting failures."""
    success = 0
    for inv in queryset:
        try:
            update_invoice_status(inv.tenant_id, inv.pk, status, user=request.user)
            success += 1
        except ValidationError as exc:
            modeladmin.message_user(
                request,
                _("Invoice %(number)s: %(err)s") % {"number": inv.number, "err": " ".join(exc.messages)},
                level=messages.ERROR,
            )
    modeladmin.message_user(
        request,
        _("Updated %(success)d of %(total)d invoices.") % {
            "success": success, "total": queryset.count()},
        level=messages.SUCCESS,
    )


@admin.action(description="Mark selected invoices as Sent")
def mark_inv_as_sent(modeladmin, request, queryset):
    _transition(modeladmin, request, queryset, InvoiceStatus.SENT)


@admin.action(description="Mark selected invoices as Paid")
def mark_inv_as_paid(modeladmin, request, queryset):
    _transition(modeladmin, request, queryset, InvoiceStatus.PAID)


@admin.action(description="Archive selected invoices")
def archive_invoices(modeladmin, request, queryset):
    updated = queryset.update(is_archived=True)
    modeladmin.message_user(request, _("%(n)d invoices archived.") % {"n": updated})


@admin.action(description="Generate invoices for pending clients")
def generate_pending_invoices(modeladmin, request, queryset):
    """Queue one invoice generation per client with pending services."""
    queued = 0
    for tenant in queryset:
        for bundle in list_pending(tenant.pk):
            generate_invoice_task.delay(
                tenant.pk,
                bundle["company_id"],
                [item.source_service_id for item in bundle["items"]],
            )
            queued += 1
    modeladmin.message_user(
        request, _("Queued %(n)d invoice generations.") % {"n": queued})
