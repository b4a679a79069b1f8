import logging
from functools import wraps

from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from .exceptions import BillingConflict, NothingToInvoice, TenantNotFound
from .models import Company, Invoice
from .services.invoicing import generate_invoice, update_invoice_status
from .services.pending import list_pending, skip
from .services.reporting import (compute_dashboard_stats,
                                 empty_dashboard_stats)

logger = logging.getLogger(__name__)


def _json(data, status=200, safe=True):
    # Decimals/datetimes are rendered as strings
    return JsonResponse(data, status=status, safe=safe, encoder=DjangoJSONEncoder)


def _error(message, status):
    return _json({"ok": False, "error": message}, status=status)


def tenant_required(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if getattr(request, "tenant", None) is None:
            return _error("No active tenant", status=403)
        try:
            return view(request, *args, **kwargs)
        except TenantNotFound as exc:
            return _error(str(exc), status=404)
    return wrapper


def _serialize_bundle(bundle):
    return {
        "company_id": bundle["company_id"],
        "company_name": bundle["company_name"],
        "total": bundle["total"],
        "items": [
            dict(item.as_line(), final_amount=item.final_amount)
            for item in bundle["items"]
        ],
    }


@require_GET
@tenant_required
def pending_list_view(request):
    """Draft invoice bundles for the active tenant."""
    try:
        bundles = list_pending(request.tenant.pk)
    except DatabaseError:
        # The billing screen shows an empty list instead of crashing
        logger.exception("Could not list pending invoices for tenant %s", request.tenant.pk)
        bundles = []
    return _json([_serialize_bundle(b) for b in bundles], safe=False)


@require_POST
@tenant_required
def skip_pending_view(request, company_id):
    count = skip(request.tenant.pk, company_id, user=request.user)
    return _json({"ok": True, "count": count})


@require_POST
@tenant_required
def generate_invoice_view(request, company_id):
    # the lines the operator confirmed, e.g. service_ids=3&service_ids=7
    service_ids = request.POST.getlist("service_ids") or None
    try:
        if service_ids is not None:
            service_ids = [int(pk) for pk in service_ids]
        invoice = generate_invoice(
            request.tenant.pk, company_id, service_ids=service_ids, user=request.user)
    except Company.DoesNotExist:
        return _error("Company not found", status=404)
    except BillingConflict as exc:
        return _json(
            {"ok": False, "error": str(exc), "retry": True, "service_ids": exc.service_ids},
            status=409,
        )
    except (NothingToInvoice, ValidationError, ValueError) as exc:
        return _error(str(exc), status=400)
    return _json({
        "ok": True,
        "invoice_id": invoice.pk,
        "number": invoice.number,
        "total_amount": invoice.total_amount,
    }, status=201)


@require_POST
@tenant_required
def invoice_status_view(request, invoice_id):
    try:
        invoice = update_invoice_status(
            request.tenant.pk, invoice_id, request.POST.get("status"), user=request.user)
    except Invoice.DoesNotExist:
        return _error("Invoice not found", status=404)
    except ValidationError as exc:
        return _error(" ".join(exc.messages), status=400)
    return _json({"ok": True, "status": invoice.status})


@require_GET
@tenant_required
def dashboard_view(request):
    try:
        stats = compute_dashboard_stats(request.tenant.pk)
    except DatabaseError:
        logger.exception("Could not compute dashboard stats for tenant %s", request.tenant.pk)
        stats = empty_dashboard_stats(request.tenant.yearly_goal)
    return _json(stats)
