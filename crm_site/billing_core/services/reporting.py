import datetime
import json
import logging
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.utils import timezone
from django.utils.dates import MONTHS, MONTHS_3

from ..exceptions import MalformedSnapshot
from ..models import Invoice, InvoiceStatus, Service, ServiceType
from .clock import resolve_now
from .eligibility import apply_discount, calendar_month, to_cents
from .pending import get_tenant

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
OTHER_CATEGORY = "Other"
HISTORY_MONTHS = 12


# ----------------------------
# Snapshot parsing
# ----------------------------
def parse_line_items(raw):
    """
    Normalise a stored invoice snapshot into a list of line dicts with
    Decimal price/discount. Raises MalformedSnapshot when it cannot.
    Legacy imports may carry the snapshot as JSON text.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise MalformedSnapshot(f"Unparsable line items: {exc}") from exc
    if not isinstance(raw, list):
        raise MalformedSnapshot(f"Line items must be a list, got {type(raw).__name__}")

    lines = []
    for item in raw:
        if not isinstance(item, dict):
            raise MalformedSnapshot(f"Line item must be an object, got {item!r}")
        try:
            price = Decimal(str(item.get("price") or 0))
            discount = Decimal(str(item.get("discount") or 0))
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise MalformedSnapshot(f"Invalid amount in line {item!r}") from exc
        if not price.is_finite() or not discount.is_finite():
            raise MalformedSnapshot(f"Non-finite amount in line {item!r}")

        service_id = item.get("service_id")
        try:
            service_id = int(service_id) if service_id is not None else None
        except (TypeError, ValueError):
            service_id = None

        lines.append({
            "service_id": service_id,
            "name": item.get("name", ""),
            "price": price,
            "discount": discount,
            "type": item.get("type"),
        })
    return lines


def line_values(line, tax_rate, withholding_rate):
    """
    (net, gross) of one line, using the invoice's rates:
        net = price × (100 − discount) / 100
        gross = net × (1 + tax/100 − withholding/100)
    """
    net = apply_discount(line["price"], line["discount"])
    factor = 1 + Decimal(tax_rate or 0) / HUNDRED - Decimal(withholding_rate or 0) / HUNDRED
    return net, net * factor


# ----------------------------
# Calendar helpers
# ----------------------------
def shift_month(year, month, delta):
    """(year, month) moved by `delta` months; never skids on short months."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_window(reference, offset=0):
    """
    [first day 00:00, last day 23:59:59.999999] of the calendar month
    `offset` months away from `reference`.
    """
    year, month = shift_month(*calendar_month(reference), offset)
    next_year, next_month = shift_month(year, month, 1)
    start = datetime.datetime(year, month, 1)
    end = datetime.datetime(next_year, next_month, 1) - datetime.timedelta(microseconds=1)
    if settings.USE_TZ:
        start = timezone.make_aware(start)
        end = timezone.make_aware(end)
    return start, end


def growth(current, previous):
    """Month-over-month change in percent, guarded against division by zero."""
    if previous > 0:
        return to_cents((current - previous) / previous * HUNDRED)
    if current > 0:
        return to_cents(HUNDRED)
    return to_cents(ZERO)


def _pair(net=ZERO, gross=ZERO):
    return {"net": to_cents(net), "gross": to_cents(gross)}


def _percentage(part, whole):
    return to_cents(part / whole * HUNDRED) if whole > 0 else to_cents(ZERO)


# ----------------------------
# Aggregations
# ----------------------------
def _snapshot_or_none(invoice):
    try:
        return parse_line_items(invoice.items)
    except MalformedSnapshot as exc:
        logger.warning(
            "Invoice %s has a malformed line snapshot, using invoice totals: %s",
            invoice.pk, exc,
        )
        return None


def window_totals(invoices):
    """
    Invoice-level net/gross plus the recurring-lines sub-bucket for a window.
    A malformed snapshot only loses its line breakdown.
    """
    invoiced_net = invoiced_gross = ZERO
    recurring_net = recurring_gross = ZERO
    for invoice in invoices:
        invoiced_net += invoice.net_amount
        invoiced_gross += invoice.total_amount

        lines = _snapshot_or_none(invoice)
        for line in lines or ():
            if line["type"] != ServiceType.RECURRING:
                continue
            net, gross = line_values(line, invoice.tax_rate, invoice.withholding_rate)
            recurring_net += net
            recurring_gross += gross

    return {
        "invoiced": (invoiced_net, invoiced_gross),
        "recurring": (recurring_net, recurring_gross),
    }


def revenue_history(invoices, reference):
    """
    Trailing 12 calendar months ending with the reference month, oldest first.
    Every month is present, even without invoices.
    """
    buckets = {}
    for offset in range(-(HISTORY_MONTHS - 1), 1):
        year, month = shift_month(*calendar_month(reference), offset)
        buckets[(year, month)] = {
            "year": year,
            "month": month,
            "label": str(MONTHS_3[month]).capitalize(),
            "full_label": str(MONTHS[month]),
            "total": [ZERO, ZERO],
            "recurring": [ZERO, ZERO],
            "punctual": [ZERO, ZERO],
        }

    start, _ = month_window(reference, -(HISTORY_MONTHS - 1))
    _, end = month_window(reference, 0)
    for invoice in invoices.issued_between(start, end).order_by("issue_date"):
        bucket = buckets.get(calendar_month(invoice.issue_date))
        if bucket is None:
            continue
        bucket["total"][0] += invoice.net_amount
        bucket["total"][1] += invoice.total_amount

        lines = _snapshot_or_none(invoice)
        if lines is None:
            # Fallback: attribute the whole invoice to punctual
            bucket["punctual"][0] += invoice.net_amount
            bucket["punctual"][1] += invoice.total_amount
            continue
        for line in lines:
            net, gross = line_values(line, invoice.tax_rate, invoice.withholding_rate)
            key = "recurring" if line["type"] == ServiceType.RECURRING else "punctual"
            bucket[key][0] += net
            bucket[key][1] += gross

    history = []
    for bucket in buckets.values():
        for key in ("total", "recurring", "punctual"):
            bucket[key] = _pair(*bucket[key])
        history.append(bucket)
    return history


def category_distribution(invoices, tenant):
    """Net/gross billed per service template, largest first."""
    flat = []
    for invoice in invoices:
        lines = _snapshot_or_none(invoice)
        for line in lines or ():
            net, gross = line_values(line, invoice.tax_rate, invoice.withholding_rate)
            flat.append((line["service_id"], net, gross))

    service_ids = {service_id for service_id, _, _ in flat if service_id is not None}
    categories = {
        service.pk: service.template.name if service.template else OTHER_CATEGORY
        for service in Service.objects.for_tenant(tenant)
        .filter(pk__in=service_ids)
        .select_related("template")
    }

    totals = {}
    total_net = total_gross = ZERO
    for service_id, net, gross in flat:
        name = categories.get(service_id, OTHER_CATEGORY)
        entry = totals.setdefault(name, [ZERO, ZERO])
        entry[0] += net
        entry[1] += gross
        total_net += net
        total_gross += gross

    distribution = [
        {
            "name": name,
            "net": to_cents(net),
            "gross": to_cents(gross),
            "percentage_net": _percentage(net, total_net),
            "percentage_gross": _percentage(gross, total_gross),
        }
        for name, (net, gross) in totals.items()
    ]
    distribution.sort(key=lambda row: row["net"], reverse=True)
    return distribution


def compute_dashboard_stats(tenant_id, reference_date=None):
    """
    Revenue figures for the dashboard, relative to the tenant's "now".

    Current vs. previous calendar month (net = subtotal, gross = total),
    recurring-line revenue, growth, all-time unpaid ratio, 12-month history
    and this month's category distribution.
    """
    tenant = get_tenant(tenant_id)
    now = reference_date or resolve_now(tenant)
    invoices = Invoice.objects.for_tenant(tenant)

    current = list(invoices.issued_between(*month_window(now, 0)))
    previous = list(invoices.issued_between(*month_window(now, -1)))
    this_month = window_totals(current)
    last_month = window_totals(previous)

    # All-time, archived invoices excluded
    active = invoices.unarchived()
    total_count = active.count()
    unpaid_count = active.exclude(status=InvoiceStatus.PAID).count()

    def growth_pair(key):
        return {
            "net": growth(this_month[key][0], last_month[key][0]),
            "gross": growth(this_month[key][1], last_month[key][1]),
        }

    return {
        "reference_date": now,
        "recurring_revenue": _pair(*this_month["recurring"]),
        "recurring_growth": growth_pair("recurring"),
        "monthly_invoiced": _pair(*this_month["invoiced"]),
        "monthly_invoiced_growth": growth_pair("invoiced"),
        "unpaid_percentage": _percentage(Decimal(unpaid_count), Decimal(total_count)),
        "total_invoices_count": total_count,
        "revenue_history": revenue_history(invoices, now),
        "service_distribution": category_distribution(current, tenant),
        "yearly_goal": tenant.yearly_goal,
    }


def empty_dashboard_stats(yearly_goal=Decimal("100000.00")):
    """Zeroed payload served when the stats cannot be computed."""
    zero_pair = _pair()
    return {
        "reference_date": None,
        "recurring_revenue": zero_pair,
        "recurring_growth": zero_pair,
        "monthly_invoiced": zero_pair,
        "monthly_invoiced_growth": zero_pair,
        "unpaid_percentage": to_cents(ZERO),
        "total_invoices_count": 0,
        "revenue_history": [],
        "service_distribution": [],
        "yearly_goal": yearly_goal,
    }
