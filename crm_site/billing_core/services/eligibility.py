"""
Single source of truth for "does this service owe a charge right now?".

Every caller (pending list, skip, invoice generation, the debug command)
goes through `evaluate`; nothing else re-implements the rules.
"""
import calendar
import datetime
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.utils import timezone

from ..models import BillingOption, ServiceType

CENT = Decimal("0.01")
# Fixed divisor shared with the UI preview, NOT the real days in month
PRORATION_DIVISOR = Decimal("30")
PRORATED_SUFFIX = " (Prorated)"

# Ineligibility reasons
INACTIVE = "inactive"
FUTURE_START = "future-start"
EXPIRED = "expired"
ALREADY_BILLED = "already-billed"
BILLED_THIS_MONTH = "billed-this-month"
UNKNOWN_TYPE = "unknown-type"


@dataclass(frozen=True)
class EligibilityResult:
    """Outstanding charge for one service."""

    source_service_id: int
    display_name: str
    unit_price: Decimal     # base or prorated amount, before discount, unrounded
    discount: Decimal
    final_amount: Decimal   # what the client owes for this line
    type: str
    prorated: bool = False

    eligible = True

    @property
    def net_amount(self):
        """Unrounded line net; totals round once over the sum."""
        return apply_discount(self.unit_price, self.discount)

    def as_line(self):
        """Invoice snapshot line (amounts as strings to keep precision)."""
        # whole-cent prices read "170.00", prorated ones keep every digit
        price = to_cents(self.unit_price)
        if price != self.unit_price:
            price = self.unit_price
        return {
            "service_id": self.source_service_id,
            "name": self.display_name,
            "price": str(price),
            "discount": str(self.discount),
            "type": self.type,
        }


@dataclass(frozen=True)
class Ineligible:
    source_service_id: int
    reason: str

    eligible = False


def to_cents(amount):
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def apply_discount(amount, discount):
    """amount × (100 − discount) / 100; no-op when discount is 0."""
    discount = Decimal(discount or 0)
    if discount > 0:
        return amount * (Decimal("100") - discount) / Decimal("100")
    return amount


def prorated_amount(price, start_date):
    """
    First-month charge for a service starting mid-month.
    Remaining days include the start day.
    Example: 300 starting on March 15 → 300 / 30 × 17 = 170
    """
    days_in_month = calendar.monthrange(start_date.year, start_date.month)[1]
    remaining_days = max(0, days_in_month - start_date.day + 1)
    return Decimal(price) / PRORATION_DIVISOR * remaining_days


def _local(value):
    if isinstance(value, datetime.datetime) and timezone.is_aware(value):
        return timezone.localtime(value)
    return value


def reference_day(reference_date):
    """Calendar day of a date or datetime (local time for aware datetimes)."""
    if isinstance(reference_date, datetime.datetime):
        return _local(reference_date).date()
    return reference_date


def calendar_month(value):
    value = _local(value)
    return (value.year, value.month)


def evaluate(service, reference_date):
    """
    Decide whether `service` has an outstanding charge at `reference_date`.

    Rules are ordered, the first match wins:
      1. inactive services never bill
      2. services starting after the reference day are not due yet
      3. services that ended before the reference day are expired
      4. punctual services bill once (while last_billed_at is NULL)
      5. recurring services bill once per calendar month
    Pure: same (service, reference_date) → same answer.
    """
    if not service.is_active:
        return Ineligible(service.pk, INACTIVE)

    day = reference_day(reference_date)
    if service.start_date > day:
        return Ineligible(service.pk, FUTURE_START)
    if service.end_date and service.end_date < day:
        return Ineligible(service.pk, EXPIRED)

    if service.type == ServiceType.PUNCTUAL:
        if service.last_billed_at is not None:
            return Ineligible(service.pk, ALREADY_BILLED)
    elif service.is_recurring:
        # calendar month/year only, elapsed days do not matter
        if (
            service.last_billed_at is not None
            and calendar_month(service.last_billed_at) == calendar_month(reference_date)
        ):
            return Ineligible(service.pk, BILLED_THIS_MONTH)
    else:
        return Ineligible(service.pk, UNKNOWN_TYPE)

    return _charge(service, reference_date)


def _charge(service, reference_date):
    base = Decimal(service.price)
    display_name = service.name
    prorated = False

    """ Proration only applies to the first bill of a recurring service
        generated inside its start month. A missed start month is charged
        in full (arrears are not prorated). """
    if (
        service.is_recurring
        and service.last_billed_at is None
        and service.billing_option == BillingOption.PRORATED
        and calendar_month(service.start_date) == calendar_month(reference_date)
    ):
        base = prorated_amount(service.price, service.start_date)
        display_name = f"{display_name}{PRORATED_SUFFIX}"
        prorated = True

    # rounded once, after the discount
    discount = Decimal(service.discount or 0)
    return EligibilityResult(
        source_service_id=service.pk,
        display_name=display_name,
        unit_price=base,
        discount=discount,
        final_amount=to_cents(apply_discount(base, discount)),
        type=service.type,
        prorated=prorated,
    )


def is_eligible(service, reference_date):
    return evaluate(service, reference_date).eligible


def first_bill_preview(price, start_date, discount=0,
                       billing_option=BillingOption.FULL,
                       service_type=ServiceType.RECURRING):
    """
    Amount the first invoice will carry when generated in the start month.
    Uses the same helpers as `evaluate` so previews match the engine.
    """
    base = Decimal(price)
    if (
        service_type == ServiceType.RECURRING
        and billing_option == BillingOption.PRORATED
    ):
        base = prorated_amount(price, start_date)
    return to_cents(apply_discount(base, discount))
