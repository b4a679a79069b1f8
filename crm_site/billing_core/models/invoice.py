from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from ..managers import InvoiceManager
from .company import Company
from .tenant import Tenant


class InvoiceStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    SENT = "SENT", "Sent"
    PAID = "PAID", "Paid"
    ERROR = "ERROR", "Error"


# Fields frozen once the invoice exists
FINANCIAL_FIELDS = (
    "number",
    "company_id",
    "issue_date",
    "items",
    "subtotal",
    "tax_rate",
    "tax_amount",
    "withholding_rate",
    "withholding_amount",
    "total_amount",
)


class Invoice(models.Model):  # Immutable financial record of a billing run

    # Invoice belongs to one tenant (multi-tenant)
    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE, related_name="invoices"
    )
    # Invoices are removed together with their client
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="invoices"
    )

    # human-readable sequential number (e.g. "26-02")
    number = models.CharField(max_length=64)
    issue_date = models.DateTimeField()

    # Snapshot of the billed lines
    """ Each line: {"service_id", "name", "price", "discount", "type"}
        price is the unit amount before discount (proration applied),
        amounts are stored as strings to keep Decimal precision. """
    items = models.JSONField(default=list, blank=True)

    # Legacy rows may have no subtotal; reporting falls back to total_amount
    subtotal = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True
    )
    tax_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00")
    )
    tax_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    withholding_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00")
    )
    withholding_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )
    # subtotal + tax_amount - withholding_amount
    total_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    status = models.CharField(
        max_length=10, choices=InvoiceStatus.choices, default=InvoiceStatus.DRAFT
    )
    """ Workflow (delivery is handled outside the engine):
        DRAFT = generated, not delivered yet.
        SENT = delivered to the client.
        PAID = settled.
        ERROR = delivery failed. """

    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = InvoiceManager()

    class Meta:
        ordering = ("-issue_date", "-id")
        indexes = [
            models.Index(fields=["tenant", "issue_date"], name="invoice_tenant_issued_idx"),
            models.Index(fields=["tenant", "company"], name="invoice_tenant_company_idx"),
            models.Index(fields=["tenant", "status"], name="invoice_tenant_status_idx"),
        ]
        constraints = [
            # Within one tenant, each invoice number must be unique
            models.UniqueConstraint(
                fields=["tenant", "number"], name="uq_invoice_tenant_number"
            ),
        ]

    def __str__(self):
        return f"Inv {self.number or self.pk}"

    @property
    def net_amount(self):
        """Invoice-level net; legacy rows without subtotal use the total."""
        return self.subtotal if self.subtotal is not None else self.total_amount

    def clean(self):
        if self.company_id and self.tenant_id:
            if self.company.tenant_id != self.tenant_id:
                raise ValidationError(
                    "Invoice and company must belong to the same tenant")

        """ Make issued invoices immutable in all code paths
        (admin, views, services) """
        if self.pk:
            orig = Invoice.objects.filter(pk=self.pk).values(*FINANCIAL_FIELDS).first()
            if orig is not None:
                changed_fields = [
                    field for field in FINANCIAL_FIELDS
                    if orig[field] != getattr(self, field)
                ]
                if changed_fields:
                    raise ValidationError(
                        f"Cannot modify {changed_fields} on an issued invoice."
                    )

    def save(self, *args, **kwargs):
        if not self.tenant_id and self.company_id:
            self.tenant_id = self.company.tenant_id
        self.full_clean()  # will trigger clean()
        return super().save(*args, **kwargs)

    def transition_to(self, new_status):
        # Current state vs. allowed next states
        allowed = {
            InvoiceStatus.DRAFT: [InvoiceStatus.SENT, InvoiceStatus.PAID, InvoiceStatus.ERROR],
            InvoiceStatus.SENT: [InvoiceStatus.PAID, InvoiceStatus.ERROR],
            InvoiceStatus.ERROR: [InvoiceStatus.DRAFT, InvoiceStatus.SENT],
            InvoiceStatus.PAID: [],  # "PAID" → (no further transitions)
        }
        # Look up what states are allowed from current self.status
        if new_status not in allowed.get(self.status, []):
            raise ValidationError(
                f"Cannot go from {self.status} to {new_status}")

        self.status = new_status
        self.save(update_fields=["status"])
