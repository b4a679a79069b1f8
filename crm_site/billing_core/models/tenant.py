from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

PERCENT_VALIDATORS = [
    MinValueValidator(Decimal("0")),
    MaxValueValidator(Decimal("100")),
]


# ---------- Tenant ----------
class Tenant(models.Model):

    """Billing entity: owns its clients, services, invoices and numbering"""
    # Display name and the legal name printed on invoices
    name = models.CharField(max_length=200)
    legal_name = models.CharField(max_length=200, blank=True)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two tenants can have the same slug
    )
    tax_id = models.CharField(max_length=50, blank=True)
    address = models.TextField(blank=True)
    email = models.EmailField(blank=True)

    # Invoice numbering
    """ Prefix supports %yyyy% and %yy% placeholders.
        Example: prefix "%yy%-" and counter 2 → "26-02" """
    invoice_prefix = models.CharField(max_length=30, default="INV-")
    invoice_next_number = models.PositiveIntegerField(default=1)

    # Revenue target shown next to the dashboard figures
    yearly_goal = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("100000.00")
    )

    # Tax (VAT) and withholding configuration
    tax_enabled = models.BooleanField(default=False)
    tax_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("21.00"),
        validators=PERCENT_VALIDATORS,
    )
    withholding_enabled = models.BooleanField(default=False)
    withholding_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("15.00"),
        validators=PERCENT_VALIDATORS,
    )

    # When set, every billing computation for this tenant uses it as "now"
    simulated_date = models.DateTimeField(null=True, blank=True)

    # Users allowed to operate this tenant
    members = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="tenants",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("name",)

    def __str__(self):
        return self.name

    @property
    def effective_tax_rate(self):
        return self.tax_rate if self.tax_enabled else Decimal("0")

    @property
    def effective_withholding_rate(self):
        return self.withholding_rate if self.withholding_enabled else Decimal("0")

    def format_invoice_number(self, issue_date, number=None):
        """Render the display number for an invoice issued on `issue_date`."""
        prefix = self.invoice_prefix or ""
        year = str(issue_date.year)
        prefix = prefix.replace("%yyyy%", year).replace("%yy%", year[-2:])
        counter = self.invoice_next_number if number is None else number
        return f"{prefix}{counter:02d}"

    def clean(self):
        if self.invoice_next_number is not None and self.invoice_next_number < 1:
            raise ValidationError("Invoice counter must start at 1")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
