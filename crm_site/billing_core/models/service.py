from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from ..managers import TenantManager
from .company import Company
from .tenant import Tenant


# ---------- ServiceTemplate ----------
class ServiceTemplate(models.Model):
    """Named category used to standardise service names and reporting"""

    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE, related_name="service_templates"
    )
    name = models.CharField(max_length=200)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ("name",)
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "name"], name="uq_tenant_service_template_name"
            ),
        ]

    def __str__(self):
        return self.name


class ServiceType(models.TextChoices):
    PUNCTUAL = "PUNCTUAL", "Punctual"    # billed once
    RECURRING = "RECURRING", "Recurring"  # billed once per calendar month


class BillingOption(models.TextChoices):
    """How the first bill of a service is charged"""
    FULL = "FULL", "Full price"
    PRORATED = "PRORATED", "Prorated"
    NONE = "NONE", "No first bill"


class BillingCycle(models.TextChoices):
    MONTHLY = "MONTHLY", "Monthly"
    QUARTERLY = "QUARTERLY", "Quarterly"
    YEARLY = "YEARLY", "Yearly"


# ---------- Service ----------
class Service(models.Model):  # A contracted, billable item

    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE, related_name="services"
    )
    # Services are removed together with their client
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="services"
    )
    # Optional category; deleting a template keeps the service
    template = models.ForeignKey(
        ServiceTemplate,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="services",
    )

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)

    type = models.CharField(
        max_length=10, choices=ServiceType.choices, default=ServiceType.RECURRING
    )

    # Base unit price before discount
    price = models.DecimalField(
        max_digits=12, decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    # Percentage, 0-100
    discount = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )

    # Eligible on/after start_date, ineligible strictly after end_date
    start_date = models.DateField()
    end_date = models.DateField(null=True, blank=True)

    is_active = models.BooleanField(default=True)

    # NULL means the first bill is still pending
    last_billed_at = models.DateTimeField(null=True, blank=True)

    # First bill only
    billing_option = models.CharField(
        max_length=10, choices=BillingOption.choices, default=BillingOption.FULL
    )
    billing_cycle = models.CharField(
        max_length=10, choices=BillingCycle.choices, default=BillingCycle.MONTHLY
    )

    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ("-start_date", "id")
        indexes = [
            models.Index(fields=["tenant", "is_active"], name="service_tenant_active_idx"),
            models.Index(fields=["tenant", "company"], name="service_tenant_company_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="service_non_negative_price",
            ),
            models.CheckConstraint(
                condition=models.Q(discount__gte=0) & models.Q(discount__lte=100),
                name="service_discount_percentage",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.get_type_display()})"

    @property
    def is_recurring(self):
        return self.type == ServiceType.RECURRING

    def clean(self):
        if self.end_date and self.start_date and self.end_date < self.start_date:
            raise ValidationError("end_date cannot be before start_date")

        # Tenant safety: client and template must belong to the same tenant
        if self.company_id and self.tenant_id:
            if self.company.tenant_id != self.tenant_id:
                raise ValidationError(
                    "Service and company must belong to the same tenant")
        if self.template_id and self.tenant_id:
            if self.template.tenant_id != self.tenant_id:
                raise ValidationError(
                    "Service template must belong to the same tenant")

    def save(self, *args, **kwargs):
        # copy tenant from the client when not given
        if not self.tenant_id and self.company_id:
            self.tenant_id = self.company.tenant_id
        self.full_clean()
        return super().save(*args, **kwargs)
