from django.core.exceptions import \
    ValidationError  # Built-in way to raise validation errors
from django.db import \
    models  # ORM base classes to define database tables as Python classes

from ..managers import TenantManager
from .tenant import Tenant


# ---------- Company ----------
# Represents a client who receives invoices
class Company(models.Model):
    # Multi-tenant: every client belongs to a single tenant.
    tenant = models.ForeignKey(
        Tenant, on_delete=models.CASCADE, related_name="companies"
    )
    """ Example:
        Tenant A can have its own clients separate from Tenant B.
    """

    # Short display name and the legal name printed on invoices
    name = models.CharField(max_length=200)
    legal_name = models.CharField(max_length=200, blank=True)

    tax_id = models.CharField(max_length=50, blank=True)
    address = models.TextField(blank=True)

    # Where invoices are delivered
    billing_email = models.EmailField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        verbose_name_plural = "companies"
        indexes = [
            models.Index(fields=["tenant", "name"], name="company_tenant_name_idx"),
        ]

    # Display client name in admin/UI
    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


# ---------- Contact ----------
class Contact(models.Model):
    tenant = models.ForeignKey(Tenant, on_delete=models.CASCADE)
    # Contacts go away together with their client
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="contacts"
    )

    name = models.CharField(max_length=200)
    email = models.EmailField(null=True, blank=True)
    phone = models.CharField(max_length=32, blank=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["tenant", "company"], name="contact_tenant_company_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.company})"

    def clean(self):
        # Prevent cross-tenant contamination
        if (
            self.company_id
            and self.tenant_id
            and self.company.tenant_id != self.tenant_id
        ):
            raise ValidationError("Contact and company must belong to the same tenant")

    def save(self, *args, **kwargs):
        # copy tenant from the client when not given
        if not self.tenant_id and self.company_id:
            self.tenant_id = self.company.tenant_id
        self.full_clean()
        return super().save(*args, **kwargs)
