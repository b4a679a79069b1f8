from django.contrib import admin

from ..models import AuditLog, Company, Contact, Tenant
from .actions import generate_pending_invoices
from .mixins import TenantAdminMixin


# Register `Tenant` model in admin with this custom config
@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    """Billing entities and their numbering/tax/clock configuration"""

    list_display = (
        "id", "name", "slug", "invoice_prefix", "invoice_next_number",
        "tax_enabled", "withholding_enabled", "simulated_date",
    )
    search_fields = ("name", "slug")
    ordering = ("name",)
    filter_horizontal = ("members",)
    actions = [generate_pending_invoices]
    # only invoice generation moves the counter
    readonly_fields = ("invoice_next_number", "created_at")

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        if request.user.is_superuser:
            return qs
        return qs.filter(members=request.user)


class ContactInline(admin.TabularInline):
    model = Contact
    extra = 0
    exclude = ("tenant",)  # copied from the client on save


@admin.register(Company)
class CompanyAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "name", "legal_name", "tax_id", "billing_email", "tenant")
    list_filter = ("tenant",)
    search_fields = ("name", "legal_name", "tax_id")
    inlines = [ContactInline]


@admin.register(AuditLog)
class AuditLogAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("created_at", "tenant", "user", "action", "object_type", "object_id")
    list_filter = ("action", "tenant")
    readonly_fields = [f.name for f in AuditLog._meta.fields]

    # audit trail is append-only
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
