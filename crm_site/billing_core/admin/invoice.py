from django.contrib import admin

from ..models import FINANCIAL_FIELDS, Invoice
from .actions import archive_invoices, mark_inv_as_paid, mark_inv_as_sent
from .mixins import TenantAdminMixin


# Register `Invoice` model
@admin.register(Invoice)
class InvoiceAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id",
        "number",
        "company",
        "issue_date",
        "status",
        "subtotal",
        "total_amount",
        "is_archived",
    )
    list_filter = ("status", "is_archived", "issue_date")
    search_fields = ("number", "company__name")
    actions = [mark_inv_as_sent, mark_inv_as_paid, archive_invoices]
    list_select_related = ("company",)

    # Invoices are created by the billing engine only
    def has_add_permission(self, request):
        return False

    def get_readonly_fields(self, request, obj=None):
        # company_id is exposed as the `company` field in forms
        fields = [f if f != "company_id" else "company" for f in FINANCIAL_FIELDS]
        return fields + ["tenant", "status", "created_at"]
