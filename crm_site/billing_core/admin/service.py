from django.contrib import admin

from ..models import Service, ServiceTemplate
from .actions import activate_services, deactivate_services
from .mixins import TenantAdminMixin


@admin.register(ServiceTemplate)
class ServiceTemplateAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("id", "name", "tenant")
    search_fields = ("name",)


@admin.register(Service)
class ServiceAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = (
        "id", "name", "company", "type", "price", "discount",
        "start_date", "end_date", "billing_option", "is_active", "last_billed_at",
    )
    list_filter = ("type", "is_active", "billing_option", "template")
    search_fields = ("name", "company__name")
    actions = [activate_services, deactivate_services]
    # moved only by the billing engine
    readonly_fields = ("last_billed_at", "created_at")
    list_select_related = ("company",)
