from decimal import Decimal

from django.core.exceptions import ValidationError

from ..models import (BillingCycle, BillingOption, Service, ServiceTemplate,
                      ServiceType)


# ----------------------------------------------
# Service catalog workflows
# ----------------------------------------------
def create_service(tenant, company, *, name, price, start_date,
                   type=ServiceType.RECURRING, discount=Decimal("0"),
                   end_date=None, billing_option=BillingOption.FULL,
                   billing_cycle=BillingCycle.MONTHLY, template=None,
                   description=""):
    """
    Contract a new service for a client.
    Every service starts "pending first bill" (last_billed_at is NULL).
    """
    if company.tenant_id != tenant.pk:
        raise ValidationError("Company must belong to the tenant")
    return Service.objects.create(
        tenant=tenant,
        company=company,
        template=template,
        name=name,
        description=description,
        type=type,
        price=price,
        discount=discount,
        start_date=start_date,
        end_date=end_date,
        is_active=True,
        last_billed_at=None,
        billing_option=billing_option,
        billing_cycle=billing_cycle,
    )


def set_service_active(tenant_id, service_id, is_active):
    service = Service.objects.for_tenant(tenant_id).get(pk=service_id)
    service.is_active = is_active
    service.save(update_fields=["is_active"])
    return service


def get_or_create_template(tenant, name):
    """Return the tenant's template called `name`, creating it if missing."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Template name is required")
    template, _ = ServiceTemplate.objects.get_or_create(tenant=tenant, name=name)
    return template
