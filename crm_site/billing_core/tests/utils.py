import datetime
from decimal import Decimal

from django.utils import timezone
from django.utils.text import slugify

from ..models import Company, Service, ServiceType, Tenant


def at(year, month, day, hour=12, minute=0):
    """Aware datetime in the project time zone."""
    return timezone.make_aware(datetime.datetime(year, month, day, hour, minute))


def make_tenant(name="Agency", **kwargs):
    kwargs.setdefault("slug", slugify(name))
    return Tenant.objects.create(name=name, **kwargs)


def make_company(tenant, name="Acme", **kwargs):
    return Company.objects.create(tenant=tenant, name=name, **kwargs)


def make_service(company, **kwargs):
    """Active recurring service of 100.00 starting 2024-01-01 unless overridden."""
    kwargs.setdefault("name", "Hosting")
    kwargs.setdefault("type", ServiceType.RECURRING)
    kwargs.setdefault("price", Decimal("100.00"))
    kwargs.setdefault("start_date", datetime.date(2024, 1, 1))
    return Service.objects.create(tenant=company.tenant, company=company, **kwargs)
