from django.db import models

# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a tenant
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_tenant(self, tenant):
        # accepts a Tenant instance or its pk
        return self.filter(tenant=tenant)

    def active(self, tenant):
        return self.filter(
                            tenant=tenant,  # enforce tenant scoping
                            is_active=True  # only fetch active records
                        )
    # Enables query:
    # Service.objects.active(request.tenant)


# Attach TenantQuerySet to .objects
class TenantManager(models.Manager.from_queryset(TenantQuerySet)):
    pass


class InvoiceQuerySet(TenantQuerySet):
    def issued_between(self, start, end):
        # both bounds inclusive
        return self.filter(issue_date__gte=start, issue_date__lte=end)

    def unarchived(self):
        return self.filter(is_archived=False)


class InvoiceManager(models.Manager.from_queryset(InvoiceQuerySet)):
    pass
