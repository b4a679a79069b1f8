class BillingError(Exception):
    """Base class for billing engine failures."""
    pass


class TenantNotFound(BillingError):
    """Raised when an operation targets a tenant that does not exist."""

    def __init__(self, tenant_id):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant {tenant_id} not found")


class NothingToInvoice(BillingError):
    """Raised when invoice generation finds no eligible service."""
    pass


class BillingConflict(BillingError):
    """Raised when a service stopped being eligible between read and write.

    Retryable: the caller should reload the pending list and try again.
    """

    def __init__(self, service_ids, message=None):
        self.service_ids = sorted(service_ids)
        super().__init__(
            message
            or f"Services {self.service_ids} are no longer pending, reload and retry"
        )


class MalformedSnapshot(BillingError):
    """Raised when a stored invoice line snapshot cannot be parsed."""
    pass
