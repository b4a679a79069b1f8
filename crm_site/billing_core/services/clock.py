import logging

from django.utils import timezone

from .audit_helper import log_action

logger = logging.getLogger(__name__)


def resolve_now(tenant=None):
    """
    Return the tenant's simulated date when one is configured,
    otherwise the real current time.
    A missing tenant means "use real time".
    """
    simulated = getattr(tenant, "simulated_date", None)
    if simulated is not None:
        return simulated
    return timezone.now()


def set_simulated_date(tenant, value, user=None):
    """Turn the simulated clock on (`value`) or off (`None`) for a tenant."""
    previous = tenant.simulated_date
    tenant.simulated_date = value
    tenant.save(update_fields=["simulated_date"])
    log_action(
        action="tenant.simulated_date",
        instance=tenant,
        user=user,
        tenant=tenant,
        changes={
            "from": previous.isoformat() if previous else None,
            "to": value.isoformat() if value else None,
        },
    )
    logger.info("Tenant %s simulated date set to %s", tenant.pk, value)
    return tenant
