from typing import Optional

from ..models import AuditLog, Tenant


def log_action(
    *,
    action: str,
    instance,
    user=None,
    tenant: Optional[Tenant] = None,
    changes: dict | None = None,
):
    """
    Central audit logger.
    Safe to call multiple times (caller ensures idempotency).
    """

    if not tenant:
        tenant = getattr(instance, "tenant", None)

    # anonymous users are recorded as "no user"
    if user is not None and not getattr(user, "is_authenticated", False):
        user = None

    return AuditLog.objects.create(
        tenant=tenant,
        user=user,
        action=action,
        object_type=instance.__class__.__name__,
        object_id=str(instance.pk),
        changes=changes,
    )
