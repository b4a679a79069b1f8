from django.conf import settings  # To access global project settings
from django.db import models

from ..managers import TenantManager
from .tenant import Tenant


# ---------- Audit / Event log ----------
class AuditLog(models.Model):  # Trail of billing decisions taken by operators
    # Nullable because some actions might not belong to a specific tenant
    tenant = models.ForeignKey(
        Tenant,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    # Nullable for automated runs (Celery task, management command)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    # e.g. "invoice.generate", "service.skip", "invoice.status"
    action = models.CharField(max_length=50)
    # What kind of object was affected
    object_type = models.CharField(max_length=100)
    object_id = models.CharField(max_length=100)
    # Before/after details of what changed
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(fields=["tenant", "created_at"], name="auditlog_tenant_created_idx"),
        ]

    def __str__(self):
        time = self.created_at
        return f"[{time:%Y-%m-%d %H:%M}] {self.user} {self.action} {self.object_type}({self.object_id})"
