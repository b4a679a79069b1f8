from .actions import (activate_services, archive_invoices,
                      deactivate_services, generate_pending_invoices,
                      mark_inv_as_paid, mark_inv_as_sent)
from .invoice import InvoiceAdmin
from .mixins import TenantAdminMixin
from .service import ServiceAdmin, ServiceTemplateAdmin
from .tenant import AuditLogAdmin, CompanyAdmin, ContactInline, TenantAdmin
