from .auditlog import AuditLog
from .company import Company, Contact
from .invoice import FINANCIAL_FIELDS, Invoice, InvoiceStatus
from .service import (BillingCycle, BillingOption, Service, ServiceTemplate,
                      ServiceType)
from .tenant import Tenant
