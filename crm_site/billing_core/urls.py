from django.urls import path

from . import views

app_name = "billing_core"

urlpatterns = [
    path("pending/", views.pending_list_view, name="pending-list"),
    path("pending/<int:company_id>/skip/", views.skip_pending_view, name="pending-skip"),
    path("pending/<int:company_id>/generate/", views.generate_invoice_view, name="pending-generate"),
    path("invoices/<int:invoice_id>/status/", views.invoice_status_view, name="invoice-status"),
    path("dashboard/", views.dashboard_view, name="dashboard"),
]
