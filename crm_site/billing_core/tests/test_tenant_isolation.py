from decimal import Decimal

import pytest
from django.contrib.admin.sites import AdminSite
from django.test import RequestFactory, TestCase

from ..admin.service import ServiceAdmin
from ..models import Contact, Invoice, Service
from ..services.invoicing import generate_invoice
from .utils import at, make_company, make_service, make_tenant


class TenantIsolationManagerTests(TestCase):
    def setUp(self):
        self.tenant_a = make_tenant("Tenant A")
        self.tenant_b = make_tenant("Tenant B")
        self.company_a = make_company(self.tenant_a, "Client A")
        self.company_b = make_company(self.tenant_b, "Client B")

        # one service and one invoice per tenant
        self.svc_a = make_service(self.company_a)
        self.svc_b = make_service(self.company_b)
        self.inv_a = generate_invoice(self.tenant_a.pk, self.company_a.pk, issue_date=at(2024, 3, 20))
        self.inv_b = generate_invoice(self.tenant_b.pk, self.company_b.pk, issue_date=at(2024, 3, 20))

    def test_for_tenant_returns_only_that_tenant_objects(self):
        """Compare invoice primary keys"""
        self.assertListEqual(
            list(
                Invoice.objects.for_tenant(self.tenant_a)
                .order_by("id")
                .values_list("pk", flat=True)
            ),
            [self.inv_a.pk],  # expected result
        )
        self.assertListEqual(
            list(Service.objects.for_tenant(self.tenant_b.pk).values_list("pk", flat=True)),
            [self.svc_b.pk],
        )

    def test_get_other_tenant_object_raises_does_not_exist(self):
        # `for_tenant` shouldn't return the other tenant's record
        with self.assertRaises(Invoice.DoesNotExist):
            Invoice.objects.for_tenant(self.tenant_a).get(pk=self.inv_b.pk)

    def test_invoice_numbers_are_per_tenant(self):
        # each tenant has its own counter, both start at 1
        self.assertEqual(self.inv_a.number, self.inv_b.number)

    def test_child_rows_copy_tenant_from_client(self):
        contact = Contact.objects.create(company=self.company_b, name="Bob")
        self.assertEqual(contact.tenant, self.tenant_b)

        service = Service.objects.create(
            company=self.company_b, name="Copy", price=Decimal("1.00"),
            start_date=at(2024, 1, 1).date(),
        )
        self.assertEqual(service.tenant, self.tenant_b)


@pytest.mark.django_db
def test_admin_queryset_is_scoped_to_request_tenant(django_user_model):
    tenant_a = make_tenant("Tenant A")
    tenant_b = make_tenant("Tenant B")
    mine = make_service(make_company(tenant_a, "Client A"), name="Mine")
    make_service(make_company(tenant_b, "Client B"), name="Theirs")
    staff = django_user_model.objects.create_user(username="staff", password="pw", is_staff=True)

    request = RequestFactory().get("/admin/billing_core/service/")
    request.user = staff
    request.tenant = tenant_a  # manually simulate middleware

    admin = ServiceAdmin(Service, AdminSite())
    assert list(admin.get_queryset(request)) == [mine]

    request.tenant = None
    assert not admin.get_queryset(request).exists()
