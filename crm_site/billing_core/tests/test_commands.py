import datetime
from decimal import Decimal
from io import StringIO
from unittest import mock

import pytest
from django.contrib.admin.sites import AdminSite
from django.core.exceptions import ValidationError
from django.core.management import CommandError, call_command
from django.test import RequestFactory, TestCase

from ..admin.actions import (activate_services, deactivate_services,
                             generate_pending_invoices)
from ..admin.service import ServiceAdmin
from ..admin.tenant import TenantAdmin
from ..models import BillingOption, Invoice, Service, Tenant
from ..services.catalog import (create_service, get_or_create_template,
                                set_service_active)
from ..tasks import generate_invoice_task
from .utils import at, make_company, make_service, make_tenant


class BillingDebugCommandTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        acme = make_company(self.tenant, "Acme")
        make_service(acme, name="Hosting")
        make_service(acme, name="Legacy", is_active=False)

    def test_reports_every_decision(self):
        out = StringIO()
        call_command("billing_debug", "--tenant", self.tenant.slug, "--date", "2024-03-20", stdout=out)
        output = out.getvalue()

        self.assertIn("Hosting", output)
        self.assertIn("PENDING 100.00", output)
        self.assertIn("skipped (inactive)", output)
        self.assertIn("1 pending services", output)

    def test_unknown_tenant(self):
        with self.assertRaises(CommandError):
            call_command("billing_debug", "--tenant", "nope", stdout=StringIO())

    def test_invalid_date(self):
        with self.assertRaises(CommandError):
            call_command("billing_debug", "--date", "20/03/2024", stdout=StringIO())


class CreateDemoTenantCommandTests(TestCase):

    def test_seeds_tenant_user_and_services(self):
        call_command("create_demo_tenant", stdout=StringIO())

        tenant = Tenant.objects.get(name="Demo Agency")
        self.assertTrue(tenant.members.filter(username="demo").exists())
        self.assertEqual(tenant.companies.count(), 2)
        self.assertEqual(tenant.services.count(), 4)
        self.assertEqual(
            set(tenant.services.values_list("billing_option", flat=True)),
            {BillingOption.FULL, BillingOption.PRORATED, BillingOption.NONE},
        )

    def test_running_twice_does_not_duplicate(self):
        call_command("create_demo_tenant", stdout=StringIO())
        call_command("create_demo_tenant", stdout=StringIO())
        self.assertEqual(Tenant.objects.filter(name="Demo Agency").count(), 1)
        self.assertEqual(Tenant.objects.get(name="Demo Agency").services.count(), 4)


class CatalogTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        self.acme = make_company(self.tenant, "Acme")

    def test_new_service_is_pending_first_bill(self):
        service = create_service(
            self.tenant, self.acme, name="Hosting", price=Decimal("50.00"),
            start_date=datetime.date(2024, 3, 1),
            template=get_or_create_template(self.tenant, " Hosting "),
        )
        self.assertTrue(service.is_active)
        self.assertIsNone(service.last_billed_at)
        self.assertEqual(service.template.name, "Hosting")
        # same name returns the existing template
        self.assertEqual(get_or_create_template(self.tenant, "Hosting"), service.template)

    def test_company_must_belong_to_tenant(self):
        with self.assertRaises(ValidationError):
            create_service(
                make_tenant("Other"), self.acme, name="X", price=Decimal("1"),
                start_date=datetime.date(2024, 3, 1),
            )

    def test_end_before_start_is_rejected(self):
        with self.assertRaises(ValidationError):
            create_service(
                self.tenant, self.acme, name="X", price=Decimal("1"),
                start_date=datetime.date(2024, 3, 1), end_date=datetime.date(2024, 2, 1),
            )

    def test_blank_template_name(self):
        with self.assertRaises(ValidationError):
            get_or_create_template(self.tenant, "  ")

    def test_deactivate(self):
        service = make_service(self.acme)
        set_service_active(self.tenant.pk, service.pk, False)
        service.refresh_from_db()
        self.assertFalse(service.is_active)


class GenerateInvoiceTaskTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant(simulated_date=at(2024, 3, 20))
        self.acme = make_company(self.tenant, "Acme")
        make_service(self.acme)

    def test_task_issues_invoice_once(self):
        invoice_id = generate_invoice_task.apply(args=(self.tenant.pk, self.acme.pk)).get()
        self.assertEqual(Invoice.objects.get().pk, invoice_id)

        # already billed this month: nothing to do, no error
        self.assertIsNone(
            generate_invoice_task.apply(args=(self.tenant.pk, self.acme.pk)).get())
        self.assertEqual(Invoice.objects.count(), 1)


@pytest.mark.django_db
def test_admin_action_queues_one_task_per_pending_client(admin_user):
    tenant = make_tenant(simulated_date=at(2024, 3, 20))
    acme = make_company(tenant, "Acme")
    globex = make_company(tenant, "Globex")
    hosting = make_service(acme)
    make_service(globex)

    request = RequestFactory().post("/admin/")
    request.user = admin_user
    modeladmin = TenantAdmin(Tenant, AdminSite())

    with mock.patch.object(generate_invoice_task, "delay") as delay, \
            mock.patch.object(modeladmin, "message_user"):
        generate_pending_invoices(modeladmin, request, Tenant.objects.filter(pk=tenant.pk))

    assert delay.call_count == 2
    delay.assert_any_call(tenant.pk, acme.pk, [hosting.pk])


@pytest.mark.django_db
def test_admin_service_actions_go_through_the_catalog(admin_user):
    tenant = make_tenant()
    acme = make_company(tenant, "Acme")
    hosting = make_service(acme, name="Hosting")
    seo = make_service(acme, name="SEO")

    request = RequestFactory().post("/admin/")
    request.user = admin_user
    modeladmin = ServiceAdmin(Service, AdminSite())
    queryset = Service.objects.filter(pk__in=[hosting.pk, seo.pk])

    with mock.patch(
        "billing_core.admin.actions.set_service_active", wraps=set_service_active,
    ) as set_active, mock.patch.object(modeladmin, "message_user"):
        deactivate_services(modeladmin, request, queryset)

    assert set_active.call_count == 2
    set_active.assert_any_call(tenant.pk, hosting.pk, False)
    assert not Service.objects.filter(is_active=True).exists()

    with mock.patch.object(modeladmin, "message_user") as message_user:
        activate_services(modeladmin, request, Service.objects.filter(pk=hosting.pk))
    hosting.refresh_from_db()
    assert hosting.is_active
    message_user.assert_called_once()
