import datetime
from decimal import Decimal

import pytest
from django.test import TestCase

from ..exceptions import TenantNotFound
from ..models import AuditLog, BillingOption, Invoice, ServiceType
from ..services.clock import resolve_now, set_simulated_date
from ..services.invoicing import generate_invoice
from ..services.pending import list_pending, pending_service_ids, skip
from .utils import at, make_company, make_service, make_tenant


class ListPendingTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        self.acme = make_company(self.tenant, "Acme")
        self.globex = make_company(self.tenant, "Globex")
        self.now = at(2024, 3, 20)

        # created in this order: Globex is seen first
        self.g1 = make_service(self.globex, name="SEO", price=Decimal("400.00"))
        self.a1 = make_service(
            self.acme, name="Social", price=Decimal("300.00"),
            start_date=datetime.date(2024, 3, 15),
            billing_option=BillingOption.PRORATED,
        )
        self.g2 = make_service(
            self.globex, name="Redesign", type=ServiceType.PUNCTUAL,
            price=Decimal("1000.00"), discount=Decimal("10"),
        )
        # not pending for different reasons
        make_service(self.acme, name="Old", is_active=False)
        make_service(self.acme, name="Later", start_date=datetime.date(2024, 4, 1))
        make_service(self.acme, name="Done", last_billed_at=at(2024, 3, 2))

    def test_groups_by_company_in_first_seen_order(self):
        bundles = list_pending(self.tenant.pk, self.now)

        self.assertEqual(
            [b["company_id"] for b in bundles], [self.globex.pk, self.acme.pk])
        self.assertEqual(bundles[0]["company_name"], "Globex")
        self.assertEqual(
            [item.source_service_id for item in bundles[0]["items"]],
            [self.g1.pk, self.g2.pk],
        )
        self.assertEqual(
            [item.source_service_id for item in bundles[1]["items"]], [self.a1.pk])

    def test_bundle_total_is_sum_of_final_amounts(self):
        bundles = {b["company_id"]: b for b in list_pending(self.tenant.pk, self.now)}
        # 400 + 1000 × 0.9
        self.assertEqual(bundles[self.globex.pk]["total"], Decimal("1300.00"))
        # prorated: 300 / 30 × 17
        self.assertEqual(bundles[self.acme.pk]["total"], Decimal("170.00"))

    def test_bundle_total_matches_the_invoice_subtotal(self):
        # 10.01 at 50% is 5.005 per line: rounding each line would show 10.02
        initech = make_company(self.tenant, "Initech")
        for name in ("Support", "Backups"):
            make_service(initech, name=name, price=Decimal("10.01"), discount=Decimal("50"))

        bundle = next(
            b for b in list_pending(self.tenant.pk, self.now) if b["company_id"] == initech.pk)
        invoice = generate_invoice(self.tenant.pk, initech.pk, issue_date=self.now)

        self.assertEqual(bundle["total"], Decimal("10.01"))
        self.assertEqual(invoice.subtotal, bundle["total"])

    def test_companies_without_pending_services_are_omitted(self):
        quiet = make_company(self.tenant, "Initech")
        make_service(quiet, is_active=False)
        ids = [b["company_id"] for b in list_pending(self.tenant.pk, self.now)]
        self.assertNotIn(quiet.pk, ids)

    def test_other_tenants_services_are_not_listed(self):
        other = make_tenant("Other")
        make_service(make_company(other, "Foreign"))
        bundles = list_pending(self.tenant.pk, self.now)
        self.assertEqual(len(bundles), 2)
        self.assertEqual(len(list_pending(other.pk, self.now)), 1)

    def test_unknown_tenant_raises(self):
        with self.assertRaises(TenantNotFound):
            list_pending(999999, self.now)

    def test_default_reference_is_the_tenant_clock(self):
        # the "Later" service becomes pending once the clock reaches April
        set_simulated_date(self.tenant, at(2024, 4, 2))
        names = [
            item.display_name
            for bundle in list_pending(self.tenant.pk)
            for item in bundle["items"]
        ]
        self.assertIn("Later", names)
        self.assertEqual(AuditLog.objects.filter(action="tenant.simulated_date").count(), 1)


class SkipTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant()
        self.acme = make_company(self.tenant, "Acme")
        self.globex = make_company(self.tenant, "Globex")
        self.now = at(2024, 3, 20)
        self.hosting = make_service(self.acme, name="Hosting")
        self.seo = make_service(
            self.acme, name="SEO", billing_option=BillingOption.NONE)
        self.other = make_service(self.globex, name="Hosting")

    def test_skip_advances_exactly_the_pending_services(self):
        before = pending_service_ids(self.tenant, self.now)

        count = skip(self.tenant.pk, self.acme.pk, self.now)

        self.assertEqual(count, 2)
        after = pending_service_ids(self.tenant, self.now)
        # same predicate as the list: skipped services leave it, others stay
        self.assertEqual(before - after, {self.hosting.pk, self.seo.pk})
        self.assertEqual(after, {self.other.pk})

        self.hosting.refresh_from_db()
        self.assertEqual(self.hosting.last_billed_at, self.now)

    def test_skip_creates_no_invoice_and_is_audited(self):
        skip(self.tenant.pk, self.acme.pk, self.now)
        self.assertFalse(Invoice.objects.exists())

        log = AuditLog.objects.get(action="service.skip")
        self.assertEqual(log.tenant, self.tenant)
        self.assertEqual(log.object_id, str(self.acme.pk))
        self.assertEqual(sorted(log.changes["services"]), sorted([self.hosting.pk, self.seo.pk]))

    def test_skip_twice_in_the_same_month_is_a_no_op(self):
        skip(self.tenant.pk, self.acme.pk, self.now)
        self.assertEqual(skip(self.tenant.pk, self.acme.pk, at(2024, 3, 28)), 0)
        self.assertEqual(AuditLog.objects.filter(action="service.skip").count(), 1)

    def test_skipped_recurring_service_returns_next_month(self):
        skip(self.tenant.pk, self.acme.pk, self.now)
        self.assertIn(self.seo.pk, pending_service_ids(self.tenant, at(2024, 4, 1)))

    def test_skip_for_company_of_another_tenant_touches_nothing(self):
        other = make_tenant("Other")
        self.assertEqual(skip(other.pk, self.acme.pk, self.now), 0)
        self.hosting.refresh_from_db()
        self.assertIsNone(self.hosting.last_billed_at)


@pytest.mark.django_db
def test_resolve_now_prefers_simulated_date():
    tenant = make_tenant()
    assert resolve_now(None) is not None

    simulated = at(2030, 1, 15)
    set_simulated_date(tenant, simulated)
    assert resolve_now(tenant) == simulated

    set_simulated_date(tenant, None)
    assert resolve_now(tenant) != simulated
