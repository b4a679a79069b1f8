import json
from decimal import Decimal

import pytest
from django.test import RequestFactory, TestCase
from django.urls import reverse

from ..middleware import ACTIVE_TENANT_SESSION_KEY, CurrentTenantMiddleware
from ..models import Invoice, InvoiceStatus
from ..views import pending_list_view
from .utils import at, make_company, make_service, make_tenant


class BillingViewTests(TestCase):
    def setUp(self):
        self.tenant = make_tenant(simulated_date=at(2024, 3, 20))
        self.acme = make_company(self.tenant, "Acme")
        self.hosting = make_service(self.acme, name="Hosting", price=Decimal("50.00"))

        self.user = self._user("alice")
        self.tenant.members.add(self.user)
        self.client.force_login(self.user)

    def _user(self, username):
        from django.contrib.auth import get_user_model
        return get_user_model().objects.create_user(username=username, password="pw")

    def test_pending_list(self):
        response = self.client.get(reverse("billing_core:pending-list"))
        self.assertEqual(response.status_code, 200)

        data = response.json()
        self.assertEqual(len(data), 1)
        self.assertEqual(data[0]["company_name"], "Acme")
        # decimals travel as strings
        self.assertEqual(data[0]["total"], "50.00")
        self.assertEqual(data[0]["items"][0]["service_id"], self.hosting.pk)

    def test_pending_list_rejects_post(self):
        response = self.client.post(reverse("billing_core:pending-list"))
        self.assertEqual(response.status_code, 405)

    def test_user_without_tenant_is_forbidden(self):
        self.client.force_login(self._user("mallory"))
        response = self.client.get(reverse("billing_core:pending-list"))
        self.assertEqual(response.status_code, 403)

    def test_generate_then_nothing_left(self):
        url = reverse("billing_core:pending-generate", args=[self.acme.pk])

        response = self.client.post(url, {"service_ids": [self.hosting.pk]})
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertTrue(body["ok"])
        self.assertEqual(body["number"], "INV-01")
        self.assertEqual(body["total_amount"], "50.00")

        response = self.client.post(url)
        self.assertEqual(response.status_code, 400)

    def test_generate_stale_selection_is_a_conflict(self):
        self.hosting.last_billed_at = at(2024, 3, 19)
        self.hosting.save()

        response = self.client.post(
            reverse("billing_core:pending-generate", args=[self.acme.pk]),
            {"service_ids": [self.hosting.pk]},
        )
        self.assertEqual(response.status_code, 409)
        self.assertTrue(response.json()["retry"])
        self.assertEqual(response.json()["service_ids"], [self.hosting.pk])

    def test_generate_for_foreign_company_is_not_found(self):
        foreign = make_company(make_tenant("Other"), "Foreign")
        response = self.client.post(
            reverse("billing_core:pending-generate", args=[foreign.pk]))
        self.assertEqual(response.status_code, 404)

    def test_skip(self):
        response = self.client.post(
            reverse("billing_core:pending-skip", args=[self.acme.pk]))
        self.assertEqual(response.json(), {"ok": True, "count": 1})
        self.assertEqual(self.client.get(reverse("billing_core:pending-list")).json(), [])

    def test_invoice_status(self):
        self.client.post(reverse("billing_core:pending-generate", args=[self.acme.pk]))
        invoice = Invoice.objects.get()
        url = reverse("billing_core:invoice-status", args=[invoice.pk])

        response = self.client.post(url, {"status": InvoiceStatus.PAID})
        self.assertEqual(response.json()["status"], InvoiceStatus.PAID)

        response = self.client.post(url, {"status": InvoiceStatus.DRAFT})
        self.assertEqual(response.status_code, 400)

        response = self.client.post(
            reverse("billing_core:invoice-status", args=[invoice.pk + 100]),
            {"status": InvoiceStatus.SENT},
        )
        self.assertEqual(response.status_code, 404)

    def test_dashboard(self):
        response = self.client.get(reverse("billing_core:dashboard"))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(len(data["revenue_history"]), 12)
        self.assertEqual(data["yearly_goal"], "100000.00")


class CurrentTenantMiddlewareTests(TestCase):
    def setUp(self):
        from django.contrib.auth import get_user_model
        self.user = get_user_model().objects.create_user(username="bob", password="pw")
        self.first = make_tenant("First")
        self.second = make_tenant("Second")
        self.middleware = CurrentTenantMiddleware(lambda request: None)

    def _request(self, session=None):
        request = RequestFactory().get("/")
        request.user = self.user
        request.session = session or {}
        return request

    def test_single_membership_is_picked(self):
        self.first.members.add(self.user)
        request = self._request()
        self.middleware.process_request(request)
        self.assertEqual(request.tenant, self.first)

    def test_several_memberships_need_a_session_choice(self):
        self.first.members.add(self.user)
        self.second.members.add(self.user)

        request = self._request()
        self.middleware.process_request(request)
        self.assertIsNone(request.tenant)

        request = self._request({ACTIVE_TENANT_SESSION_KEY: self.second.pk})
        self.middleware.process_request(request)
        self.assertEqual(request.tenant, self.second)

    def test_session_cannot_jump_into_foreign_tenant(self):
        self.first.members.add(self.user)
        request = self._request({ACTIVE_TENANT_SESSION_KEY: self.second.pk})
        self.middleware.process_request(request)
        self.assertIsNone(request.tenant)


@pytest.mark.django_db
def test_pending_list_only_shows_request_tenant(django_user_model):
    mine = make_tenant("Mine", simulated_date=at(2024, 3, 20))
    theirs = make_tenant("Theirs", simulated_date=at(2024, 3, 20))
    make_service(make_company(mine, "My client"))
    make_service(make_company(theirs, "Their client"))
    user = django_user_model.objects.create_user(username="carol", password="pw")

    # Bypass middleware & call the view with a RequestFactory
    request = RequestFactory().get("/billing/pending/")
    request.user = user
    request.tenant = mine  # manually simulate middleware

    response = pending_list_view(request)
    names = [bundle["company_name"] for bundle in json.loads(response.content)]
    assert names == ["My client"]
