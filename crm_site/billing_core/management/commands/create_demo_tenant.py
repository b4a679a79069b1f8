import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone
from django.utils.text import slugify

from billing_core.models import (BillingOption, Company, Contact, ServiceType,
                                 Tenant)
from billing_core.services.catalog import (create_service,
                                           get_or_create_template)

User = get_user_model()


class Command(BaseCommand):
    help = (
        "Create a demo tenant, member user, clients and services for testing."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--tenant-name",  # Define flag
            default="Demo Agency",
            help="Name of the demo tenant to create.",
        )
        parser.add_argument(
            "--username", default="demo", help="Username for the demo user."
        )
        parser.add_argument(
            "--password", default="demo123", help="Password for the demo user."
        )

    @transaction.atomic
    def handle(self, *args, **options):
        # Read arguments from add_arguments()
        tenant_name = options["tenant_name"]
        username = options["username"]
        password = options["password"]

        # Generate unique slug for tenant
        def unique_slug_for_tenant(name, max_tries=100):
            # Convert name into a slug (e.g., "Demo Agency" → "demo-agency")
            base = slugify(name) or "tenant"
            slug = base
            i = 1
            # If plain slug is taken, append -1, -2, etc.
            while Tenant.objects.filter(slug=slug).exists():
                slug = f"{base}-{i}"
                i += 1
                if i > max_tries:
                    raise RuntimeError("Couldn't generate unique slug")
            return slug

        # 1. Create tenant
        tenant = Tenant.objects.filter(name=tenant_name).first()
        if tenant is None:
            tenant = Tenant.objects.create(
                name=tenant_name,
                legal_name=f"{tenant_name} LLC",
                slug=unique_slug_for_tenant(tenant_name),
                invoice_prefix="%yy%-",
                tax_enabled=True,
            )
        self.stdout.write(self.style.SUCCESS(f"Created tenant: {tenant}"))

        # 2. Create user
        user, created = User.objects.get_or_create(
            username=username,
            defaults={"email": f"{username}@example.com"},
        )
        if created:  # if user newly created
            user.set_password(password)
            user.save()
        tenant.members.add(user)
        self.stdout.write(
            self.style.SUCCESS(f"Created user: {user.username} (pw={password})")
        )

        # 3. Clients, templates and one service per billing option
        hosting = get_or_create_template(tenant, "Hosting")
        marketing = get_or_create_template(tenant, "Marketing")
        today = timezone.localdate()
        mid_month = today.replace(day=min(today.day, 15))

        acme, _ = Company.objects.get_or_create(
            tenant=tenant, name="Acme",
            defaults={"legal_name": "Acme Corp", "billing_email": "billing@acme.test"},
        )
        Contact.objects.get_or_create(
            tenant=tenant, company=acme, name="Wile E.",
            defaults={"email": "wile@acme.test"},
        )
        globex, _ = Company.objects.get_or_create(
            tenant=tenant, name="Globex",
            defaults={"legal_name": "Globex Inc", "billing_email": "ap@globex.test"},
        )

        if not acme.services.exists():
            create_service(
                tenant, acme, name="Web hosting", price=Decimal("50.00"),
                start_date=today.replace(day=1), template=hosting,
            )
            create_service(
                tenant, acme, name="Social media", price=Decimal("300.00"),
                start_date=mid_month, template=marketing,
                billing_option=BillingOption.PRORATED,
            )
        if not globex.services.exists():
            create_service(
                tenant, globex, name="Website redesign", price=Decimal("1200.00"),
                discount=Decimal("10"), type=ServiceType.PUNCTUAL,
                start_date=today - datetime.timedelta(days=3),
            )
            create_service(
                tenant, globex, name="SEO retainer", price=Decimal("400.00"),
                start_date=today.replace(day=1), template=marketing,
                billing_option=BillingOption.NONE,
            )
        self.stdout.write(self.style.SUCCESS(
            f"Created {tenant.services.count()} services for {tenant.companies.count()} clients"
        ))
