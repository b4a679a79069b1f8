import datetime

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from billing_core.models import Service, Tenant
from billing_core.services.clock import resolve_now
from billing_core.services.eligibility import evaluate


class Command(BaseCommand):
    help = "Explain, service by service, what the billing engine would invoice."

    def add_arguments(self, parser):
        parser.add_argument(
            "--tenant",
            help="Tenant slug (default: every tenant)",
        )
        parser.add_argument(
            "--date",
            help="Reference date YYYY-MM-DD (default: the tenant's clock)",
        )

    def handle(self, *args, **options):
        tenants = Tenant.objects.all()
        if options["tenant"]:
            tenants = tenants.filter(slug=options["tenant"])
            if not tenants.exists():
                raise CommandError(f"Tenant not found: {options['tenant']}")

        reference = None
        if options["date"]:
            try:
                day = datetime.date.fromisoformat(options["date"])
            except ValueError:
                raise CommandError(f"Invalid date: {options['date']}")
            reference = timezone.make_aware(
                datetime.datetime.combine(day, datetime.time(12)))

        for tenant in tenants:
            now = reference or resolve_now(tenant)
            self.stdout.write(self.style.MIGRATE_HEADING(
                f"{tenant.name}: now {now.isoformat()}"
                + (" (simulated)" if tenant.simulated_date and not reference else "")
            ))
            # inactive services are listed too, the evaluator says why they are skipped
            services = (
                Service.objects.for_tenant(tenant)
                .select_related("company")
                .order_by("company__name", "id")
            )
            pending = 0
            for service in services:
                result = evaluate(service, now)
                last = service.last_billed_at.isoformat() if service.last_billed_at else "never"
                line = (
                    f"  [{service.company.name}] {service.name} ({service.type}) "
                    f"start={service.start_date} end={service.end_date or '-'} last={last}"
                )
                if result.eligible:
                    pending += 1
                    self.stdout.write(self.style.SUCCESS(
                        f"{line} -> PENDING {result.final_amount} as '{result.display_name}'"))
                else:
                    self.stdout.write(f"{line} -> skipped ({result.reason})")
            self.stdout.write(f"  {pending} pending services")
