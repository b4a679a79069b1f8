import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Tenant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("legal_name", models.CharField(blank=True, max_length=200)),
                ("slug", models.SlugField(max_length=80, unique=True)),
                ("tax_id", models.CharField(blank=True, max_length=50)),
                ("address", models.TextField(blank=True)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("invoice_prefix", models.CharField(default="INV-", max_length=30)),
                ("invoice_next_number", models.PositiveIntegerField(default=1)),
                ("yearly_goal", models.DecimalField(decimal_places=2, default=Decimal("100000.00"), max_digits=14)),
                ("tax_enabled", models.BooleanField(default=False)),
                ("tax_rate", models.DecimalField(decimal_places=2, default=Decimal("21.00"), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal("0")), django.core.validators.MaxValueValidator(Decimal("100"))])),
                ("withholding_enabled", models.BooleanField(default=False)),
                ("withholding_rate", models.DecimalField(decimal_places=2, default=Decimal("15.00"), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal("0")), django.core.validators.MaxValueValidator(Decimal("100"))])),
                ("simulated_date", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("members", models.ManyToManyField(blank=True, related_name="tenants", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="Company",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("legal_name", models.CharField(blank=True, max_length=200)),
                ("tax_id", models.CharField(blank=True, max_length=50)),
                ("address", models.TextField(blank=True)),
                ("billing_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="companies", to="billing_core.tenant")),
            ],
            options={
                "verbose_name_plural": "companies",
                "indexes": [models.Index(fields=["tenant", "name"], name="company_tenant_name_idx")],
            },
        ),
        migrations.CreateModel(
            name="Contact",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="contacts", to="billing_core.company")),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, to="billing_core.tenant")),
            ],
            options={
                "indexes": [models.Index(fields=["tenant", "company"], name="contact_tenant_company_idx")],
            },
        ),
        migrations.CreateModel(
            name="ServiceTemplate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="service_templates", to="billing_core.tenant")),
            ],
            options={
                "ordering": ("name",),
                "constraints": [models.UniqueConstraint(fields=("tenant", "name"), name="uq_tenant_service_template_name")],
            },
        ),
        migrations.CreateModel(
            name="Service",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("type", models.CharField(choices=[("PUNCTUAL", "Punctual"), ("RECURRING", "Recurring")], default="RECURRING", max_length=10)),
                ("price", models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal("0"))])),
                ("discount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal("0")), django.core.validators.MaxValueValidator(Decimal("100"))])),
                ("start_date", models.DateField()),
                ("end_date", models.DateField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                ("last_billed_at", models.DateTimeField(blank=True, null=True)),
                ("billing_option", models.CharField(choices=[("FULL", "Full price"), ("PRORATED", "Prorated"), ("NONE", "No first bill")], default="FULL", max_length=10)),
                ("billing_cycle", models.CharField(choices=[("MONTHLY", "Monthly"), ("QUARTERLY", "Quarterly"), ("YEARLY", "Yearly")], default="MONTHLY", max_length=10)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="services", to="billing_core.company")),
                ("template", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="services", to="billing_core.servicetemplate")),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="services", to="billing_core.tenant")),
            ],
            options={
                "ordering": ("-start_date", "id"),
                "indexes": [
                    models.Index(fields=["tenant", "is_active"], name="service_tenant_active_idx"),
                    models.Index(fields=["tenant", "company"], name="service_tenant_company_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("price__gte", 0)), name="service_non_negative_price"),
                    models.CheckConstraint(condition=models.Q(("discount__gte", 0), ("discount__lte", 100)), name="service_discount_percentage"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("number", models.CharField(max_length=64)),
                ("issue_date", models.DateTimeField()),
                ("items", models.JSONField(blank=True, default=list)),
                ("subtotal", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("tax_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("tax_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("withholding_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("withholding_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("total_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("status", models.CharField(choices=[("DRAFT", "Draft"), ("SENT", "Sent"), ("PAID", "Paid"), ("ERROR", "Error")], default="DRAFT", max_length=10)),
                ("is_archived", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="invoices", to="billing_core.company")),
                ("tenant", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="invoices", to="billing_core.tenant")),
            ],
            options={
                "ordering": ("-issue_date", "-id"),
                "indexes": [
                    models.Index(fields=["tenant", "issue_date"], name="invoice_tenant_issued_idx"),
                    models.Index(fields=["tenant", "company"], name="invoice_tenant_company_idx"),
                    models.Index(fields=["tenant", "status"], name="invoice_tenant_status_idx"),
                ],
                "constraints": [models.UniqueConstraint(fields=("tenant", "number"), name="uq_invoice_tenant_number")],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("tenant", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to="billing_core.tenant")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ("-created_at", "-id"),
                "indexes": [models.Index(fields=["tenant", "created_at"], name="auditlog_tenant_created_idx")],
            },
        ),
    ]
