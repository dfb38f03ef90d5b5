import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import hire.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="BusinessProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200)),
                ("address", models.CharField(max_length=255)),
                ("ico", models.CharField(max_length=20, verbose_name="IČO")),
                ("pickup_location", models.CharField(blank=True, default="", max_length=200)),
                ("website", models.CharField(blank=True, default="", max_length=200)),
                ("contact_email", models.EmailField(blank=True, default="", max_length=254)),
                ("bank_account", models.CharField(max_length=50)),
            ],
        ),
        migrations.CreateModel(
            name="ContractTemplate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("file", models.FileField(blank=True, null=True, upload_to="contract_templates/")),
                ("body_html", models.TextField(blank=True, null=True)),
                (
                    "format",
                    models.CharField(
                        choices=[("html", "HTML"), ("docx", "DOCX"), ("pdf", "PDF")],
                        default="html",
                        max_length=10,
                    ),
                ),
                ("description", models.TextField(blank=True, null=True)),
            ],
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(max_length=120)),
                ("email", models.EmailField(max_length=254)),
                ("phone", models.CharField(max_length=30)),
                ("address", models.CharField(max_length=255)),
                ("id_number", models.CharField(help_text="Číslo občanského průkazu.", max_length=30)),
                ("driving_license", models.CharField(help_text="Číslo řidičského průkazu.", max_length=30)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"ordering": ["full_name", "id"]},
        ),
        migrations.CreateModel(
            name="PreRegistration",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("email", models.EmailField(max_length=254)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("submitted", "Submitted"), ("completed", "Completed")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("full_name", models.CharField(blank=True, default="", max_length=120)),
                ("phone", models.CharField(blank=True, default="", max_length=30)),
                ("address", models.CharField(blank=True, default="", max_length=255)),
                ("id_number", models.CharField(blank=True, default="", max_length=30)),
                ("driving_license", models.CharField(blank=True, default="", max_length=30)),
                ("signature", models.FileField(blank=True, max_length=255, upload_to="")),
                ("id_card", models.FileField(blank=True, max_length=255, upload_to="")),
                ("license_scan", models.FileField(blank=True, max_length=255, upload_to="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="Vehicle",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "make",
                    models.CharField(
                        choices=[("Opel", "Opel"), ("Renault", "Renault"), ("Fiat", "Fiat"), ("Peugeot", "Peugeot")],
                        max_length=30,
                    ),
                ),
                (
                    "model",
                    models.CharField(
                        choices=[("Movano", "Movano"), ("Master", "Master"), ("Ducato", "Ducato"), ("Boxer", "Boxer")],
                        max_length=30,
                    ),
                ),
                ("license_plate", models.CharField(help_text="SPZ, e.g. 1AB 2345.", max_length=20, unique=True)),
                ("year", models.PositiveIntegerField()),
                ("vin", models.CharField(max_length=50)),
                ("stk_due_date", models.DateField(help_text="Datum příští STK.")),
                (
                    "price_hour4",
                    models.DecimalField(
                        decimal_places=2,
                        default=hire.models.default_price_hour4,
                        help_text="Price for rentals up to 4 hours.",
                        max_digits=9,
                    ),
                ),
                (
                    "price_hour12",
                    models.DecimalField(
                        decimal_places=2,
                        default=hire.models.default_price_hour12,
                        help_text="Price for rentals up to 12 hours.",
                        max_digits=9,
                    ),
                ),
                (
                    "price_day",
                    models.DecimalField(
                        decimal_places=2,
                        default=hire.models.default_price_day,
                        help_text="Price per started day for longer rentals.",
                        max_digits=9,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={"ordering": ["make", "model", "license_plate"]},
        ),
        migrations.CreateModel(
            name="ServiceRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("date", models.DateField(default=django.utils.timezone.localdate)),
                ("description", models.CharField(max_length=255)),
                ("cost", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "vehicle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="service_records",
                        to="hire.vehicle",
                    ),
                ),
            ],
            options={"ordering": ["-date", "-id"]},
        ),
        migrations.CreateModel(
            name="Rental",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "contract_number",
                    models.CharField(
                        blank=True,
                        help_text="Automatically generated 5-digit contract number.",
                        max_length=5,
                        null=True,
                        unique=True,
                    ),
                ),
                ("start_at", models.DateTimeField()),
                ("end_at", models.DateTimeField()),
                ("total_price", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "status",
                    models.CharField(
                        choices=[("upcoming", "Upcoming"), ("active", "Active"), ("completed", "Completed")],
                        default="upcoming",
                        max_length=20,
                    ),
                ),
                ("contract_html", models.TextField(blank=True, default="")),
                ("signature", models.FileField(blank=True, max_length=255, upload_to="")),
                ("start_mileage", models.PositiveIntegerField(blank=True, null=True)),
                ("end_mileage", models.PositiveIntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rentals",
                        to="hire.customer",
                    ),
                ),
                (
                    "pre_registration",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="rentals",
                        to="hire.preregistration",
                    ),
                ),
                (
                    "vehicle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="rentals",
                        to="hire.vehicle",
                    ),
                ),
            ],
            options={"ordering": ["-start_at", "-id"]},
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("number", models.CharField(max_length=20, unique=True)),
                ("issue_date", models.DateField()),
                ("due_date", models.DateField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "status",
                    models.CharField(
                        choices=[("unpaid", "Unpaid"), ("paid", "Paid")],
                        default="unpaid",
                        max_length=10,
                    ),
                ),
                ("supplier", models.JSONField(default=dict)),
                ("customer", models.JSONField(default=dict)),
                ("items", models.JSONField(default=list)),
                ("variable_symbol", models.CharField(max_length=20)),
                (
                    "rental",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="invoice",
                        to="hire.rental",
                    ),
                ),
            ],
            options={"ordering": ["-issue_date", "-id"]},
        ),
        migrations.CreateModel(
            name="HandoverProtocol",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("pickup", "Pickup"), ("return", "Return")], max_length=10)),
                ("recorded_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("mileage", models.PositiveIntegerField()),
                (
                    "fuel_level",
                    models.DecimalField(
                        choices=[
                            (Decimal("1.00"), "Plná"),
                            (Decimal("0.75"), "3/4"),
                            (Decimal("0.50"), "1/2"),
                            (Decimal("0.25"), "1/4"),
                            (Decimal("0.00"), "Prázdná"),
                        ],
                        decimal_places=2,
                        max_digits=3,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("signature", models.FileField(max_length=255, upload_to="")),
                (
                    "rental",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="protocols",
                        to="hire.rental",
                    ),
                ),
            ],
            options={"ordering": ["recorded_at"]},
        ),
        migrations.AddConstraint(
            model_name="handoverprotocol",
            constraint=models.UniqueConstraint(fields=("rental", "kind"), name="unique_protocol_kind_per_rental"),
        ),
        migrations.CreateModel(
            name="ProtocolPhoto",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("image", models.FileField(max_length=255, upload_to="")),
                (
                    "protocol",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="photos",
                        to="hire.handoverprotocol",
                    ),
                ),
            ],
        ),
    ]
