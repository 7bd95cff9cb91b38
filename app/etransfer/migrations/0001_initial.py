import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="GatewayOption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("key", models.CharField(max_length=64, unique=True)),
                ("value", models.TextField(blank=True, default="")),
            ],
            options={
                "verbose_name": "Gateway Option",
                "verbose_name_plural": "Gateway Options",
                "ordering": ["key"],
            },
        ),
        migrations.CreateModel(
            name="StoredCredential",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("slot", models.CharField(max_length=64, unique=True)),
                ("access_token", models.TextField()),
                ("expires_at", models.DateTimeField()),
                ("config_fingerprint", models.CharField(max_length=64)),
            ],
            options={
                "verbose_name": "Stored Credential",
                "verbose_name_plural": "Stored Credentials",
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("number", models.CharField(help_text="Human-facing order number", max_length=32, unique=True)),
                ("email", models.EmailField(help_text="Billing email address", max_length=254)),
                ("first_name", models.CharField(blank=True, default="", max_length=150)),
                ("last_name", models.CharField(blank=True, default="", max_length=150)),
                ("total", models.DecimalField(decimal_places=2, help_text="Order total in major currency units", max_digits=12)),
                ("currency", models.CharField(default="CAD", help_text="ISO 4217 currency code", max_length=3)),
                ("payment_method", models.CharField(db_index=True, default="etransfer", help_text="Payment gateway identifier", max_length=50)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("draft", "Draft"),
                            ("pending", "Awaiting Payment"),
                            ("paid", "Paid"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="draft",
                        help_text="Current order status (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict, help_text="Gateway metadata (payment URL, transaction reference/status/date)")),
                ("transaction_id", models.CharField(blank=True, db_index=True, default="", help_text="Processor transaction reference", max_length=255)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["status", "payment_method"], name="order_status_method_idx")],
                "constraints": [models.CheckConstraint(condition=models.Q(("total__gte", 0)), name="order_total_not_negative")],
            },
        ),
        migrations.CreateModel(
            name="OrderNote",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("note", models.TextField()),
                ("order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="notes", to="etransfer.order")),
            ],
            options={
                "verbose_name": "Order Note",
                "verbose_name_plural": "Order Notes",
                "ordering": ["created_at"],
            },
        ),
    ]
