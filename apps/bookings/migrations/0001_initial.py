import uuid
from decimal import Decimal

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("booking_reference", models.CharField(editable=False, max_length=20, unique=True)),
                ("customer_id", models.CharField(max_length=64)),
                ("car_id", models.CharField(max_length=64)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("pickup_location", models.CharField(blank=True, max_length=255)),
                ("dropoff_location", models.CharField(blank=True, max_length=255)),
                ("notes", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                            ("converted", "Converted to contract"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "daily_rate",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Car daily rate captured when the booking was priced.",
                        max_digits=10,
                    ),
                ),
                ("currency", models.CharField(default="EUR", max_length=3)),
                ("total_estimated_cost", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("deposit_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                (
                    "expires_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="A booking still pending after this moment is expired by the sweep.",
                        null=True,
                    ),
                ),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("cancellation_reason", models.CharField(blank=True, max_length=500)),
                ("expired_at", models.DateTimeField(blank=True, null=True)),
                ("converted_at", models.DateTimeField(blank=True, null=True)),
                ("contract_id", models.CharField(blank=True, max_length=64)),
                ("created_by", models.CharField(blank=True, max_length=64)),
                ("updated_by", models.CharField(blank=True, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["car_id", "start_date", "end_date"], name="booking_car_window_idx"),
                    models.Index(fields=["status", "expires_at"], name="booking_status_expiry_idx"),
                    models.Index(fields=["customer_id"], name="booking_customer_idx"),
                    models.Index(fields=["start_date"], name="booking_start_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(end_date__gt=models.F("start_date")),
                        name="booking_valid_dates",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CarReservationLock",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("car_id", models.CharField(max_length=64, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="BookingReferenceSequence",
            fields=[
                ("year", models.PositiveSmallIntegerField(primary_key=True, serialize=False)),
                ("last_value", models.PositiveIntegerField(default=0)),
            ],
        ),
    ]
