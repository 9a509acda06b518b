from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("bookings", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="booking",
            name="additional_drivers",
            field=models.JSONField(blank=True, default=list),
        ),
        migrations.AddField(
            model_name="booking",
            name="extras",
            field=models.JSONField(
                blank=True,
                default=list,
                help_text="Rented extras: type, quantity and price per day.",
            ),
        ),
        migrations.AddField(
            model_name="booking",
            name="deposit_paid",
            field=models.BooleanField(default=False),
        ),
    ]
