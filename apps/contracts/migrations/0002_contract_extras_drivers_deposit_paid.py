from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("contracts", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="contract",
            name="deposit_paid",
            field=models.BooleanField(default=False),
        ),
        migrations.AddField(
            model_name="contract",
            name="additional_drivers",
            field=models.JSONField(blank=True, default=list),
        ),
        migrations.AddField(
            model_name="contract",
            name="extras",
            field=models.JSONField(blank=True, default=list),
        ),
    ]
