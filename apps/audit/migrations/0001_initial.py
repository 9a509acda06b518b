from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_id", models.UUIDField(unique=True)),
                ("actor_id", models.CharField(blank=True, max_length=64)),
                ("actor_role", models.CharField(blank=True, max_length=32)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("create", "Create"),
                            ("update", "Update"),
                            ("delete", "Delete"),
                            ("confirm", "Confirm"),
                            ("cancel", "Cancel"),
                            ("expire", "Expire"),
                            ("convert", "Convert to contract"),
                        ],
                        max_length=20,
                    ),
                ),
                ("resource_type", models.CharField(max_length=50)),
                ("resource_id", models.CharField(max_length=64)),
                ("description", models.CharField(blank=True, max_length=255)),
                ("details", models.JSONField(default=dict)),
                ("timestamp", models.DateTimeField()),
            ],
            options={
                "ordering": ["-timestamp"],
                "indexes": [
                    models.Index(fields=["resource_type", "resource_id"], name="audit_resource_idx"),
                    models.Index(fields=["actor_id", "timestamp"], name="audit_actor_ts_idx"),
                    models.Index(fields=["action", "timestamp"], name="audit_action_ts_idx"),
                ],
            },
        ),
    ]
