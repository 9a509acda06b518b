"""Audit trail model."""

from __future__ import annotations

from django.db import models  # type: ignore


class AuditLog(models.Model):
    """One entry per create/update/delete/transition of an audited record."""

    ACTION_CHOICES = [
        ("create", "Create"),
        ("update", "Update"),
        ("delete", "Delete"),
        ("confirm", "Confirm"),
        ("cancel", "Cancel"),
        ("expire", "Expire"),
        ("convert", "Convert to contract"),
    ]

    event_id = models.UUIDField(unique=True)
    actor_id = models.CharField(max_length=64, blank=True)
    actor_role = models.CharField(max_length=32, blank=True)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    resource_type = models.CharField(max_length=50)
    resource_id = models.CharField(max_length=64)
    description = models.CharField(max_length=255, blank=True)
    details = models.JSONField(default=dict)
    timestamp = models.DateTimeField()

    class Meta:
        indexes = [
            models.Index(fields=["resource_type", "resource_id"], name="audit_resource_idx"),
            models.Index(fields=["actor_id", "timestamp"], name="audit_actor_ts_idx"),
            models.Index(fields=["action", "timestamp"], name="audit_action_ts_idx"),
        ]
        ordering = ["-timestamp"]

    def __str__(self):
        return f"{self.actor_id} - {self.action} {self.resource_type}:{self.resource_id}"
