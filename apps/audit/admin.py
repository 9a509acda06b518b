"""Read-only admin for the audit trail."""

from __future__ import annotations

from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "actor_id", "action", "resource_type", "resource_id", "description")
    list_filter = ("action", "resource_type")
    search_fields = ("resource_id", "actor_id", "description")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
