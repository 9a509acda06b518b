from django.apps import AppConfig


class AuditConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.audit"
    verbose_name = "Audit"

    def ready(self) -> None:
        from shared.application.message_bus import message_bus
        from apps.bookings.domain.events import BookingEvent

        from .handlers import record_booking_event

        message_bus.register_event_handler(BookingEvent, record_booking_event)
