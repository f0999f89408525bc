from django.apps import AppConfig
from django.conf import settings


class NotificationsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "notifications"

    def ready(self):
        from notifications.gateway import notification_gateway

        if getattr(settings, "NOTIFICATIONS_ENABLED", True):
            notification_gateway.init()
