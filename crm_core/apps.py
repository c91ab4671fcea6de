# crm_core/apps.py

from django.apps import AppConfig
import logging

logger = logging.getLogger(__name__)


class CrmCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "crm_core"
    verbose_name = "Nexor CRM"

    def ready(self):
        # Register Django system checks only
        try:
            from .checks import alert_engine  # noqa
        except Exception as exc:
            logger.warning(
                "Alert engine checks not registered: %s",
                exc,
            )
