# crm_core/checks/alert_engine.py

from django.conf import settings
from django.core.checks import Error, register


@register()
def check_alert_engine_config(app_configs, **kwargs):
    """
    Django system check for the settings the alert jobs cannot run without:
    - the data store location (DB_HOST, when PostgreSQL is configured)
    - the service credential presented by the scheduler
    """
    errors = []

    database = settings.DATABASES.get("default", {})
    if "postgresql" in database.get("ENGINE", "") and not database.get("HOST"):
        errors.append(
            Error(
                "Database host is not configured.",
                hint="Set DB_HOST in the environment or .env file.",
                id="crm_core.E001",
            )
        )

    if not getattr(settings, "ALERTS_SERVICE_TOKEN", ""):
        errors.append(
            Error(
                "ALERTS_SERVICE_TOKEN is not configured.",
                hint="Set ALERTS_SERVICE_TOKEN; the job endpoints require it.",
                id="crm_core.E002",
            )
        )

    return errors
