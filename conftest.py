import pytest


@pytest.fixture(autouse=True)
def _pin_alert_settings(settings):
    # Keep a local .env from leaking into the suite.
    settings.ALERTS_SERVICE_TOKEN = "test-service-token"
    settings.ALERT_EMAIL_NOTIFICATIONS = False
    settings.ALERTS_APP_BASE_URL = ""
    settings.ALERTS_LOCAL_TIMEZONE = "America/Sao_Paulo"

    # Session auth over plain http://testserver
    settings.SESSION_COOKIE_SECURE = False
    settings.CSRF_COOKIE_SECURE = False
