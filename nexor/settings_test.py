"""
Settings used by the pytest suite.
SQLite in memory, eager Celery, in-memory email.
"""

from .settings import *  # noqa: F401,F403


DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

ALERTS_SERVICE_TOKEN = "test-service-token"
ALERT_EMAIL_NOTIFICATIONS = False

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = "memory://"

# Let pytest's caplog see engine logs.
LOGGING["loggers"]["crm_core"]["propagate"] = True  # noqa: F405
