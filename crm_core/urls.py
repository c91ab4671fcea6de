# crm_core/urls.py

from django.urls import path, include
from rest_framework.routers import DefaultRouter

# -------------------------------------------------
# Alert inbox & rule settings
# -------------------------------------------------
from .views import (
    HealthCheckView,
    AlertViewSet,
    AlertRuleViewSet,
    NotificationPreferenceDetailView,
    NotificationPreferenceListView,
)

# -------------------------------------------------
# Background job triggers (scheduler / service token)
# -------------------------------------------------
from .views_alert_jobs import (
    AlertGeneratorView,
    SecurityMonitorView,
)


router = DefaultRouter()
router.register(r"alerts", AlertViewSet, basename="alert")
router.register(r"alert-rules", AlertRuleViewSet, basename="alert-rule")


urlpatterns = [
    path("api/health/", HealthCheckView.as_view(), name="health"),
    path(
        "api/notification-preferences/",
        NotificationPreferenceListView.as_view(),
        name="notification-preference-list",
    ),
    path(
        "api/notification-preferences/<str:rule_id>/",
        NotificationPreferenceDetailView.as_view(),
        name="notification-preference-detail",
    ),
    path("api/", include(router.urls)),

    path(
        "functions/alert-generator/",
        AlertGeneratorView.as_view(),
        name="alert-generator",
    ),
    path(
        "functions/security-monitor/",
        SecurityMonitorView.as_view(),
        name="security-monitor",
    ),
]
