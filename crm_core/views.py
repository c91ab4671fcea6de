# crm_core/views.py
from __future__ import annotations

from django.db.models import Q, QuerySet
from django.shortcuts import get_object_or_404
from django.utils import timezone

from drf_spectacular.utils import extend_schema
from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Alert, AlertRule, NotificationPreference
from .permissions import IsAlertRuleEditorOrReadOnly
from .serializers import (
    AlertRuleSerializer,
    AlertSerializer,
    AlertSnoozeSerializer,
    NotificationPreferenceSerializer,
)


def _truthy(value) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


# ===============================================================
# Health
# ===============================================================
class HealthCheckView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(tags=["System"])
    def get(self, request):
        return Response({"status": "ok", "service": "Nexor"})


# ===============================================================
# Alert inbox (recipient-side lifecycle)
# ===============================================================
class AlertViewSet(viewsets.ReadOnlyModelViewSet):
    """
    The signed-in user's alerts.

    Snoozed alerts are hidden until their snooze expires unless
    ?include_snoozed=1 is passed. Rules the user muted in-app are hidden.
    """

    serializer_class = AlertSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ("is_read", "archived", "rule")

    def get_queryset(self) -> QuerySet:
        qs = (
            Alert.objects.select_related("rule")
            .filter(user=self.request.user)
            .order_by("-created_at", "-id")
        )
        muted_in_app = NotificationPreference.objects.filter(
            user=self.request.user,
            in_app_enabled=False,
        ).values("rule_id")
        qs = qs.exclude(rule_id__in=muted_in_app)

        if not _truthy(self.request.query_params.get("include_snoozed")):
            qs = qs.filter(
                Q(snoozed_until__isnull=True) | Q(snoozed_until__lte=timezone.now())
            )
        return qs

    def _respond(self, alert: Alert) -> Response:
        return Response(self.get_serializer(alert).data)

    @extend_schema(tags=["Alerts"], request=None)
    @action(detail=True, methods=["post"])
    def read(self, request, pk=None):
        alert = self.get_object()
        alert.is_read = True
        alert.save(update_fields=["is_read"])
        return self._respond(alert)

    @extend_schema(tags=["Alerts"], request=None)
    @action(detail=True, methods=["post"])
    def archive(self, request, pk=None):
        alert = self.get_object()
        alert.archived = True
        alert.is_read = True
        alert.save(update_fields=["archived", "is_read"])
        return self._respond(alert)

    @extend_schema(tags=["Alerts"], request=AlertSnoozeSerializer)
    @action(detail=True, methods=["post"])
    def snooze(self, request, pk=None):
        alert = self.get_object()
        payload = AlertSnoozeSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        alert.snoozed_until = payload.validated_data["until"]
        alert.save(update_fields=["snoozed_until"])
        return self._respond(alert)

    @extend_schema(tags=["Alerts"], request=None)
    @action(detail=False, methods=["post"], url_path="read-all")
    def read_all(self, request):
        updated = Alert.objects.filter(
            user=request.user,
            is_read=False,
            archived=False,
        ).update(is_read=True)
        return Response({"updated": updated})


# ===============================================================
# Alert rules (settings screen)
# ===============================================================
class AlertRuleViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    queryset = AlertRule.objects.all().order_by("module", "id")
    serializer_class = AlertRuleSerializer
    permission_classes = [IsAlertRuleEditorOrReadOnly]
    filterset_fields = ("module", "enabled")


# ===============================================================
# Notification preferences (per signed-in user)
# ===============================================================
def preference_row(rule: AlertRule, pref) -> dict:
    """Effective switches for one rule; no stored row means both are on."""
    return {
        "rule": rule.id,
        "module": rule.module,
        "name": rule.name,
        "description": rule.description,
        "in_app_enabled": pref.in_app_enabled if pref else True,
        "email_enabled": pref.email_enabled if pref else True,
    }


class NotificationPreferenceListView(APIView):
    """
    GET /api/notification-preferences/

    Every rule with the signed-in user's effective switches.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Alerts"])
    def get(self, request):
        prefs = {
            p.rule_id: p
            for p in NotificationPreference.objects.filter(user=request.user)
        }
        rules = AlertRule.objects.order_by("module", "id")
        return Response([preference_row(rule, prefs.get(rule.id)) for rule in rules])


class NotificationPreferenceDetailView(APIView):
    """
    PUT/PATCH /api/notification-preferences/<rule_id>/

    Upsert the signed-in user's switches for one rule.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Alerts"], request=NotificationPreferenceSerializer)
    def put(self, request, rule_id):
        rule = get_object_or_404(AlertRule, pk=rule_id)
        payload = NotificationPreferenceSerializer(data=request.data, partial=True)
        payload.is_valid(raise_exception=True)

        pref, _ = NotificationPreference.objects.update_or_create(
            user=request.user,
            rule=rule,
            defaults=payload.validated_data,
        )
        return Response(preference_row(rule, pref))

    @extend_schema(tags=["Alerts"], request=NotificationPreferenceSerializer)
    def patch(self, request, rule_id):
        return self.put(request, rule_id)
