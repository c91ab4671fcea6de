from __future__ import annotations

from typing import Any, Dict

from django.utils import timezone
from rest_framework import serializers

from .models import Alert, AlertRule


# ===============================================================
# Helpers
# ===============================================================

class ImmutableFieldsMixin:
    """
    Blocks updates to selected fields if they appear in incoming validated data.
    """
    immutable_fields: tuple[str, ...] = ()

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        if self.instance is not None and self.immutable_fields:
            for field in self.immutable_fields:
                if field in attrs:
                    raise serializers.ValidationError(
                        {field: "This field is immutable."}
                    )
        return super().validate(attrs)


# ===============================================================
# Alert rules
# ===============================================================

class AlertRuleSerializer(ImmutableFieldsMixin, serializers.ModelSerializer):
    immutable_fields = ("id", "module")

    class Meta:
        model = AlertRule
        fields = (
            "id",
            "module",
            "name",
            "description",
            "enabled",
            "threshold",
            "severity",
            "visibility",
            "updated_at",
        )
        read_only_fields = ("updated_at",)

    def validate_threshold(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Threshold must not be negative.")
        return value


# ===============================================================
# Alerts
# ===============================================================

class AlertSerializer(serializers.ModelSerializer):
    rule_module = serializers.CharField(source="rule.module", read_only=True)
    severity = serializers.CharField(source="rule.severity", read_only=True)
    is_snoozed = serializers.SerializerMethodField()

    class Meta:
        model = Alert
        fields = (
            "id",
            "rule",
            "rule_module",
            "severity",
            "title",
            "description",
            "link",
            "created_at",
            "is_read",
            "archived",
            "snoozed_until",
            "is_snoozed",
        )
        read_only_fields = fields

    def get_is_snoozed(self, obj) -> bool:
        return bool(obj.snoozed_until and obj.snoozed_until > timezone.now())


class AlertSnoozeSerializer(serializers.Serializer):
    until = serializers.DateTimeField()

    def validate_until(self, value):
        if value <= timezone.now():
            raise serializers.ValidationError("Snooze time must be in the future.")
        return value


class NotificationPreferenceSerializer(serializers.Serializer):
    in_app_enabled = serializers.BooleanField(required=False)
    email_enabled = serializers.BooleanField(required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError(
                "Provide in_app_enabled and/or email_enabled."
            )
        return attrs
