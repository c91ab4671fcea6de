# crm_core/models/alerts.py

from django.db import models
from django.conf import settings
from django.utils import timezone


class AlertRule(models.Model):
    """
    Declarative definition of a condition to monitor.

    Edited by administrators; read-only to the alert engine. The primary key
    doubles as the lookup key into the engine's handler table.
    """

    class Module(models.TextChoices):
        LEADS = "Leads", "Leads"
        OPORTUNIDADES = "Oportunidades", "Oportunidades"
        TICKETS = "Tickets", "Tickets"
        FINANCEIRO = "Financeiro", "Financeiro"
        METAS = "Metas", "Metas"
        ATIVIDADES = "Atividades", "Atividades"
        SEGURANCA = "Segurança", "Segurança"

    class Severity(models.TextChoices):
        INFO = "info", "Info"
        WARNING = "warning", "Warning"
        CRITICAL = "critical", "Critical"

    class Visibility(models.TextChoices):
        RESPONSIBLE = "responsible", "Responsável"
        ADMIN = "admin", "Administradores"
        BOTH = "both", "Ambos"

    id = models.CharField(max_length=64, primary_key=True)
    module = models.CharField(max_length=32, choices=Module.choices, db_index=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    enabled = models.BooleanField(default=True, db_index=True)
    threshold = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    severity = models.CharField(max_length=16, choices=Severity.choices, default=Severity.WARNING)
    visibility = models.CharField(max_length=16, choices=Visibility.choices, default=Visibility.BOTH)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "alert_rules"
        ordering = ["module", "id"]

    def __str__(self):
        return f"{self.id} ({self.module})"


class Alert(models.Model):
    """
    Persisted, user-facing notification.

    Created only by the alert engine; afterwards mutated by the recipient
    (read / snooze / archive), never by the engine.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="alerts",
    )
    rule = models.ForeignKey(
        AlertRule,
        on_delete=models.CASCADE,
        related_name="alerts",
        db_column="rule_id",
    )

    title = models.CharField(max_length=255)
    description = models.TextField()
    link = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    is_read = models.BooleanField(default=False)
    archived = models.BooleanField(default=False)
    snoozed_until = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "alerts"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(
                fields=["rule", "user", "archived", "created_at"],
                name="alert_dedup_lookup_idx",
            ),
        ]

    def __str__(self):
        return f"{self.rule_id} -> {self.user_id}: {self.title}"


class NotificationPreference(models.Model):
    """
    Per-user, per-rule delivery switches.

    A missing row means both channels are on. ``in_app_enabled`` hides the
    rule's alerts from the inbox; ``email_enabled`` stops the email. The
    alert row itself is always written so deduplication keeps working.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notification_preferences",
    )
    rule = models.ForeignKey(
        AlertRule,
        on_delete=models.CASCADE,
        related_name="notification_preferences",
        db_column="alert_rule_id",
    )
    in_app_enabled = models.BooleanField(default=True)
    email_enabled = models.BooleanField(default=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "user_notification_preferences"
        constraints = [
            models.UniqueConstraint(
                fields=["user", "rule"],
                name="uniq_notification_pref_user_rule",
            ),
        ]

    def __str__(self):
        return f"{self.user_id}/{self.rule_id} in_app={self.in_app_enabled} email={self.email_enabled}"
