# crm_core/admin.py

from django.contrib import admin
from django.utils.html import format_html

from .models import (
    ActiveSession,
    Alert,
    AlertRule,
    Company,
    Contract,
    Lead,
    NotificationPreference,
    Opportunity,
    Profile,
    Receivable,
    Ticket,
)


# =============================================================
# Alert rules (editable by administrators)
# =============================================================

@admin.register(AlertRule)
class AlertRuleAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "module",
        "name",
        "enabled",
        "threshold",
        "severity",
        "visibility",
    )
    list_filter = ("module", "enabled", "severity", "visibility")
    list_editable = ("enabled", "threshold", "visibility")
    search_fields = ("id", "name")
    ordering = ("module", "id")


# =============================================================
# Alerts (READ-ONLY: created by the alert engine)
# =============================================================

@admin.register(Alert)
class AlertAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "rule",
        "user",
        "status_badge",
        "created_at",
        "snoozed_until",
    )
    list_filter = ("rule__module", "rule", "is_read", "archived")
    search_fields = ("title", "description", "user__username")
    ordering = ("-created_at",)

    readonly_fields = [f.name for f in Alert._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def status_badge(self, obj):
        if obj.archived:
            return format_html('<span style="color:#757575;">ARCHIVED</span>')
        if obj.is_read:
            return format_html('<span style="color:#2e7d32;">READ</span>')
        return format_html(
            '<span style="color:#ed6c02;font-weight:bold;">UNREAD</span>'
        )

    status_badge.short_description = "Status"


@admin.register(NotificationPreference)
class NotificationPreferenceAdmin(admin.ModelAdmin):
    list_display = ("user", "rule", "in_app_enabled", "email_enabled", "updated_at")
    list_filter = ("rule__module", "in_app_enabled", "email_enabled")
    search_fields = ("user__username", "rule__id")


# =============================================================
# CRM entities
# =============================================================

@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "full_name", "role", "active")
    list_filter = ("role", "active")
    search_fields = ("full_name", "user__username", "user__email")


@admin.register(Lead)
class LeadAdmin(admin.ModelAdmin):
    list_display = ("nome", "empresa", "status", "responsavel", "proximo_followup", "updated_at")
    list_filter = ("status",)
    search_fields = ("nome", "empresa", "email")


@admin.register(Opportunity)
class OpportunityAdmin(admin.ModelAdmin):
    list_display = ("titulo", "stage", "status", "valor_estimado", "responsavel", "stage_changed_at")
    list_filter = ("status", "stage")
    search_fields = ("titulo",)


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ("title", "priority", "status", "owner", "updated_at")
    list_filter = ("priority", "status")
    search_fields = ("title",)


@admin.register(Receivable)
class ReceivableAdmin(admin.ModelAdmin):
    list_display = ("contract", "installment_number", "amount", "due_date", "status")
    list_filter = ("status",)


@admin.register(ActiveSession)
class ActiveSessionAdmin(admin.ModelAdmin):
    list_display = ("user", "ip_address", "last_seen_at", "revoked_at")
    list_filter = ("revoked_at",)
    search_fields = ("user__username", "ip_address")
    readonly_fields = [f.name for f in ActiveSession._meta.fields]

    def has_add_permission(self, request):
        return False


admin.site.register(Company)
admin.site.register(Contract)
