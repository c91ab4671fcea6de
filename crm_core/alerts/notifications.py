# crm_core/alerts/notifications.py
from __future__ import annotations

import logging
from typing import Iterable, Set, Tuple

from django.conf import settings
from django.core.mail import send_mail
from django.db import DatabaseError
from django.utils.html import escape

from crm_core.models import NotificationPreference

logger = logging.getLogger(__name__)


def emails_enabled() -> bool:
    return bool(getattr(settings, "ALERT_EMAIL_NOTIFICATIONS", False))


def build_alert_link(link: str) -> str:
    base = (getattr(settings, "ALERTS_APP_BASE_URL", "") or "").rstrip("/")
    return f"{base}{link}"


def format_email_body(title: str, description: str, link: str) -> str:
    full_link = build_alert_link(link)
    return "\n".join(
        [
            '<div style="font-family: sans-serif; padding: 20px; color: #333;">',
            '  <h2 style="color: #007bff;">Novo Alerta no Nexor</h2>',
            f'  <h3 style="font-size: 1.1em;">{escape(title)}</h3>',
            f"  <p>{escape(description)}</p>",
            f'  <a href="{escape(full_link)}" style="display: inline-block; padding: 10px 15px; '
            'background-color: #007bff; color: #fff; text-decoration: none; border-radius: 5px;">',
            "    Ver no Sistema",
            "  </a>",
            '  <p style="font-size: 0.8em; color: #888; margin-top: 20px;">'
            "Esta é uma notificação automática. Por favor, não responda a este email.</p>",
            "</div>",
        ]
    )


def send_alert_email(alert) -> bool:
    """
    Email one newly created alert to its recipient.

    Returns True if a message was handed to the mail backend.
    """
    recipient = getattr(alert.user, "email", "") or ""
    if not recipient:
        return False

    plain = f"{alert.title}\n\n{alert.description}\n\n{build_alert_link(alert.link)}"

    try:
        send_mail(
            subject=f"Alerta Nexor: {alert.title}",
            message=plain,
            from_email=getattr(settings, "DEFAULT_FROM_EMAIL", None),
            recipient_list=[recipient],
            html_message=format_email_body(alert.title, alert.description, alert.link),
        )
    except Exception:
        logger.exception("Failed to email alert %s to %s", alert.pk, recipient)
        return False

    return True


def email_muted_pairs(alerts) -> Set[Tuple[int, str]]:
    """
    (user_id, rule_id) pairs among ``alerts`` whose recipient turned email off.
    """
    user_ids = {a.user_id for a in alerts}
    rule_ids = {a.rule_id for a in alerts}
    if not user_ids:
        return set()
    return set(
        NotificationPreference.objects.filter(
            user_id__in=user_ids,
            rule_id__in=rule_ids,
            email_enabled=False,
        ).values_list("user_id", "rule_id")
    )


def notify_created_alerts(alerts: Iterable) -> int:
    """
    Email every alert in ``alerts`` unless the recipient muted email for its
    rule; never raises. Returns the count sent.
    """
    if not emails_enabled():
        return 0

    alerts = list(alerts)
    try:
        muted = email_muted_pairs(alerts)
    except DatabaseError:
        logger.exception("Could not load email preferences; no alert emails sent.")
        return 0

    sent = 0
    for alert in alerts:
        if (alert.user_id, alert.rule_id) in muted:
            continue
        if send_alert_email(alert):
            sent += 1
    return sent
