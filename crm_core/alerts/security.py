# crm_core/alerts/security.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Set
from zoneinfo import ZoneInfo

from django.conf import settings
from django.db.models import F
from django.utils import timezone

from crm_core.alerts.issues import Issue
from crm_core.alerts.rules import rule_threshold
from crm_core.models import ActiveSession

logger = logging.getLogger(__name__)

"""
Security monitor rule set.

Same Rule -> Issue contract as the business processor, evaluated over
session telemetry instead of CRM entities. Activity is collected once per
run and shared by every security rule.
"""

SESSION_LOOKBACK = timedelta(hours=24)
SESSIONS_LINK = "/admin/settings?tab=sessions"
BUSINESS_DAY_END_HOUR = 20


@dataclass
class UserSessionActivity:
    user_id: int
    user_name: str
    recent_seen_at: List[datetime] = field(default_factory=list)
    recent_ips: List[str] = field(default_factory=list)
    recent_agents: List[str] = field(default_factory=list)
    historical_ips: Set[str] = field(default_factory=set)
    historical_agents: Set[str] = field(default_factory=set)


def _append_unique(values: List[str], value) -> None:
    if value and value not in values:
        values.append(value)


def collect_session_activity(*, now=None) -> List[UserSessionActivity]:
    """
    Group non-revoked sessions seen in the last 24h by user and attach
    each user's history (sessions last seen before that window).
    """
    now = now or timezone.now()
    window_start = now - SESSION_LOOKBACK

    recent = (
        ActiveSession.objects.filter(
            last_seen_at__gte=window_start,
            revoked_at__isnull=True,
        )
        .order_by("user_id", "last_seen_at", "id")
        .values(
            "user_id",
            "ip_address",
            "user_agent",
            "last_seen_at",
            full_name=F("user__profile__full_name"),
            username=F("user__username"),
        )
    )

    by_user: Dict[int, UserSessionActivity] = {}
    for row in recent:
        activity = by_user.get(row["user_id"])
        if activity is None:
            activity = UserSessionActivity(
                user_id=row["user_id"],
                user_name=row["full_name"] or row["username"] or str(row["user_id"]),
            )
            by_user[row["user_id"]] = activity

        activity.recent_seen_at.append(row["last_seen_at"])
        _append_unique(activity.recent_ips, row["ip_address"])
        _append_unique(activity.recent_agents, row["user_agent"])

    for activity in by_user.values():
        history = ActiveSession.objects.filter(
            user_id=activity.user_id,
            last_seen_at__lt=window_start,
        ).values_list("ip_address", "user_agent")
        for ip, agent in history:
            if ip:
                activity.historical_ips.add(ip)
            if agent:
                activity.historical_agents.add(agent)

    return list(by_user.values())


# ===============================================================
# Rule evaluators
# ===============================================================

def _local_tz():
    return ZoneInfo(getattr(settings, "ALERTS_LOCAL_TIMEZONE", "America/Sao_Paulo"))


def _new_ip(rule, activity: UserSessionActivity) -> List[Issue]:
    name = activity.user_name
    return [
        Issue(
            title=f"Novo IP para {name}",
            description=f"O usuário {name} acessou de um novo IP: {ip}.",
            link=SESSIONS_LINK,
            responsible_id=activity.user_id,
        )
        for ip in activity.recent_ips
        if ip not in activity.historical_ips
    ]


def _new_device(rule, activity: UserSessionActivity) -> List[Issue]:
    name = activity.user_name
    return [
        Issue(
            title=f"Novo dispositivo para {name}",
            description=f"O usuário {name} acessou de um novo dispositivo: {agent}.",
            link=SESSIONS_LINK,
            responsible_id=activity.user_id,
        )
        for agent in activity.recent_agents
        if agent not in activity.historical_agents
    ]


def _rapid_ip_change(rule, activity: UserSessionActivity) -> List[Issue]:
    limit = rule_threshold(rule, 2)
    count = len(activity.recent_ips)
    if count <= limit:
        return []
    name = activity.user_name
    return [
        Issue(
            title=f"Múltiplos IPs para {name}",
            description=f"O usuário {name} acessou de {count} IPs diferentes nas últimas 24h.",
            link=SESSIONS_LINK,
            responsible_id=activity.user_id,
        )
    ]


def _off_hours(rule, activity: UserSessionActivity) -> List[Issue]:
    start_hour = int(rule_threshold(rule, 8))
    tz = _local_tz()
    for seen_at in activity.recent_seen_at:
        local = timezone.localtime(seen_at, tz)
        if local.hour < start_hour or local.hour >= BUSINESS_DAY_END_HOUR:
            name = activity.user_name
            # One alert per user per run: the first off-hours session wins.
            return [
                Issue(
                    title=f"Acesso fora de hora por {name}",
                    description=(
                        f"O usuário {name} acessou o sistema às "
                        f"{local.strftime('%H:%M:%S')}."
                    ),
                    link=SESSIONS_LINK,
                    responsible_id=activity.user_id,
                )
            ]
    return []


SecurityEvaluator = Callable[[object, UserSessionActivity], List[Issue]]

SECURITY_HANDLERS: Dict[str, SecurityEvaluator] = {
    "security-new-ip": _new_ip,
    "security-new-device": _new_device,
    "security-rapid-ip-change": _rapid_ip_change,
    "security-off-hours": _off_hours,
}


def process_security_rule(
    rule,
    activities: List[UserSessionActivity],
    *,
    handlers: Optional[Dict[str, SecurityEvaluator]] = None,
) -> List[Issue]:
    """
    Evaluate one security rule against every user's session activity.
    Unknown rule ids and evaluator failures yield [].
    """
    table = SECURITY_HANDLERS if handlers is None else handlers
    evaluate = table.get(rule.id)
    if evaluate is None:
        logger.debug("No security evaluator for rule %s; skipping.", rule.id)
        return []

    issues: List[Issue] = []
    try:
        for activity in activities:
            issues.extend(evaluate(rule, activity))
    except Exception:
        logger.exception("Security rule %s failed.", rule.id)
        return []
    return issues
