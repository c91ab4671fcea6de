# crm_core/alerts/scheduler.py
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Callable, Iterable, List, Optional

from django.utils import timezone

from crm_core.alerts.issues import Issue
from crm_core.alerts.notifications import notify_created_alerts
from crm_core.alerts.processor import process_rule
from crm_core.alerts.rules import SECURITY_MODULE
from crm_core.alerts.security import collect_session_activity, process_security_rule
from crm_core.alerts.visibility import resolve_targets
from crm_core.alerts.writer import BUSINESS_POLICY, SECURITY_POLICY, AlertWriter
from crm_core.models import AlertRule, Profile

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    job: str
    rules_evaluated: int = 0
    issues_found: int = 0
    alerts_created: int = 0
    emails_sent: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


# ===============================================================
# Snapshots loaded once per run
# ===============================================================

def load_business_rules() -> List[AlertRule]:
    return list(
        AlertRule.objects.filter(enabled=True)
        .exclude(module=SECURITY_MODULE)
        .order_by("id")
    )


def load_security_rules() -> List[AlertRule]:
    return list(
        AlertRule.objects.filter(enabled=True, module=SECURITY_MODULE).order_by("id")
    )


def load_admin_ids() -> List[int]:
    return list(
        Profile.objects.filter(role=Profile.Role.ADMIN)
        .order_by("user_id")
        .values_list("user_id", flat=True)
    )


# ===============================================================
# Shared pass
# ===============================================================

def run_pass(
    *,
    job: str,
    rules: Iterable[AlertRule],
    evaluate: Callable[[AlertRule], List[Issue]],
    admin_ids: List[int],
    writer: AlertWriter,
    now,
) -> RunSummary:
    """
    Rule -> Issues -> targets -> dedup write, strictly sequential.

    Per-rule and per-alert failures are contained by ``evaluate`` and the
    writer; anything escaping here aborts the pass without rollback.
    """
    summary = RunSummary(job=job)
    # Only this pass's alerts are emailed, even for a reused writer.
    writer.created.clear()

    for rule in rules:
        summary.rules_evaluated += 1
        issues = evaluate(rule)
        summary.issues_found += len(issues)

        for issue in issues:
            targets = resolve_targets(rule, issue, admin_ids)
            if not targets:
                continue

            for user_id in sorted(targets):
                if writer.create_alert_if_not_exists(
                    rule.id,
                    user_id,
                    issue.title,
                    issue.description,
                    issue.link,
                    now=now,
                ):
                    summary.alerts_created += 1

    return summary


def _finish(summary: RunSummary, writer: AlertWriter, notify: Optional[bool]) -> RunSummary:
    if notify is None or notify:
        summary.emails_sent = notify_created_alerts(writer.created)

    logger.info(
        "[%s] %d rules evaluated, %d issues found, %d alerts created, %d emails sent.",
        summary.job,
        summary.rules_evaluated,
        summary.issues_found,
        summary.alerts_created,
        summary.emails_sent,
    )
    return summary


# ===============================================================
# Entrypoints
# ===============================================================

def run_alert_generator(
    *,
    now=None,
    writer: Optional[AlertWriter] = None,
    notify: Optional[bool] = None,
) -> RunSummary:
    """
    One evaluation pass over every enabled non-security rule.

    Failing to load rules or the admin roster raises to the caller.
    """
    now = now or timezone.now()
    writer = writer or AlertWriter(BUSINESS_POLICY)

    logger.info("[alert-generator] Starting alert evaluation.")
    rules = load_business_rules()
    admin_ids = load_admin_ids()

    summary = run_pass(
        job="alert-generator",
        rules=rules,
        evaluate=lambda rule: process_rule(rule, now=now),
        admin_ids=admin_ids,
        writer=writer,
        now=now,
    )
    return _finish(summary, writer, notify)


def run_security_monitor(
    *,
    now=None,
    writer: Optional[AlertWriter] = None,
    notify: Optional[bool] = None,
) -> RunSummary:
    """
    One evaluation pass of the security rules over recent session telemetry.
    """
    now = now or timezone.now()
    writer = writer or AlertWriter(SECURITY_POLICY)

    logger.info("[security-monitor] Starting security check.")
    rules = load_security_rules()
    admin_ids = load_admin_ids()
    activities = collect_session_activity(now=now) if rules else []

    summary = run_pass(
        job="security-monitor",
        rules=rules,
        evaluate=lambda rule: process_security_rule(rule, activities),
        admin_ids=admin_ids,
        writer=writer,
        now=now,
    )
    return _finish(summary, writer, notify)
