# crm_core/tests/test_alert_commands.py
from __future__ import annotations

from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError
from django.utils import timezone

from crm_core import tasks
from crm_core.alerts.rules import DEFAULT_ALERT_RULES
from crm_core.checks.alert_engine import check_alert_engine_config
from crm_core.models import Alert, AlertRule


def _run(*args, **kwargs) -> str:
    out = StringIO()
    call_command(*args, stdout=out, **kwargs)
    return out.getvalue()


# ---------------------------------------------------------------------
# seed_alert_rules
# ---------------------------------------------------------------------

@pytest.mark.django_db
def test_seed_creates_default_rules_once():
    first = _run("seed_alert_rules")
    second = _run("seed_alert_rules")

    assert AlertRule.objects.count() == len(DEFAULT_ALERT_RULES)
    assert f"created={len(DEFAULT_ALERT_RULES)}" in first
    assert "created=0 updated=0" in second
    assert AlertRule.objects.filter(module="Segurança").count() == 4


@pytest.mark.django_db
def test_seed_keeps_admin_edits_unless_reset():
    _run("seed_alert_rules")
    AlertRule.objects.filter(id="lead-uncontacted").update(threshold=9, enabled=False)

    _run("seed_alert_rules")
    kept = AlertRule.objects.get(id="lead-uncontacted")
    assert kept.threshold == 9
    assert kept.enabled is False

    _run("seed_alert_rules", "--reset")
    reset = AlertRule.objects.get(id="lead-uncontacted")
    assert reset.threshold == 2
    assert reset.enabled is True


# ---------------------------------------------------------------------
# generate_alerts
# ---------------------------------------------------------------------

@pytest.mark.django_db
def test_generate_alerts_prints_summary(rule_factory, lead_factory, admin_user):
    rule_factory("lead-uncontacted", threshold=2, visibility="admin")
    lead_factory(nome="Acme", created_at=timezone.now() - timedelta(days=3))

    output = _run("generate_alerts", "--no-email")

    assert "alert-generator: rules=1 issues=1 created=1 emails=0" in output
    assert Alert.objects.count() == 1


@pytest.mark.django_db
def test_generate_alerts_all_runs_both_jobs():
    output = _run("generate_alerts", "--all")

    assert "alert-generator:" in output
    assert "security-monitor:" in output


@pytest.mark.django_db
def test_generate_alerts_raises_command_error_on_failure(monkeypatch):
    def explode(**kwargs):
        raise RuntimeError("db down")

    monkeypatch.setattr(
        "crm_core.management.commands.generate_alerts.run_security_monitor", explode
    )

    with pytest.raises(CommandError, match="db down"):
        _run("generate_alerts", "--security")


# ---------------------------------------------------------------------
# Celery tasks
# ---------------------------------------------------------------------

@pytest.mark.django_db
def test_tasks_return_summary_dicts():
    business = tasks.generate_alerts.delay().get()
    security = tasks.run_security_monitor.delay().get()

    assert business["job"] == "alert-generator"
    assert security["job"] == "security-monitor"
    assert set(business) == {
        "job",
        "rules_evaluated",
        "issues_found",
        "alerts_created",
        "emails_sent",
    }


# ---------------------------------------------------------------------
# Configuration check
# ---------------------------------------------------------------------

def test_config_check_passes_with_token(settings):
    settings.ALERTS_SERVICE_TOKEN = "x"
    assert check_alert_engine_config(None) == []


def test_config_check_flags_missing_token(settings):
    settings.ALERTS_SERVICE_TOKEN = ""
    ids = [e.id for e in check_alert_engine_config(None)]
    assert ids == ["crm_core.E002"]


def test_config_check_flags_missing_postgres_host(settings):
    settings.DATABASES = {
        "default": {"ENGINE": "django.db.backends.postgresql", "NAME": "nexor", "HOST": ""}
    }
    ids = [e.id for e in check_alert_engine_config(None)]
    assert "crm_core.E001" in ids
