# crm_core/tests/test_security_monitor.py
from __future__ import annotations

from datetime import timedelta

import pytest

from crm_core.alerts.scheduler import run_security_monitor
from crm_core.alerts.security import collect_session_activity, process_security_rule
from crm_core.models import Alert

SECURITY = "Segurança"


@pytest.fixture
def ana(user_factory):
    return user_factory(username="ana", full_name="Ana Souza")


def _security_rule(rule_factory, rule_id, **kwargs):
    kwargs.setdefault("visibility", "admin")
    return rule_factory(rule_id, module=SECURITY, **kwargs)


# ---------------------------------------------------------------------
# Activity collection
# ---------------------------------------------------------------------

@pytest.mark.django_db
def test_activity_splits_recent_and_historical_sessions(ana, session_factory, now):
    session_factory(user=ana, ip_address="10.0.0.1", last_seen_at=now - timedelta(days=3))
    session_factory(user=ana, ip_address="10.0.0.2", last_seen_at=now - timedelta(hours=1))
    session_factory(
        user=ana,
        ip_address="10.0.0.3",
        last_seen_at=now - timedelta(hours=2),
        revoked_at=now - timedelta(hours=1),
    )

    (activity,) = collect_session_activity(now=now)

    assert activity.user_id == ana.id
    assert activity.user_name == "Ana Souza"
    assert activity.recent_ips == ["10.0.0.2"]
    assert activity.historical_ips == {"10.0.0.1"}


@pytest.mark.django_db
def test_user_without_profile_is_named_by_username(user_factory, session_factory, now):
    bob = user_factory(username="bob", role=None)
    session_factory(user=bob, last_seen_at=now - timedelta(hours=1))

    (activity,) = collect_session_activity(now=now)

    assert activity.user_name == "bob"


# ---------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------

@pytest.mark.django_db
def test_new_ip_alerts_admins(ana, admin_user, rule_factory, session_factory, now):
    _security_rule(rule_factory, "security-new-ip")
    session_factory(user=ana, ip_address="10.0.0.1", last_seen_at=now - timedelta(days=3))
    session_factory(user=ana, ip_address="10.0.0.9", last_seen_at=now - timedelta(hours=1))

    summary = run_security_monitor(now=now)

    assert summary.issues_found == 1
    alert = Alert.objects.get()
    assert alert.user_id == admin_user.id
    assert alert.rule_id == "security-new-ip"
    assert alert.description == "O usuário Ana Souza acessou de um novo IP: 10.0.0.9."
    assert alert.link == "/admin/settings?tab=sessions"


@pytest.mark.django_db
def test_known_ip_and_device_are_quiet(ana, admin_user, rule_factory, session_factory, now):
    _security_rule(rule_factory, "security-new-ip")
    _security_rule(rule_factory, "security-new-device")
    session_factory(user=ana, ip_address="10.0.0.1", last_seen_at=now - timedelta(days=3))
    session_factory(user=ana, ip_address="10.0.0.1", last_seen_at=now - timedelta(hours=1))

    summary = run_security_monitor(now=now)

    assert summary.rules_evaluated == 2
    assert summary.issues_found == 0
    assert Alert.objects.count() == 0


@pytest.mark.django_db
def test_new_device_mentions_user_agent(ana, admin_user, rule_factory, session_factory, now):
    _security_rule(rule_factory, "security-new-device")
    session_factory(user=ana, user_agent="OldBrowser/1.0", last_seen_at=now - timedelta(days=2))
    session_factory(user=ana, user_agent="NewBrowser/2.0", last_seen_at=now - timedelta(hours=3))

    run_security_monitor(now=now)

    alert = Alert.objects.get()
    assert "NewBrowser/2.0" in alert.description


@pytest.mark.django_db
def test_rapid_ip_change_fires_above_threshold(ana, admin_user, rule_factory, session_factory, now):
    _security_rule(rule_factory, "security-rapid-ip-change", threshold=2)
    for i, ip in enumerate(["10.0.0.1", "10.0.0.2", "10.0.0.3"]):
        session_factory(user=ana, ip_address=ip, last_seen_at=now - timedelta(hours=i + 1))

    run_security_monitor(now=now)

    alert = Alert.objects.get()
    assert alert.description == "O usuário Ana Souza acessou de 3 IPs diferentes nas últimas 24h."


@pytest.mark.django_db
def test_rapid_ip_change_quiet_at_threshold(ana, admin_user, rule_factory, session_factory, now):
    _security_rule(rule_factory, "security-rapid-ip-change", threshold=2)
    session_factory(user=ana, ip_address="10.0.0.1", last_seen_at=now - timedelta(hours=1))
    session_factory(user=ana, ip_address="10.0.0.2", last_seen_at=now - timedelta(hours=2))

    run_security_monitor(now=now)

    assert Alert.objects.count() == 0


@pytest.mark.django_db
def test_off_hours_uses_local_clock(ana, admin_user, rule_factory, session_factory, now, settings):
    settings.ALERTS_LOCAL_TIMEZONE = "America/Sao_Paulo"
    _security_rule(rule_factory, "security-off-hours", threshold=8)
    # Earliest session wins: 04:00 UTC is 01:00 in São Paulo.
    session_factory(user=ana, last_seen_at=now.replace(hour=5, minute=30))
    session_factory(user=ana, last_seen_at=now.replace(hour=4, minute=0))

    run_security_monitor(now=now)

    alert = Alert.objects.get()
    assert alert.description == "O usuário Ana Souza acessou o sistema às 01:00:00."


@pytest.mark.django_db
def test_business_hours_access_is_quiet(ana, admin_user, rule_factory, session_factory, now):
    _security_rule(rule_factory, "security-off-hours", threshold=8)
    session_factory(user=ana, last_seen_at=now - timedelta(hours=1))

    run_security_monitor(now=now)

    assert Alert.objects.count() == 0


# ---------------------------------------------------------------------
# Run behaviour
# ---------------------------------------------------------------------

@pytest.mark.django_db
def test_security_dedup_window_is_24_hours(ana, admin_user, rule_factory, session_factory, now):
    _security_rule(rule_factory, "security-new-ip")
    session_factory(user=ana, ip_address="10.0.0.1", last_seen_at=now - timedelta(days=3))
    session_factory(user=ana, ip_address="10.0.0.9", last_seen_at=now - timedelta(hours=1))

    first = run_security_monitor(now=now)
    again = run_security_monitor(now=now + timedelta(minutes=15))

    assert first.alerts_created == 1
    assert again.alerts_created == 0


@pytest.mark.django_db
def test_business_rules_are_ignored_by_security_run(rule_factory, now):
    rule_factory("lead-uncontacted", threshold=1)

    summary = run_security_monitor(now=now)

    assert summary.rules_evaluated == 0
    assert Alert.objects.count() == 0


def test_failing_evaluator_yields_no_issues():
    class Rule:
        id = "security-new-ip"

    def broken(rule, activity):
        raise ValueError("bad row")

    issues = process_security_rule(Rule(), [object()], handlers={"security-new-ip": broken})

    assert issues == []
