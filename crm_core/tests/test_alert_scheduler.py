# crm_core/tests/test_alert_scheduler.py
from __future__ import annotations

from datetime import timedelta

import pytest
from django.core import mail

from crm_core.alerts.processor import process_rule
from crm_core.alerts.rules import RULE_HANDLERS, RuleHandler
from crm_core.alerts.scheduler import run_alert_generator
from crm_core.alerts.writer import BUSINESS_POLICY, AlertWriter
from crm_core.models import Alert, AlertRule, Lead, NotificationPreference, Opportunity


@pytest.fixture
def acme_scenario(rule_factory, admin_user, sales_user, lead_factory, now):
    rule = rule_factory("lead-uncontacted", threshold=5, visibility="both")
    lead = lead_factory(nome="Acme", responsavel=sales_user, created_at=now - timedelta(days=6))
    return rule, lead


# ---------------------------------------------------------------------
# End-to-end pass
# ---------------------------------------------------------------------

@pytest.mark.django_db
def test_uncontacted_lead_alerts_owner_and_admin(acme_scenario, admin_user, sales_user, now):
    rule, lead = acme_scenario

    issues = process_rule(rule, now=now)
    assert [i.title for i in issues] == ['Lead "Acme" não contatado']

    summary = run_alert_generator(now=now)

    assert summary.rules_evaluated == 1
    assert summary.issues_found == 1
    assert summary.alerts_created == 2

    alerts = Alert.objects.order_by("user_id")
    assert {a.user_id for a in alerts} == {admin_user.id, sales_user.id}
    for alert in alerts:
        assert alert.rule_id == "lead-uncontacted"
        assert alert.title == 'Lead "Acme" não contatado'
        assert alert.link == f"/admin/leads/{lead.id}"
        assert alert.is_read is False
        assert alert.archived is False


@pytest.mark.django_db
def test_repeated_runs_are_idempotent_inside_window(acme_scenario, now):
    run_alert_generator(now=now)
    second = run_alert_generator(now=now + timedelta(minutes=30))

    assert second.issues_found == 1
    assert second.alerts_created == 0
    assert Alert.objects.count() == 2


@pytest.mark.django_db
def test_alert_is_reissued_after_lookback(acme_scenario, now):
    run_alert_generator(now=now)
    later = run_alert_generator(now=now + timedelta(hours=73))

    assert later.alerts_created == 2
    assert Alert.objects.count() == 4


@pytest.mark.django_db
def test_disabled_rules_are_not_evaluated(acme_scenario, now):
    AlertRule.objects.update(enabled=False)

    summary = run_alert_generator(now=now)

    assert summary.rules_evaluated == 0
    assert Alert.objects.count() == 0


@pytest.mark.django_db
def test_security_rules_are_excluded_from_business_run(acme_scenario, rule_factory, now):
    rule_factory("security-new-ip", module="Segurança", visibility="admin")

    summary = run_alert_generator(now=now)

    assert summary.rules_evaluated == 1
    assert not Alert.objects.filter(rule_id="security-new-ip").exists()


@pytest.mark.django_db
def test_rule_with_unknown_id_is_skipped(acme_scenario, rule_factory, now):
    rule_factory("goal-missed", module="Metas")

    summary = run_alert_generator(now=now)

    assert summary.rules_evaluated == 2
    assert summary.alerts_created == 2


@pytest.mark.django_db
def test_failing_rule_does_not_stop_other_rules(
    rule_factory, lead_factory, sales_user, now, monkeypatch
):
    # Evaluated in id order: the failing rule sits between two productive ones.
    rule_factory("lead-stale-followup", threshold=3, visibility="responsible")
    rule_factory("lead-uncontacted", threshold=2, visibility="responsible")
    rule_factory("opp-stagnant-stage", module="Oportunidades", threshold=7, visibility="responsible")

    lead_factory(
        nome="Idle",
        status=Lead.Status.SEM_RESPOSTA,
        responsavel=sales_user,
        updated_at=now - timedelta(days=4),
    )
    Opportunity.objects.create(
        titulo="ERP Rollout",
        stage="Proposta",
        responsavel=sales_user,
        stage_changed_at=now - timedelta(days=8),
    )

    def failing_query(**kwargs):
        raise RuntimeError("boom")

    monkeypatch.setitem(
        RULE_HANDLERS,
        "lead-uncontacted",
        RuleHandler(
            query=failing_query,
            build_params=lambda rule: {},
            map_row=lambda row, params: None,
        ),
    )

    summary = run_alert_generator(now=now)

    assert summary.rules_evaluated == 3
    assert summary.alerts_created == 2
    assert set(Alert.objects.values_list("rule_id", flat=True)) == {
        "lead-stale-followup",
        "opp-stagnant-stage",
    }


@pytest.mark.django_db
def test_responsible_visibility_without_owner_writes_nothing(rule_factory, lead_factory, now):
    rule_factory("lead-uncontacted", threshold=2, visibility="responsible")
    lead_factory(nome="Orphan", responsavel=None, created_at=now - timedelta(days=3))

    summary = run_alert_generator(now=now)

    assert summary.issues_found == 1
    assert summary.alerts_created == 0


@pytest.mark.django_db
def test_admin_who_owns_the_lead_gets_one_alert(rule_factory, lead_factory, admin_user, now):
    rule_factory("lead-uncontacted", threshold=2, visibility="both")
    lead_factory(nome="Own", responsavel=admin_user, created_at=now - timedelta(days=3))

    summary = run_alert_generator(now=now)

    assert summary.alerts_created == 1
    assert Alert.objects.get().user_id == admin_user.id


# ---------------------------------------------------------------------
# Email fan-out
# ---------------------------------------------------------------------

@pytest.mark.django_db
def test_emails_only_new_alerts_when_enabled(acme_scenario, settings, now):
    settings.ALERT_EMAIL_NOTIFICATIONS = True
    settings.ALERTS_APP_BASE_URL = "https://crm.example.com"

    first = run_alert_generator(now=now)
    second = run_alert_generator(now=now + timedelta(minutes=5))

    assert first.emails_sent == 2
    assert second.emails_sent == 0
    assert len(mail.outbox) == 2

    message = mail.outbox[0]
    assert message.subject == 'Alerta Nexor: Lead "Acme" não contatado'
    assert "https://crm.example.com/admin/leads/" in message.body


@pytest.mark.django_db
def test_emails_are_skipped_when_disabled(acme_scenario, now):
    summary = run_alert_generator(now=now)

    assert summary.emails_sent == 0
    assert mail.outbox == []


@pytest.mark.django_db
def test_notify_false_suppresses_emails(acme_scenario, settings, now):
    settings.ALERT_EMAIL_NOTIFICATIONS = True

    summary = run_alert_generator(now=now, notify=False)

    assert summary.alerts_created == 2
    assert summary.emails_sent == 0
    assert mail.outbox == []


@pytest.mark.django_db
def test_reused_writer_only_emails_its_latest_run(acme_scenario, settings, now):
    settings.ALERT_EMAIL_NOTIFICATIONS = True
    writer = AlertWriter(BUSINESS_POLICY)

    first = run_alert_generator(now=now, writer=writer)
    second = run_alert_generator(now=now + timedelta(minutes=5), writer=writer)

    assert first.emails_sent == 2
    assert second.alerts_created == 0
    assert second.emails_sent == 0
    assert writer.created == []
    assert len(mail.outbox) == 2


@pytest.mark.django_db
def test_recipient_who_muted_email_gets_alert_but_no_email(
    acme_scenario, settings, admin_user, sales_user, now
):
    settings.ALERT_EMAIL_NOTIFICATIONS = True
    rule, _ = acme_scenario
    NotificationPreference.objects.create(user=sales_user, rule=rule, email_enabled=False)

    summary = run_alert_generator(now=now)

    assert summary.alerts_created == 2
    assert summary.emails_sent == 1
    assert [m.to for m in mail.outbox] == [[admin_user.email]]
    assert Alert.objects.filter(user=sales_user).count() == 1


@pytest.mark.django_db
def test_in_app_mute_still_writes_the_alert_row(acme_scenario, sales_user, now):
    rule, _ = acme_scenario
    NotificationPreference.objects.create(user=sales_user, rule=rule, in_app_enabled=False)

    first = run_alert_generator(now=now)
    second = run_alert_generator(now=now + timedelta(minutes=5))

    assert first.alerts_created == 2
    assert second.alerts_created == 0


@pytest.mark.django_db
def test_lead_name_filling_the_column_still_raises_alerts(
    rule_factory, lead_factory, sales_user, now
):
    rule_factory("lead-uncontacted", threshold=2, visibility="responsible")
    lead_factory(nome="A" * 255, responsavel=sales_user, created_at=now - timedelta(days=3))

    summary = run_alert_generator(now=now)

    assert summary.issues_found == 1
    assert summary.alerts_created == 1
    alert = Alert.objects.get()
    assert len(alert.title) <= 255
    assert alert.title.startswith('Lead "AAAA')
