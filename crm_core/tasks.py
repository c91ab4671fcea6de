# crm_core/tasks.py
from __future__ import annotations

from celery import shared_task

from crm_core.alerts.scheduler import run_alert_generator, run_security_monitor as _run_security_monitor


@shared_task
def generate_alerts() -> dict:
    return run_alert_generator().as_dict()


@shared_task
def run_security_monitor() -> dict:
    return _run_security_monitor().as_dict()
