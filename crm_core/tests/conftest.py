# crm_core/tests/conftest.py

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Any, Callable, Optional

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from crm_core.models import ActiveSession, AlertRule, Lead, Profile


def _rand(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# Fixed clock: Tuesday 2026-03-10 15:00 UTC (12:00 in São Paulo).
FIXED_NOW = datetime(2026, 3, 10, 15, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def user_factory(db) -> Callable[..., Any]:
    """
    Users with an optional CRM profile.
    """
    User = get_user_model()

    def _factory(
        *,
        username: Optional[str] = None,
        email: str = "",
        role: Optional[str] = Profile.Role.USER,
        full_name: str = "",
        **extra: Any,
    ):
        user = User.objects.create_user(
            username=username or _rand("user"),
            password="pass123",
            email=email,
            **extra,
        )
        if role:
            Profile.objects.create(user=user, role=role, full_name=full_name)
        return user

    return _factory


@pytest.fixture
def admin_user(user_factory):
    return user_factory(username="admin-a1", role=Profile.Role.ADMIN, email="a1@example.com")


@pytest.fixture
def sales_user(user_factory):
    return user_factory(username="seller-u1", role=Profile.Role.USER, email="u1@example.com")


@pytest.fixture
def rule_factory(db) -> Callable[..., AlertRule]:
    def _factory(
        rule_id: str,
        *,
        module: str = AlertRule.Module.LEADS,
        threshold=None,
        visibility: str = AlertRule.Visibility.BOTH,
        enabled: bool = True,
        **extra: Any,
    ) -> AlertRule:
        return AlertRule.objects.create(
            id=rule_id,
            module=module,
            name=extra.pop("name", rule_id),
            threshold=threshold,
            visibility=visibility,
            enabled=enabled,
            **extra,
        )

    return _factory


@pytest.fixture
def lead_factory(db) -> Callable[..., Lead]:
    """
    Leads with controllable timestamps.

    created_at / updated_at are auto fields; Django ignores passed values,
    so rewrite them with a queryset update after creation.
    """

    def _factory(
        *,
        nome: Optional[str] = None,
        status: str = Lead.Status.NAO_CONTATADO,
        responsavel=None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
        **extra: Any,
    ) -> Lead:
        lead = Lead.objects.create(
            nome=nome or _rand("Lead"),
            status=status,
            responsavel=responsavel,
            **extra,
        )
        stamps = {}
        if created_at is not None:
            stamps["created_at"] = created_at
        if updated_at is not None:
            stamps["updated_at"] = updated_at
        if stamps:
            Lead.objects.filter(pk=lead.pk).update(**stamps)
            lead.refresh_from_db()
        return lead

    return _factory


@pytest.fixture
def session_factory(db) -> Callable[..., ActiveSession]:
    def _factory(
        *,
        user,
        ip_address: str = "10.0.0.1",
        user_agent: str = "Mozilla/5.0 (X11; Linux x86_64) Firefox/124.0",
        last_seen_at: datetime,
        revoked_at: Optional[datetime] = None,
    ) -> ActiveSession:
        return ActiveSession.objects.create(
            user=user,
            ip_address=ip_address,
            user_agent=user_agent,
            last_seen_at=last_seen_at,
            revoked_at=revoked_at,
        )

    return _factory


def days_ago(now: datetime, days: float) -> datetime:
    return now - timedelta(days=days)
