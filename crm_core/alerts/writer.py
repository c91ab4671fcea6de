# crm_core/alerts/writer.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional

from django.db import DatabaseError, transaction
from django.utils import timezone
from django.utils.text import Truncator

from crm_core.models import Alert

logger = logging.getLogger(__name__)


# ===============================================================
# Dedup policies
# ===============================================================

DESCRIPTION_PREFIX_LENGTH = 100


def description_prefix(description: str) -> str:
    # Lossy on purpose: descriptions sharing 100 leading chars collapse.
    return (description or "")[:DESCRIPTION_PREFIX_LENGTH]


def full_description(description: str) -> str:
    return description or ""


def fit_title(title: str) -> str:
    # Entity names alone may fill the column.
    limit = Alert._meta.get_field("title").max_length
    return Truncator(title or "").chars(limit)


@dataclass(frozen=True)
class DedupPolicy:
    """
    How the writer decides an alert already exists.

    lookback    : only alerts created within this window suppress a new one
    fingerprint : reduces a description to the key that is compared
    lookup      : Django lookup applied to ``description`` with the key
    """

    name: str
    lookback: timedelta
    fingerprint: Callable[[str], str]
    lookup: str = "exact"


BUSINESS_POLICY = DedupPolicy(
    name="business",
    lookback=timedelta(hours=72),
    fingerprint=description_prefix,
    lookup="startswith",
)

SECURITY_POLICY = DedupPolicy(
    name="security",
    lookback=timedelta(hours=24),
    fingerprint=full_description,
    lookup="exact",
)


# ===============================================================
# Writer
# ===============================================================

class AlertWriter:
    """
    Sole write path for alert creation.

    Check-then-insert per (rule, user, fingerprint) inside one savepoint.
    No lock is taken: two concurrent runs can both insert, and the next run
    sees both rows and stays quiet.
    """

    def __init__(self, policy: DedupPolicy = BUSINESS_POLICY):
        self.policy = policy
        self.created = []

    def find_existing(self, rule_id: str, user_id, description: str, *, now=None) -> Optional[int]:
        now = now or timezone.now()
        key = self.policy.fingerprint(description)
        return (
            Alert.objects.filter(
                rule_id=rule_id,
                user_id=user_id,
                archived=False,
                created_at__gte=now - self.policy.lookback,
                **{f"description__{self.policy.lookup}": key},
            )
            .values_list("id", flat=True)
            .first()
        )

    def create_alert_if_not_exists(
        self,
        rule_id: str,
        user_id,
        title: str,
        description: str,
        link: str,
        *,
        now=None,
    ) -> bool:
        """
        Insert the alert unless a matching one is already live.

        Returns True when a row was inserted. Database errors are logged and
        reported as False so the caller can move on to the next alert.
        """
        now = now or timezone.now()
        title = fit_title(title)

        try:
            with transaction.atomic():
                existing = self.find_existing(rule_id, user_id, description, now=now)
                if existing is not None:
                    return False

                alert = Alert.objects.create(
                    user_id=user_id,
                    rule_id=rule_id,
                    title=title,
                    description=description,
                    link=link,
                    created_at=now,
                    is_read=False,
                    archived=False,
                    snoozed_until=None,
                )
        except DatabaseError as exc:
            logger.error(
                "Failed to write alert for rule %s / user %s (%s policy): %s",
                rule_id,
                user_id,
                self.policy.name,
                exc,
            )
            return False

        self.created.append(alert)
        logger.info("Alert created: %s (rule=%s, user=%s)", title, rule_id, user_id)
        return True


def create_alert_if_not_exists(
    rule_id: str,
    user_id,
    title: str,
    description: str,
    link: str,
    *,
    now=None,
    policy: DedupPolicy = BUSINESS_POLICY,
) -> bool:
    return AlertWriter(policy).create_alert_if_not_exists(
        rule_id, user_id, title, description, link, now=now
    )
