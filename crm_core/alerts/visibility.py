# crm_core/alerts/visibility.py
from __future__ import annotations

from typing import Iterable, Set

from crm_core.alerts.issues import Issue

RESPONSIBLE = "responsible"
ADMIN = "admin"
BOTH = "both"


def resolve_targets(rule, issue: Issue, admin_ids: Iterable) -> Set:
    """
    Users that must receive ``issue`` under ``rule.visibility``.

    responsible -> the issue's responsible party (if any)
    admin       -> every admin in the roster
    both        -> union of the two; an admin who is also responsible
                   appears once
    """
    visibility = (getattr(rule, "visibility", "") or "").strip().lower()
    targets: Set = set()

    if visibility in (RESPONSIBLE, BOTH) and issue.responsible_id is not None:
        targets.add(issue.responsible_id)

    if visibility in (ADMIN, BOTH):
        targets.update(admin_ids)

    return targets
