# crm_core/alerts/processor.py
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from django.utils import timezone

from crm_core.alerts.issues import Issue
from crm_core.alerts.rules import RULE_HANDLERS, RuleHandler

logger = logging.getLogger(__name__)


def process_rule(
    rule,
    *,
    handlers: Optional[Dict[str, RuleHandler]] = None,
    now=None,
) -> List[Issue]:
    """
    Translate one enabled rule into zero or more Issues.

    - unknown rule ids yield [] (skipped, not fatal)
    - query failures are logged and yield [] so one rule never aborts a run
    - row mapping is pure string interpolation
    """
    table = RULE_HANDLERS if handlers is None else handlers
    handler = table.get(rule.id)
    if handler is None:
        logger.debug("No handler registered for rule %s; skipping.", rule.id)
        return []

    now = now or timezone.now()
    params = handler.build_params(rule)

    try:
        rows = list(handler.query(now=now, **params))
    except Exception:
        logger.exception("Query failed for rule %s (params=%s).", rule.id, params)
        return []

    return [handler.map_row(row, params) for row in rows]
