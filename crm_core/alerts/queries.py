# crm_core/alerts/queries.py
from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.db.models import F, Q
from django.utils import timezone

from crm_core.models import Lead, Opportunity, Receivable, Ticket

"""
Issue query layer.

One parametrized read per rule kind. Every function:
- takes keyword parameters plus ``now`` (injected by the processor)
- returns plain row dicts, never model instances
- exposes the responsible party as ``responsavel_id``

Row mappers in crm_core.alerts.rules depend only on these row shapes.
"""

Row = Dict[str, Any]


def _now(now=None):
    return now or timezone.now()


# ===============================================================
# Leads
# ===============================================================

def query_uncontacted_leads(*, days_old: int, now=None) -> List[Row]:
    """
    Leads created more than ``days_old`` days ago still in "Não contatado".
    """
    cutoff = _now(now) - timedelta(days=days_old)
    return list(
        Lead.objects.filter(
            status=Lead.Status.NAO_CONTATADO,
            created_at__lte=cutoff,
        )
        .order_by("created_at", "id")
        .values("id", "nome", "responsavel_id")
    )


def query_stale_followup_leads(*, days_idle: int, now=None) -> List[Row]:
    """
    Open leads with no follow-up scheduled ahead and untouched for ``days_idle`` days.
    """
    current = _now(now)
    cutoff = current - timedelta(days=days_idle)
    return list(
        Lead.objects.exclude(status__in=Lead.CLOSED_STATUSES)
        .filter(Q(proximo_followup__isnull=True) | Q(proximo_followup__lt=current))
        .filter(updated_at__lte=cutoff)
        .order_by("updated_at", "id")
        .values("id", "nome", "responsavel_id")
    )


def query_stagnant_conversation_leads(*, days_stagnant: int, now=None) -> List[Row]:
    cutoff = _now(now) - timedelta(days=days_stagnant)
    return list(
        Lead.objects.filter(
            status=Lead.Status.EM_CONVERSA,
            updated_at__lte=cutoff,
        )
        .order_by("updated_at", "id")
        .values("id", "nome", "responsavel_id")
    )


# ===============================================================
# Opportunities
# ===============================================================

def query_stagnant_opportunities(*, days_stagnant: int, now=None) -> List[Row]:
    """
    Open opportunities that have not changed stage for ``days_stagnant`` days.
    Opportunities that never moved are measured from creation.
    """
    cutoff = _now(now) - timedelta(days=days_stagnant)
    return list(
        Opportunity.objects.filter(status=Opportunity.Status.ABERTA)
        .filter(
            Q(stage_changed_at__lte=cutoff)
            | Q(stage_changed_at__isnull=True, created_at__lte=cutoff)
        )
        .order_by("id")
        .values("id", "titulo", "stage", "responsavel_id")
    )


def query_high_value_idle_opportunities(
    *, min_value: Decimal, days_idle: int, now=None
) -> List[Row]:
    cutoff = _now(now) - timedelta(days=days_idle)
    return list(
        Opportunity.objects.filter(
            status=Opportunity.Status.ABERTA,
            valor_estimado__gte=min_value,
            updated_at__lte=cutoff,
        )
        .order_by("-valor_estimado", "id")
        .values("id", "titulo", "valor_estimado", "responsavel_id")
    )


# ===============================================================
# Support tickets
# ===============================================================

def query_stale_tickets(
    *, hours_stale: int, priority: Optional[str] = None, now=None
) -> List[Row]:
    cutoff = _now(now) - timedelta(hours=hours_stale)
    qs = Ticket.objects.filter(
        status__in=Ticket.OPEN_STATUSES,
        updated_at__lte=cutoff,
    )
    if priority:
        qs = qs.filter(priority=priority)
    return list(
        qs.order_by("updated_at", "id").values(
            "id",
            "title",
            "priority",
            responsavel_id=F("owner_id"),
        )
    )


# ===============================================================
# Finance
# ===============================================================

def query_overdue_receivables(*, days_overdue: int, now=None) -> List[Row]:
    """
    Unpaid installments whose due date passed more than ``days_overdue`` days ago.
    """
    cutoff = timezone.localdate(_now(now)) - timedelta(days=days_overdue)
    return list(
        Receivable.objects.exclude(status=Receivable.Status.PAGO)
        .filter(due_date__lt=cutoff)
        .order_by("due_date", "id")
        .values(
            "id",
            "amount",
            "due_date",
            "installment_number",
            "contract_id",
            empresa=F("contract__company__nome"),
            responsavel_id=F("contract__responsavel_id"),
        )
    )
