# crm_core/alerts/rules.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List

from crm_core.alerts import queries
from crm_core.alerts.issues import Issue, format_brl, format_date_br, format_number

"""
Business rule kinds.

RULE_HANDLERS maps a rule id to the query it runs, how the query parameters
are derived from the rule's threshold, and how each returned row becomes an
Issue. Adding a rule kind is a new entry here plus a query function.

Security rules live in crm_core.alerts.security.
"""

Row = Dict[str, Any]
Params = Dict[str, Any]

SECURITY_MODULE = "Segurança"


@dataclass(frozen=True)
class RuleHandler:
    query: Callable[..., Iterable[Row]]
    build_params: Callable[[Any], Params]
    map_row: Callable[[Row, Params], Issue]


# ===============================================================
# Threshold helpers
# ===============================================================

def rule_threshold(rule, default) -> Decimal:
    """
    Rule threshold, or ``default`` when unset or zero.
    """
    value = getattr(rule, "threshold", None)
    if value in (None, "") or Decimal(str(value)) == 0:
        return Decimal(str(default))
    return Decimal(str(value))


def _int_threshold(rule, default: int) -> int:
    return int(rule_threshold(rule, default))


# ===============================================================
# Leads
# ===============================================================

def _lead_link(row: Row) -> str:
    return f"/admin/leads/{row['id']}"


def _map_uncontacted_lead(row: Row, params: Params) -> Issue:
    days = format_number(params["days_old"])
    return Issue(
        title=f'Lead "{row["nome"]}" não contatado',
        description=(
            f'O lead "{row["nome"]}" foi criado há mais de {days} dias '
            f"e ainda não foi contatado."
        ),
        link=_lead_link(row),
        responsible_id=row.get("responsavel_id"),
    )


def _map_stale_followup_lead(row: Row, params: Params) -> Issue:
    days = format_number(params["days_idle"])
    return Issue(
        title=f'Lead "{row["nome"]}" sem follow-up',
        description=(
            f'O lead "{row["nome"]}" está sem próximo follow-up agendado '
            f"há mais de {days} dias."
        ),
        link=_lead_link(row),
        responsible_id=row.get("responsavel_id"),
    )


def _map_stagnant_conversation_lead(row: Row, params: Params) -> Issue:
    days = format_number(params["days_stagnant"])
    return Issue(
        title=f'Lead "{row["nome"]}" estagnado em conversa',
        description=(
            f'O lead "{row["nome"]}" está "Em conversa" e não é atualizado '
            f"há mais de {days} dias."
        ),
        link=_lead_link(row),
        responsible_id=row.get("responsavel_id"),
    )


# ===============================================================
# Opportunities
# ===============================================================

def _opportunity_link(row: Row) -> str:
    return f"/admin/opportunities/{row['id']}"


def _map_stagnant_opportunity(row: Row, params: Params) -> Issue:
    days = format_number(params["days_stagnant"])
    return Issue(
        title=f'Oportunidade "{row["titulo"]}" estagnada',
        description=(
            f'A oportunidade "{row["titulo"]}" não é atualizada '
            f"há mais de {days} dias."
        ),
        link=_opportunity_link(row),
        responsible_id=row.get("responsavel_id"),
    )


def _map_high_value_opportunity(row: Row, params: Params) -> Issue:
    days = format_number(params["days_idle"])
    return Issue(
        title=f'Oportunidade de alto valor "{row["titulo"]}" sem ação',
        description=(
            f'A oportunidade "{row["titulo"]}" de {format_brl(row.get("valor_estimado"))} '
            f"não recebe atualização há mais de {days} dias."
        ),
        link=_opportunity_link(row),
        responsible_id=row.get("responsavel_id"),
    )


# ===============================================================
# Tickets
# ===============================================================

def _map_stale_ticket(row: Row, params: Params) -> Issue:
    hours = format_number(params["hours_stale"])
    urgent = bool(params.get("priority"))
    label = "Ticket urgente" if urgent else "Ticket"
    return Issue(
        title=f'{label} "{row["title"]}" sem resposta',
        description=(
            f'O ticket "{row["title"]}" está aberto e sem atualização '
            f"há mais de {hours} horas."
        ),
        link=f"/admin/support/tickets/{row['id']}",
        responsible_id=row.get("responsavel_id"),
    )


# ===============================================================
# Finance
# ===============================================================

def _map_overdue_receivable(row: Row, params: Params) -> Issue:
    days = format_number(params["days_overdue"])
    empresa = row.get("empresa") or "cliente"
    installment = row.get("installment_number")
    parcela = f"A parcela {installment}" if installment else "A parcela"
    return Issue(
        title=f'Recebível de "{empresa}" em atraso',
        description=(
            f"{parcela} de {format_brl(row.get('amount'))} com vencimento em "
            f"{format_date_br(row.get('due_date'))} está em atraso há mais de {days} dias."
        ),
        link=f"/admin/finance/contracts/{row['contract_id']}",
        responsible_id=row.get("responsavel_id"),
    )


# ===============================================================
# Dispatch table
# ===============================================================

RULE_HANDLERS: Dict[str, RuleHandler] = {
    "lead-uncontacted": RuleHandler(
        query=queries.query_uncontacted_leads,
        build_params=lambda rule: {"days_old": _int_threshold(rule, 2)},
        map_row=_map_uncontacted_lead,
    ),
    "lead-stale-followup": RuleHandler(
        query=queries.query_stale_followup_leads,
        build_params=lambda rule: {"days_idle": _int_threshold(rule, 3)},
        map_row=_map_stale_followup_lead,
    ),
    "lead-stagnant-convo": RuleHandler(
        query=queries.query_stagnant_conversation_leads,
        build_params=lambda rule: {"days_stagnant": _int_threshold(rule, 5)},
        map_row=_map_stagnant_conversation_lead,
    ),
    "opp-stagnant-stage": RuleHandler(
        query=queries.query_stagnant_opportunities,
        build_params=lambda rule: {"days_stagnant": _int_threshold(rule, 7)},
        map_row=_map_stagnant_opportunity,
    ),
    "opp-high-value-no-action": RuleHandler(
        query=queries.query_high_value_idle_opportunities,
        build_params=lambda rule: {
            "min_value": rule_threshold(rule, 10000),
            "days_idle": 3,
        },
        map_row=_map_high_value_opportunity,
    ),
    "ticket-stale": RuleHandler(
        query=queries.query_stale_tickets,
        build_params=lambda rule: {"hours_stale": _int_threshold(rule, 24)},
        map_row=_map_stale_ticket,
    ),
    "ticket-urgent-stale": RuleHandler(
        query=queries.query_stale_tickets,
        build_params=lambda rule: {
            "hours_stale": _int_threshold(rule, 6),
            "priority": "alta",
        },
        map_row=_map_stale_ticket,
    ),
    "receivable-overdue": RuleHandler(
        query=queries.query_overdue_receivables,
        build_params=lambda rule: {"days_overdue": _int_threshold(rule, 5)},
        map_row=_map_overdue_receivable,
    ),
}


# ===============================================================
# Default rule set (seeded by `manage.py seed_alert_rules`)
# ===============================================================

DEFAULT_ALERT_RULES: List[Dict[str, Any]] = [
    # Leads
    {
        "id": "lead-stale-followup",
        "module": "Leads",
        "name": "Lead sem follow-up",
        "description": "Alertar quando um lead estiver sem um próximo follow-up agendado por X dias.",
        "threshold": 3,
        "severity": "warning",
        "visibility": "both",
    },
    {
        "id": "lead-stagnant-convo",
        "module": "Leads",
        "name": 'Lead estagnado "Em conversa"',
        "description": 'Alertar quando um lead "Em conversa" não for atualizado por X dias.',
        "threshold": 5,
        "severity": "warning",
        "visibility": "responsible",
    },
    {
        "id": "lead-uncontacted",
        "module": "Leads",
        "name": "Lead não contatado",
        "description": 'Alertar quando um lead for criado há X dias e ainda estiver como "Não contatado".',
        "threshold": 2,
        "severity": "critical",
        "visibility": "both",
    },
    # Oportunidades
    {
        "id": "opp-stagnant-stage",
        "module": "Oportunidades",
        "name": "Oportunidade estagnada",
        "description": "Alertar quando uma oportunidade permanecer no mesmo estágio por mais de X dias.",
        "threshold": 7,
        "severity": "warning",
        "visibility": "both",
    },
    {
        "id": "opp-high-value-no-action",
        "module": "Oportunidades",
        "name": "Oportunidade de alto valor sem ação",
        "description": "Alertar quando uma oportunidade acima de R$ X não for atualizada há 3 dias.",
        "threshold": 10000,
        "severity": "critical",
        "visibility": "admin",
    },
    # Tickets
    {
        "id": "ticket-stale",
        "module": "Tickets",
        "name": "Ticket sem resposta",
        "description": "Alertar quando um ticket aberto não for atualizado por X horas.",
        "threshold": 24,
        "severity": "warning",
        "visibility": "both",
    },
    {
        "id": "ticket-urgent-stale",
        "module": "Tickets",
        "name": "Ticket urgente sem resposta",
        "description": 'Alertar quando um ticket de prioridade "alta" não for atualizado por X horas.',
        "threshold": 6,
        "severity": "critical",
        "visibility": "both",
    },
    # Financeiro
    {
        "id": "receivable-overdue",
        "module": "Financeiro",
        "name": "Recebível em atraso",
        "description": "Alertar quando uma parcela não paga estiver vencida há mais de X dias.",
        "threshold": 5,
        "severity": "critical",
        "visibility": "both",
    },
    # Segurança
    {
        "id": "security-new-device",
        "module": SECURITY_MODULE,
        "name": "Novo Dispositivo Detectado",
        "description": "Um usuário fez login a partir de um novo dispositivo ou navegador.",
        "threshold": 1,
        "severity": "info",
        "visibility": "admin",
    },
    {
        "id": "security-new-ip",
        "module": SECURITY_MODULE,
        "name": "Novo Endereço IP Detectado",
        "description": "Um usuário fez login a partir de um novo endereço IP.",
        "threshold": 1,
        "severity": "warning",
        "visibility": "admin",
    },
    {
        "id": "security-off-hours",
        "module": SECURITY_MODULE,
        "name": "Acesso Fora do Horário Comercial",
        "description": "Um usuário acessou o sistema fora do horário comercial (8h-20h).",
        "threshold": 8,
        "severity": "info",
        "visibility": "admin",
    },
    {
        "id": "security-rapid-ip-change",
        "module": SECURITY_MODULE,
        "name": "Múltiplos IPs em Curto Período",
        "description": "Um usuário se conectou de múltiplos IPs em menos de 24 horas.",
        "threshold": 2,
        "severity": "critical",
        "visibility": "admin",
    },
]
