# crm_core/alerts/issues.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

"""
Issue shape and the pure formatting helpers used by row mappers.

No Django imports: row mapping must stay deterministic string work.
"""


@dataclass(frozen=True)
class Issue:
    """
    One concrete rule violation, normalized for alerting.

    Lives only for the duration of a processing pass; never persisted.
    """

    title: str
    description: str
    link: str
    responsible_id: Optional[int] = None


# ===============================================================
# Formatting (pt-BR)
# ===============================================================

def format_brl(value: Union[Decimal, int, float, None]) -> str:
    """
    Format a monetary value the way the admin UI does: R$ 1.234,56.
    None and NaN render as R$ 0,00.
    """
    if value is None:
        value = 0
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        amount = Decimal(0)
    if amount.is_nan():
        amount = Decimal(0)

    sign = "-" if amount < 0 else ""
    text = f"{abs(amount):,.2f}"
    # 1,234.56 -> 1.234,56
    text = text.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {text}"


def format_date_br(value: Union[date, datetime, None]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y")


def format_number(value: Union[Decimal, int, float, None]) -> str:
    """
    Render a threshold for prose: integral values without decimals.
    """
    if value is None:
        return "0"
    amount = Decimal(str(value))
    if amount == amount.to_integral_value():
        return str(int(amount))
    return str(amount.normalize()).replace(".", ",")
