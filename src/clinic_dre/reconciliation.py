# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Bank reconciliation comparator.

Compares what the ledgers record (revenues and expenses) with what the bank
statement shows (credits and debits) and raises human-readable alerts.
The comparison is purely aggregate: individual transactions are not
matched.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .models import CREDIT, DEBIT, BankTransaction, Expense, ParsedRevenue

logger = logging.getLogger(__name__)

DEFAULT_DIFFERENCE_THRESHOLD = 0.05
DEFAULT_MINIMUM_RATE = 90.0


@dataclass(frozen=True)
class ReconciliationAnalysis:
    """Aggregate comparison between ledgers and bank statement.

    ``revenue_difference`` and ``expense_difference`` are bank minus
    ledger: a positive value means the bank shows more than was recorded.
    ``reconciliation_rate`` is the mean of the revenue and expense match
    rates, in percent.
    """

    recorded_revenue: float
    recorded_expenses: float
    bank_credits: float
    bank_debits: float
    revenue_difference: float
    expense_difference: float
    revenue_rate: float
    expense_rate: float
    reconciliation_rate: float
    alerts: tuple[str, ...] = ()


def format_brl(value: float) -> str:
    """Format a value as Brazilian currency, e.g. 'R$ 1.234,56'."""
    formatted = f"{abs(value):,.2f}"
    formatted = formatted.replace(",", "_").replace(".", ",").replace("_", ".")
    sign = "-" if value < 0 else ""
    return f"{sign}R$ {formatted}"


def _match_rate(recorded: float, bank: float) -> float:
    if bank > 0:
        return recorded / bank * 100
    return 100.0


def _difference_alert(side: str, difference: float) -> str:
    direction = "a mais no banco" if difference > 0 else "a menos no banco"
    amount = format_brl(abs(difference))
    return f"Diferença significativa nas {side}: {amount} {direction}"


def reconcile(
    revenues: Sequence[ParsedRevenue],
    expenses: Sequence[Expense],
    bank_transactions: Sequence[BankTransaction],
    difference_threshold: float = DEFAULT_DIFFERENCE_THRESHOLD,
    minimum_rate: float = DEFAULT_MINIMUM_RATE,
) -> ReconciliationAnalysis:
    """Compare recorded totals with bank totals.

    Args:
        revenues: Recorded revenues of the period.
        expenses: Recorded expenses of the period (taxes included).
        bank_transactions: Bank statement of the same period.
        difference_threshold: Fraction of the bank total above which a
            difference raises an alert (0.05 = 5%).
        minimum_rate: Reconciliation rate (percent) below which an alert
            is raised.

    Returns:
        A ReconciliationAnalysis. The three alerts are independent and can
        all fire together.
    """
    recorded_revenue = sum(r.amount for r in revenues)
    recorded_expenses = sum(e.amount for e in expenses)
    bank_credits = sum(t.amount for t in bank_transactions if t.type == CREDIT)
    bank_debits = sum(t.amount for t in bank_transactions if t.type == DEBIT)

    revenue_difference = bank_credits - recorded_revenue
    expense_difference = bank_debits - recorded_expenses

    revenue_rate = _match_rate(recorded_revenue, bank_credits)
    expense_rate = _match_rate(recorded_expenses, bank_debits)
    reconciliation_rate = (revenue_rate + expense_rate) / 2

    alerts: list[str] = []
    if abs(revenue_difference) > bank_credits * difference_threshold:
        alerts.append(_difference_alert("receitas", revenue_difference))
    if abs(expense_difference) > bank_debits * difference_threshold:
        alerts.append(_difference_alert("despesas", expense_difference))
    if reconciliation_rate < minimum_rate:
        alerts.append(
            f"Taxa de reconciliação abaixo de {minimum_rate:g}% "
            "- revisar lançamentos"
        )

    for alert in alerts:
        logger.warning("%s", alert)

    return ReconciliationAnalysis(
        recorded_revenue=recorded_revenue,
        recorded_expenses=recorded_expenses,
        bank_credits=bank_credits,
        bank_debits=bank_debits,
        revenue_difference=revenue_difference,
        expense_difference=expense_difference,
        revenue_rate=revenue_rate,
        expense_rate=expense_rate,
        reconciliation_rate=reconciliation_rate,
        alerts=tuple(alerts),
    )
