# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for Clinic DRE.

This module turns a ``DREResult`` into the long-format DataFrame used for
display and CSV export, and provides the category breakdowns shown next to
the statement.

Statement frames share the columns ``display_order, id, level, name, type,
amount`` where:

- level 1: headline results (gross revenue, net revenue, gross profit, ...),
- level 2: the components deducted between two results,
- level 3: the details of each component (tax sub-categories, operating
           expense breakdown, depreciation, fixed/variable memo lines).

``type`` is "calc" for computed results, "acc" for lines summing records
and "percent" for the margin block placed after the statement. Deductions
are shown as negative amounts.

The main views are:

- simplified: level 1 only,
- regular:    levels 1-2,
- detailed:   all levels (no additional filtering).
"""

from collections import defaultdict
from collections.abc import Sequence

import pandas as pd

from .categories import categorize_expense, categorize_revenue
from .engine import DREResult
from .models import Expense, ParsedRevenue
from .taxes import resolve_tax

STATEMENT_COLUMNS = ["display_order", "id", "level", "name", "type", "amount"]
CATEGORY_COLUMNS = ["category", "total", "percentage", "count"]
TOP_EXPENSE_COLUMNS = ["date", "description", "category", "amount"]

VIEWS = ("simplified", "regular", "detailed")


def statement_to_frame(dre: DREResult) -> pd.DataFrame:
    """Return the income statement as a long-format DataFrame."""
    rt = dre.revenue_taxes
    opex = dre.operating_expenses
    pt = dre.profit_taxes

    lines: list[tuple[int, str, str, float]] = [
        (1, "Receita Bruta", "calc", dre.gross_revenue),
        (2, "(-) Impostos sobre a Receita", "acc", -rt.total),
        (3, "PIS", "acc", -rt.pis),
        (3, "COFINS", "acc", -rt.cofins),
        (3, "ISS", "acc", -rt.iss),
        (3, "ICMS", "acc", -rt.icms),
        (3, "Simples Nacional", "acc", -rt.simples),
        (3, "Outros impostos sobre a receita", "acc", -rt.other),
        (1, "Receita Líquida", "calc", dre.net_revenue),
        (2, "(-) Custo dos Serviços", "acc", -dre.cost_of_services),
        (1, "Lucro Bruto", "calc", dre.gross_profit),
        (2, "(-) Despesas Operacionais", "acc", -opex.total),
        (3, "Pessoal", "acc", -opex.personnel),
        (3, "Administrativas", "acc", -opex.administrative),
        (3, "Vendas e Marketing", "acc", -opex.sales),
        (3, "Despesas Financeiras", "acc", -opex.financial),
        (3, "Outras Despesas Operacionais", "acc", -opex.other),
        (3, "Despesas Fixas", "acc", dre.fixed_expenses_total),
        (3, "Despesas Variáveis", "acc", dre.variable_expenses_total),
        (1, "Lucro Operacional (EBIT)", "calc", dre.operating_profit),
        (3, "(+) Depreciação", "acc", dre.depreciation),
        (3, "(+) Amortização", "acc", dre.amortization),
        (1, "EBITDA", "calc", dre.ebitda),
        (2, "(+/-) Outras Receitas/Despesas", "acc", dre.other_income_expense),
        (1, "Lucro Antes dos Impostos", "calc", dre.profit_before_tax),
        (2, "(-) Impostos sobre o Lucro", "acc", -pt.total),
        (3, "IRPJ", "acc", -pt.irpj),
        (3, "CSLL", "acc", -pt.csll),
        (3, "Outros impostos sobre o lucro", "acc", -pt.other),
        (1, "Lucro Líquido", "calc", dre.net_profit),
        (2, "Margem Bruta (%)", "percent", dre.gross_margin_percent),
        (2, "Margem Operacional (%)", "percent", dre.operating_margin_percent),
        (2, "Margem EBITDA (%)", "percent", dre.ebitda_margin_percent),
        (2, "Margem Líquida (%)", "percent", dre.net_margin_percent),
    ]

    rows = [
        {
            "display_order": index * 10,
            "id": index,
            "level": level,
            "name": name,
            "type": line_type,
            # "+ 0.0" turns -0.0 into 0.0 for display.
            "amount": round(amount, 2) + 0.0,
        }
        for index, (level, name, line_type, amount) in enumerate(lines, start=1)
    ]
    return pd.DataFrame(rows, columns=STATEMENT_COLUMNS)


def apply_view_level_filter(out: pd.DataFrame, view: str) -> pd.DataFrame:
    """Return a view-specific slice with harmonized display_order and columns.

    - "simplified": keep rows with level <= 1,
    - "regular":    keep rows with level <= 2,
    - any other value (e.g. "detailed"): keep all rows.

    Rows are sorted by their original display_order, renumbered 10, 20,
    30, ... and the columns are put in export order.
    """
    if view == "simplified":
        df = out[out["level"] <= 1].copy()
    elif view == "regular":
        df = out[out["level"] <= 2].copy()
    else:
        df = out.copy()

    if "display_order" in df.columns:
        df = df.sort_values("display_order", ascending=True, kind="stable")
    df = df.reset_index(drop=True)

    df["display_order"] = (df.index + 1) * 10

    return df[[c for c in STATEMENT_COLUMNS if c in df.columns]]


def _category_frame(totals: dict[str, list[float]]) -> pd.DataFrame:
    if not totals:
        return pd.DataFrame(columns=CATEGORY_COLUMNS)

    grand_total = sum(t for t, _ in totals.values())
    rows = [
        {
            "category": category,
            "total": total,
            "percentage": total / grand_total * 100 if grand_total > 0 else 0.0,
            "count": int(count),
        }
        for category, (total, count) in totals.items()
    ]
    df = pd.DataFrame(rows, columns=CATEGORY_COLUMNS)
    return df.sort_values("total", ascending=False, kind="stable").reset_index(
        drop=True
    )


def aggregate_expenses_by_category(expenses: Sequence[Expense]) -> pd.DataFrame:
    """Total non-tax expenses per category, largest first."""
    totals: dict[str, list[float]] = defaultdict(lambda: [0.0, 0])
    for expense in expenses:
        if resolve_tax(expense) is not None:
            continue
        category = expense.category or categorize_expense(expense.description, "")
        totals[category][0] += expense.amount
        totals[category][1] += 1
    return _category_frame(totals)


def aggregate_revenues_by_category(revenues: Sequence[ParsedRevenue]) -> pd.DataFrame:
    """Total revenues per category, largest first."""
    totals: dict[str, list[float]] = defaultdict(lambda: [0.0, 0])
    for revenue in revenues:
        category = revenue.category or categorize_revenue(revenue.description, "")
        totals[category][0] += revenue.amount
        totals[category][1] += 1
    return _category_frame(totals)


def top_expenses(expenses: Sequence[Expense], limit: int = 10) -> pd.DataFrame:
    """Return the ``limit`` largest non-tax expenses."""
    rows = [
        {
            "date": e.date,
            "description": e.description,
            "category": e.category or categorize_expense(e.description, ""),
            "amount": e.amount,
        }
        for e in expenses
        if resolve_tax(e) is None
    ]
    if not rows:
        return pd.DataFrame(columns=TOP_EXPENSE_COLUMNS)

    df = pd.DataFrame(rows, columns=TOP_EXPENSE_COLUMNS)
    df = df.sort_values("amount", ascending=False, kind="stable")
    return df.head(limit).reset_index(drop=True)
