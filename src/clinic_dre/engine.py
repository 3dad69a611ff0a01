# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Income statement (DRE) aggregation engine.

The engine rolls parsed revenues and (classified) expenses into a
hierarchical income statement:

    gross revenue
    (-) taxes on revenue
    = net revenue
    (-) cost of services
    = gross profit
    (-) operating expenses (personnel, administrative, sales, financial, other)
    = operating profit (EBIT)
    (+/-) other income / expense
    = profit before tax
    (-) taxes on profit
    = net profit

1. Expense routing
   ----------------
   Each expense lands in exactly one of five buckets, by precedence:

   a. explicit manual tax flag True  -> revenue-tax or profit-tax bucket
      (by manual scope, revenue by default);
   b. explicit manual tax flag False -> no tax detection at all;
   c. undecided flag                 -> ``identify_tax`` on the description;
   d. category "Custo dos Serviços"  -> cost of services;
   e. negative amount (refund/credit) -> other income / expense;
   f. anything else                  -> operating expenses.

2. Tax blocks
   -----------
   Recorded tax remittances are split into their sub-categories (manual
   category first, description keywords otherwise, "other" as the last
   resort). When nothing was recorded, the regime's rate table provides an
   estimate (profit taxes are never estimated under Simples Nacional).

3. Fixed / variable totals
   ------------------------
   Computed over all non-tax expenses by ``tipo_despesa``. Expenses without
   a type contribute to neither total.

Notes
-----
``generate_dre`` is pure: it never mutates its inputs and the same inputs
always yield the same statement. Callers recompute the whole statement after
every edit; there is no incremental update path.
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from .categories import (
    ADMINISTRATIVE,
    COST_OF_SERVICES,
    FINANCIAL,
    PERSONNEL,
    SALES_MARKETING,
    categorize_expense,
    contains_any,
)
from .models import (
    FIXED,
    PROFIT_SCOPE,
    VARIABLE,
    BankTransaction,
    ClassifiedExpense,
    Expense,
    ParsedRevenue,
)
from .taxes import (
    COFINS,
    CSLL,
    ICMS,
    IRPJ,
    ISS,
    PIS,
    PROFIT_TAX_CATEGORIES,
    REVENUE_TAX_CATEGORIES,
    SIMPLES,
    ProfitTaxes,
    RateTable,
    RevenueTaxes,
    TaxRegime,
    estimate_regime_taxes,
    identify_tax,
    manual_tax_category,
    resolve_tax,
)

logger = logging.getLogger(__name__)

DEPRECIATION_KEYWORDS = ("deprecia",)
AMORTIZATION_KEYWORDS = ("amortiza",)


@dataclass(frozen=True)
class OperatingExpenses:
    """Breakdown of the operating expenses bucket."""

    personnel: float = 0.0
    administrative: float = 0.0
    sales: float = 0.0
    financial: float = 0.0
    other: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.personnel
            + self.administrative
            + self.sales
            + self.financial
            + self.other
        )


@dataclass(frozen=True)
class ExpenseBuckets:
    """The five disjoint expense buckets used by the statement."""

    revenue_taxes: tuple[Expense, ...] = ()
    profit_taxes: tuple[Expense, ...] = ()
    cost_of_services: tuple[Expense, ...] = ()
    other_income_expense: tuple[Expense, ...] = ()
    operating: tuple[Expense, ...] = ()


@dataclass(frozen=True)
class DREResult:
    """A complete income statement.

    Invariants (exact, up to floating-point rounding):
        gross_profit     = net_revenue - cost_of_services
        operating_profit = gross_profit - operating_expenses.total
        net_profit       = profit_before_tax - profit_taxes.total

    Margins are percentages of net revenue and are 0 when net revenue is
    not positive.
    """

    regime: TaxRegime
    gross_revenue: float
    revenue_taxes: RevenueTaxes
    net_revenue: float
    cost_of_services: float
    gross_profit: float
    operating_expenses: OperatingExpenses
    fixed_expenses_total: float
    variable_expenses_total: float
    operating_profit: float
    depreciation: float
    amortization: float
    ebitda: float
    other_income_expense: float
    profit_before_tax: float
    profit_taxes: ProfitTaxes
    net_profit: float
    gross_margin_percent: float
    operating_margin_percent: float
    ebitda_margin_percent: float
    net_margin_percent: float
    revenue_taxes_estimated: bool = False
    profit_taxes_estimated: bool = False
    bank_transactions: tuple[BankTransaction, ...] = field(default=(), repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Return a nested plain-dict snapshot (tax and expense blocks with totals)."""
        data = asdict(self)
        data.pop("bank_transactions", None)
        data["regime"] = self.regime.value
        data["revenue_taxes"]["total"] = self.revenue_taxes.total
        data["operating_expenses"]["total"] = self.operating_expenses.total
        data["profit_taxes"]["total"] = self.profit_taxes.total
        return data


def _sum(expenses: Sequence[Expense]) -> float:
    return sum(e.amount for e in expenses)


def _resolved_category(expense: Expense) -> str:
    return expense.category or categorize_expense(expense.description, "")


def separate_expenses(expenses: Sequence[Expense]) -> ExpenseBuckets:
    """Route every expense into exactly one statement bucket."""
    revenue_taxes: list[Expense] = []
    profit_taxes: list[Expense] = []
    costs: list[Expense] = []
    others: list[Expense] = []
    operating: list[Expense] = []

    for expense in expenses:
        tax = resolve_tax(expense)
        if tax is not None:
            if tax.scope == PROFIT_SCOPE:
                profit_taxes.append(expense)
            else:
                revenue_taxes.append(expense)
            continue

        if _resolved_category(expense) == COST_OF_SERVICES:
            costs.append(expense)
        elif expense.amount < 0:
            others.append(expense)
        else:
            operating.append(expense)

    return ExpenseBuckets(
        revenue_taxes=tuple(revenue_taxes),
        profit_taxes=tuple(profit_taxes),
        cost_of_services=tuple(costs),
        other_income_expense=tuple(others),
        operating=tuple(operating),
    )


def _revenue_tax_key(expense: Expense) -> str:
    """Sub-category of a revenue-tax expense: 'pis', 'cofins', ..., or 'other'."""
    manual = manual_tax_category(expense)
    if manual:
        return REVENUE_TAX_CATEGORIES.get(manual.strip().lower(), "other").lower()

    # Untagged remittances are re-derived from the description; anything
    # that is not one of the named taxes (DARF, FGTS, ...) is "other".
    tax = identify_tax(expense.description)
    if tax is None or tax.category not in (PIS, COFINS, ISS, ICMS, SIMPLES):
        return "other"
    return tax.category.lower()


def _profit_tax_key(expense: Expense) -> str:
    manual = manual_tax_category(expense)
    if manual:
        return PROFIT_TAX_CATEGORIES.get(manual.strip().lower(), "other").lower()

    tax = identify_tax(expense.description)
    if tax is None or tax.category not in (IRPJ, CSLL):
        return "other"
    return tax.category.lower()


def compute_revenue_taxes(expenses: Sequence[Expense]) -> RevenueTaxes:
    """Sum recorded revenue-tax expenses by sub-category."""
    totals = dict.fromkeys(("pis", "cofins", "iss", "icms", "simples", "other"), 0.0)
    for expense in expenses:
        totals[_revenue_tax_key(expense)] += expense.amount
    return RevenueTaxes(**totals)


def compute_profit_taxes(expenses: Sequence[Expense]) -> ProfitTaxes:
    """Sum recorded profit-tax expenses by sub-category."""
    totals = dict.fromkeys(("irpj", "csll", "other"), 0.0)
    for expense in expenses:
        totals[_profit_tax_key(expense)] += expense.amount
    return ProfitTaxes(**totals)


def compute_operating_expenses(expenses: Sequence[Expense]) -> OperatingExpenses:
    """Break the operating bucket down by category label."""
    totals = dict.fromkeys(
        ("personnel", "administrative", "sales", "financial", "other"), 0.0
    )
    keys = {
        PERSONNEL: "personnel",
        ADMINISTRATIVE: "administrative",
        SALES_MARKETING: "sales",
        FINANCIAL: "financial",
    }
    for expense in expenses:
        category = categorize_expense(expense.description, expense.category)
        totals[keys.get(category, "other")] += expense.amount
    return OperatingExpenses(**totals)


def compute_fixed_variable_totals(expenses: Sequence[Expense]) -> tuple[float, float]:
    """Return (fixed, variable) totals over non-tax expenses.

    Raw expenses and classified expenses whose ``tipo_despesa`` is None
    are not counted in either total.
    """
    fixed = variable = 0.0
    for expense in expenses:
        if resolve_tax(expense) is not None:
            continue
        if not isinstance(expense, ClassifiedExpense):
            continue
        if expense.tipo_despesa == FIXED:
            fixed += expense.amount
        elif expense.tipo_despesa == VARIABLE:
            variable += expense.amount
    return fixed, variable


def compute_depreciation_amortization(
    expenses: Sequence[Expense],
) -> tuple[float, float]:
    """Return (depreciation, amortization) found in operating expenses."""
    depreciation = sum(
        e.amount for e in expenses if contains_any(e.description, DEPRECIATION_KEYWORDS)
    )
    amortization = sum(
        e.amount for e in expenses if contains_any(e.description, AMORTIZATION_KEYWORDS)
    )
    return depreciation, amortization


def _margin(value: float, net_revenue: float) -> float:
    if net_revenue <= 0:
        return 0.0
    return value / net_revenue * 100


def generate_dre(
    revenues: Sequence[ParsedRevenue],
    expenses: Sequence[Expense],
    bank_transactions: Optional[Sequence[BankTransaction]] = None,
    regime: TaxRegime = TaxRegime.SIMPLES_NACIONAL,
    rate_tables: Optional[Mapping[TaxRegime, RateTable]] = None,
) -> DREResult:
    """Compute the full income statement.

    Args:
        revenues: Revenue records of the period.
        expenses: Raw and/or classified expense records of the period.
        bank_transactions: Optional bank statement; kept on the result for
            reconciliation, it does not affect the statement body.
        regime: Tax regime used for the fallback tax estimates.
        rate_tables: Optional rate tables overriding DEFAULT_RATE_TABLES.

    Returns:
        A DREResult. The function never raises for empty inputs: an empty
        period yields an all-zero statement (plus regime estimates on 0).
    """
    regime = TaxRegime.parse(regime)

    gross_revenue = sum(r.amount for r in revenues)
    buckets = separate_expenses(expenses)

    revenue_taxes = compute_revenue_taxes(buckets.revenue_taxes)
    revenue_taxes_estimated = False
    if revenue_taxes.total == 0:
        revenue_taxes, _ = estimate_regime_taxes(
            regime, gross_revenue, 0.0, rate_tables=rate_tables
        )
        revenue_taxes_estimated = True
        logger.debug(
            "No revenue tax recorded, estimated %.2f for %s",
            revenue_taxes.total,
            regime.value,
        )

    net_revenue = gross_revenue - revenue_taxes.total

    cost_of_services = _sum(buckets.cost_of_services)
    gross_profit = net_revenue - cost_of_services

    operating_expenses = compute_operating_expenses(buckets.operating)
    operating_profit = gross_profit - operating_expenses.total

    fixed_total, variable_total = compute_fixed_variable_totals(expenses)

    depreciation, amortization = compute_depreciation_amortization(buckets.operating)
    ebitda = operating_profit + depreciation + amortization

    other_income_expense = _sum(buckets.other_income_expense)
    profit_before_tax = operating_profit + other_income_expense

    profit_taxes = compute_profit_taxes(buckets.profit_taxes)
    profit_taxes_estimated = False
    if profit_taxes.total == 0 and regime is not TaxRegime.SIMPLES_NACIONAL:
        _, profit_taxes = estimate_regime_taxes(
            regime, gross_revenue, profit_before_tax, rate_tables=rate_tables
        )
        profit_taxes_estimated = True
        logger.debug(
            "No profit tax recorded, estimated %.2f for %s",
            profit_taxes.total,
            regime.value,
        )

    net_profit = profit_before_tax - profit_taxes.total

    return DREResult(
        regime=regime,
        gross_revenue=gross_revenue,
        revenue_taxes=revenue_taxes,
        net_revenue=net_revenue,
        cost_of_services=cost_of_services,
        gross_profit=gross_profit,
        operating_expenses=operating_expenses,
        fixed_expenses_total=fixed_total,
        variable_expenses_total=variable_total,
        operating_profit=operating_profit,
        depreciation=depreciation,
        amortization=amortization,
        ebitda=ebitda,
        other_income_expense=other_income_expense,
        profit_before_tax=profit_before_tax,
        profit_taxes=profit_taxes,
        net_profit=net_profit,
        gross_margin_percent=_margin(gross_profit, net_revenue),
        operating_margin_percent=_margin(operating_profit, net_revenue),
        ebitda_margin_percent=_margin(ebitda, net_revenue),
        net_margin_percent=_margin(net_profit, net_revenue),
        revenue_taxes_estimated=revenue_taxes_estimated,
        profit_taxes_estimated=profit_taxes_estimated,
        bank_transactions=tuple(bank_transactions or ()),
    )
