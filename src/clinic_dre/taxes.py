# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Tax identification and regime-driven tax estimates.

This module provides:

- TaxRegime:        the Brazilian tax regimes supported by the engine.
- identify_tax():   keyword detection of tax remittances from free text.
- resolve_tax():    the single precedence rule combining a user's manual
                    tax flag with automatic detection.
- RateTable:        per-regime rates, injected by callers (see
                    ``DEFAULT_RATE_TABLES`` and ``load_rate_tables``).
- RevenueTaxes / ProfitTaxes: the tax blocks of the income statement.
- estimate_regime_taxes(): the fallback estimate used by the engine when
  no tax remittance was recorded for the period.

Detection never guesses: a description without a known tax token is not a
tax.
"""

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Optional

from .categories import normalize_text
from .models import PROFIT_SCOPE, REVENUE_SCOPE, TAX_SCOPES, ClassifiedExpense

# Tax categories
PIS = "PIS"
COFINS = "COFINS"
ISS = "ISS"
ICMS = "ICMS"
SIMPLES = "SIMPLES"
IRPJ = "IRPJ"
CSLL = "CSLL"
OTHER_TAX = "outros"


class TaxRegime(str, Enum):
    """Tax regime (regime tributário) of the clinic."""

    SIMPLES_NACIONAL = "simples_nacional"
    LUCRO_PRESUMIDO = "lucro_presumido"
    LUCRO_REAL = "lucro_real"

    @classmethod
    def parse(cls, value: Any) -> "TaxRegime":
        """Build a TaxRegime from its value or name (case-insensitive).

        Raises:
            ValueError: if the value does not name a known regime.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for regime in cls:
            if key in (regime.value, regime.name.lower()):
                return regime
        raise ValueError(
            f"Unknown tax regime '{value}'. Expected one of: "
            + ", ".join(r.value for r in cls)
        )


@dataclass(frozen=True)
class TaxClassification:
    """Result of tax identification: scope ('receita'/'lucro') and category."""

    scope: str
    category: str


# Ordered: the first matching entry wins.
TAX_KEYWORDS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    (REVENUE_SCOPE, PIS, ("pis",)),
    (REVENUE_SCOPE, COFINS, ("cofins",)),
    (REVENUE_SCOPE, ISS, ("iss", "issqn")),
    (REVENUE_SCOPE, ICMS, ("icms",)),
    (REVENUE_SCOPE, SIMPLES, ("simples nacional", "das", "simples")),
    (
        PROFIT_SCOPE,
        IRPJ,
        ("irpj", "imposto de renda pessoa juridica", "imposto de renda pj"),
    ),
    (PROFIT_SCOPE, CSLL, ("csll", "contribuicao social sobre lucro")),
    (
        REVENUE_SCOPE,
        OTHER_TAX,
        ("darf", "guia de imposto", "inss patronal", "fgts"),
    ),
)

REVENUE_TAX_CATEGORIES: dict[str, str] = {
    "pis": PIS,
    "cofins": COFINS,
    "iss": ISS,
    "issqn": ISS,
    "icms": ICMS,
    "simples": SIMPLES,
    "simples_nacional": SIMPLES,
}

PROFIT_TAX_CATEGORIES: dict[str, str] = {
    "irpj": IRPJ,
    "csll": CSLL,
}


def identify_tax(description: Optional[str]) -> Optional[TaxClassification]:
    """Detect whether a description refers to a tax remittance.

    Args:
        description: Free-text description of the expense.

    Returns:
        A TaxClassification, or None when no tax token is found.
    """
    normalized = normalize_text(description)
    if not normalized:
        return None
    for scope, category, keywords in TAX_KEYWORDS:
        if any(k in normalized for k in keywords):
            return TaxClassification(scope=scope, category=category)
    return None


def resolve_tax(expense: Any) -> Optional[TaxClassification]:
    """Apply the manual/automatic tax precedence to one expense.

    - explicit ``is_tax=True``: the manual scope (default 'receita') and the
      manual tax category (default 'outros') are used;
    - explicit ``is_tax=False``: not a tax, automatic detection is skipped;
    - otherwise (raw expense or undecided flag): ``identify_tax``.

    The automatic category of an untagged tax is re-derived from the
    description by the engine, so it is returned here as detected.
    """
    if isinstance(expense, ClassifiedExpense):
        if expense.is_tax is True:
            scope = expense.tax_scope if expense.tax_scope in TAX_SCOPES else None
            return TaxClassification(
                scope=scope or REVENUE_SCOPE,
                category=expense.tax_category or OTHER_TAX,
            )
        if expense.is_tax is False:
            return None
    return identify_tax(expense.description)


def manual_tax_category(expense: Any) -> Optional[str]:
    """Return the user-assigned tax category of an expense, if any."""
    if isinstance(expense, ClassifiedExpense) and expense.tax_category:
        return expense.tax_category
    return None


# ---------------------------------------------------------------------------
# Rate tables
# ---------------------------------------------------------------------------

PROFIT_BASE_GROSS_REVENUE = "gross_revenue"
PROFIT_BASE_PROFIT = "profit"


@dataclass(frozen=True)
class RateTable:
    """Default rates of one tax regime (fractions, not percents).

    ``profit_tax_base`` selects what IRPJ/CSLL rates apply to:
    'gross_revenue' (presumed profit, rates already scaled to revenue) or
    'profit' (actual profit before tax, only when positive). The IRPJ
    surcharge applies to the part of the base exceeding
    ``irpj_surcharge_threshold``.
    """

    simples: float = 0.0
    pis: float = 0.0
    cofins: float = 0.0
    iss: float = 0.0
    irpj: float = 0.0
    csll: float = 0.0
    irpj_surcharge_rate: float = 0.0
    irpj_surcharge_threshold: float = 0.0
    profit_tax_base: str = PROFIT_BASE_PROFIT


DEFAULT_RATE_TABLES: Mapping[TaxRegime, RateTable] = {
    # Average Simples Nacional rate for health services (Anexo III).
    TaxRegime.SIMPLES_NACIONAL: RateTable(simples=0.06),
    # IRPJ 15% and CSLL 9% on a 32% presumed profit.
    TaxRegime.LUCRO_PRESUMIDO: RateTable(
        pis=0.0065,
        cofins=0.03,
        iss=0.05,
        irpj=0.048,
        csll=0.0288,
        profit_tax_base=PROFIT_BASE_GROSS_REVENUE,
    ),
    TaxRegime.LUCRO_REAL: RateTable(
        pis=0.0165,
        cofins=0.076,
        iss=0.05,
        irpj=0.15,
        csll=0.09,
        irpj_surcharge_rate=0.10,
        irpj_surcharge_threshold=20000.0,
        profit_tax_base=PROFIT_BASE_PROFIT,
    ),
}


def load_rate_tables(
    overrides: Optional[Mapping[str, Mapping[str, Any]]] = None,
    base: Optional[Mapping[TaxRegime, RateTable]] = None,
) -> dict[TaxRegime, RateTable]:
    """Merge per-regime overrides (e.g. from TOML) into a set of rate tables.

    Args:
        overrides: Mapping {regime value -> {field -> value}}.
        base: Rate tables to start from (defaults to DEFAULT_RATE_TABLES).

    Returns:
        A new dictionary of RateTable instances.

    Raises:
        ValueError: on unknown regimes, unknown fields or non-numeric rates.
    """
    tables = dict(base if base is not None else DEFAULT_RATE_TABLES)
    if not overrides:
        return tables

    known_fields = {f.name for f in fields(RateTable)}
    for regime_key, values in overrides.items():
        regime = TaxRegime.parse(regime_key)
        if not isinstance(values, Mapping):
            raise ValueError(f"Rate overrides for '{regime_key}' must be a table.")

        changes: dict[str, Any] = {}
        for name, raw in values.items():
            if name not in known_fields:
                raise ValueError(f"Unknown rate field '{name}' for '{regime_key}'.")
            if name == "profit_tax_base":
                if raw not in (PROFIT_BASE_GROSS_REVENUE, PROFIT_BASE_PROFIT):
                    raise ValueError(
                        f"Invalid profit_tax_base '{raw}' for '{regime_key}'."
                    )
                changes[name] = raw
                continue
            try:
                changes[name] = float(raw)
            except (TypeError, ValueError) as exc:
                raise ValueError(
                    f"Invalid rate '{name}' for '{regime_key}': {raw!r}"
                ) from exc

        tables[regime] = replace(tables.get(regime, RateTable()), **changes)

    return tables


# ---------------------------------------------------------------------------
# Tax blocks of the statement
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RevenueTaxes:
    """Taxes on revenue (impostos sobre receita)."""

    pis: float = 0.0
    cofins: float = 0.0
    iss: float = 0.0
    icms: float = 0.0
    simples: float = 0.0
    other: float = 0.0

    @property
    def total(self) -> float:
        return self.pis + self.cofins + self.iss + self.icms + self.simples + self.other


@dataclass(frozen=True)
class ProfitTaxes:
    """Taxes on profit (impostos sobre lucro)."""

    irpj: float = 0.0
    csll: float = 0.0
    other: float = 0.0

    @property
    def total(self) -> float:
        return self.irpj + self.csll + self.other


def estimate_regime_taxes(
    regime: TaxRegime,
    gross_revenue: float,
    profit_before_tax: float = 0.0,
    rate_tables: Optional[Mapping[TaxRegime, RateTable]] = None,
) -> tuple[RevenueTaxes, ProfitTaxes]:
    """Estimate revenue and profit taxes from the regime's rate table.

    Simples Nacional applies a single rate to gross revenue and has no
    separate profit taxes. The other regimes apply PIS/COFINS/ISS to gross
    revenue and IRPJ/CSLL to the base selected by ``profit_tax_base``.
    A non-positive profit base yields no profit tax.
    """
    tables = rate_tables if rate_tables is not None else DEFAULT_RATE_TABLES
    rates = tables.get(regime)
    if rates is None:
        raise ValueError(f"No rate table configured for regime '{regime.value}'.")

    if regime is TaxRegime.SIMPLES_NACIONAL:
        return RevenueTaxes(simples=gross_revenue * rates.simples), ProfitTaxes()

    revenue_taxes = RevenueTaxes(
        pis=gross_revenue * rates.pis,
        cofins=gross_revenue * rates.cofins,
        iss=gross_revenue * rates.iss,
    )

    if rates.profit_tax_base == PROFIT_BASE_GROSS_REVENUE:
        base = gross_revenue
    else:
        base = profit_before_tax

    if base <= 0:
        return revenue_taxes, ProfitTaxes()

    irpj = base * rates.irpj
    if rates.irpj_surcharge_rate and base > rates.irpj_surcharge_threshold:
        irpj += (base - rates.irpj_surcharge_threshold) * rates.irpj_surcharge_rate

    return revenue_taxes, ProfitTaxes(irpj=irpj, csll=base * rates.csll)
