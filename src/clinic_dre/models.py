# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Record model for Clinic DRE.

Every stage of the pipeline exchanges the small immutable value objects
defined here:

- ParsedRevenue:     one revenue line of an imported ledger.
- ParsedExpense:     one expense line, as it comes out of the parser
                     (also exposed as ``RawExpense``).
- ClassifiedExpense: an expense enriched with the fixed/variable decision,
                     the tax flags and the user's manual overrides.
- BankTransaction:   one bank-statement line (credit or debit).

Raw and classified expenses are two explicit variants. Code that needs the
classification fields must check ``isinstance(expense, ClassifiedExpense)``
instead of probing for attributes.

Dates are ISO strings (YYYY-MM-DD) and amounts are floats.
"""

from dataclasses import dataclass
from typing import Optional, Union

# Expense types (tipo_despesa)
FIXED = "fixa"
VARIABLE = "variavel"
EXPENSE_TYPES = (FIXED, VARIABLE)

# Tax scopes (tipo_imposto)
REVENUE_SCOPE = "receita"
PROFIT_SCOPE = "lucro"
TAX_SCOPES = (REVENUE_SCOPE, PROFIT_SCOPE)

# Bank transaction types
CREDIT = "credit"
DEBIT = "debit"


@dataclass(frozen=True)
class ParsedRevenue:
    """A revenue line normalized by the parser."""

    date: str
    description: str
    category: str
    amount: float


@dataclass(frozen=True)
class ParsedExpense:
    """An expense line normalized by the parser.

    Imported expenses always carry a non-negative amount. Manually entered
    expenses may use a negative amount to flag a refund or credit, which
    the engine routes to "other income/expense".
    """

    date: str
    description: str
    category: str
    amount: float


RawExpense = ParsedExpense


@dataclass(frozen=True)
class ClassifiedExpense(ParsedExpense):
    """An expense carrying classification and tax decisions.

    Attributes
    ----------
    tipo_despesa :
        "fixa", "variavel" or None when the expense is left unclassified.
    classification_is_manual :
        True once the user has overridden any automatic decision.
    auto_suggestion :
        Suggestion produced by the scored classifier, kept so that the
        "re-apply all suggestions" action can restore it.
    is_tax :
        Explicit tax flag. None means nobody decided yet and automatic
        detection applies; False suppresses automatic detection entirely.
    tax_scope :
        "receita" (taxes on revenue) or "lucro" (taxes on profit).
    custom_category :
        Optional user-defined display category.
    tax_category :
        Optional tax sub-category (e.g. "PIS", "IRPJ").
    """

    tipo_despesa: Optional[str] = None
    classification_is_manual: bool = False
    auto_suggestion: str = VARIABLE
    is_tax: Optional[bool] = None
    tax_scope: Optional[str] = None
    custom_category: Optional[str] = None
    tax_category: Optional[str] = None


Expense = Union[ParsedExpense, ClassifiedExpense]


@dataclass(frozen=True)
class BankTransaction:
    """A bank-statement line; ``amount`` is always a magnitude."""

    date: str
    description: str
    amount: float
    type: str  # 'credit' or 'debit'


def extract_year_month(date_str: str) -> str:
    """Return the 'YYYY-MM' prefix of an ISO date string."""
    return str(date_str)[:7]
