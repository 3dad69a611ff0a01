# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Fixed / variable expense classifier.

Each expense receives a score built from four signals:

1. Keywords
   ---------
   +3 when the description or category contains a fixed-cost keyword,
   -3 when it contains a variable-cost keyword (both may fire).

2. Recurrence
   -----------
   Expenses of the same batch whose descriptions share at least 70% of
   their words are treated as occurrences of the same expense. When there
   are 2+ occurrences with a coefficient of variation below 0.3 the expense
   is "recurrent": +2 if the amount is within 20% of the mean, +1 if within
   50%. Three or more occurrences add +1 regardless.

3. Magnitude
   ----------
   A single occurrence above 10,000 scores -1 (large one-off purchases).

4. Category text
   --------------
   Personnel / administrative / payroll / HR categories score +2,
   cost / CMV / variable categories score -2.

A positive score suggests "fixa", a negative one "variavel"; a tie is
broken in favour of "fixa" for recurrent expenses.

The thresholds are heuristic values kept for behavioural compatibility
with existing reports (see SIMILARITY_THRESHOLD and
RECURRENCE_CV_THRESHOLD).

Classification never mutates its input: overrides and bulk actions return
new ClassifiedExpense instances.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Optional

from .categories import contains_any, normalize_text
from .models import (
    EXPENSE_TYPES,
    FIXED,
    REVENUE_SCOPE,
    TAX_SCOPES,
    VARIABLE,
    ClassifiedExpense,
    Expense,
)
from .taxes import identify_tax, resolve_tax

SIMILARITY_THRESHOLD = 0.7
RECURRENCE_CV_THRESHOLD = 0.3
MIN_SIGNIFICANT_WORD_LENGTH = 3
LARGE_ONE_OFF_AMOUNT = 10000.0

KEYWORD_WEIGHT = 3
CATEGORY_WEIGHT = 2

FIXED_KEYWORDS: tuple[str, ...] = (
    # Personnel and payroll
    "salario", "ordenado", "vencimento", "remuneracao", "pro labore",
    "prolabore", "honorario", "rescisao", "ferias", "13 salario",
    "decimo terceiro", "vale transporte", "vale alimentacao",
    "vale refeicao", "plano saude", "plano odontologico", "seguro vida",
    "fgts", "inss empregador",
    # Occupancy and infrastructure
    "aluguel", "locacao", "arrendamento", "condominio", "iptu", "ipva",
    "taxa condominio", "seguro imovel",
    # Utilities
    "agua", "esgoto", "luz", "energia eletrica", "telefone", "internet",
    "banda larga", "fibra optica", "linha telefonica", "telefonia",
    "celular corporativo", "pacote dados",
    # Fixed professional services
    "contador", "contabilidade", "assessoria contabil", "escritorio contabil",
    "advogado", "consultoria juridica", "assessoria juridica", "auditoria",
    "consultoria", "assessoria",
    # Insurance
    "seguro", "apolice", "premio seguro", "seguro responsabilidade",
    "seguro equipamento",
    # Licenses and registrations
    "licenca", "alvara", "anuidade", "mensalidade", "registro profissional",
    "conselho classe", "cro", "crm", "coren", "anvisa",
    "vigilancia sanitaria",
    # Preventive maintenance contracts
    "manutencao preventiva", "contrato manutencao", "manutencao mensal",
    "assistencia tecnica",
    # Software
    "software", "sistema", "licenca software", "assinatura", "saas",
    "cloud", "nuvem", "hospedagem",
    # Depreciation and amortization
    "depreciacao", "amortizacao",
    # Cleaning
    "limpeza", "faxina", "servico limpeza", "material limpeza fixo",
    "higienizacao",
)

VARIABLE_KEYWORDS: tuple[str, ...] = (
    # Medical and dental supplies
    "material medico", "mat medico", "mat. med.", "material odontologico",
    "mat odonto", "mat. odonto", "insumo", "insumos", "descartavel",
    "consumivel",
    # Medications
    "medicamento", "farmaco", "droga", "remedio", "anestesico",
    "antibiotico",
    # Specific materials
    "luva", "mascara", "avental", "touca", "capote", "seringa", "agulha",
    "cateter", "sonda", "gaze", "atadura", "algodao", "alcool",
    "antisseptico", "fio cirurgico", "sutura", "bisturi", "lamina",
    # Dentistry
    "resina", "ionomer", "ionomero", "amalgama", "anestesico odontologico",
    "broca", "lixa", "disco", "mandril", "profilaxia", "fluor", "fluoreto",
    "selante", "clareador", "moldeira", "alginato", "silicone", "gesso",
    "cimento",
    # Radiology
    "filme radiografico", "sensor digital", "revelador", "fixador",
    "solucao reveladora",
    # Laboratory
    "reagente", "teste", "kit", "analise", "exame", "amostra", "cultura",
    "meio cultura", "placa petri",
    # Variable costs
    "custo variavel", "cmv", "custo mercadoria", "custo servico",
    "custo procedimento",
    # Commissions and incentives
    "comissao", "bonus", "premiacao", "incentivo", "participacao resultado",
    # Marketing spend
    "marketing", "publicidade", "propaganda", "anuncio", "divulgacao", "ads",
    "google ads", "facebook ads", "instagram", "redes sociais", "influencer",
    "influenciador", "panfleto", "folder", "banner", "outdoor",
    # Financial fees and interest
    "juros", "juro", "multa", "tarifa bancaria", "iof", "desconto duplicata",
    "antecipacao", "taxa cartao", "maquininha", "tef", "credito",
    # Freight and logistics
    "frete", "entrega", "correio", "sedex", "pac", "transporte", "logistica",
    "despacho", "envio",
    # Packaging
    "embalagem", "sacola", "saco", "caixa", "envelope", "etiqueta", "rotulo",
    # Corrective maintenance
    "manutencao corretiva", "reparo", "conserto", "pecas", "componente",
    "substituicao",
    # Outsourced and temporary labour
    "terceirizado", "freelancer", "autonomo", "temporario", "servico terceiro",
    "prestador servico",
)

FIXED_CATEGORY_TOKENS: tuple[str, ...] = ("pessoal", "administrativa", "folha", "rh")
VARIABLE_CATEGORY_TOKENS: tuple[str, ...] = ("custo", "cmv", "variavel")


@dataclass(frozen=True)
class Recurrence:
    """Recurrence statistics of an expense within its batch."""

    is_recurrent: bool
    average_amount: float
    occurrences: int


def _is_similar(words: list[str], other_words: list[str]) -> bool:
    common = [
        w for w in words if w in other_words and len(w) >= MIN_SIGNIFICANT_WORD_LENGTH
    ]
    return len(common) >= min(len(words), len(other_words)) * SIMILARITY_THRESHOLD


def analyze_recurrence(expense: Expense, batch: Sequence[Expense]) -> Recurrence:
    """Find similar expenses in ``batch`` and measure how stable they are.

    The batch normally includes ``expense`` itself, which then counts as
    one of its own occurrences. Only words of 3+ characters count as
    shared words, while the 70% threshold applies to the full word count.
    """
    words = normalize_text(expense.description).split(" ")
    similar = [
        e
        for e in batch
        if _is_similar(words, normalize_text(e.description).split(" "))
    ]

    occurrences = len(similar)
    if occurrences == 0:
        return Recurrence(is_recurrent=False, average_amount=0.0, occurrences=0)

    average = sum(e.amount for e in similar) / occurrences
    std_dev = math.sqrt(sum((e.amount - average) ** 2 for e in similar) / occurrences)

    is_recurrent = (
        occurrences >= 2
        and average != 0
        and (std_dev / average) < RECURRENCE_CV_THRESHOLD
    )
    return Recurrence(
        is_recurrent=is_recurrent, average_amount=average, occurrences=occurrences
    )


def score_expense(
    expense: Expense,
    batch: Sequence[Expense],
    recurrence: Optional[Recurrence] = None,
) -> int:
    """Return the fixed (positive) / variable (negative) score of an expense."""
    description = expense.description
    category = expense.category or ""
    score = 0

    if contains_any(description, FIXED_KEYWORDS) or contains_any(
        category, FIXED_KEYWORDS
    ):
        score += KEYWORD_WEIGHT

    if contains_any(description, VARIABLE_KEYWORDS) or contains_any(
        category, VARIABLE_KEYWORDS
    ):
        score -= KEYWORD_WEIGHT

    if recurrence is None:
        recurrence = analyze_recurrence(expense, batch)

    if recurrence.is_recurrent:
        deviation = abs(expense.amount - recurrence.average_amount) / abs(
            recurrence.average_amount
        )
        if deviation < 0.2:
            score += 2
        elif deviation < 0.5:
            score += 1

    if recurrence.occurrences >= 3:
        score += 1

    if expense.amount > LARGE_ONE_OFF_AMOUNT and recurrence.occurrences == 1:
        score -= 1

    normalized_category = normalize_text(category)
    if any(t in normalized_category for t in FIXED_CATEGORY_TOKENS):
        score += CATEGORY_WEIGHT
    if any(t in normalized_category for t in VARIABLE_CATEGORY_TOKENS):
        score -= CATEGORY_WEIGHT

    return score


def suggest_expense_type(expense: Expense, batch: Sequence[Expense]) -> str:
    """Suggest 'fixa' or 'variavel' for one expense of a batch."""
    recurrence = analyze_recurrence(expense, batch)
    score = score_expense(expense, batch, recurrence)

    if score == 0:
        return FIXED if recurrence.is_recurrent else VARIABLE
    return FIXED if score > 0 else VARIABLE


def classify_expenses(expenses: Sequence[Expense]) -> list[ClassifiedExpense]:
    """Seed the classification of a batch of expenses.

    Raw expenses get the scored suggestion as ``tipo_despesa`` and the tax
    flags from automatic detection. Expenses that are already classified
    are returned unchanged, so user decisions survive a re-run.
    """
    result: list[ClassifiedExpense] = []
    for expense in expenses:
        if isinstance(expense, ClassifiedExpense):
            result.append(expense)
            continue

        result.append(_seed(expense, expenses))
    return result


def _seed(expense: Expense, batch: Sequence[Expense]) -> ClassifiedExpense:
    suggestion = suggest_expense_type(expense, batch)
    tax = identify_tax(expense.description)
    return ClassifiedExpense(
        date=expense.date,
        description=expense.description,
        category=expense.category,
        amount=expense.amount,
        tipo_despesa=suggestion,
        classification_is_manual=False,
        auto_suggestion=suggestion,
        is_tax=tax is not None,
        tax_scope=tax.scope if tax else None,
        tax_category=tax.category if tax else None,
    )


def _as_classified(
    expense: Expense, batch: Optional[Sequence[Expense]] = None
) -> ClassifiedExpense:
    """Return ``expense`` seeded against ``batch`` when it is still raw.

    The recurrence analysis behind the suggestion needs the rest of the
    batch; without one the expense is only compared with itself.
    """
    if isinstance(expense, ClassifiedExpense):
        return expense
    pool = list(batch) if batch is not None else []
    if not any(e is expense for e in pool):
        pool.append(expense)
    return _seed(expense, pool)


def set_expense_type(
    expense: Expense,
    tipo_despesa: Optional[str],
    batch: Optional[Sequence[Expense]] = None,
) -> ClassifiedExpense:
    """Manually set (or clear, with None) the fixed/variable type.

    ``batch`` is the set of expenses a raw ``expense`` belongs to; it seeds
    the stored automatic suggestion.

    Raises:
        ValueError: if ``tipo_despesa`` is not 'fixa', 'variavel' or None.
    """
    if tipo_despesa is not None and tipo_despesa not in EXPENSE_TYPES:
        raise ValueError(
            f"Invalid expense type '{tipo_despesa}', expected 'fixa' or 'variavel'."
        )
    return replace(
        _as_classified(expense, batch),
        tipo_despesa=tipo_despesa,
        classification_is_manual=True,
    )


def set_tax_flag(
    expense: Expense,
    is_tax: bool,
    scope: Optional[str] = None,
    category: Optional[str] = None,
    batch: Optional[Sequence[Expense]] = None,
) -> ClassifiedExpense:
    """Manually mark or unmark an expense as a tax.

    Marking without a scope defaults to a revenue tax. Unmarking clears the
    scope and category; the explicit False then suppresses automatic
    detection everywhere.
    """
    if scope is not None and scope not in TAX_SCOPES:
        raise ValueError(f"Invalid tax scope '{scope}', expected 'receita' or 'lucro'.")

    if is_tax:
        return replace(
            _as_classified(expense, batch),
            is_tax=True,
            tax_scope=scope or REVENUE_SCOPE,
            tax_category=category,
            classification_is_manual=True,
        )
    return replace(
        _as_classified(expense, batch),
        is_tax=False,
        tax_scope=None,
        tax_category=None,
        classification_is_manual=True,
    )


def set_custom_category(
    expense: Expense, category: str, batch: Optional[Sequence[Expense]] = None
) -> ClassifiedExpense:
    """Manually assign a display category."""
    return replace(
        _as_classified(expense, batch),
        custom_category=category,
        classification_is_manual=True,
    )


def reapply_suggestions(expenses: Sequence[Expense]) -> list[ClassifiedExpense]:
    """Reset every expense to its automatic suggestion and clear manual flags."""
    return [
        replace(e, tipo_despesa=e.auto_suggestion, classification_is_manual=False)
        for e in classify_expenses(expenses)
    ]


@dataclass(frozen=True)
class ClassificationSummary:
    """Progress of the fixed/variable classification of a batch."""

    total: float
    fixed: float
    variable: float
    taxes: float
    unclassified: float
    pending: int

    @property
    def percent_classified(self) -> float:
        if self.total <= 0:
            return 0.0
        return (self.fixed + self.variable + self.taxes) / self.total * 100

    @property
    def is_complete(self) -> bool:
        """True once every non-tax expense has a fixed/variable type."""
        return self.pending == 0


def summarize_classification(expenses: Sequence[Expense]) -> ClassificationSummary:
    """Summarize amounts by classification state.

    Taxes do not need a fixed/variable type and count as classified.
    Raw expenses count as unclassified unless they are taxes.
    """
    total = fixed = variable = taxes = unclassified = 0.0
    pending = 0
    for expense in expenses:
        total += expense.amount
        if resolve_tax(expense) is not None:
            taxes += expense.amount
            continue
        tipo = expense.tipo_despesa if isinstance(expense, ClassifiedExpense) else None
        if tipo == FIXED:
            fixed += expense.amount
        elif tipo == VARIABLE:
            variable += expense.amount
        else:
            unclassified += expense.amount
            pending += 1

    return ClassificationSummary(
        total=total,
        fixed=fixed,
        variable=variable,
        taxes=taxes,
        unclassified=unclassified,
        pending=pending,
    )

