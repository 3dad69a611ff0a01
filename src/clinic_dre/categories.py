# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Category heuristics for revenues and expenses.

The category label assigned here is used both for display and as an input
of the DRE engine (cost of services vs. operating expenses, and the
personnel / administrative / sales / financial breakdown).

Classification is purely data driven: each keyword table is an ordered
sequence of ``(label, keywords)`` pairs and the first group containing a
keyword found in the text wins. Matching is a case- and
diacritic-insensitive substring test (see ``normalize_text``).
"""

import re
import unicodedata
from collections.abc import Iterable, Sequence
from typing import Optional

# Expense labels
COST_OF_SERVICES = "Custo dos Serviços"
PERSONNEL = "Pessoal"
ADMINISTRATIVE = "Administrativas"
SALES_MARKETING = "Vendas e Marketing"
TAXES_FEES = "Impostos e Taxas"
FINANCIAL = "Despesas Financeiras"
OTHER_OPERATING = "Outras Despesas Operacionais"

# Revenue labels
SERVICE_REVENUE = "Receita de Serviços"
PRODUCT_REVENUE = "Receita de Produtos"
FINANCIAL_REVENUE = "Receitas Financeiras"

UNCATEGORIZED = "Não categorizado"

KeywordTable = Sequence[tuple[str, Sequence[str]]]

# Canonical mapping for categories supplied by the ledger itself.
SUPPLIED_EXPENSE_CATEGORIES: KeywordTable = (
    (ADMINISTRATIVE, ("admin",)),
    (SALES_MARKETING, ("venda", "marketing")),
    (PERSONNEL, ("pessoa", "salario", "folha")),
    (TAXES_FEES, ("impost", "taxa")),
    (COST_OF_SERVICES, ("custo", "csp", "material")),
)

# Description-based groups, in priority order.
EXPENSE_DESCRIPTION_GROUPS: KeywordTable = (
    (
        COST_OF_SERVICES,
        (
            "material medico", "medicamento", "insumo", "equipamento medico",
            "instrumental", "descartavel", "reagente", "sutura", "luva",
            "seringa", "gaze", "algodao",
        ),
    ),
    (
        PERSONNEL,
        (
            "salario", "folha", "inss", "fgts", "vale", "pro labore",
            "prolabore", "ferias", "13º", "13o", "beneficio",
            "plano de saude", "convenio", "vale transporte",
            "vale refeicao", "vr", "vt",
        ),
    ),
    (
        ADMINISTRATIVE,
        (
            "aluguel", "agua", "luz", "energia", "eletrica", "telefone",
            "celular", "internet", "contabilidade", "contabil", "advogado",
            "advocacia", "juridico", "escritorio", "office", "manutencao",
            "reparo", "limpeza", "higienizacao", "seguranca", "alarme",
            "condominio", "iptu", "material de expediente", "papelaria",
            "xerox", "impressora", "toner",
        ),
    ),
    (
        SALES_MARKETING,
        (
            "marketing", "publicidade", "propaganda", "google ads",
            "facebook ads", "instagram", "site", "website", "redes sociais",
            "anuncio", "midia", "promocao", "desconto", "campanha", "seo",
            "design grafico", "cartao de visita", "folder",
        ),
    ),
    (
        TAXES_FEES,
        (
            "imposto", "taxa", "tributo", "irpj", "csll", "pis", "cofins",
            "iss", "issqn", "simples", "darf", "gps", "das", "contribuicao",
        ),
    ),
    (
        FINANCIAL,
        (
            "juros", "multa", "tarifa bancaria", "banco",
            "cartao de credito", "emprestimo", "financiamento",
        ),
    ),
)

SUPPLIED_REVENUE_CATEGORIES: KeywordTable = (
    (SERVICE_REVENUE, ("servico", "consulta", "atendimento")),
    (PRODUCT_REVENUE, ("produto", "venda", "mercadoria")),
    (FINANCIAL_REVENUE, ("financeira", "juros", "rendimento")),
)

REVENUE_DESCRIPTION_GROUPS: KeywordTable = (
    (
        SERVICE_REVENUE,
        (
            "consulta", "atendimento", "procedimento", "exame", "tratamento",
            "sessao", "cirurgia", "avaliacao", "terapia", "acompanhamento",
            "retorno", "diagnostico", "checkup",
        ),
    ),
    (
        PRODUCT_REVENUE,
        (
            "venda", "produto", "medicamento", "material", "suplemento",
            "ortese", "protese", "equipamento",
        ),
    ),
    (
        FINANCIAL_REVENUE,
        (
            "rendimento", "juros recebidos", "juros", "aplicacao",
            "investimento",
        ),
    ),
)


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, strip diacritics and punctuation, collapse whitespace."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text).lower())
    stripped = "".join(c for c in decomposed if unicodedata.category(c) != "Mn")
    stripped = re.sub(r"[^\w\s]", " ", stripped)
    return re.sub(r"\s+", " ", stripped).strip()


def contains_any(text: Optional[str], keywords: Iterable[str]) -> bool:
    """Return True if ``text`` contains at least one of ``keywords``."""
    normalized = normalize_text(text)
    if not normalized:
        return False
    return any(normalize_text(k) in normalized for k in keywords)


def match_group(text: Optional[str], table: KeywordTable) -> Optional[str]:
    """Return the label of the first group matching ``text``, if any."""
    for label, keywords in table:
        if contains_any(text, keywords):
            return label
    return None


def _is_usable_category(category: Optional[str]) -> bool:
    return bool(category and category.strip()) and category != UNCATEGORIZED


def categorize_expense(description: str, category: Optional[str] = None) -> str:
    """Assign a category label to an expense.

    A usable supplied category is mapped onto the canonical labels when one
    of their keywords is contained in it, otherwise it is returned
    unchanged. Without a usable category, the description is matched
    against ``EXPENSE_DESCRIPTION_GROUPS`` and the fallback is
    "Outras Despesas Operacionais".
    """
    if _is_usable_category(category):
        return match_group(category, SUPPLIED_EXPENSE_CATEGORIES) or category

    return match_group(description, EXPENSE_DESCRIPTION_GROUPS) or OTHER_OPERATING


def categorize_revenue(description: str, category: Optional[str] = None) -> str:
    """Assign a category label to a revenue line (default: service revenue)."""
    if _is_usable_category(category):
        return match_group(category, SUPPLIED_REVENUE_CATEGORIES) or category

    return match_group(description, REVENUE_DESCRIPTION_GROUPS) or SERVICE_REVENUE
