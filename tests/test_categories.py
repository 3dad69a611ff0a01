import pytest

from clinic_dre.categories import (
    ADMINISTRATIVE,
    COST_OF_SERVICES,
    FINANCIAL,
    FINANCIAL_REVENUE,
    OTHER_OPERATING,
    PERSONNEL,
    PRODUCT_REVENUE,
    SALES_MARKETING,
    SERVICE_REVENUE,
    UNCATEGORIZED,
    categorize_expense,
    categorize_revenue,
    contains_any,
    normalize_text,
)


def test_normalize_text_strips_case_accents_and_punctuation() -> None:
    assert normalize_text("  Salário / Pró-labore  ") == "salario pro labore"
    assert normalize_text(None) == ""


def test_contains_any_is_accent_insensitive() -> None:
    assert contains_any("Manutenção do ar", ["manutencao"])
    assert contains_any("manutencao", ["Manutenção"])
    assert not contains_any("", ["x"])


@pytest.mark.parametrize(
    "description, expected",
    [
        ("Material médico descartável", COST_OF_SERVICES),
        ("Salário recepcionista", PERSONNEL),
        ("SALÁRIO", PERSONNEL),
        ("Aluguel da sala", ADMINISTRATIVE),
        ("Google Ads campanha", SALES_MARKETING),
        ("Juros cheque especial", FINANCIAL),
        ("Coisa aleatória", OTHER_OPERATING),
    ],
)
def test_categorize_expense_from_description(description, expected) -> None:
    assert categorize_expense(description) == expected


def test_categorize_expense_maps_supplied_category() -> None:
    assert categorize_expense("x", "Despesas administrativas") == ADMINISTRATIVE
    assert categorize_expense("x", "Marketing digital") == SALES_MARKETING
    assert categorize_expense("x", "Folha de pagamento") == PERSONNEL
    assert categorize_expense("x", "Custo dos Serviços") == COST_OF_SERVICES


def test_categorize_expense_keeps_unknown_supplied_category() -> None:
    assert categorize_expense("Passagem aérea", "Viagens") == "Viagens"


def test_placeholder_category_falls_back_to_description() -> None:
    assert categorize_expense("Aluguel", UNCATEGORIZED) == ADMINISTRATIVE
    assert categorize_expense("Aluguel", "   ") == ADMINISTRATIVE


@pytest.mark.parametrize(
    "description, category, expected",
    [
        ("Procedimento estético", "", SERVICE_REVENUE),
        ("Venda de suplemento", "", PRODUCT_REVENUE),
        ("Rendimento aplicação", "", FINANCIAL_REVENUE),
        ("Algo", None, SERVICE_REVENUE),
        ("x", "Receita financeira", FINANCIAL_REVENUE),
        ("x", "Convênios", "Convênios"),
    ],
)
def test_categorize_revenue(description, category, expected) -> None:
    assert categorize_revenue(description, category) == expected
