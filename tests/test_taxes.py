import pytest

from clinic_dre.models import (
    PROFIT_SCOPE,
    REVENUE_SCOPE,
    ClassifiedExpense,
    ParsedExpense,
)
from clinic_dre.taxes import (
    CSLL,
    DEFAULT_RATE_TABLES,
    IRPJ,
    ISS,
    OTHER_TAX,
    PIS,
    SIMPLES,
    TaxRegime,
    estimate_regime_taxes,
    identify_tax,
    load_rate_tables,
    resolve_tax,
)


def _expense(description: str, **kwargs) -> ClassifiedExpense:
    return ClassifiedExpense(
        date="2024-03-10",
        description=description,
        category="Impostos e Taxas",
        amount=100.0,
        **kwargs,
    )


@pytest.mark.parametrize(
    "description, scope, category",
    [
        ("Pagamento PIS março", REVENUE_SCOPE, PIS),
        ("ISSQN competência 03/2024", REVENUE_SCOPE, ISS),
        ("Guia DAS Simples Nacional", REVENUE_SCOPE, SIMPLES),
        ("IRPJ trimestral", PROFIT_SCOPE, IRPJ),
        ("Contribuição Social sobre Lucro", PROFIT_SCOPE, CSLL),
        ("DARF diversos", REVENUE_SCOPE, OTHER_TAX),
        ("FGTS março", REVENUE_SCOPE, OTHER_TAX),
    ],
)
def test_identify_tax(description, scope, category) -> None:
    tax = identify_tax(description)
    assert tax is not None
    assert tax.scope == scope
    assert tax.category == category


@pytest.mark.parametrize("description", ["Aluguel", "", None, "Material médico"])
def test_identify_tax_never_guesses(description) -> None:
    assert identify_tax(description) is None


def test_explicit_false_flag_suppresses_detection() -> None:
    expense = _expense("IRPJ referente a março", is_tax=False)
    assert resolve_tax(expense) is None


def test_explicit_true_flag_defaults_to_revenue_other() -> None:
    tax = resolve_tax(_expense("Guia avulsa", is_tax=True))
    assert tax.scope == REVENUE_SCOPE
    assert tax.category == OTHER_TAX


def test_explicit_true_flag_keeps_manual_scope_and_category() -> None:
    tax = resolve_tax(
        _expense(
            "Guia avulsa", is_tax=True, tax_scope=PROFIT_SCOPE, tax_category="CSLL"
        )
    )
    assert tax.scope == PROFIT_SCOPE
    assert tax.category == "CSLL"


def test_undecided_and_raw_expenses_use_detection() -> None:
    raw = ParsedExpense("2024-03-10", "ISS março", "Impostos e Taxas", 80.0)
    assert resolve_tax(raw).category == ISS
    assert resolve_tax(_expense("ISS março")).category == ISS


def test_tax_regime_parse() -> None:
    assert TaxRegime.parse("lucro_presumido") is TaxRegime.LUCRO_PRESUMIDO
    assert TaxRegime.parse("LUCRO_REAL") is TaxRegime.LUCRO_REAL
    assert TaxRegime.parse(TaxRegime.SIMPLES_NACIONAL) is TaxRegime.SIMPLES_NACIONAL
    with pytest.raises(ValueError):
        TaxRegime.parse("mei")


def test_estimate_simples_nacional() -> None:
    revenue, profit = estimate_regime_taxes(
        TaxRegime.SIMPLES_NACIONAL, 100000.0, 50000.0
    )
    assert revenue.simples == pytest.approx(6000.0)
    assert revenue.total == pytest.approx(6000.0)
    assert profit.total == 0.0


def test_estimate_lucro_presumido_uses_gross_revenue_for_profit_taxes() -> None:
    revenue, profit = estimate_regime_taxes(TaxRegime.LUCRO_PRESUMIDO, 100000.0, -5.0)
    assert revenue.pis == pytest.approx(650.0)
    assert revenue.cofins == pytest.approx(3000.0)
    assert revenue.iss == pytest.approx(5000.0)
    assert profit.irpj == pytest.approx(4800.0)
    assert profit.csll == pytest.approx(2880.0)


def test_estimate_lucro_real_applies_surcharge_above_threshold() -> None:
    revenue, profit = estimate_regime_taxes(TaxRegime.LUCRO_REAL, 100000.0, 50000.0)
    assert revenue.total == pytest.approx(1650.0 + 7600.0 + 5000.0)
    assert profit.irpj == pytest.approx(7500.0 + 3000.0)
    assert profit.csll == pytest.approx(4500.0)

    _, small = estimate_regime_taxes(TaxRegime.LUCRO_REAL, 100000.0, 10000.0)
    assert small.irpj == pytest.approx(1500.0)


def test_estimate_lucro_real_without_profit_has_no_profit_tax() -> None:
    _, profit = estimate_regime_taxes(TaxRegime.LUCRO_REAL, 1000.0, -100.0)
    assert profit.total == 0.0


def test_load_rate_tables_merges_overrides() -> None:
    tables = load_rate_tables({"simples_nacional": {"simples": 0.1}})

    assert tables[TaxRegime.SIMPLES_NACIONAL].simples == 0.1
    assert tables[TaxRegime.LUCRO_REAL] == DEFAULT_RATE_TABLES[TaxRegime.LUCRO_REAL]
    assert DEFAULT_RATE_TABLES[TaxRegime.SIMPLES_NACIONAL].simples == 0.06


@pytest.mark.parametrize(
    "overrides",
    [
        {"mei": {"simples": 0.05}},
        {"simples_nacional": {"unknown": 0.05}},
        {"simples_nacional": {"simples": "abc"}},
        {"lucro_real": {"profit_tax_base": "ebitda"}},
        {"lucro_real": 0.1},
    ],
)
def test_load_rate_tables_rejects_invalid_overrides(overrides) -> None:
    with pytest.raises(ValueError):
        load_rate_tables(overrides)
