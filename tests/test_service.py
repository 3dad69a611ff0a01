import asyncio

import pytest

from clinic_dre.models import ParsedExpense, ParsedRevenue
from clinic_dre.service import (
    InMemoryReportRepository,
    ReportNotFoundError,
    ReportService,
    filter_by_month,
)
from clinic_dre.taxes import TaxRegime


def _repository() -> InMemoryReportRepository:
    repository = InMemoryReportRepository()
    repository.add_report(
        "r1",
        revenues=[
            ParsedRevenue("2024-03-01", "Consulta", "Receita de Serviços", 10000.0),
            ParsedRevenue("2024-04-01", "Consulta", "Receita de Serviços", 5000.0),
        ],
        expenses=[
            ParsedExpense("2024-03-05", "Aluguel", "Administrativas", 2000.0),
        ],
    )
    return repository


def test_filter_by_month() -> None:
    records = [
        ParsedRevenue("2024-03-01", "a", "x", 1.0),
        ParsedRevenue("2024-04-01", "b", "x", 2.0),
    ]
    assert filter_by_month(records, "2024-03") == [records[0]]
    assert filter_by_month(records, None) == records
    assert filter_by_month(iter(records), "") == records


def test_recalculate_saves_statement() -> None:
    repository = _repository()
    service = ReportService(repository)

    dre = asyncio.run(service.recalculate("r1"))

    assert repository.statements["r1"] is dre
    assert dre.gross_revenue == pytest.approx(15000.0)
    assert dre.operating_expenses.total == pytest.approx(2000.0)
    assert dre.fixed_expenses_total == pytest.approx(2000.0)


def test_recalculate_single_month() -> None:
    service = ReportService(_repository())
    dre = asyncio.run(service.recalculate("r1", month="2024-03"))

    assert dre.gross_revenue == pytest.approx(10000.0)
    assert dre.net_revenue == pytest.approx(9400.0)
    assert dre.net_profit == pytest.approx(7400.0)


def test_regime_is_passed_to_engine() -> None:
    service = ReportService(_repository(), regime="lucro_presumido")
    assert service.regime is TaxRegime.LUCRO_PRESUMIDO

    dre = asyncio.run(service.recalculate("r1", month="2024-03"))
    assert dre.regime is TaxRegime.LUCRO_PRESUMIDO
    assert dre.profit_taxes.irpj == pytest.approx(480.0)


def test_missing_report_raises() -> None:
    service = ReportService(_repository())

    with pytest.raises(ReportNotFoundError):
        asyncio.run(service.recalculate("unknown"))
    with pytest.raises(ReportNotFoundError, match="2025-01"):
        asyncio.run(service.recalculate("r1", month="2025-01"))


def test_add_expense_recomputes() -> None:
    repository = _repository()
    service = ReportService(repository)
    expense = ParsedExpense("2024-03-10", "Salários equipe", "Pessoal", 3000.0)

    expense_id, dre = asyncio.run(service.add_expense("r1", expense, month="2024-03"))

    assert expense_id == "2"
    assert dre.operating_expenses.total == pytest.approx(5000.0)
    assert dre.operating_expenses.personnel == pytest.approx(3000.0)
    assert repository.statements["r1"] is dre


def test_update_expense_recomputes() -> None:
    service = ReportService(_repository())
    updated = ParsedExpense("2024-03-05", "Aluguel", "Administrativas", 2500.0)

    dre = asyncio.run(service.update_expense("r1", "1", updated, month="2024-03"))

    assert dre.operating_expenses.total == pytest.approx(2500.0)


def test_delete_expense_recomputes() -> None:
    service = ReportService(_repository())

    dre = asyncio.run(service.delete_expense("r1", "1", month="2024-03"))

    assert dre.operating_expenses.total == 0.0
    assert dre.net_profit == pytest.approx(9400.0)


def test_unknown_expense_id_raises() -> None:
    service = ReportService(_repository())

    with pytest.raises(ReportNotFoundError):
        asyncio.run(service.delete_expense("r1", "42"))
    with pytest.raises(ReportNotFoundError):
        asyncio.run(service.add_expense("missing", ParsedExpense("", "x", "", 1.0)))


def test_added_tax_expense_goes_to_profit_taxes() -> None:
    repository = _repository()
    service = ReportService(repository)
    irpj = ParsedExpense("2024-03-07", "IRPJ trimestral", "Impostos e Taxas", 300.0)

    dre = asyncio.run(service.add_expense("r1", irpj, month="2024-03"))[1]

    assert dre.profit_taxes.irpj == pytest.approx(300.0)
    assert dre.operating_expenses.total == pytest.approx(2000.0)


def test_build_statement_has_no_side_effects() -> None:
    repository = _repository()
    service = ReportService(repository, regime=TaxRegime.LUCRO_REAL)
    revenues = [ParsedRevenue("2024-03-01", "Consulta", "Receita de Serviços", 100.0)]

    dre = service.build_statement(revenues, [])

    assert dre.gross_revenue == pytest.approx(100.0)
    assert repository.statements == {}
