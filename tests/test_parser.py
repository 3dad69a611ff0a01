import pandas as pd
import pytest

from clinic_dre.categories import (
    ADMINISTRATIVE,
    COST_OF_SERVICES,
    PRODUCT_REVENUE,
    SERVICE_REVENUE,
)
from clinic_dre.models import CREDIT, DEBIT
from clinic_dre.parser import (
    DEFAULT_EXPENSE_DESCRIPTION,
    is_spreadsheet,
    parse_bank_statement,
    parse_expenses,
    parse_revenues,
    read_rows,
    split_rows,
)

REVENUES_CSV = (
    "Data;Descrição;Categoria;Valor\n"
    "01/03/2024;Consulta clínica;Serviços;1.500,00\n"
    "02/03/2024;Venda de produto;;200,50\n"
    "03/03/2024;Linha curta\n"
    "04/03/2024;Estorno;Serviços;0,00\n"
)


def test_parse_revenues_four_columns_with_diagnostics() -> None:
    result = parse_revenues(REVENUES_CSV)

    assert len(result) == 2
    assert result.rows_read == 4
    assert result.skipped_short == 1
    assert result.skipped_zero == 1
    assert result.skipped == 2

    first, second = result
    assert first.date == "2024-03-01"
    assert first.description == "Consulta clínica"
    assert first.category == SERVICE_REVENUE
    assert first.amount == pytest.approx(1500.0)

    assert second.category == PRODUCT_REVENUE
    assert second.amount == pytest.approx(200.5)


def test_row_skip_tolerance_keeps_the_well_formed_row() -> None:
    content = (
        "date,description,category,amount\n"
        "2024-03-01,Consulta,Serviços,100.00\n"
        "2024-03-02,incompleta\n"
    )
    result = parse_revenues(content)
    assert len(result) == 1
    assert result.skipped_short == 1


def test_parse_revenues_drops_negative_amounts() -> None:
    content = "date,description,amount\n2024-03-01,Devolução,-50.00\n"
    result = parse_revenues(content)
    assert len(result) == 0
    assert result.skipped_zero == 1


def test_three_column_rows_reuse_description_as_category_and_strip_bom() -> None:
    content = "\ufeffdate,description,amount\n\"2024-03-01\",\"Consulta\",\"100.00\"\n"
    result = parse_revenues(content)

    assert len(result) == 1
    record = result[0]
    assert record.date == "2024-03-01"
    assert record.description == "Consulta"
    assert record.category == SERVICE_REVENUE
    assert record.amount == pytest.approx(100.0)


def test_parse_expenses_takes_absolute_amounts() -> None:
    content = (
        "Data;Descrição;Categoria;Valor\n"
        "05/03/2024;Material médico;Custo dos Serviços;-350,10\n"
        "06/03/2024;;Administrativas;10,00\n"
        "07/03/2024;Nada;Administrativas;0\n"
    )
    result = parse_expenses(content)

    assert len(result) == 2
    assert result.skipped_zero == 1

    material, untitled = result
    assert material.amount == pytest.approx(350.1)
    assert material.category == COST_OF_SERVICES
    assert untitled.description == DEFAULT_EXPENSE_DESCRIPTION
    assert untitled.category == ADMINISTRATIVE


def test_empty_content_yields_empty_result() -> None:
    assert split_rows("") == []
    assert split_rows("   \n  ") == []
    result = parse_expenses("")
    assert len(result) == 0
    assert result.rows_read == 0


def test_header_only_yields_no_records() -> None:
    assert len(parse_expenses("date;description;amount\n")) == 0


def test_bank_statement_three_columns_uses_sign() -> None:
    content = (
        "Data,Descrição,Valor\n"
        "01/03/2024,PIX recebido,1500.00\n"
        "02/03/2024,Pagamento fornecedor,-350.10\n"
    )
    result = parse_bank_statement(content)

    assert [t.type for t in result] == [CREDIT, DEBIT]
    assert [t.amount for t in result] == pytest.approx([1500.0, 350.1])


def test_bank_statement_four_columns_uses_type_token() -> None:
    content = (
        "Data;Histórico;Tipo;Valor\n"
        "01/03/2024;Depósito;Crédito;1.000,00\n"
        "02/03/2024;Tarifa;D;15,00\n"
        "03/03/2024;TED;C;200,00\n"
        "04/03/2024;Zerado;C;0,00\n"
    )
    result = parse_bank_statement(content)

    assert [t.type for t in result] == [CREDIT, DEBIT, CREDIT]
    assert [t.amount for t in result] == pytest.approx([1000.0, 15.0, 200.0])
    assert result.skipped_zero == 1


def test_row_matrix_source_is_accepted() -> None:
    rows = [
        ["Data", "Descrição", "Valor"],
        ["2024-03-01", "Consulta", 150.0],
        [None, None, None],
    ]
    result = parse_revenues(rows)

    assert len(result) == 1
    assert result[0].amount == pytest.approx(150.0)
    assert result[0].date == "2024-03-01"


def test_is_spreadsheet() -> None:
    assert is_spreadsheet("receitas.XLSX")
    assert is_spreadsheet("old.xls")
    assert not is_spreadsheet("receitas.csv")


def test_read_rows_csv_with_latin1_fallback(tmp_path) -> None:
    path = tmp_path / "despesas.csv"
    content = "Data;Descrição;Valor\n01/03/2024;Aluguel;2.000,00\n"
    path.write_bytes(content.encode("latin-1"))

    rows = read_rows(path)

    assert rows[0] == ["Data", "Descrição", "Valor"]
    result = parse_expenses(rows)
    assert result[0].amount == pytest.approx(2000.0)


def test_read_rows_spreadsheet(tmp_path) -> None:
    path = tmp_path / "receitas.xlsx"
    pd.DataFrame(
        [
            ["Data", "Descrição", "Categoria", "Valor"],
            ["01/03/2024", "Consulta", "Serviços", "1500.5"],
            ["02/03/2024", "Exame", "Serviços", "300"],
        ]
    ).to_excel(path, index=False, header=False)

    rows = read_rows(path)
    result = parse_revenues(rows)

    assert len(rows) == 3
    assert [r.amount for r in result] == pytest.approx([1500.5, 300.0])
    assert result[1].date == "2024-03-02"


def test_read_rows_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        read_rows(tmp_path / "missing.csv")
