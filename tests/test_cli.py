import sys
from pathlib import Path

import pytest

from clinic_dre import __version__, cli

REVENUES = """data;descricao;categoria;valor
01/03/2024;Consulta particular;Consultas;R$ 6.000,00
15/03/2024;Procedimento estético;Procedimentos;4.000,00
"""

EXPENSES = """data;descricao;categoria;valor
05/03/2024;Aluguel consultório;Administrativas;2.000,00
10/03/2024;Luvas descartáveis;Materiais;300,00
"""

BANK = """data;descricao;tipo;valor
01/03/2024;PIX recebido;Crédito;6.000,00
15/03/2024;PIX recebido;Crédito;4.000,00
05/03/2024;Pagamento aluguel;Débito;2.000,00
10/03/2024;Fornecedor;Débito;300,00
"""


@pytest.fixture
def ledgers(tmp_path: Path, monkeypatch) -> Path:
    (tmp_path / "receitas.csv").write_text(REVENUES, encoding="utf-8")
    (tmp_path / "despesas.csv").write_text(EXPENSES, encoding="utf-8")
    (tmp_path / "extrato.csv").write_text(BANK, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def _run(monkeypatch, *args: str) -> None:
    monkeypatch.setattr(sys, "argv", ["clinic-dre", *args])
    cli.main()


def test_version(monkeypatch, capsys) -> None:
    _run(monkeypatch, "--version")
    assert __version__ in capsys.readouterr().out


def test_missing_inputs_exit(monkeypatch, ledgers) -> None:
    with pytest.raises(SystemExit):
        _run(monkeypatch, "--revenues", "receitas.csv")


def test_missing_file_exits(monkeypatch, ledgers) -> None:
    with pytest.raises(SystemExit):
        _run(monkeypatch, "--revenues", "receitas.csv", "--expenses", "nope.csv")


def test_table_output(monkeypatch, capsys, ledgers) -> None:
    _run(
        monkeypatch,
        "--revenues",
        "receitas.csv",
        "--expenses",
        "despesas.csv",
        "--bank",
        "extrato.csv",
        "--view",
        "detailed",
    )
    out = capsys.readouterr().out

    assert "=== DRE - Demonstração do Resultado do Exercício ===" in out
    assert "Receita Bruta" in out
    assert "Lucro Líquido" in out
    assert "=== Despesas por categoria ===" in out
    assert "=== Maiores despesas ===" in out
    assert "=== Conciliação bancária ===" in out
    assert "Nenhuma divergência relevante" in out
    assert not (ledgers / "data").exists()


def test_csv_output(monkeypatch, capsys, ledgers) -> None:
    _run(
        monkeypatch,
        "--revenues",
        "receitas.csv",
        "--expenses",
        "despesas.csv",
        "--display-mode",
        "csv",
        "--output",
        "out",
        "--regime",
        "lucro_presumido",
    )
    out = capsys.readouterr().out

    written = sorted(p.name.split("_20")[0] for p in (ledgers / "out").glob("*.csv"))
    assert written == [
        "dre",
        "expenses_by_category",
        "revenues_by_category",
        "top_expenses",
    ]
    assert "Receita Bruta" not in out
    assert out.count("Wrote ") == 4


def test_config_file_sets_company_name(monkeypatch, capsys, ledgers) -> None:
    (ledgers / "clinic_dre_config.toml").write_text(
        '[company]\nname = "Clínica Teste"\n', encoding="utf-8"
    )
    _run(monkeypatch, "--revenues", "receitas.csv", "--expenses", "despesas.csv")

    assert "Clínica Teste" in capsys.readouterr().out


def test_month_without_records_warns(monkeypatch, capsys, ledgers) -> None:
    _run(
        monkeypatch,
        "--revenues",
        "receitas.csv",
        "--expenses",
        "despesas.csv",
        "--month",
        "2023-01",
    )
    assert "no revenues or expenses found" in capsys.readouterr().out
