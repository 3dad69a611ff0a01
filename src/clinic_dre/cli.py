# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for Clinic DRE.

This module wires together the main building blocks of Clinic DRE:

- configuration (company, tax regime, rate tables, display options),
- ledger readers and parsers (CSV text or Excel workbooks),
- the fixed/variable expense classifier,
- the DRE aggregation engine,
- the bank reconciliation comparator,
- view helpers (detail levels and tabular rendering).

The CLI is intentionally thin: it does not implement any financial logic
itself.


High-level pipeline
-------------------

1) Load the TOML configuration (``clinic_dre_config.toml`` by default,
   built-in defaults when that file does not exist).

2) Read the revenue and expense ledgers (and the optional bank statement)
   and parse them into records. Skipped rows are reported.

3) Optionally keep a single month (``--month YYYY-MM``).

4) Seed the fixed/variable classification of the expenses.

5) Generate the income statement for the selected tax regime, and the
   bank reconciliation when a bank statement was given.

6) Render the statement, category breakdowns, top expenses and the
   reconciliation as console tables and/or CSV files.


Examples
--------

    python -m clinic_dre.cli --revenues receitas.csv --expenses despesas.xlsx

    python -m clinic_dre.cli --revenues r.csv --expenses d.csv --bank extrato.csv \\
        --regime lucro_presumido --view detailed --display-mode both
"""

import argparse
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .classifier import classify_expenses, summarize_classification
from .config import DEFAULT_CONFIG_FILE, DISPLAY_MODES, AppConfig, load_app_config
from .engine import generate_dre
from .parser import parse_bank_statement, parse_expenses, parse_revenues, read_rows
from .reconciliation import ReconciliationAnalysis, format_brl, reconcile
from .service import filter_by_month
from .taxes import TaxRegime
from .views import (
    VIEWS,
    aggregate_expenses_by_category,
    aggregate_revenues_by_category,
    apply_view_level_filter,
    statement_to_frame,
    top_expenses,
)

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m clinic_dre.cli",
        description=(
            "Clinic DRE - Income statement & bank reconciliation engine for "
            "small clinics. Reads revenue, expense and bank-statement exports, "
            "classifies expenses and renders the DRE."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of clinic_dre and exit.",
    )

    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            f"'{DEFAULT_CONFIG_FILE}' in the current directory is used when present."
        ),
    )

    # Inputs
    ap.add_argument(
        "--revenues",
        dest="revenues_path",
        metavar="PATH",
        help="Revenue ledger (CSV or Excel).",
    )
    ap.add_argument(
        "--expenses",
        dest="expenses_path",
        metavar="PATH",
        help="Expense ledger (CSV or Excel).",
    )
    ap.add_argument(
        "--bank",
        dest="bank_path",
        metavar="PATH",
        help="Optional bank statement (CSV or Excel) used for reconciliation.",
    )
    ap.add_argument(
        "--month",
        metavar="YYYY-MM",
        help="Only keep records dated in this month.",
    )

    ap.add_argument(
        "--regime",
        choices=[r.value for r in TaxRegime],
        help="Override the tax regime defined in the configuration file.",
    )

    ap.add_argument(
        "--view",
        choices=list(VIEWS),
        help=(
            "Level of detail of the statement. simplified: results only; "
            "regular: results and components; detailed: all lines."
        ),
    )

    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=list(DISPLAY_MODES),
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, "
            "'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help=(
            "Output directory where CSV files will be written when display "
            "mode includes 'csv'. Defaults to 'data/output'."
        ),
    )

    ap.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override the logging level from the configuration file.",
    )

    return ap


def _load_config(config_path: Optional[str]) -> AppConfig:
    if config_path:
        return load_app_config(config_path)
    if Path(DEFAULT_CONFIG_FILE).is_file():
        return load_app_config()
    return AppConfig()


def _reconciliation_frame(analysis: ReconciliationAnalysis) -> pd.DataFrame:
    rows = [
        ("Receitas registradas", analysis.recorded_revenue),
        ("Créditos no banco", analysis.bank_credits),
        ("Diferença nas receitas", analysis.revenue_difference),
        ("Despesas registradas", analysis.recorded_expenses),
        ("Débitos no banco", analysis.bank_debits),
        ("Diferença nas despesas", analysis.expense_difference),
        ("Taxa de reconciliação (%)", analysis.reconciliation_rate),
    ]
    return pd.DataFrame(
        [{"name": name, "amount": round(value, 2)} for name, value in rows]
    )


def main() -> None:
    """Entry point for the Clinic DRE CLI.

    Parses command-line arguments, loads the configuration, reads and parses
    the ledgers, classifies expenses, generates the income statement (and
    the reconciliation when a bank statement is given) and renders the
    results as console tables and/or CSV files.
    """
    parser = _build_parser()
    args = parser.parse_args()

    if args.version:
        print(f"clinic_dre version {__version__}")
        return

    if not args.revenues_path or not args.expenses_path:
        parser.error("--revenues and --expenses are required.")

    # 1) Configuration and logging
    try:
        config = _load_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    logging.basicConfig(
        level=args.log_level or config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    regime = TaxRegime.parse(args.regime) if args.regime else config.regime
    view = args.view or config.view
    display_mode = args.display_mode or config.display_mode

    # 2) Read and parse inputs
    paths = {
        "--revenues": args.revenues_path,
        "--expenses": args.expenses_path,
        "--bank": args.bank_path,
    }
    for option, raw_path in paths.items():
        if raw_path and not Path(raw_path).is_file():
            parser.error(f"File for {option} not found: {raw_path}")

    revenues_result = parse_revenues(read_rows(args.revenues_path))
    expenses_result = parse_expenses(read_rows(args.expenses_path))
    bank_result = None
    if args.bank_path:
        bank_result = parse_bank_statement(read_rows(args.bank_path))

    for label, result in (
        ("revenues", revenues_result),
        ("expenses", expenses_result),
        ("bank transactions", bank_result),
    ):
        if result is not None and result.skipped:
            print(
                f"Warning: {result.skipped} {label} row(s) skipped "
                f"out of {result.rows_read}."
            )

    # 3) Month filter
    revenues = filter_by_month(revenues_result, args.month)
    expenses = filter_by_month(expenses_result, args.month)
    bank = filter_by_month(bank_result, args.month) if bank_result is not None else []

    if not revenues and not expenses:
        print("Warning: no revenues or expenses found for the selected inputs.")

    # 4) Classification
    classified = classify_expenses(expenses)
    summary = summarize_classification(classified)

    # 5) Statement and reconciliation
    dre = generate_dre(
        revenues,
        classified,
        bank_transactions=bank,
        regime=regime,
        rate_tables=config.rate_tables,
    )
    statement_view = apply_view_level_filter(statement_to_frame(dre), view)
    expenses_by_category = aggregate_expenses_by_category(classified)
    revenues_by_category = aggregate_revenues_by_category(revenues)
    largest = top_expenses(classified)

    analysis: Optional[ReconciliationAnalysis] = None
    if args.bank_path:
        analysis = reconcile(
            revenues,
            classified,
            bank,
            difference_threshold=config.reconciliation.difference_threshold,
            minimum_rate=config.reconciliation.minimum_rate,
        )

    title = "DRE - Demonstração do Resultado do Exercício"
    if config.company_name:
        title = f"{title} - {config.company_name}"

    # 6) Render to console (table mode)
    if display_mode in {"table", "both"}:
        print()
        print(f"=== {title} ===")
        header = f"Regime tributário: {regime.value}"
        if args.month:
            header += f" | Mês: {args.month}"
        print(header)
        if dre.revenue_taxes_estimated or dre.profit_taxes_estimated:
            print("Impostos estimados pelas alíquotas do regime.")
        print(statement_view.to_string(index=False))

        print()
        print(
            f"Classificação: {summary.percent_classified:.1f}% classificado, "
            f"{summary.pending} despesa(s) pendente(s)."
        )

        print()
        print("=== Despesas por categoria ===")
        print(expenses_by_category.to_string(index=False))

        print()
        print("=== Receitas por categoria ===")
        print(revenues_by_category.to_string(index=False))

        print()
        print("=== Maiores despesas ===")
        print(largest.to_string(index=False))

        if analysis is not None:
            print()
            print("=== Conciliação bancária ===")
            print(_reconciliation_frame(analysis).to_string(index=False))
            if analysis.alerts:
                print()
                for alert in analysis.alerts:
                    print(f"! {alert}")
            else:
                print(
                    "Nenhuma divergência relevante "
                    f"(receitas: {format_brl(analysis.revenue_difference)}, "
                    f"despesas: {format_brl(analysis.expense_difference)})."
                )

    # 7) Render to CSV files (csv mode)
    if display_mode in {"csv", "both"}:
        output_dir = Path(args.output_dir) if args.output_dir else Path("data/output")
        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")

        frames = {
            "dre": statement_view,
            "expenses_by_category": expenses_by_category,
            "revenues_by_category": revenues_by_category,
            "top_expenses": largest,
        }
        if analysis is not None:
            frames["reconciliation"] = _reconciliation_frame(analysis)

        for name, frame in frames.items():
            path = output_dir / f"{name}_{timestamp}.csv"
            frame.to_csv(path, index=False)
            print(f"Wrote {path} ({len(frame)} rows)")

    logger.info("Net profit for %s: %.2f", regime.value, dre.net_profit)


if __name__ == "__main__":
    main()
