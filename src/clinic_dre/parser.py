# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Delimited-record parser for ledger and bank-statement exports.

Input formats
-------------

Parsers accept either raw CSV-like text (possibly starting with a byte
order mark) or a pre-split row matrix, as produced by spreadsheet readers
(see ``read_rows``). In both cases the first row is a header and is
discarded.

Delimiter detection is done per line: ';' when the line contains one,
',' otherwise. Cells are trimmed and one layer of surrounding quotes is
removed.

Row layouts
-----------

Revenues / expenses:

    3 columns:  date, description, amount   (description reused as category)
    4+ columns: date, description, category, amount

Bank statements:

    3 columns:  date, description, signed amount   (sign gives credit/debit)
    4+ columns: date, description, type, amount    (type token gives credit/debit)

Rows with fewer than 3 columns and rows whose amount resolves to 0 are
skipped. Expense amounts are taken as absolute values.

Error handling
--------------

Parsing never raises for malformed content. Problems are counted in the
returned ``ParseResult`` so that callers can report partial imports.
"""

import logging
import os
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Generic, TypeVar, Union

import pandas as pd

from .amounts import normalize_date, parse_amount
from .categories import categorize_expense, categorize_revenue
from .models import CREDIT, DEBIT, BankTransaction, ParsedExpense, ParsedRevenue

logger = logging.getLogger(__name__)

T = TypeVar("T")

RowMatrix = Sequence[Sequence[Any]]
Source = Union[str, RowMatrix]

SPREADSHEET_SUFFIXES = (".xlsx", ".xls")

DEFAULT_REVENUE_DESCRIPTION = "Receita sem descrição"
DEFAULT_EXPENSE_DESCRIPTION = "Despesa sem descrição"
DEFAULT_TRANSACTION_DESCRIPTION = "Transação sem descrição"


@dataclass
class ParseResult(Generic[T]):
    """Records produced by a parser, with row-level diagnostics.

    Attributes:
        records: Parsed records, in file order.
        rows_read: Number of data rows examined (header excluded).
        skipped_short: Rows ignored because they had fewer than 3 columns.
        skipped_zero: Rows ignored because their amount resolved to 0
            (or below 0, for revenues).
    """

    records: list[T] = field(default_factory=list)
    rows_read: int = 0
    skipped_short: int = 0
    skipped_zero: int = 0

    @property
    def skipped(self) -> int:
        return self.skipped_short + self.skipped_zero

    def __iter__(self) -> Iterator[T]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> T:
        return self.records[index]


def _clean_cell(cell: Any) -> str:
    """Stringify a cell, trim it and remove one layer of quotes."""
    if cell is None:
        return ""
    try:
        if pd.isna(cell):
            return ""
    except (TypeError, ValueError):
        pass
    text = str(cell).strip()
    if text[:1] in ('"', "'"):
        text = text[1:]
    if text[-1:] in ('"', "'"):
        text = text[:-1]
    return text


def split_rows(content: str) -> list[list[str]]:
    """Split CSV-like text into rows of cleaned cells.

    Blank lines are ignored. Quoted delimiters are not supported: exports
    handled here do not escape separators inside cells.
    """
    if not content or not content.strip():
        logger.warning("Empty CSV content")
        return []

    content = content.lstrip("\ufeff").strip()
    rows: list[list[str]] = []
    for line in content.splitlines():
        if not line.strip():
            continue
        separator = ";" if ";" in line else ","
        rows.append([_clean_cell(c) for c in line.split(separator)])
    return rows


def _to_rows(source: Source) -> list[list[str]]:
    if isinstance(source, str):
        return split_rows(source)
    rows = []
    for row in source:
        cells = [_clean_cell(c) for c in row]
        if any(cells):
            rows.append(cells)
    return rows


def _split_ledger_row(row: list[str]) -> tuple[str, str, str, str]:
    """Return (date, description, category, amount) for a 3- or 4+-column row."""
    if len(row) == 3:
        date_str, description, amount_str = row
        return date_str, description, description, amount_str
    date_str, description, category, amount_str = row[:4]
    return date_str, description, category, amount_str


def parse_revenues(source: Source) -> ParseResult[ParsedRevenue]:
    """Parse a revenue export into ParsedRevenue records.

    Negative and zero amounts are dropped: a revenue ledger only carries
    incoming values.
    """
    rows = _to_rows(source)
    result: ParseResult[ParsedRevenue] = ParseResult()

    for index, row in enumerate(rows[1:], start=1):
        result.rows_read += 1
        if len(row) < 3:
            logger.debug("Revenue row %d ignored, fewer than 3 columns: %r", index, row)
            result.skipped_short += 1
            continue

        date_str, description, category, amount_str = _split_ledger_row(row)
        amount = parse_amount(amount_str)
        if amount <= 0:
            logger.debug("Revenue row %d ignored, invalid amount %r", index, amount_str)
            result.skipped_zero += 1
            continue

        result.records.append(
            ParsedRevenue(
                date=normalize_date(date_str),
                description=description or DEFAULT_REVENUE_DESCRIPTION,
                category=categorize_revenue(description, category),
                amount=amount,
            )
        )

    logger.info(
        "Parsed %d revenues (%d rows read, %d skipped), total %.2f",
        len(result),
        result.rows_read,
        result.skipped,
        sum(r.amount for r in result.records),
    )
    return result


def parse_expenses(source: Source) -> ParseResult[ParsedExpense]:
    """Parse an expense export into ParsedExpense records (absolute amounts)."""
    rows = _to_rows(source)
    result: ParseResult[ParsedExpense] = ParseResult()

    for index, row in enumerate(rows[1:], start=1):
        result.rows_read += 1
        if len(row) < 3:
            logger.debug("Expense row %d ignored, fewer than 3 columns: %r", index, row)
            result.skipped_short += 1
            continue

        date_str, description, category, amount_str = _split_ledger_row(row)
        amount = abs(parse_amount(amount_str))
        if amount == 0:
            logger.debug("Expense row %d ignored, invalid amount %r", index, amount_str)
            result.skipped_zero += 1
            continue

        result.records.append(
            ParsedExpense(
                date=normalize_date(date_str),
                description=description or DEFAULT_EXPENSE_DESCRIPTION,
                category=categorize_expense(description, category),
                amount=amount,
            )
        )

    logger.info(
        "Parsed %d expenses (%d rows read, %d skipped), total %.2f",
        len(result),
        result.rows_read,
        result.skipped,
        sum(e.amount for e in result.records),
    )
    return result


def _is_credit_token(token: str) -> bool:
    token = token.strip().lower()
    return "créd" in token or "cred" in token or token == "c"


def parse_bank_statement(source: Source) -> ParseResult[BankTransaction]:
    """Parse a bank statement into BankTransaction records."""
    rows = _to_rows(source)
    result: ParseResult[BankTransaction] = ParseResult()

    for index, row in enumerate(rows[1:], start=1):
        result.rows_read += 1
        if len(row) < 3:
            logger.debug("Bank row %d ignored, fewer than 3 columns: %r", index, row)
            result.skipped_short += 1
            continue

        date_str, description = row[0], row[1]
        if len(row) == 3:
            signed = parse_amount(row[2])
            amount = abs(signed)
            tx_type = CREDIT if signed >= 0 else DEBIT
        else:
            amount = abs(parse_amount(row[3]))
            tx_type = CREDIT if _is_credit_token(row[2]) else DEBIT

        if amount == 0:
            logger.debug("Bank row %d ignored, invalid amount: %r", index, row)
            result.skipped_zero += 1
            continue

        result.records.append(
            BankTransaction(
                date=normalize_date(date_str),
                description=description or DEFAULT_TRANSACTION_DESCRIPTION,
                amount=amount,
                type=tx_type,
            )
        )

    credits = sum(t.amount for t in result.records if t.type == CREDIT)
    debits = sum(t.amount for t in result.records if t.type == DEBIT)
    logger.info(
        "Parsed %d bank transactions (%d skipped): credits %.2f, debits %.2f",
        len(result),
        result.skipped,
        credits,
        debits,
    )
    return result


# ---------------------------------------------------------------------------
# Tabular source adapter
# ---------------------------------------------------------------------------


def is_spreadsheet(path: Union[str, "os.PathLike[str]"]) -> bool:
    """Return True if the file extension designates an Excel workbook."""
    return str(path).lower().endswith(SPREADSHEET_SUFFIXES)


def read_rows(path: Union[str, "os.PathLike[str]"]) -> list[list[str]]:
    """Read a ledger file into a row matrix (header first).

    Excel workbooks are read from their first sheet with pandas (all cells
    as text); any other file is decoded as UTF-8 text (falling back to
    Latin-1, common in Brazilian bank exports) and split with
    ``split_rows``. Trailing empty cells are removed from spreadsheet rows
    so that their column count reflects the populated columns.

    Raises:
        FileNotFoundError: if the file does not exist.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise FileNotFoundError(f"Input file not found: {file_path}")

    if not is_spreadsheet(file_path):
        raw = file_path.read_bytes()
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            text = raw.decode("latin-1")
        return split_rows(text)

    df = pd.read_excel(file_path, sheet_name=0, header=None, dtype=str)
    df = df.fillna("")

    rows: list[list[str]] = []
    for values in df.itertuples(index=False, name=None):
        cells = [_clean_cell(v) for v in values]
        while cells and not cells[-1]:
            cells.pop()
        if cells:
            rows.append(cells)

    logger.info("Read %d rows from spreadsheet %s", len(rows), file_path)
    return rows
