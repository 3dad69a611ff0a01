# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level report service: expense edits followed by a full recompute.

This module sits between:
- a storage collaborator implementing ``ReportRepository`` (database,
  remote API, in-memory store, ...), and
- user-facing layers such as the CLI or a web UI.

Responsibilities
----------------
1) Recalculation
   - Load the revenues and expenses of a report (optionally one month).
   - Seed the classification of raw expenses.
   - Generate the income statement and hand it back to storage.

2) Expense edits
   - Add, update and delete expenses through the repository.
   - Recompute the whole statement after every edit. There is no
     incremental update: the engine is cheap at monthly-report volumes and a
     full recompute keeps every total consistent.

Design notes
------------
- Collaborators are injected in the constructor; the module holds no
  client singletons.
- The repository is asynchronous. The statement computation itself is
  synchronous and pure.
- A report without revenue records is reported as ``ReportNotFoundError``.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Optional, Protocol, TypeVar

from .classifier import classify_expenses
from .engine import DREResult, generate_dre
from .models import Expense, ParsedRevenue, extract_year_month
from .taxes import RateTable, TaxRegime

logger = logging.getLogger(__name__)

R = TypeVar("R")


class ReportNotFoundError(LookupError):
    """Raised when a report has no revenue records to build a statement from."""


class ReportRepository(Protocol):
    """Storage contract consumed by ReportService."""

    async def load_revenues(
        self, report_id: str, month: Optional[str] = None
    ) -> list[ParsedRevenue]: ...

    async def load_expenses(
        self, report_id: str, month: Optional[str] = None
    ) -> list[Expense]: ...

    async def save_statement(self, report_id: str, statement: DREResult) -> None: ...

    async def add_expense(self, report_id: str, expense: Expense) -> str: ...

    async def update_expense(
        self, report_id: str, expense_id: str, expense: Expense
    ) -> None: ...

    async def delete_expense(self, report_id: str, expense_id: str) -> None: ...


def filter_by_month(records: Iterable[R], month: Optional[str]) -> list[R]:
    """Keep records whose date falls in ``month`` ('YYYY-MM'); None keeps all."""
    if not month:
        return list(records)
    return [r for r in records if extract_year_month(r.date) == month]


class ReportService:
    """Orchestrates a report repository and the statement engine.

    Args:
        repository: Storage collaborator.
        regime: Tax regime used by the engine.
        rate_tables: Optional rate tables overriding the defaults.
    """

    def __init__(
        self,
        repository: ReportRepository,
        regime: TaxRegime = TaxRegime.SIMPLES_NACIONAL,
        rate_tables: Optional[Mapping[TaxRegime, RateTable]] = None,
    ) -> None:
        self.repository = repository
        self.regime = TaxRegime.parse(regime)
        self.rate_tables = rate_tables

    def build_statement(
        self, revenues: Sequence[ParsedRevenue], expenses: Sequence[Expense]
    ) -> DREResult:
        """Classify raw expenses and compute the statement (no I/O)."""
        return generate_dre(
            revenues,
            classify_expenses(expenses),
            regime=self.regime,
            rate_tables=self.rate_tables,
        )

    async def recalculate(
        self, report_id: str, month: Optional[str] = None
    ) -> DREResult:
        """Reload a report, recompute its statement and save it.

        Raises:
            ReportNotFoundError: if the report has no revenue records.
        """
        revenues = await self.repository.load_revenues(report_id, month)
        if not revenues:
            raise ReportNotFoundError(
                f"No revenues found for report '{report_id}'"
                + (f" in {month}" if month else "")
            )
        expenses = await self.repository.load_expenses(report_id, month)

        statement = self.build_statement(revenues, expenses)
        await self.repository.save_statement(report_id, statement)

        logger.info(
            "Report %s recalculated: %d revenues, %d expenses, net profit %.2f",
            report_id,
            len(revenues),
            len(expenses),
            statement.net_profit,
        )
        return statement

    async def add_expense(
        self, report_id: str, expense: Expense, month: Optional[str] = None
    ) -> tuple[str, DREResult]:
        """Add an expense and return its id with the recomputed statement."""
        expense_id = await self.repository.add_expense(report_id, expense)
        logger.debug("Expense %s added to report %s", expense_id, report_id)
        return expense_id, await self.recalculate(report_id, month)

    async def update_expense(
        self,
        report_id: str,
        expense_id: str,
        expense: Expense,
        month: Optional[str] = None,
    ) -> DREResult:
        await self.repository.update_expense(report_id, expense_id, expense)
        logger.debug("Expense %s updated in report %s", expense_id, report_id)
        return await self.recalculate(report_id, month)

    async def delete_expense(
        self, report_id: str, expense_id: str, month: Optional[str] = None
    ) -> DREResult:
        await self.repository.delete_expense(report_id, expense_id)
        logger.debug("Expense %s deleted from report %s", expense_id, report_id)
        return await self.recalculate(report_id, month)


class InMemoryReportRepository:
    """Dictionary-backed ReportRepository, for scripts and tests.

    Expense ids are sequential strings per repository. Unknown reports and
    unknown expense ids raise ReportNotFoundError.
    """

    def __init__(self) -> None:
        self._revenues: dict[str, list[ParsedRevenue]] = {}
        self._expenses: dict[str, dict[str, Expense]] = {}
        self.statements: dict[str, DREResult] = {}
        self._next_id = 1

    def add_report(
        self,
        report_id: str,
        revenues: Iterable[ParsedRevenue],
        expenses: Iterable[Expense] = (),
    ) -> None:
        self._revenues[report_id] = list(revenues)
        self._expenses[report_id] = {}
        for expense in expenses:
            self._store(report_id, expense)

    def _store(self, report_id: str, expense: Expense) -> str:
        expense_id = str(self._next_id)
        self._next_id += 1
        self._expenses[report_id][expense_id] = expense
        return expense_id

    def _report_expenses(self, report_id: str) -> dict[str, Expense]:
        try:
            return self._expenses[report_id]
        except KeyError:
            raise ReportNotFoundError(f"Unknown report '{report_id}'") from None

    async def load_revenues(
        self, report_id: str, month: Optional[str] = None
    ) -> list[ParsedRevenue]:
        return filter_by_month(self._revenues.get(report_id, []), month)

    async def load_expenses(
        self, report_id: str, month: Optional[str] = None
    ) -> list[Expense]:
        return filter_by_month(self._report_expenses(report_id).values(), month)

    async def save_statement(self, report_id: str, statement: DREResult) -> None:
        self.statements[report_id] = statement

    async def add_expense(self, report_id: str, expense: Expense) -> str:
        self._report_expenses(report_id)
        return self._store(report_id, expense)

    async def update_expense(
        self, report_id: str, expense_id: str, expense: Expense
    ) -> None:
        expenses = self._report_expenses(report_id)
        if expense_id not in expenses:
            raise ReportNotFoundError(
                f"Unknown expense '{expense_id}' in report '{report_id}'"
            )
        expenses[expense_id] = expense

    async def delete_expense(self, report_id: str, expense_id: str) -> None:
        expenses = self._report_expenses(report_id)
        if expenses.pop(expense_id, None) is None:
            raise ReportNotFoundError(
                f"Unknown expense '{expense_id}' in report '{report_id}'"
            )
