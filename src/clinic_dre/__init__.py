# Clinic DRE - Income statement & bank reconciliation engine for small clinics
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Clinic DRE
----------

A Python engine that turns the ledger exports of small clinics into a
standardized income statement (DRE, Demonstração do Resultado do
Exercício) and checks it against the bank statement.

Main capabilities:
- tolerant parsing of revenue, expense and bank-statement exports
  (CSV dialects with ',' or ';', Excel workbooks, Brazilian and US number
  formats),
- category heuristics for revenues and expenses,
- tax identification (PIS, COFINS, ISS, ICMS, Simples Nacional, IRPJ,
  CSLL) with manual overrides,
- a scored fixed/variable expense classifier with recurrence analysis,
- a tax-regime-aware DRE engine (Simples Nacional, Lucro Presumido,
  Lucro Real) with configurable rate tables,
- aggregate bank reconciliation with alerts,
- an async report service recomputing the statement after each edit.

Version: 0.1.0

Usage:
    python -m clinic_dre.cli --help
"""

__all__ = ["engine", "parser", "classifier", "views", "reconciliation"]

__version__ = "0.1.0"
