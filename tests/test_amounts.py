from datetime import date

import pytest

import clinic_dre.amounts as amounts
from clinic_dre.amounts import normalize_date, parse_amount


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.234,56", 1234.56),
        ("1,234.56", 1234.56),
        ("R$ 45,00", 45.0),
        ("100", 100.0),
        ("", 0.0),
        ("-350,10", -350.1),
        ("  R$ 1.500,00 ", 1500.0),
        ("1.234", 1234.0),
        ("12.5", 12.5),
        ("1.234.567", 1234567.0),
        ("1,234,567", 1234567.0),
        ("abc", 0.0),
        (None, 0.0),
        (42, 42.0),
        (19.9, 19.9),
    ],
)
def test_parse_amount(raw, expected) -> None:
    assert parse_amount(raw) == pytest.approx(expected)


def test_parse_amount_never_raises_on_garbage() -> None:
    for raw in ("--", ",", ".", "R$", "€ ,", "n/a"):
        assert parse_amount(raw) == 0.0


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("25/12/2024", "2024-12-25"),
        ("25-12-2024", "2024-12-25"),
        ("2024-12-25", "2024-12-25"),
        ("2024/12/25", "2024-12-25"),
        (" 01/03/2024 ", "2024-03-01"),
    ],
)
def test_normalize_date_known_layouts(raw, expected) -> None:
    assert normalize_date(raw) == expected


def test_normalize_date_falls_back_to_given_today() -> None:
    today = date(2024, 1, 31)
    assert normalize_date("", today=today) == "2024-01-31"
    assert normalize_date(None, today=today) == "2024-01-31"
    assert normalize_date("not a date", today=today) == "2024-01-31"


def test_normalize_date_unparseable_is_close_to_today() -> None:
    result = date.fromisoformat(normalize_date("???"))
    assert abs((result - date.today()).days) <= 1


def test_normalize_date_uses_isolated_today(monkeypatch) -> None:
    monkeypatch.setattr(amounts, "_today", lambda: date(2025, 1, 15))
    assert normalize_date("garbage") == "2025-01-15"


@pytest.mark.parametrize("raw", ["31/02/2024", "30-02-2024", "2023-02-29"])
def test_normalize_date_rejects_impossible_dates(raw) -> None:
    today = date(2024, 1, 31)
    assert normalize_date(raw, today=today) == "2024-01-31"


def test_normalize_date_accepts_leap_day() -> None:
    assert normalize_date("29/02/2024") == "2024-02-29"
