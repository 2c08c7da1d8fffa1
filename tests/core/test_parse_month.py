"""Month parsing tests: pure tests for payment month normalization.

Tests cover:
    - Full and abbreviated month names in either order with the year
    - Two-digit years expand to 20xx
    - Missing month or year defaults to today
    - Billing date is always the 15th
    - Only spaces and commas separate tokens; anything else is ignored
"""

from datetime import date

from atreo.services.payment_service import parse_month

TODAY = date(2025, 6, 3)


def test_full_month_name_and_year():
    label, billing = parse_month("March 2024", today=TODAY)
    assert label == "March 2024"
    assert (billing.year, billing.month, billing.day) == (2024, 3, 15)


def test_year_first_and_abbreviation():
    label, _ = parse_month("2024 sept", today=TODAY)
    assert label == "September 2024"


def test_two_digit_year():
    label, _ = parse_month("Jan 25", today=TODAY)
    assert label == "January 2025"


def test_commas_separate_tokens():
    label, _ = parse_month("feb,2023", today=TODAY)
    assert label == "February 2023"


def test_missing_year_defaults_to_current():
    label, _ = parse_month("december", today=TODAY)
    assert label == "December 2025"


def test_empty_value_defaults_to_current_month():
    label, billing = parse_month(None, today=TODAY)
    assert label == "June 2025"
    assert billing.day == 15


def test_dashed_numeric_month_is_one_unknown_token():
    label, _ = parse_month("2024-03", today=TODAY)
    assert label == "June 2025"


def test_unknown_tokens_ignored():
    label, _ = parse_month("Smarch 2024 payroll", today=TODAY)
    assert label == "June 2024"
