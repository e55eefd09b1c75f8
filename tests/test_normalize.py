"""
Unit tests for value normalization.
"""
from datetime import date, datetime, timedelta, timezone

from core.normalize import (
    clean_amount,
    end_bound,
    from_db_timestamp,
    normalize_payment_method,
    normalize_type,
    parse_document_date,
    start_bound,
    to_db_timestamp,
)


def test_clean_amount_strips_symbols_and_separators():
    """Currency symbols, spaces and thousands separators are removed."""
    assert clean_amount("Rs.1,200.50") == 1200.50
    assert clean_amount("$ 45") == 45.0
    assert clean_amount("1 000 000") == 1000000.0
    assert clean_amount("₹2,499") == 2499.0


def test_clean_amount_uses_absolute_value():
    assert clean_amount(-250) == 250.0
    assert clean_amount("-99.90") == 99.90


def test_clean_amount_invalid():
    """Non-numeric input yields None."""
    assert clean_amount(None) is None
    assert clean_amount("") is None
    assert clean_amount("N/A") is None
    assert clean_amount(True) is None
    assert clean_amount(float("nan")) is None


def test_normalize_type_aliases():
    assert normalize_type("Expense") == "expenditure"
    assert normalize_type("debit") == "expenditure"
    assert normalize_type(" INCOME ") == "income"
    assert normalize_type("credit") == "income"
    assert normalize_type("refund-ish") is None
    assert normalize_type(None) is None


def test_normalize_payment_method():
    """Known methods are mapped, everything else becomes other."""
    assert normalize_payment_method("Credit Card") == "card"
    assert normalize_payment_method("UPI") == "upi"
    assert normalize_payment_method("bank-transfer") == "bank_transfer"
    assert normalize_payment_method("NEFT") == "bank_transfer"
    assert normalize_payment_method("cheque") == "other"
    assert normalize_payment_method(None) == "other"


def test_parse_document_date_day_first():
    """Slash dates on receipts are read day-first."""
    assert parse_document_date("03/04/2024") == datetime(2024, 4, 3)
    assert parse_document_date("2024-04-03") == datetime(2024, 4, 3)
    assert parse_document_date("not a date") is None
    assert parse_document_date(None) is None


def test_db_timestamp_round_trip_is_utc():
    """Aware datetimes are stored in UTC and read back as aware UTC."""
    ist = timezone(timedelta(hours=5, minutes=30))
    stored = to_db_timestamp(datetime(2024, 1, 1, 10, 0, tzinfo=ist))
    assert stored == "2024-01-01 04:30:00"
    assert from_db_timestamp(stored) == datetime(2024, 1, 1, 4, 30, tzinfo=timezone.utc)


def test_date_bounds_cover_whole_day():
    assert start_bound(date(2024, 3, 1)) == "2024-03-01 00:00:00"
    assert end_bound(date(2024, 3, 1)) == "2024-03-01 23:59:59"
