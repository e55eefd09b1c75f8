"""
Tests for trend statistics buckets.
"""
from datetime import datetime, timezone

import pytest

from core.exceptions import ValidationError
from core.schema import TransactionCreate
from services.transaction_service import TransactionService, stats_window_start

NOW = datetime(2024, 3, 20, 12, 0, tzinfo=timezone.utc)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def history(user):
    service = TransactionService()
    rows = [
        ("income", 1000, utc(2021, 6, 1)),
        ("expenditure", 300, utc(2023, 3, 15)),
        ("income", 5000, utc(2023, 4, 1)),
        ("expenditure", 200, utc(2024, 3, 13, 23, 59)),
        ("expenditure", 80, utc(2024, 3, 14, 0, 0)),
        ("income", 500, utc(2024, 3, 14, 10)),
        ("expenditure", 20, utc(2024, 3, 14, 11)),
        ("expenditure", 60.25, utc(2024, 3, 20, 9)),
    ]
    service.create_bulk_transactions(user.id, [
        TransactionCreate(category="Misc", type=txn_type, amount=amount, created_at=created_at)
        for txn_type, amount, created_at in rows
    ])
    return service


def test_window_starts():
    assert stats_window_start("weekly", NOW) == utc(2024, 3, 14)
    assert stats_window_start("monthly", NOW) == utc(2023, 4, 1)
    assert stats_window_start("yearly", NOW) == utc(2020, 1, 1)
    assert stats_window_start("monthly", utc(2024, 12, 5)) == utc(2024, 1, 1)


def test_invalid_period():
    with pytest.raises(ValidationError):
        stats_window_start("daily", NOW)


def test_weekly_buckets_by_day(user, history):
    """Only the last seven days are counted, grouped per day."""
    points = history.transaction_stats(user.id, "weekly", now=NOW)
    assert [(p.date, p.income, p.expenditure) for p in points] == [
        ("2024-03-14", 500.0, 100.0),
        ("2024-03-20", 0.0, 60.25),
    ]


def test_monthly_buckets_by_month(user, history):
    points = history.transaction_stats(user.id, "monthly", now=NOW)
    assert [(p.date, p.income, p.expenditure) for p in points] == [
        ("2023-04", 5000.0, 0.0),
        ("2024-03", 500.0, 360.25),
    ]


def test_yearly_buckets_by_year(user, history):
    points = history.transaction_stats(user.id, "yearly", now=NOW)
    assert [(p.date, p.income, p.expenditure) for p in points] == [
        ("2021", 1000.0, 0.0),
        ("2023", 5000.0, 300.0),
        ("2024", 500.0, 360.25),
    ]


def test_stats_scoped_to_owner(other_user, history):
    assert history.transaction_stats(other_user.id, "yearly", now=NOW) == []
