import logging
from datetime import datetime

import pytest

from core.cash_flow import (
    MONTHLY_COLUMNS,
    cash_flow_to_frame,
    compute_cash_flow,
    summarize_monthly_cash_flow,
)
from models.records import CostEntry


@pytest.fixture
def income():
    return [
        {'date': '2025-01-05', 'amount': 1_000, 'description': 'Advance payment'},
        {'date': '2025-02-01', 'amount': 500, 'description': 'Progress claim 1'},
    ]


@pytest.fixture
def expenses():
    return [
        {'date': '2025-01-03', 'amount': 300, 'description': 'Site mobilisation'},
        {'date': '2025-01-05', 'amount': 200, 'description': 'Cement'},
        {'date': '2025-01-20', 'amount': 400, 'description': 'Crew wages'},
        {'date': '2025-02-10', 'amount': 800, 'description': 'Rebar'},
    ]


def test_entries_are_merged_chronologically(income, expenses):
    summary = compute_cash_flow(income, expenses)

    dates = [entry.date for entry in summary.entries]
    assert dates == sorted(dates)
    assert [entry.description for entry in summary.entries] == [
        'Site mobilisation', 'Advance payment', 'Cement', 'Crew wages', 'Progress claim 1', 'Rebar',
    ]


def test_resorting_by_date_changes_nothing(income, expenses):
    summary = compute_cash_flow(income, expenses)

    assert tuple(sorted(summary.entries, key=lambda entry: entry.date)) == summary.entries


def test_income_precedes_expense_on_same_date(income, expenses):
    summary = compute_cash_flow(income, expenses)

    same_day = [entry for entry in summary.entries if entry.date == datetime(2025, 1, 5)]
    assert [entry.flow_type for entry in same_day] == ['income', 'expense']


def test_totals_and_balance(income, expenses):
    summary = compute_cash_flow(income, expenses)

    assert summary.total_income == 1_500
    assert summary.total_expense == 1_700
    assert summary.balance == summary.total_income - summary.total_expense == -200


def test_accepts_cost_entries():
    summary = compute_cash_flow(
        [CostEntry(amount=250, date='2025-03-01', description='Retention release')],
        [CostEntry(amount=100, date='2025-02-28', category='equipment', description='Crane hire')],
    )

    assert [entry.flow_type for entry in summary.entries] == ['expense', 'income']
    assert summary.balance == 150


def test_empty_inputs():
    summary = compute_cash_flow([], [])

    assert summary.entries == ()
    assert summary.total_income == 0
    assert summary.total_expense == 0
    assert summary.balance == 0


def test_undated_records_go_last(caplog):
    with caplog.at_level(logging.WARNING, logger='core.cash_flow'):
        summary = compute_cash_flow(
            [{'date': None, 'amount': 50}],
            [{'date': '2025-01-02', 'amount': 10}],
        )

    assert summary.entries[-1].date is None
    assert summary.entries[-1].flow_type == 'income'
    assert "without a usable date" in caplog.text


def test_running_balance(income, expenses):
    frame = cash_flow_to_frame(compute_cash_flow(income, expenses))

    assert list(frame['signed_amount']) == [-300, 1_000, -200, -400, 500, -800]
    assert list(frame['running_balance']) == [-300, 700, 500, 100, 600, -200]


def test_monthly_summary(income, expenses):
    monthly = summarize_monthly_cash_flow(compute_cash_flow(income, expenses))

    assert list(monthly.columns) == MONTHLY_COLUMNS
    assert [str(month) for month in monthly['month']] == ['2025-01', '2025-02']
    assert list(monthly['inflow']) == [1_000, 500]
    assert list(monthly['outflow']) == [900, 800]
    assert list(monthly['net']) == [100, -300]
    assert list(monthly['cumulative']) == [100, -200]
    assert list(monthly['status']) == ['surplus', 'deficit']


def test_monthly_summary_of_nothing():
    monthly = summarize_monthly_cash_flow(compute_cash_flow([], []))

    assert monthly.empty
    assert list(monthly.columns) == MONTHLY_COLUMNS


def test_zoned_and_plain_dates_merge():
    summary = compute_cash_flow(
        [{'date': '2025-01-02T10:00:00Z', 'amount': 100}],
        [{'date': '2025-01-01', 'amount': 50}],
    )

    assert [entry.flow_type for entry in summary.entries] == ['expense', 'income']
    assert all(entry.date.tzinfo is None for entry in summary.entries)
    assert summary.balance == 50
