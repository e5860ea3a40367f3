"""
Cash flow calculations.

Merges income and expense records into one chronological sequence and
summarises it per calendar month.
"""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Union

import pandas as pd

from core.utils import parse_date_any
from models.records import CostEntry
from models.results import CashFlowEntry, CashFlowSummary

logger = logging.getLogger(__name__)

FlowRecord = Union[CostEntry, Mapping[str, Any]]

MONTHLY_COLUMNS = ['month', 'inflow', 'outflow', 'net', 'cumulative', 'status']


def _tag_entries(records: Iterable[FlowRecord], flow_type: str) -> List[CashFlowEntry]:
    tagged = []
    for record in records:
        if isinstance(record, CostEntry):
            amount, raw_date, description = record.amount, record.date, record.description
        else:
            amount = record.get('amount', 0.0)
            raw_date = record.get('date')
            description = record.get('description', '') or ''
        tagged.append(CashFlowEntry(
            date=parse_date_any(raw_date),
            amount=amount,
            flow_type=flow_type,
            description=description,
        ))
    return tagged


def _date_sort_key(entry: CashFlowEntry):
    # Undated entries sort last
    return (entry.date is None, entry.date or datetime.min)


def compute_cash_flow(income_entries: Iterable[FlowRecord],
                      expense_entries: Iterable[FlowRecord]) -> CashFlowSummary:
    """Merge income and expense records into one chronological cash flow.

    Args:
        income_entries: ordered ``{date, amount[, description]}`` records or CostEntry
        expense_entries: ordered ``{date, amount[, description]}`` records or CostEntry

    Returns:
        CashFlowSummary whose entries are sorted by date ascending. The sort
        is stable: records sharing a date keep their input order, income
        records ahead of expense records.
    """
    income = _tag_entries(income_entries, 'income')
    expenses = _tag_entries(expense_entries, 'expense')

    merged = sorted(income + expenses, key=_date_sort_key)

    total_income = sum(entry.amount for entry in income)
    total_expense = sum(entry.amount for entry in expenses)

    undated = sum(1 for entry in merged if entry.date is None)
    if undated:
        logger.warning(f"{undated} cash flow record(s) without a usable date placed at the end")

    return CashFlowSummary(
        entries=tuple(merged),
        total_income=total_income,
        total_expense=total_expense,
        balance=total_income - total_expense,
    )


def cash_flow_to_frame(summary: CashFlowSummary) -> pd.DataFrame:
    """Tabulate a merged cash flow with a running balance column."""
    frame = pd.DataFrame(
        [
            {
                'date': entry.date,
                'flow_type': entry.flow_type,
                'description': entry.description,
                'amount': entry.amount,
                'signed_amount': entry.signed_amount,
            }
            for entry in summary.entries
        ],
        columns=['date', 'flow_type', 'description', 'amount', 'signed_amount'],
    )
    frame['running_balance'] = frame['signed_amount'].cumsum()
    return frame


def summarize_monthly_cash_flow(summary: CashFlowSummary) -> pd.DataFrame:
    """Inflow, outflow and net cash per calendar month.

    Months are listed in ascending order with a cumulative balance and a
    ``surplus``/``deficit``/``balanced`` status for the month's net flow.
    Undated records are left out.
    """
    frame = cash_flow_to_frame(summary)
    frame = frame[frame['date'].notna()]
    if frame.empty:
        return pd.DataFrame(columns=MONTHLY_COLUMNS)

    frame = frame.assign(month=pd.to_datetime(frame['date']).dt.to_period('M'))
    frame['inflow'] = frame['amount'].where(frame['flow_type'] == 'income', 0.0)
    frame['outflow'] = frame['amount'].where(frame['flow_type'] == 'expense', 0.0)

    monthly = frame.groupby('month', sort=True)[['inflow', 'outflow']].sum().reset_index()
    monthly['net'] = monthly['inflow'] - monthly['outflow']
    monthly['cumulative'] = monthly['net'].cumsum()
    monthly['status'] = monthly['net'].apply(
        lambda net: 'surplus' if net > 0 else ('deficit' if net < 0 else 'balanced')
    )
    return monthly[MONTHLY_COLUMNS]
