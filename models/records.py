"""Input records consumed by the calculation core."""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Any, Mapping, Union


DateLike = Union[datetime, str, None]


@dataclass(frozen=True)
class BudgetFigure:
    """Planned total cost of a project (BAC)."""
    total_budget: float


@dataclass(frozen=True)
class CostEntry:
    """A recorded expense, payment or income amount."""
    amount: float
    date: DateLike
    category: str = ''
    description: str = ''

    @classmethod
    def from_mapping(cls, record: Mapping[str, Any]) -> 'CostEntry':
        """Build an entry from a plain ``{date, amount, description}`` record."""
        return cls(
            amount=record.get('amount', 0.0),
            date=record.get('date'),
            category=record.get('category', '') or '',
            description=record.get('description', '') or '',
        )


@dataclass(frozen=True)
class ProgressSnapshot:
    """Observed percent complete (0..100) at a point in time."""
    percent_complete: float
    as_of: DateLike


@dataclass(frozen=True)
class TaskRecord:
    """A scheduled task with its budgeted cost and reported progress."""
    task_id: str
    budget: float
    start_date: DateLike = None
    end_date: DateLike = None
    progress: float = 0.0
    title: str = ''


@dataclass(frozen=True)
class WBSCostLine:
    """Cost figures for one work breakdown structure element."""
    wbs_code: str
    wbs_name: str
    budget: float
    planned: float = 0.0
    earned: float = 0.0
    actual: float = 0.0
    committed: float = 0.0
    level: int = 1
    parent_code: Optional[str] = None
