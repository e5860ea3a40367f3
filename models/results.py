"""Result value objects produced by the calculation core."""

from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional, Dict, Any, Tuple


@dataclass(frozen=True)
class EVMResult:
    """Earned value metrics for one project at one data date.

    ``cpi`` and ``spi`` default to 1.0 when their denominator is zero. That
    means "no data yet", not "on target".
    """
    bac: float
    pv: float
    ev: float
    ac: float
    cv: float
    sv: float
    cpi: float
    spi: float
    eac: float

    @property
    def etc(self) -> float:
        """Estimate to complete."""
        return self.eac - self.ac

    @property
    def vac(self) -> float:
        """Variance at completion."""
        return self.bac - self.eac

    def to_dict(self) -> Dict[str, float]:
        data = asdict(self)
        data['etc'] = self.etc
        data['vac'] = self.vac
        return data


@dataclass(frozen=True)
class EarnedSchedule:
    """Time-based schedule metrics, all durations in days."""
    es: float
    at: float
    spi_t: float
    sv_t: float


@dataclass(frozen=True)
class Forecast:
    """Estimate-at-completion by the three standard methods."""
    eac_by_cpi: float
    eac_by_spi: float
    eac_by_cpi_and_spi: float
    selected_eac: float
    selected_method: str = 'cpi'


@dataclass(frozen=True)
class ForecastScenario:
    """One completion scenario: finish date and final cost."""
    finish_date: datetime
    cost: float


@dataclass(frozen=True)
class CompletionForecast:
    """Forecast finish date and cost from current CPI/SPI.

    ``days_to_complete`` is only known when a data date was given.
    """
    forecast_finish: datetime
    forecast_duration_days: float
    forecast_cost: float
    confidence_level: float
    optimistic: ForecastScenario
    most_likely: ForecastScenario
    pessimistic: ForecastScenario
    days_to_complete: Optional[float] = None


@dataclass(frozen=True)
class CashFlowEntry:
    """One record of a merged cash-flow sequence."""
    date: Optional[datetime]
    amount: float
    flow_type: str
    description: str = ''

    @property
    def signed_amount(self) -> float:
        return self.amount if self.flow_type == 'income' else -self.amount


@dataclass(frozen=True)
class CashFlowSummary:
    """Chronologically merged cash flow with its totals."""
    entries: Tuple[CashFlowEntry, ...]
    total_income: float
    total_expense: float
    balance: float


@dataclass(frozen=True)
class BudgetLineStatus:
    """Budget versus actual for one WBS element."""
    category: str
    category_name: str
    budget_amount: float
    actual_amount: float
    committed_amount: float
    remaining_budget: float
    variance: float
    variance_percent: float
    status: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VarianceLine:
    """Cost, schedule and budget variance for one WBS element."""
    wbs_code: str
    wbs_name: str
    level: int
    budget_amount: float
    planned_amount: float
    earned_amount: float
    actual_amount: float
    cost_variance: float
    schedule_variance: float
    budget_variance: float
    cost_variance_percent: float
    schedule_variance_percent: float
    budget_variance_percent: float
    cpi: float
    spi: float
    cost_status: str
    schedule_status: str
    overall_status: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CostAlert:
    """A cost-control alert raised from EVM or budget figures."""
    alert_type: str
    severity: str
    message: str
    category: Optional[str] = None
    value: Optional[float] = None
    threshold: Optional[float] = None
