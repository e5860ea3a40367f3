"""
EVM Calculation Engine - Earned Value Management calculations

Pure functions that turn budget, actual-cost and progress figures into the
standard project-controls metrics (PV, EV, CV, SV, CPI, SPI, EAC), plus the
derived aggregates the financial views need: budget utilization, TCPI,
performance status, health score, EAC forecasts, earned schedule, the completion
forecast and the S-curve trend series.

Nothing here validates or raises. Inputs are assumed to be pre-validated
numbers; zero denominators resolve to documented neutral defaults.
"""

from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Iterable, List, Mapping, Sequence, Tuple, Union

import pandas as pd

from config.constants import (
    STATUS_THRESHOLD_LOW,
    STATUS_THRESHOLD_HIGH,
    HEALTH_SCORE_WEIGHTS,
    NO_SPI_DURATION_FACTOR,
    MIN_FORECAST_CONFIDENCE,
    OPTIMISTIC_FACTORS,
    PESSIMISTIC_FACTORS,
)
from core.utils import (
    clamp,
    parse_date_any,
    safe_divide,
    calculate_durations,
    scurve_cdf,
    scurve_inverse,
)
from models.records import BudgetFigure, CostEntry, ProgressSnapshot, TaskRecord
from models.results import CompletionForecast, EVMResult, EarnedSchedule, Forecast, ForecastScenario

# Set up logging
logger = logging.getLogger(__name__)

TREND_COLUMNS = ['date', 'pv', 'ev', 'ac', 'cv', 'sv', 'cpi', 'spi', 'eac']

CostRecord = Union[CostEntry, Mapping[str, Any]]


def _budget_amount(total_budget) -> float:
    if isinstance(total_budget, BudgetFigure):
        return total_budget.total_budget
    return total_budget


# ============================================================================
# SECTION 1: CORE EVM METRICS
# ============================================================================

def compute_evm(total_budget, actual_cost, planned_value, earned_value) -> EVMResult:
    """Calculate the core earned value metrics.

    Args:
        total_budget: Budget at completion (BAC), a number or BudgetFigure
        actual_cost: Actual cost to date (AC)
        planned_value: Budgeted cost of work scheduled to date (PV)
        earned_value: Budgeted cost of work performed to date (EV)

    Returns:
        EVMResult with:
        - cv = EV - AC (negative means over budget)
        - sv = EV - PV (negative means behind schedule)
        - cpi = EV / AC, or 1.0 when AC is 0
        - spi = EV / PV, or 1.0 when PV is 0
        - eac = AC + (BAC - EV) / CPI, or BAC when CPI is not positive

    Examples:
        >>> r = compute_evm(100_000_000, 40_000_000, 50_000_000, 35_000_000)
        >>> r.cv, r.sv, r.cpi, r.spi
        (-5000000.0, -15000000.0, 0.875, 0.7)
    """
    bac = float(_budget_amount(total_budget))
    ac = float(actual_cost)
    pv = float(planned_value)
    ev = float(earned_value)

    cv = ev - ac
    sv = ev - pv

    # 1.0 here means "no data yet", callers must not read it as on target
    cpi = ev / ac if ac > 0 else 1.0
    spi = ev / pv if pv > 0 else 1.0

    eac = ac + (bac - ev) / cpi if cpi > 0 else bac

    return EVMResult(bac=bac, pv=pv, ev=ev, ac=ac, cv=cv, sv=sv, cpi=cpi, spi=spi, eac=eac)


def compute_percentage(part, whole) -> float:
    """Return ``part / whole * 100``, or 0.0 when ``whole`` is 0."""
    return safe_divide(part, whole) * 100


def compute_budget_utilization(total_budget, actual_cost) -> float:
    """Share of the budget already spent, in percent.

    Returns 0.0 when nothing is budgeted yet, which is distinct from a
    fully used budget.
    """
    return compute_percentage(actual_cost, _budget_amount(total_budget))


def compute_completion_rate(tasks: Sequence[TaskRecord]) -> float:
    """Percentage of tasks reporting 100% progress (0.0 for no tasks)."""
    completed = sum(1 for task in tasks if task.progress >= 100)
    return compute_percentage(completed, len(tasks))


def compute_tcpi(total_budget, earned_value, actual_cost) -> float:
    """To-complete performance index: (BAC - EV) / (BAC - AC).

    Returns 0.0 when either the remaining work or the remaining budget is
    not positive.
    """
    work_remaining = total_budget - earned_value
    budget_remaining = total_budget - actual_cost
    if work_remaining > 0 and budget_remaining > 0:
        return work_remaining / budget_remaining
    return 0.0


def determine_performance_status(cpi: float, spi: float,
                                 threshold_low: float = STATUS_THRESHOLD_LOW,
                                 threshold_high: float = STATUS_THRESHOLD_HIGH) -> str:
    """Classify a project from its CPI and SPI.

    Cost problems take precedence over schedule problems, and problems take
    precedence over good news.
    """
    if cpi < threshold_low and spi < threshold_low:
        return 'critical'
    if cpi < threshold_low:
        return 'over_budget'
    if spi < threshold_low:
        return 'behind_schedule'
    if cpi > threshold_high:
        return 'under_budget'
    if spi > threshold_high:
        return 'ahead_of_schedule'
    return 'on_track'


def calculate_health_score(cpi: float, spi: float,
                           weights: Tuple[float, float] = HEALTH_SCORE_WEIGHTS) -> float:
    """Health score between 0 and 100 from weighted CPI and SPI."""
    cost_weight, schedule_weight = weights
    return clamp(cpi * cost_weight + spi * schedule_weight, 0.0, 100.0)


def generate_forecast(result: EVMResult) -> Forecast:
    """Estimate at completion by the CPI, SPI and composite methods.

    Each method falls back to BAC when its divisor is not positive. The CPI
    method is the selected one.
    """
    bac, ac, ev = result.bac, result.ac, result.ev
    remaining_work = bac - ev

    eac_by_cpi = bac / result.cpi if result.cpi > 0 else bac
    eac_by_spi = ac + remaining_work / result.spi if result.spi > 0 else bac
    composite = result.cpi * result.spi
    eac_by_cpi_and_spi = ac + remaining_work / composite if composite > 0 else bac

    return Forecast(
        eac_by_cpi=eac_by_cpi,
        eac_by_spi=eac_by_spi,
        eac_by_cpi_and_spi=eac_by_cpi_and_spi,
        selected_eac=eac_by_cpi,
        selected_method='cpi',
    )


# ============================================================================
# SECTION 2: PLANNED VALUE FROM THE BASELINE SCHEDULE
# ============================================================================

def calculate_pv_linear(bac, elapsed, total) -> float:
    """Planned value on a straight-line baseline."""
    if total <= 0:
        return bac if elapsed > 0 else 0.0
    if elapsed >= total:
        return bac
    return bac * clamp(elapsed / total, 0.0, 1.0)


def calculate_pv_scurve(bac, elapsed, total, alpha=2.0, beta=2.0) -> float:
    """Planned value on a Beta-distribution S-curve baseline."""
    if total <= 0:
        return bac if elapsed > 0 else 0.0
    if elapsed >= total:
        return bac
    return bac * scurve_cdf(clamp(elapsed / total, 0.0, 1.0), alpha, beta)


def calculate_planned_value(bac, elapsed, total, curve_type='linear', alpha=2.0, beta=2.0) -> float:
    """Planned value using the named baseline curve ('linear' or 's-curve')."""
    if str(curve_type).lower() == 's-curve':
        return calculate_pv_scurve(bac, elapsed, total, alpha, beta)
    return calculate_pv_linear(bac, elapsed, total)


def calculate_baseline_pv(bac, plan_start, plan_finish, data_date,
                          curve_type='linear', alpha=2.0, beta=2.0) -> float:
    """Planned value at ``data_date`` for a project baseline given by dates."""
    elapsed, planned = calculate_durations(plan_start, plan_finish, data_date)
    return calculate_planned_value(bac, elapsed, planned, curve_type, alpha, beta)


def calculate_planned_progress(task: TaskRecord, as_of, project_start=None) -> float:
    """Fraction (0..1) of a task's scheduled window elapsed at ``as_of``.

    A task without a start date starts with the project; one without an end
    date is due at ``as_of``.
    """
    current = parse_date_any(as_of)
    start = parse_date_any(task.start_date) or parse_date_any(project_start)
    end = parse_date_any(task.end_date) or current

    if current is None or start is None:
        logger.debug(f"Task {task.task_id}: no usable schedule dates, planned progress 0")
        return 0.0
    if current < start:
        return 0.0
    if current >= end:
        return 1.0

    total = (end - start).total_seconds()
    elapsed = (current - start).total_seconds()
    return min(elapsed / total, 1.0) if total > 0 else 0.0


def aggregate_task_values(tasks: Iterable[TaskRecord], as_of, project_start=None) -> Tuple[float, float]:
    """Sum planned value and earned value over a task list.

    Returns:
        (pv, ev) where PV = Σ budget × planned progress and
        EV = Σ budget × reported progress / 100
    """
    pv = 0.0
    ev = 0.0
    for task in tasks:
        pv += task.budget * calculate_planned_progress(task, as_of, project_start)
        ev += task.budget * task.progress / 100
    return pv, ev


# ============================================================================
# SECTION 3: ACTUAL COST & EARNED VALUE FROM RECORDS
# ============================================================================

def as_cost_entry(record: CostRecord) -> CostEntry:
    """Accept a CostEntry or a plain ``{date, amount, ...}`` mapping."""
    if isinstance(record, CostEntry):
        return record
    return CostEntry.from_mapping(record)


def sum_actual_cost(entries: Iterable[CostRecord], as_of=None, category: Optional[str] = None) -> float:
    """Total actual cost, optionally up to ``as_of`` and for one category.

    Entries without a usable date are left out when filtering by date.
    """
    cutoff = parse_date_any(as_of) if as_of is not None else None
    total = 0.0
    for record in entries:
        entry = as_cost_entry(record)
        if category is not None and entry.category != category:
            continue
        if cutoff is not None:
            entry_date = parse_date_any(entry.date)
            if entry_date is None or entry_date > cutoff:
                continue
        total += entry.amount
    return total


def earned_value_from_progress(bac, snapshot: Union[ProgressSnapshot, float]) -> float:
    """Earned value for a percent-complete figure: BAC × percent / 100."""
    percent = snapshot.percent_complete if isinstance(snapshot, ProgressSnapshot) else snapshot
    return bac * percent / 100


def latest_progress(snapshots: Iterable[ProgressSnapshot], as_of=None) -> Optional[ProgressSnapshot]:
    """Most recent snapshot on or before ``as_of`` (None when there is none)."""
    cutoff = parse_date_any(as_of) if as_of is not None else None
    latest = None
    latest_date = None
    for snapshot in snapshots:
        snapshot_date = parse_date_any(snapshot.as_of)
        if snapshot_date is None:
            continue
        if cutoff is not None and snapshot_date > cutoff:
            continue
        if latest_date is None or snapshot_date >= latest_date:
            latest, latest_date = snapshot, snapshot_date
    return latest


# ============================================================================
# SECTION 4: EARNED SCHEDULE
# ============================================================================

def calculate_earned_schedule(ev, bac, plan_start, plan_finish, data_date,
                              curve_type='linear', alpha=2.0, beta=2.0) -> EarnedSchedule:
    """Calculate Earned Schedule in days.

    ES is the time at which the baseline planned to reach the current EV;
    AT is the time elapsed since plan start (at least one day).

    Returns:
        EarnedSchedule with es, at, spi_t = ES / AT and sv_t = ES - AT
    """
    elapsed, planned = calculate_durations(plan_start, plan_finish, data_date)
    at = max(elapsed, 1.0)

    if planned <= 0:
        logger.warning(f"Earned schedule skipped, planned duration is {planned} days")
        return EarnedSchedule(es=0.0, at=round(at, 2), spi_t=0.0, sv_t=round(-at, 2))

    ev_ratio = clamp(ev / bac if bac > 0 else 0.0, 0.0, 1.0)
    if str(curve_type).lower() == 's-curve':
        es = scurve_inverse(ev_ratio, alpha, beta) * planned
    else:
        es = ev_ratio * planned

    logger.debug(f"Earned schedule: ES={es} AT={at} planned={planned} ratio={ev_ratio}")
    return EarnedSchedule(
        es=round(es, 2),
        at=round(at, 2),
        spi_t=round(es / at, 4),
        sv_t=round(es - at, 2),
    )


# ============================================================================
# SECTION 5: COMPLETION FORECAST
# ============================================================================

def forecast_completion(result: EVMResult, plan_start, plan_finish, data_date=None) -> Optional[CompletionForecast]:
    """Forecast the finish date and final cost from current performance.

    The planned duration is stretched by 1 / SPI (by 1.5 when SPI is 0) and
    EAC is the most likely cost. Confidence is min(CPI, SPI) with a floor
    of 0.5. Given a data date, days to complete is the scheduled work still
    outstanding at the current SPI.

    Returns:
        CompletionForecast, or None when the plan dates are unusable
    """
    start = parse_date_any(plan_start)
    finish = parse_date_any(plan_finish)
    if start is None or finish is None or finish < start:
        logger.warning(f"Completion forecast skipped - plan_start: {plan_start!r}, plan_finish: {plan_finish!r}")
        return None

    planned = (finish - start).total_seconds() / 86400.0
    if result.spi > 0:
        duration = planned / result.spi
    else:
        duration = planned * NO_SPI_DURATION_FACTOR

    def scenario(duration_factor: float, cost_factor: float) -> ForecastScenario:
        return ForecastScenario(
            finish_date=start + timedelta(days=duration * duration_factor),
            cost=result.eac * cost_factor,
        )

    days_to_complete = None
    if data_date is not None:
        elapsed, _ = calculate_durations(start, finish, data_date)
        expected_progress = elapsed / planned if planned > 0 else 0.0
        remaining = max(1.0 - result.spi * expected_progress, 0.0)
        if result.spi > 0:
            days_to_complete = round(remaining / result.spi * planned, 2)
        else:
            days_to_complete = round(planned, 2)

    most_likely = scenario(1.0, 1.0)
    return CompletionForecast(
        forecast_finish=most_likely.finish_date,
        forecast_duration_days=round(duration, 2),
        forecast_cost=result.eac,
        confidence_level=max(MIN_FORECAST_CONFIDENCE, min(result.cpi, result.spi)),
        optimistic=scenario(*OPTIMISTIC_FACTORS),
        most_likely=most_likely,
        pessimistic=scenario(*PESSIMISTIC_FACTORS),
        days_to_complete=days_to_complete,
    )


# ============================================================================
# SECTION 6: TREND / S-CURVE SERIES
# ============================================================================

def build_evm_trend(bac, plan_start, plan_finish,
                    snapshots: Iterable[ProgressSnapshot],
                    cost_entries: Iterable[CostRecord] = (),
                    curve_type: str = 'linear', alpha: float = 2.0, beta: float = 2.0) -> pd.DataFrame:
    """Build the PV/EV/AC series behind the S-curve chart.

    One row per progress snapshot, sorted by date. PV comes from the
    baseline curve, EV from the snapshot and AC is cumulative cost up to the
    snapshot date.
    """
    entries = [as_cost_entry(record) for record in cost_entries]

    dated: List[Tuple[datetime, ProgressSnapshot]] = []
    for snapshot in snapshots:
        snapshot_date = parse_date_any(snapshot.as_of)
        if snapshot_date is None:
            logger.warning(f"Skipping progress snapshot with unusable date: {snapshot.as_of!r}")
            continue
        dated.append((snapshot_date, snapshot))
    dated.sort(key=lambda item: item[0])

    rows: List[Dict[str, Any]] = []
    for snapshot_date, snapshot in dated:
        pv = calculate_baseline_pv(bac, plan_start, plan_finish, snapshot_date, curve_type, alpha, beta)
        ev = earned_value_from_progress(bac, snapshot)
        ac = sum_actual_cost(entries, as_of=snapshot_date)
        result = compute_evm(bac, ac, pv, ev)
        rows.append({
            'date': snapshot_date,
            'pv': result.pv,
            'ev': result.ev,
            'ac': result.ac,
            'cv': result.cv,
            'sv': result.sv,
            'cpi': result.cpi,
            'spi': result.spi,
            'eac': result.eac,
        })

    return pd.DataFrame(rows, columns=TREND_COLUMNS)


# ============================================================================
# SECTION 7: PUBLIC API
# ============================================================================

__all__ = [
    # Core metrics
    'compute_evm',
    'compute_percentage',
    'compute_budget_utilization',
    'compute_completion_rate',
    'compute_tcpi',
    'determine_performance_status',
    'calculate_health_score',
    'generate_forecast',

    # Baseline planned value
    'calculate_pv_linear',
    'calculate_pv_scurve',
    'calculate_planned_value',
    'calculate_baseline_pv',
    'calculate_planned_progress',
    'aggregate_task_values',

    # Records
    'as_cost_entry',
    'sum_actual_cost',
    'earned_value_from_progress',
    'latest_progress',

    # Schedule & trend
    'calculate_earned_schedule',
    'forecast_completion',
    'build_evm_trend',
    'TREND_COLUMNS',
]
