"""
Cost control calculations over WBS cost lines.

Budget versus actual, per-line variance analysis and cost alerts. Like the
EVM engine these are total functions: zero denominators give 0.0.
"""

from __future__ import annotations
import logging
from typing import Iterable, List

from config.constants import (
    NEAR_LIMIT_RATIO,
    ON_TRACK_INDEX,
    CRITICAL_INDEX,
    CRITICAL_OVERRUN_PERCENT,
    ALERT_CRITICAL_INDEX,
    STATUS_THRESHOLD_LOW,
)
from core.evm_engine import compute_percentage
from models.records import WBSCostLine
from models.results import BudgetLineStatus, CostAlert, EVMResult, VarianceLine

logger = logging.getLogger(__name__)


def _budget_status(line: WBSCostLine, remaining: float) -> str:
    if line.actual > line.budget:
        return 'over_budget'
    if line.actual > line.budget * NEAR_LIMIT_RATIO:
        return 'near_limit'
    if remaining <= 0:
        return 'depleted'
    return 'within_budget'


def calculate_budget_vs_actual(lines: Iterable[WBSCostLine]) -> List[BudgetLineStatus]:
    """Compare budget with actual spend for each WBS line.

    ``variance`` is budget minus actual (negative when overspent) and the
    remaining budget also deducts committed amounts.
    """
    results = []
    for line in lines:
        variance = line.budget - line.actual
        remaining = line.budget - line.actual - line.committed
        results.append(BudgetLineStatus(
            category=line.wbs_code,
            category_name=line.wbs_name,
            budget_amount=line.budget,
            actual_amount=line.actual,
            committed_amount=line.committed,
            remaining_budget=remaining,
            variance=variance,
            variance_percent=compute_percentage(variance, line.budget),
            status=_budget_status(line, remaining),
        ))
    return results


def _direction(variance: float) -> str:
    if variance > 0:
        return 'favorable'
    if variance < 0:
        return 'unfavorable'
    return 'neutral'


def calculate_variance_analysis(lines: Iterable[WBSCostLine]) -> List[VarianceLine]:
    """Cost, schedule and budget variance for each WBS line.

    Per-line CPI and SPI are 0.0 when their denominator is zero, so a line
    with no actual cost or no planned value reports as critical.
    """
    results = []
    for line in lines:
        cost_variance = line.earned - line.actual
        schedule_variance = line.earned - line.planned
        budget_variance = line.budget - line.actual

        cpi = line.earned / line.actual if line.actual > 0 else 0.0
        spi = line.earned / line.planned if line.planned > 0 else 0.0

        if cpi >= ON_TRACK_INDEX and spi >= ON_TRACK_INDEX:
            overall = 'on_track'
        elif cpi < CRITICAL_INDEX or spi < CRITICAL_INDEX:
            overall = 'critical'
        else:
            overall = 'at_risk'

        results.append(VarianceLine(
            wbs_code=line.wbs_code,
            wbs_name=line.wbs_name,
            level=line.level,
            budget_amount=line.budget,
            planned_amount=line.planned,
            earned_amount=line.earned,
            actual_amount=line.actual,
            cost_variance=cost_variance,
            schedule_variance=schedule_variance,
            budget_variance=budget_variance,
            cost_variance_percent=compute_percentage(cost_variance, line.actual),
            schedule_variance_percent=compute_percentage(schedule_variance, line.planned),
            budget_variance_percent=compute_percentage(budget_variance, line.budget),
            cpi=cpi,
            spi=spi,
            cost_status=_direction(cost_variance),
            schedule_status=_direction(schedule_variance),
            overall_status=overall,
        ))
    return results


def generate_cost_alerts(result: EVMResult, budget_lines: Iterable[BudgetLineStatus],
                         index_threshold: float = STATUS_THRESHOLD_LOW) -> List[CostAlert]:
    """Alerts for overspent or nearly exhausted lines and weak project indices.

    CPI and SPI alerts are only raised when the index is backed by data
    (non-zero AC for CPI, non-zero PV for SPI).
    """
    alerts = []

    for line in budget_lines:
        if line.status == 'over_budget':
            overrun = abs(line.variance_percent)
            alerts.append(CostAlert(
                alert_type='budget_overrun',
                severity='critical' if overrun > CRITICAL_OVERRUN_PERCENT else 'high',
                message=f"{line.category_name} has exceeded budget by {overrun:.1f}%",
                category=line.category,
                value=line.actual_amount,
                threshold=line.budget_amount,
            ))
        elif line.status == 'near_limit':
            alerts.append(CostAlert(
                alert_type='budget_near_limit',
                severity='medium',
                message=f"{line.category_name} has used {100 - line.variance_percent:.1f}% of its budget",
                category=line.category,
                value=line.actual_amount,
                threshold=line.budget_amount,
            ))

    if result.ac > 0 and result.cpi < index_threshold:
        alerts.append(CostAlert(
            alert_type='low_cpi',
            severity='critical' if result.cpi < ALERT_CRITICAL_INDEX else 'high',
            message=f"Cost performance index is {result.cpi:.2f}, below {index_threshold:.2f}",
            value=result.cpi,
            threshold=index_threshold,
        ))

    if result.pv > 0 and result.spi < index_threshold:
        alerts.append(CostAlert(
            alert_type='low_spi',
            severity='critical' if result.spi < ALERT_CRITICAL_INDEX else 'high',
            message=f"Schedule performance index is {result.spi:.2f}, below {index_threshold:.2f}",
            value=result.spi,
            threshold=index_threshold,
        ))

    if result.eac > result.bac:
        alerts.append(CostAlert(
            alert_type='eac_exceeds_bac',
            severity='high',
            message=f"Estimate at completion exceeds budget by {result.eac - result.bac:,.0f}",
            value=result.eac,
            threshold=result.bac,
        ))

    if alerts:
        logger.info(f"Generated {len(alerts)} cost alert(s)")
    return alerts
