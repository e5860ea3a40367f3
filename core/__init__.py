"""
Core calculation modules for the Construction Cost Performance Suite
"""

# Explicit imports for IDE support and documentation
from .utils import (
    # Validation & Safety
    validate_numeric_input,
    safe_divide,
    is_valid_finite_number,

    # Date Functions
    parse_date_any,
    calculate_durations,

    # Curve Functions
    scurve_cdf,
    scurve_inverse,
)

from .evm_engine import (
    # Core metrics
    compute_evm,
    compute_budget_utilization,
    compute_completion_rate,
    compute_tcpi,
    determine_performance_status,
    calculate_health_score,
    generate_forecast,

    # Baseline planned value
    calculate_planned_value,
    calculate_baseline_pv,
    aggregate_task_values,

    # Records, schedule & trend
    sum_actual_cost,
    earned_value_from_progress,
    latest_progress,
    calculate_earned_schedule,
    forecast_completion,
    build_evm_trend,
)

from .cash_flow import (
    compute_cash_flow,
    cash_flow_to_frame,
    summarize_monthly_cash_flow,
)

from .cost_control import (
    calculate_budget_vs_actual,
    calculate_variance_analysis,
    generate_cost_alerts,
)

__all__ = [
    # EVM
    'compute_evm',
    'compute_budget_utilization',
    'compute_completion_rate',
    'compute_tcpi',
    'determine_performance_status',
    'calculate_health_score',
    'generate_forecast',
    'calculate_planned_value',
    'calculate_baseline_pv',
    'aggregate_task_values',
    'sum_actual_cost',
    'earned_value_from_progress',
    'latest_progress',
    'calculate_earned_schedule',
    'forecast_completion',
    'build_evm_trend',

    # Cash flow
    'compute_cash_flow',
    'cash_flow_to_frame',
    'summarize_monthly_cash_flow',

    # Cost control
    'calculate_budget_vs_actual',
    'calculate_variance_analysis',
    'generate_cost_alerts',

    # Utility functions (from core.utils)
    'validate_numeric_input',
    'safe_divide',
    'is_valid_finite_number',
    'parse_date_any',
    'calculate_durations',
    'scurve_cdf',
    'scurve_inverse',
]
