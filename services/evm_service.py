"""EVM calculation service module."""

from __future__ import annotations
import logging
from datetime import datetime
from typing import Dict, Any, Iterable, List, Optional, Tuple

import pandas as pd

from core.cost_control import (
    calculate_budget_vs_actual,
    calculate_variance_analysis,
    generate_cost_alerts,
)
from core.evm_engine import (
    aggregate_task_values,
    build_evm_trend,
    calculate_baseline_pv,
    calculate_earned_schedule,
    calculate_health_score,
    compute_budget_utilization,
    compute_completion_rate,
    compute_evm,
    compute_percentage,
    compute_tcpi,
    determine_performance_status,
    earned_value_from_progress,
    forecast_completion,
    generate_forecast,
    latest_progress,
    sum_actual_cost,
)
from core.utils import calculate_durations, days_to_months, parse_date_any
from models.project import AnalysisConfig, ColumnMapping, ProjectFinancials, ProjectValidator
from models.records import ProgressSnapshot, WBSCostLine
from models.results import EVMResult


logger = logging.getLogger(__name__)


class EVMCalculator:
    """Service class for EVM calculations.

    This is the validating caller of the pure calculation core: inputs are
    checked here (raising ValueError) before any arithmetic runs.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config or AnalysisConfig()
        self.validator = ProjectValidator()

    def resolve_curve(self, project: ProjectFinancials) -> Tuple[str, float, float]:
        """Curve settings for a project, falling back to the global config."""
        curve_type = self.validator.validate_curve_type(project.curve_type or self.config.curve_type)
        alpha = project.alpha if project.alpha is not None else self.config.alpha
        beta = project.beta if project.beta is not None else self.config.beta
        if curve_type == 's-curve':
            alpha = self.validator.validate_numeric_input(alpha, "Alpha", min_val=0.1)
            beta = self.validator.validate_numeric_input(beta, "Beta", min_val=0.1)
        return curve_type, alpha, beta

    def parse_schedule(self, project: ProjectFinancials) -> Tuple[datetime, datetime, datetime]:
        """Parse plan start, plan finish and data date, raising on bad dates."""
        plan_start = parse_date_any(project.plan_start)
        plan_finish = parse_date_any(project.plan_finish)
        data_date = parse_date_any(project.data_date)

        if plan_start is None or plan_finish is None or data_date is None:
            raise ValueError(
                f"Invalid schedule dates: plan_start={project.plan_start!r}, "
                f"plan_finish={project.plan_finish!r}, data_date={project.data_date!r}"
            )
        if plan_finish < plan_start:
            raise ValueError(f"Plan finish {plan_finish:%Y-%m-%d} is before plan start {plan_start:%Y-%m-%d}")
        return plan_start, plan_finish, data_date

    def calculate_actual_cost(self, project: ProjectFinancials, data_date: datetime) -> float:
        """Actual cost: the given AC, or cost entries summed up to the data date."""
        if project.ac is not None:
            return self.validator.validate_numeric_input(project.ac, "AC", min_val=0.0)

        for entry in project.cost_entries:
            self.validator.validate_numeric_input(entry.amount, "Cost entry amount", min_val=0.0)
        ac = sum_actual_cost(project.cost_entries, as_of=data_date)
        logger.debug(f"Project {project.project_id}: AC {ac} summed from {len(project.cost_entries)} entries")
        return ac

    def calculate_planned_value(self, project: ProjectFinancials, bac: float, schedule: Tuple[datetime, datetime, datetime],
                                curve_type: str, alpha: float, beta: float) -> float:
        """Planned value: manual PV, task baseline, or the project baseline curve."""
        if project.use_manual_pv and project.manual_pv is not None:
            return self.validator.validate_numeric_input(project.manual_pv, "Manual PV", min_val=0.0)

        plan_start, plan_finish, data_date = schedule
        if project.tasks:
            pv, _ = aggregate_task_values(project.tasks, data_date, project_start=plan_start)
            return pv

        return calculate_baseline_pv(bac, plan_start, plan_finish, data_date, curve_type, alpha, beta)

    def calculate_earned_value(self, project: ProjectFinancials, bac: float, data_date: datetime) -> float:
        """Earned value: manual EV, task progress, or the latest progress snapshot."""
        if project.use_manual_ev and project.manual_ev is not None:
            return self.validator.validate_numeric_input(project.manual_ev, "Manual EV", min_val=0.0)

        if project.tasks:
            for task in project.tasks:
                self.validator.validate_numeric_input(task.progress, f"Progress of task {task.task_id}", min_val=0.0, max_val=100.0)
                self.validator.validate_numeric_input(task.budget, f"Budget of task {task.task_id}", min_val=0.0)
            _, ev = aggregate_task_values(project.tasks, data_date)
            return ev

        snapshot = latest_progress(project.progress, as_of=data_date)
        if snapshot is None:
            logger.info(f"Project {project.project_id}: no progress reported by {data_date:%Y-%m-%d}, EV = 0")
            return 0.0

        self.validator.validate_numeric_input(snapshot.percent_complete, "Percent complete", min_val=0.0, max_val=100.0)
        return earned_value_from_progress(bac, snapshot)

    def analyze_project(self, project: ProjectFinancials) -> Dict[str, Any]:
        """Perform complete EVM analysis for one project.

        Returns a flat dict of inputs and metrics. ``has_cost_data`` and
        ``has_schedule_data`` tell callers whether CPI and SPI rest on real
        data or on the neutral 1.0 default.

        Raises:
            ValueError: when any input fails validation
        """
        try:
            bac = self.validator.validate_numeric_input(project.bac, "BAC", min_val=0.0)
            schedule = self.parse_schedule(project)
            plan_start, plan_finish, data_date = schedule
            curve_type, alpha, beta = self.resolve_curve(project)

            ac = self.calculate_actual_cost(project, data_date)
            pv = self.calculate_planned_value(project, bac, schedule, curve_type, alpha, beta)
            ev = self.calculate_earned_value(project, bac, data_date)
        except ValueError as e:
            logger.error(f"EVM analysis failed for project {project.project_id}: {e}")
            raise

        result = compute_evm(bac, ac, pv, ev)
        forecast = generate_forecast(result)
        completion = forecast_completion(result, plan_start, plan_finish, data_date)
        earned_schedule = calculate_earned_schedule(
            result.ev, bac, plan_start, plan_finish, data_date, curve_type, alpha, beta
        )
        elapsed_days, planned_days = calculate_durations(plan_start, plan_finish, data_date)

        has_cost_data = result.ac > 0
        has_schedule_data = result.pv > 0
        if has_cost_data or has_schedule_data:
            status = determine_performance_status(
                result.cpi, result.spi, self.config.status_threshold_low, self.config.status_threshold_high
            )
            health_score = calculate_health_score(result.cpi, result.spi)
        else:
            logger.info(f"Project {project.project_id}: no cost or schedule data by {data_date:%Y-%m-%d}")
            status = 'no_data'
            health_score = None

        analysis = {
            **project.to_dict(),
            **result.to_dict(),
            'tcpi': compute_tcpi(bac, result.ev, result.ac),
            'percent_budget_used': compute_budget_utilization(bac, result.ac),
            'percent_complete': compute_percentage(result.ev, bac),
            'percent_time_used': compute_percentage(elapsed_days, planned_days),
            'actual_duration_months': days_to_months(elapsed_days),
            'original_duration_months': days_to_months(planned_days),
            'status': status,
            'health_score': health_score,
            'has_cost_data': has_cost_data,
            'has_schedule_data': has_schedule_data,
            'eac_by_cpi': forecast.eac_by_cpi,
            'eac_by_spi': forecast.eac_by_spi,
            'eac_by_cpi_and_spi': forecast.eac_by_cpi_and_spi,
            'forecast_finish': completion.forecast_finish.isoformat(),
            'forecast_duration_days': completion.forecast_duration_days,
            'days_to_complete': completion.days_to_complete,
            'confidence_level': completion.confidence_level,
            'eac_optimistic': completion.optimistic.cost,
            'eac_pessimistic': completion.pessimistic.cost,
            'finish_optimistic': completion.optimistic.finish_date.isoformat(),
            'finish_pessimistic': completion.pessimistic.finish_date.isoformat(),
            'es_days': earned_schedule.es,
            'at_days': earned_schedule.at,
            'spi_t': earned_schedule.spi_t,
            'sv_t_days': earned_schedule.sv_t,
            'curve_type': curve_type,
            'alpha': alpha,
            'beta': beta,
        }
        if project.tasks:
            analysis['task_completion_rate'] = compute_completion_rate(project.tasks)

        logger.debug(f"Project {project.project_id}: CPI={result.cpi:.3f} SPI={result.spi:.3f} status={analysis['status']}")
        return analysis

    def build_trend(self, project: ProjectFinancials) -> pd.DataFrame:
        """PV/EV/AC S-curve series for a project's progress history."""
        bac = self.validator.validate_numeric_input(project.bac, "BAC", min_val=0.0)
        plan_start, plan_finish, _ = self.parse_schedule(project)
        curve_type, alpha, beta = self.resolve_curve(project)
        return build_evm_trend(
            bac, plan_start, plan_finish, project.progress, project.cost_entries, curve_type, alpha, beta
        )

    def build_cost_control_report(self, result: EVMResult, lines: Iterable[WBSCostLine]) -> Dict[str, pd.DataFrame]:
        """Budget vs actual, variance analysis and alerts as DataFrames."""
        lines = list(lines)
        for line in lines:
            for name in ('budget', 'planned', 'earned', 'actual', 'committed'):
                self.validator.validate_numeric_input(getattr(line, name), f"{line.wbs_code} {name}", min_val=0.0)

        budget_lines = calculate_budget_vs_actual(lines)
        variance_lines = calculate_variance_analysis(lines)
        alerts = generate_cost_alerts(result, budget_lines, self.config.status_threshold_low)

        return {
            'budget_vs_actual': pd.DataFrame([line.to_dict() for line in budget_lines]),
            'variance_analysis': pd.DataFrame([line.to_dict() for line in variance_lines]),
            'alerts': pd.DataFrame([vars(alert) for alert in alerts],
                                   columns=['alert_type', 'severity', 'message', 'category', 'value', 'threshold']),
        }

    def perform_batch_calculation(self, df: pd.DataFrame, column_mapping: Optional[Dict[str, str]] = None,
                                  data_date=None) -> pd.DataFrame:
        """Perform EVM calculations on a portfolio table.

        Args:
            df: DataFrame with one project per row
            column_mapping: Column name mappings (defaults to ColumnMapping.DEFAULT_MAPPING)
            data_date: Data date used when the row has none

        Returns:
            DataFrame with one result (or error record) per processed row.
            Processing stops at the first row with a blank project id.
        """
        mapping = {**ColumnMapping.DEFAULT_MAPPING, **(column_mapping or {})}
        missing = ColumnMapping.validate_mapping(mapping, list(df.columns))
        if missing:
            raise ValueError(f"Missing required columns: {', '.join(missing)}")

        results_list: List[Dict[str, Any]] = []
        df_clean = df.copy().reset_index(drop=True)

        for idx, row in df_clean.iterrows():
            raw_id = row[mapping['pid_col']]
            if pd.isna(raw_id) or str(raw_id).strip() == "":
                logger.info(f"Stopping batch calculation at row {idx} due to blank Project ID")
                break

            project_id = str(raw_id).strip()
            try:
                project = self._project_from_row(row, mapping, project_id, data_date)
                results = self.analyze_project(project)
            except ValueError as e:
                logger.error(f"Error processing row {idx} ({project_id}): {e}")
                results = {'project_id': project_id, 'project_name': 'Error', 'error': str(e)}

            results['calculation_date'] = datetime.now().isoformat()
            results_list.append(results)

        return pd.DataFrame(results_list)

    def _project_from_row(self, row: pd.Series, mapping: Dict[str, str], project_id: str, data_date) -> ProjectFinancials:
        row_date = self._optional_cell(row, mapping.get('dd_col'))
        as_of = row_date if row_date is not None else data_date

        progress = ()
        percent = self._optional_number(row, mapping.get('progress_col'))
        if percent is not None:
            progress = (ProgressSnapshot(percent_complete=percent, as_of=as_of),)

        manual_pv = self._optional_number(row, mapping.get('pv_col'))
        manual_ev = self._optional_number(row, mapping.get('ev_col'))
        curve_type = self._optional_cell(row, mapping.get('curve_type_col'))

        return ProjectFinancials(
            project_id=project_id,
            project_name=str(self._optional_cell(row, mapping.get('pname_col')) or project_id),
            organization=str(self._optional_cell(row, mapping.get('org_col')) or ''),
            project_manager=str(self._optional_cell(row, mapping.get('pm_col')) or ''),
            bac=row[mapping['bac_col']],
            ac=row[mapping['ac_col']],
            plan_start=row[mapping['st_col']],
            plan_finish=row[mapping['fn_col']],
            data_date=as_of,
            progress=progress,
            manual_pv=manual_pv,
            use_manual_pv=manual_pv is not None,
            manual_ev=manual_ev,
            use_manual_ev=manual_ev is not None,
            curve_type=str(curve_type).strip().lower() if curve_type is not None else None,
            alpha=self._optional_number(row, mapping.get('alpha_col')),
            beta=self._optional_number(row, mapping.get('beta_col')),
        )

    @staticmethod
    def _optional_cell(row: pd.Series, column: Optional[str]):
        if not column or column not in row.index:
            return None
        value = row[column]
        if pd.isna(value) or (isinstance(value, str) and not value.strip()):
            return None
        return value

    def _optional_number(self, row: pd.Series, column: Optional[str]) -> Optional[float]:
        value = self._optional_cell(row, column)
        if value is None:
            return None
        if not self.validator.is_valid_finite_number(value):
            logger.warning(f"Ignoring non-numeric value {value!r} in column {column}")
            return None
        return float(value)
