"""Formatting service for EVM data display."""

from __future__ import annotations
import math
import pandas as pd
from typing import Any, Dict, Union
from datetime import datetime

from config.constants import PERFORMANCE_COLORS
from core.utils import parse_date_any
from models.project import AnalysisConfig, ProjectValidator


class FormattingService:
    """Service for formatting EVM data for display."""

    def __init__(self, currency_symbol: str = "Rp", currency_postfix: str = "", date_format: str = "YYYY-MM-DD"):
        self.currency_symbol = currency_symbol
        self.currency_postfix = currency_postfix
        self.date_format = date_format
        self.validator = ProjectValidator()

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> 'FormattingService':
        return cls(config.currency_symbol, config.currency_postfix, config.date_format)

    def format_currency(self, amount: float, decimals: int = 0) -> str:
        """Currency with comma separators and an optional unit postfix label."""
        if not self.validator.is_valid_finite_number(amount):
            return "—"

        # Postfix labels only; figures are already in the stated unit
        postfix_label = {
            'thousand': 'K',
            'million': 'M',
            'billion': 'B',
        }.get(self.currency_postfix.lower(), '')

        sign = "-" if amount < 0 else ""
        result = f"{sign}{self.currency_symbol}{abs(amount):,.{decimals}f}"
        if postfix_label:
            result += f" {postfix_label}"
        return result

    def format_percentage(self, value: float, decimals: int = 1) -> str:
        """Format percentage values consistently."""
        if not self.validator.is_valid_finite_number(value):
            return "—"
        return f"{value:.{decimals}f}%"

    def format_performance_index(self, value: float, decimals: int = 2, has_data: bool = True) -> str:
        """Format CPI/SPI/TCPI. Indices without underlying data show as N/A."""
        if not has_data or not self.validator.is_valid_finite_number(value):
            return "N/A"
        return f"{value:.{decimals}f}"

    def format_days(self, value: float) -> str:
        """Format a day count as a rounded integer."""
        if not self.validator.is_valid_finite_number(value):
            return "—"
        return f"{int(round(value))} days"

    def format_date(self, date_input: Union[str, datetime, None], output_format: str = None) -> str:
        """Format date to the configured format."""
        if output_format is None:
            output_format = '%d-%m-%Y' if self.date_format == 'DD-MM-YYYY' else '%Y-%m-%d'

        parsed_date = parse_date_any(date_input)
        if parsed_date is None:
            return "N/A"
        return parsed_date.strftime(output_format)

    def format_status(self, status: str) -> str:
        """Human-readable label for a performance status code."""
        if not status:
            return "N/A"
        return str(status).replace('_', ' ').title()

    @staticmethod
    def status_color(status: str) -> str:
        """Indicator color for a performance status code."""
        return PERFORMANCE_COLORS.get(status, '#6c757d')

    def format_results_for_display(self, results_df: pd.DataFrame) -> pd.DataFrame:
        """Format a batch results DataFrame for display."""
        if results_df.empty:
            return results_df

        display_df = results_df.copy()

        currency_cols = ['bac', 'ac', 'pv', 'ev', 'eac', 'etc', 'eac_by_cpi', 'eac_by_spi', 'eac_by_cpi_and_spi',
                         'eac_optimistic', 'eac_pessimistic']
        variance_cols = ['cv', 'sv', 'vac']
        for col in currency_cols + variance_cols:
            if col in display_df.columns:
                display_df[col] = display_df[col].apply(lambda x: self.format_currency(x) if pd.notna(x) else "—")

        percentage_cols = ['percent_budget_used', 'percent_complete', 'percent_time_used', 'task_completion_rate', 'health_score']
        for col in percentage_cols:
            if col in display_df.columns:
                display_df[col] = display_df[col].apply(lambda x: self.format_percentage(x) if pd.notna(x) else "—")

        index_cols = {'cpi': 'has_cost_data', 'spi': 'has_schedule_data', 'tcpi': None, 'spi_t': None}
        for col, flag_col in index_cols.items():
            if col not in display_df.columns:
                continue
            if flag_col and flag_col in results_df.columns:
                display_df[col] = [
                    self.format_performance_index(value, has_data=bool(flag)) if pd.notna(value) else "N/A"
                    for value, flag in zip(results_df[col], results_df[flag_col])
                ]
            else:
                display_df[col] = display_df[col].apply(lambda x: self.format_performance_index(x) if pd.notna(x) else "N/A")

        for col in ['es_days', 'at_days', 'sv_t_days', 'days_to_complete']:
            if col in display_df.columns:
                display_df[col] = display_df[col].apply(lambda x: self.format_days(x) if pd.notna(x) else "—")

        for col in ['plan_start', 'plan_finish', 'data_date', 'forecast_finish', 'finish_optimistic', 'finish_pessimistic']:
            if col in display_df.columns:
                display_df[col] = display_df[col].apply(lambda x: self.format_date(x) if pd.notna(x) else "N/A")

        if 'status' in display_df.columns:
            display_df['status'] = display_df['status'].apply(lambda x: self.format_status(x) if pd.notna(x) else "N/A")

        return display_df

    def format_results_for_download(self, results_df: pd.DataFrame) -> pd.DataFrame:
        """Reorganize batch results with report column names and minimal formatting."""
        if results_df.empty:
            return results_df

        column_mapping = {
            'Project ID': 'project_id',
            'Project Name': 'project_name',
            'Organization': 'organization',
            'Project Manager': 'project_manager',
            'Budget': 'bac',
            'Plan Start': 'plan_start',
            'Plan Finish': 'plan_finish',
            'Data Date': 'data_date',
            'Actual Cost': 'ac',
            'Earned Value': 'ev',
            'Planned Value': 'pv',
            'Cost Variance': 'cv',
            'Schedule Variance': 'sv',
            'CPI': 'cpi',
            'SPI': 'spi',
            'TCPI': 'tcpi',
            'EAC': 'eac',
            'ETC': 'etc',
            'VAC': 'vac',
            'Forecast Finish': 'forecast_finish',
            'Budget Used %': 'percent_budget_used',
            'Percent Complete': 'percent_complete',
            'Time Used %': 'percent_time_used',
            'Earned Schedule (days)': 'es_days',
            'SPI(t)': 'spi_t',
            'Status': 'status',
            'Health Score': 'health_score',
            'Curve Type': 'curve_type',
            'Error': 'error',
        }

        formatted_df = pd.DataFrame(index=results_df.index)
        for display_name, source_col in column_mapping.items():
            if source_col in results_df.columns:
                formatted_df[display_name] = results_df[source_col]
            elif source_col != 'error':
                formatted_df[display_name] = "N/A"

        return formatted_df

    def build_results_table(self, results: Dict[str, Any]) -> pd.DataFrame:
        """Two-column Metric/Value table for a single project analysis."""
        has_cost = bool(results.get('has_cost_data', True))
        has_schedule = bool(results.get('has_schedule_data', True))
        confidence = results.get('confidence_level')

        data = [
            ["Project ID", self.maybe(results.get('project_id'))],
            ["Project Name", self.maybe(results.get('project_name'))],
            ["", ""],

            # Financial metrics
            ["📊 FINANCIAL METRICS", ""],
            ["Budget at Completion (BAC)", self.format_currency(results.get('bac'))],
            ["Actual Cost (AC)", self.format_currency(results.get('ac'))],
            ["Earned Value (EV)", self.format_currency(results.get('ev'))],
            ["Planned Value (PV)", self.format_currency(results.get('pv'))],
            ["", ""],

            # Performance indices
            ["📈 PERFORMANCE INDICES", ""],
            ["Cost Performance Index (CPI)", self.format_performance_index(results.get('cpi'), has_data=has_cost)],
            ["Schedule Performance Index (SPI)", self.format_performance_index(results.get('spi'), has_data=has_schedule)],
            ["To-Complete Performance Index (TCPI)", self.format_performance_index(results.get('tcpi'))],
            ["Status", self.format_status(results.get('status'))],
            ["Health Score", self.format_percentage(results.get('health_score'), decimals=0)],
            ["", ""],

            # Variances
            ["📊 VARIANCES", ""],
            ["Cost Variance (CV)", self.format_currency(results.get('cv'))],
            ["Schedule Variance (SV)", self.format_currency(results.get('sv'))],
            ["Schedule Variance (time)", self.format_days(results.get('sv_t_days'))],
            ["", ""],

            # Forecasts
            ["🔮 FORECASTS", ""],
            ["Estimate at Completion (EAC)", self.format_currency(results.get('eac'))],
            ["Estimate to Complete (ETC)", self.format_currency(results.get('etc'))],
            ["Variance at Completion (VAC)", self.format_currency(results.get('vac'))],
            ["Forecast Finish", self.format_date(results.get('forecast_finish'))],
            ["Days to Complete", self.format_days(results.get('days_to_complete'))],
            ["Forecast Confidence", self.format_percentage(confidence * 100 if confidence is not None else None, decimals=0)],
            ["", ""],

            # Progress indicators
            ["📈 PROGRESS INDICATORS", ""],
            ["Budget Used %", self.format_percentage(results.get('percent_budget_used'))],
            ["Percent Complete", self.format_percentage(results.get('percent_complete'))],
            ["Time Used %", self.format_percentage(results.get('percent_time_used'))],
            ["Data Date", self.format_date(results.get('data_date'))],
        ]
        return pd.DataFrame(data, columns=["Metric", "Value"])

    def maybe(self, val: Any, default: str = "—") -> str:
        """Return default if value is None or invalid."""
        if val is None:
            return default
        if isinstance(val, float) and math.isnan(val):
            return default
        return str(val)
