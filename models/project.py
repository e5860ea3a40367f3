"""Project data models and validation."""

from __future__ import annotations
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Optional, Dict, Any, List, Tuple

from config.constants import DEFAULT_ANALYSIS_CONFIG, CURVE_TYPES
from core.utils import validate_numeric_input, is_valid_finite_number
from models.records import CostEntry, ProgressSnapshot, TaskRecord


@dataclass
class ProjectFinancials:
    """Project data structure for EVM analysis.

    ``ac`` may be left as None, in which case it is summed from
    ``cost_entries`` up to the data date. Earned value comes from the latest
    progress snapshot or, when present, from ``tasks``.
    """
    project_id: str
    project_name: str
    bac: float
    plan_start: datetime
    plan_finish: datetime
    data_date: datetime
    ac: Optional[float] = None
    cost_entries: Tuple[CostEntry, ...] = ()
    progress: Tuple[ProgressSnapshot, ...] = ()
    tasks: Tuple[TaskRecord, ...] = ()
    manual_ev: Optional[float] = None
    manual_pv: Optional[float] = None
    use_manual_ev: bool = False
    use_manual_pv: bool = False
    organization: str = ''
    project_manager: str = ''
    # Per-project EVM settings (optional - will use global if None)
    curve_type: Optional[str] = None
    alpha: Optional[float] = None
    beta: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the identifying and input fields to a flat dictionary."""
        return {
            'project_id': self.project_id,
            'project_name': self.project_name,
            'organization': self.organization,
            'project_manager': self.project_manager,
            'bac': self.bac,
            'plan_start': self.plan_start.isoformat() if isinstance(self.plan_start, datetime) else self.plan_start,
            'plan_finish': self.plan_finish.isoformat() if isinstance(self.plan_finish, datetime) else self.plan_finish,
            'data_date': self.data_date.isoformat() if isinstance(self.data_date, datetime) else self.data_date,
            'manual_ev': self.manual_ev,
            'manual_pv': self.manual_pv,
            'use_manual_ev': self.use_manual_ev,
            'use_manual_pv': self.use_manual_pv,
        }


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for EVM analysis."""
    curve_type: str = 'linear'
    alpha: float = 2.0
    beta: float = 2.0
    currency_symbol: str = 'Rp'
    currency_postfix: str = ''
    date_format: str = 'YYYY-MM-DD'
    status_threshold_low: float = 0.9
    status_threshold_high: float = 1.1
    log_level: str = 'INFO'

    @classmethod
    def from_dict(cls, settings: Dict[str, Any]) -> 'AnalysisConfig':
        """Build a config from a settings dict, ignoring unknown keys."""
        merged = {**DEFAULT_ANALYSIS_CONFIG, **(settings or {})}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in merged.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


class ProjectValidator:
    """Validation utilities for project data."""

    @staticmethod
    def validate_numeric_input(value: Any, field_name: str, min_val: Optional[float] = None,
                               max_val: Optional[float] = None) -> float:
        """Validate numeric input with optional range checking."""
        return validate_numeric_input(value, field_name, min_val=min_val, max_val=max_val)

    @staticmethod
    def is_valid_finite_number(value: Any) -> bool:
        """Check if value is a valid finite number."""
        return is_valid_finite_number(value)

    @staticmethod
    def validate_curve_type(curve_type: Any) -> str:
        """Normalise a curve type name, raising ValueError when unsupported."""
        normalized = str(curve_type or '').strip().lower()
        if normalized in ('scurve', 's curve'):
            normalized = 's-curve'
        if normalized not in CURVE_TYPES:
            raise ValueError(f"Invalid curve type: {curve_type!r} (expected one of {', '.join(CURVE_TYPES)})")
        return normalized

    def validate_config(self, config: AnalysisConfig) -> List[str]:
        """Return a list of problems with ``config`` (empty when valid)."""
        problems = []
        try:
            self.validate_curve_type(config.curve_type)
        except ValueError as e:
            problems.append(str(e))
        for name in ('alpha', 'beta'):
            try:
                self.validate_numeric_input(getattr(config, name), name, min_val=0.1)
            except ValueError as e:
                problems.append(str(e))
        if config.status_threshold_low > config.status_threshold_high:
            problems.append("status_threshold_low must not exceed status_threshold_high")
        return problems


class ColumnMapping:
    """Standard column mappings for portfolio data."""

    DEFAULT_MAPPING = {
        'pid_col': 'Project ID',
        'pname_col': 'Project',
        'org_col': 'Organization',
        'pm_col': 'Project Manager',
        'bac_col': 'BAC',
        'ac_col': 'AC',
        'st_col': 'Plan Start',
        'fn_col': 'Plan Finish',
        'dd_col': 'Data Date',
        'ev_col': 'EV',
        'pv_col': 'PV',
        'progress_col': 'Percent Complete',
        # Optional EVM settings columns
        'curve_type_col': 'Curve Type',
        'alpha_col': 'Alpha',
        'beta_col': 'Beta',
    }

    REQUIRED_KEYS = ('pid_col', 'bac_col', 'ac_col', 'st_col', 'fn_col')

    @classmethod
    def validate_mapping(cls, mapping: Dict[str, str], available_columns: List[str]) -> List[str]:
        """Validate column mapping and return missing required columns."""
        missing = []
        for key in cls.REQUIRED_KEYS:
            mapped_col = mapping.get(key, cls.DEFAULT_MAPPING[key])
            if mapped_col not in available_columns:
                missing.append(f"{key}: {mapped_col}")
        return missing
