"""Application constants and configuration."""

from pathlib import Path

# Calculation constants
DAYS_PER_MONTH = 30.44

# Config file paths for local storage
CONFIG_DIR = Path.home() / ".construction_evm"
ANALYSIS_CONFIG_FILE = CONFIG_DIR / "analysis_config.json"

# Logging
LOG_LEVEL_ENV_VAR = "EVM_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Supported baseline curves
CURVE_TYPES = ('linear', 's-curve')

# Performance status thresholds (applied to CPI and SPI)
STATUS_THRESHOLD_LOW = 0.9
STATUS_THRESHOLD_HIGH = 1.1

# Variance analysis thresholds
ON_TRACK_INDEX = 0.95
CRITICAL_INDEX = 0.85

# Budget line is "near limit" once actual passes this share of budget
NEAR_LIMIT_RATIO = 0.9

# Over-budget alerts become critical past this overrun percentage
CRITICAL_OVERRUN_PERCENT = 20.0

# Low CPI/SPI alerts become critical below this index
ALERT_CRITICAL_INDEX = 0.8

# Health score weights (CPI, SPI)
HEALTH_SCORE_WEIGHTS = (50.0, 50.0)

# Completion forecast stretches the planned duration by this when SPI is 0
NO_SPI_DURATION_FACTOR = 1.5
MIN_FORECAST_CONFIDENCE = 0.5

# Completion forecast scenarios as (duration factor, cost factor)
OPTIMISTIC_FACTORS = (0.9, 0.95)
PESSIMISTIC_FACTORS = (1.2, 1.15)

# Default analysis configuration
DEFAULT_ANALYSIS_CONFIG = {
    'curve_type': 'linear',
    'alpha': 2.0,
    'beta': 2.0,
    'currency_symbol': 'Rp',
    'currency_postfix': '',
    'date_format': 'YYYY-MM-DD',
    'status_threshold_low': STATUS_THRESHOLD_LOW,
    'status_threshold_high': STATUS_THRESHOLD_HIGH,
    'log_level': DEFAULT_LOG_LEVEL,
}

# Color schemes for performance indicators
PERFORMANCE_COLORS = {
    'on_track': '#28a745',           # Green
    'under_budget': '#17a2b8',       # Blue
    'ahead_of_schedule': '#17a2b8',  # Blue
    'behind_schedule': '#ffc107',    # Yellow
    'over_budget': '#dc3545',        # Red
    'critical': '#6f42c1',           # Purple
    'no_data': '#adb5bd'             # Light grey
}
