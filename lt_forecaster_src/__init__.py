# lt_forecaster_src/__init__.py

"""
LT Macro Forecaster - AR/MA/ARMA/VAR forecast comparison for Lithuanian annual data

Key Components
--------------
- config_utils: YAML configuration and CLI override support
- data_utils: Annual panel loading, validation and stationarity summary
- parsing_utils: Command-line argument parsing (windows, lists, metric names)
- forecasting_utils: AR(1), MA(1), ARMA(1,1) and VAR(1) fitting and forecasting
- metrics_utils: Error scoring, pooled metrics, model selection, Diebold-Mariano test
- backtesting_utils: Sample windows and the robustness backtest
- regression_utils: Auxiliary OLS screening and the one-step VAR(1) inflation forecast
- plotting_utils: Forecast overlays and summary charts
- file_utils: CSV and markdown report output
- main: Main entry point and workflow orchestration

Usage
-----
    # Command-line usage
    python -m lt_forecaster_src.main --main-data data/main_data.csv

    # Programmatic usage
    from lt_forecaster_src import run_robustness, select_best_models
"""

__version__ = "1.0.0"
__author__ = "LT Macro Forecaster Development Team"

# Import key functions for easy access
from .config_utils import initialize_config, get_config_value
from .data_utils import load_main_data, load_additional_data
from .forecasting_utils import ModelFamily, fit_univariate, fit_var, fit_all_models
from .metrics_utils import score_forecast, aggregate_error_records, select_best_models, diebold_mariano_test
from .backtesting_utils import SampleWindow, DEFAULT_WINDOWS, run_robustness
from .regression_utils import run_auxiliary_stage
from .main import main, run_report

__all__ = [
    # Core functionality
    "main",
    "run_report",
    "initialize_config",
    "get_config_value",
    "load_main_data",
    "load_additional_data",
    "ModelFamily",
    "fit_univariate",
    "fit_var",
    "fit_all_models",
    "score_forecast",
    "aggregate_error_records",
    "select_best_models",
    "diebold_mariano_test",
    "SampleWindow",
    "DEFAULT_WINDOWS",
    "run_robustness",
    "run_auxiliary_stage",
    # Version info
    "__version__",
    "__author__",
]
