# lt_forecaster_src/main.py

"""
AR(1) / MA(1) / ARMA(1,1) / VAR(1) forecast comparison on Lithuanian annual data (1998–2022).

This is the main entry point of the report pipeline.

Purpose
-------
- Load the annual panel (GDP growth, inflation, unemployment) and the auxiliary
  inflation predictors (interest rate, money-supply growth, crude-oil price,
  exchange rate)
- Fit the four model families on three overlapping in-sample windows and
  forecast three years ahead from each
- Score forecasts against the holdout years; pool the errors across windows and
  compute MSE, RMSE, MAE, MSPE, RMSPE and MAPE per variable and model
- Select the two lowest-RMSE models per variable and compare them with a
  two-sided Diebold-Mariano test
- Screen the auxiliary predictors by single-regressor OLS (p < 0.10), fit a
  VAR(1) on inflation plus the retained predictors and forecast 2023 inflation

Configuration-Driven Workflow
-----------------------------
Defaults live in config/forecaster.yaml. CLI arguments override configuration
values where applicable.
"""

import argparse
import logging
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from .config_utils import initialize_config, get_config_value
from .data_utils import load_main_data, load_additional_data, summarize_stationarity
from .parsing_utils import parse_windows_arg, parse_list_arg, validate_metric, validate_log_level
from .backtesting_utils import RobustnessResult, run_robustness, windows_from_config
from .forecasting_utils import descriptions_frame
from .metrics_utils import select_best_models, run_significance_tests
from .regression_utils import AuxiliaryResult, DEFAULT_PREDICTORS, run_auxiliary_stage
from .plotting_utils import generate_report_figures
from .file_utils import ensure_dir, resolve_path, write_table_csv, md_table_from_df, write_markdown_report

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent


@dataclass
class ReportResult:
    """Everything the report run produced."""

    robustness: RobustnessResult
    selection: Dict[str, List[str]]
    dm_table: pd.DataFrame
    auxiliary: Optional[AuxiliaryResult] = None
    outputs: List[Path] = field(default_factory=list)

    @property
    def metrics(self) -> pd.DataFrame:
        return self.robustness.metrics


def run_forecast_evaluation(data: pd.DataFrame, args: Optional[argparse.Namespace] = None):
    """
    Run the robustness backtest, model selection and Diebold-Mariano comparison.

    Parameters
    ----------
    data : pd.DataFrame
        Year-indexed main panel
    args : argparse.Namespace, optional
        CLI arguments for overrides

    Returns
    -------
    Tuple[RobustnessResult, Dict[str, List[str]], pd.DataFrame]
        (robustness result, per-variable selection, DM table)
    """
    variables = parse_list_arg(getattr(args, "variables", None)) or get_config_value(
        "model.variables", ["gdp", "inf", "une"])
    horizon = int(get_config_value("model.horizon", 3, args, "horizon"))
    metric = validate_metric(get_config_value("evaluation.selection_metric", "RMSE", args, "metric"))
    top_n = int(get_config_value("evaluation.top_n", 2))
    dm_h = int(get_config_value("evaluation.dm_horizon", 1))
    dm_power = int(get_config_value("evaluation.dm_power", 2))

    windows = parse_windows_arg(getattr(args, "windows", None))
    if windows is None:
        windows = windows_from_config(get_config_value("windows", None))

    show_progress = not getattr(args, "no_progress", False)
    robustness = run_robustness(data, windows=windows, variables=variables,
                                horizon=horizon, show_progress=show_progress)

    selection = select_best_models(robustness.metrics, metric=metric, top_n=top_n)
    for var, models in selection.items():
        logger.info("Best models for %s by %s: %s", var, metric, models)

    dm_table = run_significance_tests(robustness.pooled(), selection, h=dm_h, power=dm_power)
    return robustness, selection, dm_table


def _auxiliary_predictors(args: Optional[argparse.Namespace]) -> List[str]:
    return parse_list_arg(getattr(args, "predictors", None)) or list(get_config_value(
        "auxiliary.predictors", DEFAULT_PREDICTORS))


def _auxiliary_target() -> str:
    return str(get_config_value("auxiliary.target", "inf"))


def run_auxiliary_workflow(additional: pd.DataFrame,
                           args: Optional[argparse.Namespace] = None) -> AuxiliaryResult:
    """
    Screen inflation predictors and produce the one-step VAR(1) inflation forecast.
    """
    predictors = _auxiliary_predictors(args)
    target = _auxiliary_target()
    start = int(get_config_value("auxiliary.start", 2016))
    end = int(get_config_value("auxiliary.end", 2022))
    threshold = float(get_config_value("auxiliary.threshold", 0.10, args, "threshold"))

    result = run_auxiliary_stage(additional, target=target, predictors=predictors,
                                 start=start, end=end, threshold=threshold)
    return result


def _write_outputs(result: ReportResult, data: pd.DataFrame, out_dir: Path, make_plots: bool) -> List[Path]:
    """Write CSV tables, the markdown report and (optionally) figures."""
    ensure_dir(out_dir)
    outputs = [
        write_table_csv(result.metrics, out_dir / "error_metrics.csv"),
        write_table_csv(result.dm_table, out_dir / "dm_tests.csv"),
        write_table_csv(result.robustness.forecasts_frame(), out_dir / "forecasts.csv"),
    ]
    fitted = result.robustness.fitted_models_frame()
    outputs.append(write_table_csv(fitted, out_dir / "fitted_models.csv"))

    sections = [
        ("Error metrics (pooled over windows)", md_table_from_df(result.metrics)),
        ("Diebold-Mariano tests (best vs second best)", md_table_from_df(result.dm_table)),
        ("Fitted models", md_table_from_df(fitted, columns=["window", "model", "variables", "nobs", "aic", "bic"])),
    ]

    aux = result.auxiliary
    if aux is not None:
        outputs.append(write_table_csv(aux.screening, out_dir / "auxiliary_regressions.csv"))
        retained = ", ".join(aux.retained) if aux.retained else "none"
        sections.append((
            "Auxiliary regressions",
            md_table_from_df(aux.screening)
            + f"\n\nRetained at p < {aux.threshold:.2f}: {retained}",
        ))
        sections.append(("Auxiliary VAR(1) fit", md_table_from_df(descriptions_frame([aux.model_description]))))
        sections.append((
            f"{aux.forecast_year} forecast",
            f"Predicted {aux.forecast_year} {aux.target} (VAR(1) on {aux.target} + {retained}): "
            f"**{aux.forecast_value:.2f}%**",
        ))

    outputs.append(write_markdown_report(out_dir / "report.md", "Lithuania macro forecast report", sections))

    if make_plots:
        outputs.extend(generate_report_figures(data, result.robustness, result.dm_table, out_dir))
    return outputs


def run_report(main_csv: Path,
               additional_csv: Optional[Path],
               out_dir: Path,
               args: Optional[argparse.Namespace] = None) -> ReportResult:
    """
    Execute the full report: backtest, selection, DM tests, auxiliary forecast, outputs.

    Parameters
    ----------
    main_csv : Path
        CSV with columns ['period', 'gdp', 'inf', 'une']
    additional_csv : Optional[Path]
        CSV with columns ['period', 'inf', 'int', 'mos', 'oil', 'exr']; the
        auxiliary stage is skipped when None
    out_dir : Path
        Output directory for tables, report and figures
    args : argparse.Namespace, optional
        CLI arguments

    Returns
    -------
    ReportResult
    """
    logger.info("Starting report with data: %s", main_csv)
    data = load_main_data(main_csv)
    summarize_stationarity(data)

    robustness, selection, dm_table = run_forecast_evaluation(data, args)
    result = ReportResult(robustness=robustness, selection=selection, dm_table=dm_table)

    if additional_csv is not None:
        additional = load_additional_data(additional_csv, _auxiliary_predictors(args), target=_auxiliary_target())
        aux = run_auxiliary_workflow(additional, args)
        result.auxiliary = aux
        label = "inflation" if aux.target == "inf" else aux.target
        print(f"Predicted {aux.forecast_year} {label}: {aux.forecast_value:.2f}%")
    else:
        logger.info("No auxiliary data provided; skipping the inflation predictor stage")

    make_plots = bool(get_config_value("output.plots", True)) and not getattr(args, "no_plots", False)
    result.outputs = _write_outputs(result, data, out_dir, make_plots)
    logger.info("Report completed successfully")
    return result


def setup_cli_parser() -> argparse.ArgumentParser:
    """
    Set up the command-line argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description="AR/MA/ARMA/VAR forecast comparison on Lithuanian annual macro data (1998-2022)."
    )

    # Data and output arguments
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to YAML configuration (default: config/forecaster.yaml)."
    )
    parser.add_argument(
        "--main-data", type=str, default=None,
        help="CSV with columns period, gdp, inf, une. Uses config data.main_csv if not specified."
    )
    parser.add_argument(
        "--additional-data", type=str, default=None,
        help="CSV with columns period, inf, int, mos, oil, exr. Uses config data.additional_csv if not specified."
    )
    parser.add_argument(
        "--skip-auxiliary", action="store_true", default=False,
        help="Skip the inflation predictor screening and 2023 forecast."
    )
    parser.add_argument(
        "--output-dir", type=str, default=None,
        help="Directory for tables, report and figures (resolved relative to the project root)."
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging verbosity level."
    )

    # Model and evaluation controls
    parser.add_argument(
        "--variables", type=str, default=None,
        help="Comma-separated target variables (e.g., 'gdp,inf,une')."
    )
    parser.add_argument(
        "--horizon", type=int, default=None,
        help="Forecast steps per window. Uses config default if not specified."
    )
    parser.add_argument(
        "--metric", type=str, default=None,
        help="Metric used to rank models (MSE, RMSE, MAE, MSPE, RMSPE, MAPE)."
    )
    parser.add_argument(
        "--windows", type=str, default=None,
        help="Sample windows as NAME:START-END:START-END, comma-separated "
             "(e.g., 'A:1998-2015:2016-2022,B:1999-2016:2017-2021')."
    )

    # Auxiliary stage controls
    parser.add_argument(
        "--predictors", type=str, default=None,
        help="Comma-separated auxiliary predictors (e.g., 'int,mos,oil,exr')."
    )
    parser.add_argument(
        "--threshold", type=float, default=None,
        help="p-value threshold for retaining a predictor (default 0.10)."
    )

    # Output controls
    parser.add_argument(
        "--no-plots", action="store_true", default=False,
        help="Skip figure generation."
    )
    parser.add_argument(
        "--no-progress", action="store_true", default=False,
        help="Disable the progress bar."
    )
    return parser


def setup_logging(log_level: str) -> None:
    """
    Configure logging with specified level and warning filters.

    Parameters
    ----------
    log_level : str
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = validate_log_level(log_level)
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    # Configure warnings based on log level
    if level == "DEBUG":
        warnings.resetwarnings()
        warnings.filterwarnings("default")
    else:
        from statsmodels.tools.sm_exceptions import ConvergenceWarning
        warnings.filterwarnings("ignore", category=ConvergenceWarning)
        warnings.filterwarnings("ignore", category=FutureWarning)
        warnings.filterwarnings("ignore", category=UserWarning, module="statsmodels")


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for the forecast report.

    Parses CLI arguments, loads configuration, and runs the report pipeline.
    """
    parser = setup_cli_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    initialize_config(resolve_path(args.config, BASE_DIR) if args.config else None, force=True)

    main_csv = resolve_path(get_config_value("data.main_csv", "data/main_data.csv", args, "main_data"), BASE_DIR)
    additional_csv: Optional[Path] = None
    if not args.skip_auxiliary:
        additional_csv = resolve_path(
            get_config_value("data.additional_csv", "data/additional_data.csv", args, "additional_data"), BASE_DIR)
    out_dir = resolve_path(get_config_value("output.dir", "figures", args, "output_dir"), BASE_DIR)

    run_report(main_csv, additional_csv, out_dir, args)


if __name__ == "__main__":
    main()
