# lt_forecaster_src/backtesting_utils.py

"""
Fixed-window robustness backtest.

Each sample window splits the annual panel into an in-sample range and the
adjacent holdout range. For every window all model families are fit on the
in-sample data, forecast ``horizon`` steps ahead and scored against the
holdout. Error records from all windows are pooled before the metrics are
aggregated, so every (model, variable) pair is scored on more observations
than a single split would give.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from tqdm.auto import tqdm

from .data_utils import slice_years
from .forecasting_utils import ALL_FAMILIES, FittedModel, ModelFamily, descriptions_frame, fit_all_models
from .metrics_utils import (
    ErrorRecord, aggregate_error_records, pool_error_records, score_forecast
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SampleWindow:
    """In-sample range [train_start, train_end] and adjacent holdout [test_start, test_end]."""

    name: str
    train_start: int
    train_end: int
    test_start: int
    test_end: int

    def __post_init__(self):
        if self.train_start > self.train_end:
            raise ValueError(f"Window {self.name}: train_start {self.train_start} > train_end {self.train_end}")
        if self.test_start > self.test_end:
            raise ValueError(f"Window {self.name}: test_start {self.test_start} > test_end {self.test_end}")
        if self.test_start != self.train_end + 1:
            raise ValueError(
                f"Window {self.name}: holdout must start the year after in-sample ends "
                f"({self.train_end + 1}), got {self.test_start}"
            )

    @property
    def train_size(self) -> int:
        return self.train_end - self.train_start + 1

    @property
    def test_size(self) -> int:
        return self.test_end - self.test_start + 1

    def label(self) -> str:
        return f"{self.name} ({self.train_start}-{self.train_end} | {self.test_start}-{self.test_end})"

    @classmethod
    def from_mapping(cls, spec: dict) -> "SampleWindow":
        """Build from a config entry ``{name, train: [start, end], test: [start, end]}``."""
        train = spec["train"]
        test = spec["test"]
        return cls(str(spec["name"]), int(train[0]), int(train[1]), int(test[0]), int(test[1]))


DEFAULT_WINDOWS: List[SampleWindow] = [
    SampleWindow("A", 1998, 2015, 2016, 2022),
    SampleWindow("B", 1999, 2016, 2017, 2021),
    SampleWindow("C", 2000, 2017, 2018, 2022),
]


@dataclass
class ForecastRecord:
    """Point forecasts of one family for one variable from one window origin."""

    family: ModelFamily
    variable: str
    window: str
    forecast: pd.Series


@dataclass
class WindowResult:
    """Everything produced by one window run."""

    window: SampleWindow
    forecasts: List[ForecastRecord]
    errors: List[ErrorRecord]
    model_descriptions: List[Dict[str, object]] = field(default_factory=list)

    def forecast_for(self, variable: str, family: ModelFamily) -> pd.Series:
        for rec in self.forecasts:
            if rec.variable == variable and rec.family is family:
                return rec.forecast
        raise KeyError(f"No forecast for {family.value}/{variable} in window {self.window.name}")


@dataclass
class RobustnessResult:
    """Window results plus the pooled error-metric table."""

    window_results: List[WindowResult]
    metrics: pd.DataFrame
    variables: List[str]

    @property
    def error_records(self) -> List[ErrorRecord]:
        return [rec for wr in self.window_results for rec in wr.errors]

    def pooled(self) -> Dict[Tuple[str, ModelFamily], Tuple[np.ndarray, np.ndarray]]:
        return pool_error_records(self.error_records)

    def pooled_errors(self, variable: str, family: ModelFamily) -> np.ndarray:
        """Raw errors of one (variable, family) concatenated across windows."""
        return self.pooled()[(variable, ModelFamily.parse(family))][0]

    def fitted_models_frame(self) -> pd.DataFrame:
        """One row per distinct fitted model across windows (parameters and criteria)."""
        return descriptions_frame(d for wr in self.window_results for d in wr.model_descriptions)

    def forecasts_frame(self) -> pd.DataFrame:
        """Long table of every scored forecast step across windows."""
        frames = [rec.to_frame() for rec in self.error_records]
        if not frames:
            return pd.DataFrame(columns=["window", "variable", "model", "step", "year",
                                         "actual", "forecast", "error", "pct_error"])
        return pd.concat(frames, ignore_index=True)


def run_window(data: pd.DataFrame,
               window: SampleWindow,
               variables: Sequence[str],
               horizon: int = 3,
               families: Iterable[ModelFamily] = ALL_FAMILIES) -> WindowResult:
    """
    Fit, forecast and score every family on one sample window.

    Parameters
    ----------
    data : pd.DataFrame
        Year-indexed observation table containing ``variables``
    window : SampleWindow
        In-sample / holdout split
    variables : Sequence[str]
        Target series; VAR1 is fit jointly over all of them
    horizon : int, default=3
        Forecast steps per model

    Returns
    -------
    WindowResult

    Raises
    ------
    ModelFitError
        If any model fails to fit; the run is not continued.
    """
    train = slice_years(data, window.train_start, window.train_end, variables)
    test = slice_years(data, window.test_start, window.test_end, variables)
    logger.info("Window %s: train n=%d, holdout n=%d, horizon=%d",
                window.label(), len(train), len(test), horizon)

    families = [ModelFamily.parse(f) for f in families]
    fitted = fit_all_models(train, variables, families=families, window=window.name)

    forecasts: List[ForecastRecord] = []
    errors: List[ErrorRecord] = []
    descriptions: List[Dict[str, object]] = []
    seen: List[FittedModel] = []

    # Joint forecast is computed once per VAR fit and split per variable
    joint_cache: Dict[int, pd.DataFrame] = {}
    for family in families:
        for var in variables:
            model = fitted[(family, var)]
            if not any(model is m for m in seen):
                seen.append(model)
                descriptions.append(model.describe())
            if family.is_multivariate:
                joint = joint_cache.setdefault(id(model), model.forecast(horizon))
                fc = joint[var].rename(var)
            else:
                fc = model.forecast_variable(var, horizon)
            forecasts.append(ForecastRecord(family, var, window.name, fc))
            errors.append(score_forecast(test[var], fc, family=family, variable=var, window=window.name))
    return WindowResult(window, forecasts, errors, descriptions)


def run_robustness(data: pd.DataFrame,
                   windows: Sequence[SampleWindow] = DEFAULT_WINDOWS,
                   variables: Sequence[str] = ("gdp", "inf", "une"),
                   horizon: int = 3,
                   families: Iterable[ModelFamily] = ALL_FAMILIES,
                   show_progress: bool = True) -> RobustnessResult:
    """
    Run every window sequentially and aggregate metrics over the pooled errors.

    Returns
    -------
    RobustnessResult
        Per-window results and the pooled metric table (one row per
        variable x model).
    """
    if not windows:
        raise ValueError("At least one sample window is required")
    variables = list(variables)
    families = [ModelFamily.parse(f) for f in families]

    results: List[WindowResult] = []
    for window in tqdm(list(windows), desc="Sample windows", disable=not show_progress):
        results.append(run_window(data, window, variables, horizon=horizon, families=families))

    records = [rec for wr in results for rec in wr.errors]
    metrics = aggregate_error_records(records, variables=variables)
    logger.info("Pooled error metrics over %d windows:\n%s",
                len(results), metrics.to_string(index=False, float_format="%.4f"))
    return RobustnessResult(results, metrics, variables)


def windows_from_config(entries: Optional[List[dict]]) -> List[SampleWindow]:
    """Build sample windows from config entries, falling back to the defaults."""
    if not entries:
        return list(DEFAULT_WINDOWS)
    return [SampleWindow.from_mapping(e) for e in entries]
