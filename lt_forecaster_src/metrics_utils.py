# lt_forecaster_src/metrics_utils.py

import logging
import math
import warnings
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats

from .forecasting_utils import ALL_FAMILIES, ModelFamily

logger = logging.getLogger(__name__)

ArrayLike = Union[List[float], np.ndarray, pd.Series]

METRIC_NAMES = ["MSE", "RMSE", "MAE", "MSPE", "RMSPE", "MAPE"]


class ForecastAlignmentWarning(UserWarning):
    """Forecast and actual sequences had different lengths and were truncated."""


def as_float_array(x: ArrayLike) -> np.ndarray:
    """
    Convert input to a 1D float array without dropping any element.

    Non-finite values are kept so that undefined percent errors propagate
    into the aggregates instead of being silently filtered.
    """
    return np.asarray(x, dtype=float).ravel()


def align_forecast(actual: ArrayLike, forecast: ArrayLike) -> Tuple[np.ndarray, np.ndarray]:
    """
    Positionally align a forecast with its holdout actuals.

    A forecast longer than the holdout is cut to the holdout length and a
    ``ForecastAlignmentWarning`` is emitted; a holdout longer than the
    forecast is cut to the forecast length. Nothing is raised.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        (actual, forecast) of equal length
    """
    yt = as_float_array(actual)
    yh = as_float_array(forecast)
    if len(yh) > len(yt):
        warnings.warn(
            f"Forecast length {len(yh)} exceeds holdout length {len(yt)}; truncating forecast to {len(yt)}.",
            ForecastAlignmentWarning,
            stacklevel=2,
        )
        yh = yh[:len(yt)]
    elif len(yt) > len(yh):
        yt = yt[:len(yh)]
    return yt, yh


@dataclass
class ErrorRecord:
    """Raw and percent forecast errors for one (family, variable, window)."""

    family: ModelFamily
    variable: str
    window: str
    actual: np.ndarray
    forecast: np.ndarray
    error: np.ndarray = field(init=False)
    pct_error: np.ndarray = field(init=False)
    years: Optional[List[int]] = None

    def __post_init__(self):
        self.actual = as_float_array(self.actual)
        self.forecast = as_float_array(self.forecast)
        if len(self.actual) != len(self.forecast):
            raise ValueError("ErrorRecord requires aligned actual and forecast sequences")
        self.error = self.actual - self.forecast
        # actual == 0 yields inf/nan on purpose
        with np.errstate(divide="ignore", invalid="ignore"):
            self.pct_error = self.error / self.actual

    def __len__(self) -> int:
        return len(self.error)

    def to_frame(self) -> pd.DataFrame:
        """Long-format rows: window, variable, model, step, year, actual, forecast, errors."""
        n = len(self)
        years = self.years if self.years is not None else [None] * n
        return pd.DataFrame({
            "window": [self.window] * n,
            "variable": [self.variable] * n,
            "model": [self.family.value] * n,
            "step": np.arange(1, n + 1),
            "year": years[:n],
            "actual": self.actual,
            "forecast": self.forecast,
            "error": self.error,
            "pct_error": self.pct_error,
        })


def score_forecast(actual: ArrayLike,
                   forecast: ArrayLike,
                   family: Union[str, ModelFamily],
                   variable: str = "",
                   window: str = "") -> ErrorRecord:
    """
    Align a forecast against holdout actuals and compute its error sequences.

    Parameters
    ----------
    actual : ArrayLike
        Holdout actuals in chronological order
    forecast : ArrayLike
        Step-ahead point forecasts in step order
    family : Union[str, ModelFamily]
        Model family that produced the forecast (required)
    variable, window
        Tags carried on the returned record

    Returns
    -------
    ErrorRecord
        ``error = actual - forecast`` and ``pct_error = error / actual`` over
        the aligned (shorter) length.
    """
    years = None
    if isinstance(actual, pd.Series):
        years = [int(y) for y in actual.index]
    yt, yh = align_forecast(actual, forecast)
    if years is not None:
        years = years[:len(yt)]
    return ErrorRecord(ModelFamily.parse(family), variable, window, yt, yh, years=years)


def compute_error_metrics(errors: ArrayLike, pct_errors: ArrayLike) -> Dict[str, float]:
    """
    Compute MSE, RMSE, MAE, MSPE, RMSPE and MAPE in one pass over a pooled sample.

    Percent metrics are ratios (not multiplied by 100). Non-finite percent
    errors propagate into MSPE/RMSPE/MAPE.

    Returns
    -------
    Dict[str, float]
        All six metrics; NaN when the sample is empty.
    """
    e = as_float_array(errors)
    p = as_float_array(pct_errors)
    if e.size == 0:
        return {name: float("nan") for name in METRIC_NAMES}

    mse = float(np.mean(e ** 2))
    mspe = float(np.mean(p ** 2)) if p.size else float("nan")
    return {
        "MSE": mse,
        "RMSE": math.sqrt(mse),
        "MAE": float(np.mean(np.abs(e))),
        "MSPE": mspe,
        "RMSPE": float(np.sqrt(mspe)),
        "MAPE": float(np.mean(np.abs(p))) if p.size else float("nan"),
    }


def pool_error_records(records: Iterable[ErrorRecord]) -> Dict[Tuple[str, ModelFamily], Tuple[np.ndarray, np.ndarray]]:
    """
    Concatenate error records per (variable, family) across windows.

    Returns
    -------
    Dict[Tuple[str, ModelFamily], Tuple[np.ndarray, np.ndarray]]
        (errors, pct_errors) pooled in record order
    """
    pooled: Dict[Tuple[str, ModelFamily], Tuple[List[np.ndarray], List[np.ndarray]]] = {}
    for rec in records:
        errs, pcts = pooled.setdefault((rec.variable, rec.family), ([], []))
        errs.append(rec.error)
        pcts.append(rec.pct_error)
    return {
        key: (np.concatenate(errs) if errs else np.array([], dtype=float),
              np.concatenate(pcts) if pcts else np.array([], dtype=float))
        for key, (errs, pcts) in pooled.items()
    }


def aggregate_error_records(records: Iterable[ErrorRecord],
                            variables: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Build the error-metric table from error records pooled across windows.

    Returns
    -------
    pd.DataFrame
        Columns ['variable', 'model', 'n', 'MSE', 'RMSE', 'MAE', 'MSPE', 'RMSPE', 'MAPE'],
        ordered by variable (given order, else first appearance) then family
        enumeration order.
    """
    pooled = pool_error_records(records)
    if variables is None:
        variables = list(dict.fromkeys(var for var, _ in pooled))

    rows = []
    for var in variables:
        for family in ALL_FAMILIES:
            if (var, family) not in pooled:
                continue
            errs, pcts = pooled[(var, family)]
            row = {"variable": var, "model": family.value, "n": int(errs.size)}
            row.update(compute_error_metrics(errs, pcts))
            rows.append(row)
    return pd.DataFrame(rows, columns=["variable", "model", "n", *METRIC_NAMES])


def select_best_models(metrics: pd.DataFrame,
                       metric: str = "RMSE",
                       top_n: int = 2) -> Dict[str, List[str]]:
    """
    Pick the ``top_n`` families with the lowest ``metric`` for each variable.

    Exact ties keep the family enumeration order (AR1, MA1, ARMA1, VAR1).

    Returns
    -------
    Dict[str, List[str]]
        variable -> model names, best first
    """
    if metric not in metrics.columns:
        raise KeyError(f"Metric '{metric}' not in metrics table columns {list(metrics.columns)}")

    order = {f.value: i for i, f in enumerate(ALL_FAMILIES)}
    selection: Dict[str, List[str]] = {}
    for var in dict.fromkeys(metrics["variable"]):
        sub = metrics[metrics["variable"] == var].copy()
        sub["_family_order_"] = sub["model"].map(order)
        sub = sub.sort_values("_family_order_", kind="mergesort")
        sub = sub.sort_values(metric, kind="mergesort", na_position="last")
        selection[var] = sub["model"].head(top_n).tolist()
        logger.debug("Ranking for %s by %s: %s", var, metric, sub["model"].tolist())
    return selection


@dataclass
class DMTestResult:
    """Outcome of a Diebold-Mariano comparison of two forecast error sequences."""

    statistic: float
    p_value: float
    n: int
    horizon: int = 1
    power: int = 2

    def is_significant(self, alpha: float = 0.05) -> bool:
        return bool(np.isfinite(self.p_value) and self.p_value < alpha)


def dm_long_run_variance(d: np.ndarray, h: int) -> float:
    """
    Long-run variance of the mean loss differential.

    Uses the sample autocovariances of ``d`` (divisor n) up to lag ``h - 1``.
    """
    n = len(d)
    dbar = float(np.mean(d))
    e = d - dbar
    s_hat = float(np.sum(e * e)) / n
    for k in range(1, max(1, int(h))):
        if k >= n:
            break
        s_hat += 2.0 * float(np.sum(e[k:] * e[:-k])) / n
    return s_hat / n


def diebold_mariano_test(errors1: ArrayLike,
                         errors2: ArrayLike,
                         h: int = 1,
                         power: int = 2) -> DMTestResult:
    """
    Two-sided Diebold-Mariano test of equal predictive accuracy.

    Parameters
    ----------
    errors1, errors2 : ArrayLike
        Forecast errors of the two competing models. Unequal lengths are
        truncated to the shorter one (with a ``ForecastAlignmentWarning``).
    h : int, default=1
        Forecast horizon used for the autocovariance truncation
    power : int, default=2
        Loss exponent (2 = squared-error loss)

    Returns
    -------
    DMTestResult
        Statistic with the Harvey-Leybourne-Newbold small-sample correction and
        a p-value from Student's t with n - 1 degrees of freedom. Both are NaN
        when fewer than two observations remain or the differential has zero
        variance.

    Notes
    -----
    Null hypothesis: both models have equal expected loss. Swapping the
    inputs flips the sign of the statistic and leaves the p-value unchanged.
    """
    e1 = as_float_array(errors1)
    e2 = as_float_array(errors2)
    if len(e1) != len(e2):
        n_min = min(len(e1), len(e2))
        warnings.warn(
            f"Error sequences differ in length ({len(e1)} vs {len(e2)}); truncating to {n_min}.",
            ForecastAlignmentWarning,
            stacklevel=2,
        )
        e1, e2 = e1[:n_min], e2[:n_min]

    n = len(e1)
    h = int(h)
    if n < 2:
        logger.warning("Diebold-Mariano test needs at least 2 observations, got %d", n)
        return DMTestResult(float("nan"), float("nan"), n, h, power)

    d = np.abs(e1) ** power - np.abs(e2) ** power
    var_dbar = dm_long_run_variance(d, h)
    if not np.isfinite(var_dbar) or var_dbar <= 0.0:
        logger.warning("Diebold-Mariano variance is not positive (%.3g); test undefined", var_dbar)
        return DMTestResult(float("nan"), float("nan"), n, h, power)

    dm_stat = float(np.mean(d)) / math.sqrt(var_dbar)
    correction = math.sqrt((n + 1 - 2 * h + h * (h - 1) / n) / n)
    dm_stat *= correction
    p_value = float(2.0 * stats.t.sf(abs(dm_stat), df=n - 1))
    return DMTestResult(float(dm_stat), min(max(p_value, 0.0), 1.0), n, h, power)


def run_significance_tests(pooled_errors: Dict[Tuple[str, ModelFamily], Tuple[np.ndarray, np.ndarray]],
                           selection: Dict[str, List[str]],
                           h: int = 1,
                           power: int = 2) -> pd.DataFrame:
    """
    Run the Diebold-Mariano test between the two selected models of each variable.

    Parameters
    ----------
    pooled_errors : dict
        Output of ``pool_error_records``
    selection : dict
        Output of ``select_best_models`` (at least two models per variable)

    Returns
    -------
    pd.DataFrame
        Columns ['variable', 'best_model', 'second_model', 'n', 'dm_statistic', 'p_value']
    """
    rows = []
    for var, models in selection.items():
        if len(models) < 2:
            logger.warning("Skipping DM test for %s: fewer than two models selected", var)
            continue
        best, second = ModelFamily.parse(models[0]), ModelFamily.parse(models[1])
        e_best = pooled_errors[(var, best)][0]
        e_second = pooled_errors[(var, second)][0]
        res = diebold_mariano_test(e_best, e_second, h=h, power=power)
        logger.info("DM test %s: %s vs %s -> stat=%.3f, p=%.3f",
                    var, best.value, second.value, res.statistic, res.p_value)
        rows.append({
            "variable": var,
            "best_model": best.value,
            "second_model": second.value,
            "n": res.n,
            "dm_statistic": res.statistic,
            "p_value": res.p_value,
        })
    return pd.DataFrame(rows, columns=["variable", "best_model", "second_model", "n", "dm_statistic", "p_value"])
