# lt_forecaster_src/regression_utils.py

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm

from .data_utils import slice_years
from .forecasting_utils import ModelFitError, ModelFamily, fit_var

logger = logging.getLogger(__name__)

DEFAULT_PREDICTORS = ["int", "mos", "oil", "exr"]


@dataclass
class AuxiliaryResult:
    """Outcome of predictor screening and the one-step VAR(1) forecast."""

    screening: pd.DataFrame
    retained: List[str]
    threshold: float
    model_description: Dict[str, object]
    forecast_year: int
    forecast_value: float
    target: str = "inf"


def screen_predictors(data: pd.DataFrame,
                      target: str = "inf",
                      predictors: Sequence[str] = DEFAULT_PREDICTORS) -> pd.DataFrame:
    """
    Regress the target on each predictor separately (OLS with a constant).

    Parameters
    ----------
    data : pd.DataFrame
        Year-indexed table with ``target`` and every predictor, already
        restricted to the estimation sample
    target : str, default="inf"
        Dependent variable
    predictors : Sequence[str]
        Candidate regressors, one regression each

    Returns
    -------
    pd.DataFrame
        Columns ['predictor', 'coef', 'std_err', 't_stat', 'p_value', 'r_squared', 'nobs']
        in predictor order.

    Raises
    ------
    ModelFitError
        If a regression has fewer observations than its two parameters or
        contains non-finite values.
    """
    y = data[target].astype(float)
    rows = []
    for name in predictors:
        x = data[name].astype(float)
        if len(y) < 3 or not (np.all(np.isfinite(y)) and np.all(np.isfinite(x))):
            raise ModelFitError(f"cannot regress {target} on {name}: need >= 3 finite observations",
                                variables=[target, name])
        exog = sm.add_constant(x.to_numpy(), has_constant="add")
        res = sm.OLS(y.to_numpy(), exog).fit()
        rows.append({
            "predictor": name,
            "coef": float(res.params[1]),
            "std_err": float(res.bse[1]),
            "t_stat": float(res.tvalues[1]),
            "p_value": float(res.pvalues[1]),
            "r_squared": float(res.rsquared),
            "nobs": int(res.nobs),
        })
        logger.info("OLS %s ~ const + %s: coef=%.4f, p=%.4f", target, name, rows[-1]["coef"], rows[-1]["p_value"])
    return pd.DataFrame(rows, columns=["predictor", "coef", "std_err", "t_stat", "p_value", "r_squared", "nobs"])


def retained_predictors(screening: pd.DataFrame, threshold: float = 0.10) -> List[str]:
    """Predictors whose single-regressor p-value is strictly below ``threshold``."""
    keep = screening.loc[screening["p_value"] < threshold, "predictor"]
    return keep.tolist()


def run_auxiliary_stage(data: pd.DataFrame,
                        target: str = "inf",
                        predictors: Sequence[str] = DEFAULT_PREDICTORS,
                        start: int = 2016,
                        end: int = 2022,
                        threshold: float = 0.10,
                        steps: int = 1) -> AuxiliaryResult:
    """
    Screen predictors by univariate OLS, fit VAR(1) on the survivors, forecast the target.

    The screening does not control for overlap among retained predictors;
    each one is tested on its own.

    Returns
    -------
    AuxiliaryResult
        ``forecast_value`` is the target coordinate of the step-``steps``
        forecast, for year ``end + steps``.

    Raises
    ------
    ModelFitError
        If no predictor passes the threshold or the VAR cannot be estimated.
    """
    sample = slice_years(data, start, end, [target, *predictors])
    screening = screen_predictors(sample, target=target, predictors=predictors)
    retained = retained_predictors(screening, threshold)
    logger.info("Predictors retained at p < %.2f: %s", threshold, retained or "none")

    if not retained:
        raise ModelFitError(f"no predictor of '{target}' is significant at p < {threshold}",
                            ModelFamily.VAR1, [target], f"{start}-{end}")

    var_frame = sample.loc[:, [target, *retained]]
    model = fit_var(var_frame, window=f"{start}-{end}")
    path = model.forecast_variable(target, steps)
    year = int(path.index[-1])
    value = float(path.iloc[-1])
    logger.info("VAR(1) on %s: %d %s forecast = %.4f", list(var_frame.columns), year, target, value)

    return AuxiliaryResult(
        screening=screening,
        retained=retained,
        threshold=float(threshold),
        model_description=model.describe(),
        forecast_year=year,
        forecast_value=value,
        target=target,
    )
