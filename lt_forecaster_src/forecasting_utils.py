# lt_forecaster_src/forecasting_utils.py

import logging
import warnings
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from statsmodels.tsa.api import VAR
from statsmodels.tsa.arima.model import ARIMA
from statsmodels.tsa.stattools import adfuller

logger = logging.getLogger(__name__)


class ModelFamily(Enum):
    """Model families compared in the report, in enumeration (tie-break) order."""
    AR1 = "AR1"
    MA1 = "MA1"
    ARMA1 = "ARMA1"
    VAR1 = "VAR1"

    @property
    def is_multivariate(self) -> bool:
        return self is ModelFamily.VAR1

    @property
    def arima_order(self) -> Tuple[int, int, int]:
        """(p, d, q) for the univariate families."""
        if self.is_multivariate:
            raise ValueError("VAR1 has no ARIMA order")
        return ARIMA_ORDERS[self]

    @classmethod
    def parse(cls, name: Union[str, "ModelFamily"]) -> "ModelFamily":
        if isinstance(name, cls):
            return name
        key = str(name).strip().upper().replace("(", "").replace(")", "").replace(",", "")
        aliases = {"AR1": cls.AR1, "MA1": cls.MA1, "ARMA1": cls.ARMA1, "ARMA11": cls.ARMA1, "VAR1": cls.VAR1}
        if key not in aliases:
            raise ValueError(f"Unknown model family '{name}'. Must be one of: {[f.value for f in cls]}")
        return aliases[key]


ARIMA_ORDERS = {
    ModelFamily.AR1: (1, 0, 0),
    ModelFamily.MA1: (0, 0, 1),
    ModelFamily.ARMA1: (1, 0, 1),
}

ALL_FAMILIES: List[ModelFamily] = list(ModelFamily)


class ModelFitError(RuntimeError):
    """Raised when a model cannot be estimated on the given in-sample window."""

    def __init__(self, message: str, family: Optional[ModelFamily] = None,
                 variables: Optional[Sequence[str]] = None, window: Optional[str] = None):
        self.family = family
        self.variables = list(variables) if variables is not None else []
        self.window = window
        where = []
        if family is not None:
            where.append(family.value)
        if self.variables:
            where.append(",".join(self.variables))
        if window:
            where.append(f"window {window}")
        prefix = f"[{' / '.join(where)}] " if where else ""
        super().__init__(prefix + message)


def adf_test(series: Union[pd.Series, np.ndarray]) -> Tuple[float, float]:
    """
    Run the Augmented Dickey-Fuller (ADF) test for unit roots.

    Parameters
    ----------
    series : Union[pd.Series, np.ndarray]
        Input series. NaNs are dropped prior to testing.

    Returns
    -------
    Tuple[float, float]
        (test_statistic, p_value)

    Notes
    -----
    - ADF null hypothesis: the series has a unit root (non-stationary)
    - Lower p-values (< 0.05) suggest rejection of null (series is stationary)
    """
    res = adfuller(pd.Series(series).dropna())
    return res[0], res[1]


def _forecast_years(last_year: int, horizon: int) -> pd.Index:
    return pd.Index(range(last_year + 1, last_year + horizon + 1), name="period")


def _check_horizon(horizon: int) -> int:
    h = int(horizon)
    if h < 1:
        raise ValueError(f"Forecast horizon must be >= 1, got {horizon}")
    return h


def _safe_criterion(results, name: str) -> float:
    # Information criteria are undefined when the residual covariance is singular
    try:
        return float(getattr(results, name))
    except (ValueError, np.linalg.LinAlgError, ZeroDivisionError):
        return float("nan")


def _log_fit_warnings(caught: List[warnings.WarningMessage], label: str) -> None:
    for w in caught:
        logger.debug("%s fit warning: %s: %s", label, w.category.__name__, w.message)


class FittedModel:
    """
    Common capability set of every fitted model: ``forecast`` and ``describe``.

    Subclasses hold the statsmodels results object for one estimation on one
    in-sample window. Instances are not refit or mutated after construction.
    """

    family: ModelFamily

    def __init__(self, family: ModelFamily, variables: Sequence[str], last_year: int,
                 nobs: int, window: Optional[str] = None):
        self.family = family
        self._variables = tuple(variables)
        self.last_year = int(last_year)
        self.nobs = int(nobs)
        self.window = window

    @property
    def variables(self) -> Tuple[str, ...]:
        return self._variables

    def _forecast_values(self, horizon: int) -> np.ndarray:
        raise NotImplementedError

    def forecast(self, horizon: int) -> pd.DataFrame:
        """
        Produce ``horizon`` recursive point forecasts.

        Returns
        -------
        pd.DataFrame
            One row per step, indexed by forecast year, one column per variable.
        """
        h = _check_horizon(horizon)
        values = np.asarray(self._forecast_values(h), dtype=float).reshape(h, len(self._variables))
        return pd.DataFrame(values, index=_forecast_years(self.last_year, h), columns=list(self._variables))

    def forecast_variable(self, variable: str, horizon: int) -> pd.Series:
        """Forecast path of a single variable (extracted from the joint output for VAR1)."""
        if variable not in self._variables:
            raise KeyError(f"{self.family.value} model was not fit on '{variable}'")
        out = self.forecast(horizon)[variable]
        out.name = variable
        return out

    def describe(self) -> Dict[str, object]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(family={self.family.value}, variables={list(self._variables)}, "
                f"nobs={self.nobs}, last_year={self.last_year})")


class UnivariateFittedModel(FittedModel):
    """AR(1), MA(1) or ARMA(1,1) with a constant, estimated by statsmodels ARIMA."""

    def __init__(self, family: ModelFamily, variable: str, results, last_year: int,
                 window: Optional[str] = None):
        super().__init__(family, [variable], last_year, int(results.nobs), window)
        self._results = results

    def _forecast_values(self, horizon: int) -> np.ndarray:
        return np.asarray(self._results.forecast(steps=horizon), dtype=float)

    def describe(self) -> Dict[str, object]:
        names = list(self._results.model.param_names)
        params = np.asarray(self._results.params, dtype=float)
        return {
            "family": self.family.value,
            "variables": list(self.variables),
            "window": self.window,
            "order": self.family.arima_order,
            "nobs": self.nobs,
            "params": dict(zip(names, params.tolist())),
            "aic": _safe_criterion(self._results, "aic"),
            "bic": _safe_criterion(self._results, "bic"),
        }


class VARFittedModel(FittedModel):
    """VAR(1) with intercept, OLS equation by equation (statsmodels VAR)."""

    def __init__(self, variables: Sequence[str], results, last_year: int,
                 window: Optional[str] = None):
        super().__init__(ModelFamily.VAR1, variables, last_year, int(results.nobs), window)
        self._results = results

    @property
    def coefficients(self) -> pd.DataFrame:
        """Intercept and lag-1 coefficient matrix; rows are regressors, columns equations."""
        names = ["const"] + [f"L1.{v}" for v in self.variables]
        return pd.DataFrame(np.asarray(self._results.params), index=names, columns=list(self.variables))

    def _forecast_values(self, horizon: int) -> np.ndarray:
        k_ar = self._results.k_ar
        last_obs = np.asarray(self._results.endog)[-k_ar:]
        return self._results.forecast(last_obs, steps=horizon)

    def describe(self) -> Dict[str, object]:
        coefs = self.coefficients
        return {
            "family": self.family.value,
            "variables": list(self.variables),
            "window": self.window,
            "lags": int(self._results.k_ar),
            "nobs": self.nobs,
            "params": {f"{eq}:{reg}": float(coefs.loc[reg, eq])
                       for eq in coefs.columns for reg in coefs.index},
            "aic": _safe_criterion(self._results, "aic"),
            "bic": _safe_criterion(self._results, "bic"),
        }


def _ensure_finite(values: np.ndarray, family: ModelFamily, variables: Sequence[str],
                   window: Optional[str]) -> None:
    if values.size == 0:
        raise ModelFitError("in-sample window is empty", family, variables, window)
    if not np.all(np.isfinite(values)):
        raise ModelFitError("in-sample window contains non-finite values", family, variables, window)


def arima_param_count(family: ModelFamily) -> int:
    """Constant + AR + MA coefficients + innovation variance."""
    p, _, q = family.arima_order
    return 1 + p + q + 1


def fit_univariate(series: pd.Series, family: ModelFamily, window: Optional[str] = None) -> UnivariateFittedModel:
    """
    Fit one univariate family (AR1, MA1, ARMA1) with a constant.

    Parameters
    ----------
    series : pd.Series
        In-sample observations indexed by integer year
    family : ModelFamily
        One of AR1, MA1, ARMA1
    window : str, optional
        Window label carried into the fitted model and error messages

    Returns
    -------
    UnivariateFittedModel

    Raises
    ------
    ModelFitError
        Too few observations for the parameter count, non-finite values,
        or any estimation failure.
    """
    family = ModelFamily.parse(family)
    if family.is_multivariate:
        raise ValueError("fit_univariate does not handle VAR1; use fit_var")
    name = str(series.name)
    values = np.asarray(series, dtype=float)
    _ensure_finite(values, family, [name], window)

    k_params = arima_param_count(family)
    if len(values) < k_params:
        raise ModelFitError(f"{len(values)} observations < {k_params} parameters", family, [name], window)

    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            results = ARIMA(values, order=family.arima_order, trend="c").fit()
    except (ValueError, np.linalg.LinAlgError) as e:
        raise ModelFitError(f"estimation failed: {e}", family, [name], window) from e
    _log_fit_warnings(caught, f"{family.value}({name})")

    if not np.all(np.isfinite(np.asarray(results.params, dtype=float))):
        raise ModelFitError("estimation produced non-finite parameters", family, [name], window)

    return UnivariateFittedModel(family, name, results, last_year=int(series.index[-1]), window=window)


def fit_var(frame: pd.DataFrame, window: Optional[str] = None, lags: int = 1) -> VARFittedModel:
    """
    Fit a VAR(lags) with intercept jointly over every column of ``frame``.

    Raises
    ------
    ModelFitError
        Fewer than two series, too few usable rows for the per-equation
        parameter count, non-finite values, or a singular design matrix.
    """
    variables = [str(c) for c in frame.columns]
    family = ModelFamily.VAR1
    values = frame.to_numpy(dtype=float)
    _ensure_finite(values, family, variables, window)

    if len(variables) < 2:
        raise ModelFitError("a VAR needs at least two series", family, variables, window)

    k_eq = 1 + lags * len(variables)
    usable = len(values) - lags
    if usable < k_eq:
        raise ModelFitError(f"{usable} usable observations < {k_eq} parameters per equation",
                            family, variables, window)

    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            results = VAR(values).fit(lags, trend="c")
    except (ValueError, np.linalg.LinAlgError) as e:
        raise ModelFitError(f"estimation failed: {e}", family, variables, window) from e
    _log_fit_warnings(caught, f"VAR1({','.join(variables)})")

    if not np.all(np.isfinite(np.asarray(results.params, dtype=float))):
        raise ModelFitError("estimation produced non-finite parameters (singular design?)",
                            family, variables, window)

    return VARFittedModel(variables, results, last_year=int(frame.index[-1]), window=window)


def descriptions_frame(descriptions: Iterable[Dict[str, object]]) -> pd.DataFrame:
    """
    Flatten ``FittedModel.describe()`` outputs into one row per fitted model.

    Returns
    -------
    pd.DataFrame
        Columns ['window', 'model', 'variables', 'nobs', 'aic', 'bic', 'params'];
        ``params`` is a ``name=value`` list joined by '; '.
    """
    rows = []
    for desc in descriptions:
        params = desc.get("params", {})
        rows.append({
            "window": desc.get("window"),
            "model": desc["family"],
            "variables": ",".join(desc["variables"]),
            "nobs": desc["nobs"],
            "aic": desc.get("aic", float("nan")),
            "bic": desc.get("bic", float("nan")),
            "params": "; ".join(f"{k}={v:.4f}" for k, v in params.items()),
        })
    return pd.DataFrame(rows, columns=["window", "model", "variables", "nobs", "aic", "bic", "params"])


def fit_all_models(train: pd.DataFrame,
                   variables: Sequence[str],
                   families: Iterable[ModelFamily] = ALL_FAMILIES,
                   window: Optional[str] = None) -> Dict[Tuple[ModelFamily, str], FittedModel]:
    """
    Fit every (family, variable) combination on one in-sample window.

    Univariate families get one fit per variable; VAR1 gets a single joint fit
    across all ``variables`` that is shared by every VAR1 entry.

    Returns
    -------
    Dict[Tuple[ModelFamily, str], FittedModel]
        Keyed by (family, variable), in family then variable order.
    """
    fitted: Dict[Tuple[ModelFamily, str], FittedModel] = {}
    for family in families:
        family = ModelFamily.parse(family)
        if family.is_multivariate:
            joint = fit_var(train.loc[:, list(variables)], window=window)
            logger.debug("Fitted %s on %s (nobs=%d)", family.value, list(variables), joint.nobs)
            for var in variables:
                fitted[(family, var)] = joint
            continue
        for var in variables:
            model = fit_univariate(train[var], family, window=window)
            logger.debug("Fitted %s on %s (nobs=%d)", family.value, var, model.nobs)
            fitted[(family, var)] = model
    return fitted
