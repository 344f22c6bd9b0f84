import pandas as pd
import numpy as np

import pytest

from lt_forecaster_src.forecasting_utils import (
    ALL_FAMILIES,
    ModelFamily,
    ModelFitError,
    fit_all_models,
    fit_univariate,
    fit_var,
)


def test_model_family_parse_and_order():
    assert [f.value for f in ALL_FAMILIES] == ["AR1", "MA1", "ARMA1", "VAR1"]
    assert ModelFamily.parse("arma(1,1)") is ModelFamily.ARMA1
    assert ModelFamily.parse(ModelFamily.MA1) is ModelFamily.MA1
    assert ModelFamily.VAR1.is_multivariate and not ModelFamily.AR1.is_multivariate
    with pytest.raises(ValueError):
        ModelFamily.parse("SARIMA")


def test_arima_order_drives_fit_and_description(annual_panel):
    assert ModelFamily.AR1.arima_order == (1, 0, 0)
    assert ModelFamily.MA1.arima_order == (0, 0, 1)
    assert ModelFamily.ARMA1.arima_order == (1, 0, 1)
    with pytest.raises(ValueError):
        ModelFamily.VAR1.arima_order

    desc = fit_univariate(annual_panel.loc[1998:2015, "gdp"], ModelFamily.ARMA1).describe()
    assert desc["order"] == (1, 0, 1)
    assert {"ar.L1", "ma.L1"} <= set(desc["params"])


@pytest.mark.parametrize("family", [ModelFamily.AR1, ModelFamily.MA1, ModelFamily.ARMA1])
def test_univariate_forecast_shape_and_years(annual_panel, family):
    train = annual_panel.loc[1998:2015]
    model = fit_univariate(train["gdp"], family, window="A")

    fc = model.forecast(3)
    assert list(fc.columns) == ["gdp"]
    assert fc.index.tolist() == [2016, 2017, 2018]
    assert np.all(np.isfinite(fc.to_numpy()))
    assert model.nobs == 18

    desc = model.describe()
    assert desc["family"] == family.value
    assert desc["window"] == "A"
    assert "const" in desc["params"]


def test_ar1_forecast_follows_recursion(annual_panel):
    model = fit_univariate(annual_panel.loc[1998:2015, "inf"], ModelFamily.AR1)
    phi = model.describe()["params"]["ar.L1"]
    f = model.forecast_variable("inf", 3).to_numpy()
    assert f[2] - f[1] == pytest.approx(phi * (f[1] - f[0]), rel=1e-6, abs=1e-9)


def test_ma1_forecast_reverts_to_mean_after_one_step(annual_panel):
    model = fit_univariate(annual_panel.loc[1998:2015, "une"], ModelFamily.MA1)
    f = model.forecast_variable("une", 3).to_numpy()
    assert f[1] == pytest.approx(f[2])


def test_var_forecast_matches_manual_recursion(annual_panel):
    train = annual_panel.loc[1998:2015]
    model = fit_var(train, window="A")
    coefs = model.coefficients
    assert coefs.index.tolist() == ["const", "L1.gdp", "L1.inf", "L1.une"]

    const = coefs.loc["const"].to_numpy()
    A = coefs.iloc[1:].to_numpy().T
    y = train.iloc[-1].to_numpy()
    expected = []
    for _ in range(3):
        y = const + A @ y
        expected.append(y)

    fc = model.forecast(3)
    assert fc.index.tolist() == [2016, 2017, 2018]
    assert fc.to_numpy() == pytest.approx(np.array(expected), rel=1e-8)
    # Per-variable extraction is a projection of the joint output
    assert model.forecast_variable("inf", 3).to_numpy() == pytest.approx(fc["inf"].to_numpy())


def test_horizon_must_be_positive(annual_panel):
    model = fit_univariate(annual_panel["gdp"], ModelFamily.AR1)
    with pytest.raises(ValueError):
        model.forecast(0)


def test_too_few_observations_raise_model_fit_error():
    short = pd.Series([1.0, 2.0], index=[2020, 2021], name="gdp")
    with pytest.raises(ModelFitError) as exc:
        fit_univariate(short, ModelFamily.ARMA1, window="Z")
    assert exc.value.family is ModelFamily.ARMA1
    assert exc.value.window == "Z"

    tiny = pd.DataFrame({"a": [1.0, 2.0, 3.0], "b": [3.0, 1.0, 2.0]}, index=[2019, 2020, 2021])
    with pytest.raises(ModelFitError):
        fit_var(tiny)


def test_non_finite_values_raise_model_fit_error(annual_panel):
    s = annual_panel["gdp"].copy()
    s.iloc[4] = np.nan
    with pytest.raises(ModelFitError):
        fit_univariate(s, ModelFamily.AR1)


def test_var_needs_two_series(annual_panel):
    with pytest.raises(ModelFitError):
        fit_var(annual_panel[["gdp"]])


def test_fit_all_models_shares_joint_var(annual_panel):
    train = annual_panel.loc[1998:2015]
    fitted = fit_all_models(train, ["gdp", "inf", "une"], window="A")
    assert len(fitted) == 12
    assert fitted[(ModelFamily.VAR1, "gdp")] is fitted[(ModelFamily.VAR1, "une")]
    assert fitted[(ModelFamily.AR1, "gdp")] is not fitted[(ModelFamily.AR1, "inf")]
    # Estimation is deterministic
    again = fit_univariate(train["gdp"], ModelFamily.AR1).forecast(3)
    assert again.to_numpy() == pytest.approx(fitted[(ModelFamily.AR1, "gdp")].forecast(3).to_numpy())
