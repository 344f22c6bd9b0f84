import pandas as pd
import numpy as np

import pytest

from lt_forecaster_src.forecasting_utils import ModelFitError, fit_var
from lt_forecaster_src.regression_utils import (
    retained_predictors,
    run_auxiliary_stage,
    screen_predictors,
)


def test_screening_one_regression_per_predictor(auxiliary_panel):
    table = screen_predictors(auxiliary_panel, target="inf", predictors=["int", "mos"])
    assert table["predictor"].tolist() == ["int", "mos"]
    assert list(table.columns) == ["predictor", "coef", "std_err", "t_stat", "p_value", "r_squared", "nobs"]

    by_name = table.set_index("predictor")
    assert by_name.loc["int", "coef"] == pytest.approx(2.0, abs=0.05)
    assert by_name.loc["int", "p_value"] < 0.001
    assert by_name.loc["mos", "coef"] == pytest.approx(0.0, abs=1e-9)
    assert by_name.loc["mos", "p_value"] > 0.9
    assert set(table["nobs"]) == {7}


def test_retained_uses_strict_threshold():
    table = pd.DataFrame({"predictor": ["a", "b", "c"], "p_value": [0.05, 0.10, 0.2]})
    assert retained_predictors(table, 0.10) == ["a"]


def test_auxiliary_stage_forecasts_next_year(auxiliary_panel):
    res = run_auxiliary_stage(auxiliary_panel, predictors=["int", "mos"])

    assert res.retained == ["int"]
    assert res.forecast_year == 2023
    assert np.isfinite(res.forecast_value)

    manual = fit_var(auxiliary_panel[["inf", "int"]]).forecast_variable("inf", 1)
    assert res.forecast_value == pytest.approx(float(manual.iloc[0]))
    assert res.model_description["variables"] == ["inf", "int"]


def test_auxiliary_stage_without_survivors_raises(auxiliary_panel):
    with pytest.raises(ModelFitError):
        run_auxiliary_stage(auxiliary_panel, predictors=["mos"])


def test_auxiliary_stage_requires_full_sample(auxiliary_panel):
    with pytest.raises(ValueError):
        run_auxiliary_stage(auxiliary_panel.loc[2017:], predictors=["int"])
