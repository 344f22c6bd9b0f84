import pandas as pd
import numpy as np

import pytest

from lt_forecaster_src.backtesting_utils import (
    DEFAULT_WINDOWS,
    SampleWindow,
    run_robustness,
    run_window,
    windows_from_config,
)
from lt_forecaster_src.forecasting_utils import ModelFamily, ModelFitError, fit_univariate


def test_default_windows():
    assert [w.label() for w in DEFAULT_WINDOWS] == [
        "A (1998-2015 | 2016-2022)",
        "B (1999-2016 | 2017-2021)",
        "C (2000-2017 | 2018-2022)",
    ]
    assert DEFAULT_WINDOWS[1].test_size == 5
    assert DEFAULT_WINDOWS[0].train_size == 18


def test_holdout_must_follow_in_sample():
    with pytest.raises(ValueError):
        SampleWindow("X", 2000, 2010, 2012, 2015)
    with pytest.raises(ValueError):
        SampleWindow("X", 2010, 2000, 2001, 2005)


def test_windows_from_config():
    entries = [{"name": "A", "train": [1998, 2015], "test": [2016, 2022]}]
    assert windows_from_config(entries) == [SampleWindow("A", 1998, 2015, 2016, 2022)]
    assert windows_from_config(None) == DEFAULT_WINDOWS


def test_run_window_scores_horizon_steps_only(annual_panel):
    window = DEFAULT_WINDOWS[0]
    result = run_window(annual_panel, window, ["gdp", "inf", "une"], horizon=3)

    assert len(result.forecasts) == 12
    assert all(len(rec) == 3 for rec in result.errors)
    # One description per distinct fitted model: 3 univariate x 3 variables + 1 joint VAR
    assert len(result.model_descriptions) == 10

    fc = result.forecast_for("gdp", ModelFamily.AR1)
    assert fc.index.tolist() == [2016, 2017, 2018]
    direct = fit_univariate(annual_panel.loc[1998:2015, "gdp"], ModelFamily.AR1).forecast_variable("gdp", 3)
    assert fc.to_numpy() == pytest.approx(direct.to_numpy())


def test_run_window_does_not_use_holdout(annual_panel):
    window = DEFAULT_WINDOWS[0]
    tampered = annual_panel.copy()
    tampered.loc[2016:, :] = 1e6
    base = run_window(annual_panel, window, ["gdp", "inf", "une"])
    alt = run_window(tampered, window, ["gdp", "inf", "une"])
    for a, b in zip(base.forecasts, alt.forecasts):
        assert a.forecast.to_numpy() == pytest.approx(b.forecast.to_numpy())


def test_run_robustness_pools_all_windows(annual_panel):
    res = run_robustness(annual_panel, show_progress=False)

    assert len(res.window_results) == 3
    assert len(res.metrics) == 12
    assert set(res.metrics["n"]) == {9}
    assert res.pooled_errors("une", "VAR1").shape == (9,)

    fitted = res.fitted_models_frame()
    assert len(fitted) == 30
    assert fitted.groupby("window").size().to_dict() == {"A": 10, "B": 10, "C": 10}

    frame = res.forecasts_frame()
    assert len(frame) == 12 * 9
    assert set(frame["window"]) == {"A", "B", "C"}
    # Pooled RMSE agrees with a recomputation from the long table
    sub = frame[(frame["variable"] == "gdp") & (frame["model"] == "MA1")]
    row = res.metrics[(res.metrics["variable"] == "gdp") & (res.metrics["model"] == "MA1")].iloc[0]
    assert row["RMSE"] == pytest.approx(float(np.sqrt(np.mean(sub["error"] ** 2))))


def test_window_outside_data_raises(annual_panel):
    with pytest.raises(ValueError):
        run_window(annual_panel, SampleWindow("Z", 2010, 2020, 2021, 2025), ["gdp"])


def test_fit_failure_stops_the_run(annual_panel):
    short = SampleWindow("S", 1998, 1999, 2000, 2002)
    with pytest.raises(ModelFitError):
        run_robustness(annual_panel, windows=[short], show_progress=False)


def test_empty_windows_rejected(annual_panel):
    with pytest.raises(ValueError):
        run_robustness(annual_panel, windows=[], show_progress=False)
