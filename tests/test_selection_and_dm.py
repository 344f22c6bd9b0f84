import pandas as pd
import numpy as np
import warnings

import pytest

from lt_forecaster_src.forecasting_utils import ModelFamily
from lt_forecaster_src.metrics_utils import (
    ForecastAlignmentWarning,
    diebold_mariano_test,
    run_significance_tests,
    select_best_models,
)


def _metrics(rows):
    return pd.DataFrame(rows, columns=["variable", "model", "RMSE", "MAE"])


def test_select_two_lowest_rmse():
    m = _metrics([
        ("gdp", "AR1", 2.0, 1.0),
        ("gdp", "MA1", 1.0, 3.0),
        ("gdp", "ARMA1", 3.0, 0.5),
        ("gdp", "VAR1", 1.5, 0.7),
    ])
    assert select_best_models(m) == {"gdp": ["MA1", "VAR1"]}
    assert select_best_models(m, metric="MAE") == {"gdp": ["ARMA1", "VAR1"]}


def test_select_ties_keep_enumeration_order():
    # Rows deliberately out of enumeration order
    m = _metrics([
        ("inf", "VAR1", 1.0, 1.0),
        ("inf", "ARMA1", 1.0, 1.0),
        ("inf", "MA1", 1.0, 1.0),
        ("inf", "AR1", 5.0, 1.0),
    ])
    assert select_best_models(m) == {"inf": ["MA1", "ARMA1"]}


def test_select_unknown_metric_raises():
    m = _metrics([("gdp", "AR1", 1.0, 1.0)])
    with pytest.raises(KeyError):
        select_best_models(m, metric="MASE")


def test_dm_swapping_inputs_flips_sign_and_keeps_pvalue():
    rng = np.random.default_rng(1)
    e1 = rng.normal(0, 1.0, size=12)
    e2 = rng.normal(0, 2.0, size=12)

    r12 = diebold_mariano_test(e1, e2)
    r21 = diebold_mariano_test(e2, e1)
    assert r12.statistic == pytest.approx(-r21.statistic)
    assert r12.p_value == pytest.approx(r21.p_value)
    assert 0.0 <= r12.p_value <= 1.0
    assert r12.n == 12


def test_dm_matches_hand_computation_h1():
    from scipy import stats

    e1 = np.array([1.0, -2.0, 0.5, 1.5, -0.5, 2.0])
    e2 = np.array([0.5, -1.0, 0.5, 1.0, -1.0, 0.5])
    d = e1 ** 2 - e2 ** 2
    n = len(d)
    var_dbar = np.mean((d - d.mean()) ** 2) / n
    expected = d.mean() / np.sqrt(var_dbar) * np.sqrt((n + 1 - 2 + 0) / n)
    expected_p = 2 * stats.t.sf(abs(expected), df=n - 1)

    res = diebold_mariano_test(e1, e2, h=1)
    assert res.statistic == pytest.approx(expected)
    assert res.p_value == pytest.approx(expected_p)


def test_dm_unequal_lengths_truncate_with_warning():
    with pytest.warns(ForecastAlignmentWarning):
        res = diebold_mariano_test([1.0, 2.0, -1.0, 3.0], [0.5, 1.0, 0.2])
    assert res.n == 3


def test_dm_too_short_or_degenerate_returns_nan():
    res = diebold_mariano_test([1.0], [2.0])
    assert np.isnan(res.statistic) and np.isnan(res.p_value)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        same = diebold_mariano_test([1.0, 2.0, 3.0], [1.0, 2.0, 3.0])
    assert np.isnan(same.p_value)
    assert not same.is_significant()


def test_run_significance_tests_compares_selected_pair():
    rng = np.random.default_rng(3)
    pooled = {
        ("gdp", ModelFamily.AR1): (rng.normal(0, 3, 9), np.zeros(9)),
        ("gdp", ModelFamily.MA1): (rng.normal(0, 1, 9), np.zeros(9)),
    }
    table = run_significance_tests(pooled, {"gdp": ["MA1", "AR1"], "une": ["VAR1"]})
    assert table["variable"].tolist() == ["gdp"]
    row = table.iloc[0]
    assert (row["best_model"], row["second_model"]) == ("MA1", "AR1")
    assert row["n"] == 9
    expected = diebold_mariano_test(pooled[("gdp", ModelFamily.MA1)][0], pooled[("gdp", ModelFamily.AR1)][0])
    assert row["dm_statistic"] == pytest.approx(expected.statistic)
