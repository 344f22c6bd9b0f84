import pandas as pd
import numpy as np
from pathlib import Path

import pytest


def make_annual_panel(start: int = 1998, end: int = 2022, seed: int = 7) -> pd.DataFrame:
    """Stationary AR(1)-like annual series for gdp, inf and une indexed by year."""
    rng = np.random.default_rng(seed)
    years = pd.Index(range(start, end + 1), name="period")
    n = len(years)
    out = {}
    for name, mean, phi, sd in (("gdp", 3.0, 0.4, 2.0), ("inf", 2.5, 0.6, 1.5), ("une", 9.0, 0.7, 1.0)):
        x = np.empty(n)
        x[0] = mean
        shocks = rng.normal(0.0, sd, size=n)
        for t in range(1, n):
            x[t] = mean + phi * (x[t - 1] - mean) + shocks[t]
        out[name] = x
    return pd.DataFrame(out, index=years)


def make_auxiliary_panel() -> pd.DataFrame:
    """2016-2022 table where inf is (almost) linear in int and exactly uncorrelated with mos."""
    years = pd.Index(range(2016, 2023), name="period")
    t = np.arange(1.0, 8.0)
    noise = np.array([0.1, -0.1, 0.05, 0.0, -0.05, 0.1, -0.1])
    rate = t + np.array([0.0, 0.15, 0.0, 0.0, 0.0, -0.1, 0.0])
    return pd.DataFrame({
        "inf": 2.0 * rate + 1.0 + noise,
        "int": rate,
        "mos": (t - 4.0) ** 2,
    }, index=years)


@pytest.fixture
def annual_panel() -> pd.DataFrame:
    return make_annual_panel()


@pytest.fixture
def auxiliary_panel() -> pd.DataFrame:
    return make_auxiliary_panel()


@pytest.fixture
def main_csv(tmp_path: Path, annual_panel: pd.DataFrame) -> Path:
    path = tmp_path / "main_data.csv"
    annual_panel.reset_index().to_csv(path, index=False)
    return path


@pytest.fixture
def additional_csv(tmp_path: Path, auxiliary_panel: pd.DataFrame) -> Path:
    path = tmp_path / "additional_data.csv"
    auxiliary_panel.reset_index().to_csv(path, index=False)
    return path


@pytest.fixture(autouse=True)
def _reset_config():
    from lt_forecaster_src.config_utils import reset_config
    reset_config()
    yield
    reset_config()
