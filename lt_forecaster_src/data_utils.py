# lt_forecaster_src/data_utils.py

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

MAIN_COLUMNS = ["gdp", "inf", "une"]
ADDITIONAL_COLUMNS = ["inf", "int", "mos", "oil", "exr"]
PERIOD_COLUMN = "period"

SERIES_LABELS = {
    "gdp": "GDP growth (%)",
    "inf": "Inflation (%)",
    "une": "Unemployment rate (%)",
    "int": "Interest rate (%)",
    "mos": "Money supply growth (%)",
    "oil": "Crude oil price (USD)",
    "exr": "Exchange rate (EUR/USD)",
}


class DataValidationError(ValueError):
    """Raised when an input table violates the annual panel contract."""


def load_annual_panel(csv_path: Path, columns: Sequence[str]) -> pd.DataFrame:
    """
    Load an annual panel CSV with a ``period`` year column into a year-indexed table.

    Parameters
    ----------
    csv_path : Path
        Path to CSV containing ``period`` plus the requested value columns.
    columns : Sequence[str]
        Value columns that must be present; they are returned in this order.

    Returns
    -------
    pd.DataFrame
        Numeric DataFrame indexed by integer year (index name ``period``),
        sorted ascending.

    Raises
    ------
    SystemExit
        If the file does not exist.
    DataValidationError
        If columns are missing, years are not contiguous integers, or values
        are missing/non-numeric.
    """
    if not csv_path.exists():
        raise SystemExit(f"Input CSV not found: {csv_path}")

    logger.info("Loading annual panel from: %s", csv_path)
    df = pd.read_csv(csv_path)

    missing = [c for c in [PERIOD_COLUMN, *columns] if c not in df.columns]
    if missing:
        raise DataValidationError(f"{csv_path.name} is missing required columns: {missing}")

    df[PERIOD_COLUMN] = pd.to_numeric(df[PERIOD_COLUMN], errors="coerce")
    if df[PERIOD_COLUMN].isna().any():
        raise DataValidationError(f"{csv_path.name} has non-numeric '{PERIOD_COLUMN}' values")
    if not np.all(np.mod(df[PERIOD_COLUMN].to_numpy(dtype=float), 1.0) == 0.0):
        raise DataValidationError(f"{csv_path.name} has non-integer years in '{PERIOD_COLUMN}'")

    for col in columns:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    df[PERIOD_COLUMN] = df[PERIOD_COLUMN].astype(int)
    panel = df.set_index(PERIOD_COLUMN).sort_index().loc[:, list(columns)]
    validate_annual_panel(panel, name=csv_path.name)

    logger.info("Loaded %d rows (%d-%d) with columns %s",
                len(panel), panel.index.min(), panel.index.max(), list(panel.columns))
    return panel


def validate_annual_panel(panel: pd.DataFrame, name: str = "panel") -> None:
    """
    Check the panel contract: unique contiguous years and finite values.

    Raises
    ------
    DataValidationError
        On empty input, duplicate or gapped years, or missing/non-finite values.
    """
    if panel.empty:
        raise DataValidationError(f"{name} contains no rows")

    years = panel.index.to_numpy()
    if panel.index.has_duplicates:
        raise DataValidationError(f"{name} has duplicate years")
    gaps = np.diff(years)
    if len(gaps) and not np.all(gaps == 1):
        raise DataValidationError(f"{name} years are not contiguous: {list(years)}")

    values = panel.to_numpy(dtype=float)
    if not np.all(np.isfinite(values)):
        bad = panel.columns[~np.isfinite(values).all(axis=0)].tolist()
        raise DataValidationError(f"{name} has missing or non-finite values in {bad}")


def load_main_data(csv_path: Path) -> pd.DataFrame:
    """Load ``main_data.csv`` (gdp, inf, une by year)."""
    return load_annual_panel(csv_path, MAIN_COLUMNS)


def load_additional_data(csv_path: Path,
                         predictors: Optional[Iterable[str]] = None,
                         target: str = "inf") -> pd.DataFrame:
    """Load ``additional_data.csv`` (the target series plus the auxiliary predictors by year)."""
    if predictors is None:
        predictors = [c for c in ADDITIONAL_COLUMNS if c != "inf"]
    columns = [target, *[p for p in predictors if p != target]]
    return load_annual_panel(csv_path, columns)


def slice_years(panel: pd.DataFrame,
                start: int,
                end: int,
                columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """
    Return the inclusive year range ``[start, end]`` of a panel.

    Raises
    ------
    ValueError
        If ``start > end`` or the panel does not cover every requested year.
    """
    if start > end:
        raise ValueError(f"Invalid year range: {start} > {end}")
    cols = list(columns) if columns is not None else list(panel.columns)
    missing_cols = [c for c in cols if c not in panel.columns]
    if missing_cols:
        raise KeyError(f"Columns not in panel: {missing_cols}")

    wanted = pd.RangeIndex(start, end + 1)
    absent = wanted.difference(panel.index)
    if len(absent):
        raise ValueError(f"Years {list(absent)} not covered by data ({panel.index.min()}-{panel.index.max()})")
    return panel.loc[start:end, cols].copy()


def summarize_stationarity(panel: pd.DataFrame) -> pd.DataFrame:
    """
    Run ADF tests on the level and first difference of every series.

    Returns
    -------
    pd.DataFrame
        Columns ['series', 'adf_level', 'p_level', 'adf_diff', 'p_diff'].
        Series too short for the test get NaN entries.
    """
    from .forecasting_utils import adf_test

    rows: List[dict] = []
    for col in panel.columns:
        row = {"series": col}
        for label, series in (("level", panel[col]), ("diff", panel[col].diff())):
            try:
                stat, pval = adf_test(series)
            except (ValueError, np.linalg.LinAlgError) as e:
                logger.debug("ADF (%s) skipped for %s: %s", label, col, e)
                stat, pval = float("nan"), float("nan")
            row[f"adf_{label}"] = float(stat)
            row[f"p_{label}"] = float(pval)
        rows.append(row)

    table = pd.DataFrame(rows, columns=["series", "adf_level", "p_level", "adf_diff", "p_diff"])
    logger.info("ADF stationarity summary:\n%s", table.to_string(index=False, float_format="%.3f"))
    return table
