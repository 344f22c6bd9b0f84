# lt_forecaster_src/parsing_utils.py

from typing import List, Optional
import logging

from .backtesting_utils import SampleWindow
from .metrics_utils import METRIC_NAMES

logger = logging.getLogger(__name__)


def _parse_year_range(txt: str) -> tuple:
    a, b = txt.split("-", 1)
    return int(a.strip()), int(b.strip())


def parse_windows_arg(s: Optional[str]) -> Optional[List[SampleWindow]]:
    """
    Parse a CLI windows argument into sample windows.

    The format is a comma-separated list of ``NAME:TRAIN_START-TRAIN_END:TEST_START-TEST_END``.

    Parameters
    ----------
    s : str, optional
        CLI windows argument; None or blank returns None (use configuration)

    Returns
    -------
    Optional[List[SampleWindow]]

    Raises
    ------
    ValueError
        On malformed entries or windows whose holdout is not adjacent to the
        in-sample range

    Examples
    --------
    >>> [w.name for w in parse_windows_arg("A:1998-2015:2016-2022,B:1999-2016:2017-2021")]
    ['A', 'B']
    """
    if s is None or not s.strip():
        return None

    windows: List[SampleWindow] = []
    for entry in s.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":")
        if len(parts) != 3:
            raise ValueError(f"Invalid window '{entry}'. Expected NAME:START-END:START-END")
        try:
            train = _parse_year_range(parts[1])
            test = _parse_year_range(parts[2])
        except ValueError as e:
            raise ValueError(f"Invalid year range in window '{entry}': {e}") from e
        windows.append(SampleWindow(parts[0].strip(), train[0], train[1], test[0], test[1]))
    return windows or None


def parse_list_arg(s: Optional[str]) -> Optional[List[str]]:
    """
    Parse a comma-separated list of names (variables or predictors).

    Examples
    --------
    >>> parse_list_arg(" gdp , inf,une ")
    ['gdp', 'inf', 'une']
    >>> parse_list_arg(None) is None
    True
    """
    if s is None:
        return None
    out = [c.strip() for c in s.split(",") if c.strip()]
    return out or None


def validate_metric(metric: str) -> str:
    """
    Validate the model-selection metric name (case-insensitive).

    Raises
    ------
    ValueError
        If the metric is not one of the six error metrics
    """
    upper = str(metric).upper()
    if upper not in METRIC_NAMES:
        raise ValueError(f"Invalid metric '{metric}'. Must be one of: {METRIC_NAMES}")
    return upper


def validate_log_level(log_level: str) -> str:
    """
    Validate and normalize logging level specification.

    Raises
    ------
    ValueError
        If the logging level is not supported
    """
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    level_upper = log_level.upper()
    if level_upper not in valid_levels:
        raise ValueError(f"Invalid log level '{log_level}'. Must be one of: {valid_levels}")
    return level_upper
