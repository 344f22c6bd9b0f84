# lt_forecaster_src/file_utils.py

import pandas as pd
import numpy as np
from pathlib import Path
from typing import List, Optional, Sequence
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> None:
    """
    Create directory if it doesn't exist, including all parent directories.

    Parameters
    ----------
    path : Path
        Directory path to create
    """
    path.mkdir(parents=True, exist_ok=True)


def resolve_path(path_str: str, base_dir: Path) -> Path:
    """
    Resolve a path string relative to a base directory if not absolute.

    Examples
    --------
    >>> resolve_path("data/file.csv", Path("/project"))
    PosixPath('/project/data/file.csv')
    >>> resolve_path("/absolute/path.csv", Path("/project"))
    PosixPath('/absolute/path.csv')
    """
    path = Path(path_str)
    return path if path.is_absolute() else (base_dir / path)


def write_table_csv(df: pd.DataFrame, csv_path: Path, float_format: Optional[str] = None) -> Path:
    """
    Write a result table to CSV without the index, creating parent directories.

    Returns
    -------
    Path
        The path written
    """
    ensure_dir(csv_path.parent)
    df.to_csv(csv_path, index=False, float_format=float_format)
    logger.info("Wrote %d rows to %s", len(df), csv_path)
    return csv_path


def _format_cell(value, digits: int) -> str:
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            return "NaN"
        if np.isinf(value):
            return "inf" if value > 0 else "-inf"
        return f"{value:.{digits}f}"
    return str(value)


def md_table_from_df(df: pd.DataFrame,
                     columns: Optional[List[str]] = None,
                     digits: int = 4,
                     max_rows: Optional[int] = None) -> str:
    """
    Convert a DataFrame to markdown table format.

    Parameters
    ----------
    df : pd.DataFrame
        DataFrame to convert
    columns : Optional[List[str]]
        Specific columns to include (None for all)
    digits : int, default=4
        Decimal places for float cells
    max_rows : Optional[int]
        Maximum number of rows to include (None for all)

    Returns
    -------
    str
        Markdown table string, empty when there are no columns
    """
    if columns is not None:
        keep = [c for c in columns if c in df.columns]
        if keep:
            df = df.loc[:, keep]

    df_disp = df if max_rows is None else df.head(max_rows)
    cols = list(df_disp.columns)
    if not cols:
        return ""

    header = "| " + " | ".join(str(c) for c in cols) + " |"
    separator = "| " + " | ".join("---" for _ in cols) + " |"
    rows = []
    for _, row in df_disp.iterrows():
        rows.append("| " + " | ".join(_format_cell(row[c], digits) for c in cols) + " |")
    return "\n".join([header, separator] + rows)


def write_markdown_report(md_path: Path, title: str, sections: Sequence[tuple]) -> Path:
    """
    Write a markdown report made of (heading, body) sections with a UTC timestamp.

    Parameters
    ----------
    md_path : Path
        Output markdown path (overwritten)
    title : str
        Level-1 heading
    sections : Sequence[tuple]
        Ordered (heading, body) pairs rendered as level-2 sections

    Returns
    -------
    Path
        The path written
    """
    ensure_dir(md_path.parent)
    ts = datetime.now(timezone.utc).isoformat(timespec="seconds")
    parts = [f"# {title}", f"_generated: {ts}_"]
    for heading, body in sections:
        parts.append(f"## {heading}\n\n{body.strip()}")
    md_path.write_text("\n\n".join(parts) + "\n", encoding="utf-8")
    logger.info("Wrote report to %s", md_path)
    return md_path
