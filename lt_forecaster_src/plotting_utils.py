# lt_forecaster_src/plotting_utils.py

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from pathlib import Path
from typing import Dict, List, Optional
import logging

from .data_utils import SERIES_LABELS

logger = logging.getLogger(__name__)

MODEL_COLORS = {
    "AR1": "tab:blue",
    "MA1": "tab:red",
    "ARMA1": "tab:green",
    "VAR1": "tab:orange",
}


def ensure_dir(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)


def plot_series_panel(df: pd.DataFrame, out_path: Path, title: Optional[str] = None) -> None:
    """
    Render and save one stacked panel per series of an annual table.

    Parameters
    ----------
    df : pd.DataFrame
        Year-indexed table; every column gets its own row
    out_path : Path
        File path to save the PNG (parents are created if missing)
    title : str, optional
        Figure title
    """
    ensure_dir(out_path.parent)
    cols = list(df.columns)
    fig, axes = plt.subplots(nrows=len(cols), ncols=1, figsize=(8, 2.2 * len(cols)), sharex=True)
    axes = np.atleast_1d(axes)
    for ax, col in zip(axes, cols):
        ax.plot(df.index, df[col], color="black", linewidth=1)
        ax.set_title(SERIES_LABELS.get(col, col), fontsize=9)
        ax.spines["top"].set_alpha(0)
        ax.tick_params(labelsize=7)
    if title:
        fig.suptitle(title)
    plt.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)


def plot_forecast_overlay(history: pd.Series,
                          actual: pd.Series,
                          forecasts: Dict[str, pd.Series],
                          out_path: Path,
                          title: str = "Forecast comparison") -> None:
    """
    Overlay the in-sample history, the holdout actuals and each model's forecast path.

    Parameters
    ----------
    history : pd.Series
        In-sample observations (year index)
    actual : pd.Series
        Holdout observations (year index)
    forecasts : Dict[str, pd.Series]
        Model name -> forecast path (year index)
    out_path : Path
        Output file path for the plot
    title : str
        Plot title
    """
    ensure_dir(out_path.parent)
    fig, ax = plt.subplots(figsize=(8, 4))

    ax.plot(history.index, history.values, color="black", linewidth=1.2, label="in-sample")
    ax.plot(actual.index, actual.values, color="gray", linewidth=1.5, marker="o", markersize=3, label="actual")

    for i, (model, path) in enumerate(forecasts.items()):
        color = MODEL_COLORS.get(model, f"C{i}")
        # Anchor each path at the last in-sample point so the lines connect
        xs = [history.index[-1], *path.index]
        ys = [history.values[-1], *path.values]
        ax.plot(xs, ys, color=color, linestyle="--", marker=".", label=model)

    ax.axvline(history.index[-1] + 0.5, color="gray", linestyle=":", linewidth=1)
    ax.set_ylabel(SERIES_LABELS.get(str(history.name), str(history.name)))
    ax.set_title(title)
    ax.legend(fontsize=8)
    plt.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)


def plot_metric_comparison(metrics: pd.DataFrame,
                           metric: str,
                           out_path: Path,
                           title: Optional[str] = None) -> None:
    """
    Grouped bar chart of one metric by variable (groups) and model (bars).

    Parameters
    ----------
    metrics : pd.DataFrame
        Error-metric table with columns ['variable', 'model', metric]
    metric : str
        Metric column to plot
    out_path : Path
        Output file path
    title : str, optional
        Plot title (auto-generated if None)
    """
    if metrics.empty or metric not in metrics.columns:
        logger.warning("Cannot create metric comparison: missing data or metric column")
        return

    ensure_dir(out_path.parent)
    piv = metrics.pivot(index="variable", columns="model", values=metric)
    piv = piv.reindex(index=list(dict.fromkeys(metrics["variable"])),
                      columns=list(dict.fromkeys(metrics["model"])))
    variables = list(piv.index)
    models = list(piv.columns)
    x = np.arange(len(variables))
    width = 0.8 / max(1, len(models))

    fig, ax = plt.subplots(figsize=(max(6, len(variables) * 2.0), 4))
    for i, model in enumerate(models):
        vals = piv[model].to_numpy(dtype=float)
        ax.bar(x - 0.4 + width * (i + 0.5), vals, width=width, label=model,
               color=MODEL_COLORS.get(model, f"C{i}"), alpha=0.8)

    ax.set_xticks(x)
    ax.set_xticklabels(variables)
    ax.set_ylabel(metric)
    ax.set_title(title or f"{metric} by variable (pooled over windows)")
    ax.legend(fontsize=8)
    plt.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)


def plot_dm_pvalues(dm_table: pd.DataFrame,
                    out_path: Path,
                    title: str = "Diebold-Mariano p-values (best vs second best)") -> None:
    """
    Bar chart of Diebold-Mariano p-values per variable with 5% and 10% reference lines.
    """
    if dm_table.empty:
        logger.warning("No DM test data found for plotting")
        return

    ensure_dir(out_path.parent)
    labels = [f"{r.variable}\n{r.best_model} vs {r.second_model}" for r in dm_table.itertuples()]
    y = dm_table["p_value"].to_numpy(dtype=float)
    x = np.arange(len(labels))

    fig, ax = plt.subplots(figsize=(max(6, len(labels) * 1.6), 4))
    ax.bar(x, y, width=0.5, color="tab:green", alpha=0.8, label="DM p-value")
    ax.axhline(0.05, color="gray", linestyle="--", linewidth=1, label="p = 0.05")
    ax.axhline(0.10, color="gray", linestyle=":", linewidth=1, label="p = 0.10")
    ax.set_xticks(x)
    ax.set_xticklabels(labels, fontsize=8)
    ax.set_ylabel("p-value")
    ax.set_ylim(0, 1.0)
    ax.set_title(title)
    ax.legend(fontsize=8)
    plt.tight_layout()
    fig.savefig(out_path, dpi=300)
    plt.close(fig)


def generate_report_figures(data: pd.DataFrame,
                            robustness,
                            dm_table: pd.DataFrame,
                            out_dir: Path) -> List[Path]:
    """
    Write the series panel, one forecast overlay per (window, variable), and summary charts.

    Parameters
    ----------
    data : pd.DataFrame
        Full observation table
    robustness : RobustnessResult
        Output of ``run_robustness``
    dm_table : pd.DataFrame
        Output of ``run_significance_tests``
    out_dir : Path
        Output directory

    Returns
    -------
    List[Path]
        Paths of the figures written
    """
    ensure_dir(out_dir)
    written: List[Path] = []

    panel_path = out_dir / "Series_panel.png"
    plot_series_panel(data.loc[:, robustness.variables], panel_path, "Lithuania, annual data")
    written.append(panel_path)

    for wr in robustness.window_results:
        w = wr.window
        for var in robustness.variables:
            history = data.loc[w.train_start:w.train_end, var]
            actual = data.loc[w.test_start:w.test_end, var]
            paths = {rec.family.value: rec.forecast for rec in wr.forecasts if rec.variable == var}
            out_path = out_dir / f"Forecast_{w.name}_{var}.png"
            plot_forecast_overlay(history, actual, paths, out_path,
                                  f"{SERIES_LABELS.get(var, var)}: window {w.label()}")
            written.append(out_path)

    rmse_path = out_dir / "Summary_RMSE_by_variable.png"
    plot_metric_comparison(robustness.metrics, "RMSE", rmse_path)
    written.append(rmse_path)

    if not dm_table.empty:
        dm_path = out_dir / "Summary_DM_pvalues.png"
        plot_dm_pvalues(dm_table, dm_path)
        written.append(dm_path)

    logger.info("Wrote %d figures to %s", len(written), out_dir)
    return written
