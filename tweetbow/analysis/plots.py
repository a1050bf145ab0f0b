"""
Plotting utilities for bag-of-words reports.

This module provides helpers to visualize:

- the top-N features of a frequency table, one panel per group
- comparison-cloud weights as per-group bar panels

Both consume the tables produced by tweetbow.analysis.frequency and return
the matplotlib Figure and Axes so callers can adjust styling.
"""

from __future__ import annotations

from typing import Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd


def plot_top_features(
    freq_df: pd.DataFrame,
    n: int = 20,
    value_column: str = "frequency",
    figsize: Optional[Tuple[float, float]] = None,
    title: Optional[str] = None,
    out_path: Optional[str] = None,
    show: bool = True,
):
    """
    Plot horizontal bar charts of the top features in each group.

    Parameters
    ----------
    freq_df : pd.DataFrame
        Table with at least "feature", "group" and ``value_column``
        columns, e.g. the output of `frequency_table`.
    n : int
        Number of features shown per group.
    value_column : str
        Column holding bar lengths ("frequency", or "weight" for
        comparison-cloud tables).
    figsize : Optional[Tuple[float, float]]
        Figure size in inches. Defaults to 5 inches wide per group.
    title : Optional[str]
        Figure title. If None, a default is constructed.
    out_path : Optional[str]
        If provided, save the figure to this path (e.g., PNG).
    show : bool
        If True, call plt.show(). If False, just return the figure/axes.

    Returns
    -------
    (fig, axes)
        Matplotlib Figure and array of Axes (one per group).

    Raises
    ------
    ValueError
        If the table is empty or misses a required column.
    """
    if freq_df.empty:
        raise ValueError("freq_df is empty; nothing to plot.")

    for col in ("feature", "group", value_column):
        if col not in freq_df.columns:
            raise ValueError(
                f"Column '{col}' not found in DataFrame columns. "
                f"Available columns: {list(freq_df.columns)}"
            )

    groups = sorted(freq_df["group"].astype(str).unique())
    if figsize is None:
        figsize = (5.0 * len(groups), max(3.0, 0.3 * n + 1.0))

    fig, axes = plt.subplots(1, len(groups), figsize=figsize, squeeze=False)
    axes = axes[0]

    for ax, group in zip(axes, groups):
        sub = freq_df[freq_df["group"].astype(str) == group]
        sub = sub.sort_values(
            [value_column, "feature"], ascending=[False, True], kind="mergesort"
        ).head(n)
        # barh draws bottom-up; reverse so rank 1 sits on top.
        values = pd.to_numeric(sub[value_column], errors="coerce").to_numpy()[::-1]
        labels = sub["feature"].astype(str).to_numpy()[::-1]
        positions = np.arange(len(labels))

        ax.barh(positions, values)
        ax.set_yticks(positions)
        ax.set_yticklabels(labels)
        ax.set_xlabel(value_column.capitalize())
        ax.set_title(str(group))

    if title is None:
        title = f"Top {n} features by {value_column}"
    fig.suptitle(title)
    fig.tight_layout()

    if out_path is not None:
        fig.savefig(out_path, dpi=300, bbox_inches="tight")

    if show:
        plt.show()
    else:
        plt.close(fig)

    return fig, axes


def plot_comparison_weights(
    cloud_df: pd.DataFrame,
    max_words: int = 30,
    out_path: Optional[str] = None,
    show: bool = True,
):
    """
    Convenience wrapper for `plot_top_features` on comparison-cloud weights.
    """
    return plot_top_features(
        cloud_df,
        n=max_words,
        value_column="weight",
        title="Features over-represented in each group",
        out_path=out_path,
        show=show,
    )
