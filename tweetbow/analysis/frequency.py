"""
Frequency tables and reporting helpers.

This module provides helpers to:
- derive ranked feature frequency tables from a document-feature matrix,
  overall or per group
- pick the top features of a matrix
- compute comparison word-cloud weights (which features are
  over-represented in each group relative to the others)
- save tables as CSV for reporting

Everything here is a read of the matrix; inputs are never modified.
"""

from __future__ import annotations

import os
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from tweetbow.features.dfm import (
    DocumentFeatureMatrix,
    GroupsLike,
    dfm_group,
    resolve_group_labels,
)
from tweetbow.utils.run_utils import ensure_dir_exists


FREQUENCY_COLUMNS = ["feature", "frequency", "rank", "docfreq", "group"]
ALL_GROUP = "all"


def _rank_block(
    features: Sequence[str],
    frequency: np.ndarray,
    docfreq: np.ndarray,
    group: str,
    n: Optional[int],
) -> pd.DataFrame:
    present = frequency > 0
    block = pd.DataFrame(
        {
            "feature": np.asarray(features, dtype=object)[present],
            "frequency": frequency[present].astype(np.int64),
            "docfreq": docfreq[present].astype(np.int64),
        }
    )
    block = block.sort_values(
        ["frequency", "feature"], ascending=[False, True], kind="mergesort"
    ).reset_index(drop=True)
    block["rank"] = np.arange(1, len(block) + 1, dtype=np.int64)
    block["group"] = group
    if n is not None:
        block = block.head(n)
    return block[FREQUENCY_COLUMNS]


def frequency_table(
    dfm: DocumentFeatureMatrix,
    n: Optional[int] = None,
    groups: Optional[GroupsLike] = None,
) -> pd.DataFrame:
    """
    Rank features by total count, overall or within each group.

    Parameters
    ----------
    dfm : DocumentFeatureMatrix
        Source matrix. Pass the per-document matrix when grouping so that
        ``docfreq`` counts documents; on an already grouped matrix it
        counts group rows.
    n : Optional[int]
        Keep only the top ``n`` features per group.
    groups : Optional[GroupsLike]
        Document variable name or one label per row. None ranks over all
        rows, reported under the group "all". Rows with a missing label
        are left out of every group.

    Returns
    -------
    pd.DataFrame
        Columns: feature, frequency, rank, docfreq, group. Rank 1 is the
        most frequent feature; ties are ordered by feature. Features with
        zero count in a group are omitted from that group.
    """
    if groups is None:
        labels = [ALL_GROUP] * dfm.ndoc
    else:
        labels = resolve_group_labels(dfm, groups)
    features = list(dfm.features)

    blocks = []
    for group in sorted({label for label in labels if label is not None}):
        rows = [i for i, label in enumerate(labels) if label == group]
        sub = dfm.matrix[rows]
        frequency = np.asarray(sub.sum(axis=0)).ravel()
        docfreq = np.asarray((sub > 0).sum(axis=0)).ravel()
        blocks.append(_rank_block(features, frequency, docfreq, group, n))

    if not blocks:
        return pd.DataFrame(
            {
                "feature": pd.Series(dtype=object),
                "frequency": pd.Series(dtype=np.int64),
                "rank": pd.Series(dtype=np.int64),
                "docfreq": pd.Series(dtype=np.int64),
                "group": pd.Series(dtype=object),
            },
            columns=FREQUENCY_COLUMNS,
        )
    return pd.concat(blocks, ignore_index=True)


def top_features(dfm: DocumentFeatureMatrix, n: int = 10) -> pd.Series:
    """
    Return the ``n`` most frequent features and their total counts.

    Ties are ordered by feature so the result is deterministic.
    """
    sums = dfm.feature_sums()
    ordered = sorted(sums.items(), key=lambda kv: (-kv[1], kv[0]))[:n]
    return pd.Series(
        [count for _, count in ordered],
        index=pd.Index([feat for feat, _ in ordered], name="feature"),
        name="frequency",
        dtype=np.int64,
    )


def comparison_cloud_weights(
    dfm: DocumentFeatureMatrix,
    groups: Optional[GroupsLike] = None,
    max_words: int = 100,
) -> pd.DataFrame:
    """
    Weights for a comparison word cloud.

    Each row (after optional grouping) is turned into relative
    frequencies. A feature is drawn for a group when its share there
    exceeds its mean share across all groups; the weight is that excess.

    Parameters
    ----------
    dfm : DocumentFeatureMatrix
        Matrix to compare across rows.
    groups : Optional[GroupsLike]
        If given, rows are grouped first (see :func:`dfm_group`).
    max_words : int
        Maximum number of features kept per group.

    Returns
    -------
    pd.DataFrame
        Columns: group, feature, weight; sorted by group, then weight
        descending, then feature.
    """
    if groups is not None:
        dfm = dfm_group(dfm, groups)

    columns = ["group", "feature", "weight"]
    if dfm.ndoc == 0 or dfm.nfeat == 0:
        return pd.DataFrame(columns=columns)

    counts = dfm.matrix.toarray().astype(float)
    totals = counts.sum(axis=1, keepdims=True)
    with np.errstate(invalid="ignore", divide="ignore"):
        shares = np.divide(counts, totals, out=np.zeros_like(counts), where=totals != 0)
    excess = shares - shares.mean(axis=0, keepdims=True)

    records = []
    for i, group in enumerate(dfm.docnames):
        picked = [
            (dfm.features[j], float(excess[i, j]))
            for j in np.flatnonzero(excess[i] > 0)
        ]
        picked.sort(key=lambda fw: (-fw[1], fw[0]))
        records.extend((group, feat, w) for feat, w in picked[:max_words])

    return pd.DataFrame.from_records(records, columns=columns)


def export_frequency_table(freq_df: pd.DataFrame, path: str) -> str:
    """Write a frequency (or cloud weight) table to CSV and return the path."""
    directory = os.path.dirname(path)
    if directory:
        ensure_dir_exists(directory)
    freq_df.to_csv(path, index=False)
    return path
