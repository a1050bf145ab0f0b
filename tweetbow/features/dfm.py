"""
Document-feature matrix construction, grouping and trimming.

This module provides helpers to:
- build a sparse document-feature matrix (DFM) of raw counts from
  tokenized documents, using scikit-learn's CountVectorizer on
  pre-tokenized input
- group rows by a document variable (summing their counts)
- trim features by term frequency and document frequency
- select or remove named features
- persist and reload a DFM, and export it as nonzero triples

No weighting is applied here: every cell is the number of times a feature
occurs in a document (or group of documents).
"""

from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Union

import joblib
import numpy as np
import pandas as pd
import scipy.sparse as sp
from sklearn.feature_extraction.text import CountVectorizer

from tweetbow.exceptions import ThresholdTooStrict
from tweetbow.features.preprocessing import PAD, TokenizedCorpus
from tweetbow.utils.run_utils import ensure_dir_exists


logger = logging.getLogger(__name__)

GroupsLike = Union[str, Sequence[Any]]

DOCFREQ_TYPES = ("count", "prop", "proportion")


@dataclass
class DocumentFeatureMatrix:
    """
    Sparse count matrix with row (document or group) and column (feature)
    labels.

    Rows follow ``docnames``; columns follow ``features``. ``docvars`` is
    indexed by ``docnames``.
    """

    matrix: sp.csr_matrix
    docnames: List[str]
    features: List[str]
    docvars: pd.DataFrame = field(default_factory=pd.DataFrame)

    def __post_init__(self) -> None:
        self.matrix = sp.csr_matrix(self.matrix, dtype=np.int64)
        n_rows, n_cols = self.matrix.shape
        if n_rows != len(self.docnames) or n_cols != len(self.features):
            raise ValueError(
                f"Matrix shape {self.matrix.shape} does not match "
                f"{len(self.docnames)} row labels and {len(self.features)} features."
            )
        if len(set(self.docnames)) != len(self.docnames):
            raise ValueError("Row labels of a document-feature matrix must be unique.")
        if len(set(self.features)) != len(self.features):
            raise ValueError("Feature labels of a document-feature matrix must be unique.")
        if self.docvars is None or (
            len(self.docvars.columns) == 0 and len(self.docvars.index) != len(self.docnames)
        ):
            self.docvars = pd.DataFrame(index=pd.Index(self.docnames, name="doc_id"))

    def __repr__(self) -> str:
        return f"DocumentFeatureMatrix(ndoc={self.ndoc}, nfeat={self.nfeat})"

    @property
    def ndoc(self) -> int:
        return self.matrix.shape[0]

    @property
    def nfeat(self) -> int:
        return self.matrix.shape[1]

    def feature_sums(self) -> pd.Series:
        """Total count of each feature (column sums)."""
        sums = np.asarray(self.matrix.sum(axis=0)).ravel().astype(np.int64)
        return pd.Series(sums, index=pd.Index(self.features, name="feature"), name="frequency")

    def row_sums(self) -> pd.Series:
        """Total count in each row (document or group)."""
        sums = np.asarray(self.matrix.sum(axis=1)).ravel().astype(np.int64)
        return pd.Series(sums, index=pd.Index(self.docnames, name="doc_id"), name="ntoken")

    def docfreq(self) -> pd.Series:
        """Number of rows in which each feature occurs at least once."""
        counts = np.asarray((self.matrix > 0).sum(axis=0)).ravel().astype(np.int64)
        return pd.Series(counts, index=pd.Index(self.features, name="feature"), name="docfreq")

    def to_dataframe(self) -> pd.DataFrame:
        """Dense copy as a DataFrame (rows = docnames, columns = features)."""
        return pd.DataFrame(
            self.matrix.toarray(),
            index=pd.Index(self.docnames, name="doc_id"),
            columns=list(self.features),
        )

    def to_triples(self) -> pd.DataFrame:
        """Nonzero cells as (doc_id, feature, count) rows, in row-major order."""
        coo = self.matrix.tocoo()
        order = np.lexsort((coo.col, coo.row))
        return pd.DataFrame(
            {
                "doc_id": [self.docnames[i] for i in coo.row[order]],
                "feature": [self.features[j] for j in coo.col[order]],
                "count": coo.data[order].astype(np.int64),
            },
            columns=["doc_id", "feature", "count"],
        )

    def copy(self) -> "DocumentFeatureMatrix":
        return DocumentFeatureMatrix(
            matrix=self.matrix.copy(),
            docnames=list(self.docnames),
            features=list(self.features),
            docvars=self.docvars.copy(),
        )


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def _drop_pads(tokens: Iterable[str]) -> List[str]:
    # Module-level so a fitted vectorizer stays picklable.
    return [t for t in tokens if t != PAD]


def _build_count_vectorizer() -> CountVectorizer:
    """
    Construct a CountVectorizer for pre-tokenized documents.

    Tokenization, compounding and stemming already happened upstream, so
    the analyzer only removes pads. Compound tokens keep their internal
    separator. The fitted vocabulary is sorted, which fixes column order.
    """
    return CountVectorizer(
        analyzer=_drop_pads,
        lowercase=False,
        dtype=np.int64,
    )


def build_dfm_from_sequences(
    docnames: Sequence[str],
    sequences: Sequence[Sequence[str]],
    docvars: Optional[pd.DataFrame] = None,
) -> DocumentFeatureMatrix:
    """
    Build a per-document DFM from parallel lists of ids and token sequences.

    Parameters
    ----------
    docnames : Sequence[str]
        Unique row labels.
    sequences : Sequence[Sequence[str]]
        Token sequences (pads are ignored).
    docvars : Optional[pd.DataFrame]
        Document variables indexed by ``docnames``.

    Returns
    -------
    DocumentFeatureMatrix
    """
    if len(docnames) != len(sequences):
        raise ValueError(
            f"Got {len(docnames)} document ids for {len(sequences)} token sequences."
        )

    docnames = [str(d) for d in docnames]
    has_tokens = any(t != PAD for seq in sequences for t in seq)

    if has_tokens:
        vectorizer = _build_count_vectorizer()
        matrix = vectorizer.fit_transform([list(seq) for seq in sequences])
        features = [str(f) for f in vectorizer.get_feature_names_out()]
    else:
        # CountVectorizer refuses an empty vocabulary.
        matrix = sp.csr_matrix((len(docnames), 0), dtype=np.int64)
        features = []

    if docvars is not None:
        docvars = docvars.copy()
        docvars.index = pd.Index([str(i) for i in docvars.index], name="doc_id")
        docvars = docvars.reindex(docnames)

    return DocumentFeatureMatrix(
        matrix=matrix,
        docnames=docnames,
        features=features,
        docvars=docvars if docvars is not None else pd.DataFrame(),
    )


def build_dfm(
    tokenized: TokenizedCorpus,
    groups: Optional[GroupsLike] = None,
) -> DocumentFeatureMatrix:
    """
    Build a DFM from a tokenized corpus.

    Parameters
    ----------
    tokenized : TokenizedCorpus
        Token sequences and document variables.
    groups : Optional[GroupsLike]
        If given, the name of a document variable or a per-document
        sequence of labels; rows are then summed per group label.

    Returns
    -------
    DocumentFeatureMatrix
        One row per document, or one row per group when ``groups`` is set.
    """
    dfm = build_dfm_from_sequences(
        tokenized.docnames, tokenized.tokens, docvars=tokenized.docvars
    )
    logger.info("Built DFM with %d documents and %d features.", dfm.ndoc, dfm.nfeat)
    if groups is not None:
        return dfm_group(dfm, groups)
    return dfm


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


def resolve_group_labels(
    dfm: DocumentFeatureMatrix, groups: GroupsLike
) -> List[Optional[str]]:
    """
    Return one group label per row, or None where the label is missing.

    Rows with a missing (None / NaN) label belong to no group; callers that
    aggregate by group leave them out.

    Raises
    ------
    KeyError
        If ``groups`` names a document variable that does not exist.
    ValueError
        If an explicit label sequence does not match the number of rows.
    """
    if isinstance(groups, str):
        if dfm.ndoc == 0:
            return []
        if groups not in dfm.docvars.columns:
            raise KeyError(
                f"Grouping variable '{groups}' not found in docvars. "
                f"Available: {list(dfm.docvars.columns)}"
            )
        values = dfm.docvars[groups].tolist()
    else:
        values = list(groups)
        if len(values) != dfm.ndoc:
            raise ValueError(
                f"Got {len(values)} group labels for {dfm.ndoc} rows."
            )

    labels: List[Optional[str]] = []
    unlabelled = []
    for doc, value in zip(dfm.docnames, values):
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            labels.append(None)
            unlabelled.append(doc)
        else:
            labels.append(str(value))
    if unlabelled:
        logger.warning(
            "Leaving %d document(s) without a group label out of grouping: %s",
            len(unlabelled),
            unlabelled[:10],
        )
    return labels


def dfm_group(dfm: DocumentFeatureMatrix, groups: GroupsLike) -> DocumentFeatureMatrix:
    """
    Sum rows that share a group label.

    Group rows are ordered by sorted label. Each group row's counts are the
    sums of its member rows, so its row sum equals the sum of the members'
    row sums. Rows whose label is missing belong to no group and are left
    out. The feature set is unchanged. Document variables that are
    constant within every group are kept; ``n_documents`` records group
    sizes.

    Parameters
    ----------
    dfm : DocumentFeatureMatrix
        Input matrix; not modified.
    groups : GroupsLike
        Document variable name, or one label per row.

    Returns
    -------
    DocumentFeatureMatrix
    """
    all_labels = resolve_group_labels(dfm, groups)
    members = [i for i, label in enumerate(all_labels) if label is not None]
    labels = [all_labels[i] for i in members]
    group_names = sorted(set(labels))
    position = {name: i for i, name in enumerate(group_names)}

    indicator = sp.csr_matrix(
        (
            np.ones(len(labels), dtype=np.int64),
            (
                np.array([position[label] for label in labels], dtype=np.int64),
                np.array(members, dtype=np.int64),
            ),
        ),
        shape=(len(group_names), dfm.ndoc),
    )
    grouped = (indicator @ dfm.matrix).tocsr()

    member_frame = dfm.docvars.iloc[members].copy()
    member_frame["_group"] = labels
    kept = {}
    for col in dfm.docvars.columns:
        per_group = member_frame.groupby("_group", sort=True)[col].nunique(dropna=False)
        if (per_group <= 1).all():
            kept[col] = member_frame.groupby("_group", sort=True)[col].first()
    group_docvars = pd.DataFrame(kept, index=pd.Index(group_names, name="doc_id"))
    group_docvars["n_documents"] = (
        pd.Series(labels).value_counts().reindex(group_names).astype(np.int64).values
    )

    return DocumentFeatureMatrix(
        matrix=grouped,
        docnames=group_names,
        features=list(dfm.features),
        docvars=group_docvars,
    )


# ---------------------------------------------------------------------------
# Trimming and selection
# ---------------------------------------------------------------------------


def _check_threshold(name: str, value: Optional[float], proportion: bool) -> None:
    if value is None:
        return
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")
    if proportion and value > 1:
        raise ValueError(f"{name} must be within [0, 1] when docfreq_type is a proportion, got {value}")


def _subset_features(dfm: DocumentFeatureMatrix, keep: np.ndarray) -> DocumentFeatureMatrix:
    idx = np.flatnonzero(keep)
    return DocumentFeatureMatrix(
        matrix=dfm.matrix[:, idx],
        docnames=list(dfm.docnames),
        features=[dfm.features[j] for j in idx],
        docvars=dfm.docvars.copy(),
    )


def dfm_trim(
    dfm: DocumentFeatureMatrix,
    min_termfreq: Optional[float] = None,
    max_termfreq: Optional[float] = None,
    min_docfreq: Optional[float] = None,
    max_docfreq: Optional[float] = None,
    docfreq_type: str = "count",
) -> DocumentFeatureMatrix:
    """
    Keep only features whose frequencies fall within the given bounds.

    Parameters
    ----------
    dfm : DocumentFeatureMatrix
        Input matrix; not modified.
    min_termfreq, max_termfreq : Optional[float]
        Bounds on a feature's total count.
    min_docfreq, max_docfreq : Optional[float]
        Bounds on the number of rows containing the feature, or on the
        fraction of rows when ``docfreq_type`` is "prop" / "proportion".
    docfreq_type : str
        "count", "prop" or "proportion".

    Returns
    -------
    DocumentFeatureMatrix
        Same rows as the input (possibly all-zero), fewer columns.

    Raises
    ------
    ValueError
        If ``docfreq_type`` is unknown or a threshold is out of range.

    Warns
    -----
    ThresholdTooStrict
        If the input had features and none survive.
    """
    docfreq_type = (docfreq_type or "count").lower()
    if docfreq_type not in DOCFREQ_TYPES:
        raise ValueError(f"docfreq_type must be one of {DOCFREQ_TYPES}, got {docfreq_type!r}")
    proportion = docfreq_type != "count"

    _check_threshold("min_termfreq", min_termfreq, False)
    _check_threshold("max_termfreq", max_termfreq, False)
    _check_threshold("min_docfreq", min_docfreq, proportion)
    _check_threshold("max_docfreq", max_docfreq, proportion)

    termfreq = dfm.feature_sums().to_numpy()
    docfreq = dfm.docfreq().to_numpy().astype(float)
    if proportion:
        docfreq = docfreq / dfm.ndoc if dfm.ndoc else np.zeros_like(docfreq)

    keep = np.ones(dfm.nfeat, dtype=bool)
    if min_termfreq is not None:
        keep &= termfreq >= min_termfreq
    if max_termfreq is not None:
        keep &= termfreq <= max_termfreq
    if min_docfreq is not None:
        keep &= docfreq >= min_docfreq
    if max_docfreq is not None:
        keep &= docfreq <= max_docfreq

    trimmed = _subset_features(dfm, keep)
    logger.info("Trimmed DFM from %d to %d features.", dfm.nfeat, trimmed.nfeat)

    if dfm.nfeat > 0 and trimmed.nfeat == 0:
        msg = (
            "Trimming removed every feature "
            f"(min_termfreq={min_termfreq}, min_docfreq={min_docfreq}, "
            f"docfreq_type={docfreq_type!r}); the result has zero columns."
        )
        logger.warning(msg)
        warnings.warn(msg, ThresholdTooStrict, stacklevel=2)

    return trimmed


def trim_and_group(
    dfm: DocumentFeatureMatrix,
    groups: Optional[GroupsLike] = None,
    **trim_kwargs: Any,
) -> DocumentFeatureMatrix:
    """
    Trim, then group.

    Document frequencies are computed on the per-document rows before they
    are merged, so grouping cannot undercount them.
    """
    trimmed = dfm_trim(dfm, **trim_kwargs)
    if groups is None:
        return trimmed
    return dfm_group(trimmed, groups)


def dfm_select(
    dfm: DocumentFeatureMatrix,
    features: Iterable[str],
    selection: str = "keep",
) -> DocumentFeatureMatrix:
    """
    Keep or remove the named features. Unknown names are ignored.

    Kept features retain the input's column order.
    """
    wanted = set(features)
    mask = np.array([f in wanted for f in dfm.features], dtype=bool)
    if selection == "keep":
        return _subset_features(dfm, mask)
    if selection == "remove":
        return _subset_features(dfm, ~mask)
    raise ValueError("selection must be 'keep' or 'remove'")


# ---------------------------------------------------------------------------
# Persistence and export
# ---------------------------------------------------------------------------


DEFAULT_DFM_FILENAME = "dfm.joblib"


def save_dfm(dfm: DocumentFeatureMatrix, path: str) -> str:
    """Persist a DFM with joblib and return the path written."""
    directory = os.path.dirname(path)
    if directory:
        ensure_dir_exists(directory)
    joblib.dump(dfm, path)
    return path


def load_dfm(path: str) -> DocumentFeatureMatrix:
    """
    Load a previously saved DFM from disk.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"DFM file not found at: {path}")
    dfm: DocumentFeatureMatrix = joblib.load(path)
    return dfm


def export_dfm_triples(dfm: DocumentFeatureMatrix, path: str) -> str:
    """Write the nonzero cells of a DFM to CSV as doc_id, feature, count."""
    directory = os.path.dirname(path)
    if directory:
        ensure_dir_exists(directory)
    dfm.to_triples().to_csv(path, index=False)
    return path
