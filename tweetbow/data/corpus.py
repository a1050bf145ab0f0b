"""
Corpus loading utilities for social-media text collections.

This module is responsible for:
- defining the Document and Corpus containers used by every stage
- reading the corpus section of config/pipeline.yaml
- loading a serialized corpus (CSV, JSON / JSON lines, or a pickled
  pandas DataFrame) into a Corpus
- normalizing the id, text and document-variable columns

The resulting Corpus is read-only input to the pipeline: tokenization,
collocation detection and matrix construction never modify it.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

import pandas as pd

from tweetbow.utils.run_utils import (
    DEFAULT_PIPELINE_CONFIG_PATH,
    get_section,
    load_pipeline_config,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Document:
    doc_id: str
    text: Any          # raw content; validated by the tokenizer, not here
    attributes: Mapping[str, Any] = field(default_factory=dict)


class Corpus:
    """
    Ordered, immutable collection of documents and their attributes.

    Documents keep the order they were given in; that order is the row
    order of every document-level matrix built from the corpus.
    """

    def __init__(self, documents: Sequence[Document]) -> None:
        self._documents = tuple(documents)

        seen = set()
        duplicates = []
        for doc in self._documents:
            if doc.doc_id in seen:
                duplicates.append(doc.doc_id)
            seen.add(doc.doc_id)
        if duplicates:
            raise ValueError(f"Duplicate document ids in corpus: {duplicates[:10]}")

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __getitem__(self, index: int) -> Document:
        return self._documents[index]

    def __repr__(self) -> str:
        return f"Corpus(ndoc={len(self)})"

    @property
    def docnames(self) -> List[str]:
        return [doc.doc_id for doc in self._documents]

    @property
    def texts(self) -> List[Any]:
        return [doc.text for doc in self._documents]

    @property
    def docvars(self) -> pd.DataFrame:
        """Document attributes as a DataFrame indexed by document id."""
        records = [dict(doc.attributes) for doc in self._documents]
        return pd.DataFrame(records, index=pd.Index(self.docnames, name="doc_id"))

    @classmethod
    def from_texts(
        cls,
        texts: Sequence[Any],
        doc_ids: Optional[Sequence[str]] = None,
        attributes: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> "Corpus":
        """
        Build a corpus from parallel sequences of texts, ids and attributes.

        Missing ids default to "text1", "text2", ...
        """
        if doc_ids is None:
            doc_ids = [f"text{i + 1}" for i in range(len(texts))]
        if attributes is None:
            attributes = [{} for _ in texts]
        if not (len(texts) == len(doc_ids) == len(attributes)):
            raise ValueError(
                "texts, doc_ids and attributes must have the same length "
                f"({len(texts)}, {len(doc_ids)}, {len(attributes)})."
            )
        return cls(
            [
                Document(doc_id=str(doc_id), text=text, attributes=dict(attrs))
                for doc_id, text, attrs in zip(doc_ids, texts, attributes)
            ]
        )

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        text_column: str = "text",
        id_column: Optional[str] = None,
        docvar_columns: Optional[Sequence[str]] = None,
    ) -> "Corpus":
        """
        Build a corpus from a DataFrame.

        Parameters
        ----------
        df : pd.DataFrame
            One row per document.
        text_column : str
            Column holding the raw text.
        id_column : Optional[str]
            Column holding document ids. If None, ids are "text1", "text2", ...
        docvar_columns : Optional[Sequence[str]]
            Columns kept as document attributes. If None, every column other
            than the text and id columns is kept.

        Returns
        -------
        Corpus

        Raises
        ------
        ValueError
            If a requested column is missing or ids are not unique.
        """
        required = [text_column]
        if id_column is not None:
            required.append(id_column)
        if docvar_columns is not None:
            required.extend(docvar_columns)

        missing_cols = [col for col in required if col not in df.columns]
        if missing_cols:
            raise ValueError(
                f"Missing required column(s) in corpus data: {missing_cols}. "
                f"Available columns: {list(df.columns)}"
            )

        if docvar_columns is None:
            docvar_columns = [
                col for col in df.columns if col not in (text_column, id_column)
            ]

        if id_column is not None:
            doc_ids = df[id_column].astype(str).tolist()
        else:
            doc_ids = None

        attributes = df[list(docvar_columns)].to_dict(orient="records")
        return cls.from_texts(
            texts=df[text_column].tolist(),
            doc_ids=doc_ids,
            attributes=attributes,
        )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _read_frame(path: str, text_column: str = "text") -> pd.DataFrame:
    """
    Read a serialized corpus table, choosing the reader by file extension.

    In CSV files the text column is read verbatim, so an empty cell is the
    empty document "" rather than a missing value.
    """
    ext = os.path.splitext(path)[1].lower()
    if ext == ".csv":
        header = pd.read_csv(path, nrows=0).columns
        converters = {text_column: str} if text_column in header else None
        return pd.read_csv(path, converters=converters)
    if ext == ".jsonl":
        return pd.read_json(path, lines=True)
    if ext == ".json":
        return pd.read_json(path)
    if ext in (".pkl", ".pickle"):
        return pd.read_pickle(path)
    raise ValueError(
        f"Unsupported corpus file type '{ext}' for {path}. "
        "Expected one of: .csv, .json, .jsonl, .pkl, .pickle"
    )


def load_corpus_config(
    config_path: str = DEFAULT_PIPELINE_CONFIG_PATH,
) -> Dict[str, Any]:
    """
    Retrieve the 'corpus' section from the pipeline configuration.

    Parameters
    ----------
    config_path : str
        Path to the pipeline YAML configuration.

    Returns
    -------
    Dict[str, Any]
        Corpus configuration dictionary.
    """
    cfg = load_pipeline_config(config_path)
    return get_section(cfg, "corpus")


def load_corpus(
    corpus_cfg: Mapping[str, Any],
    base_dir: Optional[str] = None,
) -> Corpus:
    """
    Load a corpus according to the corpus configuration section.

    This function:
    - reads the file named by ``path`` (relative paths are resolved against
      ``base_dir`` when given)
    - optionally drops rows with missing text
    - optionally drops duplicate texts
    - builds a Corpus with the configured id / text / docvar columns

    Parameters
    ----------
    corpus_cfg : Mapping[str, Any]
        The "corpus" section of config/pipeline.yaml.
    base_dir : Optional[str]
        Directory relative corpus paths are resolved against.

    Returns
    -------
    Corpus

    Raises
    ------
    FileNotFoundError
        If the corpus file cannot be found.
    ValueError
        If required columns are missing or ids are not unique.
    """
    path = corpus_cfg.get("path", "data/sample_tweets.csv")
    if base_dir is not None and not os.path.isabs(path):
        path = os.path.join(base_dir, path)

    if not os.path.exists(path):
        raise FileNotFoundError(f"Corpus file not found at: {path}")

    text_column = corpus_cfg.get("text_column", "text")
    df = _read_frame(path, text_column=text_column)

    if bool(corpus_cfg.get("drop_na_text", False)) and text_column in df.columns:
        before = len(df)
        df = df.dropna(subset=[text_column])
        if len(df) != before:
            logger.info("Dropped %d rows with missing text.", before - len(df))

    if bool(corpus_cfg.get("drop_duplicates", False)) and text_column in df.columns:
        df = df.drop_duplicates(subset=[text_column], keep="first")

    df = df.reset_index(drop=True)

    corpus = Corpus.from_dataframe(
        df,
        text_column=text_column,
        id_column=corpus_cfg.get("id_column"),
        docvar_columns=corpus_cfg.get("docvars"),
    )
    logger.info("Loaded corpus with %d documents from %s", len(corpus), path)
    return corpus
