"""
Tokenization, stopword and stemming utilities for social-media text.

This module implements the first stage of the bag-of-words workflow:

- tokenization (tweet-aware, regex word split, or whitespace)
- removal of punctuation, numeric, symbol and URL tokens
- lowercasing
- stopword removal, leaving an empty-string pad where a stopword was so
  that words on either side are not treated as adjacent later on
- stemming (applied after compounding, see tweetbow.features.compounding)

We provide helpers that operate on a single text as well as on a whole
Corpus. Options are plain keyword arguments; the workflow builds them from
the "tokenize", "stopwords" and "stemming" sections of config/pipeline.yaml
via :func:`tokenize_options_from_config`.
"""

from __future__ import annotations

import logging
import re
import string
import unicodedata
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Collection, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

import pandas as pd
from joblib import Parallel, delayed
from nltk.corpus import stopwords as nltk_stopwords
from nltk.stem import PorterStemmer, SnowballStemmer
from nltk.tokenize import TweetTokenizer
from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS as SKLEARN_EN_STOPWORDS

from tweetbow.data.corpus import Corpus
from tweetbow.exceptions import InvalidInput


logger = logging.getLogger(__name__)

PAD = ""

_URL_RE = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)
_NUMBER_RE = re.compile(r"[+-]?\d+(?:[.,:/]\d+)*%?")
_WORD_RE = re.compile(r"[#@]?\w+(?:['’]\w+)*|\S")
_EDGE_PUNCT = string.punctuation + "‘’“”…"

_TWEET_TOKENIZER = TweetTokenizer(preserve_case=True, reduce_len=False, strip_handles=False)


@dataclass
class TokenizedCorpus:
    """
    Per-document token sequences derived from a Corpus.

    ``tokens[i]`` belongs to ``docnames[i]``; ``docvars`` is indexed by the
    same ids. Documents that failed validation are absent and listed in
    ``skipped``.
    """

    docnames: List[str]
    tokens: List[List[str]]
    docvars: pd.DataFrame
    skipped: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.docnames)

    def ntoken(self) -> int:
        """Total number of non-pad tokens across all documents."""
        return sum(1 for seq in self.tokens for tok in seq if tok != PAD)

    def with_tokens(self, tokens: List[List[str]]) -> "TokenizedCorpus":
        """Return a copy carrying new token sequences for the same documents."""
        if len(tokens) != len(self.docnames):
            raise ValueError(
                f"Expected {len(self.docnames)} token sequences, got {len(tokens)}."
            )
        return TokenizedCorpus(
            docnames=list(self.docnames),
            tokens=tokens,
            docvars=self.docvars.copy(),
            skipped=list(self.skipped),
        )


# ---------------------------------------------------------------------------
# Token classification
# ---------------------------------------------------------------------------


def _is_punctuation(token: str) -> bool:
    return all(unicodedata.category(ch).startswith("P") for ch in token)


def _is_symbol(token: str) -> bool:
    # Anything with no letter or digit left after the punctuation check:
    # emoji, currency signs, arrows, math operators...
    return not any(ch.isalnum() for ch in token)


def _strip_edge_punctuation(token: str) -> str:
    """Strip surrounding punctuation, keeping a leading '#' or '@'."""
    if len(token) > 1 and token[0] in "#@":
        body = token[1:].strip(_EDGE_PUNCT)
        return token[0] + body if body else ""
    return token.strip(_EDGE_PUNCT)


# ---------------------------------------------------------------------------
# Tokenization
# ---------------------------------------------------------------------------


def _split_tokens(text: str, method: str) -> List[str]:
    method = (method or "tweet").lower()
    if method == "tweet":
        return _TWEET_TOKENIZER.tokenize(text)
    if method == "word":
        return _WORD_RE.findall(text)
    if method == "whitespace":
        return text.split()
    raise ValueError("tokenize method must be 'tweet', 'word' or 'whitespace'")


def tokenize_text(
    text: Any,
    method: str = "tweet",
    lowercase: bool = True,
    remove_punct: bool = True,
    remove_numbers: bool = True,
    remove_symbols: bool = True,
    remove_url: bool = True,
    doc_id: Optional[str] = None,
) -> List[str]:
    """
    Split a raw text into normalized word tokens.

    Parameters
    ----------
    text : Any
        Raw document content. Must be a ``str``.
    method : str
        "tweet" (nltk TweetTokenizer: keeps hashtags, @mentions and
        contractions together), "word" (regex word split) or "whitespace".
    lowercase : bool
        Convert tokens to lowercase.
    remove_punct, remove_numbers, remove_symbols, remove_url : bool
        Drop tokens of the respective kind.
    doc_id : Optional[str]
        Document id, only used in the error raised for non-text input.

    Returns
    -------
    List[str]
        Tokens in document order. Empty text yields an empty list.

    Raises
    ------
    InvalidInput
        If ``text`` is not a string.
    """
    if not isinstance(text, str):
        raise InvalidInput(
            f"Document {doc_id!r} has non-text content of type "
            f"{type(text).__name__}.",
            doc_id=doc_id,
        )

    if not text.strip():
        return []

    if remove_url:
        text = _URL_RE.sub(" ", text)

    tokens: List[str] = []
    for raw in _split_tokens(text, method):
        token = raw
        if remove_punct:
            if _is_punctuation(token):
                continue
            token = _strip_edge_punctuation(token)
            if not token:
                continue
        if remove_url and _URL_RE.fullmatch(token):
            continue
        if remove_numbers and _NUMBER_RE.fullmatch(token):
            continue
        if remove_symbols and not _is_punctuation(token) and _is_symbol(token):
            continue
        if lowercase:
            token = token.lower()
        tokens.append(token)

    return tokens


# ---------------------------------------------------------------------------
# Stopwords
# ---------------------------------------------------------------------------


@lru_cache(maxsize=16)
def get_stopword_set(language: str = "english") -> FrozenSet[str]:
    """
    Build the stopword set for the given language.

    We prefer the NLTK stopword corpus, falling back to scikit-learn's
    English stopwords when the NLTK corpus data is not installed.

    Parameters
    ----------
    language : str
        Language name, e.g. "english".

    Returns
    -------
    FrozenSet[str]
        Set of stopwords. Empty when no list is available for the language.
    """
    lang = (language or "english").lower()

    try:
        # Users may need to call:
        #   nltk.download("stopwords")
        return frozenset(nltk_stopwords.words(lang))
    except (LookupError, OSError):
        logger.debug("NLTK stopword corpus unavailable for %r.", lang)

    if lang == "english":
        return frozenset(SKLEARN_EN_STOPWORDS)

    logger.warning("No stopword list available for language %r; none removed.", lang)
    return frozenset()


def remove_stopwords(
    tokens: Iterable[str],
    stopword_set: Iterable[str],
    padding: bool = True,
) -> List[str]:
    """
    Remove stopwords from a list of tokens.

    Parameters
    ----------
    tokens : Iterable[str]
        Input tokens.
    stopword_set : Iterable[str]
        Words to remove (compared case-insensitively).
    padding : bool
        If True, each removed word leaves an empty-string pad so that the
        words around it are no longer adjacent.

    Returns
    -------
    List[str]
        Tokens with stopwords removed or padded out.
    """
    stopword_set = {w.lower() for w in stopword_set}
    if not stopword_set:
        return list(tokens)
    if padding:
        return [PAD if t.lower() in stopword_set else t for t in tokens]
    return [t for t in tokens if t.lower() not in stopword_set]


def tokenize_document(
    text: Any,
    stopwords: Optional[Iterable[str]] = None,
    padding: bool = True,
    doc_id: Optional[str] = None,
    **options: Any,
) -> List[str]:
    """
    Tokenize one document and remove stopwords.

    ``options`` are passed on to :func:`tokenize_text`.
    """
    tokens = tokenize_text(text, doc_id=doc_id, **options)
    if stopwords:
        tokens = remove_stopwords(tokens, stopwords, padding=padding)
    return tokens


def _tokenize_isolated(
    doc_id: str,
    text: Any,
    stopwords: Optional[FrozenSet[str]],
    padding: bool,
    options: Dict[str, Any],
) -> Tuple[str, Optional[List[str]], Optional[InvalidInput]]:
    # Runs in joblib workers; errors travel back as values so one bad
    # document does not abort the others.
    try:
        return doc_id, tokenize_document(
            text, stopwords=stopwords, padding=padding, doc_id=doc_id, **options
        ), None
    except InvalidInput as exc:
        return doc_id, None, exc


def tokenize_corpus(
    corpus: Corpus,
    stopwords: Optional[Iterable[str]] = None,
    padding: bool = True,
    strict: bool = False,
    n_jobs: int = 1,
    **options: Any,
) -> TokenizedCorpus:
    """
    Tokenize every document of a corpus.

    Parameters
    ----------
    corpus : Corpus
        Input documents.
    stopwords : Optional[Iterable[str]]
        Words to remove; None disables stopword removal.
    padding : bool
        Leave pads where stopwords were removed.
    strict : bool
        If True, the first invalid document aborts the run with
        InvalidInput. Otherwise invalid documents are skipped and their ids
        recorded in ``TokenizedCorpus.skipped``.
    n_jobs : int
        Number of joblib workers. Output order and content do not depend
        on this value.
    **options
        Passed to :func:`tokenize_text`.

    Returns
    -------
    TokenizedCorpus
    """
    sw = frozenset(stopwords) if stopwords else None

    jobs = (
        (doc.doc_id, doc.text, sw, padding, options)
        for doc in corpus
    )
    if n_jobs == 1:
        results = [_tokenize_isolated(*job) for job in jobs]
    else:
        results = Parallel(n_jobs=n_jobs)(
            delayed(_tokenize_isolated)(*job) for job in jobs
        )

    docnames: List[str] = []
    tokens: List[List[str]] = []
    skipped: List[str] = []
    for doc_id, doc_tokens, error in results:
        if error is not None:
            if strict:
                raise error
            logger.warning("Skipping document %s: %s", doc_id, error)
            skipped.append(doc_id)
            continue
        docnames.append(doc_id)
        tokens.append(doc_tokens)

    return TokenizedCorpus(
        docnames=docnames,
        tokens=tokens,
        docvars=corpus.docvars.loc[docnames],
        skipped=skipped,
    )


def tokenize_options_from_config(cfg: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Translate the "tokenize" and "stopwords" config sections into keyword
    arguments for :func:`tokenize_corpus`.
    """
    tok_cfg = cfg.get("tokenize", {}) or {}
    sw_cfg = cfg.get("stopwords", {}) or {}

    options: Dict[str, Any] = {
        "method": tok_cfg.get("method", "tweet"),
        "lowercase": bool(tok_cfg.get("lowercase", True)),
        "remove_punct": bool(tok_cfg.get("remove_punct", True)),
        "remove_numbers": bool(tok_cfg.get("remove_numbers", True)),
        "remove_symbols": bool(tok_cfg.get("remove_symbols", True)),
        "remove_url": bool(tok_cfg.get("remove_url", True)),
        "strict": bool(tok_cfg.get("strict", False)),
        "n_jobs": int(tok_cfg.get("n_jobs", 1)),
    }

    if bool(sw_cfg.get("enabled", True)):
        words = set(get_stopword_set(sw_cfg.get("language", "english")))
        words.update(w.lower() for w in (sw_cfg.get("extra") or []))
        options["stopwords"] = frozenset(words)
        options["padding"] = bool(sw_cfg.get("padding", True))
    else:
        options["stopwords"] = None

    return options


# ---------------------------------------------------------------------------
# Stemming
# ---------------------------------------------------------------------------


@lru_cache(maxsize=16)
def _build_stemmer(algorithm: str = "snowball", language: str = "english"):
    """
    Build a stemming object based on the chosen algorithm.

    Parameters
    ----------
    algorithm : str
        Name of the stemming algorithm: "snowball" or "porter".
    language : str
        Language for the Snowball stemmer.

    Returns
    -------
    object
        Stemmer object with a .stem(token) method.
    """
    algo = (algorithm or "snowball").lower()
    if algo == "porter":
        return PorterStemmer()
    if algo == "snowball":
        return SnowballStemmer((language or "english").lower())
    raise ValueError("stemming algorithm must be 'snowball' or 'porter'")


def stem_tokens(
    tokens: Iterable[str],
    algorithm: str = "snowball",
    language: str = "english",
    stem_compounds: bool = False,
    concatenator: str = " ",
    compounds: Optional[Collection[str]] = None,
) -> List[str]:
    """
    Apply stemming to a list of tokens.

    Compound tokens are left as they are unless ``stem_compounds`` is set,
    in which case each part is stemmed. Pads are preserved.

    Parameters
    ----------
    tokens : Iterable[str]
        Input tokens.
    algorithm : str
        Stemming algorithm ("snowball" or "porter").
    language : str
        Stemmer language.
    stem_compounds : bool
        Stem the parts of compound tokens as well.
    concatenator : str
        Separator used inside compound tokens.
    compounds : Optional[Collection[str]]
        The compound tokens, as produced by compounding. If None, any token
        containing ``concatenator`` is taken to be a compound.

    Returns
    -------
    List[str]
        Stemmed tokens.
    """
    stemmer = _build_stemmer(algorithm, language)

    def is_compound(token: str) -> bool:
        if compounds is not None:
            return token in compounds
        return bool(concatenator) and concatenator in token

    out: List[str] = []
    for t in tokens:
        if t == PAD:
            out.append(t)
        elif is_compound(t):
            if stem_compounds:
                out.append(concatenator.join(stemmer.stem(p) for p in t.split(concatenator)))
            else:
                out.append(t)
        else:
            out.append(stemmer.stem(t))
    return out
