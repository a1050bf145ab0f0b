"""
Tests for tokenization, stopword removal and stemming.

These tests validate that:

- raw tweets are split into lowercase word tokens with punctuation,
  numbers, symbols and URLs removed
- removed stopwords leave pads so adjacency is broken
- non-text documents are isolated (or abort the run in strict mode)
- stemming leaves compound tokens and pads alone
"""

from __future__ import annotations

import pytest
from nltk.stem import SnowballStemmer

from tweetbow.data.corpus import Corpus
from tweetbow.exceptions import InvalidInput
from tweetbow.features.preprocessing import (
    PAD,
    get_stopword_set,
    remove_stopwords,
    stem_tokens,
    tokenize_corpus,
    tokenize_options_from_config,
    tokenize_text,
)


def test_tokenize_text_drops_noise_tokens():
    """
    Punctuation, digits, emoji and URLs are removed; hashtags and
    mentions survive, lowercased.
    """
    text = "Hello, WORLD!!! 2016 visit https://t.co/abc123 \U0001F600 #MAGA @someone"
    tokens = tokenize_text(text)

    assert tokens == ["hello", "world", "visit", "#maga", "@someone"]


def test_tokenize_text_keeps_case_when_asked():
    tokens = tokenize_text("Fake News", lowercase=False)
    assert tokens == ["Fake", "News"]


@pytest.mark.parametrize("method", ["tweet", "word", "whitespace"])
def test_tokenize_methods_agree_on_simple_text(method):
    """
    On plain words separated by spaces and punctuation every method
    yields the same tokens.
    """
    assert tokenize_text("bad bad hombre.", method=method) == ["bad", "bad", "hombre"]


def test_tokenize_text_empty_is_not_an_error():
    assert tokenize_text("") == []
    assert tokenize_text("   \n ") == []


def test_tokenize_text_rejects_non_text():
    with pytest.raises(InvalidInput) as excinfo:
        tokenize_text(42, doc_id="doc7")
    assert excinfo.value.doc_id == "doc7"


def test_tokenize_text_unknown_method():
    with pytest.raises(ValueError):
        tokenize_text("hello", method="sentencepiece")


def test_remove_stopwords_pads_by_default():
    tokens = ["bad", "and", "idea"]
    assert remove_stopwords(tokens, {"and"}) == ["bad", PAD, "idea"]
    assert remove_stopwords(tokens, {"and"}, padding=False) == ["bad", "idea"]


def test_english_stopwords_available():
    """
    Either the NLTK corpus or the scikit-learn fallback provides a list.
    """
    stopwords = get_stopword_set("english")
    assert "the" in stopwords
    assert "and" in stopwords


def test_tokenize_corpus_skips_invalid_documents():
    corpus = Corpus.from_texts(
        ["Fake news again", 42, None, "Very bad idea"],
        attributes=[{"source": "a"}, {"source": "b"}, {"source": "a"}, {"source": "b"}],
    )
    tokenized = tokenize_corpus(corpus)

    assert tokenized.docnames == ["text1", "text4"]
    assert tokenized.skipped == ["text2", "text3"]
    assert tokenized.tokens[0] == ["fake", "news", "again"]
    assert list(tokenized.docvars.index) == ["text1", "text4"]
    assert list(tokenized.docvars["source"]) == ["a", "b"]


def test_tokenize_corpus_strict_mode_raises():
    corpus = Corpus.from_texts(["fine text", 3.14])
    with pytest.raises(InvalidInput):
        tokenize_corpus(corpus, strict=True)


def test_tokenize_corpus_parallel_matches_serial():
    texts = [f"Tweet number {i} about fake news and jobs" for i in range(12)]
    corpus = Corpus.from_texts(texts)
    stopwords = {"about", "and"}

    serial = tokenize_corpus(corpus, stopwords=stopwords, n_jobs=1)
    parallel = tokenize_corpus(corpus, stopwords=stopwords, n_jobs=2)

    assert serial.docnames == parallel.docnames
    assert serial.tokens == parallel.tokens


def test_tokenize_options_from_config_adds_extra_stopwords():
    cfg = {
        "tokenize": {"method": "word"},
        "stopwords": {"enabled": True, "language": "english", "extra": ["RT", "amp"]},
    }
    options = tokenize_options_from_config(cfg)

    assert options["method"] == "word"
    assert "rt" in options["stopwords"]
    assert "amp" in options["stopwords"]
    assert options["padding"] is True


def test_tokenize_options_without_stopwords():
    options = tokenize_options_from_config({"stopwords": {"enabled": False}})
    assert options["stopwords"] is None


def test_stem_tokens_leaves_compounds_and_pads():
    tokens = ["running", "jobs", "fake news", PAD]
    assert stem_tokens(tokens) == ["run", "job", "fake news", PAD]


def test_stem_tokens_can_stem_compound_parts():
    assert stem_tokens(["running jobs"], stem_compounds=True) == ["run job"]


def test_stem_tokens_porter():
    assert stem_tokens(["jobs"], algorithm="porter") == ["job"]


def test_stem_tokens_with_explicit_compounds():
    """
    Given the compound tokens, a simple token that contains the
    concatenator is still stemmed.
    """
    stemmer = SnowballStemmer("english")
    tokens = ["fake_news", "#fake_stories", "running"]

    out = stem_tokens(tokens, concatenator="_", compounds={"fake_news"})

    assert out == ["fake_news", stemmer.stem("#fake_stories"), "run"]
    assert out[1] != "#fake_stories"
