"""
Tests for compounding collocations and the stemming pass that follows.
"""

from __future__ import annotations

import pandas as pd
import pytest

from tweetbow.features.collocations import Collocation, find_collocations
from tweetbow.features.compounding import (
    compound_and_stem,
    compound_sequence,
    compound_strings,
    compound_tokens,
)
from tweetbow.features.preprocessing import PAD, TokenizedCorpus


def _tokenized(tokens):
    names = [f"text{i + 1}" for i in range(len(tokens))]
    return TokenizedCorpus(
        docnames=names,
        tokens=tokens,
        docvars=pd.DataFrame(index=pd.Index(names, name="doc_id")),
    )


def test_longest_match_wins():
    seq = ["make", "america", "great", "again"]
    phrases = ["make america", "make america great", "great again"]

    out = compound_tokens([seq], phrases)[0]

    assert out == ["make america great", "again"]


def test_compounding_is_idempotent():
    sequences = [
        ["fake", "news", "media", "fake", "news"],
        ["make", "america", "great", "again", PAD, "fake", "news"],
        ["jobs", "jobs", "jobs"],
    ]
    phrases = ["fake news", "fake news media", "great again", "jobs jobs"]

    once = compound_tokens(sequences, phrases)
    twice = compound_tokens(once, phrases)

    assert once == twice
    assert once[0] == ["fake news media", "fake news"]
    assert once[2] == ["jobs jobs", "jobs"]


def test_pads_block_matches():
    assert compound_tokens([["fake", PAD, "news"]], ["fake news"]) == [["fake", PAD, "news"]]


def test_input_is_not_modified():
    sequences = [["fake", "news", "today"]]
    compound_tokens(sequences, ["fake news"])
    assert sequences == [["fake", "news", "today"]]


def test_accepts_collocation_objects_and_tuples():
    candidates = find_collocations([["fake", "news"], ["fake", "news"]], min_count=2)
    assert isinstance(candidates[0], Collocation)

    assert compound_tokens([["fake", "news"]], candidates) == [["fake news"]]
    assert compound_tokens([["fake", "news"]], [("fake", "news")]) == [["fake news"]]


def test_custom_concatenator():
    phrases = {("fake", "news")}
    assert compound_sequence(["fake", "news"], phrases, concatenator="_") == ["fake_news"]


def test_empty_concatenator_rejected():
    with pytest.raises(ValueError):
        compound_tokens([["fake", "news"]], ["fake news"], concatenator="")


def test_compound_then_stem_keeps_phrases_readable():
    tokenized = _tokenized([["fake", "news", "stories", "running", PAD]])

    result = compound_and_stem(tokenized, ["fake news"])

    assert result.tokens == [["fake news", "stori", "run", PAD]]
    # The input token sequences are untouched.
    assert tokenized.tokens == [["fake", "news", "stories", "running", PAD]]


def test_compound_without_stemming():
    tokenized = _tokenized([["fake", "news", "stories"]])
    result = compound_and_stem(tokenized, ["fake news"], stem=False)
    assert result.tokens == [["fake news", "stories"]]


def test_tokens_containing_concatenator_are_ordinary_words():
    """
    With "_" as concatenator, hashtags like "#fake_news" still join
    phrases and are still stemmed; only real compounds are protected.
    """
    tokenized = _tokenized([["#fake_news", "media", "stories", "fake", "news"]])

    result = compound_and_stem(
        tokenized,
        [("#fake_news", "media"), ("fake", "news")],
        concatenator="_",
    )

    assert result.tokens == [["#fake_news_media", "stori", "fake_news"]]


def test_stemming_hashtag_with_concatenator():
    tokenized = _tokenized([["#fake_stories", "fake", "news"]])
    result = compound_and_stem(tokenized, ["fake news"], concatenator="_")

    assert result.tokens[0][1] == "fake_news"
    assert result.tokens[0][0] != "#fake_stories"


def test_compound_strings():
    assert compound_strings(["fake news", ("make", "america", "great")], "_") == {
        "fake_news",
        "make_america_great",
    }
