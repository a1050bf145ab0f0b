"""
Tests for collocation detection.

These tests validate that:

- n-grams never span a stopword pad
- counts are taken over the whole collection and filtered by min_count
- the log-likelihood score has the expected sign and zero point
- ranking is deterministic
"""

from __future__ import annotations

import math

import pytest

from tweetbow.features.collocations import (
    collocations_to_frame,
    find_collocations,
    iter_ngrams,
    log_likelihood,
    select_collocations,
)
from tweetbow.features.preprocessing import PAD


SEQUENCES = [
    ["fake", "news", "media", "sad"],
    ["fake", "news", "cnn", "story"],
    ["fake", "news", "media", "working"],
    ["jobs", "jobs", "jobs"],
    ["big", "crowds", "michigan"],
]


def test_iter_ngrams_breaks_at_pads():
    seq = ["a", "b", PAD, "c", "d", "e"]
    assert list(iter_ngrams(seq, 2)) == [("a", "b"), ("c", "d"), ("d", "e")]
    assert list(iter_ngrams(seq, 3)) == [("c", "d", "e")]


def test_find_collocations_counts_and_threshold():
    candidates = find_collocations(SEQUENCES, min_n=2, max_n=3, min_count=2)
    by_tokens = {c.tokens: c for c in candidates}

    assert by_tokens[("fake", "news")].count == 3
    assert by_tokens[("fake", "news", "media")].count == 2
    assert by_tokens[("jobs", "jobs")].count == 2
    assert all(c.count >= 2 for c in candidates)
    assert ("big", "crowds") not in by_tokens


def test_find_collocations_ignores_pairs_split_by_stopwords():
    sequences = [["fake", PAD, "news"]] * 5
    assert find_collocations(sequences, min_count=1) == []


def test_find_collocations_is_sorted_and_deterministic():
    first = find_collocations(SEQUENCES, min_count=1)
    second = find_collocations([list(s) for s in SEQUENCES], min_count=1)

    assert first == second
    keys = [(-c.score, -c.count, c.tokens) for c in first]
    assert keys == sorted(keys)


def test_find_collocations_does_not_modify_input():
    sequences = [list(s) for s in SEQUENCES]
    find_collocations(sequences, min_count=1)
    assert sequences == SEQUENCES


@pytest.mark.parametrize("min_n,max_n,min_count", [(1, 3, 2), (3, 2, 2), (2, 3, 0)])
def test_find_collocations_rejects_bad_parameters(min_n, max_n, min_count):
    with pytest.raises(ValueError):
        find_collocations(SEQUENCES, min_n=min_n, max_n=max_n, min_count=min_count)


def test_find_collocations_on_empty_input():
    assert find_collocations([]) == []
    assert collocations_to_frame([]).empty


def test_log_likelihood_sign_and_zero_point():
    g2_indep, pmi_indep = log_likelihood(1, 1, 1, 1)
    assert g2_indep == pytest.approx(0.0)
    assert pmi_indep == pytest.approx(0.0)

    g2_pos, pmi_pos = log_likelihood(2, 0, 0, 2)
    assert g2_pos > 0
    assert pmi_pos == pytest.approx(1.0)
    assert g2_pos == pytest.approx(2 * (2 * math.log(2) * 2))

    g2_neg, _ = log_likelihood(1, 9, 9, 1)
    assert g2_neg < 0


def test_select_collocations_by_score_and_top_n():
    candidates = find_collocations(SEQUENCES, min_count=1)
    best = candidates[0]

    assert select_collocations(candidates, top_n=1) == [best]
    strict = select_collocations(candidates, min_score=best.score)
    assert all(c.score >= best.score for c in strict)
    assert select_collocations(candidates, min_score=float("inf")) == []


def test_collocations_to_frame_columns():
    frame = collocations_to_frame(find_collocations(SEQUENCES, min_count=2))
    assert list(frame.columns) == ["collocation", "count", "length", "g2", "pmi"]
    assert "fake news" in set(frame["collocation"])
