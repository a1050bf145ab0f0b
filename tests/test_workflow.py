"""
Smoke tests for configuration loading and the end-to-end workflow.

We verify that:

- config/pipeline.yaml loads and holds every stage section
- config errors surface as FileNotFoundError / ValueError / KeyError
- the workflow runs on the bundled sample corpus and writes its outputs
- an empty corpus flows through every stage without errors
- two runs give identical tables
- empty CSV text cells and blank group labels do not break a run
- stage modules log to the configured handlers
"""

from __future__ import annotations

import copy
import os

import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from tweetbow.data.corpus import Corpus, load_corpus
from tweetbow.exceptions import ThresholdTooStrict
from tweetbow.features.dfm import (
    build_dfm,
    build_dfm_from_sequences,
    dfm_trim,
    load_dfm,
)
from tweetbow.features.preprocessing import tokenize_corpus
from tweetbow.utils.run_utils import (
    REQUIRED_SECTIONS,
    configure_logging,
    get_logger,
    load_pipeline_config,
)
from tweetbow.workflow.bag_of_words import run_bag_of_words_on_corpus


ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
CONFIG_PATH = os.path.join(ROOT, "config", "pipeline.yaml")


@pytest.fixture
def cfg(tmp_path):
    """Pipeline config with every output path redirected under tmp_path."""
    loaded = copy.deepcopy(load_pipeline_config(CONFIG_PATH))
    loaded["paths"] = {
        "results_dir": str(tmp_path / "results"),
        "artifacts_dir": str(tmp_path / "artifacts"),
        "figures_dir": str(tmp_path / "figures"),
        "logs_dir": str(tmp_path / "logs"),
    }
    loaded["logging"] = {"level": "WARNING", "to_file": False}
    return loaded


@pytest.fixture
def sample_corpus(cfg):
    return load_corpus(cfg["corpus"], base_dir=ROOT)


def test_load_pipeline_config_has_required_sections():
    cfg = load_pipeline_config(CONFIG_PATH)
    for section in REQUIRED_SECTIONS:
        assert section in cfg
    assert cfg["collocations"]["min_n"] == 2
    assert cfg["collocations"]["max_n"] == 3


def test_config_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_pipeline_config(str(tmp_path / "missing.yaml"))

    empty = tmp_path / "empty.yaml"
    empty.write_text("", encoding="utf-8")
    with pytest.raises(ValueError):
        load_pipeline_config(str(empty))

    partial = tmp_path / "partial.yaml"
    partial.write_text("corpus:\n  path: x.csv\n", encoding="utf-8")
    with pytest.raises(KeyError):
        load_pipeline_config(str(partial))


def test_load_sample_corpus(sample_corpus):
    assert len(sample_corpus) == 16
    assert sample_corpus.docnames[0] == "t001"
    assert set(sample_corpus.docvars["source"]) == {"Android", "iPhone"}


def test_load_corpus_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_corpus({"path": str(tmp_path / "nope.csv")})


def test_workflow_on_sample_corpus(cfg, sample_corpus):
    result = run_bag_of_words_on_corpus(sample_corpus, cfg)

    assert result.skipped == []
    assert not result.collocations.empty
    assert any(" " in feature for feature in result.dfm.features)

    # Trimming never drops documents; grouping merges them by source.
    assert result.trimmed.docnames == result.dfm.docnames
    assert set(result.trimmed.features) <= set(result.dfm.features)
    assert result.grouped is not None
    assert result.grouped.docnames == ["Android", "iPhone"]
    assert int(result.grouped.matrix.sum()) == int(result.trimmed.matrix.sum())

    assert set(result.frequencies["group"]) <= {"Android", "iPhone"}
    assert not result.frequencies.empty

    for key in ("frequencies", "collocations", "dfm_triples", "comparison_cloud", "dfm"):
        assert os.path.exists(result.outputs[key])
    assert os.path.exists(result.outputs["top_features_plot"])

    reloaded = load_dfm(result.outputs["dfm"])
    assert reloaded.features == result.trimmed.features


def test_workflow_is_deterministic(cfg, sample_corpus):
    first = run_bag_of_words_on_corpus(sample_corpus, cfg, save=False)
    second = run_bag_of_words_on_corpus(sample_corpus, cfg, save=False)

    pd.testing.assert_frame_equal(first.frequencies, second.frequencies)
    pd.testing.assert_frame_equal(first.collocations, second.collocations)
    pd.testing.assert_frame_equal(first.trimmed.to_triples(), second.trimmed.to_triples())


def test_workflow_on_empty_corpus(cfg):
    result = run_bag_of_words_on_corpus(Corpus([]), cfg, save=False)

    assert result.dfm.ndoc == 0
    assert result.trimmed.nfeat == 0
    assert result.grouped is not None and result.grouped.ndoc == 0
    assert result.frequencies.empty
    assert result.collocations.empty


def test_workflow_skips_invalid_documents(cfg):
    corpus = Corpus.from_texts(
        ["Fake news media again", float("nan"), "Fake news media today"],
        attributes=[{"source": "Android"}, {"source": "iPhone"}, {"source": "Android"}],
    )
    cfg["trim"] = {"min_termfreq": 1}
    result = run_bag_of_words_on_corpus(corpus, cfg, save=False)

    assert result.skipped == ["text2"]
    assert result.dfm.docnames == ["text1", "text3"]


def _write_csv(path, rows):
    pd.DataFrame(rows, columns=["id", "text", "source"]).to_csv(path, index=False)
    return str(path)


def test_empty_csv_text_is_an_empty_document(tmp_path):
    """
    An empty text cell loads as "" and keeps an all-zero row instead of
    being skipped as non-text.
    """
    path = _write_csv(
        tmp_path / "tweets.csv",
        [("a", "bad bad hombre", "X"), ("b", "", "X")],
    )
    corpus = load_corpus({"path": path, "id_column": "id", "docvars": ["source"]})

    assert corpus[1].text == ""

    tokenized = tokenize_corpus(corpus)
    dfm = build_dfm(tokenized)

    assert tokenized.skipped == []
    assert dfm.docnames == ["a", "b"]
    assert dfm.row_sums()["b"] == 0


def test_workflow_tolerates_missing_group_label(cfg, tmp_path):
    path = _write_csv(
        tmp_path / "tweets.csv",
        [
            ("a", "Fake news media today", "Android"),
            ("b", "", "Android"),
            ("c", "Fake news media again", None),
        ],
    )
    cfg["corpus"] = {"path": path, "id_column": "id", "docvars": ["source"]}
    cfg["trim"] = {"min_termfreq": 1}

    result = run_bag_of_words_on_corpus(load_corpus(cfg["corpus"]), cfg, save=False)

    assert result.skipped == []
    assert result.dfm.docnames == ["a", "b", "c"]
    assert result.grouped.docnames == ["Android"]
    assert set(result.frequencies["group"]) == {"Android"}


def test_stage_messages_reach_the_log_file(cfg, tmp_path):
    cfg["logging"] = {"level": "INFO", "to_file": True, "file_prefix": "bow_test"}
    logger = get_logger("bag_of_words", cfg, log_file_suffix="run")
    try:
        assert logger.name == "tweetbow.bag_of_words"

        dfm = build_dfm_from_sequences(["a"], [["bad", "hombre"]])
        with pytest.warns(ThresholdTooStrict):
            dfm_trim(dfm, min_termfreq=10)

        log_path = tmp_path / "logs" / "bow_test_run.log"
        content = log_path.read_text(encoding="utf-8")
        assert "tweetbow.features.dfm" in content
        assert "Trimmed DFM" in content
        assert "WARNING" in content
    finally:
        configure_logging({"logging": {"level": "WARNING", "to_file": False}})


def test_comparison_cloud_respects_max_words(cfg, sample_corpus):
    cfg["frequency"] = {"top_n": 20, "cloud_max_words": 1}
    cfg["plots"] = {"enabled": False}

    result = run_bag_of_words_on_corpus(sample_corpus, cfg)

    cloud = pd.read_csv(result.outputs["comparison_cloud"])
    assert not cloud.empty
    assert cloud.groupby("group").size().max() == 1
