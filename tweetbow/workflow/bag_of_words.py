"""
End-to-end bag-of-words workflow over a social-media corpus.

This module runs the five stages in order:

- tokenization (punctuation, numbers, symbols, URLs and stopwords removed)
- collocation detection over the token sequences
- compounding of accepted collocations, then stemming
- document-feature matrix construction
- trimming, optional grouping by a document variable, and ranked
  frequency tables

Each stage consumes the previous stage's output and returns a new value;
nothing is modified in place. Parameters come from config/pipeline.yaml.
Tables, the matrix and plots are written under the configured paths when
the "save" / "plots" sections enable them.

This module is designed to be callable both as a library function and
as a standalone script (via `python -m tweetbow.workflow.bag_of_words`).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from tweetbow.analysis.frequency import (
    comparison_cloud_weights,
    export_frequency_table,
    frequency_table,
)
from tweetbow.analysis.plots import plot_comparison_weights, plot_top_features
from tweetbow.data.corpus import Corpus, load_corpus
from tweetbow.features.collocations import (
    collocations_to_frame,
    find_collocations,
    select_collocations,
)
from tweetbow.features.compounding import compound_and_stem
from tweetbow.features.dfm import (
    DEFAULT_DFM_FILENAME,
    DocumentFeatureMatrix,
    build_dfm,
    dfm_group,
    dfm_select,
    dfm_trim,
    export_dfm_triples,
    save_dfm,
)
from tweetbow.features.preprocessing import (
    tokenize_corpus,
    tokenize_options_from_config,
)
from tweetbow.utils.run_utils import (
    DEFAULT_PIPELINE_CONFIG_PATH,
    ensure_dir_exists,
    get_logger,
    get_section,
    load_pipeline_config,
)


@dataclass
class BagOfWordsResult:
    corpus: Corpus
    skipped: List[str]
    collocations: pd.DataFrame
    dfm: DocumentFeatureMatrix              # per document, untrimmed
    trimmed: DocumentFeatureMatrix          # per document, trimmed
    grouped: Optional[DocumentFeatureMatrix]
    frequencies: pd.DataFrame
    outputs: Dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Core helpers
# ---------------------------------------------------------------------------


def _trim_kwargs(trim_cfg: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "min_termfreq": trim_cfg.get("min_termfreq"),
        "max_termfreq": trim_cfg.get("max_termfreq"),
        "min_docfreq": trim_cfg.get("min_docfreq"),
        "max_docfreq": trim_cfg.get("max_docfreq"),
        "docfreq_type": trim_cfg.get("docfreq_type", "count"),
    }


def _save_outputs(
    result: BagOfWordsResult,
    cfg: Dict[str, Any],
    group_by: Optional[str],
    logger: logging.Logger,
) -> Dict[str, str]:
    """Write tables, the trimmed matrix and plots as configured."""
    paths_cfg = get_section(cfg, "paths")
    save_cfg = get_section(cfg, "save")
    plots_cfg = get_section(cfg, "plots")
    freq_cfg = get_section(cfg, "frequency")

    outputs: Dict[str, str] = {}
    results_dir = paths_cfg.get("results_dir", "outputs/results")
    artifacts_dir = paths_cfg.get("artifacts_dir", "outputs/artifacts")
    figures_dir = paths_cfg.get("figures_dir", "outputs/figures")

    if group_by is not None:
        cloud = comparison_cloud_weights(
            result.trimmed,
            groups=group_by,
            max_words=int(freq_cfg.get("cloud_max_words", 100)),
        )
    else:
        cloud = None

    if bool(save_cfg.get("save_tables", True)):
        ensure_dir_exists(results_dir)
        outputs["frequencies"] = export_frequency_table(
            result.frequencies, os.path.join(results_dir, "frequencies.csv")
        )
        outputs["collocations"] = export_frequency_table(
            result.collocations, os.path.join(results_dir, "collocations.csv")
        )
        outputs["dfm_triples"] = export_dfm_triples(
            result.trimmed, os.path.join(results_dir, "dfm_triples.csv")
        )
        if cloud is not None:
            outputs["comparison_cloud"] = export_frequency_table(
                cloud, os.path.join(results_dir, "comparison_cloud.csv")
            )
        logger.info("Saved tables to %s", results_dir)

    if bool(save_cfg.get("save_dfm", True)):
        outputs["dfm"] = save_dfm(
            result.trimmed, os.path.join(artifacts_dir, DEFAULT_DFM_FILENAME)
        )
        logger.info("Saved trimmed DFM to %s", outputs["dfm"])

    if bool(plots_cfg.get("enabled", False)):
        if result.frequencies.empty:
            logger.warning("Frequency table is empty; skipping plots.")
        else:
            ensure_dir_exists(figures_dir)
            top_n = int(plots_cfg.get("top_n", 20))
            outputs["top_features_plot"] = os.path.join(figures_dir, "top_features.png")
            plot_top_features(
                result.frequencies,
                n=top_n,
                out_path=outputs["top_features_plot"],
                show=False,
            )
            if cloud is not None and not cloud.empty:
                outputs["comparison_plot"] = os.path.join(
                    figures_dir, "comparison_cloud.png"
                )
                plot_comparison_weights(
                    cloud,
                    max_words=top_n,
                    out_path=outputs["comparison_plot"],
                    show=False,
                )
            logger.info("Saved figures to %s", figures_dir)

    return outputs


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


def run_bag_of_words_on_corpus(
    corpus: Corpus,
    cfg: Dict[str, Any],
    logger: Optional[logging.Logger] = None,
    save: bool = True,
) -> BagOfWordsResult:
    """
    Run every stage on an already loaded corpus.

    Parameters
    ----------
    corpus : Corpus
        Input documents. May be empty, in which case every output is empty.
    cfg : Dict[str, Any]
        Parsed pipeline configuration.
    logger : Optional[logging.Logger]
        Logger for progress messages; built from ``cfg`` if None.
    save : bool
        Write tables / matrix / plots per the config's "save" and
        "plots" sections.

    Returns
    -------
    BagOfWordsResult
    """
    if logger is None:
        logger = get_logger(name="bag_of_words", config=cfg, log_file_suffix="bow")

    coll_cfg = get_section(cfg, "collocations")
    comp_cfg = get_section(cfg, "compounding")
    stem_cfg = get_section(cfg, "stemming")
    trim_cfg = get_section(cfg, "trim")
    group_by = get_section(cfg, "grouping").get("by")
    freq_cfg = get_section(cfg, "frequency")

    logger.info("Corpus: %d documents.", len(corpus))

    # 1) Tokenize
    tokenized = tokenize_corpus(corpus, **tokenize_options_from_config(cfg))
    logger.info(
        "Tokenized %d documents (%d tokens); skipped %d.",
        len(tokenized),
        tokenized.ntoken(),
        len(tokenized.skipped),
    )

    # 2) Collocations
    if bool(coll_cfg.get("enabled", True)):
        candidates = find_collocations(
            tokenized.tokens,
            min_n=int(coll_cfg.get("min_n", 2)),
            max_n=int(coll_cfg.get("max_n", 3)),
            min_count=int(coll_cfg.get("min_count", 5)),
        )
        accepted = select_collocations(
            candidates,
            min_score=coll_cfg.get("min_score"),
            top_n=coll_cfg.get("top_n"),
        )
    else:
        candidates, accepted = [], []
    logger.info(
        "Found %d collocation candidates; accepted %d.", len(candidates), len(accepted)
    )

    # 3) Compound + stem
    processed = compound_and_stem(
        tokenized,
        accepted,
        concatenator=comp_cfg.get("concatenator", " "),
        stem=bool(stem_cfg.get("enabled", True)),
        algorithm=stem_cfg.get("algorithm", "snowball"),
        language=stem_cfg.get("language", "english"),
        stem_compounds=bool(stem_cfg.get("stem_compounds", False)),
    )

    # 4) Matrix
    dfm = build_dfm(processed)

    # 5) Trim, then group
    trimmed = dfm_trim(dfm, **_trim_kwargs(trim_cfg))
    remove_features = trim_cfg.get("remove_features") or []
    if remove_features:
        trimmed = dfm_select(trimmed, remove_features, selection="remove")
    grouped = dfm_group(trimmed, group_by) if group_by is not None else None

    top_n = freq_cfg.get("top_n")
    frequencies = frequency_table(
        trimmed,
        n=int(top_n) if top_n is not None else None,
        groups=group_by,
    )
    logger.info(
        "Frequency table: %d rows over %d group(s).",
        len(frequencies),
        frequencies["group"].nunique(),
    )

    result = BagOfWordsResult(
        corpus=corpus,
        skipped=list(tokenized.skipped),
        collocations=collocations_to_frame(candidates),
        dfm=dfm,
        trimmed=trimmed,
        grouped=grouped,
        frequencies=frequencies,
    )

    if save:
        result.outputs = _save_outputs(result, cfg, group_by, logger)

    return result


def run_bag_of_words(
    config_path: str = DEFAULT_PIPELINE_CONFIG_PATH,
    save: bool = True,
    logger: Optional[logging.Logger] = None,
) -> BagOfWordsResult:
    """
    Load the configured corpus and run the full workflow.

    Parameters
    ----------
    config_path : str
        Path to config/pipeline.yaml.
    save : bool
        Write outputs as configured.
    logger : Optional[logging.Logger]
        Logger to report progress on; configured from the file if None.

    Returns
    -------
    BagOfWordsResult
    """
    cfg = load_pipeline_config(config_path)
    if logger is None:
        logger = get_logger(name="bag_of_words", config=cfg, log_file_suffix="bow")
    logger.info("Loaded pipeline config from %s", config_path)

    corpus = load_corpus(get_section(cfg, "corpus"))
    return run_bag_of_words_on_corpus(corpus, cfg, logger=logger, save=save)


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """
    Main entry point when running this module as a script.
    """
    _ = run_bag_of_words()


if __name__ == "__main__":
    main()
