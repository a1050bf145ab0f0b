"""
Run the bag-of-words workflow over the configured corpus.

This script is a convenience wrapper around
`tweetbow.workflow.bag_of_words.run_bag_of_words`, which:

- loads the corpus named in config/pipeline.yaml
- tokenizes it and removes stopwords
- detects and compounds collocations, then stems
- builds, trims and (optionally) groups the document-feature matrix
- writes frequency tables, the matrix and plots under outputs/

Usage (from project root):

    python -m scripts.run_bag_of_words
    # or
    python scripts/run_bag_of_words.py --config config/pipeline.yaml
"""

from __future__ import annotations

import argparse

from tweetbow.utils.run_utils import load_pipeline_config, get_logger
from tweetbow.workflow.bag_of_words import run_bag_of_words


def parse_args() -> argparse.Namespace:
    """
    Parse command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Run the bag-of-words workflow over a social-media corpus."
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config/pipeline.yaml",
        help="Path to pipeline config YAML (default: config/pipeline.yaml).",
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Run every stage but do not write tables, the matrix or plots.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    cfg = load_pipeline_config(args.config)
    logger = get_logger(
        name="run_bag_of_words",
        config=cfg,
        log_file_suffix="run",
    )

    logger.info("=" * 80)
    logger.info("Starting bag-of-words workflow. Config: %s", args.config)

    result = run_bag_of_words(
        config_path=args.config, save=not args.no_save, logger=logger
    )

    if result.skipped:
        logger.warning("Skipped %d invalid document(s): %s", len(result.skipped), result.skipped)

    if result.trimmed.nfeat == 0:
        logger.warning("Trimmed matrix has no features; plots and tables are empty.")
    else:
        logger.info("Top features:\n%s", result.frequencies.head(20))

    for name, path in sorted(result.outputs.items()):
        logger.info("Wrote %s -> %s", name, path)

    logger.info("Bag-of-words workflow completed.")


if __name__ == "__main__":
    main()
