"""
Text preprocessing and feature extraction utilities.

This subpackage includes:
- tokenization, stopword removal and stemming
- collocation detection and compounding
- document-feature matrix construction, grouping and trimming
"""
