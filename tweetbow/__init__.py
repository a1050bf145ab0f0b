"""
Top-level package for the tweetbow bag-of-words toolkit.

This package contains modules for:
- corpus loading
- tokenization, collocation detection, compounding and stemming
- document-feature matrix construction, trimming and grouping
- frequency tables and plots
- the end-to-end workflow and shared helper functions

All stages of the bag-of-words workflow over a social-media corpus are
implemented under this package.
"""
