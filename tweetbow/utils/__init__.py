"""
Shared utilities.

This subpackage contains:
- config loading
- filesystem helpers
- logger construction
"""
