"""
Reporting utilities.

This subpackage contains:
- ranked frequency tables and comparison-cloud weights
- plotting helpers for top features per group
"""
