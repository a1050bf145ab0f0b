"""
Corpus containers and loading utilities.

This subpackage provides:
- the Document and Corpus types
- functions to load a serialized corpus described in config/pipeline.yaml
"""
