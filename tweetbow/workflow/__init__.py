"""
End-to-end workflow.

This subpackage contains the bag-of-words run that chains every stage
according to config/pipeline.yaml.
"""
