"""Isoform-pipeline: transcript-level differential expression wrangling."""

__version__ = "0.1.0"
