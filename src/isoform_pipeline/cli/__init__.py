"""Command-line interface for isoform-pipeline."""

from isoform_pipeline.cli.main import cli

__all__ = ["cli"]
