"""Persistence layer for pipeline checkpoints and provenance tracking."""

from isoform_pipeline.persistence.duckdb_store import PipelineStore
from isoform_pipeline.persistence.provenance import ProvenanceTracker

__all__ = ["PipelineStore", "ProvenanceTracker"]
