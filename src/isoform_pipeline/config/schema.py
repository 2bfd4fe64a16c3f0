"""Pydantic models for pipeline configuration."""

import hashlib
import json
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class ReferenceConfig(BaseModel):
    """Reference annotation inputs."""

    fasta: Path | None = Field(
        default=None,
        description="Transcript FASTA (GENCODE or Ensembl headers, optionally gzipped)",
    )
    gff3: Path | None = Field(
        default=None,
        description="GFF3 gene annotation (optionally gzipped)",
    )
    format: str = Field(
        default="fasta",
        description="Reference format (only 'fasta' is supported)",
    )
    strip_version: bool = Field(
        default=False,
        description="Strip '.N' version suffixes from Ensembl identifiers",
    )

    @field_validator("format")
    @classmethod
    def check_format(cls, v: str) -> str:
        if v != "fasta":
            raise ValueError(f"Unsupported reference format: {v}")
        return v


class ThresholdPair(BaseModel):
    """Fold-change and p-value cut-offs for one expression level.

    Both values are required: call sites used different fold-change cut-offs
    (1 vs 2), so there is no default to silently fall back on.
    """

    fc: float = Field(
        ...,
        ge=0.0,
        description="Minimum absolute log2 fold change",
    )
    p: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Maximum p-value",
    )


class SignificanceThresholds(BaseModel):
    """Thresholds for gene-level and transcript-level significance."""

    gene: ThresholdPair
    transcript: ThresholdPair


class EnrichmentConfig(BaseModel):
    """Settings for per-biotype rank-based enrichment."""

    pval_cutoff: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Report only pathways with pval <= cutoff",
    )
    rank_column: str = Field(
        default="stat",
        description="Column of the transcript table used to rank transcripts",
    )
    excluded_biotypes: list[str] = Field(
        default_factory=lambda: ["lncRNA", "TEC", "artifact"],
        description="Biotypes left out of every partition",
    )
    min_size: int = Field(
        default=15,
        ge=1,
        description="Minimum gene-set size after intersection with the ranked list",
    )
    max_size: int = Field(
        default=500,
        ge=1,
        description="Maximum gene-set size after intersection with the ranked list",
    )
    permutations: int = Field(
        default=1000,
        ge=1,
        description="Number of permutations for the enrichment test",
    )
    seed: int = Field(
        default=42,
        description="Random seed for the enrichment test",
    )


class PipelineConfig(BaseModel):
    """Main pipeline configuration."""

    data_dir: Path = Field(
        ...,
        description="Directory holding pipeline inputs",
    )
    output_dir: Path = Field(
        ...,
        description="Directory for TSV/Parquet outputs",
    )
    duckdb_path: Path = Field(
        ...,
        description="Path to DuckDB database file",
    )
    reference: ReferenceConfig = Field(
        default_factory=ReferenceConfig,
        description="Reference annotation inputs",
    )
    thresholds: SignificanceThresholds = Field(
        ...,
        description="Significance thresholds for genes and transcripts",
    )
    enrichment: EnrichmentConfig = Field(
        default_factory=EnrichmentConfig,
        description="Enrichment settings",
    )

    @field_validator("data_dir", "output_dir")
    @classmethod
    def create_directory(cls, v: Path) -> Path:
        """Create directory if it doesn't exist."""
        v.mkdir(parents=True, exist_ok=True)
        return v

    def config_hash(self) -> str:
        """
        Compute SHA-256 hash of the configuration.

        Returns a deterministic hash based on all config values,
        used to tie outputs back to the parameters that produced them.
        """
        config_dict = self.model_dump(mode="python")
        config_json = json.dumps(
            config_dict,
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(config_json.encode()).hexdigest()
