"""Data models for per-biotype gene-set enrichment."""

import polars as pl
from pydantic import BaseModel

# Table names in DuckDB
ENRICHMENT_TABLE_NAME = "enrichment_results"
ENRICHMENT_RAW_TABLE_NAME = "enrichment_raw"

PROTEIN_CODING = "protein_coding"
UNPRODUCTIVE = "unproductive"

# Biotypes kept out of every partition unless the caller overrides them
DEFAULT_EXCLUDED_BIOTYPES = frozenset({"lncRNA", "TEC", "artifact"})

ENRICHMENT_SCHEMA = {
    "pathway": pl.Utf8,
    "NES": pl.Float64,
    "pval": pl.Float64,
    "padj": pl.Float64,
    "size": pl.Int64,
    "experiment": pl.Utf8,
}

RANK_SCHEMA = {
    "gene": pl.Utf8,
    "score": pl.Float64,
}


class EnrichmentRecord(BaseModel):
    """Enrichment of one pathway in one biotype partition.

    Attributes:
        pathway: Gene-set name
        NES: Normalized enrichment score
        pval: Nominal p-value
        padj: Adjusted p-value (FDR)
        size: Gene-set size after intersection with the ranked list
        experiment: Partition label: "protein_coding", "unproductive" or an
            individual biotype such as "retained_intron"
    """

    pathway: str
    NES: float | None = None
    pval: float | None = None
    padj: float | None = None
    size: int
    experiment: str
