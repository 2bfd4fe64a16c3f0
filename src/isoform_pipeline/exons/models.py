"""Data models for exon annotation rows."""

import polars as pl
from pydantic import BaseModel

# Table name in DuckDB
EXON_TABLE_NAME = "exon_annotation"

GFF3_COLUMNS = [
    "seqid",
    "source",
    "type",
    "start",
    "end",
    "score",
    "strand",
    "phase",
    "attributes",
]

# Feature types returned by default (GENCODE and Ensembl spellings)
DEFAULT_FEATURE_TYPES = (
    "exon",
    "CDS",
    "five_prime_UTR",
    "three_prime_UTR",
    "UTR",
)

EXON_SCHEMA = {
    "transcript_id": pl.Utf8,
    "gene_name": pl.Utf8,
    "seqid": pl.Utf8,
    "start": pl.Int64,
    "end": pl.Int64,
    "strand": pl.Utf8,
    "feature_type": pl.Utf8,
}


class ExonAnnotationRow(BaseModel):
    """One exon/CDS/UTR feature of a transcript, for rendering.

    Attributes:
        transcript_id: Transcript the feature belongs to
        gene_name: Gene symbol of the transcript
        seqid: Chromosome / contig
        start: 1-based start coordinate
        end: 1-based inclusive end coordinate
        strand: "+", "-" or "."
        feature_type: GFF3 type (exon, CDS, five_prime_UTR, ...)
    """

    transcript_id: str
    gene_name: str
    seqid: str
    start: int
    end: int
    strand: str
    feature_type: str
