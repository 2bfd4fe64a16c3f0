"""Data models for the transcript reference dictionary."""

import polars as pl
from pydantic import BaseModel

# Table name in DuckDB
REFERENCE_TABLE_NAME = "reference_transcripts"

REFERENCE_SCHEMA = {
    "transcript_id": pl.Utf8,
    "gene_id": pl.Utf8,
    "transcript_name": pl.Utf8,
    "gene_name": pl.Utf8,
    "transcript_type": pl.Utf8,
    "transcript_length": pl.Int64,
}

# GENCODE transcript FASTA header layout:
# ENST|ENSG|OTTHUMG|OTTHUMT|transcript_name|gene_name|length|biotype|
GENCODE_FIELDS = {
    "transcript_id": 0,
    "gene_id": 1,
    "transcript_name": 4,
    "gene_name": 5,
    "transcript_length": 6,
    "transcript_type": 7,
}
GENCODE_MIN_FIELDS = 8

# pc_transcripts.fa replaces the biotype field with CDS/UTR coordinate ranges
GENCODE_REGION_PREFIXES = ("UTR5:", "CDS:", "UTR3:")

# Ensembl cDNA/ncRNA headers: "ENST... cdna chromosome:... gene:ENSG... transcript_biotype:..."
ENSEMBL_GENE_KEY = "gene"
ENSEMBL_BIOTYPE_KEY = "transcript_biotype"
ENSEMBL_SYMBOL_KEY = "gene_symbol"


class TranscriptRecord(BaseModel):
    """One transcript of the reference dictionary.

    Attributes:
        transcript_id: Ensembl transcript ID (unique within the dictionary)
        gene_id: Ensembl gene ID; groups one-to-many transcripts
        transcript_name: Transcript name, e.g. "Map4-201" (NULL for Ensembl headers)
        gene_name: Gene symbol (NULL when the header carries none)
        transcript_type: Transcript biotype, e.g. "retained_intron"
        transcript_length: Transcript length in nucleotides
    """

    transcript_id: str
    gene_id: str
    transcript_name: str | None = None
    gene_name: str | None = None
    transcript_type: str
    transcript_length: int
