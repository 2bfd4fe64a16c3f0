"""Summarize transcript abundance to gene level."""

import polars as pl
import structlog

from isoform_pipeline.annotation.joiner import annotate
from isoform_pipeline.columns import require_columns

logger = structlog.get_logger()


def summarize_to_gene(
    abundance: pl.DataFrame,
    reference: pl.DataFrame,
) -> pl.DataFrame:
    """Sum transcript TPM (and read counts, if present) per gene.

    Transcripts without a reference entry cannot be assigned to a gene; they
    are reported by the annotation join and left out of the gene totals.

    Args:
        abundance: Table from read_abundance_table (transcript_id, tpm, ...)
        reference: Reference dictionary from build_reference_table

    Returns:
        DataFrame with gene_id, gene_name, tpm, num_reads (if present) and
        transcript_count, sorted by gene_id
    """
    require_columns(abundance, ["transcript_id", "tpm"], "abundance")

    annotated, report = annotate(abundance, reference, key="transcript_id")

    aggregations = [
        pl.col("tpm").sum().alias("tpm"),
        pl.len().alias("transcript_count"),
    ]
    if "num_reads" in annotated.columns:
        aggregations.append(pl.col("num_reads").sum().alias("num_reads"))

    genes = (
        annotated.filter(pl.col("gene_id").is_not_null())
        .group_by(["gene_id", "gene_name"])
        .agg(aggregations)
        .sort("gene_id")
    )

    logger.info(
        "gene_summary_complete",
        transcripts=abundance.height,
        unassigned_transcripts=report.unmatched_rows,
        genes=genes.height,
    )

    return genes
