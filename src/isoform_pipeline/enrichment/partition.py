"""Partition transcripts into biotype classes and build ranked gene lists."""

from collections.abc import Iterable

import polars as pl
import structlog

from isoform_pipeline.columns import require_columns
from isoform_pipeline.enrichment.models import (
    DEFAULT_EXCLUDED_BIOTYPES,
    PROTEIN_CODING,
    RANK_SCHEMA,
    UNPRODUCTIVE,
)

logger = structlog.get_logger()


def partition_by_biotype(
    transcript_table: pl.DataFrame,
    excluded_biotypes: Iterable[str] = DEFAULT_EXCLUDED_BIOTYPES,
    biotype_column: str = "transcript_type",
) -> dict[str, pl.DataFrame]:
    """Split transcripts into enrichment partitions by biotype.

    Partitions, in order:
    - "protein_coding": protein-coding transcripts
    - "unproductive": every non-coding, non-excluded transcript
    - one partition per individual non-coding biotype (alphabetical)

    protein_coding plus the individual biotype partitions cover each
    non-excluded transcript exactly once; "unproductive" is their non-coding
    union. Transcripts with a NULL biotype cannot be classified and are left
    out (logged).

    Args:
        transcript_table: Annotated transcript-level table
        excluded_biotypes: Biotypes left out of every partition
        biotype_column: Column holding the biotype

    Returns:
        Dict of partition label -> rows of transcript_table
    """
    require_columns(transcript_table, [biotype_column], "transcript table")
    excluded = sorted(set(excluded_biotypes))

    unclassified = transcript_table.get_column(biotype_column).null_count()
    if unclassified:
        logger.warning("partition_null_biotype", rows=unclassified)

    eligible = transcript_table.filter(pl.col(biotype_column).is_not_null())
    if excluded:
        eligible = eligible.filter(~pl.col(biotype_column).is_in(excluded))
    excluded_rows = transcript_table.height - unclassified - eligible.height

    coding = eligible.filter(pl.col(biotype_column) == PROTEIN_CODING)
    noncoding = eligible.filter(pl.col(biotype_column) != PROTEIN_CODING)

    partitions = {
        PROTEIN_CODING: coding,
        UNPRODUCTIVE: noncoding,
    }
    for biotype in sorted(noncoding.get_column(biotype_column).unique().to_list()):
        partitions[biotype] = noncoding.filter(pl.col(biotype_column) == biotype)

    logger.info(
        "partition_complete",
        excluded_biotypes=excluded,
        excluded_rows=excluded_rows,
        sizes={label: df.height for label, df in partitions.items()},
    )

    return partitions


def build_ranked_list(
    partition: pl.DataFrame,
    tx_to_gene: pl.DataFrame,
    rank_column: str = "stat",
) -> pl.DataFrame:
    """Collapse a transcript partition to a ranked gene list.

    Each transcript's statistic is assigned to its gene; a gene with several
    transcripts keeps the one with the largest |statistic|. Transcripts with
    no gene or a NULL/NaN statistic are left out.

    Args:
        partition: Transcript rows with transcript_id and rank_column
        tx_to_gene: Two-column map: transcript_id and the gene identifier
            used by the gene sets (see reference.tx2gene)
        rank_column: Statistic to rank by

    Returns:
        DataFrame with gene and score, sorted by score descending
    """
    require_columns(partition, ["transcript_id", rank_column], "partition")
    require_columns(tx_to_gene, ["transcript_id"], "tx_to_gene")
    gene_columns = [c for c in tx_to_gene.columns if c != "transcript_id"]
    if len(gene_columns) != 1:
        raise ValueError(
            f"tx_to_gene must have transcript_id and exactly one gene column, got {tx_to_gene.columns}"
        )

    ranked = (
        partition.select(
            pl.col("transcript_id"),
            pl.col(rank_column).cast(pl.Float64).alias("score"),
        )
        .join(
            tx_to_gene.select(
                pl.col("transcript_id"),
                pl.col(gene_columns[0]).cast(pl.Utf8).alias("gene"),
            ),
            on="transcript_id",
            how="inner",
        )
        .filter(
            pl.col("gene").is_not_null()
            & pl.col("score").is_not_null()
            & pl.col("score").is_not_nan()
        )
        .sort([pl.col("score").abs(), pl.col("transcript_id")], descending=[True, False])
        .unique(subset=["gene"], keep="first", maintain_order=True)
        .sort(["score", "gene"], descending=[True, False])
        .select(list(RANK_SCHEMA))
    )

    return ranked
