"""Merge gene-level (DEG) and transcript-level (DET) results."""

import warnings

import polars as pl
import structlog
from pydantic import BaseModel

from isoform_pipeline.annotation.significance import mark_significant
from isoform_pipeline.columns import require_columns
from isoform_pipeline.errors import DuplicateIdentifierError, JoinMismatchWarning

logger = structlog.get_logger()

# Table name in DuckDB
MERGED_TABLE_NAME = "merged_deg_det"

ANCHORS = ("transcript", "gene")

GENE_KEYS = ("gene_name", "gene_id")

MERGED_COLUMNS = [
    "gene_name",
    "gene_id",
    "gene_log2FC",
    "gene_pvalue",
    "gene_significant",
    "transcript_id",
    "transcript_name",
    "transcript_log2FC",
    "transcript_pvalue",
    "transcript_significant",
    "transcript_type",
    "isoform_switch",
]


class MergedDEGDETRecord(BaseModel):
    """One (gene, transcript) row of the merged table.

    Gene fields are NULL when the transcript's gene has no DEG row
    (transcript-anchored merge); transcript fields are NULL when a gene has no
    DET row (gene-anchored merge).
    """

    gene_name: str | None = None
    gene_id: str | None = None
    gene_log2FC: float | None = None
    gene_pvalue: float | None = None
    gene_significant: bool | None = None
    transcript_id: str | None = None
    transcript_name: str | None = None
    transcript_log2FC: float | None = None
    transcript_pvalue: float | None = None
    transcript_significant: bool | None = None
    transcript_type: str | None = None
    isoform_switch: bool = False


def _other_key(on: str) -> str:
    return "gene_id" if on == "gene_name" else "gene_name"


def _duplicated(df: pl.DataFrame, column: str) -> list[str]:
    return (
        df.filter(pl.col(column).is_duplicated())
        .get_column(column)
        .unique(maintain_order=True)
        .to_list()
    )


def _gene_side(
    deg: pl.DataFrame, on: str, fc_threshold: float, p_threshold: float
) -> tuple[pl.DataFrame, list[str]]:
    """Flagged gene rows keyed by _key, plus the gene names too ambiguous to join."""
    flagged = mark_significant(
        deg,
        "log2FoldChange",
        "pvalue",
        fc_threshold=fc_threshold,
        p_threshold=p_threshold,
        flag_column="gene_significant",
    )

    unnamed = flagged.filter(pl.col(on).is_null()).height
    if unnamed:
        logger.warning("deg_rows_without_key", key=on, rows=unnamed)
    flagged = flagged.filter(pl.col(on).is_not_null())

    if "gene_id" in flagged.columns:
        duplicated_ids = _duplicated(flagged.filter(pl.col("gene_id").is_not_null()), "gene_id")
        if duplicated_ids:
            raise DuplicateIdentifierError("gene_id", duplicated_ids)

    # Distinct genes sharing a symbol (PAR_Y copies, reused names) match no transcript
    ambiguous = _duplicated(flagged, on)

    columns = [
        pl.col(on),
        pl.when(pl.col(on).is_in(ambiguous))
        .then(pl.lit(None, dtype=pl.Utf8))
        .otherwise(pl.col(on).cast(pl.Utf8))
        .alias("_key"),
        pl.col("log2FoldChange").alias("gene_log2FC"),
        pl.col("pvalue").alias("gene_pvalue"),
        pl.col("gene_significant"),
    ]
    other = _other_key(on)
    if other in flagged.columns:
        columns.append(pl.col(other).alias(f"_deg_{other}"))
    return flagged.select(columns), ambiguous


def _transcript_side(
    det: pl.DataFrame, on: str, fc_threshold: float, p_threshold: float
) -> pl.DataFrame:
    flagged = mark_significant(
        det,
        "log2FoldChange",
        "pvalue",
        fc_threshold=fc_threshold,
        p_threshold=p_threshold,
        flag_column="transcript_significant",
    )

    columns = [
        pl.col(on).alias("_det_key"),
        pl.col(on).cast(pl.Utf8).alias("_key"),
        pl.col("transcript_id"),
        pl.col("log2FoldChange").alias("transcript_log2FC"),
        pl.col("pvalue").alias("transcript_pvalue"),
        pl.col("transcript_significant"),
    ]
    for optional in ("transcript_name", "transcript_type"):
        if optional in flagged.columns:
            columns.append(pl.col(optional))
        else:
            columns.append(pl.lit(None, dtype=pl.Utf8).alias(optional))
    other = _other_key(on)
    if other in flagged.columns:
        columns.append(pl.col(other).alias(f"_det_{other}"))
    return flagged.select(columns)


def merge_deg_det(
    deg: pl.DataFrame,
    det: pl.DataFrame,
    fc_threshold: float,
    p_threshold: float,
    *,
    det_fc_threshold: float | None = None,
    det_p_threshold: float | None = None,
    anchor: str = "transcript",
    on: str = "gene_name",
) -> pl.DataFrame:
    """Merge DEG and DET tables into one (gene, transcript) table.

    Steps:
    1. Flag gene and transcript significance with the given thresholds
       (transcripts use det_* thresholds when given).
    2. Join transcript rows to gene rows on the gene key. A key naming
       several DEG rows (distinct genes sharing a symbol) joins nothing:
       its transcripts are treated as unmatched.
    3. Keep every row of the anchor side:
       - anchor="transcript" (default): every DET row is kept; transcripts
         whose gene has no DEG row get NULL gene fields.
       - anchor="gene": every DEG row is kept; genes without transcripts get
         NULL transcript fields and DET rows without a gene are dropped.
       Unmatched rows are counted, logged and reported as JoinMismatchWarning.
    4. Add isoform_switch = transcript significant AND gene not significant.

    Args:
        deg: Gene-level DE table with on, log2FoldChange, pvalue
        det: Transcript-level DE table with transcript_id, on, log2FoldChange,
            pvalue (annotate it first to get gene_name / transcript_type)
        fc_threshold: Minimum |log2FC| for gene (and, by default, transcript) significance
        p_threshold: Maximum p-value for gene (and, by default, transcript) significance
        det_fc_threshold: Transcript-level |log2FC| threshold override
        det_p_threshold: Transcript-level p-value threshold override
        anchor: "transcript" or "gene"
        on: Gene key shared by both tables (default: gene_name)

    Returns:
        DataFrame with MERGED_COLUMNS

    Raises:
        ValueError: If anchor is unknown
        MissingColumnError: If a required column is absent
        DuplicateIdentifierError: If the DEG table repeats a gene_id
    """
    if anchor not in ANCHORS:
        raise ValueError(f"anchor must be one of {ANCHORS}, got {anchor!r}")
    if on not in GENE_KEYS:
        raise ValueError(f"on must be one of {GENE_KEYS}, got {on!r}")

    require_columns(deg, [on, "log2FoldChange", "pvalue"], "DEG")
    require_columns(det, [on, "transcript_id", "log2FoldChange", "pvalue"], "DET")

    tx_fc = fc_threshold if det_fc_threshold is None else det_fc_threshold
    tx_p = p_threshold if det_p_threshold is None else det_p_threshold

    logger.info(
        "merge_start",
        anchor=anchor,
        on=on,
        genes=deg.height,
        transcripts=det.height,
        gene_thresholds=(fc_threshold, p_threshold),
        transcript_thresholds=(tx_fc, tx_p),
    )

    genes, ambiguous = _gene_side(deg, on, fc_threshold, p_threshold)
    transcripts = _transcript_side(det, on, tx_fc, tx_p)

    if ambiguous:
        logger.warning("merge_ambiguous_gene_keys", key=on, count=len(ambiguous), names=ambiguous[:10])
        warnings.warn(
            f"{len(ambiguous)} {on} value(s) name several DEG genes and are left "
            f"unmatched: {', '.join(ambiguous[:10])}",
            JoinMismatchWarning,
            stacklevel=2,
        )

    gene_keys = genes.get_column("_key").drop_nulls().unique().to_list()
    orphan_transcripts = transcripts.filter(
        pl.col("_key").is_null() | ~pl.col("_key").is_in(gene_keys)
    ).height

    if anchor == "transcript":
        merged = transcripts.join(genes, on="_key", how="left", maintain_order="left")
    else:
        merged = genes.join(transcripts, on="_key", how="left", maintain_order="left")
    merged = merged.with_columns(
        pl.coalesce([pl.col(on).cast(pl.Utf8), pl.col("_det_key").cast(pl.Utf8)]).alias(on)
    ).drop(["_key", "_det_key"])

    if orphan_transcripts:
        action = "kept with NULL gene fields" if anchor == "transcript" else "dropped"
        logger.warning(
            "merge_unmatched_transcripts",
            anchor=anchor,
            rows=orphan_transcripts,
            action=action,
        )
        warnings.warn(
            f"{orphan_transcripts}/{transcripts.height} transcripts have no gene row "
            f"on '{on}' ({action})",
            JoinMismatchWarning,
            stacklevel=2,
        )

    other = _other_key(on)
    sources = [c for c in (f"_deg_{other}", f"_det_{other}") if c in merged.columns]
    if sources:
        merged = merged.with_columns(
            pl.coalesce([pl.col(c) for c in sources]).alias(other)
        ).drop(sources)
    else:
        merged = merged.with_columns(pl.lit(None, dtype=pl.Utf8).alias(other))

    merged = merged.with_columns(
        (
            pl.col("transcript_significant").fill_null(False)
            & (pl.col("gene_significant") == False)  # noqa: E712
        )
        .fill_null(False)
        .alias("isoform_switch")
    )

    merged = merged.select(MERGED_COLUMNS)

    logger.info(
        "merge_complete",
        rows=merged.height,
        isoform_switches=int(merged.get_column("isoform_switch").sum()),
    )

    return merged


def isoform_switches(merged: pl.DataFrame, include_unmatched: bool = False) -> pl.DataFrame:
    """Rows where the transcript is significant but its gene is not.

    Args:
        merged: Table from merge_deg_det
        include_unmatched: Also return significant transcripts whose gene has
            no DEG row (gene_significant NULL)

    Returns:
        Filtered merged table
    """
    require_columns(merged, ["transcript_significant", "gene_significant"], "merged")

    gene_not_significant = pl.col("gene_significant") == False  # noqa: E712
    if include_unmatched:
        gene_not_significant = gene_not_significant | pl.col("gene_significant").is_null()

    return merged.filter(
        pl.col("transcript_significant").fill_null(False)
        & gene_not_significant.fill_null(False)
    )
