"""Annotate expression tables with names and biotypes from the reference."""

import warnings
from dataclasses import dataclass, field

import polars as pl
import structlog

from isoform_pipeline.columns import require_columns
from isoform_pipeline.errors import JoinMismatchWarning

logger = structlog.get_logger()

# Columns appended for each join key
ANNOTATION_COLUMNS = {
    "gene_id": ["gene_name"],
    "transcript_id": ["gene_id", "gene_name", "transcript_name", "transcript_type"],
}


@dataclass
class JoinReport:
    """Summary of an annotation join.

    Attributes:
        key: Join key column
        total_rows: Rows in the input table
        matched_rows: Rows whose key was found in the reference
        unmatched_ids: Keys without a reference entry (annotation left NULL)
    """
    key: str
    total_rows: int
    matched_rows: int
    unmatched_ids: list[str] = field(default_factory=list)

    @property
    def unmatched_rows(self) -> int:
        return self.total_rows - self.matched_rows


def _annotation_lookup(reference: pl.DataFrame, key: str) -> pl.DataFrame:
    columns = [key] + ANNOTATION_COLUMNS[key]
    lookup = reference.select(columns)
    if key == "gene_id":
        # Gene-level lookup: one row per gene
        lookup = lookup.unique(subset=[key], keep="first", maintain_order=True)
    return lookup


def annotate(
    table: pl.DataFrame,
    reference: pl.DataFrame,
    key: str,
) -> tuple[pl.DataFrame, JoinReport]:
    """Append reference annotation to a table keyed by gene_id or transcript_id.

    Left join on exact key match: every input row is kept, in input order.
    Annotation columns already present in the table are replaced, so
    annotating an annotated table again gives the same result.

    Args:
        table: Expression, DE or TPM table containing the key column
        reference: Reference dictionary from build_reference_table
        key: "gene_id" (appends gene_name) or "transcript_id" (appends
            gene_id, gene_name, transcript_name, transcript_type)

    Returns:
        Tuple of (annotated table, join report). Unmatched keys keep NULL
        annotation fields and are counted in the report; a
        JoinMismatchWarning is emitted when any key is unmatched.

    Raises:
        ValueError: If key is not a supported join key
        MissingColumnError: If the key column is absent from table or reference
    """
    if key not in ANNOTATION_COLUMNS:
        raise ValueError(f"key must be one of {list(ANNOTATION_COLUMNS)}, got {key!r}")

    require_columns(table, [key], "expression table")
    require_columns(reference, [key] + ANNOTATION_COLUMNS[key], "reference")

    lookup = _annotation_lookup(reference, key)
    stale = [c for c in ANNOTATION_COLUMNS[key] if c in table.columns]
    base = table.drop(stale) if stale else table

    annotated = base.join(
        lookup.with_columns(pl.lit(True).alias("_matched")),
        on=key,
        how="left",
        maintain_order="left",
    )

    matched = annotated.get_column("_matched").fill_null(False)
    unmatched_ids = (
        annotated.filter(~matched)
        .get_column(key)
        .unique(maintain_order=True)
        .to_list()
    )
    annotated = annotated.drop("_matched")

    report = JoinReport(
        key=key,
        total_rows=table.height,
        matched_rows=int(matched.sum()),
        unmatched_ids=unmatched_ids,
    )

    if report.unmatched_rows:
        logger.warning(
            "join_mismatch",
            key=key,
            unmatched_rows=report.unmatched_rows,
            total_rows=report.total_rows,
            examples=unmatched_ids[:5],
        )
        warnings.warn(
            f"{report.unmatched_rows}/{report.total_rows} rows have no reference entry "
            f"for {key} (examples: {unmatched_ids[:5]})",
            JoinMismatchWarning,
            stacklevel=2,
        )
    else:
        logger.info("join_complete", key=key, rows=report.total_rows)

    return annotated, report
