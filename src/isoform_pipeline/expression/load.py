"""Load imported expression tables to DuckDB with provenance tracking."""

import polars as pl
import structlog

from isoform_pipeline.persistence import PipelineStore, ProvenanceTracker

logger = structlog.get_logger()


def load_to_duckdb(
    df: pl.DataFrame,
    table_name: str,
    store: PipelineStore,
    provenance: ProvenanceTracker,
    description: str = "",
) -> None:
    """Save an expression table to DuckDB with provenance.

    Creates or replaces the table (idempotent) and records a provenance step
    with row counts and missing-statistic counts.

    Args:
        df: Expression table (DE result or abundance)
        table_name: Target DuckDB table
        store: PipelineStore instance for DuckDB persistence
        provenance: ProvenanceTracker instance for metadata recording
        description: Optional description for checkpoint metadata
    """
    logger.info("expression_load_start", table=table_name, row_count=len(df))

    details = {"row_count": len(df)}
    for column in ("pvalue", "log2FoldChange", "tpm"):
        if column in df.columns:
            details[f"null_{column}"] = df.get_column(column).null_count()

    store.save_dataframe(
        df=df,
        table_name=table_name,
        description=description or f"Expression table {table_name}",
    )

    provenance.record_step(f"load_{table_name}", details)

    logger.info("expression_load_complete", table=table_name, **details)
