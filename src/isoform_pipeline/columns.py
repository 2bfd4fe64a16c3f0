"""Named-column contracts shared by every table operation.

Tables are addressed by column name only; positional selection is never
used.
"""

import polars as pl
import structlog

from isoform_pipeline.errors import MissingColumnError

logger = structlog.get_logger()


def require_columns(df: pl.DataFrame | pl.LazyFrame, columns: list[str], table: str) -> None:
    """Raise MissingColumnError if any of columns is absent from df.

    Args:
        df: Table to check
        columns: Required column names
        table: Table label used in the error message
    """
    available = df.collect_schema().names() if isinstance(df, pl.LazyFrame) else df.columns
    missing = [col for col in columns if col not in available]
    if missing:
        logger.error("missing_columns", table=table, missing=missing)
        raise MissingColumnError(table, missing, available)


def resolve_column_variants(
    actual_columns: list[str],
    variants: dict[str, list[str]],
) -> dict[str, str]:
    """Map actual column names to standardized names.

    For each standardized name the first variant present in actual_columns
    wins. A source column is used for at most one standardized name.

    Args:
        actual_columns: Column names found in the input file
        variants: Standardized name -> accepted source names, in priority order

    Returns:
        Dict of source column -> standardized name
    """
    mapping: dict[str, str] = {}
    for our_name, names in variants.items():
        for variant in names:
            if variant in actual_columns and variant not in mapping:
                mapping[variant] = our_name
                break
    return mapping
