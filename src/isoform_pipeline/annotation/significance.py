"""Mark genes/transcripts as significant by fold change and p-value."""

from dataclasses import dataclass

import polars as pl
import structlog

from isoform_pipeline.columns import require_columns

logger = structlog.get_logger()


@dataclass
class SignificanceReport:
    """Counts behind a significance call.

    Attributes:
        total: Rows in the table
        significant: Rows passing both thresholds
        up: Significant rows with positive fold change
        down: Significant rows with negative fold change
        missing: Rows with NULL/NaN fold change or p-value (never significant)
    """
    total: int
    significant: int
    up: int
    down: int
    missing: int


def _check_thresholds(fc_threshold: float, p_threshold: float) -> None:
    if fc_threshold is None or p_threshold is None:
        raise ValueError("fc_threshold and p_threshold must both be given")
    if fc_threshold < 0:
        raise ValueError(f"fc_threshold must be >= 0, got {fc_threshold}")
    if not 0.0 <= p_threshold <= 1.0:
        raise ValueError(f"p_threshold must be in [0, 1], got {p_threshold}")


def _numeric(column: str) -> pl.Expr:
    return pl.col(column).cast(pl.Float64)


def _missing_expr(fc_column: str, p_column: str) -> pl.Expr:
    return (
        _numeric(fc_column).is_null()
        | _numeric(fc_column).is_nan()
        | _numeric(p_column).is_null()
        | _numeric(p_column).is_nan()
    )


def significance_expr(
    fc_column: str,
    p_column: str,
    *,
    fc_threshold: float,
    p_threshold: float,
) -> pl.Expr:
    """Boolean expression: |fc| >= fc_threshold and p <= p_threshold, NULL -> False."""
    _check_thresholds(fc_threshold, p_threshold)
    passes = (_numeric(fc_column).abs() >= fc_threshold) & (_numeric(p_column) <= p_threshold)
    return (
        pl.when(_missing_expr(fc_column, p_column))
        .then(pl.lit(False))
        .otherwise(passes)
        .fill_null(False)
    )


def mark_significant(
    table: pl.DataFrame,
    fc_column: str,
    p_column: str,
    *,
    fc_threshold: float,
    p_threshold: float,
    flag_column: str = "significant",
) -> pl.DataFrame:
    """Add a boolean significance column.

    A row is significant when |fc| >= fc_threshold AND p <= p_threshold.
    Rows with a missing fold change or p-value are marked not significant and
    counted in a logged diagnostic; no row is removed.

    Thresholds have no defaults: callers state them explicitly.

    Args:
        table: Table with fold-change and p-value columns
        fc_column: Log2 fold-change column name
        p_column: P-value column name
        fc_threshold: Minimum absolute log2 fold change
        p_threshold: Maximum p-value
        flag_column: Name of the added boolean column

    Returns:
        New DataFrame with flag_column appended (replaced if present)

    Raises:
        ValueError: On negative fc_threshold or p_threshold outside [0, 1]
        MissingColumnError: If fc_column or p_column is absent
    """
    require_columns(table, [fc_column, p_column], "significance input")

    flagged = table.with_columns(
        significance_expr(
            fc_column,
            p_column,
            fc_threshold=fc_threshold,
            p_threshold=p_threshold,
        ).alias(flag_column)
    )

    missing = table.select(_missing_expr(fc_column, p_column).fill_null(True).sum()).item()
    significant = int(flagged.get_column(flag_column).sum())

    if missing:
        logger.warning(
            "significance_missing_values",
            flag_column=flag_column,
            missing=missing,
            total=table.height,
        )

    logger.info(
        "significance_marked",
        flag_column=flag_column,
        fc_threshold=fc_threshold,
        p_threshold=p_threshold,
        significant=significant,
        total=table.height,
    )

    return flagged


def summarize_significance(
    table: pl.DataFrame,
    fc_column: str,
    p_column: str,
    *,
    fc_threshold: float,
    p_threshold: float,
) -> SignificanceReport:
    """Count significant, up/down-regulated and missing rows."""
    require_columns(table, [fc_column, p_column], "significance input")

    flag = significance_expr(
        fc_column, p_column, fc_threshold=fc_threshold, p_threshold=p_threshold
    )
    counts = table.select(
        flag.sum().alias("significant"),
        (flag & (pl.col(fc_column) > 0)).fill_null(False).sum().alias("up"),
        (flag & (pl.col(fc_column) < 0)).fill_null(False).sum().alias("down"),
        _missing_expr(fc_column, p_column).fill_null(True).sum().alias("missing"),
    ).to_dicts()[0]

    return SignificanceReport(
        total=table.height,
        significant=int(counts["significant"]),
        up=int(counts["up"]),
        down=int(counts["down"]),
        missing=int(counts["missing"]),
    )


def filter_significant(
    table: pl.DataFrame,
    fc_column: str,
    p_column: str,
    *,
    fc_threshold: float,
    p_threshold: float,
) -> pl.DataFrame:
    """Return only the significant rows of table."""
    require_columns(table, [fc_column, p_column], "significance input")
    return table.filter(
        significance_expr(
            fc_column, p_column, fc_threshold=fc_threshold, p_threshold=p_threshold
        )
    )
