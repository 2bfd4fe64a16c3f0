"""Read abundance and differential expression tables from external tools."""

from pathlib import Path

import polars as pl
import structlog

from isoform_pipeline.columns import require_columns, resolve_column_variants
from isoform_pipeline.errors import MissingColumnError
from isoform_pipeline.expression.models import (
    ABUNDANCE_COLUMN_VARIANTS,
    ABUNDANCE_REQUIRED_COLUMNS,
    DE_COLUMN_VARIANTS,
    DE_NUMERIC_COLUMNS,
    DE_REQUIRED_COLUMNS,
    ID_COLUMN_VARIANTS,
    LEVEL_ID_COLUMNS,
    NULL_VALUES,
)

logger = structlog.get_logger()


def _separator_for(path: Path) -> str:
    suffixes = [s.lower() for s in path.suffixes]
    return "," if ".csv" in suffixes else "\t"


def _scan_table(path: Path) -> pl.LazyFrame:
    return pl.scan_csv(
        path,
        separator=_separator_for(path),
        null_values=NULL_VALUES,
        has_header=True,
        infer_schema_length=10000,
    )


def read_de_table(
    path: Path | str,
    level: str,
    id_column: str | None = None,
) -> pl.DataFrame:
    """Read a differential expression result table.

    Standardizes column names across DESeq2 / sleuth / edgeR / limma output
    and casts statistics to Float64. Columns without a known variant are kept
    under their original names.

    Args:
        path: TSV or CSV (by suffix) with one row per gene or transcript
        level: "gene" or "transcript"; decides the identifier column name
        id_column: Explicit identifier column, overriding variant detection

    Returns:
        DataFrame with gene_id / transcript_id, log2FoldChange, pvalue and any
        of lfcSE, padj, qvalue, svalue, stat, baseMean found in the file

    Raises:
        ValueError: If level is unknown or p-values fall outside [0, 1]
        MissingColumnError: If the identifier, log2FoldChange or pvalue column is absent
    """
    if level not in LEVEL_ID_COLUMNS:
        raise ValueError(f"level must be one of {list(LEVEL_ID_COLUMNS)}, got {level!r}")

    path = Path(path)
    target_id = LEVEL_ID_COLUMNS[level]

    lf = _scan_table(path)
    actual_columns = lf.collect_schema().names()

    logger.info("de_table_read_start", path=str(path), level=level, column_count=len(actual_columns))

    id_variants = [id_column] if id_column else ID_COLUMN_VARIANTS[level]
    column_mapping = resolve_column_variants(actual_columns, {target_id: id_variants})
    if not column_mapping:
        raise MissingColumnError(str(path), [target_id], actual_columns)

    stat_mapping = resolve_column_variants(
        [c for c in actual_columns if c not in column_mapping],
        DE_COLUMN_VARIANTS,
    )
    column_mapping.update(stat_mapping)
    logger.info("de_column_mapping", mapping=column_mapping)

    lf = lf.rename(column_mapping)
    require_columns(lf, DE_REQUIRED_COLUMNS, str(path))

    present_numeric = [c for c in DE_NUMERIC_COLUMNS if c in column_mapping.values()]
    lf = lf.with_columns(
        [pl.col(target_id).cast(pl.Utf8)]
        + [pl.col(c).cast(pl.Float64, strict=False) for c in present_numeric]
    )

    df = lf.collect()

    out_of_range = df.filter((pl.col("pvalue") < 0.0) | (pl.col("pvalue") > 1.0)).height
    if out_of_range:
        raise ValueError(f"{out_of_range} p-values outside [0, 1] in {path}")

    logger.info(
        "de_table_read_complete",
        path=str(path),
        rows=df.height,
        null_pvalue=df.get_column("pvalue").null_count(),
        null_log2fc=df.get_column("log2FoldChange").null_count(),
    )

    return df


def read_abundance_table(path: Path | str) -> pl.DataFrame:
    """Read a transcript abundance table (salmon quant.sf or kallisto abundance.tsv).

    Args:
        path: Tab-separated abundance file

    Returns:
        DataFrame with transcript_id, tpm and, when present, length,
        effective_length and num_reads

    Raises:
        MissingColumnError: If no transcript identifier or TPM column is found
    """
    path = Path(path)
    lf = _scan_table(path)
    actual_columns = lf.collect_schema().names()

    column_mapping = resolve_column_variants(actual_columns, ABUNDANCE_COLUMN_VARIANTS)
    lf = lf.select([pl.col(old).alias(new) for old, new in column_mapping.items()])
    require_columns(lf, ABUNDANCE_REQUIRED_COLUMNS, str(path))

    numeric = [c for c in column_mapping.values() if c != "transcript_id"]
    df = lf.with_columns(
        [pl.col("transcript_id").cast(pl.Utf8)]
        + [pl.col(c).cast(pl.Float64, strict=False) for c in numeric]
    ).collect()

    logger.info("abundance_table_read", path=str(path), transcripts=df.height)

    return df
