"""Dual-format TSV+Parquet writer with provenance sidecar."""

from datetime import datetime, timezone
from pathlib import Path

import polars as pl
import yaml


def write_table_output(
    df: pl.DataFrame | pl.LazyFrame,
    output_dir: Path,
    filename_base: str,
    sort_by: list[str] | None = None,
) -> dict:
    """
    Write a result table to TSV and Parquet formats with provenance sidecar.

    Args:
        df: Polars DataFrame or LazyFrame to write
        output_dir: Directory to write output files (created if doesn't exist)
        filename_base: Base filename without extension
        sort_by: Columns to sort by before writing (ascending, NULLs last)

    Returns:
        Dictionary with output file paths:
        {
            "tsv": Path to TSV file,
            "parquet": Path to Parquet file,
            "provenance": Path to YAML provenance sidecar
        }

    Notes:
        - TSV uses tab separator with header; NULLs are written as "NA"
        - Parquet uses snappy compression
        - Provenance YAML includes generated_at, output_files,
          row_count, column_count and column_names
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    if isinstance(df, pl.LazyFrame):
        df = df.collect()

    if sort_by:
        df = df.sort(sort_by, nulls_last=True)

    tsv_path = output_dir / f"{filename_base}.tsv"
    parquet_path = output_dir / f"{filename_base}.parquet"
    provenance_path = output_dir / f"{filename_base}.provenance.yaml"

    df.write_csv(tsv_path, separator="\t", include_header=True, null_value="NA")
    df.write_parquet(parquet_path, compression="snappy", use_pyarrow=True)

    provenance = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "output_files": [tsv_path.name, parquet_path.name],
        "row_count": df.height,
        "column_count": len(df.columns),
        "column_names": df.columns,
    }
    if sort_by:
        provenance["sorted_by"] = list(sort_by)

    with open(provenance_path, "w") as f:
        yaml.dump(provenance, f, default_flow_style=False, sort_keys=False)

    return {
        "tsv": tsv_path,
        "parquet": parquet_path,
        "provenance": provenance_path,
    }
