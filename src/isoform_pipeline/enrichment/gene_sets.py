"""Read pathway -> gene list files."""

from pathlib import Path

import polars as pl
import structlog

from isoform_pipeline.columns import require_columns

logger = structlog.get_logger()

GENE_SET_FORMATS = ("gmt", "long")


def _read_gmt(path: Path) -> dict[str, list[str]]:
    gene_sets: dict[str, list[str]] = {}
    with open(path, "r") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.rstrip("\n\r")
            if not line.strip() or line.startswith("#"):
                continue
            fields = line.split("\t")
            if len(fields) < 3:
                raise ValueError(
                    f"GMT line {line_number} of {path} needs name, description and genes"
                )
            # Repeated set names are merged
            members = gene_sets.setdefault(fields[0], [])
            for gene in fields[2:]:
                if gene and gene not in members:
                    members.append(gene)
    return gene_sets


def _read_long(path: Path) -> dict[str, list[str]]:
    df = pl.read_csv(path, separator="\t", has_header=True, infer_schema_length=0)
    require_columns(df, ["pathway", "gene"], str(path))
    grouped = (
        df.drop_nulls(["pathway", "gene"])
        .unique(subset=["pathway", "gene"], maintain_order=True)
        .group_by("pathway", maintain_order=True)
        .agg(pl.col("gene"))
    )
    return {row["pathway"]: row["gene"] for row in grouped.to_dicts()}


def read_gene_sets(path: Path | str, fmt: str | None = None) -> dict[str, list[str]]:
    """Read gene sets from a GMT or two-column (pathway, gene) file.

    Args:
        path: Gene-set file
        fmt: "gmt" or "long"; inferred from the suffix (.gmt -> gmt) when None

    Returns:
        Dict of pathway name -> unique genes (file order preserved)
    """
    path = Path(path)
    if fmt is None:
        fmt = "gmt" if path.suffix.lower() == ".gmt" else "long"
    if fmt not in GENE_SET_FORMATS:
        raise ValueError(f"fmt must be one of {GENE_SET_FORMATS}, got {fmt!r}")

    gene_sets = _read_gmt(path) if fmt == "gmt" else _read_long(path)

    logger.info(
        "gene_sets_loaded",
        path=str(path),
        format=fmt,
        pathways=len(gene_sets),
        genes=len({g for genes in gene_sets.values() for g in genes}),
    )

    return gene_sets
