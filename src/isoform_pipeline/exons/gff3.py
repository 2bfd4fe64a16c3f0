"""Extract per-exon rows for chosen genes from a GFF3 annotation."""

import gzip
import shutil
import tempfile
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

import polars as pl
import structlog

from isoform_pipeline.exons.models import (
    DEFAULT_FEATURE_TYPES,
    EXON_SCHEMA,
    GFF3_COLUMNS,
)

logger = structlog.get_logger()

# Ensembl GFF3 prefixes IDs with the feature class, e.g. "transcript:ENST..."
ID_PREFIX = r"^(gene|transcript):"


def _attribute(name: str) -> pl.Expr:
    return pl.col("attributes").str.extract(rf"(?:^|;){name}=([^;]*)", 1)


@contextmanager
def _uncompressed(path: Path) -> Iterator[Path]:
    """Yield a plain-text path for path, gunzipping to a temporary file if needed."""
    if path.suffix != ".gz":
        yield path
        return

    with tempfile.TemporaryDirectory(prefix="gff3_") as tmp_dir:
        plain_path = Path(tmp_dir) / path.stem
        logger.info("gff3_decompress_start", path=str(path))
        with gzip.open(path, "rb") as f_in:
            with open(plain_path, "wb") as f_out:
                shutil.copyfileobj(f_in, f_out)
        yield plain_path


def scan_gff3(path: Path | str) -> pl.LazyFrame:
    """Lazily scan an uncompressed GFF3 file into the standard 9 columns.

    ID, Parent, gene_name, Name and transcript_id attributes are extracted
    into their own columns (NULL when absent). Filters applied to the result
    are pushed into the scan, so only matching rows are materialized.
    """
    return pl.scan_csv(
        path,
        separator="\t",
        has_header=False,
        new_columns=GFF3_COLUMNS,
        comment_prefix="#",
        quote_char=None,
        infer_schema_length=0,
    ).with_columns(
        pl.col("start").cast(pl.Int64),
        pl.col("end").cast(pl.Int64),
        _attribute("ID").alias("id"),
        _attribute("Parent").alias("parent"),
        _attribute("gene_name").alias("gene_name_attr"),
        _attribute("Name").alias("name_attr"),
        _attribute("transcript_id").alias("transcript_id_attr"),
    )


def read_gff3(path: Path | str) -> pl.DataFrame:
    """Read a whole GFF3 file (plain or gzip-compressed).

    Args:
        path: GFF3 annotation file

    Returns:
        DataFrame with GFF3_COLUMNS plus id, parent, gene_name_attr,
        name_attr, transcript_id_attr; start/end as Int64
    """
    path = Path(path)
    with _uncompressed(path) as plain_path:
        df = scan_gff3(plain_path).collect()

    logger.info("gff3_read_complete", path=str(path), features=df.height)
    return df


def prepare_exon_annotation(
    gff3_path: Path | str,
    gene_names: Iterable[str],
    feature_types: Iterable[str] = DEFAULT_FEATURE_TYPES,
) -> pl.DataFrame:
    """Exon/CDS/UTR rows for the transcripts of the given genes.

    Each feature is linked to its transcript through Parent (a feature with
    several parents yields one row per parent) and each transcript to its
    gene name, taken from the gene_name attribute of the feature or
    transcript, or from the parent gene's gene_name / Name attribute.

    The annotation is scanned twice: once for gene and transcript nodes, then
    for the features of the requested transcripts only. A multi-gigabyte
    GFF3 is never held in memory whole.

    Genes missing from the annotation are logged as warnings; they never
    abort the batch.

    Args:
        gff3_path: GFF3 annotation (plain or gzip-compressed)
        gene_names: Gene symbols to extract
        feature_types: GFF3 feature types to keep

    Returns:
        DataFrame with EXON_SCHEMA columns sorted by transcript_id, start, end
        (empty when no requested gene is found)
    """
    gff3_path = Path(gff3_path)
    requested = list(dict.fromkeys(gene_names))
    requested_names = pl.Series(requested, dtype=pl.Utf8)
    feature_types = list(feature_types)

    logger.info("exon_annotation_start", path=str(gff3_path), genes=len(requested))

    with _uncompressed(gff3_path) as plain_path:
        gff = scan_gff3(plain_path)

        nodes = (
            gff.filter(pl.col("id").is_not_null() & ~pl.col("type").is_in(feature_types))
            .select("id", "parent", "gene_name_attr", "name_attr", "transcript_id_attr")
            .unique(subset=["id"], keep="first", maintain_order=True)
            .collect()
        )
        gene_names_by_node = nodes.select(
            pl.col("id").alias("gene_node"),
            pl.coalesce([pl.col("gene_name_attr"), pl.col("name_attr")]).alias("node_gene_name"),
        )
        transcripts = (
            nodes.filter(pl.col("parent").is_not_null())
            .select(
                pl.col("id").alias("tx_node"),
                pl.col("parent").alias("gene_node"),
                pl.col("gene_name_attr").alias("tx_gene_name"),
                pl.col("transcript_id_attr").alias("tx_transcript_id"),
            )
            .join(gene_names_by_node, on="gene_node", how="left")
            .with_columns(
                pl.coalesce([pl.col("tx_gene_name"), pl.col("node_gene_name")]).alias("tx_gene_name")
            )
            .drop("gene_node", "node_gene_name")
        )
        wanted = transcripts.filter(pl.col("tx_gene_name").is_in(requested_names)).get_column("tx_node")

        features = (
            gff.filter(pl.col("type").is_in(feature_types) & pl.col("parent").is_not_null())
            .select("seqid", "type", "start", "end", "strand", "parent", "gene_name_attr", "transcript_id_attr")
            .with_columns(pl.col("parent").str.split(","))
            .explode("parent")
            .rename({"parent": "tx_node"})
            .filter(pl.col("tx_node").is_in(wanted) | pl.col("gene_name_attr").is_in(requested_names))
            .collect()
        )

    features = features.join(transcripts, on="tx_node", how="left").with_columns(
        pl.coalesce([pl.col("gene_name_attr"), pl.col("tx_gene_name")]).alias("gene_name"),
        pl.coalesce(
            [
                pl.col("tx_transcript_id"),
                pl.col("transcript_id_attr"),
                pl.col("tx_node").str.replace(ID_PREFIX, ""),
            ]
        ).alias("transcript_id"),
    )

    result = (
        features.filter(pl.col("gene_name").is_in(requested_names))
        .select(
            pl.col("transcript_id"),
            pl.col("gene_name"),
            pl.col("seqid"),
            pl.col("start"),
            pl.col("end"),
            pl.col("strand"),
            pl.col("type").alias("feature_type"),
        )
        .cast(EXON_SCHEMA)
        .sort(["transcript_id", "start", "end"])
    )

    found = set(result.get_column("gene_name").unique().to_list())
    missing = [name for name in requested if name not in found]
    if missing:
        logger.warning(
            "exon_genes_not_found",
            missing=missing,
            requested=len(requested),
            path=str(gff3_path),
        )

    logger.info(
        "exon_annotation_complete",
        genes=len(found),
        transcripts=result.get_column("transcript_id").n_unique(),
        features=result.height,
    )

    return result
