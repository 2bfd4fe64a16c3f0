"""Run rank-based gene-set enrichment per biotype partition."""

import warnings
from collections.abc import Callable, Iterable

import polars as pl
import structlog

from isoform_pipeline.enrichment.models import (
    DEFAULT_EXCLUDED_BIOTYPES,
    ENRICHMENT_SCHEMA,
)
from isoform_pipeline.enrichment.partition import build_ranked_list, partition_by_biotype
from isoform_pipeline.errors import EmptyPartitionNotice

logger = structlog.get_logger()

# test(ranks, gene_sets, *, min_size, max_size, permutations, seed) -> DataFrame
# with pathway, NES, pval, padj
EnrichmentTest = Callable[..., pl.DataFrame]

# gseapy res2d column -> our column
GSEAPY_COLUMNS = {
    "Term": "pathway",
    "NES": "NES",
    "NOM p-val": "pval",
    "FDR q-val": "padj",
}


def gseapy_prerank(
    ranks: pl.DataFrame,
    gene_sets: dict[str, list[str]],
    *,
    min_size: int,
    max_size: int,
    permutations: int,
    seed: int,
) -> pl.DataFrame:
    """Pre-ranked GSEA via gseapy.prerank.

    Args:
        ranks: Ranked list with gene and score columns
        gene_sets: Pathway -> genes
        min_size: Minimum overlap of a gene set with the ranked list
        max_size: Maximum overlap of a gene set with the ranked list
        permutations: Number of permutations
        seed: Random seed

    Returns:
        DataFrame with pathway, NES, pval, padj
    """
    import gseapy

    rnk = ranks.to_pandas().set_index("gene")["score"]

    result = gseapy.prerank(
        rnk=rnk,
        gene_sets=gene_sets,
        min_size=min_size,
        max_size=max_size,
        permutation_num=permutations,
        seed=seed,
        threads=1,
        outdir=None,
        no_plot=True,
        verbose=False,
    )

    res2d = result.res2d[list(GSEAPY_COLUMNS)].rename(columns=GSEAPY_COLUMNS)
    return pl.from_pandas(res2d.astype({"pathway": str})).with_columns(
        pl.col("NES").cast(pl.Float64, strict=False),
        pl.col("pval").cast(pl.Float64, strict=False),
        pl.col("padj").cast(pl.Float64, strict=False),
    )


def _testable_gene_sets(
    gene_sets: dict[str, list[str]],
    genes: set[str],
    min_size: int,
    max_size: int,
) -> dict[str, int]:
    sizes = {}
    for pathway, members in gene_sets.items():
        size = len(set(members) & genes)
        if min_size <= size <= max_size:
            sizes[pathway] = size
    return sizes


def _empty_results() -> pl.DataFrame:
    return pl.DataFrame(schema=ENRICHMENT_SCHEMA)


def _notice_empty(label: str, reason: str) -> None:
    logger.info("enrichment_partition_empty", experiment=label, reason=reason)
    warnings.warn(
        f"Partition '{label}' produced no enrichment results: {reason}",
        EmptyPartitionNotice,
        stacklevel=3,
    )


def run_enrichment_partitions(
    transcript_table: pl.DataFrame,
    gene_sets: dict[str, list[str]],
    tx_to_gene: pl.DataFrame,
    *,
    rank_column: str = "stat",
    excluded_biotypes: Iterable[str] = DEFAULT_EXCLUDED_BIOTYPES,
    biotype_column: str = "transcript_type",
    min_size: int = 15,
    max_size: int = 500,
    permutations: int = 1000,
    seed: int = 42,
    test: EnrichmentTest | None = None,
) -> pl.DataFrame:
    """Run the enrichment test on every biotype partition, unfiltered.

    Partitions with no rankable genes, or no gene set within the size
    bounds, emit EmptyPartitionNotice and contribute no rows.

    Args:
        transcript_table: Annotated transcript-level DE table
        gene_sets: Pathway -> genes
        tx_to_gene: transcript_id -> gene map matching the gene-set identifiers
        rank_column: Statistic used to rank transcripts
        excluded_biotypes: Biotypes left out of every partition
        biotype_column: Column holding the biotype
        min_size: Minimum gene-set overlap with a partition's ranked list
        max_size: Maximum gene-set overlap with a partition's ranked list
        permutations: Permutations for the enrichment test
        seed: Random seed for the enrichment test
        test: Enrichment test callable (default: gseapy_prerank)

    Returns:
        Raw results with pathway, NES, pval, padj, size, experiment
    """
    test = test or gseapy_prerank
    partitions = partition_by_biotype(
        transcript_table,
        excluded_biotypes=excluded_biotypes,
        biotype_column=biotype_column,
    )

    results = []
    for label, partition in partitions.items():
        ranks = build_ranked_list(partition, tx_to_gene, rank_column=rank_column)
        if ranks.height == 0:
            _notice_empty(label, "no rankable transcripts")
            continue

        sizes = _testable_gene_sets(gene_sets, set(ranks.get_column("gene").to_list()), min_size, max_size)
        if not sizes:
            _notice_empty(label, f"no gene set with {min_size}-{max_size} ranked genes")
            continue

        logger.info(
            "enrichment_partition_start",
            experiment=label,
            transcripts=partition.height,
            ranked_genes=ranks.height,
            gene_sets=len(sizes),
        )

        tested = test(
            ranks,
            {pathway: gene_sets[pathway] for pathway in sizes},
            min_size=min_size,
            max_size=max_size,
            permutations=permutations,
            seed=seed,
        )

        size_df = pl.DataFrame(
            {"pathway": list(sizes), "size": list(sizes.values())},
            schema={"pathway": pl.Utf8, "size": pl.Int64},
        )
        tagged = (
            tested.select(["pathway", "NES", "pval", "padj"])
            .join(size_df, on="pathway", how="left")
            .with_columns(pl.lit(label).alias("experiment"))
            .select(list(ENRICHMENT_SCHEMA))
            .cast(ENRICHMENT_SCHEMA)
        )
        results.append(tagged)

        logger.info("enrichment_partition_complete", experiment=label, pathways=tagged.height)

    if not results:
        return _empty_results()

    return pl.concat(results, how="vertical")


def report_enrichment(raw: pl.DataFrame, pval_cutoff: float) -> pl.DataFrame:
    """Keep pathways with pval <= pval_cutoff, sorted by experiment then pval.

    Args:
        raw: Results from run_enrichment_partitions
        pval_cutoff: Reporting cut-off on the nominal p-value

    Returns:
        Filtered enrichment table
    """
    if not 0.0 <= pval_cutoff <= 1.0:
        raise ValueError(f"pval_cutoff must be in [0, 1], got {pval_cutoff}")

    reported = raw.filter(pl.col("pval") <= pval_cutoff).sort(["experiment", "pval", "pathway"])

    logger.info(
        "enrichment_reported",
        raw_rows=raw.height,
        reported_rows=reported.height,
        pval_cutoff=pval_cutoff,
    )

    return reported


def run_enrichment(
    transcript_table: pl.DataFrame,
    gene_sets: dict[str, list[str]],
    tx_to_gene: pl.DataFrame,
    pval_cutoff: float,
    **kwargs,
) -> pl.DataFrame:
    """Per-biotype enrichment, reported at pval <= pval_cutoff.

    Runs run_enrichment_partitions and keeps pathways with pval <= pval_cutoff,
    sorted by experiment then pval. Use run_enrichment_partitions directly for
    the unfiltered results.

    Args:
        transcript_table: Annotated transcript-level DE table
        gene_sets: Pathway -> genes
        tx_to_gene: transcript_id -> gene map matching the gene-set identifiers
        pval_cutoff: Reporting cut-off on the nominal p-value
        **kwargs: Passed to run_enrichment_partitions

    Returns:
        Filtered enrichment table with an experiment label per row
    """
    if not 0.0 <= pval_cutoff <= 1.0:
        raise ValueError(f"pval_cutoff must be in [0, 1], got {pval_cutoff}")

    raw = run_enrichment_partitions(transcript_table, gene_sets, tx_to_gene, **kwargs)
    return report_enrichment(raw, pval_cutoff)
