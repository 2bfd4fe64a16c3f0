"""Per-biotype gene-set enrichment.

Transcripts are split into biotype classes (protein_coding, the union of
unproductive biotypes, and each individual unproductive biotype); each class
is collapsed to a ranked gene list and tested against the gene sets with a
pre-ranked enrichment test (gseapy by default). Results carry the partition
label in the ``experiment`` column.
"""

from isoform_pipeline.enrichment.gene_sets import read_gene_sets
from isoform_pipeline.enrichment.models import (
    DEFAULT_EXCLUDED_BIOTYPES,
    ENRICHMENT_RAW_TABLE_NAME,
    ENRICHMENT_SCHEMA,
    ENRICHMENT_TABLE_NAME,
    PROTEIN_CODING,
    UNPRODUCTIVE,
    EnrichmentRecord,
)
from isoform_pipeline.enrichment.partition import (
    build_ranked_list,
    partition_by_biotype,
)
from isoform_pipeline.enrichment.runner import (
    gseapy_prerank,
    report_enrichment,
    run_enrichment,
    run_enrichment_partitions,
)

__all__ = [
    "read_gene_sets",
    "DEFAULT_EXCLUDED_BIOTYPES",
    "ENRICHMENT_RAW_TABLE_NAME",
    "ENRICHMENT_SCHEMA",
    "ENRICHMENT_TABLE_NAME",
    "PROTEIN_CODING",
    "UNPRODUCTIVE",
    "EnrichmentRecord",
    "build_ranked_list",
    "partition_by_biotype",
    "gseapy_prerank",
    "report_enrichment",
    "run_enrichment",
    "run_enrichment_partitions",
]
