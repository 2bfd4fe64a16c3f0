"""DEG/DET merge module.

Combines gene-level and transcript-level differential expression into one
table keyed by gene, carrying both levels' fold change and significance so
isoform switches (significant transcript, non-significant gene) are visible.
"""

from isoform_pipeline.merge.merger import (
    ANCHORS,
    MERGED_COLUMNS,
    MERGED_TABLE_NAME,
    MergedDEGDETRecord,
    isoform_switches,
    merge_deg_det,
)

__all__ = [
    "ANCHORS",
    "MERGED_COLUMNS",
    "MERGED_TABLE_NAME",
    "MergedDEGDETRecord",
    "isoform_switches",
    "merge_deg_det",
]
