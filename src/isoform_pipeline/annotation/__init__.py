"""Annotation and significance module.

Joins reference names/biotypes onto expression tables by exact key match and
flags significant genes/transcripts by explicit fold-change and p-value
thresholds. Neither step drops rows: unmatched keys and missing statistics
are counted and reported.
"""

from isoform_pipeline.annotation.joiner import (
    ANNOTATION_COLUMNS,
    JoinReport,
    annotate,
)
from isoform_pipeline.annotation.significance import (
    SignificanceReport,
    filter_significant,
    mark_significant,
    significance_expr,
    summarize_significance,
)

__all__ = [
    "ANNOTATION_COLUMNS",
    "JoinReport",
    "annotate",
    "SignificanceReport",
    "filter_significant",
    "mark_significant",
    "significance_expr",
    "summarize_significance",
]
