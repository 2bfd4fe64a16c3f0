"""Exon annotation preparation for transcript context plots."""

from isoform_pipeline.exons.gff3 import prepare_exon_annotation, read_gff3
from isoform_pipeline.exons.models import (
    DEFAULT_FEATURE_TYPES,
    EXON_SCHEMA,
    EXON_TABLE_NAME,
    ExonAnnotationRow,
)

__all__ = [
    "prepare_exon_annotation",
    "read_gff3",
    "DEFAULT_FEATURE_TYPES",
    "EXON_SCHEMA",
    "EXON_TABLE_NAME",
    "ExonAnnotationRow",
]
