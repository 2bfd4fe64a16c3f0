"""Reference dictionary module.

Builds the transcript -> gene dictionary (ids, names, biotype, length) from a
transcript FASTA and validates it. Every downstream join depends on it, so
malformed or ambiguous reference data is fatal.
"""

from isoform_pipeline.reference.builder import (
    build_reference_table,
    parse_header,
    tx2gene,
)
from isoform_pipeline.reference.models import (
    REFERENCE_SCHEMA,
    REFERENCE_TABLE_NAME,
    TranscriptRecord,
)
from isoform_pipeline.reference.validator import (
    ValidationResult,
    validate_reference_table,
)

__all__ = [
    "build_reference_table",
    "parse_header",
    "tx2gene",
    "REFERENCE_SCHEMA",
    "REFERENCE_TABLE_NAME",
    "TranscriptRecord",
    "ValidationResult",
    "validate_reference_table",
]
