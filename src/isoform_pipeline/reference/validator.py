"""Validation gates for the reference dictionary.

Checks the invariants every downstream join relies on and produces
actionable messages, mirroring the pass/fail reports used elsewhere in the
pipeline.
"""

import logging
from dataclasses import dataclass, field

import polars as pl

logger = logging.getLogger(__name__)

ENSEMBL_TRANSCRIPT_PREFIX = "ENS"


@dataclass
class ValidationResult:
    """Result of a validation check.

    Attributes:
        passed: Whether validation passed
        messages: List of validation messages (warnings, errors)
        transcript_count: Number of transcripts checked
        gene_count: Number of distinct genes
    """
    passed: bool
    messages: list[str] = field(default_factory=list)
    transcript_count: int = 0
    gene_count: int = 0


def validate_reference_table(reference: pl.DataFrame) -> ValidationResult:
    """Validate reference dictionary data quality.

    Checks:
    - transcript_id is unique (fatal)
    - transcript_id / gene_id / transcript_type are never NULL (fatal)
    - IDs use the Ensembl prefix (warning only; custom references are allowed)
    - gene_name coverage (informational)

    Args:
        reference: Reference dictionary from build_reference_table

    Returns:
        ValidationResult with validation status and messages
    """
    messages: list[str] = []
    passed = True

    transcript_count = reference.height
    gene_count = reference.get_column("gene_id").n_unique() if transcript_count else 0

    duplicates = reference.filter(pl.col("transcript_id").is_duplicated()).height
    if duplicates:
        messages.append(f"FAILED: Found {duplicates} rows with duplicate transcript_id")
        passed = False
    else:
        messages.append("No duplicate transcript IDs found")

    for column in ("transcript_id", "gene_id", "transcript_type"):
        null_count = reference.get_column(column).null_count()
        if null_count:
            messages.append(f"FAILED: {null_count} rows have NULL {column}")
            passed = False

    non_ensembl = reference.filter(
        ~pl.col("transcript_id").str.starts_with(ENSEMBL_TRANSCRIPT_PREFIX)
    ).get_column("transcript_id").to_list()
    if non_ensembl:
        messages.append(
            f"WARNING: {len(non_ensembl)} transcript IDs are not Ensembl IDs "
            f"(examples: {non_ensembl[:5]})"
        )
    else:
        messages.append("All transcript IDs are Ensembl IDs")

    named = transcript_count - reference.get_column("gene_name").null_count()
    rate = named / transcript_count if transcript_count else 0.0
    messages.append(f"gene_name coverage: {rate:.1%} ({named}/{transcript_count} transcripts)")

    logger.info(
        f"Reference validation: {'PASSED' if passed else 'FAILED'} "
        f"({transcript_count} transcripts, {gene_count} genes)"
    )

    return ValidationResult(
        passed=passed,
        messages=messages,
        transcript_count=transcript_count,
        gene_count=gene_count,
    )
