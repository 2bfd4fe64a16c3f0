"""Parse transcript FASTA headers into the reference dictionary."""

import gzip
from pathlib import Path
from typing import Iterator, TextIO

import polars as pl
import structlog
from Bio.SeqIO.FastaIO import SimpleFastaParser

from isoform_pipeline.errors import DuplicateIdentifierError, ReferenceParseError
from isoform_pipeline.reference.models import (
    ENSEMBL_BIOTYPE_KEY,
    ENSEMBL_GENE_KEY,
    ENSEMBL_SYMBOL_KEY,
    GENCODE_FIELDS,
    GENCODE_MIN_FIELDS,
    GENCODE_REGION_PREFIXES,
    REFERENCE_SCHEMA,
)

logger = structlog.get_logger()

SUPPORTED_FORMATS = ("fasta",)

# Ensembl identifier version, e.g. ENSMUST00000027032.6
VERSION_SUFFIX = r"\.\d+$"


class _HeaderLineTracker:
    """Line iterator that remembers the line number of every FASTA header."""

    def __init__(self, handle: TextIO):
        self.handle = handle
        self.header_lines: list[int] = []

    def __iter__(self) -> Iterator[str]:
        for line_number, line in enumerate(self.handle, start=1):
            if line.startswith(">"):
                self.header_lines.append(line_number)
            yield line


def _open_text(path: Path) -> TextIO:
    if path.suffix == ".gz":
        return gzip.open(path, "rt")
    return open(path, "r")


def _parse_gencode(fields: list[str], line_number: int, header: str) -> dict:
    # GENCODE headers end with a trailing "|"
    while fields and fields[-1] == "":
        fields.pop()

    if len(fields) < GENCODE_MIN_FIELDS:
        raise ReferenceParseError(
            line_number,
            header,
            f"expected at least {GENCODE_MIN_FIELDS} '|'-delimited fields, got {len(fields)}",
        )

    record = {name: fields[idx].strip() for name, idx in GENCODE_FIELDS.items()}

    if record["transcript_type"].startswith(GENCODE_REGION_PREFIXES):
        record["transcript_type"] = "protein_coding"

    for name in ("transcript_id", "gene_id", "transcript_type"):
        if not record[name] or record[name] == "-":
            raise ReferenceParseError(line_number, header, f"empty {name} field")

    for name in ("transcript_name", "gene_name"):
        if record[name] in ("", "-"):
            record[name] = None

    try:
        record["transcript_length"] = int(record["transcript_length"])
    except ValueError:
        raise ReferenceParseError(
            line_number,
            header,
            f"non-integer transcript length {record['transcript_length']!r}",
        ) from None

    return record


def _parse_ensembl(tokens: list[str], sequence: str, line_number: int, header: str) -> dict:
    attributes = {}
    for token in tokens[1:]:
        key, sep, value = token.partition(":")
        if sep and key not in attributes:
            attributes[key] = value

    gene_id = attributes.get(ENSEMBL_GENE_KEY)
    transcript_type = attributes.get(ENSEMBL_BIOTYPE_KEY)
    if not gene_id or not transcript_type:
        raise ReferenceParseError(
            line_number,
            header,
            "header is neither GENCODE '|'-delimited nor Ensembl 'gene:'/'transcript_biotype:' style",
        )

    return {
        "transcript_id": tokens[0],
        "gene_id": gene_id,
        "transcript_name": None,
        "gene_name": attributes.get(ENSEMBL_SYMBOL_KEY) or None,
        "transcript_type": transcript_type,
        "transcript_length": len(sequence),
    }


def parse_header(header: str, sequence: str = "", line_number: int = 1) -> dict:
    """Parse one FASTA header (without the leading '>') into a reference row.

    Supports GENCODE pipe-delimited headers and Ensembl space-delimited
    ``key:value`` headers.

    Args:
        header: Header text
        sequence: Sequence belonging to the header (length used for Ensembl headers)
        line_number: Line number reported in errors

    Returns:
        Dict with the REFERENCE_SCHEMA keys

    Raises:
        ReferenceParseError: If the header matches neither convention
    """
    header = header.strip()
    if not header:
        raise ReferenceParseError(line_number, header, "empty header")

    if "|" in header:
        return _parse_gencode(header.split("|"), line_number, header)

    tokens = header.split()
    if len(tokens) > 1:
        return _parse_ensembl(tokens, sequence, line_number, header)

    raise ReferenceParseError(line_number, header)


def build_reference_table(
    path: Path | str,
    fmt: str = "fasta",
    strip_version: bool = False,
) -> pl.DataFrame:
    """Build the transcript -> gene dictionary from a transcript FASTA.

    Args:
        path: Transcript FASTA (plain or gzip-compressed)
        fmt: Declared reference format; only "fasta" is supported
        strip_version: If True, drop ".N" version suffixes from transcript and gene IDs

    Returns:
        DataFrame with one row per transcript and columns
        transcript_id, gene_id, transcript_name, gene_name, transcript_type,
        transcript_length

    Raises:
        ValueError: If fmt is not supported
        ReferenceParseError: On the first malformed header (line number included)
        DuplicateIdentifierError: If a transcript_id occurs more than once
    """
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported reference format {fmt!r} (supported: {SUPPORTED_FORMATS})")

    path = Path(path)
    logger.info("reference_build_start", path=str(path), strip_version=strip_version)

    rows: dict[str, list] = {name: [] for name in REFERENCE_SCHEMA}

    with _open_text(path) as handle:
        tracker = _HeaderLineTracker(handle)
        for index, (title, sequence) in enumerate(SimpleFastaParser(iter(tracker))):
            line_number = tracker.header_lines[index]
            record = parse_header(title, sequence, line_number)
            for name in REFERENCE_SCHEMA:
                rows[name].append(record[name])

    df = pl.DataFrame(rows, schema=REFERENCE_SCHEMA)

    if strip_version:
        df = df.with_columns(
            pl.col("transcript_id").str.replace(VERSION_SUFFIX, ""),
            pl.col("gene_id").str.replace(VERSION_SUFFIX, ""),
        )

    duplicated = (
        df.filter(pl.col("transcript_id").is_duplicated())
        .get_column("transcript_id")
        .unique(maintain_order=True)
        .to_list()
    )
    if duplicated:
        logger.error("reference_duplicate_transcripts", count=len(duplicated), examples=duplicated[:5])
        raise DuplicateIdentifierError("transcript_id", duplicated)

    logger.info(
        "reference_build_complete",
        transcripts=df.height,
        genes=df.get_column("gene_id").n_unique(),
        biotypes=df.get_column("transcript_type").n_unique(),
    )

    return df


def tx2gene(reference: pl.DataFrame, value: str = "gene_name") -> pl.DataFrame:
    """Return the two-column transcript -> gene map.

    Args:
        reference: Reference dictionary from build_reference_table
        value: Gene column to map to ("gene_name" or "gene_id")

    Returns:
        DataFrame with columns transcript_id and the requested gene column
    """
    if value not in ("gene_name", "gene_id"):
        raise ValueError(f"value must be 'gene_name' or 'gene_id', got {value!r}")
    return reference.select(["transcript_id", value])
