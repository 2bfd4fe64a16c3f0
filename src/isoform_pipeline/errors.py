"""Error taxonomy for the pipeline.

Fatal conditions (malformed or ambiguous reference data, missing input
columns) are exceptions. Recoverable conditions (unmatched join keys, empty
biotype partitions) are warnings: they are logged and emitted through
``warnings.warn`` so callers and tests can observe them, and processing
continues.
"""


class PipelineError(Exception):
    """Base class for fatal pipeline errors."""


class ReferenceParseError(PipelineError):
    """A reference header could not be parsed.

    Attributes:
        line_number: 1-based line number of the offending header
        line: Offending header text
    """

    def __init__(self, line_number: int, line: str, reason: str = "malformed header"):
        self.line_number = line_number
        self.line = line
        self.reason = reason
        super().__init__(f"{reason} at line {line_number}: {line!r}")


class DuplicateIdentifierError(PipelineError):
    """An identifier that must be unique occurs more than once."""

    def __init__(self, column: str, identifiers: list[str]):
        self.column = column
        self.identifiers = identifiers
        shown = ", ".join(identifiers[:10])
        super().__init__(
            f"Duplicate {column} values ({len(identifiers)}): {shown}"
        )


class MissingColumnError(PipelineError):
    """An expected column is absent from an input table."""

    def __init__(self, table: str, missing: list[str], available: list[str] | None = None):
        self.table = table
        self.missing = missing
        self.available = available or []
        message = f"Table '{table}' is missing required column(s): {', '.join(missing)}"
        if available:
            message += f" (available: {', '.join(available)})"
        super().__init__(message)


class JoinMismatchWarning(UserWarning):
    """Some join keys found no partner row; annotation fields left null."""


class EmptyPartitionNotice(UserWarning):
    """A biotype partition had no transcripts and produced no results."""
