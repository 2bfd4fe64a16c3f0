"""Output generation: TSV/Parquet writers and biotype colour palette."""

from isoform_pipeline.output.palette import BIOTYPE_COLORS, UNKNOWN_BIOTYPE_COLOR, add_biotype_colors
from isoform_pipeline.output.writers import write_table_output

__all__ = [
    "BIOTYPE_COLORS",
    "UNKNOWN_BIOTYPE_COLOR",
    "add_biotype_colors",
    "write_table_output",
]
