"""Fixed colour assignment for transcript biotypes."""

from collections.abc import Mapping
from types import MappingProxyType

import polars as pl

# Read-only; callers pass their own mapping to override
BIOTYPE_COLORS: Mapping[str, str] = MappingProxyType({
    "protein_coding": "#1f77b4",
    "nonsense_mediated_decay": "#d62728",
    "retained_intron": "#ff7f0e",
    "processed_transcript": "#2ca02c",
    "non_stop_decay": "#9467bd",
    "lncRNA": "#8c564b",
    "processed_pseudogene": "#e377c2",
    "unprocessed_pseudogene": "#bcbd22",
    "transcribed_unprocessed_pseudogene": "#17becf",
    "TEC": "#aec7e8",
    "artifact": "#c5b0d5",
    "unproductive": "#ff9896",
})

UNKNOWN_BIOTYPE_COLOR = "#7f7f7f"


def add_biotype_colors(
    df: pl.DataFrame,
    palette: Mapping[str, str] = BIOTYPE_COLORS,
    biotype_column: str = "transcript_type",
    color_column: str = "biotype_color",
) -> pl.DataFrame:
    """
    Add a colour column looked up from the biotype.

    Biotypes absent from the palette (and NULL biotypes) get
    UNKNOWN_BIOTYPE_COLOR.

    Args:
        df: Table with a biotype column
        palette: Biotype -> colour mapping
        biotype_column: Column holding the biotype
        color_column: Name of the added column

    Returns:
        df with color_column appended
    """
    return df.with_columns(
        pl.col(biotype_column)
        .cast(pl.Utf8)
        .replace_strict(dict(palette), default=UNKNOWN_BIOTYPE_COLOR, return_dtype=pl.Utf8)
        .fill_null(UNKNOWN_BIOTYPE_COLOR)
        .alias(color_column)
    )
