"""Expression table import.

Reads tables produced by external tools into polars DataFrames with
standardized column names:
- DE results (DESeq2, sleuth, edgeR, limma) at gene or transcript level
- Transcript abundance (salmon quant.sf, kallisto abundance.tsv)

The statistics themselves are computed elsewhere; this module only consumes
them.
"""

from isoform_pipeline.expression.importer import (
    read_abundance_table,
    read_de_table,
)
from isoform_pipeline.expression.transform import summarize_to_gene
from isoform_pipeline.expression.load import load_to_duckdb
from isoform_pipeline.expression.models import (
    DEG_TABLE_NAME,
    DET_TABLE_NAME,
    ExpressionRecord,
)

__all__ = [
    "read_abundance_table",
    "read_de_table",
    "summarize_to_gene",
    "load_to_duckdb",
    "DEG_TABLE_NAME",
    "DET_TABLE_NAME",
    "ExpressionRecord",
]
