"""Data models for imported expression tables."""

from pydantic import BaseModel, Field

# Table names in DuckDB
DEG_TABLE_NAME = "deg_gene"
DET_TABLE_NAME = "det_transcript"

LEVEL_ID_COLUMNS = {
    "gene": "gene_id",
    "transcript": "transcript_id",
}

# Identifier column names by level, in priority order.
# "" is the header R's write.csv gives the row-name column.
ID_COLUMN_VARIANTS = {
    "gene": ["gene_id", "gene", "Geneid", "GeneID", "ens_gene", "row", ""],
    "transcript": ["transcript_id", "target_id", "transcript", "tx_id", "Name", "row", ""],
}

# Column name variants produced by DESeq2 (results/lfcShrink), sleuth, edgeR and limma
DE_COLUMN_VARIANTS = {
    "log2FoldChange": ["log2FoldChange", "log2FC", "logFC", "b"],
    "lfcSE": ["lfcSE", "se_b"],
    "pvalue": ["pvalue", "pval", "PValue", "P.Value", "p_value"],
    "padj": ["padj", "FDR", "adj.P.Val", "p_adj"],
    "qvalue": ["qvalue", "qval"],
    "svalue": ["svalue"],
    "stat": ["stat", "t", "test_stat"],
    "baseMean": ["baseMean", "mean_obs", "AveExpr", "logCPM"],
}

DE_NUMERIC_COLUMNS = list(DE_COLUMN_VARIANTS)

DE_REQUIRED_COLUMNS = ["log2FoldChange", "pvalue"]

# salmon quant.sf and kallisto abundance.tsv
ABUNDANCE_COLUMN_VARIANTS = {
    "transcript_id": ["transcript_id", "Name", "target_id"],
    "length": ["length", "Length"],
    "effective_length": ["effective_length", "EffectiveLength", "eff_length"],
    "tpm": ["tpm", "TPM"],
    "num_reads": ["num_reads", "NumReads", "est_counts"],
}

ABUNDANCE_REQUIRED_COLUMNS = ["transcript_id", "tpm"]

NULL_VALUES = ["NA", "", ".", "NaN"]


class ExpressionRecord(BaseModel):
    """Differential expression result for one gene or transcript.

    Attributes:
        identifier: gene_id or transcript_id depending on the table level
        log2FoldChange: Signed log2 fold change (NULL if not estimable)
        pvalue: Nominal p-value in [0, 1] (NULL if filtered by the DE tool)
        padj: Multiple-testing adjusted p-value
        qvalue: q-value (sleuth)
        svalue: s-value (DESeq2 apeglm/ashr shrinkage)
        stat: Test statistic used for ranking

    NULL values are preserved: a missing p-value is not a non-significant one,
    it is reported separately by the significance filter.
    """

    identifier: str
    log2FoldChange: float | None = None
    pvalue: float | None = Field(default=None, ge=0.0, le=1.0)
    padj: float | None = None
    qvalue: float | None = None
    svalue: float | None = None
    stat: float | None = None
