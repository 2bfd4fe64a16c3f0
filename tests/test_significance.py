"""Tests for fold-change / p-value significance flags."""

import polars as pl
import pytest

from isoform_pipeline.annotation import (
    filter_significant,
    mark_significant,
    significance_expr,
    summarize_significance,
)
from isoform_pipeline.errors import MissingColumnError


@pytest.fixture
def de_table():
    return pl.DataFrame({
        "gene_name": ["GeneA", "GeneB", "GeneC", "GeneD", "GeneE", "GeneF"],
        "log2FoldChange": [2.0, -1.5, 0.5, 3.0, None, float("nan")],
        "pvalue": [0.01, 0.001, 0.001, 0.2, 0.01, 0.01],
    })


def _flags(df, fc, p):
    return mark_significant(
        df, "log2FoldChange", "pvalue", fc_threshold=fc, p_threshold=p
    )["significant"].to_list()


def test_gene_significance_example():
    """GeneA (log2FC 2.0, p 0.01) passes (1, 0.05) but not (3, 0.05)."""
    df = pl.DataFrame({"gene_name": ["GeneA"], "log2FoldChange": [2.0], "pvalue": [0.01]})

    assert _flags(df, 1.0, 0.05) == [True]
    assert _flags(df, 3.0, 0.05) == [False]


def test_mark_significant(de_table):
    """Both thresholds apply to |log2FC|; missing values are never significant."""
    assert _flags(de_table, 1.0, 0.05) == [True, True, False, False, False, False]


def test_mark_significant_keeps_rows(de_table):
    """No row is dropped and the flag has no NULLs."""
    flagged = mark_significant(
        de_table, "log2FoldChange", "pvalue",
        fc_threshold=1.0, p_threshold=0.05, flag_column="gene_significant",
    )

    assert flagged.height == de_table.height
    assert flagged["gene_significant"].null_count() == 0
    assert flagged.columns[-1] == "gene_significant"


def test_thresholds_monotonic(de_table):
    """Loosening a threshold never removes a significant row."""
    strict = _flags(de_table, 2.0, 0.01)
    looser_fc = _flags(de_table, 1.0, 0.01)
    looser_p = _flags(de_table, 2.0, 0.05)

    for s, f, p in zip(strict, looser_fc, looser_p):
        assert not s or f
        assert not s or p


def test_threshold_boundaries_inclusive():
    """|log2FC| == fc_threshold and p == p_threshold are significant."""
    df = pl.DataFrame({"log2FoldChange": [-1.0], "pvalue": [0.05]})

    assert _flags(df, 1.0, 0.05) == [True]


def test_invalid_thresholds(de_table):
    with pytest.raises(ValueError):
        _flags(de_table, -1.0, 0.05)
    with pytest.raises(ValueError):
        _flags(de_table, 1.0, 1.5)
    with pytest.raises(ValueError):
        significance_expr("log2FoldChange", "pvalue", fc_threshold=None, p_threshold=0.05)


def test_missing_columns(de_table):
    with pytest.raises(MissingColumnError):
        mark_significant(de_table, "log2FC", "pvalue", fc_threshold=1.0, p_threshold=0.05)


def test_summarize_significance(de_table):
    report = summarize_significance(
        de_table, "log2FoldChange", "pvalue", fc_threshold=1.0, p_threshold=0.05
    )

    assert report.total == 6
    assert report.significant == 2
    assert report.up == 1
    assert report.down == 1
    assert report.missing == 2


def test_filter_significant(de_table):
    result = filter_significant(
        de_table, "log2FoldChange", "pvalue", fc_threshold=1.0, p_threshold=0.05
    )

    assert result["gene_name"].to_list() == ["GeneA", "GeneB"]
