"""Tests for the DEG/DET merge and isoform switch detection."""

import warnings

import polars as pl
import pydantic
import pytest

from isoform_pipeline.errors import DuplicateIdentifierError, JoinMismatchWarning, MissingColumnError
from isoform_pipeline.merge import (
    MERGED_COLUMNS,
    MergedDEGDETRecord,
    isoform_switches,
    merge_deg_det,
)


@pytest.fixture
def deg():
    return pl.DataFrame({
        "gene_id": ["ENSMUSG02", "ENSMUSG01", "ENSMUSG05"],
        "gene_name": ["Map4", "Gnai3", "Cd99"],
        "log2FoldChange": [0.1, 2.0, -1.8],
        "pvalue": [0.8, 0.001, 0.01],
    })


@pytest.fixture
def det():
    return pl.DataFrame({
        "transcript_id": ["ENSMUST02", "ENSMUST03", "ENSMUST04", "ENSMUST01"],
        "gene_id": ["ENSMUSG02", "ENSMUSG02", "ENSMUSG02", "ENSMUSG01"],
        "gene_name": ["Map4", "Map4", "Map4", "Gnai3"],
        "transcript_name": ["Map4-201", "Map4-202", "Map4-203", "Gnai3-201"],
        "transcript_type": [
            "protein_coding", "retained_intron", "nonsense_mediated_decay", "protein_coding"
        ],
        "log2FoldChange": [0.2, 3.1, None, 2.2],
        "pvalue": [0.7, 0.001, None, 0.002],
    })


def _merge(deg, det, **kwargs):
    return merge_deg_det(deg, det, 1.0, 0.05, **kwargs)


def test_merge_columns_and_rows(deg, det):
    """Transcript-anchored merge keeps every DET row, in order."""
    merged = _merge(deg, det)

    assert merged.columns == MERGED_COLUMNS
    assert merged["transcript_id"].to_list() == det["transcript_id"].to_list()
    assert merged.height >= det.height


def test_isoform_switch(deg, det):
    """A significant transcript of a non-significant gene is an isoform switch."""
    merged = _merge(deg, det)

    row = merged.filter(pl.col("transcript_id") == "ENSMUST03").row(0, named=True)
    assert row["gene_name"] == "Map4"
    assert row["gene_significant"] is False
    assert row["transcript_significant"] is True
    assert row["isoform_switch"] is True
    assert row["gene_log2FC"] == 0.1
    assert row["transcript_log2FC"] == 3.1

    switches = isoform_switches(merged)
    assert switches["transcript_id"].to_list() == ["ENSMUST03"]


def test_no_switch_when_gene_significant(deg, det):
    """Gnai3 and its transcript are both significant: no switch."""
    merged = _merge(deg, det)

    row = merged.filter(pl.col("transcript_id") == "ENSMUST01").row(0, named=True)
    assert row["gene_significant"] is True
    assert row["transcript_significant"] is True
    assert row["isoform_switch"] is False


def test_missing_statistics_not_significant(deg, det):
    """Transcripts with NULL statistics stay in the table, not significant."""
    merged = _merge(deg, det)

    row = merged.filter(pl.col("transcript_id") == "ENSMUST04").row(0, named=True)
    assert row["transcript_significant"] is False
    assert row["isoform_switch"] is False


def test_transcripts_without_gene_row(deg, det):
    """Orphan transcripts are kept with NULL gene fields and warned about."""
    orphan = pl.DataFrame({
        "transcript_id": ["ENSMUST09"],
        "gene_id": ["ENSMUSG09"],
        "gene_name": ["Sox17"],
        "transcript_name": ["Sox17-201"],
        "transcript_type": ["protein_coding"],
        "log2FoldChange": [4.0],
        "pvalue": [0.0001],
    })

    with pytest.warns(JoinMismatchWarning):
        merged = _merge(deg, pl.concat([det, orphan]))

    row = merged.filter(pl.col("transcript_id") == "ENSMUST09").row(0, named=True)
    assert row["gene_log2FC"] is None
    assert row["gene_significant"] is None
    assert row["gene_id"] == "ENSMUSG09"
    assert row["isoform_switch"] is False

    assert "ENSMUST09" not in isoform_switches(merged)["transcript_id"].to_list()
    assert "ENSMUST09" in isoform_switches(merged, include_unmatched=True)["transcript_id"].to_list()


def test_gene_anchor(deg, det):
    """Gene-anchored merge keeps genes without transcripts."""
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        merged = _merge(deg, det, anchor="gene")

    cd99 = merged.filter(pl.col("gene_name") == "Cd99")
    assert cd99.height == 1
    assert cd99["transcript_id"].to_list() == [None]
    assert cd99["isoform_switch"].to_list() == [False]
    assert merged.height == det.height + 1


def test_gene_anchor_drops_orphan_transcripts(deg, det):
    """Gene-anchored merge drops transcripts without a gene row and reports them."""
    orphans = pl.DataFrame({
        "transcript_id": ["ENSMUST09", "ENSMUST10"],
        "gene_id": ["ENSMUSG09", "ENSMUSG09"],
        "gene_name": ["Sox17", "Sox17"],
        "transcript_name": ["Sox17-201", "Sox17-202"],
        "transcript_type": ["protein_coding", "retained_intron"],
        "log2FoldChange": [4.0, 2.5],
        "pvalue": [0.0001, 0.01],
    })

    with pytest.warns(JoinMismatchWarning, match="2/6 transcripts") as record:
        merged = _merge(deg, pl.concat([det, orphans]), anchor="gene")

    assert "dropped" in str(record[0].message)
    assert "Sox17" not in merged["gene_name"].to_list()
    assert not merged["transcript_id"].is_in(["ENSMUST09", "ENSMUST10"]).any()
    assert merged.height == det.height + 1


def test_merge_on_gene_id(deg, det):
    """Merging on gene_id fills gene_name from either side."""
    merged = _merge(deg, det.drop("gene_name"), on="gene_id")

    assert merged["gene_name"].to_list() == ["Map4", "Map4", "Map4", "Gnai3"]
    assert merged["isoform_switch"].sum() == 1


def test_transcript_threshold_override(deg, det):
    """Transcript thresholds can differ from gene thresholds."""
    merged = _merge(deg, det, det_fc_threshold=4.0)

    assert not merged["transcript_significant"].any()
    assert isoform_switches(merged).height == 0


def test_duplicate_gene_ids_fatal(deg, det):
    """The same gene_id twice in the DEG table is a corrupt input."""
    duplicated = pl.concat([deg, deg.head(1)])

    with pytest.raises(DuplicateIdentifierError) as exc_info:
        _merge(duplicated, det)

    assert exc_info.value.column == "gene_id"
    assert exc_info.value.identifiers == ["ENSMUSG02"]


def test_shared_gene_name_left_unmatched(deg, det):
    """Two genes named Map4 cannot be told apart, so Map4 transcripts get no gene fields."""
    par_copy = pl.DataFrame({
        "gene_id": ["ENSMUSG02_PAR_Y"],
        "gene_name": ["Map4"],
        "log2FoldChange": [0.3],
        "pvalue": [0.6],
    })

    with pytest.warns(JoinMismatchWarning, match="Map4"):
        merged = _merge(pl.concat([deg, par_copy]), det)

    assert merged["transcript_id"].to_list() == det["transcript_id"].to_list()
    map4 = merged.filter(pl.col("gene_name") == "Map4")
    assert map4.height == 3
    assert map4["gene_log2FC"].to_list() == [None, None, None]
    assert map4["gene_id"].to_list() == ["ENSMUSG02"] * 3
    assert not map4["isoform_switch"].any()

    gnai3 = merged.filter(pl.col("gene_name") == "Gnai3").row(0, named=True)
    assert gnai3["gene_significant"] is True

    switches = isoform_switches(merged, include_unmatched=True)
    assert switches["transcript_id"].to_list() == ["ENSMUST03"]


def test_invalid_arguments(deg, det):
    with pytest.raises(ValueError):
        _merge(deg, det, anchor="exon")
    with pytest.raises(ValueError):
        _merge(deg, det, on="transcript_id")
    with pytest.raises(MissingColumnError):
        _merge(deg.drop("pvalue"), det)


def test_merged_record_model_validation(deg, det):
    """Merged rows, NULL gene fields included, validate as MergedDEGDETRecord."""
    merged = _merge(deg, det, anchor="gene")

    records = [MergedDEGDETRecord(**row) for row in merged.iter_rows(named=True)]
    cd99 = [r for r in records if r.gene_name == "Cd99"][0]
    assert cd99.transcript_id is None
    assert cd99.isoform_switch is False

    with pytest.raises(pydantic.ValidationError):
        MergedDEGDETRecord(gene_name="Map4", isoform_switch="sometimes")
