"""Tests for expression table import, gene summaries and DuckDB loading."""

import polars as pl
import pydantic
import pytest

from isoform_pipeline.errors import MissingColumnError
from isoform_pipeline.expression import (
    DET_TABLE_NAME,
    ExpressionRecord,
    load_to_duckdb,
    read_abundance_table,
    read_de_table,
    summarize_to_gene,
)
from isoform_pipeline.persistence import PipelineStore, ProvenanceTracker
from isoform_pipeline.reference import build_reference_table


@pytest.fixture
def deseq2_transcripts(tmp_path):
    """DESeq2 results with row names exported to a "row" column."""
    path = tmp_path / "det.csv"
    path.write_text(
        '"row","baseMean","log2FoldChange","lfcSE","stat","pvalue","padj"\n'
        '"ENSMUST00000000002.2",120.5,0.2,0.1,2.0,0.2,0.4\n'
        '"ENSMUST00000000003.1",80.1,3.1,0.5,6.2,0.0001,0.001\n'
        '"ENSMUST00000000004.1",5.0,NA,NA,NA,NA,NA\n'
    )
    return path


def test_read_de_table_deseq2_csv(deseq2_transcripts):
    """DESeq2 CSV: the row column becomes transcript_id, NA becomes NULL."""
    df = read_de_table(deseq2_transcripts, level="transcript")

    assert df.columns[0] == "transcript_id"
    assert df["transcript_id"].to_list() == [
        "ENSMUST00000000002.2", "ENSMUST00000000003.1", "ENSMUST00000000004.1"
    ]
    assert df.schema["log2FoldChange"] == pl.Float64
    assert df.schema["pvalue"] == pl.Float64
    assert df["pvalue"].null_count() == 1
    assert df["stat"].to_list()[:2] == [2.0, 6.2]


def test_read_de_table_sleuth_tsv(tmp_path):
    """sleuth column names are standardized."""
    path = tmp_path / "sleuth.tsv"
    path.write_text(
        "target_id\tpval\tqval\tb\tse_b\tmean_obs\n"
        "ENST1\t0.01\t0.02\t1.5\t0.3\t4.2\n"
        "ENST2\t0.5\t0.7\t-0.1\t0.2\t3.0\n"
    )

    df = read_de_table(path, level="transcript")

    assert set(df.columns) == {
        "transcript_id", "pvalue", "qvalue", "log2FoldChange", "lfcSE", "baseMean"
    }
    assert df["log2FoldChange"].to_list() == [1.5, -0.1]


def test_read_de_table_gene_level_edger(tmp_path):
    """edgeR gene tables map logFC/PValue/FDR."""
    path = tmp_path / "edger.tsv"
    path.write_text(
        "gene_id\tlogFC\tlogCPM\tPValue\tFDR\n"
        "ENSG1\t2.5\t5.0\t0.001\t0.01\n"
    )

    df = read_de_table(path, level="gene")

    assert df.row(0, named=True) == {
        "gene_id": "ENSG1",
        "log2FoldChange": 2.5,
        "baseMean": 5.0,
        "pvalue": 0.001,
        "padj": 0.01,
    }


def test_read_de_table_explicit_id_column(tmp_path):
    """An explicit identifier column overrides variant detection."""
    path = tmp_path / "custom.tsv"
    path.write_text("my_id\tlog2FoldChange\tpvalue\nT1\t1.0\t0.5\n")

    df = read_de_table(path, level="transcript", id_column="my_id")

    assert df["transcript_id"].to_list() == ["T1"]


def test_read_de_table_missing_columns(tmp_path):
    """Missing identifier or statistic columns raise MissingColumnError."""
    no_id = tmp_path / "no_id.tsv"
    no_id.write_text("foo\tlog2FoldChange\tpvalue\nx\t1\t0.1\n")
    with pytest.raises(MissingColumnError):
        read_de_table(no_id, level="gene")

    no_p = tmp_path / "no_p.tsv"
    no_p.write_text("gene_id\tlog2FoldChange\nENSG1\t1\n")
    with pytest.raises(MissingColumnError) as exc_info:
        read_de_table(no_p, level="gene")
    assert exc_info.value.missing == ["pvalue"]


def test_read_de_table_rejects_bad_pvalues(tmp_path):
    """p-values outside [0, 1] are rejected."""
    path = tmp_path / "bad_p.tsv"
    path.write_text("gene_id\tlog2FoldChange\tpvalue\nENSG1\t1.0\t1.5\n")

    with pytest.raises(ValueError, match="outside"):
        read_de_table(path, level="gene")


def test_read_de_table_unknown_level(deseq2_transcripts):
    with pytest.raises(ValueError):
        read_de_table(deseq2_transcripts, level="exon")


def test_read_abundance_salmon(tmp_path):
    """salmon quant.sf columns are standardized."""
    path = tmp_path / "quant.sf"
    path.write_text(
        "Name\tLength\tEffectiveLength\tTPM\tNumReads\n"
        "ENSMUST00000000002.2\t1200\t1000.5\t10.0\t100\n"
        "ENSMUST00000000003.1\t900\t700.2\t5.0\t40\n"
    )

    df = read_abundance_table(path)

    assert df.columns == ["transcript_id", "length", "effective_length", "tpm", "num_reads"]
    assert df["tpm"].to_list() == [10.0, 5.0]


def test_read_abundance_missing_tpm(tmp_path):
    path = tmp_path / "abundance.tsv"
    path.write_text("target_id\tlength\nT1\t100\n")

    with pytest.raises(MissingColumnError):
        read_abundance_table(path)


def test_summarize_to_gene(gencode_fasta):
    """Transcript TPM sums per gene; unknown transcripts are left out."""
    reference = build_reference_table(gencode_fasta)
    abundance = pl.DataFrame({
        "transcript_id": [
            "ENSMUST00000000002.2", "ENSMUST00000000003.1", "ENSMUST00000000001.5", "UNKNOWN"
        ],
        "tpm": [10.0, 5.0, 2.0, 99.0],
        "num_reads": [100.0, 40.0, 20.0, 1.0],
    })

    with pytest.warns(UserWarning):
        genes = summarize_to_gene(abundance, reference)

    assert genes["gene_name"].to_list() == ["Gnai3", "Map4"]
    assert genes["tpm"].to_list() == [2.0, 15.0]
    assert genes["num_reads"].to_list() == [20.0, 140.0]
    assert genes["transcript_count"].to_list() == [1, 2]


def test_load_to_duckdb(tmp_path, test_config, deseq2_transcripts):
    """Tables are saved with a checkpoint and a provenance step."""
    df = read_de_table(deseq2_transcripts, level="transcript")
    store = PipelineStore(tmp_path / "load.duckdb")
    provenance = ProvenanceTracker("0.1.0", test_config)

    load_to_duckdb(df, DET_TABLE_NAME, store, provenance, "test DET")

    assert store.has_checkpoint(DET_TABLE_NAME)
    assert store.load_dataframe(DET_TABLE_NAME).height == 3
    step = provenance.steps[-1]
    assert step["step_name"] == f"load_{DET_TABLE_NAME}"
    assert step["details"]["row_count"] == 3
    assert step["details"]["null_pvalue"] == 1

    store.close()


def test_expression_record_model_validation(deseq2_transcripts):
    """Imported rows validate as ExpressionRecord; NULL statistics are allowed."""
    df = read_de_table(deseq2_transcripts, level="transcript")

    records = [
        ExpressionRecord(identifier=row["transcript_id"], **row)
        for row in df.iter_rows(named=True)
    ]
    assert [r.pvalue is None for r in records].count(True) == 1

    with pytest.raises(pydantic.ValidationError):
        ExpressionRecord(identifier="ENSMUST00000000002.2", log2FoldChange=1.0, pvalue=1.5)
