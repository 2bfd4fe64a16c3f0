"""Integration tests for the CLI commands using CliRunner."""

from unittest.mock import patch

import duckdb
import polars as pl
import pytest
from click.testing import CliRunner

from isoform_pipeline.cli.main import cli


DEG_TSV = """\
gene_id\tlog2FoldChange\tpvalue\tstat
ENSMUSG00000000001.5\t2.0\t0.001\t5.0
ENSMUSG00000000002.3\t0.1\t0.8\t0.2
ENSMUSG00000000005.1\t-1.5\t0.01\t-3.0
"""

DET_TSV = """\
transcript_id\tlog2FoldChange\tpvalue\tstat
ENSMUST00000000001.5\t2.2\t0.002\t4.0
ENSMUST00000000002.2\t0.2\t0.7\t0.5
ENSMUST00000000003.1\t3.1\t0.001\t5.5
ENSMUST00000000004.1\t-1.1\t0.3\t-2.0
ENSMUST00000000005.1\t1.0\t0.5\t1.0
"""

GFF3 = """\
##gff-version 3
chr7\tHAVANA\tgene\t100\t900\t.\t+\t.\tID=ENSMUSG00000000002.3;gene_name=Map4
chr7\tHAVANA\ttranscript\t100\t900\t.\t+\t.\tID=ENSMUST00000000002.2;Parent=ENSMUSG00000000002.3;gene_name=Map4;transcript_id=ENSMUST00000000002.2
chr7\tHAVANA\texon\t100\t200\t.\t+\t.\tParent=ENSMUST00000000002.2;gene_name=Map4;transcript_id=ENSMUST00000000002.2
chr7\tHAVANA\texon\t500\t900\t.\t+\t.\tParent=ENSMUST00000000002.2;gene_name=Map4;transcript_id=ENSMUST00000000002.2
"""


@pytest.fixture
def inputs(tmp_path):
    deg = tmp_path / "deg.tsv"
    deg.write_text(DEG_TSV)
    det = tmp_path / "det.tsv"
    det.write_text(DET_TSV)
    gff3 = tmp_path / "annotation.gff3"
    gff3.write_text(GFF3)
    gmt = tmp_path / "sets.gmt"
    gmt.write_text("SET1\tdescription\tMap4\tGnai3\n")
    return {"deg": deg, "det": det, "gff3": gff3, "gmt": gmt}


@pytest.fixture
def runner():
    return CliRunner()


def _run(runner, config_path, *args):
    return runner.invoke(cli, ["--config", str(config_path), *args])


def test_cli_help(runner):
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ("info", "reference", "merge", "enrich", "exons"):
        assert command in result.output


def test_info(runner, config_path):
    result = _run(runner, config_path, "info")

    assert result.exit_code == 0
    assert "Isoform Pipeline v" in result.output
    assert "|log2FC| >= 1.0, p <= 0.05" in result.output


def test_reference_command(runner, config_path, gencode_fasta, tmp_path):
    """reference builds, validates, stores and writes the dictionary."""
    result = _run(runner, config_path, "reference", "--fasta", str(gencode_fasta))

    assert result.exit_code == 0, result.output
    assert "Reference complete!" in result.output
    assert (tmp_path / "results" / "reference_transcripts.tsv").exists()
    assert (tmp_path / "results" / "reference_transcripts.provenance.json").exists()

    conn = duckdb.connect(str(tmp_path / "test.duckdb"), read_only=True)
    count = conn.execute("SELECT COUNT(*) FROM reference_transcripts").fetchone()[0]
    conn.close()
    assert count == 5

    again = _run(runner, config_path, "reference", "--fasta", str(gencode_fasta))
    assert again.exit_code == 0
    assert "Skipping build" in again.output


def test_reference_command_malformed(runner, config_path, tmp_path):
    bad = tmp_path / "bad.fa"
    bad.write_text(">ENST1|ENSG1\nACGT\n")

    result = _run(runner, config_path, "reference", "--fasta", str(bad))

    assert result.exit_code == 1
    assert "line 1" in result.output


def test_merge_command(runner, config_path, gencode_fasta, inputs, tmp_path):
    """merge writes the merged table and the isoform switches."""
    _run(runner, config_path, "reference", "--fasta", str(gencode_fasta))

    result = _run(
        runner, config_path, "merge",
        "--deg", str(inputs["deg"]), "--det", str(inputs["det"]),
    )

    assert result.exit_code == 0, result.output
    assert "Isoform switches: 1" in result.output

    merged = pl.read_parquet(tmp_path / "results" / "merged_deg_det.parquet")
    assert merged.height == 5
    assert "biotype_color" in merged.columns

    switches = pl.read_parquet(tmp_path / "results" / "isoform_switches.parquet")
    assert switches["transcript_id"].to_list() == ["ENSMUST00000000003.1"]
    assert switches["transcript_type"].to_list() == ["retained_intron"]


def test_merge_threshold_override(runner, config_path, gencode_fasta, inputs):
    _run(runner, config_path, "reference", "--fasta", str(gencode_fasta))

    result = _run(
        runner, config_path, "merge",
        "--deg", str(inputs["deg"]), "--det", str(inputs["det"]),
        "--transcript-fc", "4.0",
    )

    assert result.exit_code == 0, result.output
    assert "Isoform switches: 0" in result.output


def test_merge_without_reference(runner, config_path, inputs):
    """Without a checkpoint or configured FASTA the command is a usage error."""
    result = _run(
        runner, config_path, "merge",
        "--deg", str(inputs["deg"]), "--det", str(inputs["det"]),
    )

    assert result.exit_code == 2
    assert "reference" in result.output


def fake_prerank(ranks, gene_sets, *, min_size, max_size, permutations, seed):
    return pl.DataFrame({
        "pathway": list(gene_sets),
        "NES": [1.5] * len(gene_sets),
        "pval": [0.01] * len(gene_sets),
        "padj": [0.04] * len(gene_sets),
    })


def test_enrich_command(runner, config_path, gencode_fasta, inputs, tmp_path):
    """enrich reports pathways per biotype partition."""
    _run(runner, config_path, "reference", "--fasta", str(gencode_fasta))

    with patch("isoform_pipeline.enrichment.runner.gseapy_prerank", fake_prerank):
        result = _run(
            runner, config_path, "enrich",
            "--det", str(inputs["det"]), "--gene-sets", str(inputs["gmt"]),
        )

    assert result.exit_code == 0, result.output
    reported = pl.read_parquet(tmp_path / "results" / "enrichment_results.parquet")
    assert sorted(reported["experiment"].to_list()) == [
        "nonsense_mediated_decay", "protein_coding", "retained_intron", "unproductive"
    ]
    assert (reported["pval"] <= 0.05).all()


def test_exons_command(runner, config_path, inputs, tmp_path):
    result = _run(
        runner, config_path, "exons",
        "--gene", "Map4", "--gene", "Absent1", "--gff3", str(inputs["gff3"]),
    )

    assert result.exit_code == 0, result.output
    assert "Absent1 not found" in result.output
    exons = pl.read_parquet(tmp_path / "results" / "exon_annotation.parquet")
    assert exons["start"].to_list() == [100, 500]


def test_exons_requires_genes(runner, config_path, inputs):
    result = _run(runner, config_path, "exons", "--gff3", str(inputs["gff3"]))

    assert result.exit_code == 2


def test_merge_shared_gene_name(runner, config_path, gencode_fasta, inputs, tmp_path):
    """A second gene named Map4 leaves Map4 transcripts unmatched instead of failing."""
    fasta = tmp_path / "par_y.fa"
    fasta.write_text(
        gencode_fasta.read_text()
        + ">ENSMUST00000000099.1|ENSMUSG00000000099.1|-|-|Map4-301|Map4|1100|protein_coding|\nACGT\n"
    )
    deg = tmp_path / "deg_par_y.tsv"
    deg.write_text(DEG_TSV + "ENSMUSG00000000099.1\t0.3\t0.6\t0.4\n")
    _run(runner, config_path, "reference", "--fasta", str(fasta))

    result = _run(runner, config_path, "merge", "--deg", str(deg), "--det", str(inputs["det"]))

    assert result.exit_code == 0, result.output
    assert "left unmatched: Map4" in result.output
    assert "Isoform switches: 0" in result.output

    merged = pl.read_parquet(tmp_path / "results" / "merged_deg_det.parquet")
    assert merged.height == 5
    map4 = merged.filter(pl.col("gene_name") == "Map4")
    assert map4["gene_significant"].to_list() == [None, None, None]
    assert map4["gene_id"].to_list() == ["ENSMUSG00000000002.3"] * 3


def test_info_lists_checkpoints(runner, config_path, gencode_fasta):
    _run(runner, config_path, "reference", "--fasta", str(gencode_fasta))

    result = _run(runner, config_path, "info")

    assert result.exit_code == 0, result.output
    assert "Checkpoints:" in result.output
    assert "reference_transcripts: 5 rows" in result.output


def test_reference_force_drops_derived_tables(runner, config_path, gencode_fasta, inputs, tmp_path):
    """Rebuilding the reference removes tables annotated with the old one."""
    _run(runner, config_path, "reference", "--fasta", str(gencode_fasta))
    _run(runner, config_path, "merge", "--deg", str(inputs["deg"]), "--det", str(inputs["det"]))

    result = _run(runner, config_path, "reference", "--fasta", str(gencode_fasta), "--force")

    assert result.exit_code == 0, result.output
    assert "Dropped stale checkpoint 'merged_deg_det'" in result.output
    assert "Reference complete!" in result.output

    conn = duckdb.connect(str(tmp_path / "test.duckdb"), read_only=True)
    tables = {row[0] for row in conn.execute("SELECT table_name FROM _checkpoints").fetchall()}
    conn.close()
    assert tables == {"reference_transcripts"}
