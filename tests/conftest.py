"""Shared fixtures: a minimal pipeline config and a small transcript FASTA."""

import pytest

from isoform_pipeline.config.loader import load_config


GENCODE_FASTA = """\
>ENSMUST00000000001.5|ENSMUSG00000000001.5|OTTMUSG00000000001.1|OTTMUST00000000001.1|Gnai3-201|Gnai3|3262|UTR5:1-141|CDS:142-1206|UTR3:1207-3262|
ACGTACGTAC
GTACGT
>ENSMUST00000000002.2|ENSMUSG00000000002.3|-|-|Map4-201|Map4|1200|protein_coding|
ACGT
>ENSMUST00000000003.1|ENSMUSG00000000002.3|-|-|Map4-202|Map4|900|retained_intron|
ACGTAC
>ENSMUST00000000004.1|ENSMUSG00000000002.3|-|-|Map4-203|Map4|640|nonsense_mediated_decay|
ACG
>ENSMUST00000000005.1|ENSMUSG00000000005.1|-|-|Cd99-201|Cd99|2000|lncRNA|
ACGTACGT
"""


@pytest.fixture
def config_path(tmp_path):
    """Write a minimal config YAML pointing everything into tmp_path."""
    path = tmp_path / "test_config.yaml"
    path.write_text(f"""
data_dir: {tmp_path / 'data'}
output_dir: {tmp_path / 'results'}
duckdb_path: {tmp_path / 'test.duckdb'}
reference:
  fasta: null
  gff3: null
thresholds:
  gene:
    fc: 1.0
    p: 0.05
  transcript:
    fc: 1.0
    p: 0.05
enrichment:
  pval_cutoff: 0.05
  rank_column: stat
  min_size: 1
  max_size: 500
  permutations: 10
  seed: 1
""")
    return path


@pytest.fixture
def test_config(config_path):
    """Loaded PipelineConfig for config_path."""
    return load_config(config_path)


@pytest.fixture
def gencode_fasta(tmp_path):
    """Small GENCODE-style transcript FASTA."""
    path = tmp_path / "transcripts.fa"
    path.write_text(GENCODE_FASTA)
    return path
