"""Merge command: combine gene-level and transcript-level DE results.

Annotates both tables from the reference dictionary, flags significance
with the configured thresholds, merges them on the gene key and reports
isoform switches (significant transcripts of non-significant genes).
"""

import logging
import sys
import warnings
from pathlib import Path

import click

from isoform_pipeline.annotation import annotate, summarize_significance
from isoform_pipeline.cli.reference_cmd import echo_warnings, load_reference
from isoform_pipeline.config.loader import load_config_with_overrides
from isoform_pipeline.expression import (
    DEG_TABLE_NAME,
    DET_TABLE_NAME,
    load_to_duckdb,
    read_de_table,
)
from isoform_pipeline.merge import ANCHORS, MERGED_TABLE_NAME, isoform_switches, merge_deg_det
from isoform_pipeline.output import add_biotype_colors, write_table_output
from isoform_pipeline.persistence import PipelineStore, ProvenanceTracker

logger = logging.getLogger(__name__)


@click.command('merge')
@click.option(
    '--deg',
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help='Gene-level DE table (DESeq2/edgeR/limma; TSV or CSV)'
)
@click.option(
    '--det',
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help='Transcript-level DE table (DESeq2/sleuth; TSV or CSV)'
)
@click.option(
    '--anchor',
    type=click.Choice(ANCHORS),
    default='transcript',
    show_default=True,
    help='Side whose rows are all kept in the merged table'
)
@click.option(
    '--on',
    'on',
    type=click.Choice(['gene_name', 'gene_id']),
    default='gene_name',
    show_default=True,
    help='Gene key joining transcripts to genes'
)
@click.option('--gene-fc', type=float, default=None, help='Gene |log2FC| threshold (overrides config)')
@click.option('--gene-p', type=float, default=None, help='Gene p-value threshold (overrides config)')
@click.option('--transcript-fc', type=float, default=None, help='Transcript |log2FC| threshold (overrides config)')
@click.option('--transcript-p', type=float, default=None, help='Transcript p-value threshold (overrides config)')
@click.option(
    '--include-unmatched',
    is_flag=True,
    help='Count significant transcripts whose gene has no DEG row as isoform switches'
)
@click.pass_context
def merge(ctx, deg, det, anchor, on, gene_fc, gene_p, transcript_fc, transcript_p, include_unmatched):
    """Merge DEG and DET tables and report isoform switches.

    Writes merged_deg_det and isoform_switches as TSV/Parquet to the output
    directory and checkpoints the imported and merged tables in DuckDB.
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== DEG/DET Merge ===", bold=True))
    click.echo()

    store = None
    try:
        click.echo("Loading configuration...")
        config = load_config_with_overrides(config_path, {
            'thresholds.gene.fc': gene_fc,
            'thresholds.gene.p': gene_p,
            'thresholds.transcript.fc': transcript_fc,
            'thresholds.transcript.p': transcript_p,
        })
        gene_t = config.thresholds.gene
        tx_t = config.thresholds.transcript
        click.echo(click.style(f"  Config loaded: {config_path}", fg='green'))
        click.echo(f"  Gene thresholds: |log2FC| >= {gene_t.fc}, p <= {gene_t.p}")
        click.echo(f"  Transcript thresholds: |log2FC| >= {tx_t.fc}, p <= {tx_t.p}")
        click.echo()

        store = PipelineStore.from_config(config)
        provenance = ProvenanceTracker.from_config(config)

        click.echo("Loading reference dictionary...")
        reference = load_reference(store, config)
        click.echo()

        click.echo("Importing DE tables...")
        deg_df = read_de_table(deg, level='gene')
        det_df = read_de_table(det, level='transcript')
        click.echo(f"  DEG: {deg_df.height} genes from {deg}")
        click.echo(f"  DET: {det_df.height} transcripts from {det}")
        click.echo()

        click.echo("Annotating from reference...")
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            deg_df, deg_report = annotate(deg_df, reference, key='gene_id')
            det_df, det_report = annotate(det_df, reference, key='transcript_id')
        echo_warnings(caught)
        click.echo(f"  DEG matched: {deg_report.matched_rows}/{deg_report.total_rows}")
        click.echo(f"  DET matched: {det_report.matched_rows}/{det_report.total_rows}")
        click.echo()
        provenance.record_step('annotate', {
            'deg_unmatched': deg_report.unmatched_rows,
            'det_unmatched': det_report.unmatched_rows,
        })

        load_to_duckdb(deg_df, DEG_TABLE_NAME, store, provenance, f"Gene-level DE from {Path(deg).name}")
        load_to_duckdb(det_df, DET_TABLE_NAME, store, provenance, f"Transcript-level DE from {Path(det).name}")

        click.echo(f"Merging on {on} (anchor: {anchor})...")
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            merged = merge_deg_det(
                deg_df,
                det_df,
                gene_t.fc,
                gene_t.p,
                det_fc_threshold=tx_t.fc,
                det_p_threshold=tx_t.p,
                anchor=anchor,
                on=on,
            )
        echo_warnings(caught)
        switches = isoform_switches(merged, include_unmatched=include_unmatched)

        gene_summary = summarize_significance(
            deg_df, 'log2FoldChange', 'pvalue',
            fc_threshold=gene_t.fc, p_threshold=gene_t.p,
        )
        tx_summary = summarize_significance(
            det_df, 'log2FoldChange', 'pvalue',
            fc_threshold=tx_t.fc, p_threshold=tx_t.p,
        )
        provenance.record_step('merge_deg_det', {
            'anchor': anchor,
            'on': on,
            'merged_rows': merged.height,
            'significant_genes': gene_summary.significant,
            'significant_transcripts': tx_summary.significant,
            'isoform_switches': switches.height,
        })
        click.echo(click.style(f"  Merged {merged.height} rows", fg='green'))
        click.echo()

        click.echo("Saving outputs...")
        store.save_dataframe(
            df=merged,
            table_name=MERGED_TABLE_NAME,
            description=f"DEG/DET merged on {on}, {anchor}-anchored",
        )
        sort_by = ['gene_name', 'transcript_id']
        merged_paths = write_table_output(
            add_biotype_colors(merged), config.output_dir, MERGED_TABLE_NAME, sort_by=sort_by
        )
        switch_paths = write_table_output(
            add_biotype_colors(switches), config.output_dir, 'isoform_switches', sort_by=sort_by
        )
        provenance.save_sidecar(merged_paths['tsv'])
        provenance.save_to_store(store)
        click.echo(click.style(f"  Merged table: {merged_paths['tsv']}", fg='green'))
        click.echo(click.style(f"  Isoform switches: {switch_paths['tsv']}", fg='green'))
        click.echo()

        click.echo(click.style("=== Merge Summary ===", bold=True))
        click.echo(f"Significant genes: {gene_summary.significant}/{gene_summary.total}")
        click.echo(f"Significant transcripts: {tx_summary.significant}/{tx_summary.total}")
        click.echo(f"Isoform switches: {switches.height}")
        click.echo()
        click.echo(click.style("Merge complete!", fg='green', bold=True))

    except click.UsageError:
        raise
    except Exception as e:
        click.echo(click.style(f"Merge failed: {e}", fg='red'), err=True)
        logger.exception("Merge command failed")
        sys.exit(1)
    finally:
        if store is not None:
            store.close()
