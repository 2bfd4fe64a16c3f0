"""Enrich command: per-biotype rank-based gene-set enrichment."""

import logging
import sys
import warnings
from pathlib import Path

import click

from isoform_pipeline.annotation import annotate
from isoform_pipeline.cli.reference_cmd import echo_warnings, load_reference
from isoform_pipeline.config.loader import load_config_with_overrides
from isoform_pipeline.enrichment import (
    ENRICHMENT_RAW_TABLE_NAME,
    ENRICHMENT_TABLE_NAME,
    read_gene_sets,
    report_enrichment,
    run_enrichment_partitions,
)
from isoform_pipeline.expression import read_de_table
from isoform_pipeline.output import write_table_output
from isoform_pipeline.persistence import PipelineStore, ProvenanceTracker
from isoform_pipeline.reference import tx2gene

logger = logging.getLogger(__name__)


@click.command('enrich')
@click.option(
    '--det',
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help='Transcript-level DE table with the rank statistic'
)
@click.option(
    '--gene-sets',
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help='Gene sets as GMT or two-column (pathway, gene) TSV'
)
@click.option(
    '--gene-key',
    type=click.Choice(['gene_name', 'gene_id']),
    default='gene_name',
    show_default=True,
    help='Gene identifier used by the gene sets'
)
@click.option('--rank-column', default=None, help='Rank statistic column (overrides config)')
@click.option('--pval-cutoff', type=float, default=None, help='Report cut-off on pval (overrides config)')
@click.pass_context
def enrich(ctx, det, gene_sets, gene_key, rank_column, pval_cutoff):
    """Run gene-set enrichment on each transcript biotype partition.

    Partitions transcripts into protein_coding, unproductive and each
    individual unproductive biotype, ranks genes by the transcript statistic
    and runs a pre-ranked enrichment test per partition.
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== Biotype Enrichment ===", bold=True))
    click.echo()

    store = None
    try:
        click.echo("Loading configuration...")
        config = load_config_with_overrides(config_path, {
            'enrichment.rank_column': rank_column,
            'enrichment.pval_cutoff': pval_cutoff,
        })
        settings = config.enrichment
        click.echo(click.style(f"  Config loaded: {config_path}", fg='green'))
        click.echo(f"  Rank column: {settings.rank_column}")
        click.echo(f"  Excluded biotypes: {', '.join(settings.excluded_biotypes) or '-'}")
        click.echo()

        store = PipelineStore.from_config(config)
        provenance = ProvenanceTracker.from_config(config)

        click.echo("Loading reference dictionary...")
        reference = load_reference(store, config)
        click.echo()

        click.echo("Loading inputs...")
        det_df = read_de_table(det, level='transcript')
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            det_df, report = annotate(det_df, reference, key='transcript_id')
        echo_warnings(caught)
        pathways = read_gene_sets(gene_sets)
        click.echo(f"  Transcripts: {det_df.height} ({report.matched_rows} annotated)")
        click.echo(f"  Gene sets: {len(pathways)}")
        click.echo()

        click.echo("Running enrichment per partition...")
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            raw = run_enrichment_partitions(
                det_df,
                pathways,
                tx2gene(reference, value=gene_key),
                rank_column=settings.rank_column,
                excluded_biotypes=settings.excluded_biotypes,
                min_size=settings.min_size,
                max_size=settings.max_size,
                permutations=settings.permutations,
                seed=settings.seed,
            )
        echo_warnings(caught)
        reported = report_enrichment(raw, settings.pval_cutoff)
        provenance.record_step('run_enrichment', {
            'gene_sets': str(gene_sets),
            'gene_key': gene_key,
            'raw_rows': raw.height,
            'reported_rows': reported.height,
            'partitions': sorted(raw.get_column('experiment').unique().to_list()),
        })
        click.echo(click.style(
            f"  {reported.height} pathways at pval <= {settings.pval_cutoff} "
            f"({raw.height} tested)",
            fg='green'
        ))
        click.echo()

        click.echo("Saving outputs...")
        store.save_dataframe(raw, ENRICHMENT_RAW_TABLE_NAME, "Unfiltered per-biotype enrichment")
        store.save_dataframe(
            reported,
            ENRICHMENT_TABLE_NAME,
            f"Per-biotype enrichment at pval <= {settings.pval_cutoff}",
        )
        paths = write_table_output(
            reported, config.output_dir, ENRICHMENT_TABLE_NAME,
            sort_by=['experiment', 'pval', 'pathway'],
        )
        provenance.save_sidecar(paths['tsv'])
        provenance.save_to_store(store)
        click.echo(click.style(f"  Enrichment table: {paths['tsv']}", fg='green'))
        click.echo()

        click.echo(click.style("=== Enrichment Summary ===", bold=True))
        if reported.height:
            counts = reported.group_by('experiment').len().sort('experiment')
            for row in counts.iter_rows(named=True):
                click.echo(f"  {row['experiment']}: {row['len']}")
        else:
            click.echo("  No pathway passed the cut-off")
        click.echo()
        click.echo(click.style("Enrichment complete!", fg='green', bold=True))

    except click.UsageError:
        raise
    except Exception as e:
        click.echo(click.style(f"Enrichment failed: {e}", fg='red'), err=True)
        logger.exception("Enrich command failed")
        sys.exit(1)
    finally:
        if store is not None:
            store.close()
