"""Exons command: extract exon/CDS/UTR rows for selected genes."""

import logging
import sys
from pathlib import Path

import click

from isoform_pipeline.config.loader import load_config_with_overrides
from isoform_pipeline.exons import EXON_TABLE_NAME, prepare_exon_annotation
from isoform_pipeline.output import write_table_output
from isoform_pipeline.persistence import PipelineStore, ProvenanceTracker

logger = logging.getLogger(__name__)


def _read_gene_list(path: Path) -> list[str]:
    with open(path) as f:
        return [line.strip() for line in f if line.strip() and not line.startswith('#')]


@click.command('exons')
@click.option(
    '--gene',
    'genes',
    multiple=True,
    help='Gene symbol to extract (repeatable)'
)
@click.option(
    '--genes-file',
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help='File with one gene symbol per line'
)
@click.option(
    '--gff3',
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help='GFF3 annotation (overrides reference.gff3 in config)'
)
@click.pass_context
def exons(ctx, genes, genes_file, gff3):
    """Extract exon annotation for the transcripts of selected genes.

    Writes one row per exon/CDS/UTR feature (transcript_id, gene_name,
    seqid, start, end, strand, feature_type) for transcript structure plots.
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== Exon Annotation ===", bold=True))
    click.echo()

    requested = list(genes)
    if genes_file:
        requested.extend(_read_gene_list(genes_file))
    if not requested:
        raise click.UsageError("Give at least one --gene or a --genes-file")

    store = None
    try:
        config = load_config_with_overrides(config_path, {
            'reference.gff3': str(gff3) if gff3 else None,
        })
        if config.reference.gff3 is None:
            click.echo(click.style(
                "No GFF3 given (use --gff3 or set reference.gff3)", fg='red'
            ), err=True)
            sys.exit(1)

        store = PipelineStore.from_config(config)
        provenance = ProvenanceTracker.from_config(config)

        click.echo(f"Reading {config.reference.gff3} for {len(requested)} genes...")
        df = prepare_exon_annotation(config.reference.gff3, requested)

        found = set(df.get_column('gene_name').unique().to_list())
        missing = [g for g in requested if g not in found]
        for gene in missing:
            click.echo(click.style(f"  WARNING: {gene} not found in annotation", fg='yellow'))
        click.echo(click.style(
            f"  {df.height} features, {df.get_column('transcript_id').n_unique()} transcripts",
            fg='green'
        ))
        click.echo()
        provenance.record_step('prepare_exon_annotation', {
            'gff3': str(config.reference.gff3),
            'requested_genes': len(requested),
            'missing_genes': missing,
            'features': df.height,
        })

        store.save_dataframe(df, EXON_TABLE_NAME, f"Exon annotation for {len(found)} genes")
        paths = write_table_output(
            df, config.output_dir, EXON_TABLE_NAME,
            sort_by=['transcript_id', 'start', 'end'],
        )
        provenance.save_sidecar(paths['tsv'])
        click.echo(click.style(f"Exon annotation: {paths['tsv']}", fg='green'))
        click.echo(click.style("Exons complete!", fg='green', bold=True))

    except Exception as e:
        click.echo(click.style(f"Exon annotation failed: {e}", fg='red'), err=True)
        logger.exception("Exons command failed")
        sys.exit(1)
    finally:
        if store is not None:
            store.close()
