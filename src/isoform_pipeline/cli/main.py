"""Main CLI entry point for isoform-pipeline.

Provides command group with global options and subcommands for pipeline operations.
"""

import logging
from pathlib import Path

import click

from isoform_pipeline import __version__
from isoform_pipeline.config.loader import load_config
from isoform_pipeline.persistence import PipelineStore
from isoform_pipeline.cli.reference_cmd import reference
from isoform_pipeline.cli.merge_cmd import merge
from isoform_pipeline.cli.enrich_cmd import enrich
from isoform_pipeline.cli.exons_cmd import exons


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default='config/default.yaml',
    help='Path to pipeline configuration YAML file'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.pass_context
def cli(ctx, config, verbose):
    """Isoform-pipeline: transcript-level differential expression wrangling.

    Builds the transcript/gene reference dictionary, merges gene- and
    transcript-level DE results, runs per-biotype enrichment and extracts
    exon annotation for plotting.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display pipeline information and configuration summary."""
    config_path = ctx.obj['config_path']

    click.echo(f"Isoform Pipeline v{__version__}")
    click.echo(f"Config: {config_path}")
    click.echo()

    try:
        config = load_config(config_path)

        config_hash = config.config_hash()
        click.echo(f"Config Hash: {config_hash[:16]}...")
        click.echo()

        click.echo(click.style("Reference:", bold=True))
        click.echo(f"  FASTA: {config.reference.fasta}")
        click.echo(f"  GFF3:  {config.reference.gff3}")
        click.echo(f"  Strip Versions: {config.reference.strip_version}")
        click.echo()

        click.echo(click.style("Significance Thresholds:", bold=True))
        gene = config.thresholds.gene
        transcript = config.thresholds.transcript
        click.echo(f"  Gene:       |log2FC| >= {gene.fc}, p <= {gene.p}")
        click.echo(f"  Transcript: |log2FC| >= {transcript.fc}, p <= {transcript.p}")
        click.echo()

        click.echo(click.style("Enrichment:", bold=True))
        click.echo(f"  Rank Column: {config.enrichment.rank_column}")
        click.echo(f"  Report Cutoff: pval <= {config.enrichment.pval_cutoff}")
        click.echo(f"  Excluded Biotypes: {', '.join(config.enrichment.excluded_biotypes) or '-'}")
        click.echo(f"  Gene Set Size: {config.enrichment.min_size}-{config.enrichment.max_size}")
        click.echo()

        click.echo(click.style("Paths:", bold=True))
        click.echo(f"  Data Directory: {config.data_dir}")
        click.echo(f"  Output Directory: {config.output_dir}")
        click.echo(f"  DuckDB Path: {config.duckdb_path}")

        if config.duckdb_path.exists():
            click.echo()
            click.echo(click.style("Checkpoints:", bold=True))
            with PipelineStore.from_config(config) as store:
                checkpoints = store.checkpoints()
            if not checkpoints:
                click.echo("  (none)")
            for checkpoint in checkpoints:
                click.echo(
                    f"  {checkpoint.table_name}: {checkpoint.row_count} rows "
                    f"({checkpoint.created_at:%Y-%m-%d %H:%M}) {checkpoint.description}"
                )

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


# Register commands
cli.add_command(reference)
cli.add_command(merge)
cli.add_command(enrich)
cli.add_command(exons)


if __name__ == '__main__':
    cli()
