"""Reference command: build the transcript -> gene dictionary.

Orchestrates:
1. Load config
2. Create PipelineStore and ProvenanceTracker
3. Reuse an existing reference checkpoint, or drop it and its derived tables (--force)
4. Parse the transcript FASTA headers
5. Validate the dictionary
6. Save to DuckDB and write TSV/Parquet outputs
"""

import logging
import sys
import warnings
from pathlib import Path

import click
import polars as pl

from isoform_pipeline.config.loader import load_config_with_overrides
from isoform_pipeline.enrichment.models import ENRICHMENT_RAW_TABLE_NAME, ENRICHMENT_TABLE_NAME
from isoform_pipeline.expression.models import DEG_TABLE_NAME, DET_TABLE_NAME
from isoform_pipeline.merge.merger import MERGED_TABLE_NAME
from isoform_pipeline.output import write_table_output
from isoform_pipeline.persistence import PipelineStore, ProvenanceTracker
from isoform_pipeline.reference import (
    REFERENCE_TABLE_NAME,
    build_reference_table,
    validate_reference_table,
)

logger = logging.getLogger(__name__)

# Tables annotated with the reference; rebuilding it invalidates them
DERIVED_TABLES = (
    DEG_TABLE_NAME,
    DET_TABLE_NAME,
    MERGED_TABLE_NAME,
    ENRICHMENT_RAW_TABLE_NAME,
    ENRICHMENT_TABLE_NAME,
)


def echo_validation(messages: list[str]) -> None:
    """Print validation messages coloured by severity."""
    for msg in messages:
        if 'FAILED' in msg:
            click.echo(click.style(f"  {msg}", fg='red'))
        elif 'WARNING' in msg:
            click.echo(click.style(f"  {msg}", fg='yellow'))
        else:
            click.echo(f"  {msg}")


def echo_warnings(caught: list[warnings.WarningMessage]) -> None:
    """Print warnings recorded by warnings.catch_warnings(record=True)."""
    for w in caught:
        click.echo(click.style(f"  WARNING: {w.message}", fg='yellow'))


def load_reference(
    store: PipelineStore,
    config,
    fasta: Path | None = None,
) -> pl.DataFrame:
    """
    Return the reference dictionary from its checkpoint, building it if absent.

    Args:
        store: PipelineStore holding the reference checkpoint
        config: PipelineConfig with reference settings
        fasta: FASTA overriding config.reference.fasta when building

    Returns:
        Reference dictionary DataFrame

    Raises:
        click.UsageError: If no checkpoint exists and no FASTA is configured
    """
    if store.has_checkpoint(REFERENCE_TABLE_NAME):
        df = store.load_dataframe(REFERENCE_TABLE_NAME)
        if df is not None:
            click.echo(f"  Loaded {df.height} transcripts from '{REFERENCE_TABLE_NAME}' checkpoint")
            return df

    fasta = fasta or config.reference.fasta
    if fasta is None:
        raise click.UsageError(
            "No reference checkpoint and no FASTA configured. "
            "Run 'isoform-pipeline reference --fasta PATH' first."
        )

    click.echo(f"  Building reference from {fasta}...")
    df = build_reference_table(
        fasta,
        fmt=config.reference.format,
        strip_version=config.reference.strip_version,
    )
    store.save_dataframe(
        df=df,
        table_name=REFERENCE_TABLE_NAME,
        description=f"Transcript dictionary from {Path(fasta).name}",
    )
    click.echo(f"  Built {df.height} transcripts")
    return df


@click.command('reference')
@click.option(
    '--fasta',
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help='Transcript FASTA (overrides reference.fasta in config)'
)
@click.option(
    '--strip-version/--keep-version',
    default=None,
    help='Strip ".N" version suffixes from Ensembl IDs (overrides config)'
)
@click.option(
    '--force',
    is_flag=True,
    help='Rebuild even if a reference checkpoint exists'
)
@click.pass_context
def reference(ctx, fasta, strip_version, force):
    """Build the transcript -> gene reference dictionary.

    Parses GENCODE or Ensembl transcript FASTA headers into one row per
    transcript (IDs, names, biotype, length), validates it and stores it for
    the merge and enrich commands.
    """
    config_path = ctx.obj['config_path']
    click.echo(click.style("=== Reference Dictionary ===", bold=True))
    click.echo()

    store = None
    try:
        click.echo("Loading configuration...")
        config = load_config_with_overrides(config_path, {
            'reference.fasta': str(fasta) if fasta else None,
            'reference.strip_version': strip_version,
        })
        click.echo(click.style(f"  Config loaded: {config_path}", fg='green'))
        click.echo()

        store = PipelineStore.from_config(config)
        provenance = ProvenanceTracker.from_config(config)

        if store.has_checkpoint(REFERENCE_TABLE_NAME):
            if not force:
                df = store.load_dataframe(REFERENCE_TABLE_NAME)
                click.echo(click.style(
                    f"Reference checkpoint exists ({df.height} transcripts). "
                    "Skipping build (use --force to rebuild).",
                    fg='yellow'
                ))
                return
            for table_name in (REFERENCE_TABLE_NAME, *DERIVED_TABLES):
                if store.has_checkpoint(table_name):
                    store.drop_checkpoint(table_name)
                    click.echo(f"  Dropped stale checkpoint '{table_name}'")
            click.echo()

        if config.reference.fasta is None:
            click.echo(click.style(
                "No transcript FASTA given (use --fasta or set reference.fasta)",
                fg='red'
            ), err=True)
            sys.exit(1)

        click.echo(f"Parsing transcript headers from {config.reference.fasta}...")
        df = build_reference_table(
            config.reference.fasta,
            fmt=config.reference.format,
            strip_version=config.reference.strip_version,
        )
        click.echo(click.style(f"  Parsed {df.height} transcripts", fg='green'))
        click.echo()
        provenance.record_step('build_reference', {
            'fasta': str(config.reference.fasta),
            'transcripts': df.height,
            'strip_version': config.reference.strip_version,
        })

        click.echo("Validating reference dictionary...")
        validation = validate_reference_table(df)
        echo_validation(validation.messages)
        if not validation.passed:
            click.echo()
            click.echo(click.style("Reference validation failed", fg='red'), err=True)
            sys.exit(1)
        click.echo(click.style("  Validation passed", fg='green'))
        click.echo()

        click.echo("Saving reference dictionary...")
        store.save_dataframe(
            df=df,
            table_name=REFERENCE_TABLE_NAME,
            description=f"Transcript dictionary from {Path(config.reference.fasta).name}",
        )
        paths = write_table_output(
            df,
            config.output_dir,
            REFERENCE_TABLE_NAME,
            sort_by=["gene_id", "transcript_id"],
        )
        provenance.save_sidecar(paths['tsv'])
        provenance.save_to_store(store)
        click.echo(click.style(f"  Saved '{REFERENCE_TABLE_NAME}' table and {paths['tsv']}", fg='green'))
        click.echo()

        click.echo(click.style("=== Reference Summary ===", bold=True))
        click.echo(f"Transcripts: {validation.transcript_count}")
        click.echo(f"Genes: {validation.gene_count}")
        click.echo(f"Biotypes: {df.get_column('transcript_type').n_unique()}")
        click.echo(f"DuckDB Path: {config.duckdb_path}")
        click.echo()
        click.echo(click.style("Reference complete!", fg='green', bold=True))

    except Exception as e:
        click.echo(click.style(f"Reference build failed: {e}", fg='red'), err=True)
        logger.exception("Reference command failed")
        sys.exit(1)
    finally:
        if store is not None:
            store.close()
