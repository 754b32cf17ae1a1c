"""Main orchestration for the GWAS harmonizer.

Coordinates all stages for one trait: legend lookup, pre-formatting,
coordinate lift, catalogue matching, reference-base resolution of the
residual rows, merge, and output.
"""

import logging

from rich.console import Console

from gwas_harmonizer.checks.matcher import match_variants
from gwas_harmonizer.checks.reconcile import reconcile_residual
from gwas_harmonizer.config import Config
from gwas_harmonizer.legend import fetch_google_sheet, load_legend_file, select_trait
from gwas_harmonizer.liftover import LiftoverRunner, lift_coordinates
from gwas_harmonizer.merger import merge_tables
from gwas_harmonizer.models import Statistics, VariantTable
from gwas_harmonizer.preformat import preformat
from gwas_harmonizer.reference.catalogue import ReferenceCatalogue
from gwas_harmonizer.sequence.faidx import FaidxLookup, SequenceLookup, make_region
from gwas_harmonizer.sequence.pool import SequenceResolutionPool, make_chunks
from gwas_harmonizer.writers.log import print_summary, write_log_file
from gwas_harmonizer.writers.table import write_table_gz

logger = logging.getLogger(__name__)

console = Console()


def harmonize(
    table: VariantTable,
    catalogue: ReferenceCatalogue,
    lookup: SequenceLookup,
    config: Config,
    stats: Statistics | None = None,
) -> VariantTable:
    """Harmonize a lifted table against the catalogue and the reference genome.

    1. Match rows against the catalogue (direct, then flipped)
    2. Fetch the hg38 reference base for every residual row
    3. Keep residual rows whose alleles include that base
    4. Merge matched and resolved rows

    Args:
        table: Lifted table (consumed)
        catalogue: Loaded reference catalogue
        lookup: Reference-base lookup
        config: Run configuration (pool settings)
        stats: Optional Statistics object to update (mutated in place)

    Returns:
        Final harmonized table
    """
    if stats is None:
        stats = Statistics()

    result = match_variants(table, catalogue, stats)

    residual = result.residual
    chr38 = residual.idx("chr_hg38")
    pos38 = residual.idx("pos_hg38")
    regions = [make_region(row[chr38], row[pos38], config.chrom_prefix) for row in residual.rows]

    n_chunks = len(make_chunks(len(regions), config.batch_size))
    pool = SequenceResolutionPool(
        lookup=lookup,
        threads=config.worker_count(n_chunks),
        batch_size=config.batch_size,
        max_attempts=config.max_attempts,
        retry_backoff=config.retry_backoff,
        stats=stats,
        console=console,
    )
    slots = pool.resolve(regions)
    resolved = reconcile_residual(residual, slots, stats)

    final = merge_tables(result.matched, resolved, result.annotation_columns)
    stats.final_rows = len(final)
    return final


def run_pipeline(config: Config) -> Statistics:
    """Run the full harmonization for one trait.

    Args:
        config: Configuration with file paths and pool settings

    Returns:
        Statistics collected during the run

    Raises:
        ConfigurationError: On bad legend rows, inputs or reference rows
        LiftoverError: If liftOver fails
        SequenceToolError: If reference-base results are inconsistent
    """
    stats = Statistics()

    # Step 1: Formatting legend
    if config.legend_file is not None:
        console.print(f"Reading legend {config.legend_file.name}")
        legend = load_legend_file(config.legend_file)
    else:
        console.print(f"Fetching legend {config.google_sheets_id}")
        legend = fetch_google_sheet(config.google_sheets_id, config.google_sheets_api_key)
    entry = select_trait(legend, config.trait_name)
    logger.debug(f"Legend entry: {entry}")

    # Step 2: Pre-format raw summary statistics
    table = preformat(entry, config.raw_input_dir, stats)
    console.print(f"Pre-formatted {len(table):,} of {stats.input_rows:,} rows\n")

    # Step 3: Lift coordinates to hg19 and hg38
    runner = LiftoverRunner(config.liftover, config.liftover_dir)
    table = lift_coordinates(
        table,
        runner,
        stats,
        chrom_prefix=config.chrom_prefix,
        keep_temp_files=config.keep_temp_files,
    )
    logger.info(
        f"Liftover: {stats.unlifted_hg19:,} rows without hg19, "
        f"{stats.unlifted_hg38:,} rows without hg38 coordinates"
    )

    # Step 4: Load reference catalogue
    console.print(f"Reading {config.dbsnp_file.name}")
    catalogue = ReferenceCatalogue()
    catalogue.load(config.dbsnp_file, verbose=config.verbose)
    console.print(f"Loaded {len(catalogue):,} variants from dbSNP\n")

    # Step 5: Match, resolve residual rows, merge
    lookup = FaidxLookup(config.samtools, config.fasta_ref)
    final = harmonize(table, catalogue, lookup, config, stats)

    # Clear catalogue to free memory
    catalogue.clear()

    # Step 6: Write output and log
    write_table_gz(final, config.output_file)
    log_path = write_log_file(config.output_file, config.trait_name, config, stats)

    print_summary(stats)

    console.print("\n[bold]Output files generated:[/bold]")
    console.print(f"  Harmonized table: {config.output_file} ({stats.final_rows:,} rows)")
    console.print(f"  Log file:         {log_path}")
    console.print("\n[green]Harmonization complete![/green]\n")

    return stats
