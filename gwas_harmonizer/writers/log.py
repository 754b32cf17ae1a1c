"""Log file writer for run statistics and summary."""

from pathlib import Path

from gwas_harmonizer.config import Config
from gwas_harmonizer.models import Statistics


def _summary_lines(stats: Statistics) -> list[str]:
    return [
        "Pre-formatting",
        f" Rows in raw file {stats.input_rows}",
        f" Ambiguous alleles (I, D, IND, DEL) {stats.ambiguous_alleles}",
        f" Missing or non-finite effect size {stats.invalid_effect}",
        f" Failed odds ratio conversion {stats.failed_or_conversion}",
        f" Total removed {stats.preformat_dropped}",
        "",
        "Liftover",
        f" Rows without hg19 coordinates {stats.unlifted_hg19}",
        f" Rows without hg38 coordinates {stats.unlifted_hg38}",
        "",
        "Matching to dbSNP",
        f" Rows checked {stats.matcher_input}",
        f" Direct matches {stats.direct_matches}",
        f" Flipped candidates {stats.flipped_candidates}",
        f" Flipped candidates discarded (direct match exists) {stats.flipped_collisions}",
        f" Flipped rows accepted {stats.flipped_accepted}",
        f" Duplicates removed {stats.duplicates_removed}",
        f" Total matched {stats.matched}",
        f" Residual rows {stats.residual}",
        f" Removed as variants already matched {stats.shadowed_by_match}",
        f" Removed for missing coordinates {stats.missing_coordinates}",
        "",
        "Reference base lookup",
        f" Chunks dispatched {stats.chunks_dispatched}",
        f" Chunk retries {stats.chunk_retries}",
        f" Chunks failed {stats.chunks_failed}",
        f" Residual rows unchanged {stats.resolved_ref}",
        f" Residual rows flipped {stats.resolved_flipped}",
        f" Residual rows discarded {stats.resolved_discarded}",
        "",
        f"Total rows written {stats.final_rows}",
    ]


def write_log_file(
    output_path: Path,
    trait_name: str,
    config: Config,
    stats: Statistics,
) -> Path:
    """Write LOG file with run statistics.

    Args:
        output_path: Harmonized output file; the log is written beside it
        trait_name: Harmonized trait
        config: Configuration used for the run
        stats: Statistics collected during processing

    Returns:
        Path to generated log file
    """
    log_path = output_path.parent / f"LOG-{trait_name}.txt"

    with open(log_path, "w") as f:
        # Options used
        f.write("Options Set:\n")
        f.write(f"Trait name:                  {trait_name}\n")
        if config.legend_file is not None:
            f.write(f"Legend file:                 {config.legend_file}\n")
        else:
            f.write(f"Google Sheets legend:        {config.google_sheets_id}\n")
        f.write(f"Raw input directory:         {config.raw_input_dir}\n")
        f.write(f"dbSNP filename:              {config.dbsnp_file}\n")
        f.write(f"FASTA reference:             {config.fasta_ref}\n")
        f.write(f"Liftover directory:          {config.liftover_dir}\n")
        f.write(f"Output filename:             {output_path}\n")
        f.write(f"Threads:                     {config.threads or 'auto'}\n")
        f.write(f"Batch size:                  {config.batch_size}\n")
        f.write(f"Max attempts per chunk:      {config.max_attempts}\n")

        if config.verbose:
            f.write("Verbose logging flag set\n")
        f.write("\n\n")

        for line in _summary_lines(stats):
            f.write(f"{line}\n")

    return log_path


def print_summary(stats: Statistics) -> None:
    """Print summary statistics to stdout.

    Args:
        stats: Statistics collected during processing
    """
    print()
    for line in _summary_lines(stats):
        print(line)
