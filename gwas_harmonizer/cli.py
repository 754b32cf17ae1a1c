"""Typer CLI for the GWAS harmonizer.

Usage:
    # Legend from a local CSV export
    gwas-harmonizer --legend legend.csv -t LDL -i raw/ -d dbsnp.tsv.gz \\
        -f hg38.fa -o LDL.tsv.gz

    # Legend from Google Sheets (key from GOOGLE_SHEETS_API_KEY)
    gwas-harmonizer -g <sheet id> -t LDL -i raw/ -d dbsnp.tsv.gz \\
        -f hg38.fa -o LDL.tsv.gz -r liftover/ -j 8
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from gwas_harmonizer import __version__
from gwas_harmonizer.exceptions import HarmonizerError

app = typer.Typer(
    name="gwas-harmonizer",
    help="Harmonize GWAS summary statistics against dbSNP and the hg38 reference genome",
    add_completion=False,
)

console = Console()


@app.command()
def harmonize(
    trait_name: Annotated[
        str,
        typer.Option(
            "--trait-name", "-t",
            help="Trait to harmonize (trait_name column of the legend)",
        ),
    ],
    raw_input_dir: Annotated[
        Path,
        typer.Option(
            "--raw-input-dir", "-i",
            help="Directory the legend's file_path values are relative to",
            exists=True,
            file_okay=False,
            dir_okay=True,
        ),
    ],
    dbsnp: Annotated[
        Path,
        typer.Option(
            "--dbsnp", "-d",
            help="dbSNP catalogue (tab-delimited, may be gzipped)",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    fasta: Annotated[
        Path,
        typer.Option(
            "--fasta", "-f",
            help="Indexed hg38 FASTA reference",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    output: Annotated[
        Path,
        typer.Option(
            "--output", "-o",
            help="Output file (gzipped TSV)",
            dir_okay=False,
        ),
    ],
    legend: Annotated[
        Path | None,
        typer.Option(
            "--legend",
            help="Formatting legend exported as CSV/TSV",
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    google_sheets_id: Annotated[
        str | None,
        typer.Option(
            "--google-sheets-id", "-g",
            help="Google Sheets id of the formatting legend (not the URL)",
        ),
    ] = None,
    liftover: Annotated[
        str,
        typer.Option(
            "--liftover", "-l",
            help="liftOver executable",
        ),
    ] = "liftOver",
    liftover_dir: Annotated[
        Path | None,
        typer.Option(
            "--liftover-dir", "-r",
            help="Directory with chain files (default: output directory)",
            file_okay=False,
            dir_okay=True,
        ),
    ] = None,
    samtools: Annotated[
        str,
        typer.Option(
            "--samtools", "-s",
            help="samtools executable",
        ),
    ] = "samtools",
    threads: Annotated[
        int | None,
        typer.Option(
            "--threads", "-j",
            help="Reference lookup workers (default: CPU count)",
            min=1,
        ),
    ] = None,
    batch_size: Annotated[
        int,
        typer.Option(
            "--batch-size",
            help="Residual rows per samtools faidx call",
            min=1,
        ),
    ] = 2000,
    max_attempts: Annotated[
        int,
        typer.Option(
            "--max-attempts",
            help="Attempts per batch when samtools cannot be started",
            min=1,
        ),
    ] = 10,
    chrom_prefix: Annotated[
        str,
        typer.Option(
            "--chrom-prefix",
            help="Chromosome prefix used in FASTA and chain files",
        ),
    ] = "chr",
    log_dir: Annotated[
        Path | None,
        typer.Option(
            "--log-dir",
            help="Directory for rotating log files",
            file_okay=False,
            dir_okay=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose", "-v",
            help="Enable verbose logging",
        ),
    ] = False,
    keep_temp: Annotated[
        bool,
        typer.Option(
            "--keep-temp",
            help="Keep BED scratch files",
        ),
    ] = False,
) -> None:
    """Harmonize one trait's GWAS summary statistics.

    Pipeline:
    1. Select the trait's row from the formatting legend
    2. Pre-format the raw file (columns, alleles, effect sizes, sample sizes)
    3. Lift coordinates to hg19 and hg38
    4. Match against dbSNP, recovering allele-flipped rows
    5. Resolve unmatched rows against the hg38 reference base
    6. Write the gzipped harmonized table and LOG file

    Example usage:

        gwas-harmonizer --legend legend.csv -t LDL -i raw/ -d dbsnp.tsv.gz -f hg38.fa -o LDL.tsv.gz
    """
    from gwas_harmonizer.config import Config
    from gwas_harmonizer.logging_config import setup_logging
    from gwas_harmonizer.main import run_pipeline

    # Print banner
    console.print("\n")
    console.print("[bold]GWAS Summary-Statistics Harmonizer[/bold]", style="blue")
    console.print(f"Python implementation v{__version__}\n")

    setup_logging(log_dir=log_dir, verbose=verbose)

    config = Config(
        trait_name=trait_name,
        raw_input_dir=raw_input_dir,
        dbsnp_file=dbsnp,
        fasta_ref=fasta,
        output_file=output,
        legend_file=legend,
        google_sheets_id=google_sheets_id,
        liftover=liftover,
        liftover_dir=liftover_dir,
        samtools=samtools,
        threads=threads,
        batch_size=batch_size,
        max_attempts=max_attempts,
        chrom_prefix=chrom_prefix,
        log_dir=log_dir,
        verbose=verbose,
        keep_temp_files=keep_temp,
    )

    # Print options
    console.print("Options Set:")
    console.print(f"Trait name:                  {config.trait_name}")
    if config.legend_file is not None:
        console.print(f"Legend file:                 {config.legend_file}")
    if config.google_sheets_id is not None:
        console.print(f"Google Sheets legend:        {config.google_sheets_id}")
    console.print(f"Raw input directory:         {config.raw_input_dir}")
    console.print(f"dbSNP filename:              {config.dbsnp_file}")
    console.print(f"FASTA reference:             {config.fasta_ref}")
    console.print(f"Liftover directory:          {config.liftover_dir}")
    console.print(f"Output filename:             {config.output_file}")
    if config.threads:
        console.print(f"Threads:                     {config.threads}")
    if config.verbose:
        console.print("Verbose logging flag set")
    console.print("\n")

    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]ERROR:[/red] {error}")
        raise typer.Exit(code=1)

    try:
        run_pipeline(config)
    except HarmonizerError as e:
        console.print(f"[red]ERROR:[/red] {e}")
        if verbose:
            import traceback
            console.print(traceback.format_exc())
        raise typer.Exit(code=1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
