"""Configuration dataclass for the GWAS harmonizer."""

import os
from dataclasses import dataclass
from pathlib import Path

# Residual rows per samtools faidx invocation
DEFAULT_BATCH_SIZE = 2000

# Dispatch attempts per chunk when the host cannot start the sequence tool
DEFAULT_MAX_ATTEMPTS = 10


@dataclass
class Config:
    """Configuration for one harmonization run.

    Attributes:
        trait_name: Trait row to select from the formatting legend
        raw_input_dir: Directory the legend's file_path is relative to
        dbsnp_file: Reference catalogue (tab-delimited, may be gzipped)
        fasta_ref: Indexed hg38 FASTA queried with samtools faidx
        output_file: Destination of the gzipped harmonized table
        legend_file: Local CSV/TSV formatting legend
        google_sheets_id: Google Sheets id of the formatting legend
        google_sheets_api_key: API key for the Sheets REST API
        liftover: liftOver executable
        liftover_dir: Directory with chain files and BED scratch files
        samtools: samtools executable
        threads: Sequence-resolution workers (default: CPU count)
        batch_size: Residual rows per work chunk
        max_attempts: Dispatch attempts per chunk on resource exhaustion
        retry_backoff: Seconds slept per attempt before a retried dispatch
        chrom_prefix: Prefix used for chromosomes in BED rows and faidx regions
        log_dir: Directory for rotating log files
        verbose: Enable verbose logging
        keep_temp_files: Keep BED scratch files
    """

    trait_name: str
    raw_input_dir: Path
    dbsnp_file: Path
    fasta_ref: Path
    output_file: Path

    # Legend source (exactly one)
    legend_file: Path | None = None
    google_sheets_id: str | None = None
    google_sheets_api_key: str | None = None

    # External tools
    liftover: str = "liftOver"
    liftover_dir: Path | None = None
    samtools: str = "samtools"

    # Sequence resolution
    threads: int | None = None
    batch_size: int = DEFAULT_BATCH_SIZE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    retry_backoff: float = 1.0
    chrom_prefix: str = "chr"

    # Behavior flags
    log_dir: Path | None = None
    verbose: bool = False
    keep_temp_files: bool = False

    def __post_init__(self) -> None:
        """Normalize paths and fill defaults."""
        for name in ("raw_input_dir", "dbsnp_file", "fasta_ref", "output_file"):
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, Path(value))

        for name in ("legend_file", "liftover_dir", "log_dir"):
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, Path(value))

        if self.liftover_dir is None:
            self.liftover_dir = self.output_file.parent

        if self.google_sheets_api_key is None:
            self.google_sheets_api_key = os.environ.get("GOOGLE_SHEETS_API_KEY")

    def worker_count(self, n_chunks: int) -> int:
        """Number of sequence-resolution workers for ``n_chunks`` chunks."""
        threads = self.threads or os.cpu_count() or 1
        return max(1, min(threads, n_chunks))

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors.

        Returns:
            List of error messages (empty if valid)
        """
        errors: list[str] = []

        if (self.legend_file is None) == (self.google_sheets_id is None):
            errors.append("Provide exactly one of a legend file or a Google Sheets id")

        if self.legend_file is not None and not self.legend_file.exists():
            errors.append(f"Legend file not found: {self.legend_file}")

        if self.google_sheets_id is not None and not self.google_sheets_api_key:
            errors.append("Google Sheets legend requires an API key (GOOGLE_SHEETS_API_KEY)")

        if not self.raw_input_dir.is_dir():
            errors.append(f"Raw input directory does not exist: {self.raw_input_dir}")

        if not self.dbsnp_file.exists():
            errors.append(f"dbSNP file not found: {self.dbsnp_file}")

        if not self.fasta_ref.exists():
            errors.append(f"FASTA reference not found: {self.fasta_ref}")

        if self.liftover_dir is not None and not self.liftover_dir.is_dir():
            errors.append(f"Liftover directory does not exist: {self.liftover_dir}")

        if not self.output_file.parent.is_dir():
            errors.append(f"Output directory does not exist: {self.output_file.parent}")

        if self.threads is not None and self.threads < 1:
            errors.append(f"threads must be at least 1: {self.threads}")

        if self.batch_size < 1:
            errors.append(f"batch_size must be at least 1: {self.batch_size}")

        if self.max_attempts < 1:
            errors.append(f"max_attempts must be at least 1: {self.max_attempts}")

        if self.retry_backoff < 0:
            errors.append(f"retry_backoff must not be negative: {self.retry_backoff}")

        return errors
