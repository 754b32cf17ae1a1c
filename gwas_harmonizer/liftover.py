"""Coordinate lift between genome builds with UCSC liftOver.

Every harmonized table carries hg19 and hg38 coordinates. Rows are written
to a 4-column BED file whose name field is the row's index in the table, the
tool is run once per chain, and lifted coordinates are re-attached by that
index. Rows the tool cannot map keep NA coordinates on the target build.

Chains applied per source build:
    hg17: hg17ToHg19, then hg19ToHg38
    hg18: hg18ToHg19, then hg19ToHg38
    hg19: hg19ToHg38
    hg38: hg38ToHg19
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path

from gwas_harmonizer.exceptions import ConfigurationError, LiftoverError
from gwas_harmonizer.models import LIFTED_COLUMNS, NA, Build, Statistics, VariantTable
from gwas_harmonizer.utils import is_missing

logger = logging.getLogger(__name__)

CHAIN_STEPS: dict[Build, tuple[tuple[Build, Build], ...]] = {
    Build.HG17: ((Build.HG17, Build.HG19), (Build.HG19, Build.HG38)),
    Build.HG18: ((Build.HG18, Build.HG19), (Build.HG19, Build.HG38)),
    Build.HG19: ((Build.HG19, Build.HG38),),
    Build.HG38: ((Build.HG38, Build.HG19),),
}


@dataclass
class LiftoverResult:
    """Result from a liftOver execution.

    Attributes:
        command: Full command that was run
        stdout: Standard output
        stderr: Standard error
        output_bed: Lifted BED file
        unlifted_bed: BED file of rows the chain could not map
    """

    command: str
    stdout: str
    stderr: str
    output_bed: Path
    unlifted_bed: Path


def chain_name(source: Build, target: Build) -> str:
    """UCSC chain file stem, e.g. ``hg19ToHg38``."""
    return f"{source.value}To{target.value.capitalize()}"


class LiftoverRunner:
    """Runs liftOver against chain files kept in one directory."""

    def __init__(self, executable: str, liftover_dir: Path) -> None:
        """Initialize runner.

        Args:
            executable: liftOver executable name or path
            liftover_dir: Directory with ``<chain>.over.chain.gz`` files;
                BED scratch files are written here too
        """
        self.executable = executable
        self.liftover_dir = liftover_dir

    def chain_path(self, source: Build, target: Build) -> Path:
        return self.liftover_dir / f"{chain_name(source, target)}.over.chain.gz"

    def scratch_path(self, source: Build, target: Build, suffix: str) -> Path:
        return self.liftover_dir / f"liftover.{os.getpid()}.{chain_name(source, target)}.{suffix}.bed"

    def lift(
        self,
        input_bed: Path,
        chain: Path,
        output_bed: Path,
        unlifted_bed: Path,
    ) -> LiftoverResult:
        """Run liftOver on one BED file.

        Raises:
            LiftoverError: If the chain is missing, the tool cannot be started
                or it exits non-zero
        """
        if not chain.exists():
            raise LiftoverError(f"Chain file not found: {chain}")

        cmd = [self.executable, str(input_bed), str(chain), str(output_bed), str(unlifted_bed)]
        cmd_str = " ".join(cmd)
        logger.debug(f"Running: {cmd_str}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise LiftoverError(f"Could not run {self.executable}: {e}") from e

        if result.returncode != 0:
            raise LiftoverError(
                f"{self.executable} exited with code {result.returncode}: {result.stderr.strip()}"
            )

        return LiftoverResult(
            command=cmd_str,
            stdout=result.stdout,
            stderr=result.stderr,
            output_bed=output_bed,
            unlifted_bed=unlifted_bed,
        )


def detect_build(table: VariantTable) -> Build:
    """Return the build whose chr/pos columns the preformatted table carries."""
    found = [b for b in Build if table.has(f"chr_{b.value}") and table.has(f"pos_{b.value}")]
    if len(found) != 1:
        raise ConfigurationError(
            f"Expected chr/pos columns for exactly one genome build, found {len(found)}"
        )
    return found[0]


def write_bed(table: VariantTable, path: Path, build: Build, chrom_prefix: str = "chr") -> int:
    """Write ``chr<chr>\\t<pos-1>\\t<pos>\\t<row_id>`` for every row with coordinates.

    Returns:
        Number of BED lines written
    """
    chr_idx = table.idx(f"chr_{build.value}")
    pos_idx = table.idx(f"pos_{build.value}")

    written = 0
    with open(path, "w") as f:
        for row_id, row in enumerate(table.rows):
            chrom, pos = row[chr_idx], row[pos_idx]
            if is_missing(chrom) or is_missing(pos):
                continue
            try:
                end = int(pos)
            except ValueError:
                raise ConfigurationError(f"Invalid {build.value} position {pos!r}")
            f.write(f"{chrom_prefix}{chrom}\t{end - 1}\t{end}\t{row_id}\n")
            written += 1
    return written


def read_bed(path: Path, chrom_prefix: str = "chr") -> dict[int, tuple[str, str]]:
    """Read lifted BED rows into ``{row_id: (chrom, end)}``."""
    lifted: dict[int, tuple[str, str]] = {}
    with open(path) as f:
        for line_no, line in enumerate(f, start=1):
            fields = line.rstrip("\r\n").split("\t")
            if len(fields) < 4:
                continue
            chrom = fields[0]
            if chrom_prefix and chrom.startswith(chrom_prefix):
                chrom = chrom[len(chrom_prefix):]
            try:
                lifted[int(fields[3])] = (chrom, fields[2])
            except ValueError:
                raise LiftoverError(f"{path.name} line {line_no}: invalid row id {fields[3]!r}")
    return lifted


def _attach(table: VariantTable, build: Build, lifted: dict[int, tuple[str, str]]) -> None:
    chr_idx = table.idx_opt(f"chr_{build.value}")
    if chr_idx is None:
        chr_idx = table.add_column(f"chr_{build.value}", NA)
    pos_idx = table.idx_opt(f"pos_{build.value}")
    if pos_idx is None:
        pos_idx = table.add_column(f"pos_{build.value}", NA)

    for row_id, row in enumerate(table.rows):
        chrom, pos = lifted.get(row_id, (NA, NA))
        row[chr_idx] = chrom
        row[pos_idx] = pos


def lift_coordinates(
    table: VariantTable,
    runner: LiftoverRunner,
    stats: Statistics | None = None,
    chrom_prefix: str = "chr",
    keep_temp_files: bool = False,
) -> VariantTable:
    """Add hg19 and hg38 coordinates to a preformatted table.

    Args:
        table: Preformatted table (consumed)
        runner: liftOver runner
        stats: Optional Statistics object to update (mutated in place)
        chrom_prefix: Chromosome prefix used in BED rows
        keep_temp_files: Keep the BED scratch files

    Returns:
        Table with ``LIFTED_COLUMNS`` header, in input row order

    Raises:
        LiftoverError: If a liftOver run fails
    """
    if stats is None:
        stats = Statistics()

    source_build = detect_build(table)
    for source, target in CHAIN_STEPS[source_build]:
        input_bed = runner.scratch_path(source, target, "input")
        output_bed = runner.scratch_path(source, target, "output")
        unlifted_bed = runner.scratch_path(source, target, "unlifted")

        try:
            n_written = write_bed(table, input_bed, source, chrom_prefix)
            logger.info(f"Lifting {n_written} rows from {source.value} to {target.value}")
            result = runner.lift(input_bed, runner.chain_path(source, target), output_bed, unlifted_bed)
            if result.stderr.strip():
                logger.debug(f"{result.command}: {result.stderr.strip()}")
            lifted = read_bed(result.output_bed, chrom_prefix)
        finally:
            if not keep_temp_files:
                for scratch in (input_bed, output_bed, unlifted_bed):
                    scratch.unlink(missing_ok=True)

        logger.info(f"{len(lifted)} of {n_written} rows lifted to {target.value}")
        _attach(table, target, lifted)

    lifted_table = table.select(LIFTED_COLUMNS)

    chr19 = lifted_table.idx("chr_hg19")
    pos19 = lifted_table.idx("pos_hg19")
    chr38 = lifted_table.idx("chr_hg38")
    pos38 = lifted_table.idx("pos_hg38")
    for row in lifted_table.rows:
        if is_missing(row[chr19]) or is_missing(row[pos19]):
            stats.unlifted_hg19 += 1
        if is_missing(row[chr38]) or is_missing(row[pos38]):
            stats.unlifted_hg38 += 1

    return lifted_table
