"""Single-base reference lookups with ``samtools faidx``.

One faidx invocation fetches a whole batch of 1bp regions. The output has
one FASTA record per region, in request order:

>chr1:1000-1000
A
>chr1:2000-2000
g
"""

import errno
import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path

from gwas_harmonizer.exceptions import ResourceExhaustedError, SequenceToolError
from gwas_harmonizer.models import UNKNOWN_BASE

logger = logging.getLogger(__name__)

# errno values meaning the host could not start another process right now
RESOURCE_ERRNOS: frozenset[int] = frozenset({errno.ENOMEM, errno.EAGAIN})


class SequenceLookup(ABC):
    """Fetches the reference base for a batch of regions."""

    @abstractmethod
    def fetch(self, regions: list[str]) -> list[str]:
        """Return one uppercase base (or ``N``) per region, in order.

        Raises:
            ResourceExhaustedError: If the lookup could not be started for
                lack of memory/processes (retryable)
            SequenceToolError: On any other failure
        """
        pass


def make_region(chrom: str, pos: str, prefix: str = "chr") -> str:
    """Build a 1bp faidx region.

    Example:
        >>> make_region("1", "1000")
        "chr1:1000-1000"
    """
    return f"{prefix}{chrom}:{pos}-{pos}"


def parse_faidx_output(text: str, expected: int) -> list[str]:
    """Parse faidx FASTA output into one base per record.

    A record holding exactly one single-character sequence line yields that
    base uppercased; any other record yields ``N``.

    Raises:
        SequenceToolError: If the record count differs from ``expected`` or
            sequence appears before the first header
    """
    records: list[list[str]] = []
    for line in text.splitlines():
        line = line.strip()
        if line.startswith(">"):
            records.append([])
        elif line:
            if not records:
                raise SequenceToolError("faidx output has sequence before the first header")
            records[-1].append(line)

    if len(records) != expected:
        raise SequenceToolError(
            f"faidx returned {len(records)} records for {expected} regions"
        )

    return [
        lines[0].upper() if len(lines) == 1 and len(lines[0]) == 1 else UNKNOWN_BASE
        for lines in records
    ]


class FaidxLookup(SequenceLookup):
    """Sequence lookup backed by ``samtools faidx`` on an indexed FASTA."""

    def __init__(self, samtools: str, fasta_ref: Path) -> None:
        """Initialize lookup.

        Args:
            samtools: samtools executable name or path
            fasta_ref: Indexed FASTA (``.fai`` alongside)
        """
        self.samtools = samtools
        self.fasta_ref = fasta_ref

    def fetch(self, regions: list[str]) -> list[str]:
        if not regions:
            return []

        cmd = [self.samtools, "faidx", str(self.fasta_ref), *regions]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            if e.errno in RESOURCE_ERRNOS:
                raise ResourceExhaustedError(f"Could not start {self.samtools}: {e}") from e
            raise SequenceToolError(f"Could not run {self.samtools}: {e}") from e
        except UnicodeDecodeError as e:
            raise SequenceToolError(f"{self.samtools} faidx produced undecodable output: {e}") from e

        if result.returncode != 0:
            raise SequenceToolError(
                f"{self.samtools} faidx exited with code {result.returncode}: "
                f"{result.stderr.strip()}"
            )

        return parse_faidx_output(result.stdout, len(regions))
