"""dbSNP reference catalogue loader.

The catalogue is a tab-delimited file (optionally gzipped) with a header
row. Five columns identify a variant on both builds; every other column
(rsid, allele frequencies, ...) is annotation carried into matched rows.

Catalogue format (tab-separated):
chr     pos_hg19        ref     alt     pos_hg38        rsid
1       1000            A       G       900             rs1
"""

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path

from rich.progress import Progress, SpinnerColumn, TextColumn

from gwas_harmonizer.exceptions import ConfigurationError
from gwas_harmonizer.io_utils import smart_open
from gwas_harmonizer.models import CATALOGUE_KEY_COLUMNS, IdentityKey
from gwas_harmonizer.utils import normalize_chromosome

logger = logging.getLogger(__name__)


class ReferenceCatalogue:
    """In-memory dbSNP catalogue keyed by ``(chr, pos_hg19, ref, alt, pos_hg38)``.

    Lookups are O(1). The catalogue is read-only once loaded and may be
    shared between threads.
    """

    def __init__(self) -> None:
        self.header: list[str] = []
        self.annotation_columns: list[str] = []
        self._entries: dict[IdentityKey, tuple[str, ...]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: IdentityKey) -> bool:
        return key in self._entries

    def get(self, key: IdentityKey) -> tuple[str, ...] | None:
        """Annotation values for a key, in ``annotation_columns`` order, or None."""
        return self._entries.get(key)

    def clear(self) -> None:
        """Release the catalogue's memory."""
        self._entries.clear()

    def load(self, filepath: Path, verbose: bool = False) -> None:
        """Load the catalogue from file.

        Args:
            filepath: Path to catalogue (may be gzipped)
            verbose: Report progress every million rows

        Raises:
            FileNotFoundError: If file doesn't exist
            ConfigurationError: If required columns are missing or a row has
                the wrong number of fields
        """
        if not filepath.exists():
            raise FileNotFoundError(f"dbSNP file not found: {filepath}")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            task = progress.add_task(f"Loading dbSNP catalogue from {filepath.name}...")

            with smart_open(filepath) as f:
                header_line = f.readline()
                if not header_line:
                    raise ConfigurationError(f"dbSNP file {filepath} is empty")
                self._set_header(header_line.rstrip("\r\n").lstrip("#").split("\t"))

                width = len(self.header)
                for line_no, line in enumerate(f, start=2):
                    line = line.rstrip("\r\n")
                    if not line:
                        continue
                    fields = line.split("\t")
                    if len(fields) != width:
                        raise ConfigurationError(
                            f"Malformed dbSNP row at {filepath.name} line {line_no}: "
                            f"expected {width} fields, found {len(fields)}"
                        )
                    self._add(fields)

                    if verbose and line_no % 1_000_000 == 0:
                        progress.update(
                            task, description=f"Loading dbSNP catalogue... {line_no:,} rows"
                        )

        logger.info(f"Loaded {len(self):,} variants from {filepath.name}")

    @classmethod
    def from_records(
        cls,
        header: Sequence[str],
        records: Iterable[Sequence[str]],
    ) -> "ReferenceCatalogue":
        """Build a catalogue from in-memory rows."""
        catalogue = cls()
        catalogue._set_header(list(header))
        width = len(catalogue.header)
        for n, fields in enumerate(records):
            if len(fields) != width:
                raise ConfigurationError(
                    f"Malformed dbSNP record {n}: expected {width} fields, found {len(fields)}"
                )
            catalogue._add(fields)
        return catalogue

    def _set_header(self, header: list[str]) -> None:
        header = [name.strip() for name in header]
        missing = [c for c in CATALOGUE_KEY_COLUMNS if c not in header]
        if missing:
            raise ConfigurationError(
                f"dbSNP file is missing required columns: {', '.join(missing)}"
            )
        self.header = header
        self._key_positions = [header.index(c) for c in CATALOGUE_KEY_COLUMNS]
        self._annotation_positions = [
            i for i, name in enumerate(header) if name not in CATALOGUE_KEY_COLUMNS
        ]
        self.annotation_columns = [header[i] for i in self._annotation_positions]

    def _add(self, fields: Sequence[str]) -> None:
        chr_pos, pos19_pos, ref_pos, alt_pos, pos38_pos = self._key_positions
        key = (
            normalize_chromosome(fields[chr_pos]),
            fields[pos19_pos],
            fields[ref_pos],
            fields[alt_pos],
            fields[pos38_pos],
        )
        self._entries[key] = tuple(fields[i] for i in self._annotation_positions)
