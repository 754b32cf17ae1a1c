"""Data models for the GWAS harmonizer.

Tables are kept as a header plus positional string rows, matching the
tab-delimited files they are read from and written to.
"""

import threading
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from enum import Enum

from gwas_harmonizer.exceptions import ConfigurationError

# Output sentinel for absent values
NA = "NA"

# Sentinel base for positions the sequence tool could not resolve to one nucleotide
UNKNOWN_BASE = "N"

# Identity columns of the reference catalogue
CATALOGUE_KEY_COLUMNS: tuple[str, ...] = ("chr", "pos_hg19", "ref", "alt", "pos_hg38")

# Header of a table after preformatting and coordinate lift
LIFTED_COLUMNS: tuple[str, ...] = (
    "chr_hg19",
    "pos_hg19",
    "ref",
    "alt",
    "effect_size",
    "standard_error",
    "EAF",
    "pvalue",
    "pvalue_het",
    "N_total",
    "N_case",
    "N_ctrl",
    "chr_hg38",
    "pos_hg38",
)

# Leading columns of the final harmonized table
FINAL_COLUMNS: tuple[str, ...] = ("rsid", "unique_id") + LIFTED_COLUMNS

IdentityKey = tuple[str, str, str, str, str]


class Build(str, Enum):
    """Genome builds accepted in the formatting legend."""

    HG17 = "hg17"
    HG18 = "hg18"
    HG19 = "hg19"
    HG38 = "hg38"


@dataclass
class VariantTable:
    """Ordered header plus positional rows.

    Every row has exactly ``len(header)`` fields whenever the table is
    observed outside a transform step. Stages take ownership of a table's
    rows with ``take_rows()`` and hand back a new table.

    Attributes:
        header: Column names (unique)
        rows: Row values positioned by header index
    """

    header: list[str]
    rows: list[list[str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if len(set(self.header)) != len(self.header):
            duplicates = sorted({c for c in self.header if self.header.count(c) > 1})
            raise ConfigurationError(f"Duplicate column names: {', '.join(duplicates)}")

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[list[str]]:
        return iter(self.rows)

    def idx(self, name: str) -> int:
        """Return the position of a column, raising if it is absent."""
        pos = self.idx_opt(name)
        if pos is None:
            raise ConfigurationError(f"Required column '{name}' is missing")
        return pos

    def idx_opt(self, name: str) -> int | None:
        """Return the position of a column, or None."""
        try:
            return self.header.index(name)
        except ValueError:
            return None

    def has(self, name: str) -> bool:
        return name in self.header

    def column(self, name: str) -> Iterator[str]:
        """Iterate over one column's values."""
        pos = self.idx(name)
        return (row[pos] for row in self.rows)

    def get(self, row: Sequence[str], name: str) -> str:
        return row[self.idx(name)]

    def add_column(self, name: str, fill: str = NA) -> int:
        """Append a column filled with a constant and return its index."""
        if name in self.header:
            raise ConfigurationError(f"Column '{name}' already exists")
        self.header.append(name)
        for row in self.rows:
            row.append(fill)
        return len(self.header) - 1

    def rename(self, old: str, new: str) -> None:
        if new in self.header:
            raise ConfigurationError(f"Cannot rename '{old}' to existing column '{new}'")
        self.header[self.idx(old)] = new

    def select(self, columns: Sequence[str], fill: str = NA) -> "VariantTable":
        """Project rows into ``columns``, filling absent columns.

        Consumes this table's rows.
        """
        positions = [self.idx_opt(name) for name in columns]
        rows = [
            [row[pos] if pos is not None else fill for pos in positions]
            for row in self.take_rows()
        ]
        return VariantTable(header=list(columns), rows=rows)

    def take_rows(self) -> list[list[str]]:
        """Transfer ownership of the rows, leaving this table empty."""
        rows, self.rows = self.rows, []
        return rows

    def check_shape(self) -> None:
        """Raise if any row length differs from the header length."""
        width = len(self.header)
        for line_no, row in enumerate(self.rows):
            if len(row) != width:
                raise ConfigurationError(
                    f"Row {line_no} has {len(row)} fields, expected {width}"
                )

    @classmethod
    def from_records(cls, header: Iterable[str], records: Iterable[Sequence[str]]) -> "VariantTable":
        return cls(header=list(header), rows=[list(r) for r in records])


@dataclass(frozen=True, slots=True)
class WorkChunk:
    """Contiguous range of residual rows dispatched to the sequence tool together.

    Attributes:
        index: Chunk number (position in the chunk list)
        start: First residual row (inclusive)
        stop: Last residual row (exclusive)
    """

    index: int
    start: int
    stop: int

    def __len__(self) -> int:
        return self.stop - self.start


class ResultSlots:
    """Pre-sized, write-once array of fetched bases, one slot per residual row.

    Slots start as None. Each slot may be written exactly once; writes from
    different workers never target the same slot because chunks do not overlap.
    """

    def __init__(self, size: int) -> None:
        self._slots: list[str | None] = [None] * size
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._slots)

    def write_chunk(self, start: int, bases: Sequence[str]) -> None:
        """Write ``bases`` into consecutive slots beginning at ``start``."""
        stop = start + len(bases)
        if start < 0 or stop > len(self._slots):
            raise IndexError(f"Slots {start}:{stop} out of range for {len(self._slots)} slots")
        with self._lock:
            for offset, base in enumerate(bases):
                if self._slots[start + offset] is not None:
                    raise RuntimeError(f"Result slot {start + offset} written twice")
            self._slots[start:stop] = list(bases)

    def get(self, index: int) -> str | None:
        return self._slots[index]

    def missing(self, start: int = 0, stop: int | None = None) -> list[int]:
        """Indices of unwritten slots within ``start:stop``."""
        stop = len(self._slots) if stop is None else stop
        return [i for i in range(start, stop) if self._slots[i] is None]

    @property
    def filled_count(self) -> int:
        return sum(1 for s in self._slots if s is not None)


@dataclass
class MatchResult:
    """Output of the catalogue matcher.

    Attributes:
        matched: Deduplicated rows with catalogue annotations and unique_id
        residual: Rows with coordinates on both builds but no catalogue match
        annotation_columns: Catalogue columns appended to matched rows
    """

    matched: VariantTable
    residual: VariantTable
    annotation_columns: list[str]


@dataclass
class Statistics:
    """Row-count telemetry for one harmonization run.

    Row-level drops are not reported individually; these counts are the
    only place they surface.
    """

    # Preformatting
    input_rows: int = 0
    ambiguous_alleles: int = 0
    invalid_effect: int = 0
    failed_or_conversion: int = 0

    # Coordinate lift
    unlifted_hg19: int = 0
    unlifted_hg38: int = 0

    # Catalogue matching
    matcher_input: int = 0
    direct_matches: int = 0
    flipped_candidates: int = 0
    flipped_collisions: int = 0
    flipped_accepted: int = 0
    duplicates_removed: int = 0
    residual: int = 0
    missing_coordinates: int = 0
    shadowed_by_match: int = 0

    # Sequence resolution
    chunks_dispatched: int = 0
    chunk_retries: int = 0
    chunks_failed: int = 0
    resolved_ref: int = 0
    resolved_flipped: int = 0
    resolved_discarded: int = 0

    final_rows: int = 0

    @property
    def preformat_dropped(self) -> int:
        """Rows removed by data-quality filters before lift."""
        return self.ambiguous_alleles + self.invalid_effect + self.failed_or_conversion

    @property
    def matched(self) -> int:
        """Rows in the deduplicated matched table."""
        return self.direct_matches + self.flipped_accepted - self.duplicates_removed

    @property
    def resolved(self) -> int:
        """Residual rows promoted into the final table."""
        return self.resolved_ref + self.resolved_flipped
