"""I/O utilities for transparent gzip handling and delimited tables.

Example:
    with smart_open(Path("dbsnp.tsv.gz")) as f:
        for line in f:
            process(line)
"""

import csv
import gzip
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Literal

from gwas_harmonizer.exceptions import ConfigurationError
from gwas_harmonizer.models import VariantTable

# Gzip magic bytes (first two bytes of gzip file)
GZIP_MAGIC = b"\x1f\x8b"


def is_gzipped(filepath: Path) -> bool:
    """Detect if a file is gzip-compressed.

    Checks magic bytes first, falls back to extension if the file
    is too small or unreadable.

    Args:
        filepath: Path to file to check

    Returns:
        True if file is gzip-compressed
    """
    try:
        with open(filepath, "rb") as f:
            magic = f.read(2)
            if len(magic) >= 2:
                return magic == GZIP_MAGIC
    except OSError:
        pass

    return filepath.suffix == ".gz"


@contextmanager
def smart_open(
    filepath: Path,
    mode: Literal["r", "rt", "rb"] = "rt",
) -> Iterator[IO[str] | IO[bytes]]:
    """Open a file with automatic gzip detection.

    Args:
        filepath: Path to file (may be .gz or uncompressed)
        mode: File mode ('r' or 'rt' for text, 'rb' for binary)

    Yields:
        File handle (text or binary based on mode)
    """
    if mode == "r":
        mode = "rt"

    if is_gzipped(filepath):
        if mode == "rt":
            f = gzip.open(filepath, mode, encoding="utf-8", newline="")
        else:
            f = gzip.open(filepath, mode)
    else:
        if mode == "rt":
            f = open(filepath, mode, encoding="utf-8", newline="")
        else:
            f = open(filepath, mode)

    try:
        yield f
    finally:
        f.close()


def split_line(line: str, delimiter: str | None) -> list[str]:
    """Split one table line.

    A ``None`` delimiter splits on runs of whitespace, which is how
    space-delimited summary statistics are usually aligned.
    """
    if delimiter is None:
        return line.split()
    return line.split(delimiter)


def read_table(filepath: Path, delimiter: str | None = "\t") -> VariantTable:
    """Read a delimited file with a header row into a VariantTable.

    Args:
        filepath: Path to file (may be gzipped)
        delimiter: Field delimiter, or None for whitespace

    Returns:
        VariantTable whose rows all have the header width (blank lines skipped)

    Raises:
        FileNotFoundError: If the file doesn't exist
        ConfigurationError: If the file is empty or a row has the wrong width
    """
    if not filepath.exists():
        raise FileNotFoundError(f"Table not found: {filepath}")

    with smart_open(filepath, "rt") as f:
        if delimiter is None:
            records: Iterator[list[str]] = (
                split_line(line.rstrip("\r\n"), None) for line in f
            )
        else:
            records = csv.reader(f, delimiter=delimiter)

        header_fields = next(records, None)
        if header_fields is None:
            raise ConfigurationError(f"Table {filepath} is empty")

        header = [name.strip() for name in header_fields]
        width = len(header)
        rows: list[list[str]] = []

        for line_no, fields in enumerate(records, start=2):
            if not fields:
                continue
            if len(fields) != width:
                raise ConfigurationError(
                    f"{filepath.name} line {line_no}: expected {width} fields, found {len(fields)}"
                )
            rows.append(fields)

    return VariantTable(header=header, rows=rows)
