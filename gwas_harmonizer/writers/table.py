"""Gzipped tab-delimited table writer."""

import gzip
import logging
from pathlib import Path

from gwas_harmonizer.models import VariantTable

logger = logging.getLogger(__name__)


def write_table_gz(table: VariantTable, path: Path) -> Path:
    """Write a table as gzipped TSV: header line, then one line per row.

    Args:
        table: Table to write
        path: Destination file

    Returns:
        Path to the written file
    """
    with gzip.open(path, "wt", encoding="utf-8", newline="") as f:
        f.write("\t".join(table.header) + "\n")
        for row in table.rows:
            f.write("\t".join(row) + "\n")

    logger.info(f"Wrote {len(table):,} rows to {path}")
    return path
