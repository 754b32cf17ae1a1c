"""Final table assembly.

Matched rows come first, in matcher order, followed by resolved residual
rows. Residual rows have no catalogue entry, so rsid, unique_id and every
other annotation column are NA for them.
"""

import logging
from collections.abc import Sequence

from gwas_harmonizer.models import FINAL_COLUMNS, NA, VariantTable

logger = logging.getLogger(__name__)


def final_header(annotation_columns: Sequence[str]) -> list[str]:
    """FINAL_COLUMNS followed by the annotation columns not already in it."""
    return list(FINAL_COLUMNS) + [c for c in annotation_columns if c not in FINAL_COLUMNS]


def merge_tables(
    matched: VariantTable,
    resolved: VariantTable,
    annotation_columns: Sequence[str],
) -> VariantTable:
    """Concatenate matched and resolved rows under the final header.

    Both input tables are consumed.

    Args:
        matched: Matcher output (lifted columns, annotations, unique_id)
        resolved: Reconciled residual rows (lifted columns)
        annotation_columns: Catalogue annotation columns, catalogue order

    Returns:
        Final harmonized table
    """
    header = final_header(annotation_columns)
    merged = matched.select(header, fill=NA)
    resolved_rows = resolved.select(header, fill=NA).take_rows()

    logger.info(
        f"Final table: {len(merged):,} matched + {len(resolved_rows):,} resolved rows"
    )
    merged.rows.extend(resolved_rows)
    merged.check_shape()
    return merged
