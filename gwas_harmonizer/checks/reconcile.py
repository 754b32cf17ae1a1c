"""Residual-row reconciliation against fetched reference bases.

Each residual row is compared with the hg38 reference base at its position:

- base == alt: the row is reported against the other allele, flip it
- base == ref: keep the row unchanged
- anything else (other base, N, unresolved): discard
"""

import logging

from gwas_harmonizer.checks.flip import flip_row
from gwas_harmonizer.exceptions import ConfigurationError
from gwas_harmonizer.models import ResultSlots, Statistics, VariantTable

logger = logging.getLogger(__name__)


def reconcile_residual(
    residual: VariantTable,
    slots: ResultSlots,
    stats: Statistics | None = None,
) -> VariantTable:
    """Keep residual rows whose alleles include the reference base.

    Args:
        residual: Residual rows (consumed), aligned with ``slots``
        slots: Fetched base per residual row
        stats: Optional Statistics object to update (mutated in place)

    Returns:
        Accepted rows, oriented so that ref is the reference base
    """
    if stats is None:
        stats = Statistics()

    if len(slots) != len(residual):
        raise ConfigurationError(
            f"{len(slots)} result slots for {len(residual)} residual rows"
        )

    ref = residual.idx("ref")
    alt = residual.idx("alt")
    effect = residual.idx("effect_size")
    eaf = residual.idx("EAF")

    accepted: list[list[str]] = []
    for i, row in enumerate(residual.take_rows()):
        base = slots.get(i)
        if base is not None and base == row[alt]:
            flip_row(row, ref, alt, effect, eaf, strict=False)
            stats.resolved_flipped += 1
            accepted.append(row)
        elif base is not None and base == row[ref]:
            stats.resolved_ref += 1
            accepted.append(row)
        else:
            stats.resolved_discarded += 1

    logger.info(
        f"Resolved {len(accepted):,} residual rows "
        f"({stats.resolved_ref:,} unchanged, {stats.resolved_flipped:,} flipped), "
        f"discarded {stats.resolved_discarded:,}"
    )
    return VariantTable(header=list(residual.header), rows=accepted)
