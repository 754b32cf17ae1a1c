"""Catalogue matching with allele-flip recovery.

Each lifted row is probed against the catalogue twice:

1. Direct: (chr_hg19, pos_hg19, ref, alt, pos_hg38) as reported
2. Flipped: ref and alt swapped in the key

Direct matches are accepted as is. A flipped match whose unique_id (built
from the reported alleles) equals a direct match's unique_id is discarded.
The remaining flipped matches are flipped to the catalogue orientation
(alleles swapped, effect negated, EAF complemented) and their unique_id is
recomputed. The union is deduplicated on unique_id, first occurrence wins,
so a direct match always beats a flipped one.

Rows found in neither orientation are residual unless their
(chr_hg19, pos_hg19, ref, alt), in either allele order, belongs to a matched
row. Residual rows are passed on to the sequence lookup if they carry
coordinates on both builds, and dropped otherwise.
"""

import logging

from gwas_harmonizer.checks.flip import flip_row
from gwas_harmonizer.exceptions import ConfigurationError
from gwas_harmonizer.models import MatchResult, Statistics, VariantTable
from gwas_harmonizer.reference.catalogue import ReferenceCatalogue
from gwas_harmonizer.utils import is_missing, make_unique_id

logger = logging.getLogger(__name__)


def match_variants(
    table: VariantTable,
    catalogue: ReferenceCatalogue,
    stats: Statistics | None = None,
) -> MatchResult:
    """Match lifted rows against the reference catalogue.

    Args:
        table: Lifted table (consumed)
        catalogue: Loaded reference catalogue
        stats: Optional Statistics object to update (mutated in place)

    Returns:
        MatchResult with matched rows (lifted columns, catalogue annotations,
        unique_id) and residual rows (lifted columns)

    Raises:
        ConfigurationError: If a required column is missing, a catalogue
            annotation column clashes with a table column, or a flipped row
            has a malformed effect size or EAF
    """
    if stats is None:
        stats = Statistics()

    chr19 = table.idx("chr_hg19")
    pos19 = table.idx("pos_hg19")
    ref = table.idx("ref")
    alt = table.idx("alt")
    chr38 = table.idx("chr_hg38")
    pos38 = table.idx("pos_hg38")
    effect = table.idx("effect_size")
    eaf = table.idx("EAF")

    annotation_columns = list(catalogue.annotation_columns)
    clashes = [c for c in annotation_columns if table.has(c) or c == "unique_id"]
    if clashes:
        raise ConfigurationError(
            f"dbSNP annotation columns clash with table columns: {', '.join(clashes)}"
        )
    lifted_header = list(table.header)
    matched_header = lifted_header + annotation_columns + ["unique_id"]
    uid = len(matched_header) - 1

    rows = table.take_rows()
    stats.matcher_input += len(rows)

    # Steps 1-2: probe both orientations
    direct: list[list[str]] = []
    flipped: list[list[str]] = []
    unmatched: list[list[str]] = []
    for row in rows:
        reported_id = make_unique_id(row[chr19], row[pos19], row[ref], row[alt])
        forward = catalogue.get((row[chr19], row[pos19], row[ref], row[alt], row[pos38]))
        reverse = catalogue.get((row[chr19], row[pos19], row[alt], row[ref], row[pos38]))

        if forward is not None:
            direct.append(row + list(forward) + [reported_id])
        if reverse is not None:
            flipped.append(row + list(reverse) + [reported_id])
        if forward is None and reverse is None:
            unmatched.append(row)

    stats.direct_matches += len(direct)
    stats.flipped_candidates += len(flipped)

    # Step 3: direct matches win over flipped candidates with the same id
    direct_ids = {row[uid] for row in direct}
    survivors = [row for row in flipped if row[uid] not in direct_ids]
    stats.flipped_collisions += len(flipped) - len(survivors)

    # Step 4: flip survivors to the catalogue orientation
    for row in survivors:
        flip_row(row, ref, alt, effect, eaf, strict=True)
        row[uid] = make_unique_id(row[chr19], row[pos19], row[ref], row[alt])
    stats.flipped_accepted += len(survivors)

    # Step 5: union and dedup, first occurrence wins
    seen: set[str] = set()
    matched: list[list[str]] = []
    for row in direct + survivors:
        if row[uid] in seen:
            stats.duplicates_removed += 1
            continue
        seen.add(row[uid])
        matched.append(row)

    # Step 6: residual rows, absent from the matched identities in both orientations
    identities: set[tuple[str, str, str, str]] = set()
    for row in matched:
        identities.add((row[chr19], row[pos19], row[ref], row[alt]))
        identities.add((row[chr19], row[pos19], row[alt], row[ref]))

    residual: list[list[str]] = []
    for row in unmatched:
        if (row[chr19], row[pos19], row[ref], row[alt]) in identities:
            stats.shadowed_by_match += 1
            continue
        if any(is_missing(row[i]) for i in (chr19, pos19, chr38, pos38)):
            stats.missing_coordinates += 1
            continue
        residual.append(row)
    stats.residual += len(residual)

    logger.info(
        f"Matched {len(matched):,} rows ({len(direct):,} direct, {len(survivors):,} flipped), "
        f"{len(residual):,} residual"
    )
    logger.debug(
        f"{len(flipped) - len(survivors):,} flipped candidates collided with direct matches, "
        f"{stats.duplicates_removed:,} duplicates removed"
    )

    return MatchResult(
        matched=VariantTable(header=matched_header, rows=matched),
        residual=VariantTable(header=lifted_header, rows=residual),
        annotation_columns=annotation_columns,
    )
