"""Allele flip for variants reported against the other allele.

Flipping a row swaps ref/alt, negates the effect size and replaces the
effect allele frequency with its complement. Arithmetic works on the
decimal text of each field, so flipping twice restores the original row.
"""

from gwas_harmonizer.exceptions import ConfigurationError
from gwas_harmonizer.utils import complement_text, is_missing, negate_text


def flip_row(
    row: list[str],
    ref_idx: int,
    alt_idx: int,
    effect_idx: int,
    eaf_idx: int,
    *,
    strict: bool = True,
) -> list[str]:
    """Flip one row in place and return it.

    Args:
        row: Table row (mutated)
        ref_idx: Position of the ref allele
        alt_idx: Position of the alt allele
        effect_idx: Position of the effect size
        eaf_idx: Position of the effect allele frequency
        strict: Raise on a malformed EAF instead of leaving it unchanged

    Returns:
        The same row object

    Raises:
        ConfigurationError: If the effect size is not a finite number, or
            (strict only) the EAF is present but not a finite number

    Example:
        >>> flip_row(["A", "G", "0.5", "0.3"], 0, 1, 2, 3)
        ['G', 'A', '-0.5', '0.7']
    """
    effect = negate_text(row[effect_idx])
    if effect is None:
        raise ConfigurationError(f"Invalid effect size {row[effect_idx]!r}")

    eaf = row[eaf_idx]
    if not is_missing(eaf):
        complemented = complement_text(eaf)
        if complemented is not None:
            eaf = complemented
        elif strict:
            raise ConfigurationError(f"Invalid EAF {row[eaf_idx]!r}")

    row[ref_idx], row[alt_idx] = row[alt_idx], row[ref_idx]
    row[effect_idx] = effect
    row[eaf_idx] = eaf
    return row
