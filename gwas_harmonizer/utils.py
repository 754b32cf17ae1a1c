"""Utility functions for the GWAS harmonizer.

Missing-value sentinels, chromosome normalization, allele screening and
text-preserving arithmetic on numeric fields.
"""

import math
from decimal import Decimal, InvalidOperation

# Values treated as missing in input tables
MISSING_VALUES: frozenset[str] = frozenset({"", "NA", "NaN", "Nan", "nan", "NAN", "na"})

# Effect sizes that cannot be harmonized
NONFINITE_VALUES: frozenset[str] = frozenset(
    {"NA", "NaN", "Nan", "Inf", "-Inf", "inf", "-inf"}
)

# Allele codes that mark insertions/deletions without sequence
AMBIGUOUS_ALLELES: frozenset[str] = frozenset({"I", "D", "IND", "DEL"})

# Numeric sex/mito chromosome codes
CHROMOSOME_ALIASES: dict[str, str] = {
    "23": "X",
    "24": "Y",
    "25": "M",
}


def is_missing(value: str) -> bool:
    """Check if a field holds a missing-value sentinel.

    Example:
        >>> is_missing("NA")
        True
        >>> is_missing("0.1")
        False
    """
    return value.strip() in MISSING_VALUES


def is_ambiguous_allele(allele: str) -> bool:
    """Check if an allele is an insertion/deletion code rather than a base.

    Example:
        >>> is_ambiguous_allele("DEL")
        True
        >>> is_ambiguous_allele("A")
        False
    """
    return allele in AMBIGUOUS_ALLELES


def normalize_chromosome(chr_val: str) -> str:
    """Normalize chromosome value to consistent format.

    Strips a "chr" prefix and maps 23/24/25 to X/Y/M.

    Args:
        chr_val: Chromosome value (may include "chr" prefix)

    Returns:
        Normalized chromosome value

    Example:
        >>> normalize_chromosome("chr1")
        "1"
        >>> normalize_chromosome("23")
        "X"
    """
    if chr_val.startswith("chr"):
        chr_val = chr_val[3:]
    return CHROMOSOME_ALIASES.get(chr_val, chr_val)


def format_number(value: float) -> str:
    """Render a float the way the output tables expect.

    Integral values drop the trailing ".0" so sample sizes stay integers.

    Example:
        >>> format_number(1500.0)
        "1500"
        >>> format_number(-0.5)
        "-0.5"
    """
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return repr(value)


def parse_decimal(value: str) -> Decimal | None:
    """Parse a finite decimal number, returning None if it cannot be parsed.

    Example:
        >>> parse_decimal("0.25")
        Decimal('0.25')
        >>> parse_decimal("Inf") is None
        True
    """
    try:
        number = Decimal(value.strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def negate_text(value: str) -> str | None:
    """Negate a numeric field without changing its precision.

    Returns None if the field is not a finite number.

    Example:
        >>> negate_text("0.5")
        "-0.5"
        >>> negate_text("-1.2e-3")
        "0.0012"
    """
    number = parse_decimal(value)
    if number is None:
        return None
    return _render(-number)


def complement_text(value: str) -> str | None:
    """Replace a frequency ``e`` with ``1 - e`` without changing precision.

    Returns None if the field is not a finite number.

    Example:
        >>> complement_text("0.3")
        "0.7"
    """
    number = parse_decimal(value)
    if number is None:
        return None
    return _render(Decimal(1) - number)


def _render(number: Decimal) -> str:
    # Fixed-point notation so exponents from the input never leak into output
    if number.is_zero():
        number = number.copy_abs()
    return format(number, "f")


def make_unique_id(chr_val: str, pos: str, ref: str, alt: str) -> str:
    """Create the deduplication key for a matched variant.

    Uses hg19 coordinates and the matched allele orientation.

    Example:
        >>> make_unique_id("1", "1000", "A", "G")
        "1_1000_A_G"
    """
    return f"{chr_val}_{pos}_{ref}_{alt}"
