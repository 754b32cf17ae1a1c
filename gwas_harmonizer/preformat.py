"""Raw summary-statistics preformatting.

Reads the raw file named by the trait's legend row and normalizes it:

a) strip "chr" from chromosomes and map 23-25 to X, Y, M
b) uppercase alleles
c) drop variants with indel codes (I, D, IND, DEL) as alleles
d) drop variants with missing or non-finite effect estimates
e) convert odds/hazard ratios to log scale
f) tabulate sample-size columns
g) tag chr/pos with the legend's genome build
"""

import logging
import math
from pathlib import Path

from gwas_harmonizer.exceptions import ConfigurationError
from gwas_harmonizer.io_utils import read_table
from gwas_harmonizer.models import NA, Build, Statistics, VariantTable
from gwas_harmonizer.utils import (
    NONFINITE_VALUES,
    format_number,
    is_ambiguous_allele,
    is_missing,
    normalize_chromosome,
)

logger = logging.getLogger(__name__)

# Canonical columns every preformatted table carries (NA-filled when absent)
ASSIGN_COL_NAMES: tuple[str, ...] = (
    "rsid",
    "chr",
    "pos",
    "ref",
    "alt",
    "effect_size",
    "standard_error",
    "EAF",
    "pvalue",
    "pvalue_het",
    "N_total_column",
    "N_case_column",
    "N_ctrl_column",
)

SAMPLE_SIZE_GROUPS: tuple[str, ...] = ("total", "case", "ctrl")

# Legend column_delim values
DELIMITERS: dict[str, str | None] = {
    "\t": "\t",
    "\\t": "\t",
    "tab": "\t",
    ",": ",",
    "comma": ",",
    "space": None,
}


def resolve_input_file(raw_input_dir: Path, file_path: str) -> Path:
    """Locate the raw summary-statistics file under ``raw_input_dir``.

    Raises:
        ConfigurationError: If the directory or file does not exist
    """
    if not raw_input_dir.exists():
        raise ConfigurationError(f"Raw input directory {raw_input_dir} does not exist")
    if not raw_input_dir.is_dir():
        raise ConfigurationError(f"Raw input directory {raw_input_dir} is not a directory")

    raw_input_file = raw_input_dir / file_path.lstrip("/")
    if not raw_input_file.exists():
        raise ConfigurationError(f"Raw input file {raw_input_file} does not exist")
    if not raw_input_file.is_file():
        raise ConfigurationError(f"Raw input file {raw_input_file} is not a file")
    return raw_input_file


def read_raw_table(path: Path, column_delim: str) -> VariantTable:
    """Read a raw summary-statistics file with the legend's delimiter."""
    if column_delim not in DELIMITERS:
        raise ConfigurationError(f"Invalid column delimiter {column_delim!r}")

    table = read_table(path, delimiter=DELIMITERS[column_delim])
    if len(table.header) <= 4:
        raise ConfigurationError(
            "Raw input file has less than 5 columns, "
            "likely the column delimiter has been misspecified"
        )
    return table


def preformat(
    legend_row: dict[str, str],
    raw_input_dir: Path,
    stats: Statistics | None = None,
) -> VariantTable:
    """Read and normalize the raw file for one trait.

    Args:
        legend_row: Validated legend entry (see ``legend.select_trait``)
        raw_input_dir: Directory the legend's file_path is relative to
        stats: Optional Statistics object to update (mutated in place)

    Returns:
        Normalized table with chr_<build>/pos_<build> columns

    Raises:
        ConfigurationError: On missing files, bad delimiter, unknown build
            or unparseable numeric fields
    """
    if stats is None:
        stats = Statistics()

    try:
        build = Build(legend_row["hg_version"])
    except ValueError:
        raise ConfigurationError(f"Unsupported hg_version {legend_row['hg_version']!r}")

    raw_input_file = resolve_input_file(raw_input_dir, legend_row["file_path"])
    logger.info(f"Reading raw input file {raw_input_file}")
    table = read_raw_table(raw_input_file, legend_row["column_delim"])
    stats.input_rows += len(table)
    logger.debug(f"Header: {table.header}")

    _assign_columns(table, legend_row)
    logger.debug(f"Header: {table.header}")

    chr_idx = table.idx("chr")
    ref_idx = table.idx("ref")
    alt_idx = table.idx("alt")
    for row in table.rows:
        row[chr_idx] = normalize_chromosome(row[chr_idx])
        row[ref_idx] = row[ref_idx].upper()
        row[alt_idx] = row[alt_idx].upper()

    logger.debug(f"{len(table)} rows before allele/effect filters")
    table = _filter_rows(table, stats)
    logger.debug(f"{len(table)} rows after allele/effect filters")

    table = _convert_effects(table, legend_row.get("effect_is_OR", "N"), stats)
    _tabulate_sample_sizes(table, legend_row)

    table.rename("pos", f"pos_{build.value}")
    table.rename("chr", f"chr_{build.value}")
    logger.debug(f"Header: {table.header}")

    table.check_shape()
    return table


def _assign_columns(table: VariantTable, legend_row: dict[str, str]) -> None:
    """Rename legend-named source columns to canonical names, NA-fill the rest."""
    for canonical in ASSIGN_COL_NAMES:
        source = legend_row.get(canonical, NA)
        if (
            source != canonical
            and not is_missing(source)
            and table.has(source)
            and not table.has(canonical)
        ):
            table.rename(source, canonical)

    for canonical in ASSIGN_COL_NAMES:
        if not table.has(canonical):
            logger.debug(f"Assigning NA to missing column {canonical}")
            table.add_column(canonical, NA)


def _filter_rows(table: VariantTable, stats: Statistics) -> VariantTable:
    ref_idx = table.idx("ref")
    alt_idx = table.idx("alt")
    effect_idx = table.idx("effect_size")

    kept: list[list[str]] = []
    for row in table.take_rows():
        if is_ambiguous_allele(row[ref_idx]) or is_ambiguous_allele(row[alt_idx]):
            stats.ambiguous_alleles += 1
            continue
        effect = row[effect_idx].strip()
        if effect in NONFINITE_VALUES or is_missing(effect):
            stats.invalid_effect += 1
            continue
        kept.append(row)

    table.rows = kept
    return table


def _parse_effect(value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Unparseable effect size {value!r}")


def _convert_effects(table: VariantTable, effect_is_or: str, stats: Statistics) -> VariantTable:
    effect_idx = table.idx("effect_size")
    effects = [_parse_effect(row[effect_idx]) for row in table.rows]

    if effect_is_or == "N" and effects and all(e > 0.0 for e in effects):
        logger.warning(
            "All effect sizes are positive yet effect_is_OR has been set to N. "
            "Please double check that effect estimates from the raw data file are "
            "indeed regression coefficients and not odds ratios"
        )
    if effect_is_or == "Y" and any(e < 0.0 for e in effects):
        logger.warning(
            "Some effect sizes are negative yet effect_is_OR has been set to Y. "
            "Please double check that effect estimates from the raw data file are "
            "indeed odds or hazard ratios and not regression coefficients"
        )

    if effect_is_or != "Y":
        return table

    kept: list[list[str]] = []
    for row, effect in zip(table.take_rows(), effects):
        if not effect > 0.0 or not math.isfinite(effect):
            stats.failed_or_conversion += 1
            continue
        row[effect_idx] = format_number(math.log(effect))
        kept.append(row)

    table.rows = kept
    return table


def _tabulate_sample_sizes(table: VariantTable, legend_row: dict[str, str]) -> None:
    for group in SAMPLE_SIZE_GROUPS:
        column_name = legend_row.get(f"N_{group}_column", NA)
        legend_value = legend_row.get(f"N_{group}", NA)
        target = f"N_{group}"

        if column_name != NA:
            # Values are present in the raw file
            table.rename(f"N_{group}_column", target)
        elif legend_value != NA:
            # One sample size for the whole study
            pos = table.idx_opt(target)
            if pos is None:
                table.add_column(target, legend_value)
            else:
                for row in table.rows:
                    row[pos] = legend_value

    # No sample sizes in the raw file or the legend
    for group in SAMPLE_SIZE_GROUPS:
        if not table.has(f"N_{group}"):
            table.add_column(f"N_{group}", NA)

    n_case = table.idx("N_case")
    n_ctrl = table.idx("N_ctrl")
    n_total = table.idx("N_total")
    for row in table.rows:
        if not is_missing(row[n_case]) and not is_missing(row[n_ctrl]):
            row[n_total] = format_number(_to_float(row[n_case]) + _to_float(row[n_ctrl]))
        if not is_missing(row[n_ctrl]) and not is_missing(row[n_total]) and is_missing(row[n_case]):
            row[n_case] = format_number(_to_float(row[n_total]) - _to_float(row[n_ctrl]))
        if not is_missing(row[n_case]) and not is_missing(row[n_total]) and is_missing(row[n_ctrl]):
            row[n_ctrl] = format_number(_to_float(row[n_total]) - _to_float(row[n_case]))


def _to_float(value: str) -> float:
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Unparseable sample size {value!r}")
