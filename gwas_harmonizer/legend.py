"""GWAS formatting legend retrieval.

The legend has one row per trait describing where its raw summary
statistics live and how their columns are laid out. It is read either
from a local CSV/TSV export or from Google Sheets.
"""

import logging
from pathlib import Path

import requests

from gwas_harmonizer.exceptions import ConfigurationError
from gwas_harmonizer.io_utils import read_table
from gwas_harmonizer.models import VariantTable

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"

# Legend columns that must hold a value for the selected trait
REQUIRED_LEGEND_COLUMNS: tuple[str, ...] = (
    "rsid",
    "chr",
    "pos",
    "ref",
    "alt",
    "effect_size",
    "effect_is_OR",
    "standard_error",
    "EAF",
    "pvalue",
    "pvalue_het",
    "N_total_column",
    "N_case_column",
    "N_ctrl_column",
    "column_delim",
    "hg_version",
    "file_path",
    "N_total",
    "N_case",
    "N_ctrl",
)

# Legend columns that may not be NA
NON_NA_LEGEND_COLUMNS: tuple[str, ...] = ("chr", "pos", "ref", "alt")


def load_legend_file(path: Path) -> VariantTable:
    """Read a legend exported as CSV (default) or TSV (.tsv/.txt)."""
    delimiter = "\t" if path.suffix.lower() in {".tsv", ".txt"} else ","
    return read_table(path, delimiter=delimiter)


def fetch_google_sheet(
    sheet_id: str,
    api_key: str,
    timeout: float = 30.0,
) -> VariantTable:
    """Download the first worksheet of a Google Sheets document.

    Args:
        sheet_id: Spreadsheet id (not the URL)
        api_key: Sheets API key
        timeout: Per-request timeout in seconds

    Returns:
        VariantTable with the first sheet row as header

    Raises:
        ConfigurationError: If the id is a URL or the API request fails
    """
    if sheet_id.startswith("http"):
        raise ConfigurationError(
            "google_sheets_id should be the ID of the Google Sheets document, not the URL. "
            "For https://docs.google.com/spreadsheets/d/<ID>/edit#gid=0 pass <ID>."
        )

    try:
        meta = requests.get(
            f"{SHEETS_API_URL}/{sheet_id}",
            params={"key": api_key},
            timeout=timeout,
        )
        meta.raise_for_status()
        title = meta.json()["sheets"][0]["properties"]["title"]

        values = requests.get(
            f"{SHEETS_API_URL}/{sheet_id}/values/{title}",
            params={"key": api_key},
            timeout=timeout,
        )
        values.raise_for_status()
        data = values.json()["values"]
    except requests.RequestException as e:
        raise ConfigurationError(f"Failed to fetch formatting legend {sheet_id}: {e}") from e
    except (KeyError, IndexError, ValueError) as e:
        raise ConfigurationError(f"Unexpected Google Sheets response for {sheet_id}: {e}") from e

    if not data:
        raise ConfigurationError(f"Formatting legend {sheet_id} is empty")

    header = [str(value) for value in data[0]]
    rows = []
    for record in data[1:]:
        row = [str(value) for value in record][: len(header)]
        # The API omits trailing empty cells
        row.extend([""] * (len(header) - len(row)))
        rows.append(row)

    logger.debug(f"Legend header: {header}")
    return VariantTable(header=header, rows=rows)


def select_trait(legend: VariantTable, trait_name: str) -> dict[str, str]:
    """Select and validate the legend row for one trait.

    Args:
        legend: Formatting legend table
        trait_name: Value of the trait_name column to select

    Returns:
        Mapping of legend column to value for the trait

    Raises:
        ConfigurationError: If there is not exactly one row, or a required
            value is missing/NA
    """
    trait_idx = legend.idx("trait_name")
    rows = [row for row in legend.rows if row[trait_idx] == trait_name]

    if not rows:
        raise ConfigurationError(
            f"No rows found in the GWAS formatting legend for trait_name={trait_name}"
        )
    if len(rows) > 1:
        raise ConfigurationError(
            f"Multiple rows found in the GWAS formatting legend for trait_name={trait_name}"
        )

    entry = dict(zip(legend.header, rows[0]))

    for column in REQUIRED_LEGEND_COLUMNS:
        if entry.get(column, "") == "":
            raise ConfigurationError(
                f"Column {column} is missing in the GWAS formatting legend for trait_name={trait_name}"
            )

    for column in NON_NA_LEGEND_COLUMNS:
        if entry[column] in {"NA", "NaN"}:
            raise ConfigurationError(
                f"Column {column} is NA in the GWAS formatting legend for trait_name={trait_name}"
            )

    return entry
