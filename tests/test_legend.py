"""Tests for formatting legend retrieval and validation."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from gwas_harmonizer.exceptions import ConfigurationError
from gwas_harmonizer.legend import fetch_google_sheet, load_legend_file, select_trait
from gwas_harmonizer.models import VariantTable


def _legend(entries: list[dict[str, str]]) -> VariantTable:
    header = list(entries[0].keys())
    return VariantTable(header=header, rows=[[e[c] for c in header] for e in entries])


class TestLoadLegendFile:
    """Test reading local legend exports."""

    def test_csv(self, write_legend, legend_entry) -> None:
        path = write_legend([legend_entry])

        legend = load_legend_file(path)

        assert "trait_name" in legend.header
        assert len(legend) == 1
        assert legend.get(legend.rows[0], "column_delim") == "\\t"

    def test_tsv(self, tmp_path: Path) -> None:
        path = tmp_path / "legend.tsv"
        path.write_text("trait_name\tfile_path\nLDL\tldl.tsv\n")

        legend = load_legend_file(path)

        assert legend.rows == [["LDL", "ldl.tsv"]]


class TestSelectTrait:
    """Test trait row selection."""

    def test_select(self, legend_entry) -> None:
        other = dict(legend_entry, trait_name="HDL")
        entry = select_trait(_legend([other, legend_entry]), "LDL")

        assert entry["trait_name"] == "LDL"
        assert entry["effect_size"] == "BETA"

    def test_no_rows(self, legend_entry) -> None:
        with pytest.raises(ConfigurationError, match="No rows found"):
            select_trait(_legend([legend_entry]), "HDL")

    def test_multiple_rows(self, legend_entry) -> None:
        with pytest.raises(ConfigurationError, match="Multiple rows found"):
            select_trait(_legend([legend_entry, dict(legend_entry)]), "LDL")

    def test_empty_required_value(self, legend_entry) -> None:
        legend_entry["standard_error"] = ""
        with pytest.raises(ConfigurationError, match="Column standard_error is missing"):
            select_trait(_legend([legend_entry]), "LDL")

    def test_missing_required_column(self, legend_entry) -> None:
        del legend_entry["hg_version"]
        with pytest.raises(ConfigurationError, match="Column hg_version is missing"):
            select_trait(_legend([legend_entry]), "LDL")

    @pytest.mark.parametrize("column", ["chr", "pos", "ref", "alt"])
    def test_na_coordinate_column(self, legend_entry, column: str) -> None:
        legend_entry[column] = "NA"
        with pytest.raises(ConfigurationError, match=f"Column {column} is NA"):
            select_trait(_legend([legend_entry]), "LDL")

    def test_literal_tab_delimiter_accepted(self, legend_entry) -> None:
        legend_entry["column_delim"] = "\t"
        assert select_trait(_legend([legend_entry]), "LDL")["column_delim"] == "\t"


class TestFetchGoogleSheet:
    """Test the Google Sheets legend download."""

    def _response(self, payload: dict) -> MagicMock:
        response = MagicMock()
        response.json.return_value = payload
        response.raise_for_status.return_value = None
        return response

    def test_fetch(self) -> None:
        meta = self._response({"sheets": [{"properties": {"title": "Legend"}}]})
        values = self._response(
            {"values": [["trait_name", "file_path", "N_case"], ["LDL", "ldl.tsv"]]}
        )
        with patch("requests.get", side_effect=[meta, values]) as mock_get:
            legend = fetch_google_sheet("abc123", "key")

        assert legend.header == ["trait_name", "file_path", "N_case"]
        # Trailing empty cells are padded
        assert legend.rows == [["LDL", "ldl.tsv", ""]]
        first_url = mock_get.call_args_list[0].args[0]
        second_url = mock_get.call_args_list[1].args[0]
        assert first_url.endswith("/spreadsheets/abc123")
        assert second_url.endswith("/spreadsheets/abc123/values/Legend")
        assert mock_get.call_args_list[0].kwargs["params"] == {"key": "key"}

    def test_url_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="not the URL"):
            fetch_google_sheet("https://docs.google.com/spreadsheets/d/abc/edit", "key")

    def test_http_error(self) -> None:
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("403 Forbidden")
        with patch("requests.get", return_value=response):
            with pytest.raises(ConfigurationError, match="403 Forbidden"):
                fetch_google_sheet("abc123", "bad-key")

    def test_unexpected_payload(self) -> None:
        with patch("requests.get", return_value=self._response({"error": "nope"})):
            with pytest.raises(ConfigurationError, match="Unexpected Google Sheets response"):
                fetch_google_sheet("abc123", "key")
