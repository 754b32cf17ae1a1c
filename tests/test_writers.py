"""Tests for output writers."""

import gzip
from pathlib import Path

from gwas_harmonizer.models import Statistics, VariantTable
from gwas_harmonizer.writers.log import print_summary, write_log_file
from gwas_harmonizer.writers.table import write_table_gz


class TestWriteTableGz:
    """Test the gzipped TSV writer."""

    def test_header_and_rows(self, tmp_path: Path) -> None:
        table = VariantTable(
            header=["rsid", "chr_hg19", "pos_hg19"],
            rows=[["rs1", "1", "1000"], ["NA", "X", "50"]],
        )
        path = tmp_path / "out.tsv.gz"

        assert write_table_gz(table, path) == path

        with gzip.open(path, "rt") as f:
            assert f.read() == "rsid\tchr_hg19\tpos_hg19\nrs1\t1\t1000\nNA\tX\t50\n"

    def test_empty_table_writes_header(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.tsv.gz"

        write_table_gz(VariantTable(header=["rsid", "unique_id"]), path)

        with gzip.open(path, "rt") as f:
            assert f.read() == "rsid\tunique_id\n"


class TestLogFile:
    """Test the LOG file and console summary."""

    def test_log_file_beside_output(self, make_config) -> None:
        config = make_config(legend_file=Path("legend.csv"), threads=4)
        stats = Statistics(input_rows=10, direct_matches=3, flipped_accepted=2, final_rows=6)

        log_path = write_log_file(config.output_file, "LDL", config, stats)

        assert log_path == config.output_file.parent / "LOG-LDL.txt"
        content = log_path.read_text()
        assert "Trait name:                  LDL" in content
        assert "Legend file:                 legend.csv" in content
        assert "Threads:                     4" in content
        assert " Rows in raw file 10" in content
        assert " Total matched 5" in content
        assert "Total rows written 6" in content

    def test_log_file_sheets_legend(self, make_config) -> None:
        config = make_config(google_sheets_id="abc123", google_sheets_api_key="s3cr3t", threads=None)

        content = write_log_file(config.output_file, "LDL", config, Statistics()).read_text()

        assert "Google Sheets legend:        abc123" in content
        assert "Threads:                     auto" in content
        assert "s3cr3t" not in content

    def test_print_summary(self, capsys) -> None:
        print_summary(Statistics(chunk_retries=2, resolved_flipped=1))

        out = capsys.readouterr().out
        assert " Chunk retries 2" in out
        assert " Residual rows flipped 1" in out
