"""Pytest fixtures for gwas_harmonizer tests."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from gwas_harmonizer.config import Config
from gwas_harmonizer.exceptions import ResourceExhaustedError
from gwas_harmonizer.logging_config import reset_logging
from gwas_harmonizer.models import LIFTED_COLUMNS, NA, VariantTable
from gwas_harmonizer.reference.catalogue import ReferenceCatalogue
from gwas_harmonizer.sequence.faidx import SequenceLookup

CATALOGUE_HEADER = ["chr", "pos_hg19", "ref", "alt", "pos_hg38", "rsid"]

LEGEND_HEADER = [
    "trait_name",
    "file_path",
    "column_delim",
    "hg_version",
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
    "N_total",
    "N_case",
    "N_ctrl",
]


class FakeLookup(SequenceLookup):
    """Sequence lookup answering from a region -> base dict.

    ``failures`` maps a region to the number of times a batch containing it
    raises ResourceExhaustedError before succeeding.
    """

    def __init__(
        self,
        bases: dict[str, str] | None = None,
        failures: dict[str, int] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.bases = bases or {}
        self.failures = dict(failures or {})
        self.error = error
        self.calls: list[list[str]] = []

    def fetch(self, regions: list[str]) -> list[str]:
        self.calls.append(list(regions))
        if self.error is not None:
            raise self.error
        for region in regions:
            if self.failures.get(region, 0) > 0:
                self.failures[region] -= 1
                raise ResourceExhaustedError("fork failed: Resource temporarily unavailable")
        return [self.bases.get(region, "N") for region in regions]


def liftover_run(unmappable: set[str] | None = None) -> Callable[..., MagicMock]:
    """Build a subprocess.run replacement for liftOver.

    Lifts every BED row down by 100bp, except row ids in ``unmappable``,
    which go to the unlifted file. Commands are recorded in ``.calls``.
    """
    unmappable = unmappable or set()
    calls: list[list[str]] = []

    def _run(cmd, **kwargs):
        calls.append(cmd)
        input_bed, _chain, output_bed, unlifted_bed = (Path(p) for p in cmd[1:5])
        with open(input_bed) as src, open(output_bed, "w") as out, open(unlifted_bed, "w") as bad:
            for line in src:
                chrom, start, end, row_id = line.rstrip("\n").split("\t")
                if row_id in unmappable:
                    bad.write("#Deleted in new\n" + line)
                    continue
                out.write(f"{chrom}\t{int(start) - 100}\t{int(end) - 100}\t{row_id}\n")
        return MagicMock(returncode=0, stdout="", stderr="")

    _run.calls = calls
    return _run


def faidx_run(bases: dict[str, str]) -> Callable[..., MagicMock]:
    """Build a subprocess.run replacement for ``samtools faidx``."""

    def _run(cmd, **kwargs):
        regions = cmd[3:]
        stdout = "".join(f">{region}\n{bases.get(region, 'N')}\n" for region in regions)
        return MagicMock(returncode=0, stdout=stdout, stderr="")

    return _run


@pytest.fixture
def fake_liftover() -> Callable[..., Callable[..., MagicMock]]:
    return liftover_run


@pytest.fixture
def fake_faidx() -> Callable[..., Callable[..., MagicMock]]:
    return faidx_run


@pytest.fixture
def liftover_dir(tmp_path: Path) -> Path:
    """Directory holding (empty) chain files for every supported chain."""
    directory = tmp_path / "liftover"
    directory.mkdir()
    for name in ("hg17ToHg19", "hg18ToHg19", "hg19ToHg38", "hg38ToHg19"):
        (directory / f"{name}.over.chain.gz").write_bytes(b"")
    return directory


@pytest.fixture(autouse=True)
def _reset_logging():
    """Keep handlers installed by one test out of the next."""
    yield
    reset_logging()


@pytest.fixture
def make_row() -> Callable[..., list[str]]:
    """Factory for rows in LIFTED_COLUMNS order."""

    def _make_row(
        chr_hg19: str = "1",
        pos_hg19: str = "1000",
        ref: str = "A",
        alt: str = "G",
        effect_size: str = "0.5",
        eaf: str = "0.3",
        pos_hg38: str = "900",
        chr_hg38: str | None = None,
        standard_error: str = "0.01",
        pvalue: str = "1e-8",
    ) -> list[str]:
        return [
            chr_hg19,
            pos_hg19,
            ref,
            alt,
            effect_size,
            standard_error,
            eaf,
            pvalue,
            NA,
            "1000",
            NA,
            NA,
            chr_hg19 if chr_hg38 is None else chr_hg38,
            pos_hg38,
        ]

    return _make_row


@pytest.fixture
def make_table() -> Callable[[list[list[str]]], VariantTable]:
    """Factory for lifted tables."""

    def _make_table(rows: list[list[str]]) -> VariantTable:
        return VariantTable(header=list(LIFTED_COLUMNS), rows=[list(r) for r in rows])

    return _make_table


@pytest.fixture
def catalogue() -> ReferenceCatalogue:
    """Small in-memory catalogue.

    - rs1: 1:1000 A/G (hg38 900)
    - rs2: 1:2000 C/T (hg38 1900)
    - rs3: 2:3000 G/T (hg38 2900)
    """
    return ReferenceCatalogue.from_records(
        CATALOGUE_HEADER,
        [
            ["1", "1000", "A", "G", "900", "rs1"],
            ["1", "2000", "C", "T", "1900", "rs2"],
            ["2", "3000", "G", "T", "2900", "rs3"],
        ],
    )


@pytest.fixture
def fake_lookup() -> type[FakeLookup]:
    """The FakeLookup class, for tests that build their own lookups."""
    return FakeLookup


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., Config]:
    """Factory for a Config whose paths all live under tmp_path."""

    def _make_config(**overrides) -> Config:
        raw_dir = tmp_path / "raw"
        raw_dir.mkdir(exist_ok=True)
        dbsnp = tmp_path / "dbsnp.tsv"
        fasta = tmp_path / "hg38.fa"
        for path in (dbsnp, fasta):
            if not path.exists():
                path.write_text("")
        values = {
            "trait_name": "LDL",
            "raw_input_dir": raw_dir,
            "dbsnp_file": dbsnp,
            "fasta_ref": fasta,
            "output_file": tmp_path / "LDL.tsv.gz",
            "threads": 2,
            "batch_size": 2,
            "retry_backoff": 0.0,
        }
        values.update(overrides)
        return Config(**values)

    return _make_config


@pytest.fixture
def legend_entry() -> dict[str, str]:
    """Legend row for a tab-delimited hg19 raw file with a whole-study sample size."""
    return {
        "trait_name": "LDL",
        "file_path": "ldl.tsv",
        "column_delim": "\\t",
        "hg_version": "hg19",
        "rsid": "SNP",
        "chr": "CHR",
        "pos": "BP",
        "ref": "A2",
        "alt": "A1",
        "effect_size": "BETA",
        "effect_is_OR": "N",
        "standard_error": "SE",
        "EAF": "FRQ",
        "pvalue": "P",
        "pvalue_het": "NA",
        "N_total_column": "NA",
        "N_case_column": "NA",
        "N_ctrl_column": "NA",
        "N_total": "5000",
        "N_case": "NA",
        "N_ctrl": "NA",
    }


@pytest.fixture
def write_legend(tmp_path: Path) -> Callable[[list[dict[str, str]]], Path]:
    """Write legend entries to a CSV file and return its path."""

    def _write_legend(entries: list[dict[str, str]]) -> Path:
        path = tmp_path / "legend.csv"
        lines = [",".join(LEGEND_HEADER)]
        for entry in entries:
            lines.append(",".join(entry.get(column, "") for column in LEGEND_HEADER))
        path.write_text("\n".join(lines) + "\n")
        return path

    return _write_legend
