"""Tests for catalogue matching with allele-flip recovery."""

import pytest

from gwas_harmonizer.checks.matcher import match_variants
from gwas_harmonizer.exceptions import ConfigurationError
from gwas_harmonizer.models import LIFTED_COLUMNS, NA, Statistics
from gwas_harmonizer.reference.catalogue import ReferenceCatalogue


def _values(table, row, *columns):
    return tuple(table.get(row, c) for c in columns)


class TestDirectMatch:
    """Rows reported in catalogue orientation."""

    def test_direct(self, make_row, make_table, catalogue) -> None:
        stats = Statistics()
        result = match_variants(make_table([make_row()]), catalogue, stats)

        matched = result.matched
        assert matched.header == list(LIFTED_COLUMNS) + ["rsid", "unique_id"]
        assert len(matched) == 1
        row = matched.rows[0]
        assert _values(matched, row, "ref", "alt", "effect_size", "EAF", "rsid", "unique_id") == (
            "A", "G", "0.5", "0.3", "rs1", "1_1000_A_G",
        )
        assert len(result.residual) == 0
        assert result.annotation_columns == ["rsid"]
        assert stats.direct_matches == 1
        assert stats.flipped_candidates == 0

    def test_hg38_position_must_match(self, make_row, make_table, catalogue) -> None:
        result = match_variants(make_table([make_row(pos_hg38="901")]), catalogue)

        assert len(result.matched) == 0
        assert len(result.residual) == 1


class TestFlippedMatch:
    """Rows reported against the other allele."""

    def test_flipped(self, make_row, make_table, catalogue) -> None:
        stats = Statistics()
        row = make_row(ref="G", alt="A", effect_size="0.5", eaf="0.3")

        result = match_variants(make_table([row]), catalogue, stats)

        matched = result.matched
        assert len(matched) == 1
        out = matched.rows[0]
        assert _values(matched, out, "ref", "alt", "effect_size", "EAF", "rsid", "unique_id") == (
            "A", "G", "-0.5", "0.7", "rs1", "1_1000_A_G",
        )
        assert stats.flipped_candidates == 1
        assert stats.flipped_accepted == 1
        assert len(result.residual) == 0

    def test_flipped_missing_eaf(self, make_row, make_table, catalogue) -> None:
        row = make_row(ref="G", alt="A", eaf="NA")

        result = match_variants(make_table([row]), catalogue)

        assert result.matched.get(result.matched.rows[0], "EAF") == NA

    def test_flipped_malformed_eaf(self, make_row, make_table, catalogue) -> None:
        row = make_row(ref="G", alt="A", eaf="0.3.1")

        with pytest.raises(ConfigurationError, match="Invalid EAF"):
            match_variants(make_table([row]), catalogue)


class TestPriorityAndDedup:
    """Direct matches win; unique_id values are distinct."""

    def test_direct_beats_flipped(self, make_row, make_table) -> None:
        """A catalogue listing both orientations: the reported one wins."""
        catalogue = ReferenceCatalogue.from_records(
            ["chr", "pos_hg19", "ref", "alt", "pos_hg38", "rsid"],
            [
                ["1", "1000", "A", "G", "900", "rsAG"],
                ["1", "1000", "G", "A", "900", "rsGA"],
            ],
        )
        stats = Statistics()

        result = match_variants(make_table([make_row(ref="A", alt="G")]), catalogue, stats)

        matched = result.matched
        assert len(matched) == 1
        row = matched.rows[0]
        assert _values(matched, row, "ref", "alt", "effect_size", "rsid") == (
            "A", "G", "0.5", "rsAG",
        )
        assert stats.flipped_candidates == 1
        assert stats.flipped_collisions == 1
        assert stats.flipped_accepted == 0

    def test_duplicate_after_flip_removed(self, make_row, make_table, catalogue) -> None:
        """The same variant reported in both orientations keeps the direct row."""
        rows = [
            make_row(ref="G", alt="A", effect_size="0.4"),
            make_row(ref="A", alt="G", effect_size="0.5"),
        ]
        stats = Statistics()

        result = match_variants(make_table(rows), catalogue, stats)

        matched = result.matched
        assert len(matched) == 1
        assert matched.get(matched.rows[0], "effect_size") == "0.5"
        assert stats.duplicates_removed == 1
        assert stats.matched == 1

    def test_duplicate_input_rows(self, make_row, make_table, catalogue) -> None:
        """Identical input rows collapse to the first."""
        rows = [make_row(effect_size="0.1"), make_row(effect_size="0.2")]

        result = match_variants(make_table(rows), catalogue)

        assert list(result.matched.column("effect_size")) == ["0.1"]

    def test_unique_ids_distinct(self, make_row, make_table, catalogue) -> None:
        rows = [
            make_row(),
            make_row(ref="G", alt="A"),
            make_row(pos_hg19="2000", ref="C", alt="T", pos_hg38="1900"),
            make_row(pos_hg19="2000", ref="T", alt="C", pos_hg38="1900"),
            make_row(chr_hg19="2", pos_hg19="3000", ref="T", alt="G", pos_hg38="2900"),
        ]

        result = match_variants(make_table(rows), catalogue)

        ids = list(result.matched.column("unique_id"))
        assert len(ids) == len(set(ids)) == 3


class TestResidual:
    """Rows found in neither orientation."""

    def test_residual(self, make_row, make_table, catalogue) -> None:
        stats = Statistics()
        rows = [
            make_row(),
            make_row(pos_hg19="5000", pos_hg38="4900"),
            make_row(pos_hg19="6000", pos_hg38=NA),
            make_row(pos_hg19="7000", chr_hg38=NA),
        ]

        result = match_variants(make_table(rows), catalogue, stats)

        residual = result.residual
        assert residual.header == list(LIFTED_COLUMNS)
        assert list(residual.column("pos_hg19")) == ["5000"]
        assert stats.residual == 1
        assert stats.missing_coordinates == 2

    def test_other_allele_pair_is_residual(self, make_row, make_table, catalogue) -> None:
        """Same position, different alleles: not a match in either orientation."""
        result = match_variants(make_table([make_row(ref="A", alt="C")]), catalogue)

        assert len(result.matched) == 0
        assert len(result.residual) == 1

    @pytest.mark.parametrize(("ref", "alt"), [("A", "G"), ("G", "A")])
    def test_matched_variant_not_residual(self, make_row, make_table, catalogue, ref, alt) -> None:
        """A row sharing chr/pos/alleles with a matched row is never residual.

        Only its hg38 position differs, so neither catalogue lookup hits, but
        the variant is already in the matched table in one allele order.
        """
        stats = Statistics()
        table = make_table([make_row(), make_row(ref=ref, alt=alt, pos_hg38="950")])

        result = match_variants(table, catalogue, stats)

        assert len(result.matched) == 1
        assert len(result.residual) == 0
        assert stats.shadowed_by_match == 1
        assert stats.missing_coordinates == 0


class TestIdempotence:
    """Matching the matched output again changes nothing."""

    def test_rematch(self, make_row, make_table, catalogue) -> None:
        rows = [
            make_row(),
            make_row(ref="G", alt="A"),
            make_row(pos_hg19="2000", ref="T", alt="C", pos_hg38="1900", effect_size="-0.25", eaf="0.9"),
            make_row(pos_hg19="5000", pos_hg38="4900"),
        ]
        first = match_variants(make_table(rows), catalogue)
        first_rows = [list(r) for r in first.matched.rows]

        projected = first.matched.select(LIFTED_COLUMNS)
        stats = Statistics()
        second = match_variants(projected, catalogue, stats)

        assert second.matched.rows == first_rows
        assert len(second.residual) == 0
        assert stats.flipped_accepted == 0
        assert stats.duplicates_removed == 0


class TestColumnClash:
    """Annotation columns may not shadow table columns."""

    def test_clash(self, make_row, make_table) -> None:
        catalogue = ReferenceCatalogue.from_records(
            ["chr", "pos_hg19", "ref", "alt", "pos_hg38", "EAF"],
            [["1", "1000", "A", "G", "900", "0.2"]],
        )
        with pytest.raises(ConfigurationError, match="clash"):
            match_variants(make_table([make_row()]), catalogue)
