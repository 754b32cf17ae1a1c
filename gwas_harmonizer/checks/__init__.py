"""Variant matching and allele orientation checks."""

from gwas_harmonizer.checks.flip import flip_row
from gwas_harmonizer.checks.matcher import match_variants
from gwas_harmonizer.checks.reconcile import reconcile_residual

__all__ = ["flip_row", "match_variants", "reconcile_residual"]
