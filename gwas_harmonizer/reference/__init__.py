"""dbSNP reference catalogue."""

from gwas_harmonizer.reference.catalogue import ReferenceCatalogue

__all__ = ["ReferenceCatalogue"]
