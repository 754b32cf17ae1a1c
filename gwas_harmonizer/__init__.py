"""
GWAS Summary-Statistics Harmonizer.

Matches association summary statistics against a dbSNP-style reference
catalogue, recovers ref/alt swaps, and resolves the remaining variants
against the hg38 reference genome with samtools faidx.
"""

__version__ = "1.0.0"
__author__ = "Data Tecnica International"
