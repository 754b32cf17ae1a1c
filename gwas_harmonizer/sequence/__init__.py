"""Reference-base lookup for residual rows."""

from gwas_harmonizer.sequence.faidx import FaidxLookup, SequenceLookup, make_region
from gwas_harmonizer.sequence.pool import ChunkQueue, SequenceResolutionPool, make_chunks

__all__ = [
    "ChunkQueue",
    "FaidxLookup",
    "SequenceLookup",
    "SequenceResolutionPool",
    "make_chunks",
    "make_region",
]
