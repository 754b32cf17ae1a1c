"""
Exceptions raised by the harmonization pipeline.
Kept minimal - only what's needed to separate fatal from recoverable failures.
"""


class HarmonizerError(Exception):
    """Base exception for harmonization errors."""
    pass


class ConfigurationError(HarmonizerError):
    """Raised when an upstream contract is violated (missing column, bad number, bad legend row)."""
    pass


class LiftoverError(ConfigurationError):
    """Raised when the coordinate-lift tool cannot be run or fails."""
    pass


class SequenceToolError(HarmonizerError):
    """Raised when one sequence-tool batch fails and cannot be retried."""
    pass


class ResourceExhaustedError(SequenceToolError):
    """Raised when the sequence tool cannot be started because the host is out of memory."""
    pass
