"""
Exception hierarchy for reaper.

Library code raises these; only the CLI turns them into log lines and
exit codes.
"""


class ReaperError(Exception):
    """Base class for all reaper errors."""
    pass


class ConfigError(ReaperError):
    """Raised when the configuration file cannot be read or is malformed."""
    pass


class InvalidPolicyError(ConfigError):
    """Raised when a retention tier or policy violates its invariants."""
    pass


class DurationOverflowError(ConfigError):
    """Raised when duration or instant arithmetic leaves the representable range."""
    pass


class UnsortedInputError(ReaperError, ValueError):
    """Raised when timestamps handed to the engine are not sorted ascending."""
    pass


class ScanError(ReaperError):
    """Raised when the backup directory cannot be listed."""
    pass


class DeletionError(ReaperError):
    """Raised when an artifact could not be removed."""
    pass
