"""
Exception hierarchy for tidemark.

Every error raised on purpose by the package derives from TidemarkError so
the driver can report failures with a single except clause.
"""


class TidemarkError(Exception):
    """Base class for tidemark errors."""

    pass


class ScanError(TidemarkError):
    """Raised when the source tree cannot be walked or a file cannot be stat'ed."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class ConfigError(TidemarkError):
    """Raised when configuration values are invalid."""

    pass


class RegistryError(TidemarkError):
    """Raised when a persisted registry cannot be read or is malformed."""

    pass
