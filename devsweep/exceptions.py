"""
Custom exceptions for devsweep.
"""

from pathlib import Path


class DevSweepError(Exception):
    """Base exception for devsweep errors."""
    pass


class ConfigError(DevSweepError):
    """Raised when the configuration cannot be used to start a scan."""
    pass


class ValidationError(ConfigError):
    """Raised when a single configuration value fails validation."""
    pass


class RuleNotFoundError(DevSweepError):
    """Raised when a cleanup rule lookup by name fails."""
    pass


class TrashError(DevSweepError):
    """Raised when moving a path to the trash or deleting it fails."""

    def __init__(self, path: Path | str, message: str):
        self.path = Path(path)
        self.message = message
        super().__init__(f"Failed to remove {self.path}: {message}")


class ScanCancelled(DevSweepError):
    """Raised inside a size walk when the cancel token fires."""
    pass
