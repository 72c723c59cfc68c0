"""Exceptions raised when a merge cannot proceed."""

from pathlib import Path


class MergeError(Exception):
    """Base class for failures that abort a whole merge."""


class ConfigurationNotFound(MergeError):
    """No tsconfig.json exists in any ancestor of the starting file."""

    def __init__(self, start_path: Path):
        self.start_path = start_path
        super().__init__(
            f"tsconfig.json not found above {start_path}; path aliases cannot be resolved"
        )


class ConfigurationError(MergeError):
    """A tsconfig file exists but could not be read or parsed."""

    def __init__(self, config_path: Path, reason: str):
        self.config_path = config_path
        self.reason = reason
        super().__init__(f"Invalid configuration {config_path}: {reason}")
