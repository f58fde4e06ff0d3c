"""Exception hierarchy for folder-size.

Configuration errors are fatal and raised before any path is processed.
Every other error is path-scoped: the strategy selector turns it into a
warning and moves on to the next path.
"""

from __future__ import annotations

from pathlib import Path


class FolderSizeError(Exception):
    """Base exception for all folder-size errors."""


class ConfigurationError(FolderSizeError):
    """Exception raised when configuration loading or validation fails.

    This exception provides detailed, actionable error messages for
    configuration issues including conflicting mode flags, file not found,
    YAML parsing errors and validation failures.
    """


class EnvironmentVariableError(FolderSizeError):
    """Exception raised when environment variable resolution fails."""


class NativeQueryError(FolderSizeError):
    """Exception raised when the native size query fails for a path."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        """Initialize NativeQueryError.

        Args:
            message: Error message
            path: Directory the query was issued for
        """
        super().__init__(message)
        self.path: Path | None = path


class NativeQueryPermissionError(NativeQueryError):
    """Native query was refused because access to the tree was denied."""


class NativeQueryUnavailableError(NativeQueryError):
    """Native size facility cannot be acquired on this system."""


class FallbackError(FolderSizeError):
    """Exception raised when the fallback enumeration strategy fails."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        """Initialize FallbackError.

        Args:
            message: Error message
            path: Directory the fallback tool was run against
        """
        super().__init__(message)
        self.path: Path | None = path


class FallbackToolNotFoundError(FallbackError):
    """Fallback executable could not be located."""


class UnparseableOutputError(FallbackError):
    """Summary block of the fallback tool did not have the expected shape."""

    def __init__(self, message: str, path: Path | None = None, output: str = "") -> None:
        """Initialize UnparseableOutputError.

        Args:
            message: Error message
            path: Directory the fallback tool was run against
            output: Captured tail of the tool output, kept for debugging
        """
        super().__init__(message, path)
        self.output: str = output
