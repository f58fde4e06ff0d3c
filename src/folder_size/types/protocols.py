"""Protocol definitions for component interfaces.

This module defines structural subtyping protocols that establish the
contracts between the strategy selector and the two sizing strategies
without requiring inheritance.
"""

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from folder_size.types.models import FallbackMeasurement


@runtime_checkable
class NativeSizeQuery(Protocol):
    """Protocol for the shared native size query handle.

    A single handle is acquired per run, used for every path measured with
    the native strategy and released once at the end of the run.
    """

    def folder_size(self, path: Path) -> int | None:
        """Return the total byte size of the tree rooted at path.

        Args:
            path: Absolute path of an existing directory

        Returns:
            Total size in bytes, or None when the facility reports an
            empty/unknown size

        Raises:
            NativeQueryPermissionError: If access to the tree was denied
            NativeQueryError: For any other failure of the facility
        """
        ...

    def close(self) -> None:
        """Release the underlying platform resource."""
        ...


@runtime_checkable
class FallbackMeasurer(Protocol):
    """Protocol for the fallback enumeration strategy."""

    def measure(
        self,
        path: Path,
        *,
        exclude_dirs: Sequence[str] = (),
        exclude_files: Sequence[str] = (),
    ) -> FallbackMeasurement:
        """Measure path by running the external enumeration tool.

        Args:
            path: Absolute path of an existing directory
            exclude_dirs: Directory names or wildcards to exclude
            exclude_files: File names or wildcards to exclude

        Returns:
            Parsed counters bracketed by wall-clock times

        Raises:
            UnparseableOutputError: If the summary block cannot be parsed
            FallbackError: If the tool could not be run
        """
        ...
