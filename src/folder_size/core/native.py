"""Native size query backends.

The native strategy asks the platform for the size of a whole tree in one
call. On Windows this is the COM ``Scripting.FileSystemObject`` facility
(via pywin32), whose ``Folder.Size`` property is computed by the system.
Other platforms expose no folder-size call. There the query is a stand-in,
not a system facility: it walks the tree itself with ``os.scandir`` and
sums ``st_size`` of regular files, never following symbolic links. Off
Windows the "native" strategy is therefore our own traversal.

Both backends share the same contract:
- ``folder_size(path)`` returns an int, or None for an empty/unknown size
- access denied anywhere in the tree raises NativeQueryPermissionError
- any other failure raises NativeQueryError

A single handle is acquired per run and released when the run ends.
"""

import logging
import math
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Final

from folder_size.core.errors import (
    NativeQueryError,
    NativeQueryPermissionError,
    NativeQueryUnavailableError,
)
from folder_size.types.protocols import NativeSizeQuery

logger = logging.getLogger(__name__)

FSO_PROG_ID: Final[str] = "Scripting.FileSystemObject"

# Signed 32-bit codes reported by COM for "permission denied"
CTL_E_PERMISSIONDENIED: Final[int] = -2146828218  # 0x800A0046
E_ACCESSDENIED: Final[int] = -2147024891  # 0x80070005
PERMISSION_DENIED_CODES: Final[frozenset[int]] = frozenset({CTL_E_PERMISSIONDENIED, E_ACCESSDENIED})


def _com_error_codes(exc: BaseException) -> set[int]:
    """Collect the HRESULT and exception scode carried by a COM error.

    pywin32 reports ``(hresult, strerror, excepinfo, argerror)`` where
    ``excepinfo[5]`` is the scode raised by the automation object itself.
    """
    codes: set[int] = set()
    args = exc.args
    hresult: object = getattr(exc, "hresult", args[0] if args else None)
    excepinfo: object = getattr(exc, "excepinfo", args[2] if len(args) > 2 else None)

    if isinstance(hresult, int):
        codes.add(hresult)
    if isinstance(excepinfo, tuple) and len(excepinfo) > 5:  # pyright: ignore[reportUnknownArgumentType]
        scode: object = excepinfo[5]  # pyright: ignore[reportUnknownVariableType]
        if isinstance(scode, int):
            codes.add(scode)
    return codes


def is_permission_denied(exc: BaseException) -> bool:
    """Check whether a native facility error means access was denied."""
    if isinstance(exc, PermissionError):
        return True
    return bool(_com_error_codes(exc) & PERMISSION_DENIED_CODES)


def coerce_size(value: object) -> int | None:
    """Normalize a size reported by the platform.

    Empty values (None, empty string) and values that are not whole
    numbers map to the None sentinel; zero stays a valid size.

    Examples:
        >>> coerce_size(Decimal("5120"))
        5120
        >>> coerce_size(None) is None
        True
        >>> coerce_size(0)
        0
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float | Decimal):
        if not math.isfinite(value) or value < 0 or int(value) != value:
            return None
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        return int(stripped) if stripped.isdigit() else None
    return None


class FileSystemObjectQuery:
    """Native query backed by the Windows Scripting.FileSystemObject."""

    def __init__(self, fso: object) -> None:
        """Initialize the query around an existing COM object.

        Args:
            fso: Dispatch object for Scripting.FileSystemObject
        """
        self._fso: object | None = fso

    @classmethod
    def create(cls) -> "FileSystemObjectQuery":
        """Create the COM object for this process.

        Raises:
            NativeQueryUnavailableError: If pywin32 is missing or COM refuses
                to create the object
        """
        try:
            import win32com.client  # pyright: ignore[reportMissingModuleSource]
        except ImportError as exc:
            msg = "pywin32 is required for the native size query on Windows"
            raise NativeQueryUnavailableError(msg) from exc

        try:
            fso: object = win32com.client.Dispatch(FSO_PROG_ID)  # pyright: ignore[reportUnknownMemberType]
        except Exception as exc:
            msg = f"Unable to create {FSO_PROG_ID}: {exc}"
            raise NativeQueryUnavailableError(msg) from exc

        logger.debug("Native size query acquired", extra={"backend": FSO_PROG_ID})
        return cls(fso)

    def folder_size(self, path: Path) -> int | None:
        """Return Folder.Size for path, or None if it is empty."""
        if self._fso is None:
            msg = "Native size query has already been released"
            raise NativeQueryError(msg, path)

        try:
            folder = self._fso.GetFolder(str(path))  # pyright: ignore[reportAttributeAccessIssue, reportUnknownMemberType, reportUnknownVariableType]
            size: object = folder.Size  # pyright: ignore[reportUnknownMemberType]
        except Exception as exc:
            # COM surfaces every failure as com_error; classify by code
            if is_permission_denied(exc):
                raise NativeQueryPermissionError(f"Access denied: {exc}", path) from exc
            raise NativeQueryError(str(exc), path) from exc

        return coerce_size(size)

    def close(self) -> None:
        """Drop the reference to the COM object."""
        if self._fso is not None:
            self._fso = None
            logger.debug("Native size query released", extra={"backend": FSO_PROG_ID})


class ScandirSizeQuery:
    """Stand-in native query for platforms without a folder-size facility.

    Sums the apparent size of regular files. Symbolic links are neither
    followed nor counted, mirroring how junctions are skipped on Windows.
    """

    def __init__(self) -> None:
        self._closed: bool = False

    def folder_size(self, path: Path) -> int | None:
        """Return the total size of regular files below path."""
        if self._closed:
            msg = "Native size query has already been released"
            raise NativeQueryError(msg, path)

        try:
            return self._tree_size(path)
        except PermissionError as exc:
            raise NativeQueryPermissionError(f"Access denied: {exc}", path) from exc
        except OSError as exc:
            raise NativeQueryError(str(exc), path) from exc

    def _tree_size(self, root: Path) -> int:
        total = 0
        pending: list[str] = [os.fspath(root)]

        while pending:
            current = pending.pop()
            try:
                with os.scandir(current) as entries:
                    for entry in entries:
                        try:
                            if entry.is_dir(follow_symlinks=False):
                                pending.append(entry.path)
                            elif entry.is_file(follow_symlinks=False):
                                total += entry.stat(follow_symlinks=False).st_size
                        except FileNotFoundError:
                            # Removed while being measured
                            continue
            except FileNotFoundError:
                if current == os.fspath(root):
                    raise
                continue

        return total

    def close(self) -> None:
        self._closed = True


def acquire_native_query() -> NativeSizeQuery:
    """Acquire the native size query handle for this platform.

    Raises:
        NativeQueryUnavailableError: If the platform facility cannot be created
    """
    if sys.platform == "win32":
        return FileSystemObjectQuery.create()
    return ScandirSizeQuery()


@contextmanager
def open_native_query() -> Iterator[NativeSizeQuery]:
    """Acquire the shared native handle and release it on every exit path.

    Raises:
        NativeQueryUnavailableError: If the platform facility cannot be created

    Example:
        >>> with open_native_query() as query:
        ...     query.folder_size(Path("/tmp"))
    """
    query = acquire_native_query()
    try:
        yield query
    finally:
        query.close()
