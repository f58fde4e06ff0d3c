"""Fallback sizing strategy backed by robocopy's list-only mode.

Robocopy is run in dry-run mode against a non-existent destination so that
nothing is copied; its trailing summary block is the only data source. The
summary has a fixed English layout:

    ------------------------------------------------------------------------------

                   Total    Copied   Skipped  Mismatch    FAILED    Extras
        Dirs :         5         5         0         0         0         0
       Files :        20        20         0         0         0         0
       Bytes :     20480     20480         0         0         0         0
       Times :   0:00:00   0:00:00                       0:00:00   0:00:00
       Ended : Monday, January 1, 2024 10:00:00 AM

Localized tool output or a change of this layout makes the fallback
unusable; such output is rejected with UnparseableOutputError instead of
being partially parsed.
"""

import logging
import re
import shutil
import subprocess
from collections import deque
from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path
from typing import Final

from folder_size.core.errors import (
    FallbackError,
    FallbackToolNotFoundError,
    UnparseableOutputError,
)
from folder_size.types.models import FallbackMeasurement, RobocopyCounters

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE: Final[str] = "robocopy"
DEFAULT_THREADS: Final[int] = 16
MIN_THREADS: Final[int] = 1
MAX_THREADS: Final[int] = 128

# Destination that never exists; /L guarantees nothing is written to it
NULL_DESTINATION: Final[str] = "NULL"

# Number of trailing non-blank output lines holding the summary block
SUMMARY_TAIL_LINES: Final[int] = 8

# /L list only, /E recurse incl. empty dirs, /NJH no job header,
# /NDL no directory list, /BYTES exact sizes, /TS source timestamps,
# /XJ skip junctions, /R:0 /W:0 no retries
BASE_FLAGS: Final[tuple[str, ...]] = (
    "/L",
    "/E",
    "/NJH",
    "/NDL",
    "/BYTES",
    "/TS",
    "/XJ",
    "/R:0",
    "/W:0",
)


def _row_pattern(label: str, key: str) -> str:
    """Build the pattern for one data row (Dirs, Files or Bytes)."""
    return (
        rf"^[ \t]*{label}[ \t]*:[ \t]*"
        rf"(?P<total_{key}>\d+)[ \t]+"
        rf"(?P<copied_{key}>\d+)[ \t]+"
        rf"(?P<skipped_{key}>\d+)[ \t]+"
        r"\d+[ \t]+"  # Mismatch
        rf"(?P<failed_{key}>\d+)[ \t]+"
        r"\d+[ \t]*\n"  # Extras
    )


SUMMARY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^[ \t]*Total[ \t]+Copied[ \t]+Skipped[ \t]+Mismatch[ \t]+FAILED[ \t]+Extras[ \t]*\n"
    + _row_pattern("Dirs", "dirs")
    + _row_pattern("Files", "files")
    + _row_pattern("Bytes", "bytes")
    + r"^[ \t]*Times[ \t]*:[^\n]*\n"
    + r"(?:^[ \t]*Speed[ \t]*:[^\n]*\n)*"
    + r"^[ \t]*Ended[ \t]*:[ \t]*(?P<ended>[^\n]*?)[ \t]*$",
    re.MULTILINE,
)


def parse_summary(text: str, *, path: Path | None = None) -> RobocopyCounters:
    """Parse robocopy's trailing summary block into counters.

    Args:
        text: Captured tail of the tool output
        path: Measured path, used in error messages only

    Returns:
        Counters for directories, files and bytes

    Raises:
        UnparseableOutputError: If text does not contain the expected block
    """
    normalized = "\n".join(text.splitlines())
    match = SUMMARY_PATTERN.search(normalized)
    if match is None:
        msg = "Unexpected robocopy summary format (localized or unsupported tool output)"
        raise UnparseableOutputError(msg, path, output=text)

    logger.debug(
        "Parsed robocopy summary",
        extra={"path": str(path) if path else None, "tool_ended": match.group("ended")},
    )

    return RobocopyCounters(
        total_dirs=int(match.group("total_dirs")),
        copied_dirs=int(match.group("copied_dirs")),
        skipped_dirs=int(match.group("skipped_dirs")),
        failed_dirs=int(match.group("failed_dirs")),
        total_files=int(match.group("total_files")),
        copied_files=int(match.group("copied_files")),
        skipped_files=int(match.group("skipped_files")),
        failed_files=int(match.group("failed_files")),
        total_bytes=int(match.group("total_bytes")),
        copied_bytes=int(match.group("copied_bytes")),
        skipped_bytes=int(match.group("skipped_bytes")),
        failed_bytes=int(match.group("failed_bytes")),
    )


def summary_tail(lines: Iterable[str], *, size: int = SUMMARY_TAIL_LINES) -> str:
    """Keep the last non-blank lines of the tool output.

    Output is consumed as a stream, so a file listing of any length never
    has to be held in memory.

    Args:
        lines: Output lines, in order
        size: Number of trailing non-blank lines to keep

    Returns:
        Kept lines joined with newlines
    """
    tail: deque[str] = deque(maxlen=size)
    for line in lines:
        stripped = line.rstrip("\r\n")
        if stripped.strip():
            tail.append(stripped)
    return "\n".join(tail)


def validate_threads(threads: int) -> int:
    """Validate the thread count passed through to robocopy's /MT flag.

    Raises:
        ValueError: If threads is outside 1..128
    """
    if not MIN_THREADS <= threads <= MAX_THREADS:
        msg = f"threads must be between {MIN_THREADS} and {MAX_THREADS}, got: {threads}"
        raise ValueError(msg)
    return threads


def locate_robocopy(executable: str | None = None) -> str:
    """Locate the robocopy executable.

    Args:
        executable: Explicit executable name or path (default: robocopy on PATH)

    Returns:
        Absolute path to the executable

    Raises:
        FallbackToolNotFoundError: If the executable cannot be found
    """
    candidate = executable or DEFAULT_EXECUTABLE
    resolved = shutil.which(candidate)
    if resolved is None:
        msg = f"Fallback tool not found: {candidate}"
        raise FallbackToolNotFoundError(msg)
    return resolved


def build_command(
    executable: str,
    path: Path,
    *,
    threads: int = DEFAULT_THREADS,
    exclude_dirs: Sequence[str] = (),
    exclude_files: Sequence[str] = (),
) -> list[str]:
    """Build the robocopy command line for a list-only size run.

    Args:
        executable: Path to robocopy
        path: Directory to measure
        threads: Thread count for /MT
        exclude_dirs: Directory names or wildcards for /XD
        exclude_files: File names or wildcards for /XF

    Returns:
        Argument vector suitable for subprocess
    """
    command = [executable, str(path), NULL_DESTINATION, *BASE_FLAGS, f"/MT:{validate_threads(threads)}"]
    if exclude_dirs:
        command.extend(["/XD", *exclude_dirs])
    if exclude_files:
        command.extend(["/XF", *exclude_files])
    return command


class RobocopyMeasurer:
    """Fallback measurer running robocopy in list-only mode.

    One instance is created per run once the executable has been located;
    it carries the fixed thread count used for every path.
    """

    def __init__(self, executable: str, *, threads: int = DEFAULT_THREADS) -> None:
        """Initialize the measurer.

        Args:
            executable: Path to the robocopy executable
            threads: Thread count passed through to /MT (1 to 128)
        """
        self.executable: str = executable
        self.threads: int = validate_threads(threads)

    @classmethod
    def locate(cls, executable: str | None = None, *, threads: int = DEFAULT_THREADS) -> "RobocopyMeasurer":
        """Create a measurer for the robocopy found on this system.

        Raises:
            FallbackToolNotFoundError: If the executable cannot be found
        """
        return cls(locate_robocopy(executable), threads=threads)

    def measure(
        self,
        path: Path,
        *,
        exclude_dirs: Sequence[str] = (),
        exclude_files: Sequence[str] = (),
    ) -> FallbackMeasurement:
        """Measure a directory tree from robocopy's summary block.

        Blocks until the tool exits; there is no timeout.

        Args:
            path: Directory to measure
            exclude_dirs: Directory names or wildcards to exclude
            exclude_files: File names or wildcards to exclude

        Returns:
            Parsed counters bracketed by wall-clock times

        Raises:
            FallbackError: If the tool cannot be started
            UnparseableOutputError: If the summary block cannot be parsed
        """
        command = build_command(
            self.executable,
            path,
            threads=self.threads,
            exclude_dirs=exclude_dirs,
            exclude_files=exclude_files,
        )
        logger.debug("Running fallback tool", extra={"path": str(path), "command": command})

        started_at = datetime.now()
        tail, returncode = self._run(command, path)
        ended_at = datetime.now()

        # Exit codes are bit flags (8 and above means failures occurred);
        # the summary block is authoritative either way.
        logger.debug(
            "Fallback tool finished",
            extra={"path": str(path), "returncode": returncode},
        )

        counters = parse_summary(tail, path=path)
        return FallbackMeasurement(
            counters=counters,
            started_at=started_at,
            ended_at=ended_at,
            filters_applied=bool(exclude_dirs or exclude_files),
        )

    def _run(self, command: list[str], path: Path) -> tuple[str, int]:
        """Run the tool and return the summary tail and exit code."""
        try:
            with subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                text=True,
                errors="replace",
            ) as process:
                assert process.stdout is not None  # Always set with stdout=PIPE
                tail = summary_tail(process.stdout)
                returncode = process.wait()
        except OSError as exc:
            msg = f"Failed to run fallback tool {self.executable}: {exc}"
            raise FallbackError(msg, path) from exc
        return tail, returncode
