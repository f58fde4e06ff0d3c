"""Data models for folder-size application.

This module defines immutable dataclasses used throughout the application
for type-safe data transfer between the sizing strategies, the result
normalizer and the output layer.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum


class SizeStrategy(str, Enum):
    """Strategy that produced a size report."""

    NATIVE = "native"
    FALLBACK = "fallback"


@dataclass(slots=True, frozen=True)
class NativeMeasurement:
    """Raw result of a successful native size query.

    The native facility only knows the total byte count of the tree, so no
    directory or file counters are carried.
    """

    total_bytes: int
    started_at: datetime
    ended_at: datetime


@dataclass(slots=True, frozen=True)
class RobocopyCounters:
    """Counters parsed from the summary block of the fallback tool.

    Mismatch and extras columns, and the tool's own timing row, are
    intentionally not represented.
    """

    total_dirs: int
    copied_dirs: int
    skipped_dirs: int
    failed_dirs: int
    total_files: int
    copied_files: int
    skipped_files: int
    failed_files: int
    total_bytes: int
    copied_bytes: int
    skipped_bytes: int
    failed_bytes: int


@dataclass(slots=True, frozen=True)
class FallbackMeasurement:
    """Raw result of one fallback tool run for a single path."""

    counters: RobocopyCounters
    started_at: datetime
    ended_at: datetime
    filters_applied: bool = False


type Measurement = NativeMeasurement | FallbackMeasurement


@dataclass(slots=True, frozen=True)
class SizeReport:
    """Normalized, immutable size report for one measured directory.

    Derived unit values and the elapsed time are already rounded to the
    precision requested by the caller. Counter fields are None unless the
    fallback strategy produced the report.
    """

    path: str
    strategy: SizeStrategy
    total_bytes: int
    total_kb: Decimal
    total_mb: Decimal
    total_gb: Decimal
    total_tb: Decimal
    started_at: datetime
    ended_at: datetime
    elapsed_seconds: Decimal
    dir_count: int | None = None
    file_count: int | None = None
    dir_failed: int | None = None
    file_failed: int | None = None
    failed_bytes: int | None = None
    copied_dir_count: int | None = None
    copied_file_count: int | None = None
    copied_bytes: int | None = None
    skipped_dir_count: int | None = None
    skipped_file_count: int | None = None
    skipped_bytes: int | None = None
    filters_applied: bool = False
