"""Pure normalization functions turning raw measurements into size reports.

This module provides stateless, side-effect-free functions for:
- Scaling byte counts to KB/MB/GB/TB (1024-based) at a fixed precision
- Rounding elapsed wall-clock time to the same precision
- Building a SizeReport from either strategy's raw measurement
- Projecting a SizeReport into an output record

All arithmetic uses Decimal so that arbitrarily large byte counts are
scaled exactly before being rounded.
"""

from datetime import timedelta
from decimal import ROUND_HALF_EVEN, Decimal, localcontext
from pathlib import Path
from typing import Final, Literal

from folder_size.types.models import (
    FallbackMeasurement,
    Measurement,
    NativeMeasurement,
    SizeReport,
    SizeStrategy,
)

type ByteUnit = Literal["KB", "MB", "GB", "TB"]

DEFAULT_PRECISION: Final[int] = 4
MAX_PRECISION: Final[int] = 10

# Binary unit exponents (1024-based)
UNIT_EXPONENTS: Final[dict[ByteUnit, int]] = {
    "KB": 1,
    "MB": 2,
    "GB": 3,
    "TB": 4,
}

# Working precision for scaling; 1/1024**4 alone needs 40 fractional digits
_WORKING_DIGITS: Final[int] = 100

# Keys only projected when exclusion filters were passed to the fallback tool
FILTER_COUNTER_FIELDS: Final[tuple[str, ...]] = (
    "copied_dir_count",
    "copied_file_count",
    "copied_bytes",
    "skipped_dir_count",
    "skipped_file_count",
    "skipped_bytes",
)


def _validate_precision(precision: int) -> None:
    if not 0 <= precision <= MAX_PRECISION:
        msg = f"precision must be between 0 and {MAX_PRECISION}, got: {precision}"
        raise ValueError(msg)


def round_decimal(value: Decimal, precision: int) -> Decimal:
    """Round value to a fixed number of decimal places.

    Uses banker's rounding (ROUND_HALF_EVEN). The result always carries
    exactly ``precision`` digits after the decimal point.

    Args:
        value: Value to round
        precision: Number of decimal places (0 to 10)

    Returns:
        Quantized Decimal

    Examples:
        >>> round_decimal(Decimal("1.23456"), 2)
        Decimal('1.23')
        >>> round_decimal(Decimal("2.5"), 0)
        Decimal('2')
    """
    _validate_precision(precision)
    with localcontext() as ctx:
        ctx.prec = _WORKING_DIGITS
        return value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_EVEN)


def scale_bytes(total_bytes: int, unit: ByteUnit, *, precision: int = DEFAULT_PRECISION) -> Decimal:
    """Convert a byte count to a binary unit rounded to precision.

    Args:
        total_bytes: Number of bytes (must be non-negative)
        unit: Target unit (KB, MB, GB or TB)
        precision: Number of decimal places (0 to 10, default: 4)

    Returns:
        Scaled and rounded value

    Examples:
        >>> scale_bytes(5120, "KB")
        Decimal('5.0000')
        >>> scale_bytes(1536, "KB", precision=0)
        Decimal('2')
        >>> scale_bytes(1048576, "GB", precision=2)
        Decimal('0.00')
    """
    if total_bytes < 0:
        msg = "total_bytes must be non-negative"
        raise ValueError(msg)

    with localcontext() as ctx:
        ctx.prec = _WORKING_DIGITS
        scaled = Decimal(total_bytes) / (Decimal(1024) ** UNIT_EXPONENTS[unit])
    return round_decimal(scaled, precision)


def elapsed_seconds(delta: timedelta, *, precision: int = DEFAULT_PRECISION) -> Decimal:
    """Convert a timedelta to seconds rounded to precision.

    The conversion is exact to the microsecond before rounding.

    Args:
        delta: Elapsed wall-clock time
        precision: Number of decimal places (0 to 10, default: 4)

    Returns:
        Rounded number of seconds

    Examples:
        >>> elapsed_seconds(timedelta(seconds=1, microseconds=234567), precision=2)
        Decimal('1.23')
    """
    whole = Decimal(delta.days * 86_400 + delta.seconds)
    fraction = Decimal(delta.microseconds).scaleb(-6)
    return round_decimal(whole + fraction, precision)


def build_report(path: Path, measurement: Measurement, *, precision: int = DEFAULT_PRECISION) -> SizeReport:
    """Map either strategy's raw measurement into a SizeReport.

    Args:
        path: Resolved absolute path that was measured
        measurement: Raw native or fallback measurement
        precision: Number of decimal places for scaled values and elapsed time

    Returns:
        Immutable SizeReport with derived fields populated
    """
    _validate_precision(precision)

    if isinstance(measurement, NativeMeasurement):
        total_bytes = measurement.total_bytes
    else:
        total_bytes = measurement.counters.total_bytes

    common = {
        "path": str(path),
        "total_bytes": total_bytes,
        "total_kb": scale_bytes(total_bytes, "KB", precision=precision),
        "total_mb": scale_bytes(total_bytes, "MB", precision=precision),
        "total_gb": scale_bytes(total_bytes, "GB", precision=precision),
        "total_tb": scale_bytes(total_bytes, "TB", precision=precision),
        "started_at": measurement.started_at,
        "ended_at": measurement.ended_at,
        "elapsed_seconds": elapsed_seconds(
            measurement.ended_at - measurement.started_at,
            precision=precision,
        ),
    }

    if isinstance(measurement, NativeMeasurement):
        return SizeReport(strategy=SizeStrategy.NATIVE, **common)  # pyright: ignore[reportArgumentType]

    return _build_fallback_report(measurement, common)


def _build_fallback_report(measurement: FallbackMeasurement, common: dict[str, object]) -> SizeReport:
    counters = measurement.counters
    filter_counters: dict[str, int | None] = dict.fromkeys(FILTER_COUNTER_FIELDS)
    if measurement.filters_applied:
        filter_counters = {
            "copied_dir_count": counters.copied_dirs,
            "copied_file_count": counters.copied_files,
            "copied_bytes": counters.copied_bytes,
            "skipped_dir_count": counters.skipped_dirs,
            "skipped_file_count": counters.skipped_files,
            "skipped_bytes": counters.skipped_bytes,
        }

    return SizeReport(
        strategy=SizeStrategy.FALLBACK,
        dir_count=counters.total_dirs,
        file_count=counters.total_files,
        dir_failed=counters.failed_dirs,
        file_failed=counters.failed_files,
        failed_bytes=counters.failed_bytes,
        filters_applied=measurement.filters_applied,
        **filter_counters,
        **common,  # pyright: ignore[reportArgumentType]
    )


def report_to_record(report: SizeReport) -> dict[str, object]:
    """Project a SizeReport into an ordered output record.

    The six copied/skipped counters are only included when exclusion
    filters were applied by the fallback strategy; otherwise the keys are
    left out entirely to keep default output compact.

    Args:
        report: Report to project

    Returns:
        Ordered mapping of output field names to values
    """
    record: dict[str, object] = {
        "path": report.path,
        "strategy": report.strategy.value,
        "total_bytes": report.total_bytes,
        "total_kb": report.total_kb,
        "total_mb": report.total_mb,
        "total_gb": report.total_gb,
        "total_tb": report.total_tb,
        "dir_count": report.dir_count,
        "file_count": report.file_count,
        "dir_failed": report.dir_failed,
        "file_failed": report.file_failed,
        "failed_bytes": report.failed_bytes,
    }

    if report.filters_applied and report.strategy is SizeStrategy.FALLBACK:
        for field_name in FILTER_COUNTER_FIELDS:
            record[field_name] = getattr(report, field_name)

    record["started_at"] = report.started_at
    record["ended_at"] = report.ended_at
    record["elapsed_seconds"] = report.elapsed_seconds
    return record
