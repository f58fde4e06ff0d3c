"""Pure formatting utilities for human-readable output.

This module provides stateless formatting functions used by the table
renderer of the CLI. All functions are pure with no side effects.
"""

from decimal import Decimal

# Binary unit constants (1024-based)
_KB_INT = 1024
_MB_INT = _KB_INT * 1024  # 1,048,576
_GB_INT = _MB_INT * 1024  # 1,073,741,824
_TB_INT = _GB_INT * 1024  # 1,099,511,627,776

# Time unit constants
_MINUTE = 60
_HOUR = _MINUTE * 60  # 3,600


def format_size(bytes: int, *, precision: int = 2) -> str:
    """Convert bytes to a human-readable size using the largest fitting unit.

    Uses binary units (1024-based), matching the KB/MB/GB/TB fields of a
    size report.

    Args:
        bytes: Number of bytes to format (must be non-negative)
        precision: Number of decimal places for KB and above (default: 2)

    Returns:
        Human-readable string representation of the size

    Examples:
        >>> format_size(512)
        '512 Bytes'
        >>> format_size(5120)
        '5.00 KB'
        >>> format_size(20971520, precision=1)
        '20.0 MB'
        >>> format_size(2748779069440)
        '2.50 TB'
    """
    if bytes < 0:
        msg = "bytes must be non-negative"
        raise ValueError(msg)

    for divisor, unit in ((_TB_INT, "TB"), (_GB_INT, "GB"), (_MB_INT, "MB"), (_KB_INT, "KB")):
        if bytes >= divisor:
            return f"{Decimal(bytes) / divisor:.{precision}f} {unit}"

    return f"{bytes} Bytes"


def format_duration(seconds: float | Decimal) -> str:
    """Convert seconds to a compact duration.

    Sub-minute durations keep two decimals because most measurements finish
    in well under a second.

    Args:
        seconds: Duration in seconds (must be non-negative)

    Returns:
        Duration string

    Examples:
        >>> format_duration(0.0421)
        '0.04s'
        >>> format_duration(90)
        '1m 30s'
        >>> format_duration(3665)
        '1h 1m'
    """
    if seconds < 0:
        msg = "seconds must be non-negative"
        raise ValueError(msg)

    total_seconds = int(seconds)

    if total_seconds >= _HOUR:
        hours = total_seconds // _HOUR
        minutes = (total_seconds % _HOUR) // _MINUTE
        if minutes > 0:
            return f"{hours}h {minutes}m"
        return f"{hours}h"

    if total_seconds >= _MINUTE:
        minutes = total_seconds // _MINUTE
        remaining = total_seconds % _MINUTE
        if remaining > 0:
            return f"{minutes}m {remaining}s"
        return f"{minutes}m"

    return f"{float(seconds):.2f}s"


def format_count(value: int | None) -> str:
    """Format an optional counter for table output.

    Examples:
        >>> format_count(None)
        '-'
        >>> format_count(12345)
        '12,345'
    """
    if value is None:
        return "-"
    return f"{value:,}"
