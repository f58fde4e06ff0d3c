"""Shared utility modules for common operations.

This package provides:
- Data size, duration and counter formatting for human-readable output
- Logging configuration with measured-path tracking
"""

from folder_size.utils.formatting import (
    format_count,
    format_duration,
    format_size,
)

__all__ = [
    "format_count",
    "format_duration",
    "format_size",
]
