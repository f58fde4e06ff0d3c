"""Type definitions and protocols for folder-size application.

This package provides:
- Data models (immutable dataclasses)
- Protocol definitions (structural subtyping interfaces)
"""

from folder_size.types.models import (
    FallbackMeasurement,
    Measurement,
    NativeMeasurement,
    RobocopyCounters,
    SizeReport,
    SizeStrategy,
)
from folder_size.types.protocols import (
    FallbackMeasurer,
    NativeSizeQuery,
)

__all__ = [
    # Data models
    "FallbackMeasurement",
    "Measurement",
    "NativeMeasurement",
    "RobocopyCounters",
    "SizeReport",
    "SizeStrategy",
    # Protocols
    "FallbackMeasurer",
    "NativeSizeQuery",
]
