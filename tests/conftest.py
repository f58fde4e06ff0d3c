"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import logging
from collections.abc import Generator
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from folder_size.types.models import FallbackMeasurement, RobocopyCounters

STARTED_AT = datetime(2024, 1, 1, 10, 0, 0)


@pytest.fixture(autouse=True)
def restore_root_logger() -> Generator[None]:
    """Restore root logger handlers and level changed by configure_logging."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    try:
        yield
    finally:
        root_logger.handlers[:] = handlers
        root_logger.setLevel(level)


@pytest.fixture
def sample_tree(tmp_path: Path) -> Path:
    """Create a tree of 4 directories holding 5 files of 1024 bytes each.

    Layout: root plus 3 nested subdirectories, 20,480 bytes in total.
    """
    root = tmp_path / "share"
    directories = [root, root / "a", root / "a" / "b", root / "c"]
    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)
        for index in range(5):
            _ = (directory / f"file{index}.bin").write_bytes(b"x" * 1024)
    return root


@pytest.fixture
def sample_counters() -> RobocopyCounters:
    """Counters matching SAMPLE_SUMMARY."""
    return RobocopyCounters(
        total_dirs=5,
        copied_dirs=5,
        skipped_dirs=0,
        failed_dirs=0,
        total_files=20,
        copied_files=20,
        skipped_files=0,
        failed_files=0,
        total_bytes=20480,
        copied_bytes=20480,
        skipped_bytes=0,
        failed_bytes=0,
    )


@pytest.fixture
def fallback_measurement(sample_counters: RobocopyCounters) -> FallbackMeasurement:
    """Fallback measurement that took 1.5 seconds."""
    return FallbackMeasurement(
        counters=sample_counters,
        started_at=STARTED_AT,
        ended_at=STARTED_AT + timedelta(seconds=1, microseconds=500000),
    )
