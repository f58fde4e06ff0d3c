"""Unit tests for the robocopy fallback strategy.

Tests cover:
- Summary block parsing, with and without exclusion filters
- Rejection of localized, truncated and empty output
- Command construction (flags, threads, exclusions)
- Streaming of long output through the summary tail
- Tool location and process failures
"""

import io
import os
import stat
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from hypothesis import given
from hypothesis import strategies as st

from folder_size.core.errors import (
    FallbackError,
    FallbackToolNotFoundError,
    UnparseableOutputError,
)
from folder_size.core.robocopy import (
    BASE_FLAGS,
    NULL_DESTINATION,
    RobocopyMeasurer,
    build_command,
    locate_robocopy,
    parse_summary,
    summary_tail,
    validate_threads,
)
from folder_size.types.models import RobocopyCounters
from tests.fixtures.robocopy_output import (
    FILTERED_SUMMARY,
    LOCALIZED_SUMMARY,
    SAMPLE_SUMMARY,
    file_listing,
    format_summary,
)


def _mock_process(lines: list[str], returncode: int = 1) -> MagicMock:
    """Build a Popen stand-in that streams lines and exits with returncode."""
    process = MagicMock()
    process.__enter__.return_value = process
    process.__exit__.return_value = False
    process.stdout = io.StringIO("".join(lines))
    process.wait.return_value = returncode
    return process


class TestParseSummary:
    """Test parsing of the summary block."""

    def test_parses_sample_summary(self, sample_counters: RobocopyCounters) -> None:
        assert parse_summary(SAMPLE_SUMMARY) == sample_counters

    def test_parses_filtered_summary(self) -> None:
        counters = parse_summary(FILTERED_SUMMARY)

        assert counters.total_bytes == 20480
        assert counters.copied_dirs == 4
        assert counters.skipped_dirs == 1
        assert counters.copied_files == 15
        assert counters.skipped_files == 5
        assert counters.copied_bytes == 15360
        assert counters.skipped_bytes == 5120

    def test_parses_windows_line_endings(self, sample_counters: RobocopyCounters) -> None:
        text = SAMPLE_SUMMARY.replace("\n", "\r\n")

        assert parse_summary(text) == sample_counters

    def test_parses_with_speed_lines(self, sample_counters: RobocopyCounters) -> None:
        text = format_summary(sample_counters, speed_lines=True)

        assert parse_summary(text) == sample_counters

    def test_failed_counters(self) -> None:
        counters = RobocopyCounters(
            total_dirs=10,
            copied_dirs=8,
            skipped_dirs=0,
            failed_dirs=2,
            total_files=100,
            copied_files=97,
            skipped_files=0,
            failed_files=3,
            total_bytes=4096000,
            copied_bytes=4000000,
            skipped_bytes=0,
            failed_bytes=96000,
        )

        parsed = parse_summary(format_summary(counters))

        assert parsed.failed_dirs == 2
        assert parsed.failed_files == 3
        assert parsed.failed_bytes == 96000

    def test_localized_output_rejected(self) -> None:
        """Output in another language is never partially parsed."""
        with pytest.raises(UnparseableOutputError, match="Unexpected robocopy summary format"):
            _ = parse_summary(LOCALIZED_SUMMARY, path=Path("/data"))

    def test_empty_output_rejected(self) -> None:
        with pytest.raises(UnparseableOutputError):
            _ = parse_summary("")

    def test_truncated_output_rejected(self) -> None:
        """A block missing the Bytes row is rejected."""
        truncated = "\n".join(line for line in SAMPLE_SUMMARY.splitlines() if "Bytes" not in line)

        with pytest.raises(UnparseableOutputError):
            _ = parse_summary(truncated)

    def test_error_keeps_output_and_path(self) -> None:
        with pytest.raises(UnparseableOutputError) as exc_info:
            _ = parse_summary("garbage", path=Path("/data"))

        assert exc_info.value.output == "garbage"
        assert exc_info.value.path == Path("/data")

    @given(
        values=st.lists(st.integers(min_value=0, max_value=10**15), min_size=12, max_size=12),
    )
    def test_parses_any_counter_values(self, values: list[int]) -> None:
        """Counters of any magnitude parse back to the same values."""
        counters = RobocopyCounters(*values)

        assert parse_summary(format_summary(counters)) == counters


class TestSummaryTail:
    """Test streaming capture of trailing output."""

    def test_keeps_last_non_blank_lines(self) -> None:
        lines = ["a\n", "\n", "b\n", "   \n", "c\n"]

        assert summary_tail(lines, size=2) == "b\nc"

    def test_long_listing_keeps_summary(self, sample_counters: RobocopyCounters) -> None:
        """A listing of thousands of files still yields a parsable tail."""
        lines = file_listing(5000) + format_summary(sample_counters).splitlines(keepends=True)

        assert parse_summary(summary_tail(lines)) == sample_counters

    def test_strips_carriage_returns(self) -> None:
        assert summary_tail(["x\r\n", "y\r\n"]) == "x\ny"


class TestBuildCommand:
    """Test robocopy command construction."""

    def test_base_command(self) -> None:
        command = build_command("robocopy.exe", Path("C:/Data"), threads=16)

        assert command[:3] == ["robocopy.exe", str(Path("C:/Data")), NULL_DESTINATION]
        for flag in BASE_FLAGS:
            assert flag in command
        assert "/MT:16" in command
        assert "/XD" not in command
        assert "/XF" not in command

    def test_list_only_and_no_retries(self) -> None:
        """The tool never copies and never retries."""
        command = build_command("robocopy", Path("/data"))

        assert "/L" in command
        assert "/R:0" in command
        assert "/W:0" in command
        assert "/XJ" in command

    def test_exclusions_appended(self) -> None:
        command = build_command(
            "robocopy",
            Path("/data"),
            exclude_dirs=["node_modules", ".git"],
            exclude_files=["*.tmp"],
        )

        xd = command.index("/XD")
        xf = command.index("/XF")
        assert command[xd + 1 : xd + 3] == ["node_modules", ".git"]
        assert command[xf + 1 :] == ["*.tmp"]

    @pytest.mark.parametrize("threads", [0, 129, -4])
    def test_invalid_threads_rejected(self, threads: int) -> None:
        with pytest.raises(ValueError, match="threads must be between 1 and 128"):
            _ = build_command("robocopy", Path("/data"), threads=threads)

    @pytest.mark.parametrize("threads", [1, 64, 128])
    def test_valid_threads(self, threads: int) -> None:
        assert validate_threads(threads) == threads


class TestLocateRobocopy:
    """Test fallback tool discovery."""

    def test_not_found_raises(self) -> None:
        with patch("folder_size.core.robocopy.shutil.which", return_value=None):
            with pytest.raises(FallbackToolNotFoundError, match="Fallback tool not found"):
                _ = locate_robocopy()

    def test_explicit_executable(self) -> None:
        with patch("folder_size.core.robocopy.shutil.which", return_value="/opt/bin/robocopy") as mock_which:
            assert locate_robocopy("/opt/bin/robocopy") == "/opt/bin/robocopy"

        mock_which.assert_called_once_with("/opt/bin/robocopy")

    def test_measurer_locate(self) -> None:
        with patch("folder_size.core.robocopy.shutil.which", return_value="C:/Windows/System32/robocopy.exe"):
            measurer = RobocopyMeasurer.locate(threads=8)

        assert measurer.executable == "C:/Windows/System32/robocopy.exe"
        assert measurer.threads == 8


class TestRobocopyMeasurer:
    """Test running the tool and parsing its output."""

    def test_measure_parses_streamed_output(self, sample_counters: RobocopyCounters) -> None:
        lines = file_listing(20) + SAMPLE_SUMMARY.splitlines(keepends=True)
        measurer = RobocopyMeasurer("robocopy", threads=4)

        with patch("folder_size.core.robocopy.subprocess.Popen", return_value=_mock_process(lines)) as mock_popen:
            measurement = measurer.measure(Path("/data"))

        assert measurement.counters == sample_counters
        assert measurement.filters_applied is False
        assert measurement.started_at <= measurement.ended_at
        command = mock_popen.call_args.args[0]
        assert "/MT:4" in command

    def test_exit_code_is_ignored(self, sample_counters: RobocopyCounters) -> None:
        """Failure exit codes still yield the parsed summary."""
        lines = SAMPLE_SUMMARY.splitlines(keepends=True)
        measurer = RobocopyMeasurer("robocopy")

        with patch("folder_size.core.robocopy.subprocess.Popen", return_value=_mock_process(lines, returncode=16)):
            measurement = measurer.measure(Path("/data"))

        assert measurement.counters == sample_counters

    def test_exclusions_mark_filters_applied(self) -> None:
        lines = FILTERED_SUMMARY.splitlines(keepends=True)
        measurer = RobocopyMeasurer("robocopy")

        with patch("folder_size.core.robocopy.subprocess.Popen", return_value=_mock_process(lines)) as mock_popen:
            measurement = measurer.measure(Path("/data"), exclude_files=["*.tmp"])

        assert measurement.filters_applied is True
        assert measurement.counters.skipped_files == 5
        assert "/XF" in mock_popen.call_args.args[0]

    def test_unparseable_output_raises(self) -> None:
        measurer = RobocopyMeasurer("robocopy")

        with patch(
            "folder_size.core.robocopy.subprocess.Popen",
            return_value=_mock_process(LOCALIZED_SUMMARY.splitlines(keepends=True)),
        ):
            with pytest.raises(UnparseableOutputError):
                _ = measurer.measure(Path("/data"))

    def test_start_failure_wrapped(self) -> None:
        measurer = RobocopyMeasurer("robocopy")

        with patch("folder_size.core.robocopy.subprocess.Popen", side_effect=OSError("exec format error")):
            with pytest.raises(FallbackError, match="Failed to run fallback tool"):
                _ = measurer.measure(Path("/data"))

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell script as a fake tool")
    def test_runs_real_process(self, tmp_path: Path, sample_counters: RobocopyCounters) -> None:
        """End to end through a real child process printing robocopy output."""
        output = tmp_path / "output.txt"
        _ = output.write_text("".join(file_listing(3)) + SAMPLE_SUMMARY)
        script = tmp_path / "robocopy"
        _ = script.write_text(f'#!/bin/sh\ncat "{output}"\nexit 1\n')
        script.chmod(script.stat().st_mode | stat.S_IXUSR)

        measurer = RobocopyMeasurer(os.fspath(script))
        measurement = measurer.measure(tmp_path)

        assert measurement.counters == sample_counters
