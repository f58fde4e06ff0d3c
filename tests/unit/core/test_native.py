"""Unit tests for the native size query backends.

Tests cover:
- Tree summation with os.scandir on real temporary trees
- Symbolic links neither followed nor counted
- Permission errors mapped to NativeQueryPermissionError
- COM error classification for the FileSystemObject backend
- Size coercion and the empty/unknown sentinel
- Handle lifecycle (released on every exit path)
"""

import os
import sys
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from folder_size.core.errors import (
    NativeQueryError,
    NativeQueryPermissionError,
    NativeQueryUnavailableError,
)
from folder_size.core.native import (
    CTL_E_PERMISSIONDENIED,
    E_ACCESSDENIED,
    FileSystemObjectQuery,
    ScandirSizeQuery,
    acquire_native_query,
    coerce_size,
    is_permission_denied,
    open_native_query,
)


class FakeComError(Exception):
    """Mimics pywin32's com_error argument layout."""

    def __init__(self, hresult: int, scode: int | None = None) -> None:
        excepinfo = (0, "Microsoft VBScript runtime error", "Permission denied", None, 0, scode)
        super().__init__(hresult, "Exception occurred.", excepinfo, None)


class TestScandirSizeQuery:
    """Test tree summation on real directories."""

    def test_single_directory(self, tmp_path: Path) -> None:
        for index in range(5):
            _ = (tmp_path / f"file{index}.bin").write_bytes(b"x" * 1024)

        assert ScandirSizeQuery().folder_size(tmp_path) == 5120

    def test_nested_tree(self, sample_tree: Path) -> None:
        assert ScandirSizeQuery().folder_size(sample_tree) == 20480

    def test_empty_directory_is_zero(self, tmp_path: Path) -> None:
        """An empty tree has a valid size of zero, not an unknown size."""
        assert ScandirSizeQuery().folder_size(tmp_path) == 0

    @pytest.mark.skipif(sys.platform == "win32", reason="symlink creation needs privileges on Windows")
    def test_symlinks_not_followed(self, tmp_path: Path, sample_tree: Path) -> None:
        outside = tmp_path / "outside"
        outside.mkdir()
        _ = (outside / "big.bin").write_bytes(b"x" * 4096)
        (sample_tree / "link_dir").symlink_to(outside, target_is_directory=True)
        (sample_tree / "link_file").symlink_to(outside / "big.bin")

        assert ScandirSizeQuery().folder_size(sample_tree) == 20480

    def test_permission_error_mapped(self, tmp_path: Path) -> None:
        with patch("folder_size.core.native.os.scandir", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(NativeQueryPermissionError) as exc_info:
                _ = ScandirSizeQuery().folder_size(tmp_path)

        assert exc_info.value.path == tmp_path

    def test_other_os_error_mapped(self, tmp_path: Path) -> None:
        with patch("folder_size.core.native.os.scandir", side_effect=OSError(5, "Input/output error")):
            with pytest.raises(NativeQueryError) as exc_info:
                _ = ScandirSizeQuery().folder_size(tmp_path)

        assert not isinstance(exc_info.value, NativeQueryPermissionError)

    def test_missing_root_is_an_error(self, tmp_path: Path) -> None:
        with pytest.raises(NativeQueryError):
            _ = ScandirSizeQuery().folder_size(tmp_path / "gone")

    def test_closed_handle_rejected(self, tmp_path: Path) -> None:
        query = ScandirSizeQuery()
        query.close()

        with pytest.raises(NativeQueryError, match="released"):
            _ = query.folder_size(tmp_path)


class TestFileSystemObjectQuery:
    """Test the COM backend with a stand-in FileSystemObject."""

    def test_returns_folder_size(self) -> None:
        fso = MagicMock()
        fso.GetFolder.return_value.Size = 5120

        query = FileSystemObjectQuery(fso)

        assert query.folder_size(Path("C:/Data")) == 5120
        fso.GetFolder.assert_called_once_with(str(Path("C:/Data")))

    def test_large_size_as_decimal(self) -> None:
        """Sizes above 2**53 arrive as Decimal/currency values."""
        fso = MagicMock()
        fso.GetFolder.return_value.Size = Decimal(2**60)

        assert FileSystemObjectQuery(fso).folder_size(Path("C:/Data")) == 2**60

    def test_empty_size_is_none(self) -> None:
        fso = MagicMock()
        fso.GetFolder.return_value.Size = None

        assert FileSystemObjectQuery(fso).folder_size(Path("C:/Data")) is None

    @pytest.mark.parametrize(
        "error",
        [
            FakeComError(-2147352567, CTL_E_PERMISSIONDENIED),
            FakeComError(E_ACCESSDENIED),
        ],
    )
    def test_permission_denied_classified(self, error: Exception) -> None:
        fso = MagicMock()
        fso.GetFolder.side_effect = error

        with pytest.raises(NativeQueryPermissionError):
            _ = FileSystemObjectQuery(fso).folder_size(Path("C:/Secret"))

    def test_other_com_error_classified(self) -> None:
        fso = MagicMock()
        fso.GetFolder.side_effect = FakeComError(-2147352567, -2146828235)  # path not found

        with pytest.raises(NativeQueryError) as exc_info:
            _ = FileSystemObjectQuery(fso).folder_size(Path("C:/Data"))

        assert not isinstance(exc_info.value, NativeQueryPermissionError)

    def test_close_releases_object(self) -> None:
        query = FileSystemObjectQuery(MagicMock())
        query.close()

        with pytest.raises(NativeQueryError, match="released"):
            _ = query.folder_size(Path("C:/Data"))

    def test_create_without_pywin32(self) -> None:
        with patch.dict(sys.modules, {"win32com": None, "win32com.client": None}):
            with pytest.raises(NativeQueryUnavailableError, match="pywin32"):
                _ = FileSystemObjectQuery.create()


class TestIsPermissionDenied:
    """Test permission error classification."""

    def test_python_permission_error(self) -> None:
        assert is_permission_denied(PermissionError(13, "denied")) is True

    def test_scode_in_excepinfo(self) -> None:
        assert is_permission_denied(FakeComError(-2147352567, CTL_E_PERMISSIONDENIED)) is True

    def test_hresult(self) -> None:
        assert is_permission_denied(FakeComError(E_ACCESSDENIED)) is True

    def test_unrelated_error(self) -> None:
        assert is_permission_denied(ValueError("boom")) is False


class TestCoerceSize:
    """Test normalization of platform size values."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0, 0),
            (5120, 5120),
            (Decimal("5120"), 5120),
            (5120.0, 5120),
            ("5120", 5120),
            (None, None),
            ("", None),
            (-1, None),
            (1.5, None),
            (float("nan"), None),
            (True, None),
            (object(), None),
        ],
    )
    def test_coerce(self, value: object, expected: int | None) -> None:
        assert coerce_size(value) == expected


class TestNativeQueryLifecycle:
    """Test acquisition and release of the shared handle."""

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX backend selection")
    def test_posix_backend_selected(self) -> None:
        assert isinstance(acquire_native_query(), ScandirSizeQuery)

    def test_windows_backend_selected(self) -> None:
        with (
            patch("folder_size.core.native.sys.platform", "win32"),
            patch.object(FileSystemObjectQuery, "create", return_value=FileSystemObjectQuery(MagicMock())) as create,
        ):
            query = acquire_native_query()

        create.assert_called_once_with()
        assert isinstance(query, FileSystemObjectQuery)

    def test_released_after_block(self) -> None:
        handle = MagicMock()

        with patch("folder_size.core.native.acquire_native_query", return_value=handle):
            with open_native_query() as query:
                assert query is handle

        handle.close.assert_called_once_with()

    def test_released_on_error(self) -> None:
        handle = MagicMock()

        with patch("folder_size.core.native.acquire_native_query", return_value=handle):
            with pytest.raises(RuntimeError):
                with open_native_query():
                    raise RuntimeError("boom")

        handle.close.assert_called_once_with()

    def test_unavailable_propagates(self) -> None:
        with patch(
            "folder_size.core.native.acquire_native_query",
            side_effect=NativeQueryUnavailableError("no COM"),
        ):
            with pytest.raises(NativeQueryUnavailableError):
                with open_native_query():
                    pass


def test_scandir_counts_files_only(tmp_path: Path) -> None:
    """Directory entries themselves contribute no bytes."""
    (tmp_path / "empty_a").mkdir()
    (tmp_path / "empty_b" / "nested").mkdir(parents=True)
    _ = (tmp_path / "one.bin").write_bytes(b"x" * 10)

    assert ScandirSizeQuery().folder_size(tmp_path) == os.path.getsize(tmp_path / "one.bin")
