"""Folder Size - Report directory tree sizes on Windows file servers.

This package measures directory trees with the platform's native size query
and falls back to robocopy's list-only mode for folders the native query
cannot read, normalizing both into a single size report.
"""

from folder_size.__main__ import main
from folder_size.app.runner import ApplicationRunner, get_folder_size
from folder_size.types.models import SizeReport, SizeStrategy

__all__ = [
    "ApplicationRunner",
    "SizeReport",
    "SizeStrategy",
    "get_folder_size",
    "main",
]
