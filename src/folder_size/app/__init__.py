"""Application module for the folder-size command."""

from __future__ import annotations

from folder_size.app.cli import cli
from folder_size.app.runner import ApplicationRunner, get_folder_size

__all__ = [
    "cli",
    "ApplicationRunner",
    "get_folder_size",
]
