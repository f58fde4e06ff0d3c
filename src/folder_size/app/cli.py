"""Command-line interface for folder-size."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import click

from folder_size.core.errors import ConfigurationError
from folder_size.core.normalizer import DEFAULT_PRECISION, MAX_PRECISION
from folder_size.core.robocopy import DEFAULT_THREADS, MAX_THREADS, MIN_THREADS

# Configuration file discovery paths in order of precedence
# 1. Current directory
CURRENT_DIR_CONFIG_FILES = [
    "folder-size.yaml",
    "folder-size.yml",
]

# 2. User home directory
HOME_CONFIG_FILES = [
    ".folder-size.yaml",
    ".folder-size.yml",
]

# 3. System configuration directories
SYSTEM_CONFIG_PATHS = [
    Path("/etc/folder-size/config.yaml"),
    Path("/usr/local/etc/folder-size/config.yaml"),
]

OUTPUT_FORMATS = ("table", "json", "jsonl", "csv")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def discover_config_file() -> Path | None:
    """Discover configuration file in standard locations.

    Searches for configuration files in the following order of precedence:
    1. Current directory (folder-size.yaml, folder-size.yml)
    2. User home directory (~/.folder-size.yaml, ~/.folder-size.yml)
    3. System directories (/etc/folder-size/, /usr/local/etc/folder-size/)

    Returns:
        Path to the first configuration file found, or None when there is
        none and built-in defaults apply.
    """
    # 1. Check current directory
    for config_file in CURRENT_DIR_CONFIG_FILES:
        config_path = Path(config_file)
        if config_path.is_file():
            return config_path

    # 2. Check user home directory
    try:
        home_dir = Path.home()
    except (OSError, RuntimeError):
        # Path.home() can fail in some environments
        home_dir = None

    if home_dir is not None:
        for config_file in HOME_CONFIG_FILES:
            config_path = home_dir / config_file
            if config_path.is_file():
                return config_path

    # 3. Check system directories
    for config_path in SYSTEM_CONFIG_PATHS:
        if config_path.is_file():
            return config_path

    return None


def validate_config_path(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: Path | None,
) -> Path | None:
    """Validate configuration file path.

    Raises:
        click.BadParameter: If the path is a directory or not a YAML file
    """
    if value is None:
        return value

    if value.exists() and value.is_dir():
        raise click.BadParameter("Configuration path must be a file, not a directory")

    valid_extensions = {".yaml", ".yml"}
    if value.suffix.lower() not in valid_extensions:
        extensions_str = ", ".join(sorted(valid_extensions))
        raise click.BadParameter(f"Invalid configuration file extension. Supported extensions: {extensions_str}")

    return value


def validate_log_level(
    ctx: click.Context,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    param: click.Parameter,  # pyright: ignore[reportUnusedParameter] # required by Click callback signature
    value: str | None,
) -> str | None:
    """Validate and normalize log level.

    Raises:
        click.BadParameter: If the level is unknown
    """
    if value is None:
        return value

    normalized_value = value.upper().strip()
    if normalized_value not in LOG_LEVELS:
        raise click.BadParameter(f'Invalid log level "{value}". Valid options: {", ".join(LOG_LEVELS)}')

    return normalized_value


def sanitize_patterns(values: tuple[str, ...]) -> list[str] | None:
    """Strip repeated option values, returning None when none were given.

    Args:
        values: Raw values of a repeatable option

    Returns:
        Cleaned values, or None so that configured values stay in effect
    """
    sanitized = [value.strip() for value in values if value.strip()]
    return sanitized or None


try:
    __version__ = version("folder-size")
except PackageNotFoundError:
    __version__ = "unknown"


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("paths", nargs=-1, required=True)
@click.option(
    "--precision",
    "-p",
    type=click.IntRange(0, MAX_PRECISION),
    default=None,
    help=f"Decimal places for KB/MB/GB/TB values and elapsed seconds (default: {DEFAULT_PRECISION})",
)
@click.option(
    "--fallback-only",
    is_flag=True,
    help="Always measure with robocopy, skipping the native size query",
)
@click.option(
    "--native-only",
    is_flag=True,
    help="Never fall back to robocopy",
)
@click.option(
    "--threads",
    "-t",
    type=click.IntRange(MIN_THREADS, MAX_THREADS),
    default=None,
    help=f"Thread count for robocopy (default: {DEFAULT_THREADS})",
)
@click.option(
    "--exclude-dir",
    "exclude_dirs",
    multiple=True,
    help="Directory name or wildcard to exclude (robocopy only, repeatable)",
)
@click.option(
    "--exclude-file",
    "exclude_files",
    multiple=True,
    help="File name or wildcard to exclude (robocopy only, repeatable)",
)
@click.option(
    "--literal",
    is_flag=True,
    help="Treat paths literally instead of expanding wildcards",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS),
    default=None,
    help="Output format for size reports (default: table)",
)
@click.option(
    "--config",
    "-c",
    type=click.Path(path_type=Path),
    default=None,
    callback=validate_config_path,
    help="Configuration file path (.yaml, .yml). If not specified, searches standard locations.",
)
@click.option(
    "--log-level",
    "-l",
    type=str,
    default=None,
    callback=validate_log_level,
    help="Logging verbosity level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
)
@click.option(
    "--robocopy",
    "robocopy_executable",
    type=str,
    default=None,
    help="Name or path of the robocopy executable",
)
@click.version_option(version=__version__, prog_name="folder-size")
def cli(
    paths: tuple[str, ...],
    precision: int | None,
    fallback_only: bool,
    native_only: bool,
    threads: int | None,
    exclude_dirs: tuple[str, ...],
    exclude_files: tuple[str, ...],
    literal: bool,
    output_format: str | None,
    config: Path | None,
    log_level: str | None,
    robocopy_executable: str | None,
) -> None:
    """Report the size of one or more directory trees.

    Each directory is measured with the native size query first. Paths the
    native query cannot read are measured with robocopy in list-only mode.

    Examples:

        # Measure two shares with two decimal places
        folder-size -p 2 D:\\Shares\\Finance D:\\Shares\\HR

        # Every subdirectory of a share, as JSON
        folder-size --format json "D:\\Shares\\*"

        # Force robocopy and exclude temporary files
        folder-size --fallback-only --exclude-file "*.tmp" D:\\Data
    """
    from folder_size.app.output import render
    from folder_size.app.runner import ApplicationRunner
    from folder_size.core.config import MainConfig, apply_overrides, load_main_config
    from folder_size.utils.logging import configure_logging

    config_path = config if config is not None else discover_config_file()

    try:
        base_config = load_main_config(config_path) if config_path is not None else MainConfig()
        settings = apply_overrides(
            base_config,
            {
                "measurement": {
                    "precision": precision,
                    "fallback_only": fallback_only or None,
                    "native_only": native_only or None,
                    "threads": threads,
                    "exclude_dirs": sanitize_patterns(exclude_dirs),
                    "exclude_files": sanitize_patterns(exclude_files),
                    "literal_paths": literal or None,
                },
                "robocopy": {"executable": robocopy_executable},
                "application": {"log_level": log_level, "output_format": output_format},
            },
        )
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e

    configure_logging(
        log_level=settings.application.log_level,
        enable_syslog=settings.application.syslog_enabled,
    )

    runner = ApplicationRunner(settings)

    try:
        summary = runner.run(paths)
    except KeyboardInterrupt:
        click.echo("\nInterrupted.", err=True)
        raise SystemExit(130) from None

    if summary.reports:
        click.echo(render(summary.reports, settings.application.output_format))
    elif settings.application.output_format == "json":
        click.echo("[]")
