"""Configuration system for folder-size application.

This module implements the configuration schema using Pydantic for
validation, an optional YAML configuration file with environment variable
resolution, and the merge of command-line overrides on top of file values.
Validation is fail-fast: conflicting options are rejected before any path
is measured.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from folder_size.core.errors import ConfigurationError, EnvironmentVariableError
from folder_size.core.normalizer import DEFAULT_PRECISION, MAX_PRECISION
from folder_size.core.robocopy import DEFAULT_THREADS, MAX_THREADS, MIN_THREADS
from folder_size.core.strategy import MeasureMode

# Matches ${VARIABLE_NAME} references in configuration values
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")

type OutputFormat = Literal["table", "json", "jsonl", "csv"]


class MeasurementConfig(BaseModel):
    """Configuration for how directory sizes are measured.

    Defines the rounding precision of derived values, the strategy mode,
    the thread count of the fallback tool and the exclusion lists that only
    the fallback strategy honors.
    """

    model_config = ConfigDict(extra="forbid")

    precision: Annotated[
        int,
        Field(
            ge=0,
            le=MAX_PRECISION,
            description="Decimal places for KB/MB/GB/TB values and elapsed seconds",
        ),
    ] = DEFAULT_PRECISION
    threads: Annotated[
        int,
        Field(
            ge=MIN_THREADS,
            le=MAX_THREADS,
            description="Thread count passed to the fallback tool",
        ),
    ] = DEFAULT_THREADS
    fallback_only: Annotated[
        bool,
        Field(
            description="Always use the fallback strategy",
        ),
    ] = False
    native_only: Annotated[
        bool,
        Field(
            description="Never use the fallback strategy",
        ),
    ] = False
    exclude_dirs: Annotated[
        list[str],
        Field(
            description="Directory names or wildcards excluded by the fallback strategy",
        ),
    ] = []
    exclude_files: Annotated[
        list[str],
        Field(
            description="File names or wildcards excluded by the fallback strategy",
        ),
    ] = []
    literal_paths: Annotated[
        bool,
        Field(
            description="Treat input paths literally instead of expanding wildcards",
        ),
    ] = False

    @field_validator("exclude_dirs", "exclude_files", mode="after")
    @classmethod
    def strip_exclusions(cls, v: list[str]) -> list[str]:
        """Strip exclusion patterns and drop empty entries.

        Args:
            v: Exclusion patterns

        Returns:
            Cleaned patterns
        """
        return [pattern.strip() for pattern in v if pattern.strip()]

    @model_validator(mode="after")
    def validate_exclusive_modes(self) -> "MeasurementConfig":
        """Reject requesting fallback-only and native-only together.

        Raises:
            ValueError: If both modes are enabled
        """
        if self.fallback_only and self.native_only:
            msg = "fallback_only and native_only are mutually exclusive"
            raise ValueError(msg)
        return self

    @property
    def mode(self) -> MeasureMode:
        """Strategy mode selected by the mode flags."""
        if self.fallback_only:
            return MeasureMode.FALLBACK_ONLY
        if self.native_only:
            return MeasureMode.NATIVE_ONLY
        return MeasureMode.AUTO


class RobocopyConfig(BaseModel):
    """Configuration for locating the fallback tool."""

    model_config = ConfigDict(extra="forbid")

    executable: Annotated[
        str | None,
        Field(
            description="Name or path of the robocopy executable (default: robocopy on PATH)",
        ),
    ] = None


class ApplicationConfig(BaseModel):
    """Configuration for application-level settings.

    Defines logging level, syslog integration and the output format of the
    size reports.
    """

    model_config = ConfigDict(extra="forbid")

    log_level: Annotated[
        str,
        Field(
            description="Logging level",
            pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        ),
    ] = "WARNING"
    syslog_enabled: Annotated[
        bool,
        Field(
            description="Enable syslog integration",
        ),
    ] = False
    output_format: Annotated[
        OutputFormat,
        Field(
            description="Output format for size reports",
        ),
    ] = "table"


class MainConfig(BaseModel):
    """Main application configuration schema.

    Top-level configuration container aggregating all configuration sections:
    - measurement: Strategy mode, precision, threads and exclusions
    - robocopy: Fallback tool location
    - application: Logging and output settings
    """

    model_config = ConfigDict(extra="forbid")

    measurement: Annotated[
        MeasurementConfig,
        Field(
            description="Size measurement configuration",
        ),
    ] = MeasurementConfig()
    robocopy: Annotated[
        RobocopyConfig,
        Field(
            description="Fallback tool configuration",
        ),
    ] = RobocopyConfig()
    application: Annotated[
        ApplicationConfig,
        Field(
            description="Application-level configuration",
        ),
    ] = ApplicationConfig()


def resolve_env_var(value: str) -> str:
    """Resolve environment variable references in a string value.

    Args:
        value: String potentially containing ${VARIABLE_NAME} references

    Returns:
        String with environment variables resolved

    Raises:
        EnvironmentVariableError: If a referenced variable is not set

    Examples:
        >>> os.environ["DATA_ROOT"] = "D:\\\\Shares"
        >>> resolve_env_var("${DATA_ROOT}")
        'D:\\\\Shares'
    """

    def replace_match(match: re.Match[str]) -> str:
        var_name = match.group(1)
        env_value = os.environ.get(var_name)

        if env_value is None:
            msg = f"Required environment variable '{var_name}' is not set."
            raise EnvironmentVariableError(msg)

        return env_value

    return ENV_VAR_PATTERN.sub(replace_match, value)


def resolve_env_vars(data: object) -> object:
    """Recursively resolve environment variables in YAML data.

    Strings are resolved, mappings and lists are traversed, every other
    value is preserved as-is.

    Args:
        data: Unvalidated YAML data

    Returns:
        New structure with environment variables resolved

    Raises:
        EnvironmentVariableError: If a referenced variable is not set
    """
    if isinstance(data, str):
        return resolve_env_var(data)
    if isinstance(data, Mapping):
        # YAML data is untyped at load time; validated by Pydantic after resolution
        return {key: resolve_env_vars(value) for key, value in data.items()}  # pyright: ignore[reportUnknownVariableType]
    if isinstance(data, list):
        return [resolve_env_vars(item) for item in data]  # pyright: ignore[reportUnknownVariableType]
    return data


def _format_validation_error(error: ValidationError, source: str) -> str:
    """Format validation errors with field-level diagnostics."""
    error_lines = ["Configuration validation failed:", ""]
    for detail in error.errors():
        field_path = " → ".join(str(loc) for loc in detail["loc"]) or "(root)"
        error_lines.append(f"  Field: {field_path}")
        error_lines.append(f"  Error: {detail['msg']}")
        error_lines.append(f"  Type: {detail['type']}")
        error_lines.append("")

    error_lines.append(f"Configuration source: {source}")
    error_lines.append("Please fix the above errors and try again.")
    return "\n".join(error_lines)


def validate_config(data: Mapping[str, object], *, source: str = "command line") -> MainConfig:
    """Validate raw configuration data against the MainConfig schema.

    Args:
        data: Raw configuration mapping
        source: Human-readable origin of the data for error messages

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If validation fails, including conflicting modes
    """
    try:
        return MainConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(_format_validation_error(e, source)) from e


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to configuration YAML file

    Returns:
        Validated MainConfig instance

    Raises:
        ConfigurationError: If the file cannot be loaded or is invalid

    Examples:
        >>> config = load_main_config(Path("folder-size.yaml"))
        >>> config.measurement.threads
        16
    """
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}"
        raise ConfigurationError(msg)

    try:
        with config_path.open("r") as f:
            raw_data: object = yaml.safe_load(f)  # pyright: ignore[reportAny]  # YAML boundary
    except yaml.YAMLError as e:
        msg = (
            f"Failed to parse YAML configuration file: {config_path}\n"
            f"YAML parsing error: {e}\n"
            f"Please check the file for syntax errors."
        )
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Failed to read configuration file: {config_path}\nError: {e}\nPlease check file permissions."
        raise ConfigurationError(msg) from e

    # An empty file means "all defaults"
    if raw_data is None:
        raw_data = {}

    if not isinstance(raw_data, dict):
        msg = (
            f"Invalid configuration file format: {config_path}\n"
            f"Expected YAML dictionary at root level, got: {type(raw_data).__name__}"
        )
        raise ConfigurationError(msg)

    try:
        resolved_data = resolve_env_vars(raw_data)
    except EnvironmentVariableError as e:
        msg = f"Environment variable resolution failed in: {config_path}\n{e}"
        raise ConfigurationError(msg) from e

    return validate_config(resolved_data, source=str(config_path))  # pyright: ignore[reportArgumentType]


def apply_overrides(
    config: MainConfig,
    overrides: Mapping[str, Mapping[str, object]],
) -> MainConfig:
    """Merge command-line overrides on top of a configuration.

    None values mean "not given" and leave the configured value untouched.
    The merged result is validated again, so conflicting options coming
    from different sources are still rejected.

    Args:
        config: Base configuration (file or defaults)
        overrides: Section name to field overrides

    Returns:
        New validated MainConfig

    Raises:
        ConfigurationError: If the merged configuration is invalid
    """
    merged: dict[str, dict[str, object]] = config.model_dump()
    for section, values in overrides.items():
        target = merged.setdefault(section, {})
        for key, value in values.items():
            if value is not None:
                target[key] = value
    return validate_config(merged)
