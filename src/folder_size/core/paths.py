"""Resolution and validation of the paths given to a run."""

import glob
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

logger = logging.getLogger(__name__)


def expand_path(raw: str, *, literal: bool = False) -> list[Path]:
    """Expand a single user-supplied path.

    Wildcards are expanded unless literal is set. A pattern matching
    nothing yields an empty list and a warning.

    Args:
        raw: Path or wildcard pattern as given by the caller
        literal: Treat raw as a literal path, even if it contains wildcards

    Returns:
        Candidate paths in sorted order (or the single literal path)

    Examples:
        >>> expand_path("/data/[abc]*", literal=True)
        [PosixPath('/data/[abc]*')]
    """
    expanded = Path(raw).expanduser()
    if literal or not glob.has_magic(str(expanded)):
        return [expanded]

    matches = sorted(glob.glob(str(expanded)))
    if not matches:
        logger.warning("No paths match pattern, skipping: %s", raw, extra={"path": raw})
    return [Path(match) for match in matches]


def validate_directory(path: Path) -> Path | None:
    """Resolve path and check that it is an existing directory.

    Args:
        path: Candidate path

    Returns:
        Absolute resolved path, or None after logging a warning
    """
    try:
        resolved = path.resolve()
        if not resolved.exists():
            logger.warning("Path does not exist, skipping: %s", path, extra={"path": str(path)})
            return None
        if not resolved.is_dir():
            logger.warning("Path is not a directory, skipping: %s", path, extra={"path": str(path)})
            return None
    except OSError as exc:
        logger.warning(
            "Cannot access path, skipping: %s: %s",
            path,
            exc,
            extra={"path": str(path), "error": str(exc)},
        )
        return None
    return resolved


def resolve_paths(raw_paths: Iterable[str], *, literal: bool = False) -> Iterator[Path]:
    """Yield the validated, de-duplicated directories of a run in input order.

    Args:
        raw_paths: Paths or wildcard patterns as given by the caller
        literal: Disable wildcard expansion

    Yields:
        Absolute directory paths, each at most once
    """
    seen: set[Path] = set()
    for raw in raw_paths:
        for candidate in expand_path(raw, literal=literal):
            resolved = validate_directory(candidate)
            if resolved is None:
                continue
            if resolved in seen:
                logger.debug("Path already measured in this run", extra={"path": str(resolved)})
                continue
            seen.add(resolved)
            yield resolved
