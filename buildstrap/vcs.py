"""Source tree and git lookup helpers."""

import logging
import shutil
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

REPOSITORY_MARKERS = (".git",)


def find_source_root(start: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """Walk up from ``start`` (default: cwd) to the first directory holding a repository marker."""
    current = Path(start) if start is not None else Path.cwd()
    current = current.resolve()
    if current.is_file():
        current = current.parent

    for candidate in (current, *current.parents):
        if any((candidate / marker).exists() for marker in REPOSITORY_MARKERS):
            logger.debug("Found source root '%s'", candidate)
            return candidate

    logger.debug("No source root found above '%s'", current)
    return None


def find_git_executable(configured: Optional[str] = None) -> Optional[str]:
    """Resolve the git executable, preferring an explicitly configured path."""
    if configured:
        if Path(configured).is_file():
            return configured
        logger.warning("Configured git executable '%s' does not exist, looking up git on PATH", configured)
    found = shutil.which("git")
    logger.debug("Using git executable '%s'", found)
    return found
