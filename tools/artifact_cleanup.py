"""
Artifact cleanup

Empties the artifacts directory before the build when
build.cleanup_artifacts_before_build is enabled. The directory may be held
open briefly by processes of a previous build, so the cleanup is retried.
"""

import asyncio
import logging
import shutil
from pathlib import Path

from buildstrap.models import ExitCode, ToolDescriptor
from buildstrap.variables import VariableRegistry, WellKnownVariables

logger = logging.getLogger(__name__)

ARTIFACT_CLEANUP_PRIORITY = 41
MAX_ATTEMPTS = 5
RETRY_DELAY_SECONDS = 0.05


def _recreate(directory: Path) -> None:
    logger.info("Artifact cleanup is enabled, removing all files and folders in '%s'", directory)
    if directory.exists():
        shutil.rmtree(directory)
    directory.mkdir(parents=True, exist_ok=True)


async def artifact_cleanup_impl(registry: VariableRegistry, cancellation: asyncio.Event) -> ExitCode:
    """
    Delete and recreate the artifacts directory

    Args:
        registry: Resolved build variables
        cancellation: Build cancellation event

    Returns:
        SUCCESS, the last failed attempt raises

    Raises:
        ConfigurationError: If artifacts.path is missing or empty
        OSError: If the final attempt fails
    """
    if not registry.get_bool(WellKnownVariables.CLEANUP_ARTIFACTS_BEFORE_BUILD, default=False):
        logger.debug("Cleanup before build is disabled")
        return ExitCode.SUCCESS

    artifacts = Path(registry.require_value(WellKnownVariables.ARTIFACTS_PATH))

    if not artifacts.exists():
        logger.debug("Artifacts directory '%s' does not exist, nothing to clean", artifacts)
        return ExitCode.SUCCESS

    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            _recreate(artifacts)
        except OSError as e:
            if attempt == MAX_ATTEMPTS:
                raise
            logger.debug(
                "Attempt %d of %d failed, could not clean up '%s', retrying: %s",
                attempt, MAX_ATTEMPTS, artifacts, e,
            )
            await asyncio.sleep(RETRY_DELAY_SECONDS)
        else:
            logger.debug("Cleanup succeeded on attempt %d", attempt)
            break

    return ExitCode.SUCCESS


artifact_cleanup_tool = ToolDescriptor(
    name="artifact_cleanup",
    execute=artifact_cleanup_impl,
    priority=ARTIFACT_CLEANUP_PRIORITY,
)


__all__ = [
    "artifact_cleanup_impl",
    "artifact_cleanup_tool",
    "ARTIFACT_CLEANUP_PRIORITY",
    "MAX_ATTEMPTS",
    "RETRY_DELAY_SECONDS",
]
