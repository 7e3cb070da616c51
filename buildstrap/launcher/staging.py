"""
Staging decision

Chooses the working root of a run: an explicit base directory, a fresh clone
of the source tree in local temporary storage, or the source tree in place.
"""

import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import Awaitable, Callable, List, Mapping, Optional, Protocol, Sequence

from config import Config
from buildstrap.errors import StagingError
from buildstrap.models import ExitCode, StagingLocation, StartOptions
from buildstrap.processes import execute
from buildstrap.vcs import find_git_executable, find_source_root

logger = logging.getLogger(__name__)

Runner = Callable[..., Awaitable[ExitCode]]


class StagingHint(Protocol):
    """Signal from the hosting environment."""

    def favors_local_staging(self) -> bool:
        ...


class EnvironmentStagingHint:
    """Favors local staging when a hosted-environment marker variable is set."""

    def __init__(self, markers: Sequence[str], environ: Optional[Mapping[str, str]] = None):
        self.markers = list(markers)
        self._environ = environ

    def favors_local_staging(self) -> bool:
        environ = os.environ if self._environ is None else self._environ
        found = [marker for marker in self.markers if environ.get(marker, "").strip()]
        logger.debug("Hosted environment markers found: %s", found or "none")
        return bool(found)


class StagingDecision:
    """
    Decide where a run is staged.

    Precedence:
    1. An existing base directory from the start options, used verbatim
    2. A clone in temporary storage, when the platform favors local staging
       and the source tree is clonable
    3. The source root found by walking up from the working directory
    """

    def __init__(
        self,
        config: Config,
        hint: Optional[StagingHint] = None,
        runner: Runner = execute,
        start_dir: Optional[Path] = None,
    ):
        """
        Initialize the staging decision.

        Args:
            config: Run configuration
            hint: Hosting environment signal, defaults to the configured marker variables
            runner: Process runner used for git
            start_dir: Directory the source root search starts from (cwd when None)
        """
        self.config = config
        self.hint = hint or EnvironmentStagingHint(config.staging.hosted_environment_markers)
        self._runner = runner
        self._start_dir = start_dir

    @property
    def temp_root(self) -> Path:
        if self.config.staging.temp_root:
            return Path(self.config.staging.temp_root)
        return Path(tempfile.gettempdir()) / "buildstrap"

    async def decide(self, options: StartOptions) -> StagingLocation:
        """
        Choose the staging location.

        Args:
            options: Start options

        Returns:
            StagingLocation for the run

        Raises:
            StagingError: If cloning fails or no source root exists
        """
        base_dir = options.existing_base_dir
        if base_dir is not None:
            logger.info("Using base directory '%s' from start options", base_dir)
            return StagingLocation(path=base_dir)

        if self.hint.favors_local_staging() and await self.is_source_clonable():
            return StagingLocation(path=await self.clone_source(), ephemeral=True)

        source_root = find_source_root(self._start_dir)
        if source_root is None:
            raise StagingError(f"Could not find a source root above '{self._start_dir or Path.cwd()}'")

        logger.debug("Using source root '%s'", source_root)
        return StagingLocation(path=source_root)

    async def is_source_clonable(self) -> bool:
        """Probe whether the source root is a working git repository."""
        if not self.config.launcher.directory_clone_enabled:
            logger.debug("Directory clone is disabled")
            return False

        logger.debug("Directory clone is enabled")

        source_root = find_source_root(self._start_dir)
        if source_root is None:
            logger.warning("Could not find source root")
            return False

        git = find_git_executable(self.config.staging.git_executable)
        if not git:
            logger.warning("Could not find git, the source root is not clonable")
            return False

        git_dir = source_root / ".git"
        argument_variants: List[List[str]] = [
            ["status"],
            [f"--git-dir={git_dir}", f"--work-tree={source_root}", "status"],
        ]

        is_clonable = False
        for arguments in argument_variants:
            exit_code = await self._runner(
                git,
                arguments,
                cwd=source_root,
                stdout_level=logging.DEBUG,
                stderr_level=logging.DEBUG,
            )
            if exit_code.is_success:
                is_clonable = True
                break

        logger.debug("Is directory clonable: %s", is_clonable)
        return is_clonable

    async def clone_source(self) -> Path:
        """
        Clone the source root into a fresh directory under the temp root.

        Returns:
            Path of the clone

        Raises:
            StagingError: If the clone fails
        """
        source_root = find_source_root(self._start_dir)
        if source_root is None:
            raise StagingError("Could not find a source root to clone")

        git = find_git_executable(self.config.staging.git_executable)
        if not git:
            raise StagingError("Could not find git to clone the source root")

        target = self.temp_root / "R" / uuid.uuid4().hex[:8]
        target.mkdir(parents=True, exist_ok=False)

        logger.debug("Using temp storage to clone: '%s'", target)

        exit_code = await self._runner(git, ["clone", str(source_root), str(target)])
        if not exit_code.is_success:
            raise StagingError(f"Could not clone directory '{source_root}' to '{target}'")

        return target


__all__ = ["StagingHint", "EnvironmentStagingHint", "StagingDecision"]
