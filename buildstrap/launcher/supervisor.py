"""
Process Supervisor

Runs the payload executable under a wall-clock timeout. When the timeout
fires, the payload is killed together with every process spawned below the
launcher.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, List, Mapping, Optional

from config import Config
from buildstrap.errors import PayloadConfigurationError
from buildstrap.logging_config import PAYLOAD_LOGGER_NAME
from buildstrap.models import ExitCode
from buildstrap.processes import ProcessTree, PsutilProcessTree, execute, kill_process_tree

logger = logging.getLogger(__name__)
payload_logger = logging.getLogger(PAYLOAD_LOGGER_NAME)

Runner = Callable[..., Awaitable[ExitCode]]


def _is_candidate(path: Path) -> bool:
    if not path.is_file():
        return False
    if path.suffix.lower() == ".exe":
        return True
    return os.name != "nt" and os.access(path, os.X_OK)


class PayloadSupervisor:
    """Locate and run the payload executable."""

    def __init__(
        self,
        config: Config,
        process_tree: Optional[ProcessTree] = None,
        runner: Runner = execute,
    ):
        self.config = config
        self.process_tree = process_tree or PsutilProcessTree()
        self._runner = runner
        self.timed_out = False
        self.killed_pids: List[int] = []

    def find_payload_executable(self, directory: Path) -> Path:
        """
        Find the single payload executable in a directory.

        The fetcher is never a candidate.

        Raises:
            PayloadConfigurationError: If there is not exactly one candidate
        """
        directory = Path(directory)
        fetcher_name = self.config.fetcher.executable_name.casefold()

        candidates: List[Path] = []
        if directory.is_dir():
            candidates = sorted(
                (path for path in directory.iterdir()
                 if _is_candidate(path) and path.name.casefold() != fetcher_name),
                key=lambda path: path.name,
            )

        if len(candidates) != 1:
            names = [path.name for path in candidates]
            found = f"Found {len(names)} such files: {', '.join(names)}" if names else "Found no such files"
            raise PayloadConfigurationError(
                f"Expected directory '{directory}' to contain exactly one executable file. {found}",
                candidates=names,
            )

        return candidates[0]

    async def run(
        self,
        executable: Path,
        timeout_seconds: Optional[float] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> ExitCode:
        """
        Run the payload with no arguments.

        Args:
            executable: Payload executable
            timeout_seconds: Timeout, the configured build timeout when None
            env: Complete environment of the payload process

        Returns:
            ExitCode of the payload, FAILURE on timeout
        """
        self.timed_out = False
        self.killed_pids = []

        timeout = timeout_seconds if timeout_seconds is not None else self.config.launcher.build_timeout_seconds
        logger.info("Using build timeout %s seconds", timeout)

        executable = Path(executable)
        task = asyncio.ensure_future(
            self._runner(
                executable,
                [],
                cwd=executable.parent,
                env=env,
                output_logger=payload_logger,
            )
        )

        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task in done:
            return task.result()

        self.timed_out = True
        logger.error("The payload '%s' timed out after %s seconds", executable.name, timeout)

        # Sweep while the payload is alive, its orphans would leave the tree
        if self.config.launcher.kill_spawned_processes:
            self.killed_pids = kill_process_tree(self.process_tree, os.getpid())
            logger.info("Killed %d spawned processes", len(self.killed_pids))
        else:
            logger.warning("Killing spawned processes is disabled")

        task.cancel()
        await asyncio.wait({task})
        if not task.cancelled() and task.exception() is not None:
            logger.debug("The payload runner failed after the timeout: %s", task.exception())

        return ExitCode.FAILURE


__all__ = ["PayloadSupervisor"]
