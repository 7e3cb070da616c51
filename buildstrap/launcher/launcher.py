"""
Launcher

Entry point of a bootstrap run: stage the source tree, acquire the payload,
run it under the build timeout and return its exit code. Every failure along
the way, including exception groups, is logged and turned into FAILURE.
"""

import asyncio
import logging
import os
import time
from typing import Callable, Mapping, Optional

from config import Config
from buildstrap.errors import log_exception_tree
from buildstrap.launcher.acquirer import PayloadAcquirer
from buildstrap.launcher.staging import StagingDecision
from buildstrap.launcher.supervisor import PayloadSupervisor
from buildstrap.models import ExitCode, StartOptions

logger = logging.getLogger(__name__)


class Launcher:
    """
    Bootstrap launcher

    Components are created per run from the configuration with the start
    options applied. Factories can be replaced for testing.
    """

    def __init__(
        self,
        config: Config,
        staging_factory: Callable[[Config], StagingDecision] = StagingDecision,
        acquirer_factory: Callable[[Config], PayloadAcquirer] = PayloadAcquirer,
        supervisor_factory: Callable[[Config], PayloadSupervisor] = PayloadSupervisor,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize the launcher

        Args:
            config: Base configuration, never modified
            staging_factory: Creates the staging decision
            acquirer_factory: Creates the payload acquirer
            supervisor_factory: Creates the payload supervisor
            environ: Environment inherited by the payload (os.environ when None)
        """
        self.config = config
        self._staging_factory = staging_factory
        self._acquirer_factory = acquirer_factory
        self._supervisor_factory = supervisor_factory
        self._environ = environ

    def apply_options(self, options: StartOptions) -> Config:
        """Return a new configuration with the start options applied."""
        config = self.config

        base_dir = options.existing_base_dir
        if base_dir is not None:
            config = config.with_updates("source", root=str(base_dir))
        elif options.base_dir:
            logger.warning("Base directory '%s' does not exist, ignoring it", options.base_dir)

        if options.prerelease_enabled is not None:
            config = config.with_updates("payload", allow_prerelease=options.prerelease_enabled)

        if options.branch_name:
            config = config.with_updates("source", branch_name=options.branch_name)

        return config

    def payload_environment(self, config: Config) -> dict:
        """Environment of the payload process: the inherited one plus the run context."""
        environ = os.environ if self._environ is None else self._environ
        return {**environ, **config.to_environment()}

    async def start(self, options: Optional[StartOptions] = None) -> ExitCode:
        """
        Run the bootstrap

        Args:
            options: Start options

        Returns:
            ExitCode of the run, never raises for run failures
        """
        options = options or StartOptions()
        start_time = time.monotonic()

        try:
            exit_code = await self._try_start(options)
        except Exception as e:
            log_exception_tree(logger, e, prefix="Bootstrap failed: ")
            exit_code = ExitCode.FAILURE

        delay_ms = self.config.launcher.exit_delay_milliseconds
        if delay_ms > 0:
            logger.info("Delaying exit %d milliseconds", delay_ms)
            await asyncio.sleep(delay_ms / 1000)

        elapsed = time.monotonic() - start_time
        logger.info("Bootstrap finished with %s after %.1f seconds", exit_code, elapsed)
        return exit_code

    async def _try_start(self, options: StartOptions) -> ExitCode:
        config = self.apply_options(options)

        staging = self._staging_factory(config)
        location = await staging.decide(options)
        logger.info("Staging in '%s'%s", location.path, " (ephemeral clone)" if location.ephemeral else "")

        config = config.with_updates("source", root=str(location.path))

        build_dir = location.build_dir
        build_dir.mkdir(parents=True, exist_ok=True)

        acquirer = self._acquirer_factory(config)
        fetcher = await acquirer.ensure_fetcher(build_dir)

        payload_dir = await acquirer.install_payload(build_dir, fetcher, options.prerelease_enabled)
        if payload_dir is None:
            logger.error("Could not install the payload package '%s'", config.payload.package_name)
            return ExitCode.FAILURE

        supervisor = self._supervisor_factory(config)
        executable = supervisor.find_payload_executable(payload_dir)

        exit_code = await supervisor.run(executable, env=self.payload_environment(config))

        if supervisor.timed_out:
            exit_code = ExitCode.FAILURE

        if exit_code.is_success:
            logger.info("The payload '%s' succeeded", executable.name)
        else:
            logger.error("The payload '%s' failed", executable.name)

        return exit_code

    def run(self, options: Optional[StartOptions] = None) -> ExitCode:
        """Synchronous wrapper around start()."""
        return asyncio.run(self.start(options))


__all__ = ["Launcher"]
