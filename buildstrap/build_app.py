"""
Build application

The payload side of buildstrap: composes the variable providers and the tools
from explicit factory lists and runs the tool pipeline.
"""

import asyncio
import logging
import time
from typing import Iterable, Optional, Sequence

from config import Config
from buildstrap.errors import log_exception_tree
from buildstrap.models import ExitCode, ToolDescriptor
from buildstrap.pipeline import ToolPipeline, ToolRegistry
from buildstrap.variables import VariableProvider, default_variable_providers
from tools import default_tools

logger = logging.getLogger(__name__)


class BuildApplication:
    """Runs the build pipeline and maps every error to FAILURE."""

    def __init__(
        self,
        config: Config,
        providers: Optional[Sequence[VariableProvider]] = None,
        tools: Optional[Iterable[ToolDescriptor]] = None,
    ):
        """
        Initialize the build application

        Args:
            config: Run configuration
            providers: Variable providers, default_variable_providers(config) when None
            tools: Tool descriptors in registration order, default_tools() when None
        """
        self.config = config
        self._providers = providers
        self._tools = tools

    def create_pipeline(self) -> ToolPipeline:
        providers = self._providers if self._providers is not None else default_variable_providers(self.config)
        tools = self._tools if self._tools is not None else default_tools()
        return ToolPipeline(ToolRegistry(tools), providers)

    async def start(self) -> ExitCode:
        """
        Run the build

        Returns:
            ExitCode of the pipeline, FAILURE on any error
        """
        start_time = time.monotonic()

        try:
            exit_code = await self.create_pipeline().run()
        except Exception as e:
            log_exception_tree(logger, e, prefix="Build failed: ")
            exit_code = ExitCode.FAILURE

        logger.info("Build finished with %s after %.1f seconds", exit_code, time.monotonic() - start_time)
        return exit_code

    def run(self) -> ExitCode:
        return asyncio.run(self.start())


__all__ = ["BuildApplication"]
