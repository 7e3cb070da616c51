"""
Tool Pipeline

Runs the registered tools one at a time by ascending priority. Variables are
resolved from the providers again before every tool, so each tool sees what
the providers report at that point of the build.
"""

import asyncio
import inspect
import logging
import time
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from buildstrap.errors import log_exception_tree
from buildstrap.models import ExitCode, ToolDescriptor
from buildstrap.pipeline.registry import ToolRegistry
from buildstrap.variables import VariableProvider, VariableRegistry, resolve_variables

logger = logging.getLogger(__name__)


class ToolPipeline:
    """
    Linear build pipeline

    A tool failure halts the pipeline with FAILURE, unless the tool's
    ignore-failures variable is true. After a halt only run_always tools still
    execute; their results do not change the outcome.
    """

    def __init__(
        self,
        tools: Union[ToolRegistry, Iterable[ToolDescriptor]],
        providers: Sequence[VariableProvider],
        cancellation: Optional[asyncio.Event] = None,
    ):
        """
        Initialize the pipeline

        Args:
            tools: Tool registry, or descriptors in registration order
            providers: Variable providers resolved before each tool
            cancellation: Event shared with the tools, a new one when None
        """
        self.tools = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools)
        self.providers = list(providers)
        self.cancellation = cancellation or asyncio.Event()
        self.results: List[Tuple[str, ExitCode]] = []

    async def run(self) -> ExitCode:
        """
        Execute the tools

        Returns:
            SUCCESS when no tool failed, else FAILURE
        """
        self.results = []
        ordered = self.tools.ordered()
        logger.info("Running %d tools: %s", len(ordered), ", ".join(tool.name for tool in ordered))

        outcome = ExitCode.SUCCESS
        halted = False

        for tool in ordered:
            if not halted and self.cancellation.is_set():
                logger.error("The build was cancelled before tool '%s'", tool.name)
                outcome = ExitCode.FAILURE
                halted = True

            if halted and not tool.run_always:
                logger.debug("Skipping tool '%s' after a failure", tool.name)
                continue

            registry = await resolve_variables(self.providers, self.cancellation)
            exit_code = await self._execute(tool, registry)
            self.results.append((tool.name, exit_code))

            if halted:
                logger.info("Run-always tool '%s' finished with %s", tool.name, exit_code)
                continue

            if exit_code.is_success:
                continue

            if tool.ignore_failures_key and registry.get_bool(tool.ignore_failures_key, default=False):
                logger.warning(
                    "Tool '%s' failed, ignoring the failure since '%s' is enabled",
                    tool.name,
                    tool.ignore_failures_key,
                )
                continue

            logger.error("Tool '%s' failed, halting the build", tool.name)
            outcome = ExitCode.FAILURE
            halted = True

        return outcome

    async def _execute(self, tool: ToolDescriptor, registry: VariableRegistry) -> ExitCode:
        logger.info("Running tool '%s' (priority %d)", tool.name, tool.priority)
        start_time = time.monotonic()

        try:
            result = tool.execute(registry, self.cancellation)
            if inspect.isawaitable(result):
                result = await result
            if not isinstance(result, ExitCode):
                raise TypeError(f"Tool '{tool.name}' returned {type(result).__name__}, expected ExitCode")
        except Exception as e:
            log_exception_tree(logger, e, prefix=f"Tool '{tool.name}' raised: ")
            result = ExitCode.FAILURE

        logger.info(
            "Tool '%s' finished with %s after %.1f seconds",
            tool.name,
            result,
            time.monotonic() - start_time,
        )
        return result


__all__ = ["ToolPipeline"]
