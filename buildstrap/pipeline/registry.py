"""
Tool Registry for the build pipeline.

Tools are registered explicitly at composition time. The registry keeps
registration order, which breaks ties between tools of equal priority.
"""

from typing import Callable, Dict, Iterable, List, Optional

from buildstrap.models import DEFAULT_PRIORITY, ToolDescriptor


class DuplicateToolError(ValueError):
    """Raised when two tools are registered under the same name."""

    pass


class ToolRegistry:
    """Ordered collection of tool descriptors.

    The registry provides methods to:
    - Add descriptors, directly or with the register decorator
    - Look tools up by name
    - Get the tools in execution order
    """

    def __init__(self, tools: Iterable[ToolDescriptor] = ()):
        """Initialize the tool registry.

        Args:
            tools: Descriptors to add in registration order
        """
        self._tools: Dict[str, ToolDescriptor] = {}
        self.extend(tools)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def add(self, tool: ToolDescriptor) -> ToolDescriptor:
        """Add a tool descriptor.

        Args:
            tool: Descriptor to add

        Returns:
            The added descriptor

        Raises:
            DuplicateToolError: If a tool with the same name is registered
        """
        if self.get(tool.name) is not None:
            raise DuplicateToolError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name.casefold()] = tool
        return tool

    def extend(self, tools: Iterable[ToolDescriptor]) -> None:
        for tool in tools:
            self.add(tool)

    def register(
        self,
        name: Optional[str] = None,
        priority: int = DEFAULT_PRIORITY,
        run_always: bool = False,
        ignore_failures_key: Optional[str] = None,
    ) -> Callable[[Callable], Callable]:
        """Decorator registering a function as a tool.

        Example:
            @registry.register(priority=10)
            def restore(registry, cancellation):
                return ExitCode.SUCCESS
        """
        def decorator(func: Callable) -> Callable:
            self.add(ToolDescriptor(
                name=name or func.__name__,
                execute=func,
                priority=priority,
                run_always=run_always,
                ignore_failures_key=ignore_failures_key,
            ))
            return func

        return decorator

    def get(self, name: str) -> Optional[ToolDescriptor]:
        """Look up a tool by case-insensitive name."""
        return self._tools.get(name.casefold())

    def ordered(self) -> List[ToolDescriptor]:
        """Get the tools by ascending priority.

        The sort is stable, so equal priorities keep registration order.
        """
        return sorted(self._tools.values(), key=lambda tool: tool.priority)


__all__ = ["ToolRegistry", "DuplicateToolError"]
