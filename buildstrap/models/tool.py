"""
Tool descriptor model.

A tool is one build pipeline step. Its descriptor is created when the pipeline
is composed and never changes afterwards.
"""

import sys
from dataclasses import dataclass
from typing import Any, Callable, Optional

DEFAULT_PRIORITY = sys.maxsize


@dataclass(frozen=True)
class ToolDescriptor:
    """Priority metadata and entry point of a build step.

    ``execute`` receives the resolved variable registry and the run's
    cancellation event and returns an ExitCode, either directly or as a
    coroutine.
    """

    name: str
    execute: Callable[..., Any]
    priority: int = DEFAULT_PRIORITY
    run_always: bool = False
    ignore_failures_key: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("Tool name cannot be empty")
        object.__setattr__(self, "name", self.name.strip())
        if not callable(self.execute):
            raise TypeError(f"Tool {self.name} execute must be callable (type={type(self.execute).__name__})")
        if isinstance(self.priority, bool) or not isinstance(self.priority, int):
            raise TypeError(f"Tool {self.name} priority must be an int (type={type(self.priority).__name__})")
        if self.ignore_failures_key is not None and not self.ignore_failures_key.strip():
            raise ValueError(f"Tool {self.name} ignore_failures_key cannot be empty")
