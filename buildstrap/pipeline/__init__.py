"""
Build pipeline

- ToolRegistry: explicit tool registration
- ToolPipeline: priority-ordered tool execution
"""

from .registry import DuplicateToolError, ToolRegistry
from .runner import ToolPipeline

__all__ = ["ToolRegistry", "DuplicateToolError", "ToolPipeline"]
