"""
Process execution

- execute: async process runner with timeout
- ProcessTree / PsutilProcessTree: process table access
- kill_process_tree: depth-first sweep of descendant processes
"""

from .runner import execute
from .tree import ProcessTree, PsutilProcessTree, kill_process_tree

__all__ = [
    "execute",
    "ProcessTree",
    "PsutilProcessTree",
    "kill_process_tree",
]
