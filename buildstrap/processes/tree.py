"""
Process tree sweep.

The depth-first kill algorithm only talks to the ProcessTree protocol, so it
can be exercised against a fake tree. PsutilProcessTree is the real
implementation for every platform psutil supports.
"""

import logging
import os
from typing import List, Optional, Protocol, Set

import psutil

logger = logging.getLogger(__name__)


class ProcessTree(Protocol):
    """OS process table access.

    Implementations raise ProcessLookupError for processes that no longer
    exist and PermissionError for processes they may not touch.
    """

    def list_children(self, pid: int) -> List[int]:
        ...

    def terminate(self, pid: int) -> None:
        ...


class PsutilProcessTree:
    """ProcessTree backed by psutil."""

    def list_children(self, pid: int) -> List[int]:
        try:
            return [child.pid for child in psutil.Process(pid).children(recursive=False)]
        except psutil.NoSuchProcess as e:
            raise ProcessLookupError(f"Process {pid} does not exist") from e
        except psutil.AccessDenied as e:
            raise PermissionError(f"Access denied to process {pid}") from e

    def terminate(self, pid: int) -> None:
        try:
            process = psutil.Process(pid)
            if not process.is_running():
                raise ProcessLookupError(f"Process {pid} has exited")
            logger.debug("Killing child process [%s] with id [%d]", process.name(), pid)
            process.kill()
        except psutil.NoSuchProcess as e:
            raise ProcessLookupError(f"Process {pid} has exited") from e
        except psutil.AccessDenied as e:
            raise PermissionError(f"Access denied to process {pid}") from e


def kill_process_tree(
    tree: ProcessTree,
    root_pid: int,
    current_pid: Optional[int] = None,
) -> List[int]:
    """
    Kill every live descendant of ``root_pid``, depth-first.

    Children are killed before their parent. The current process is never
    killed. Errors for individual processes are logged and do not stop the
    sweep of their siblings.

    Args:
        tree: Process table access
        root_pid: Process whose descendants are killed (not killed itself)
        current_pid: Process to spare, defaults to this process

    Returns:
        Pids that were terminated, in kill order
    """
    if current_pid is None:
        current_pid = os.getpid()

    killed: List[int] = []
    visited: Set[int] = {root_pid}

    def sweep(parent_pid: int) -> None:
        try:
            children = tree.list_children(parent_pid)
        except (ProcessLookupError, PermissionError) as e:
            logger.warning("Could not list processes spawned by process with id [%d]: %s", parent_pid, e)
            return

        if children:
            logger.debug("Killing [%d] processes spawned by process with id [%d]", len(children), parent_pid)

        for child_pid in children:
            if child_pid == current_pid or child_pid in visited:
                continue
            visited.add(child_pid)

            sweep(child_pid)

            try:
                tree.terminate(child_pid)
            except (ProcessLookupError, PermissionError) as e:
                logger.warning("Child process with id %d could not be killed: %s", child_pid, e)
                continue

            killed.append(child_pid)
            logger.debug("Child process with id %d was killed", child_pid)

    logger.debug("Finding processes spawned by process with id [%d]", root_pid)
    sweep(root_pid)
    return killed


__all__ = ["ProcessTree", "PsutilProcessTree", "kill_process_tree"]
