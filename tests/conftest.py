"""
Pytest configuration

Puts the project root on the Python path and provides shared fakes.
"""

import asyncio
import os
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import pytest


project_root = Path(__file__).parent.parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


from buildstrap.models import BuildVariable, ExitCode  # noqa: E402
from buildstrap.variables import VariableRegistry  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep BUILDSTRAP_* variables of the developer machine out of the tests."""
    for key in list(os.environ):
        if key.upper().startswith("BUILDSTRAP_"):
            monkeypatch.delenv(key, raising=False)


def make_registry(**values: str) -> VariableRegistry:
    """Registry from keyword arguments; double underscores become dots."""
    return VariableRegistry(
        BuildVariable(key=key.replace("__", "."), value=value, origin="test")
        for key, value in values.items()
    )


class RecordingRunner:
    """Process runner fake recording every call.

    ``results`` are returned in order, the last one repeating. ``on_call`` can
    inspect a call, raise, or return an ExitCode that overrides the result.
    """

    def __init__(
        self,
        results: Sequence[ExitCode] = (ExitCode.SUCCESS,),
        on_call: Optional[Callable[..., Optional[ExitCode]]] = None,
        delay: float = 0.0,
    ):
        self.results = list(results)
        self.on_call = on_call
        self.delay = delay
        self.calls: List[Dict] = []

    async def __call__(self, executable, arguments=(), **kwargs) -> ExitCode:
        self.calls.append({"executable": executable, "arguments": list(arguments), **kwargs})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.on_call is not None:
            override = self.on_call(executable, list(arguments), **kwargs)
            if override is not None:
                return override
        index = min(len(self.calls) - 1, len(self.results) - 1)
        return self.results[index]


class FakeProcessTree:
    """In-memory process table: parent pid -> child pids."""

    def __init__(self, children: Dict[int, List[int]], denied: Sequence[int] = (), gone: Sequence[int] = ()):
        self.children = children
        self.denied = set(denied)
        self.gone = set(gone)
        self.terminated: List[int] = []

    def list_children(self, pid: int) -> List[int]:
        if pid in self.gone:
            raise ProcessLookupError(pid)
        return list(self.children.get(pid, []))

    def terminate(self, pid: int) -> None:
        if pid in self.gone:
            raise ProcessLookupError(pid)
        if pid in self.denied:
            raise PermissionError(pid)
        self.terminated.append(pid)


@pytest.fixture
def registry_factory() -> Callable[..., VariableRegistry]:
    return make_registry


@pytest.fixture
def runner_factory():
    return RecordingRunner


@pytest.fixture
def process_tree_factory():
    return FakeProcessTree
