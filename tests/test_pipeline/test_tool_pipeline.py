"""
Tool registry and pipeline tests
"""

import asyncio

import pytest

from buildstrap.models import BuildVariable, ExitCode, ToolDescriptor
from buildstrap.pipeline import DuplicateToolError, ToolPipeline, ToolRegistry


class CountingProvider:
    """Provider exposing how often it was resolved."""

    name = "counting"
    order = 0

    def __init__(self, extra=None):
        self.calls = 0
        self.extra = extra or {}

    def provide(self, registry, cancellation):
        self.calls += 1
        variables = [BuildVariable(key="resolution", value=str(self.calls))]
        variables.extend(BuildVariable(key=key, value=value) for key, value in self.extra.items())
        return variables


def recording_tool(name, executed, result=ExitCode.SUCCESS, **kwargs):
    def execute(registry, cancellation):
        executed.append(name)
        return result

    return ToolDescriptor(name=name, execute=execute, **kwargs)


def run(pipeline):
    return asyncio.run(pipeline.run())


class TestToolRegistry:
    """Explicit tool registration"""

    def test_priority_order(self):
        executed = []
        registry = ToolRegistry([
            recording_tool("fifty", executed, priority=50),
            recording_tool("ten", executed, priority=10),
            recording_tool("thirty", executed, priority=30),
        ])

        assert [tool.priority for tool in registry.ordered()] == [10, 30, 50]

    def test_equal_priorities_keep_registration_order(self):
        executed = []
        registry = ToolRegistry([
            recording_tool("b", executed, priority=5),
            recording_tool("a", executed, priority=5),
            recording_tool("last", executed),
            recording_tool("c", executed, priority=5),
        ])

        assert [tool.name for tool in registry.ordered()] == ["b", "a", "c", "last"]

    def test_duplicate_names_rejected(self):
        registry = ToolRegistry([recording_tool("Clean", [])])
        with pytest.raises(DuplicateToolError):
            registry.add(recording_tool("clean", []))

    def test_register_decorator(self):
        registry = ToolRegistry()

        @registry.register(priority=7, run_always=True)
        def cleanup(variables, cancellation):
            return ExitCode.SUCCESS

        tool = registry.get("cleanup")
        assert tool.priority == 7
        assert tool.run_always is True
        assert tool.execute is cleanup
        assert "CLEANUP" in registry
        assert len(registry) == 1


class TestToolPipeline:
    """Pipeline execution"""

    def test_execution_order(self):
        executed = []
        tools = [
            recording_tool("fifty", executed, priority=50),
            recording_tool("ten", executed, priority=10),
            recording_tool("thirty", executed, priority=30),
        ]

        assert run(ToolPipeline(tools, [])) is ExitCode.SUCCESS
        assert executed == ["ten", "thirty", "fifty"]

    def test_failure_halts(self):
        executed = []
        tools = [
            recording_tool("first", executed, priority=1),
            recording_tool("second", executed, ExitCode.FAILURE, priority=2),
            recording_tool("third", executed, priority=3),
        ]

        assert run(ToolPipeline(tools, [])) is ExitCode.FAILURE
        assert executed == ["first", "second"]

    def test_run_always_after_failure(self):
        executed = []
        tools = [
            recording_tool("fails", executed, ExitCode.FAILURE, priority=1),
            recording_tool("skipped", executed, priority=2),
            recording_tool("cleanup", executed, priority=3, run_always=True),
        ]
        pipeline = ToolPipeline(tools, [])

        assert run(pipeline) is ExitCode.FAILURE
        assert executed == ["fails", "cleanup"]
        assert pipeline.results == [("fails", ExitCode.FAILURE), ("cleanup", ExitCode.SUCCESS)]

    def test_variables_resolved_before_each_tool(self):
        seen = []
        provider = CountingProvider()

        def execute(registry, cancellation):
            seen.append(registry.require_value("resolution"))
            return ExitCode.SUCCESS

        tools = [ToolDescriptor(name=f"t{i}", execute=execute, priority=i) for i in range(3)]

        run(ToolPipeline(tools, [provider]))

        assert seen == ["1", "2", "3"]

    def test_async_tool(self):
        async def execute(registry, cancellation):
            await asyncio.sleep(0)
            return ExitCode.SUCCESS

        assert run(ToolPipeline([ToolDescriptor(name="async", execute=execute)], [])) is ExitCode.SUCCESS

    def test_exception_counts_as_failure(self):
        executed = []

        def explode(registry, cancellation):
            raise RuntimeError("boom")

        tools = [
            ToolDescriptor(name="explode", execute=explode, priority=1),
            recording_tool("after", executed, priority=2),
        ]

        assert run(ToolPipeline(tools, [])) is ExitCode.FAILURE
        assert executed == []

    def test_invalid_result_counts_as_failure(self):
        tool = ToolDescriptor(name="bad", execute=lambda registry, cancellation: 0)
        assert run(ToolPipeline([tool], [])) is ExitCode.FAILURE

    def test_ignorable_failure(self):
        executed = []
        tools = [
            recording_tool("tests", executed, ExitCode.FAILURE, priority=1, ignore_failures_key="tests.ignore_failures"),
            recording_tool("after", executed, priority=2),
        ]
        provider = CountingProvider(extra={"tests.ignore_failures": "true"})

        assert run(ToolPipeline(tools, [provider])) is ExitCode.SUCCESS
        assert executed == ["tests", "after"]

    def test_ignorable_failure_is_opt_in(self):
        executed = []
        tools = [
            recording_tool("tests", executed, ExitCode.FAILURE, priority=1, ignore_failures_key="tests.ignore_failures"),
            recording_tool("other", executed, ExitCode.FAILURE, priority=2),
            recording_tool("after", executed, priority=3),
        ]
        provider = CountingProvider(extra={"tests.ignore_failures": "true"})

        assert run(ToolPipeline(tools, [provider])) is ExitCode.FAILURE
        assert executed == ["tests", "other"]

    def test_ignore_key_false(self):
        executed = []
        tools = [recording_tool("tests", executed, ExitCode.FAILURE, ignore_failures_key="tests.ignore_failures")]
        provider = CountingProvider(extra={"tests.ignore_failures": "false"})

        assert run(ToolPipeline(tools, [provider])) is ExitCode.FAILURE

    def test_cancelled_before_tool(self):
        executed = []
        cancellation = asyncio.Event()

        def cancel(registry, event):
            event.set()
            return ExitCode.SUCCESS

        tools = [
            ToolDescriptor(name="cancel", execute=cancel, priority=1),
            recording_tool("after", executed, priority=2),
        ]

        assert run(ToolPipeline(tools, [], cancellation=cancellation)) is ExitCode.FAILURE
        assert executed == []
