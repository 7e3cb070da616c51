"""
Variable provider tests
"""

import asyncio
from pathlib import Path

import pytest

from config import Config
from buildstrap.models import BuildVariable
from buildstrap.variables import (
    ConfigVariableProvider,
    EnvironmentVariableProvider,
    SourcePathVariableProvider,
    VariableProvider,
    WellKnownVariables,
    default_variable_providers,
    order_providers,
    resolve_variables,
)


class StaticProvider:
    """Provider returning fixed variables."""

    def __init__(self, name, order, variables, seen=None):
        self.name = name
        self.order = order
        self._variables = variables
        self.seen = seen

    def provide(self, registry, cancellation):
        if self.seen is not None:
            self.seen.append((self.name, registry.keys()))
        return [BuildVariable(key=key, value=value) for key, value in self._variables.items()]


class AsyncProvider(StaticProvider):
    async def provide(self, registry, cancellation):
        await asyncio.sleep(0)
        return super().provide(registry, cancellation)


class TestOrdering:
    """Provider ordering"""

    def test_ordered_then_unordered(self):
        late = StaticProvider("late", None, {})
        second = StaticProvider("second", 20, {})
        first = StaticProvider("first", 10, {})
        later = StaticProvider("later", None, {})

        ordered = order_providers([late, second, first, later])

        assert [provider.name for provider in ordered] == ["first", "second", "late", "later"]

    def test_protocol(self):
        assert isinstance(StaticProvider("p", 0, {}), VariableProvider)


class TestResolveVariables:
    """Resolution and merging"""

    def test_last_writer_wins(self):
        providers = [
            StaticProvider("b", 20, {"KEY": "from-b"}),
            StaticProvider("a", 10, {"key": "from-a", "other": "x"}),
        ]

        registry = asyncio.run(resolve_variables(providers))

        variable = registry.require("key")
        assert variable.value == "from-b"
        assert variable.origin == "b"
        assert len(registry) == 2

    def test_providers_see_accumulated_variables(self):
        seen = []
        providers = [
            StaticProvider("first", 0, {"a": "1"}, seen),
            AsyncProvider("second", 1, {"b": "2"}, seen),
            StaticProvider("third", 2, {}, seen),
        ]

        registry = asyncio.run(resolve_variables(providers))

        assert seen == [("first", []), ("second", ["a"]), ("third", ["a", "b"])]
        assert registry.keys() == ["a", "b"]

    def test_rejects_invalid_output(self):
        class BadProvider:
            name = "bad"
            order = 0

            def provide(self, registry, cancellation):
                return [("key", "value")]

        with pytest.raises(TypeError, match="bad"):
            asyncio.run(resolve_variables([BadProvider()]))

    def test_no_providers(self):
        assert len(asyncio.run(resolve_variables([]))) == 0


class TestShippedProviders:
    """Environment, configuration and source path providers"""

    def test_environment_provider(self):
        provider = EnvironmentVariableProvider({"PATH": "/bin", "HOME": "/root"})
        registry = asyncio.run(resolve_variables([provider]))
        assert registry.require("path").value == "/bin"
        assert registry.require("HOME").origin == "environment"

    def test_config_provider_flattens(self):
        config = Config().with_updates("source", root="/src")
        registry = asyncio.run(resolve_variables([ConfigVariableProvider(config)]))

        assert registry.require_value("source.root") == "/src"
        assert registry.get_bool(WellKnownVariables.KILL_SPAWNED_PROCESSES) is True
        assert registry.get_int(WellKnownVariables.BUILD_TIMEOUT_SECONDS) == 600
        assert registry.require_value(WellKnownVariables.REQUIRED_VARIABLES) == "source.root,artifacts.path"
        assert not registry.has_key(WellKnownVariables.BRANCH_NAME)

    def test_source_paths_discovered(self, tmp_path):
        (tmp_path / ".git").mkdir()
        nested = tmp_path / "src" / "lib"
        nested.mkdir(parents=True)

        registry = asyncio.run(resolve_variables([SourcePathVariableProvider(start_dir=nested)]))

        assert Path(registry.require_value(WellKnownVariables.SOURCE_ROOT)) == tmp_path.resolve()
        assert Path(registry.require_value(WellKnownVariables.ARTIFACTS_PATH)) == tmp_path.resolve() / "Artifacts"

    def test_source_paths_from_config(self, tmp_path):
        config = Config().with_updates("source", root=str(tmp_path)).with_updates(
            "build", artifacts_dir=str(tmp_path / "out")
        )
        providers = [ConfigVariableProvider(config), SourcePathVariableProvider(start_dir=tmp_path)]

        registry = asyncio.run(resolve_variables(providers))

        assert registry.require_value(WellKnownVariables.SOURCE_ROOT) == str(tmp_path)
        assert registry.require_value(WellKnownVariables.ARTIFACTS_PATH) == str(tmp_path / "out")

    def test_source_paths_without_root(self, tmp_path):
        registry = asyncio.run(resolve_variables([SourcePathVariableProvider(start_dir=tmp_path)]))
        assert not registry.has_key(WellKnownVariables.SOURCE_ROOT)

    def test_default_providers(self):
        providers = default_variable_providers(Config())
        assert [provider.name for provider in order_providers(providers)] == [
            "environment",
            "config",
            "source_paths",
        ]
