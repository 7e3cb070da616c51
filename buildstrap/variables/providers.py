"""
Variable providers and their resolution.

Providers are collaborators that contribute zero or more build variables.
Before every tool runs, all providers are re-run in provider order and their
output is merged last-writer-wins into a fresh VariableRegistry.
"""

import asyncio
import dataclasses
import inspect
import logging
import os
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from config import Config, format_value
from buildstrap.models import BuildVariable
from buildstrap.variables.registry import VariableRegistry
from buildstrap.variables.well_known import WellKnownVariables
from buildstrap.vcs import find_source_root

logger = logging.getLogger(__name__)


@runtime_checkable
class VariableProvider(Protocol):
    """Contributes build variables.

    ``order`` places the provider in the resolution sequence; ``None`` means
    unordered. ``provide`` sees the variables resolved so far and may be a
    coroutine function.
    """

    name: str
    order: Optional[int]

    def provide(self, registry: VariableRegistry, cancellation: asyncio.Event) -> Any:
        ...


def order_providers(providers: Sequence[VariableProvider]) -> List[VariableProvider]:
    """Ordered providers ascending by order, then unordered ones in registration order."""
    ordered = sorted((p for p in providers if p.order is not None), key=lambda p: p.order)
    unordered = [p for p in providers if p.order is None]
    return ordered + unordered


async def resolve_variables(
    providers: Sequence[VariableProvider],
    cancellation: Optional[asyncio.Event] = None,
) -> VariableRegistry:
    """Run every provider and merge the results into a new registry.

    Duplicate keys (case-insensitive) resolve to the value of the provider that
    ran last; the entry keeps the position where the key first appeared.
    """
    if cancellation is None:
        cancellation = asyncio.Event()

    merged: dict = {}

    for provider in order_providers(providers):
        current = VariableRegistry(merged.values())
        result = provider.provide(current, cancellation)
        if inspect.isawaitable(result):
            result = await result

        count = 0
        for variable in result or ():
            if not isinstance(variable, BuildVariable):
                raise TypeError(
                    f"Provider {provider.name} returned {type(variable).__name__}, expected BuildVariable"
                )
            if not variable.origin:
                variable = dataclasses.replace(variable, origin=provider.name)
            merged[variable.normalized_key] = variable
            count += 1

        logger.debug("Provider '%s' contributed %d variables", provider.name, count)

    return VariableRegistry(merged.values())


class EnvironmentVariableProvider:
    """Exposes process environment variables with their names as keys."""

    name = "environment"
    order: Optional[int] = 0

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = environ

    def provide(self, registry: VariableRegistry, cancellation: asyncio.Event) -> List[BuildVariable]:
        environ = os.environ if self._environ is None else self._environ
        return [
            BuildVariable(key=key, value=value, origin=self.name)
            for key, value in environ.items()
            if key.strip()
        ]


class ConfigVariableProvider:
    """Exposes the loaded configuration as dotted ``section.field`` variables."""

    name = "config"
    order: Optional[int] = 10

    def __init__(self, config: Config):
        self._config = config

    def provide(self, registry: VariableRegistry, cancellation: asyncio.Event) -> List[BuildVariable]:
        variables = []
        for section, values in self._config.model_dump(exclude_none=True).items():
            for key, value in values.items():
                variables.append(
                    BuildVariable(key=f"{section}.{key}", value=format_value(value), origin=self.name)
                )
        return variables


class SourcePathVariableProvider:
    """Resolves the source root and the artifacts directory."""

    name = "source_paths"
    order: Optional[int] = 20

    def __init__(self, start_dir: Optional[Path] = None):
        self._start_dir = start_dir

    def provide(self, registry: VariableRegistry, cancellation: asyncio.Event) -> Iterable[BuildVariable]:
        configured_root = registry.get_value(WellKnownVariables.SOURCE_ROOT)
        if configured_root and configured_root.strip():
            source_root = Path(configured_root)
        else:
            source_root = find_source_root(self._start_dir)

        if source_root is None:
            logger.warning("Could not find the source root, no source path variables provided")
            return []

        artifacts = registry.get_value(WellKnownVariables.ARTIFACTS_DIR)
        artifacts_path = Path(artifacts) if artifacts and artifacts.strip() else source_root / "Artifacts"

        return [
            BuildVariable(key=WellKnownVariables.SOURCE_ROOT, value=str(source_root), origin=self.name),
            BuildVariable(key=WellKnownVariables.ARTIFACTS_PATH, value=str(artifacts_path), origin=self.name),
        ]


def default_variable_providers(config: Config) -> List[VariableProvider]:
    """Provider factory list used by the build application."""
    return [
        EnvironmentVariableProvider(),
        ConfigVariableProvider(config),
        SourcePathVariableProvider(),
    ]
