"""
Build variables

- VariableRegistry: immutable snapshot with case-insensitive lookups
- VariableProvider: contributes variables before each tool runs
- resolve_variables: runs providers and merges last-writer-wins
- WellKnownVariables: keys buildstrap reads or produces
"""

from buildstrap.variables.providers import (
    ConfigVariableProvider,
    EnvironmentVariableProvider,
    SourcePathVariableProvider,
    VariableProvider,
    default_variable_providers,
    order_providers,
    resolve_variables,
)
from buildstrap.variables.registry import VariableRegistry
from buildstrap.variables.well_known import (
    ALL_VARIABLES,
    VariableDescription,
    WellKnownVariables,
    find_well_known,
)

__all__ = [
    "VariableRegistry",
    "VariableProvider",
    "EnvironmentVariableProvider",
    "ConfigVariableProvider",
    "SourcePathVariableProvider",
    "default_variable_providers",
    "order_providers",
    "resolve_variables",
    "WellKnownVariables",
    "VariableDescription",
    "ALL_VARIABLES",
    "find_well_known",
]
