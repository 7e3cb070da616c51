"""
Variable registry for the build pipeline.

An immutable, ordered snapshot of build variables. A new registry is resolved
from the variable providers before every tool runs, so tools never observe
each other's writes except through providers.
"""

from typing import Iterable, Iterator, List, Optional, Tuple

from buildstrap.errors import ConfigurationError
from buildstrap.models import BuildVariable
from buildstrap.variables.well_known import find_well_known

_TRUE_VALUES = {"true", "1", "yes"}
_FALSE_VALUES = {"false", "0", "no"}


class VariableRegistry:
    """Read-only collection of build variables with case-insensitive lookups.

    The registry does not deduplicate: merging is the resolver's job. Lookups
    that expect a single entry fail loudly when a key is ambiguous.
    """

    def __init__(self, variables: Iterable[BuildVariable] = ()):
        """Initialize the registry.

        Args:
            variables: Variables in resolution order
        """
        self._variables: Tuple[BuildVariable, ...] = tuple(variables)

    def __iter__(self) -> Iterator[BuildVariable]:
        return iter(self._variables)

    def __len__(self) -> int:
        return len(self._variables)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.has_key(key)

    def __repr__(self) -> str:
        return f"VariableRegistry({len(self._variables)} variables)"

    def _find(self, key: str) -> List[BuildVariable]:
        if not isinstance(key, str) or not key.strip():
            raise ValueError("Variable key cannot be empty")
        return [variable for variable in self._variables if variable.matches(key)]

    def has_key(self, key: str) -> bool:
        """Check whether at least one variable has the key.

        Args:
            key: Variable key (case-insensitive)

        Returns:
            True if the key is present
        """
        return bool(self._find(key))

    def require(self, key: str) -> BuildVariable:
        """Get the single variable with the key.

        Args:
            key: Variable key (case-insensitive)

        Returns:
            The matching variable

        Raises:
            ConfigurationError: If the key is missing or matches more than one variable
        """
        found = self._find(key)

        if len(found) > 1:
            raise ConfigurationError(f"There are multiple variables with key '{key}'", key=key)

        if not found:
            message = f"The key '{key}' was not found in the variable collection"
            description = find_well_known(key)
            canonical_name = None
            if description is not None:
                canonical_name = f"WellKnownVariables.{description.name}"
                message += f". (The variable is the well-known variable {canonical_name})"
            raise ConfigurationError(message, key=key, canonical_name=canonical_name)

        return found[0]

    def require_value(self, key: str) -> str:
        """Get the value of a required variable, rejecting empty values.

        Raises:
            ConfigurationError: If the key is missing, ambiguous or has an empty value
        """
        variable = self.require(key)
        if not variable.value.strip():
            raise ConfigurationError(f"The variable '{variable.key}' has an empty value", key=key)
        return variable.value

    def get(self, key: str) -> Optional[BuildVariable]:
        """Get the variable with the key, or None when it is absent.

        Raises:
            ConfigurationError: If the key matches more than one variable
        """
        if not self.has_key(key):
            return None
        return self.require(key)

    def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        variable = self.get(key)
        return default if variable is None else variable.value

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Parse a boolean variable, falling back to the default on empty or invalid values."""
        value = self.get_value(key)
        if value is None or not value.strip():
            return default
        normalized = value.strip().lower()
        if normalized in _TRUE_VALUES:
            return True
        if normalized in _FALSE_VALUES:
            return False
        return default

    def get_int(self, key: str, default: int = 0, min_value: Optional[int] = None) -> int:
        """Parse an integer variable, falling back to the default on empty or invalid values."""
        value = self.get_value(key)
        result = default
        if value is not None and value.strip():
            try:
                result = int(value.strip())
            except ValueError:
                result = default
        if min_value is not None and result < min_value:
            result = min_value
        return result

    def keys(self) -> List[str]:
        return [variable.key for variable in self._variables]
