"""
Build variable model.

A build variable is one named configuration entry contributed by a variable
provider. Keys compare case-insensitively.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BuildVariable:
    """A single key/value configuration entry and the provider it came from."""

    key: str
    value: str
    origin: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.key, str) or not self.key.strip():
            raise ValueError("Variable key cannot be empty")
        if self.value is None:
            object.__setattr__(self, "value", "")
        elif not isinstance(self.value, str):
            raise TypeError(
                f"Variable {self.key} value must be a string (type={type(self.value).__name__})"
            )
        object.__setattr__(self, "key", self.key.strip())

    @property
    def normalized_key(self) -> str:
        return self.key.casefold()

    def matches(self, key: str) -> bool:
        return self.normalized_key == key.strip().casefold()

    def __str__(self) -> str:
        return f"{self.key}={self.value}"
