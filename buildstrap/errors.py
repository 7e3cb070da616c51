"""
Error taxonomy for buildstrap.

Every fatal condition is a BuildstrapError subclass. The outermost boundaries
(the launcher, the build application and the CLI) catch everything, log each
nested cause with ``iter_nested_exceptions`` and turn it into a failure exit
code.
"""

from typing import Iterator, List, Optional


class BuildstrapError(Exception):
    """Base class for buildstrap errors."""

    pass


class ConfigurationError(BuildstrapError):
    """A required variable is missing or ambiguous."""

    def __init__(self, message: str, key: str, canonical_name: Optional[str] = None):
        super().__init__(message)
        self.key = key
        self.canonical_name = canonical_name


class AcquisitionError(BuildstrapError):
    """The fetcher or the payload could not be acquired."""

    pass


class StagingError(BuildstrapError):
    """The staging location could not be prepared."""

    pass


class PayloadConfigurationError(BuildstrapError):
    """The payload directory does not contain exactly one executable."""

    def __init__(self, message: str, candidates: List[str]):
        super().__init__(message)
        self.candidates = candidates


class ProcessTimeoutError(BuildstrapError):
    """A supervised process exceeded its timeout."""

    def __init__(self, message: str, timeout_seconds: float):
        super().__init__(message)
        self.timeout_seconds = timeout_seconds


def iter_nested_exceptions(exc: BaseException) -> Iterator[BaseException]:
    """Yield ``exc`` followed by every nested exception.

    Exception group members are expanded recursively, and explicit causes or
    implicit contexts are followed. Each exception is yielded once.
    """
    seen = set()
    stack = [exc]

    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current

        nested: List[BaseException] = []
        if isinstance(current, BaseExceptionGroup):
            nested.extend(current.exceptions)
        if current.__cause__ is not None:
            nested.append(current.__cause__)
        elif current.__context__ is not None and not current.__suppress_context__:
            nested.append(current.__context__)

        stack.extend(reversed(nested))


def format_nested(exc: BaseException) -> List[str]:
    """Render ``exc`` and its nested exceptions as ``Type: message`` lines."""
    return [f"{type(nested).__name__}: {nested}" for nested in iter_nested_exceptions(exc)]


def log_exception_tree(logger, exc: BaseException, prefix: str = "") -> None:
    """Log an exception and each nested cause as separate error records."""
    for index, nested in enumerate(iter_nested_exceptions(exc)):
        if index == 0:
            logger.error("%s%s", prefix, nested, exc_info=nested)
        else:
            logger.error("%sNested exception %d: %s: %s", prefix, index, type(nested).__name__, nested)


__all__ = [
    "BuildstrapError",
    "ConfigurationError",
    "AcquisitionError",
    "StagingError",
    "PayloadConfigurationError",
    "ProcessTimeoutError",
    "iter_nested_exceptions",
    "format_nested",
    "log_exception_tree",
]
