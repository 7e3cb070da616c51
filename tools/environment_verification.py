"""
Environment verification

Fails the build when a required variable is missing or has an empty value.
The required keys come from build.required_variables unless given explicitly.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from buildstrap.models import ExitCode, ToolDescriptor
from buildstrap.variables import VariableRegistry, WellKnownVariables

logger = logging.getLogger(__name__)

ENVIRONMENT_VERIFICATION_PRIORITY = 51


def required_keys(registry: VariableRegistry, required: Optional[Sequence[str]] = None) -> List[str]:
    """The keys to verify, explicit ones first, else the comma-separated configuration value."""
    if required is not None:
        return [key.strip() for key in required if key.strip()]
    value = registry.get_value(WellKnownVariables.REQUIRED_VARIABLES, default="") or ""
    return [key.strip() for key in value.split(",") if key.strip()]


def verify_environment(registry: VariableRegistry, required: Optional[Sequence[str]] = None) -> ExitCode:
    """
    Check that every required variable exists with a non-empty value

    Args:
        registry: Resolved build variables
        required: Keys to check, build.required_variables when None

    Returns:
        SUCCESS or FAILURE
    """
    keys = required_keys(registry, required)

    missing_keys = [key for key in keys if not registry.has_key(key)]
    missing_values = [
        key for key in keys
        if registry.has_key(key) and not any(v.value.strip() for v in registry if v.matches(key))
    ]

    lines: List[str] = []
    if missing_keys:
        lines.append(f"Missing variables: [{len(missing_keys)}]")
        lines.extend(missing_keys)
    if missing_values:
        lines.append(f"Variables with empty values: [{len(missing_values)}]")
        lines.extend(missing_values)

    if lines:
        logger.error("\n".join(lines))
        return ExitCode.FAILURE

    logger.info("Verified %d required variables", len(keys))
    return ExitCode.SUCCESS


def environment_verification_impl(registry: VariableRegistry, cancellation: asyncio.Event) -> ExitCode:
    return verify_environment(registry)


def create_environment_verification_tool(
    required: Sequence[str],
    name: str = "environment_verification",
    priority: int = ENVIRONMENT_VERIFICATION_PRIORITY,
) -> ToolDescriptor:
    """Verification tool with a fixed list of required keys."""
    keys = list(required)

    def execute(registry: VariableRegistry, cancellation: asyncio.Event) -> ExitCode:
        return verify_environment(registry, keys)

    return ToolDescriptor(name=name, execute=execute, priority=priority)


environment_verification_tool = ToolDescriptor(
    name="environment_verification",
    execute=environment_verification_impl,
    priority=ENVIRONMENT_VERIFICATION_PRIORITY,
)


__all__ = [
    "verify_environment",
    "required_keys",
    "environment_verification_impl",
    "environment_verification_tool",
    "create_environment_verification_tool",
    "ENVIRONMENT_VERIFICATION_PRIORITY",
]
