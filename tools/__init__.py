"""
buildstrap build tools

Generic pipeline steps shipped with buildstrap:
- artifact_cleanup (priority 41): empty the artifacts directory before the build
- environment_verification (priority 51): fail on missing required variables
"""

from typing import List

from buildstrap.models import ToolDescriptor

from .artifact_cleanup import (
    ARTIFACT_CLEANUP_PRIORITY,
    artifact_cleanup_impl,
    artifact_cleanup_tool,
)

from .environment_verification import (
    ENVIRONMENT_VERIFICATION_PRIORITY,
    create_environment_verification_tool,
    environment_verification_impl,
    environment_verification_tool,
    verify_environment,
)


def default_tools() -> List[ToolDescriptor]:
    """Tool factory list in registration order."""
    return [
        artifact_cleanup_tool,
        environment_verification_tool,
    ]


__all__ = [
    "default_tools",
    "ARTIFACT_CLEANUP_PRIORITY",
    "artifact_cleanup_impl",
    "artifact_cleanup_tool",
    "ENVIRONMENT_VERIFICATION_PRIORITY",
    "create_environment_verification_tool",
    "environment_verification_impl",
    "environment_verification_tool",
    "verify_environment",
]
