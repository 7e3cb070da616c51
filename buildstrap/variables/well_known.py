"""
Catalog of the variables buildstrap itself reads or produces.

Keys of configuration-backed variables follow the dotted ``section.field``
naming of the Config model.
"""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class VariableDescription:
    name: str
    key: str
    description: str


class WellKnownVariables:
    SOURCE_ROOT = "source.root"
    BRANCH_NAME = "source.branch_name"
    ARTIFACTS_PATH = "artifacts.path"
    ARTIFACTS_DIR = "build.artifacts_dir"
    CLEANUP_ARTIFACTS_BEFORE_BUILD = "build.cleanup_artifacts_before_build"
    REQUIRED_VARIABLES = "build.required_variables"
    ALLOW_PRERELEASE = "payload.allow_prerelease"
    PAYLOAD_VERSION = "payload.version"
    PAYLOAD_SOURCE = "payload.source"
    PAYLOAD_NO_CACHE = "payload.no_cache"
    BUILD_TIMEOUT_SECONDS = "launcher.build_timeout_seconds"
    EXIT_DELAY_MILLISECONDS = "launcher.exit_delay_milliseconds"
    KILL_SPAWNED_PROCESSES = "launcher.kill_spawned_processes"
    DIRECTORY_CLONE_ENABLED = "launcher.directory_clone_enabled"
    FETCHER_CUSTOM_PATH = "fetcher.custom_path"
    FETCHER_DOWNLOAD_URI = "fetcher.download_uri"


_DESCRIPTIONS = {
    "SOURCE_ROOT": "Root directory of the source tree",
    "BRANCH_NAME": "Branch name of the build",
    "ARTIFACTS_PATH": "Resolved artifacts directory",
    "ARTIFACTS_DIR": "Configured artifacts directory",
    "CLEANUP_ARTIFACTS_BEFORE_BUILD": "Empty the artifacts directory before building",
    "REQUIRED_VARIABLES": "Variables the environment verification requires",
    "ALLOW_PRERELEASE": "Allow prerelease payload versions",
    "PAYLOAD_VERSION": "Pinned payload version",
    "PAYLOAD_SOURCE": "Payload package source repository",
    "PAYLOAD_NO_CACHE": "Bypass the fetcher package cache",
    "BUILD_TIMEOUT_SECONDS": "Payload process timeout in seconds",
    "EXIT_DELAY_MILLISECONDS": "Delay before the launcher exits",
    "KILL_SPAWNED_PROCESSES": "Kill spawned processes when the build times out",
    "DIRECTORY_CLONE_ENABLED": "Allow cloning the source tree to temporary storage",
    "FETCHER_CUSTOM_PATH": "User specified fetcher executable",
    "FETCHER_DOWNLOAD_URI": "Fetcher download URI override",
}

ALL_VARIABLES: List[VariableDescription] = [
    VariableDescription(name=name, key=getattr(WellKnownVariables, name), description=description)
    for name, description in _DESCRIPTIONS.items()
]


def find_well_known(key: str) -> Optional[VariableDescription]:
    """Look up a variable description by key, case-insensitively."""
    normalized = key.strip().casefold()
    for description in ALL_VARIABLES:
        if description.key.casefold() == normalized:
            return description
    return None
