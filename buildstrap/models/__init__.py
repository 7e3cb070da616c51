"""
buildstrap data models

- ExitCode: binary build outcome
- BuildVariable: one configuration entry with its provider origin
- StartOptions / StagingLocation: launcher input and working root
- ToolDescriptor: a registered build step
"""

from .exit_code import ExitCode
from .options import StagingLocation, StartOptions
from .tool import DEFAULT_PRIORITY, ToolDescriptor
from .variable import BuildVariable

__all__ = [
    "ExitCode",
    "BuildVariable",
    "StartOptions",
    "StagingLocation",
    "ToolDescriptor",
    "DEFAULT_PRIORITY",
]
