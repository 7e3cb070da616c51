"""
Launcher input models.

StartOptions is what the command line hands to the launcher; StagingLocation
is the working root the launcher picks for a run.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StartOptions(BaseModel):
    """Launcher start options (already parsed)."""

    model_config = ConfigDict(frozen=True)

    base_dir: Optional[str] = Field(
        default=None,
        description="Base directory override; used verbatim when it exists",
    )
    prerelease_enabled: Optional[bool] = Field(
        default=None,
        description="Allow prerelease payload versions (unset defers to configuration)",
    )
    branch_name: Optional[str] = Field(
        default=None,
        description="Branch name override",
    )

    @field_validator("base_dir", "branch_name")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def existing_base_dir(self) -> Optional[Path]:
        """The base directory override, if it names an existing directory."""
        if self.base_dir and Path(self.base_dir).is_dir():
            return Path(self.base_dir)
        return None


@dataclass(frozen=True)
class StagingLocation:
    """Working root of a run.

    Ephemeral locations are fresh clones in temporary storage and are never
    reused across runs.
    """

    path: Path
    ephemeral: bool = False

    @property
    def build_dir(self) -> Path:
        return self.path / "build"
