"""
Bootstrap launcher

- StagingDecision: where the run is staged
- PayloadAcquirer: fetcher bootstrap and payload install
- PayloadSupervisor: payload execution under the build timeout
- Launcher: the whole bootstrap run
"""

from .acquirer import PayloadAcquirer
from .launcher import Launcher
from .staging import EnvironmentStagingHint, StagingDecision, StagingHint
from .supervisor import PayloadSupervisor

__all__ = [
    "Launcher",
    "PayloadAcquirer",
    "PayloadSupervisor",
    "StagingDecision",
    "StagingHint",
    "EnvironmentStagingHint",
]
