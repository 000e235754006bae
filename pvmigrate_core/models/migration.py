# coding=utf-8
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pvmigrate_core import constants
from pvmigrate_core.models.volume import VolumeDescriptor, VolumeReference


@dataclass(frozen=True)
class Options:
    delete_extraneous_files: bool = False
    ignore_mounted: bool = False
    preserve_ownership: bool = True
    key_algorithm: str = constants.DEFAULT_KEY_ALGORITHM
    strategies: Tuple[str, ...] = ()
    rsync_image: str = constants.DEFAULT_RSYNC_IMAGE
    sshd_image: str = constants.DEFAULT_SSHD_IMAGE
    source_create_policy: bool = False
    dest_create_policy: bool = False
    pod_ready_timeout: float = constants.POD_READY_TIMEOUT_SEC
    address_timeout: float = constants.ADDRESS_TIMEOUT_SEC
    job_timeout: float = constants.JOB_COMPLETION_TIMEOUT_SEC
    deletion_timeout: float = constants.DELETION_TIMEOUT_SEC
    poll_interval: float = constants.POLL_INTERVAL_SEC


@dataclass(frozen=True)
class MigrationRequest:
    source: VolumeReference
    dest: VolumeReference
    options: Options = field(default_factory=Options)


@dataclass(frozen=True)
class ResolvedRequest:
    """A request whose volumes have been looked up for one migration attempt."""
    source: VolumeDescriptor
    dest: VolumeDescriptor
    options: Options


@dataclass
class StrategyOutcome:
    strategy: str
    skipped: bool = False
    error: Optional[Exception] = None

    def __str__(self):
        if self.skipped:
            return f"{self.strategy}: skipped: not applicable"
        return f"{self.strategy}: failed: {type(self.error).__name__}: {self.error}"


@dataclass
class MigrationSummary:
    instance_id: str
    strategy: str
    outcomes: List[StrategyOutcome] = field(default_factory=list)
