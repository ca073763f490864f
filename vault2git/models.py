"""
Value types shared by the replication components.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class BranchMapping:
    source_folder: str
    target_branch: str


@dataclass(frozen=True)
class FileOperation:
    path: str
    change_kind: str


@dataclass(frozen=True)
class SourceVersion:
    """
    One version of a Vault folder, as reported by its version history.
    """
    number: int
    author: str
    timestamp: datetime
    comment: str = ""
    txid: Optional[int] = None
    file_operations: tuple = ()


@dataclass(frozen=True)
class Label:
    name: str
    target_branch: str
    version: int


class Phase(Enum):
    INIT = "init"
    VERSION = "version"
    GC = "gc"
    FINALIZE = "finalize"
    TAG_CREATION = "tag_creation"


@dataclass(frozen=True)
class ProgressEvent:
    """
    A unit of work reported to the progress controller. 'version' is only set for Phase.VERSION events.
    """
    phase: Phase
    elapsed_ms: int
    version: Optional[int] = None
    branch: Optional[str] = None


class RunStatus(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class BranchResult:
    branch: str
    committed: int = 0
    skipped: int = 0
    last_version: int = 0


@dataclass
class TagSummary:
    created: int = 0
    existing: int = 0
    skipped: int = 0
    conflicts: list = field(default_factory=list)


@dataclass
class RunResult:
    status: RunStatus
    branches: list = field(default_factory=list)
    tags: Optional[TagSummary] = None

    @property
    def cancelled(self):
        return self.status is RunStatus.CANCELLED
