"""
vault2git - replays the history of SourceGear Vault folders onto Git branches.
"""
from .checkpoints import CheckpointStore
from .config import Settings, load_settings
from .engine import Processor
from .errors import CommitFailed, ConfigurationError, SourceUnavailable, TagConflict, Vault2GitError
from .mapping import parse_mapping, resolve_worklist
from .migration import run_migration
from .models import BranchMapping, Label, Phase, ProgressEvent, RunResult, RunStatus, SourceVersion

__version__ = "0.1.0"
__all__ = [
    "BranchMapping",
    "CheckpointStore",
    "CommitFailed",
    "ConfigurationError",
    "Label",
    "Phase",
    "Processor",
    "ProgressEvent",
    "RunResult",
    "RunStatus",
    "Settings",
    "SourceUnavailable",
    "SourceVersion",
    "TagConflict",
    "Vault2GitError",
    "load_settings",
    "parse_mapping",
    "resolve_worklist",
    "run_migration",
]
