"""Pytest configuration and fixtures."""

import subprocess
import tempfile
from collections.abc import Generator
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from vault2git.checkpoints import CheckpointStore
from vault2git.console import Console
from vault2git.errors import SourceUnavailable
from vault2git.git import GitRepository
from vault2git.models import FileOperation, Label, SourceVersion

SETTING_NAMES = (
    "VAULT_SERVER",
    "VAULT_REPOSITORY",
    "VAULT_USER",
    "VAULT_PASSWORD",
    "VAULT_CMD",
    "VAULT_TIMEOUT",
    "GIT_CMD",
    "GIT_TIMEOUT",
    "GIT_DOMAIN_NAME",
    "AUTHORS_FILE",
    "CONVERTOR_PATHS",
    "WORKING_FOLDER",
    "CHECKPOINT_FILE",
    "GIT_GC_INTERVAL",
    "SKIP_EMPTY_COMMITS",
    "IGNORE_LABELS",
)


class FakeVault:
    """In-memory stand-in for the Vault client: versions, trees and labels per folder."""

    def __init__(self) -> None:
        self.versions: dict[str, list[SourceVersion]] = {}
        self.trees: dict[tuple[str, int], dict[str, str]] = {}
        self.folder_labels: dict[str, list[tuple[str, int]]] = {}
        self.unavailable: set[tuple[str, int]] = set()
        self.history_calls: list[tuple[str, int]] = []
        self.get_calls: list[tuple[str, int]] = []

    def add_version(
        self,
        folder: str,
        number: int,
        files: dict[str, str],
        author: str = "jdoe",
        comment: str = "",
        operations: tuple[tuple[str, str], ...] = (),
    ) -> SourceVersion:
        version = SourceVersion(
            number=number,
            author=author,
            timestamp=datetime(2011, 3, 14, 14, 0, 0) + timedelta(minutes=number),
            comment=comment or f"Change {number}",
            txid=1000 + number,
            file_operations=tuple(FileOperation(path, kind) for path, kind in operations),
        )
        self.versions.setdefault(folder, []).append(version)
        self.trees[(folder, number)] = dict(files)
        return version

    def add_label(self, folder: str, name: str, version: int) -> None:
        self.folder_labels.setdefault(folder, []).append((name, version))

    def version_history(self, folder: str, begin_version: int = 1) -> list[SourceVersion]:
        self.history_calls.append((folder, begin_version))
        return [v for v in self.versions.get(folder, []) if v.number >= begin_version]

    def get_version(self, folder: str, version: int, destination: str) -> None:
        self.get_calls.append((folder, version))
        if (folder, version) in self.unavailable:
            raise SourceUnavailable(f"Version {version} of {folder} is not available")
        for relative_path, content in self.trees[(folder, version)].items():
            path = Path(destination) / relative_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)

    def labels(self, folder: str, target_branch: str) -> list[Label]:
        return [
            Label(name=name, target_branch=target_branch, version=version)
            for name, version in self.folder_labels.get(folder, [])
        ]


def git(repo_path: Path, *args: str) -> str:
    """Run a git command in a test repository and return its stdout."""
    result = subprocess.run(
        ["git", *args], cwd=repo_path, check=True, capture_output=True, text=True
    )
    return result.stdout.strip()


@pytest.fixture
def temp_dir() -> Generator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def work_tree(temp_dir: Path) -> Path:
    """Create an initialized, empty Git work tree."""
    path = temp_dir / "target"
    path.mkdir()
    subprocess.run(["git", "init", "--quiet"], cwd=path, check=True, capture_output=True)
    return path


@pytest.fixture
def repository(work_tree: Path) -> GitRepository:
    return GitRepository(work_tree)


@pytest.fixture
def checkpoint_store(temp_dir: Path) -> CheckpointStore:
    return CheckpointStore(temp_dir / "state" / "checkpoints.json")


@pytest.fixture
def fake_vault() -> FakeVault:
    return FakeVault()


@pytest.fixture
def console() -> Console:
    return Console(enabled=False)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, temp_dir: Path) -> None:
    """Keep the user's git configuration and any migration settings out of the tests."""
    global_config = temp_dir / "gitconfig"
    global_config.write_text(
        "[user]\n\tname = Test User\n\temail = test@test.com\n[init]\n\tdefaultBranch = main\n"
    )
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(temp_dir))

    # Setting before deleting makes monkeypatch remove values a test's .env file loads.
    for name in SETTING_NAMES + ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)

    monkeypatch.chdir(temp_dir)
