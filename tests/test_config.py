"""Tests for settings loading."""

from pathlib import Path

import pytest

from vault2git.config import Settings, check_work_tree_isolation, load_settings
from vault2git.errors import ConfigurationError


def write_env(path: Path, **values: str) -> Path:
    path.write_text("".join(f"{name}={value}\n" for name, value in values.items()))
    return path


REQUIRED = {"VAULT_SERVER": "vault.example.com", "VAULT_REPOSITORY": "Main", "VAULT_USER": "migration"}


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_defaults(self, temp_dir: Path) -> None:
        env_file = write_env(temp_dir / "settings.env", **REQUIRED)

        settings = load_settings(str(env_file))

        assert settings.vault_server == "vault.example.com"
        assert settings.vault_repository == "Main"
        assert settings.vault_user == "migration"
        assert settings.vault_password == ""
        assert settings.vault_cmd == "vault"
        assert settings.git_domain_name == "localhost"
        assert settings.gc_interval == 200
        assert Path(settings.working_folder).resolve() == (temp_dir / "vault2git-repo").resolve()
        assert settings.env_file == str(env_file)
        assert not settings.skip_empty_commits
        assert not settings.ignore_labels
        assert settings.limit == 0
        assert settings.branches == ()

    def test_all_values(self, temp_dir: Path) -> None:
        env_file = write_env(
            temp_dir / "settings.env",
            **REQUIRED,
            VAULT_PASSWORD="secret",
            VAULT_CMD="C:/Vault/vault.exe",
            VAULT_TIMEOUT="600",
            GIT_CMD="/usr/local/bin/git",
            GIT_TIMEOUT="120",
            GIT_DOMAIN_NAME="example.com",
            AUTHORS_FILE="authors.json",
            CONVERTOR_PATHS="$/src/app~master;$/src/lib~dev",
            WORKING_FOLDER="/tmp/target",
            CHECKPOINT_FILE="/tmp/checkpoints.json",
            GIT_GC_INTERVAL="50",
            SKIP_EMPTY_COMMITS="yes",
            IGNORE_LABELS="True",
        )

        settings = load_settings(str(env_file))

        assert settings == Settings(
            vault_server="vault.example.com",
            vault_repository="Main",
            vault_user="migration",
            vault_password="secret",
            vault_cmd="C:/Vault/vault.exe",
            vault_timeout=600,
            git_cmd="/usr/local/bin/git",
            git_timeout=120,
            git_domain_name="example.com",
            authors_file="authors.json",
            paths="$/src/app~master;$/src/lib~dev",
            working_folder="/tmp/target",
            checkpoint_file="/tmp/checkpoints.json",
            gc_interval=50,
            skip_empty_commits=True,
            ignore_labels=True,
            env_file=str(env_file),
        )

    def test_dotenv_in_current_directory(self, temp_dir: Path) -> None:
        env_file = write_env(temp_dir / ".env", **REQUIRED, CONVERTOR_PATHS="$/app")

        settings = load_settings()

        assert settings.paths == "$/app"
        assert Path(settings.env_file).resolve() == env_file.resolve()

    def test_environment_wins_over_file(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        env_file = write_env(temp_dir / "settings.env", **REQUIRED)
        monkeypatch.setenv("VAULT_USER", "operator")

        assert load_settings(str(env_file)).vault_user == "operator"

    def test_missing_env_file(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigurationError, match="does not exist"):
            load_settings(str(temp_dir / "missing.env"))

    def test_missing_required_values(self, temp_dir: Path) -> None:
        env_file = write_env(temp_dir / "settings.env", VAULT_SERVER="vault.example.com")

        with pytest.raises(ConfigurationError, match="VAULT_REPOSITORY, VAULT_USER"):
            load_settings(str(env_file))

    @pytest.mark.parametrize("value", ["many", "1.5", "-1"])
    def test_invalid_integer(self, temp_dir: Path, value: str) -> None:
        env_file = write_env(temp_dir / "settings.env", **REQUIRED, GIT_GC_INTERVAL=value)

        with pytest.raises(ConfigurationError, match="GIT_GC_INTERVAL"):
            load_settings(str(env_file))

    def test_invalid_boolean(self, temp_dir: Path) -> None:
        env_file = write_env(temp_dir / "settings.env", **REQUIRED, SKIP_EMPTY_COMMITS="maybe")

        with pytest.raises(ConfigurationError, match="SKIP_EMPTY_COMMITS"):
            load_settings(str(env_file))

    def test_zero_gc_interval_disables_gc(self, temp_dir: Path) -> None:
        env_file = write_env(temp_dir / "settings.env", **REQUIRED, GIT_GC_INTERVAL="0")

        assert load_settings(str(env_file)).gc_interval == 0


class TestCheckWorkTreeIsolation:
    """Tests for check_work_tree_isolation()."""

    @pytest.fixture
    def work_tree_path(self, temp_dir: Path) -> Path:
        path = temp_dir / "repo"
        (path / ".git").mkdir(parents=True)
        return path

    def test_separate_files_are_accepted(self, temp_dir: Path, work_tree_path: Path) -> None:
        settings = Settings(
            "vault.example.com",
            "Main",
            "migration",
            working_folder=str(work_tree_path),
            env_file=str(temp_dir / ".env"),
            authors_file=str(temp_dir / "authors.json"),
            checkpoint_file=str(temp_dir / "checkpoints.json"),
        )

        check_work_tree_isolation(settings)

    def test_checkpoint_under_git_directory_is_accepted(self, work_tree_path: Path) -> None:
        settings = Settings(
            "vault.example.com",
            "Main",
            "migration",
            working_folder=str(work_tree_path),
            checkpoint_file=str(work_tree_path / ".git" / "vault2git" / "checkpoints.json"),
        )

        check_work_tree_isolation(settings)

    @pytest.mark.parametrize(
        "field, label",
        [("env_file", "Settings file"), ("authors_file", "AUTHORS_FILE"), ("checkpoint_file", "CHECKPOINT_FILE")],
    )
    def test_file_inside_work_tree_is_rejected(self, work_tree_path: Path, field: str, label: str) -> None:
        settings = Settings(
            "vault.example.com",
            "Main",
            "migration",
            working_folder=str(work_tree_path),
            **{field: str(work_tree_path / "nested" / "file")},
        )

        with pytest.raises(ConfigurationError, match=label):
            check_work_tree_isolation(settings)

    def test_relative_work_tree_holding_dotenv_is_rejected(self, temp_dir: Path) -> None:
        env_file = write_env(temp_dir / ".env", **REQUIRED, WORKING_FOLDER=".")

        with pytest.raises(ConfigurationError, match="inside the Git work tree"):
            check_work_tree_isolation(load_settings())

        assert env_file.exists()
