"""
Settings of a migration, read from the environment and an optional .env file.

Example .env:
    VAULT_SERVER=vault.example.com
    VAULT_REPOSITORY=Main
    VAULT_USER=migration
    VAULT_PASSWORD=secret
    CONVERTOR_PATHS=$/src/app~master;$/src/lib~dev
    GIT_DOMAIN_NAME=example.com
"""
import os
from dataclasses import dataclass, field

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigurationError

# Work tree used when WORKING_FOLDER is not set, relative to the current directory.
DEFAULT_WORKING_FOLDER = "vault2git-repo"

TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class Settings:
    vault_server: str
    vault_repository: str
    vault_user: str
    vault_password: str = ""
    vault_cmd: str = "vault"
    vault_timeout: int = 0
    git_cmd: str = "git"
    git_timeout: int = 0
    git_domain_name: str = "localhost"
    authors_file: str = ""
    paths: str = ""
    working_folder: str = DEFAULT_WORKING_FOLDER
    checkpoint_file: str = ""
    gc_interval: int = 200
    skip_empty_commits: bool = False
    ignore_labels: bool = False
    console_output: bool = False
    caps_lock: bool = False
    limit: int = 0
    branches: tuple = field(default_factory=tuple)
    env_file: str = ""


def _get_int(name, default):
    value = os.getenv(name)

    if value is None or not value.strip():
        return default

    try:
        number = int(value)
    except ValueError:
        raise ConfigurationError(f"Incorrect {name} ({value}). Use integer.")

    if number < 0:
        raise ConfigurationError(f"Incorrect {name} ({value}). Use a value >= 0.")
    return number


def _get_bool(name, default=False):
    value = os.getenv(name)

    if value is None:
        return default

    value = value.strip().lower()

    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigurationError(f"Incorrect {name} ({value}). Use true or false.")


def load_settings(env_file=None):
    """
    This function loads the migration settings.

    Values already present in the environment win over the .env file. A missing Vault server, repository or user is a configuration error.
    """
    if env_file:
        if not os.path.isfile(env_file):
            raise ConfigurationError(f"Settings file '{env_file}' does not exist.")
    else:
        # The .env file is looked up from the current directory upwards, not from the package location.
        env_file = find_dotenv(usecwd=True)

    if env_file:
        load_dotenv(env_file)

    missing = [name for name in ("VAULT_SERVER", "VAULT_REPOSITORY", "VAULT_USER") if not os.getenv(name)]
    if missing:
        raise ConfigurationError(f"Missing setting(s): {', '.join(missing)}.")

    return Settings(
        vault_server=os.getenv("VAULT_SERVER"),
        vault_repository=os.getenv("VAULT_REPOSITORY"),
        vault_user=os.getenv("VAULT_USER"),
        vault_password=os.getenv("VAULT_PASSWORD", ""),
        vault_cmd=os.getenv("VAULT_CMD") or "vault",
        vault_timeout=_get_int("VAULT_TIMEOUT", 0),
        git_cmd=os.getenv("GIT_CMD") or "git",
        git_timeout=_get_int("GIT_TIMEOUT", 0),
        git_domain_name=os.getenv("GIT_DOMAIN_NAME") or "localhost",
        authors_file=os.getenv("AUTHORS_FILE", ""),
        paths=os.getenv("CONVERTOR_PATHS", ""),
        working_folder=os.getenv("WORKING_FOLDER") or os.path.join(os.getcwd(), DEFAULT_WORKING_FOLDER),
        checkpoint_file=os.getenv("CHECKPOINT_FILE", ""),
        gc_interval=_get_int("GIT_GC_INTERVAL", 200),
        skip_empty_commits=_get_bool("SKIP_EMPTY_COMMITS"),
        ignore_labels=_get_bool("IGNORE_LABELS"),
        env_file=os.path.abspath(env_file) if env_file else "",
    )


def _is_inside(path, directory):
    path = os.path.realpath(path)
    directory = os.path.realpath(directory)

    try:
        return os.path.commonpath([path, directory]) == directory
    except ValueError:
        # Different drives on Windows.
        return False


def check_work_tree_isolation(settings):
    """
    This function rejects settings whose files live inside the Git work tree.

    The work tree is emptied before every Vault version, so the .env, authors and checkpoint files would be deleted.
    Files under the work tree's '.git' directory are safe.
    """
    work_tree = settings.working_folder
    git_dir = os.path.join(work_tree, ".git")

    files = (
        ("Settings file", settings.env_file),
        ("AUTHORS_FILE", settings.authors_file),
        ("CHECKPOINT_FILE", settings.checkpoint_file),
    )

    for description, path in files:
        if path and _is_inside(path, work_tree) and not _is_inside(path, git_dir):
            raise ConfigurationError(
                f"{description} '{path}' is inside the Git work tree '{work_tree}', which is cleared for every Vault version. "
                f"Set WORKING_FOLDER to a dedicated folder."
            )
