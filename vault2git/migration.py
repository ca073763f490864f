"""
Wiring of a complete migration run from its Settings.
"""
import time

from .checkpoints import CheckpointStore
from .composer import AuthorMap
from .config import check_work_tree_isolation
from .console import Console
from .engine import Processor
from .git import GitRepository
from .mapping import parse_mapping, resolve_worklist
from .progress import ProgressController, create_cancel_signal
from .vault import VaultClient


def build_worklist(settings):
    """
    This function resolves the branches to replicate. Raises ConfigurationError before anything touches Vault or Git.
    """
    return resolve_worklist(parse_mapping(settings.paths), settings.branches)


def run_migration(settings, console=None, source=None, repository=None):
    """
    This function runs one migration: every branch of the worklist is replicated, then labels are recreated as tags.

    'source' and 'repository' default to the Vault command-line client and the Git work tree named by the settings.
    """
    console = console or Console(enabled=settings.console_output)

    worklist = build_worklist(settings)
    check_work_tree_isolation(settings)
    author_map = AuthorMap.from_file(settings.git_domain_name, settings.authors_file)

    console.banner()
    console.separator()
    console.info("Vault2Git -- converting history from Vault repositories to Git")
    console.separator()

    if source is None:
        source = VaultClient(
            settings.vault_server,
            settings.vault_repository,
            settings.vault_user,
            settings.vault_password,
            vault_cmd=settings.vault_cmd,
            timeout=settings.vault_timeout,
            console=console,
        )

    if repository is None:
        repository = GitRepository(
            settings.working_folder, git_cmd=settings.git_cmd, timeout=settings.git_timeout, console=console
        )

    repository.ensure_repository()
    checkpoint_file = settings.checkpoint_file or repository.git_dir() / "vault2git" / "checkpoints.json"
    checkpoint_store = CheckpointStore(checkpoint_file)
    console.info(f"Checkpoints are kept in '{checkpoint_file}'.")

    cancel_signal = create_cancel_signal(settings.caps_lock)
    processor = Processor(
        source,
        repository,
        checkpoint_store,
        console,
        progress=ProgressController(console, cancel_signal),
        skip_empty_commits=settings.skip_empty_commits,
        author_map=author_map,
        gc_interval=settings.gc_interval,
        tagger_email=f"vault2git@{settings.git_domain_name}",
    )

    start_time = time.time()

    if cancel_signal is not None:
        cancel_signal.install()
    try:
        result = processor.run(worklist, limit=settings.limit, create_tags=not settings.ignore_labels)
    finally:
        if cancel_signal is not None:
            cancel_signal.restore()

    print_summary(console, result, time.time() - start_time)
    return result


def print_summary(console, result, total_time):
    console.separator()
    console.info("MIGRATION SUMMARY")
    console.separator()

    for branch in result.branches:
        console.info(
            f"• {branch.branch}: Vault version {branch.last_version}, "
            f"{branch.committed} committed, {branch.skipped} skipped as empty"
        )

    if result.tags is not None:
        console.info(
            f"• Tags: {result.tags.created} created, {result.tags.existing} already present, "
            f"{result.tags.skipped} skipped, {len(result.tags.conflicts)} conflicts"
        )

    console.info(f"• Status: {result.status.value}")
    console.info(f"• Total time: {total_time:.2f} seconds")
