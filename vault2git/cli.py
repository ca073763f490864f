"""
Command line of vault2git.
"""
import dataclasses
import sys

import click

from .config import load_settings
from .console import Console
from .errors import ConfigurationError, Vault2GitError
from .migration import run_migration

MAPPINGS_HELP = """\b
<mappings>:
   format   <vault_folder>~master;<vault_folder>~<git_branch_name>.
            If only <vault_folder> is specified, master is assumed.
"""


@click.command(epilog=MAPPINGS_HELP, context_settings={"help_option_names": ["--help"]})
@click.option("--limit", type=click.IntRange(min=0), default=None, metavar="<n>",
              help="Max number of versions to take from Vault for each branch (default=all).")
@click.option("--branch", "branches", multiple=True, metavar="<branch>",
              help="Process only this branch from the mappings (repeatable). Default=all branches.")
@click.option("--map", "mappings", default=None, metavar="<mappings>",
              help="Set Vault folder to branch mappings, overriding CONVERTOR_PATHS.")
@click.option("--skip-empty-commits", is_flag=True, help="Do not create empty commits in Git.")
@click.option("--ignore-labels", is_flag=True, help="Do not create Git tags from Vault labels.")
@click.option("--console-output", is_flag=True, help="Use console output (default=no output).")
@click.option("--caps-lock", is_flag=True,
              help="Allow stopping at the end of the current version with proper finalizers "
                   "(Caps Lock on Windows, Ctrl+C elsewhere).")
@click.option("--env-file", type=click.Path(dir_okay=False), default=None, help="Settings file (default=.env).")
def main(limit, branches, mappings, skip_empty_commits, ignore_labels, console_output, caps_lock, env_file):
    """vault2git -- converting history from Vault repositories to Git."""
    console = Console(enabled=console_output)

    try:
        settings = load_settings(env_file)
        overrides = {"console_output": console_output, "caps_lock": caps_lock, "branches": tuple(branches)}

        if limit is not None:
            overrides["limit"] = limit
        if mappings is not None:
            overrides["paths"] = mappings
        if skip_empty_commits:
            overrides["skip_empty_commits"] = True
        if ignore_labels:
            overrides["ignore_labels"] = True

        result = run_migration(dataclasses.replace(settings, **overrides), console=console)

    except ConfigurationError as e:
        console.error(str(e))
        console.error("Use vault2git --help to get additional info.")
        sys.exit(2)

    except Vault2GitError as e:
        console.error(f"Migration aborted: {e}")
        console.error("The checkpoints reflect every version committed so far; run the migration again to resume.")
        sys.exit(1)

    if result.cancelled:
        click.echo("[CANCELLED] Migration stopped on request. Run it again to resume.")


if __name__ == "__main__":
    main()
