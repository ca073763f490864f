"""
Branch mapping resolution: turns the configured 'folder~branch' table into the ordered worklist of a run.
"""
from .errors import ConfigurationError
from .models import BranchMapping

DEFAULT_BRANCH = "master"


def parse_mapping(text, default_branch=DEFAULT_BRANCH):
    """
    This function parses a mapping string of the form '<vault_folder>~<git_branch>;<vault_folder>~<git_branch>'.

    An entry without '~' maps the folder to the default branch.
    For example: '$/src/app~master;$/src/lib~dev' -> [BranchMapping('$/src/app', 'master'), BranchMapping('$/src/lib', 'dev')]
    """
    mappings = []
    seen_branches = set()

    for entry in (text or "").split(";"):
        entry = entry.strip()
        if not entry:
            continue

        parts = entry.split("~")
        if len(parts) > 2:
            raise ConfigurationError(f"Incorrect mapping '{entry}'. Use <vault_folder>~<git_branch>.")

        folder = parts[0].strip()
        branch = parts[1].strip() if len(parts) == 2 else default_branch

        if not folder:
            raise ConfigurationError(f"Mapping '{entry}' has no Vault folder.")
        if not branch:
            raise ConfigurationError(f"Mapping '{entry}' has no Git branch.")
        if branch in seen_branches:
            raise ConfigurationError(f"Git branch '{branch}' is mapped more than once.")

        seen_branches.add(branch)
        mappings.append(BranchMapping(source_folder=folder, target_branch=branch))

    if not mappings:
        raise ConfigurationError("No Vault folder to Git branch mapping is configured.")

    return mappings


def resolve_worklist(mappings, branch_filter=()):
    """
    This function returns the mappings to process, in mapping-table order.

    An empty filter selects every branch. A filter naming a branch absent from the table is a configuration error.
    """
    known_branches = [mapping.target_branch for mapping in mappings]
    unknown = [branch for branch in branch_filter if branch not in known_branches]

    if unknown:
        raise ConfigurationError(
            f"Unknown branch(es) {', '.join(unknown)}. Use one of: {', '.join(known_branches)}."
        )

    if not branch_filter:
        return list(mappings)

    wanted = set(branch_filter)
    return [mapping for mapping in mappings if mapping.target_branch in wanted]
