"""
Tag synchronizer: recreates Vault labels as Git tags once every branch has been replicated.
"""
import re

import tqdm

from .errors import TagConflict
from .models import TagSummary

INVALID_REF_CHARACTERS = re.compile(r"[\s~^:?*\[\\\x00-\x1f\x7f]")


def label_to_tag_name(label_name):
    """
    This function converts a Vault label name into a valid Git tag name (e.g., 'Release 1.0: final' -> 'Release_1.0_final').
    """
    name = INVALID_REF_CHARACTERS.sub("_", label_name.strip())
    name = name.replace("@{", "@_")

    while ".." in name:
        name = name.replace("..", ".")
    while "//" in name:
        name = name.replace("//", "/")

    name = re.sub(r"_+", "_", name)
    name = "/".join(part.lstrip(".") for part in name.split("/"))
    name = name.lstrip("-.").rstrip("/.")

    while name.endswith(".lock"):
        name = name[: -len(".lock")].rstrip("/.")

    return "" if name == "@" else name


class TagSynchronizer:
    def __init__(self, repository, checkpoint_store, console, tagger_name="vault2git", tagger_email="vault2git@localhost"):
        self.repository = repository
        self.checkpoint_store = checkpoint_store
        self.console = console
        self.tagger_name = tagger_name
        self.tagger_email = tagger_email

    def resolve_commit(self, label):
        """
        This function finds the commit that replicated the label's (branch, version) pair, or returns None.

        A version skipped as empty left the branch on the commit of the highest replicated version below it, so that commit is used.
        """
        if label.version > self.checkpoint_store.get(label.target_branch):
            return None

        commits = self.checkpoint_store.commits(label.target_branch)
        candidates = [version for version in commits if version <= label.version]

        return commits[max(candidates)] if candidates else None

    def synchronize(self, labels):
        """
        This function creates a tag for every label whose version was replicated.

        Unreplicated labels and invalid names are skipped with a warning. A tag that already exists at another commit is a conflict:
        it is reported and left untouched, and the remaining labels are still processed.
        """
        summary = TagSummary()

        self.console.info(f"Creating Git tags from {len(labels)} Vault labels...")

        for label in tqdm.tqdm(labels, desc="Creating tags", disable=not self.console.enabled):
            sha = self.resolve_commit(label)

            if sha is None:
                self.console.warning(
                    f"Skipping label '{label.name}': version {label.version} was never replicated on '{label.target_branch}'."
                )
                summary.skipped += 1
                continue

            tag_name = label_to_tag_name(label.name)

            if not tag_name or not self.repository.is_valid_tag_name(tag_name):
                self.console.warning(f"Skipping label '{label.name}': no valid Git tag name can be derived from it.")
                summary.skipped += 1
                continue

            try:
                created = self.repository.create_tag(
                    tag_name, sha, f"{label.name}\n", self.tagger_name, self.tagger_email
                )

            except TagConflict as conflict:
                self.console.warning(f"Tag conflict for label '{label.name}': {conflict}. The existing tag is left untouched.")
                summary.conflicts.append(conflict)
                continue

            if created:
                summary.created += 1
                self.console.success(f"Created tag '{tag_name}' at {sha[:10]} ({label.target_branch}@{label.version}).")
            else:
                summary.existing += 1
                self.console.info(f"Tag '{tag_name}' already points at {sha[:10]}.")

        return summary
