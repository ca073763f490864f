"""
Changeset materializer: puts the complete tree of one Vault version into the Git work tree.
"""
import os
import shutil
import sys

from .errors import SourceUnavailable

# Git metadata survives every clean-up of the work tree.
PRESERVED_ENTRIES = {".git"}


def clean_work_tree(work_tree):
    """
    This function removes all content from the work tree while preserving the '.git' entry.

    Creates a "clean slate" so that after the Vault download the work tree contains exactly and only what exists in the current version.
    Returns the number of removed top-level entries.
    """
    items_removed = 0

    for item in os.listdir(work_tree):
        if item in PRESERVED_ENTRIES:
            continue

        item_path = os.path.join(work_tree, item)

        if os.path.isdir(item_path) and not os.path.islink(item_path):
            shutil.rmtree(item_path, **RMTREE_ERROR_HANDLER)
        else:
            _remove_file(item_path)

        items_removed += 1

    return items_removed


def _remove_file(path):
    try:
        os.remove(path)
    except PermissionError:
        # Vault marks files read-only unless they are checked out.
        os.chmod(path, 0o666)
        os.remove(path)


def _make_writable_and_retry(function, path, exc_info):
    os.chmod(path, 0o777)
    function(path)


# 'onerror' is deprecated from Python 3.12 on in favour of 'onexc'.
RMTREE_ERROR_HANDLER = (
    {"onexc": _make_writable_and_retry} if sys.version_info >= (3, 12) else {"onerror": _make_writable_and_retry}
)


class Materializer:
    def __init__(self, source, work_tree, console=None):
        self.source = source
        self.work_tree = os.fspath(work_tree)
        self.console = console

    def materialize(self, folder, version):
        """
        This function retrieves the full tree of 'folder' as of 'version' into the work tree (full checkout, never a diff).

        Raises SourceUnavailable when the tree cannot be retrieved. Failures while clearing the work tree surface the same way, since the tree would be incomplete.
        """
        try:
            removed = clean_work_tree(self.work_tree)
        except OSError as e:
            raise SourceUnavailable(f"Could not clear the work tree '{self.work_tree}' before version {version}: {e}")

        if self.console:
            self.console.debug(f"Removed {removed} entries from the work tree before fetching version {version}.")

        self.source.get_version(folder, version, self.work_tree)
