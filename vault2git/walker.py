"""
History walker: the versions of a Vault folder still to replicate onto a branch.
"""


def walk_versions(source, folder, checkpoint, limit=None):
    """
    This function lazily yields the versions of 'folder' numbered in (checkpoint, checkpoint + limit], in ascending order.

    Gaps in Vault version numbers are passed through unchanged, so fewer than 'limit' versions may be yielded.
    A 'limit' of 0 or None means no upper bound. The Vault history is only queried once iteration starts.
    """
    upper_bound = checkpoint + limit if limit else None
    previous = checkpoint

    history = source.version_history(folder, checkpoint + 1)

    for version in sorted(history, key=lambda v: v.number):
        # Duplicates and anything at or below the checkpoint are already replicated.
        if version.number <= previous:
            continue

        if upper_bound is not None and version.number > upper_bound:
            break

        previous = version.number
        yield version
