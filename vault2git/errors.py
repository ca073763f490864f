"""
Error taxonomy of the migration.

Fatal conditions (configuration, source fetch, commit) halt the whole run. A tag conflict is reported and skipped.
Cancellation is not an error; it is returned as a run status.
"""


class Vault2GitError(Exception):
    """
    Base class for every error raised by the migration.
    """


class ConfigurationError(Vault2GitError):
    """
    Bad mapping syntax, unknown branch filter, missing or malformed setting. Raised before any replication begins.
    """


class SourceUnavailable(Vault2GitError):
    """
    The Vault server could not supply a version (network, authentication, missing version or folder, timeout).
    """


class CommitFailed(Vault2GitError):
    """
    The Git executable rejected a staging, commit or branch operation.
    """


class TagConflict(Vault2GitError):
    """
    A tag with the same name already exists and points at a different commit.
    """

    def __init__(self, tag_name, existing_sha, wanted_sha):
        super().__init__(f"Tag '{tag_name}' already points at {existing_sha[:10]}, not {wanted_sha[:10]}")
        self.tag_name = tag_name
        self.existing_sha = existing_sha
        self.wanted_sha = wanted_sha
