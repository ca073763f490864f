"""
Commit composer: turns a materialized Vault version into a Git commit.
"""
import json
import re
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError

TRAILER_KEY = "git-vault-id"
TRAILER_PATTERN = re.compile(
    rf"^{TRAILER_KEY}: (?P<folder>.+)@(?P<version>\d+)(?:/(?P<txid>\d+))?\s*$", re.MULTILINE
)
AUTHOR_PATTERN = re.compile(r"^\s*(?P<name>.*?)\s*<(?P<email>[^>]*)>\s*$")


@dataclass(frozen=True)
class CommitOutcome:
    version: int
    sha: Optional[str]
    skipped: bool = False


def build_commit_message(folder, version):
    """
    This function builds the commit message of a replicated version: the Vault comment followed by a trailer naming the Vault folder, version and transaction.

    For example:
        Fixed the build

        git-vault-id: $/src/app@12/3481
    """
    comment = (version.comment or "").strip() or f"Vault version {version.number}"
    trailer = f"{TRAILER_KEY}: {folder}@{version.number}"

    if version.txid is not None:
        trailer += f"/{version.txid}"

    return f"{comment}\n\n{trailer}\n"


def parse_replicated_version(message, folder=None):
    """
    This function extracts the Vault version number from a replicated commit message, or returns None.

    With 'folder', only a trailer naming that Vault folder counts.
    """
    matches = [
        match for match in TRAILER_PATTERN.finditer(message or "")
        if folder is None or match.group("folder") == folder
    ]
    return int(matches[-1].group("version")) if matches else None


def format_git_date(timestamp):
    # Naive timestamps are interpreted by git in the local time zone, which is how Vault reports them.
    return timestamp.isoformat(timespec="seconds")


class AuthorMap:
    """
    Translates Vault logins into Git identities.

    The optional authors file is a JSON object such as {"jdoe": "John Doe <john.doe@example.com>"}.
    Logins absent from it become 'login <login@domain>'.
    """

    def __init__(self, domain_name="localhost", authors=None):
        self.domain_name = domain_name
        self.authors = {login.lower(): identity for login, identity in (authors or {}).items()}

    @classmethod
    def from_file(cls, domain_name, authors_file=None):
        if not authors_file:
            return cls(domain_name)

        try:
            with open(authors_file, "r", encoding="utf-8") as f:
                authors = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Could not read the authors file '{authors_file}': {e}")

        if not isinstance(authors, dict):
            raise ConfigurationError(f"The authors file '{authors_file}' must contain a JSON object.")

        return cls(domain_name, authors)

    def translate(self, login):
        """
        This function returns (name, email) for a Vault login. 'DOMAIN\\user' logins use the part after the backslash.
        """
        login = (login or "").strip()
        user = login.split("\\")[-1] or "unknown"

        identity = self.authors.get(login.lower()) or self.authors.get(user.lower())

        if identity:
            match = AUTHOR_PATTERN.match(identity)
            if match:
                return match.group("name") or user, match.group("email")
            return identity.strip(), f"{user}@{self.domain_name}"

        return user, f"{user}@{self.domain_name}"


class CommitComposer:
    def __init__(self, repository, skip_empty_commits=False, author_map=None, console=None):
        self.repository = repository
        self.skip_empty_commits = skip_empty_commits
        self.author_map = author_map or AuthorMap()
        self.console = console

    def compose(self, mapping, version):
        """
        This function stages the materialized tree and commits it onto the mapping's branch.

        With 'skip_empty_commits', a version that leaves the tree unchanged produces no commit (skipped=True).
        Git failures raise CommitFailed.
        """
        branch = mapping.target_branch

        if self.console and version.file_operations:
            self._describe_operations(version)

        self.repository.stage_all()

        if self.skip_empty_commits and not self.repository.has_staged_changes(branch):
            if self.console:
                self.console.info(f"Version {version.number} of '{mapping.source_folder}' changes nothing; no commit created.")
            return CommitOutcome(version=version.number, sha=None, skipped=True)

        name, email = self.author_map.translate(version.author)
        sha = self.repository.commit(
            branch,
            build_commit_message(mapping.source_folder, version),
            author_name=name,
            author_email=email,
            date=format_git_date(version.timestamp),
            allow_empty=not self.skip_empty_commits,
        )

        if self.console:
            self.console.success(f"Committed version {version.number} onto '{branch}' as {sha[:10]}.")

        return CommitOutcome(version=version.number, sha=sha)

    def _describe_operations(self, version):
        counts = Counter(operation.change_kind.lower() for operation in version.file_operations)
        summary = ", ".join(f"{kind}: {count}" for kind, count in sorted(counts.items()))
        self.console.info(f"Version {version.number} by {version.author}: {len(version.file_operations)} operations ({summary}).")
