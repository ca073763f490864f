"""
Checkpoint store: per Git branch, the last Vault version replicated and the commit produced for each replicated version.

The table lives in a single JSON file:
    {"branches": {"master": {"last_version": 7, "commits": {"3": "<sha>", "7": "<sha>"}}}}

Every update rewrites the file through a temporary file + os.replace(), so a crash leaves either the old or the new table on disk.
"""
import json
import os
import tempfile


class CheckpointStore:
    def __init__(self, path):
        self.path = os.fspath(path)
        self._branches = self._load()

    def _load(self):
        if not os.path.exists(self.path):
            return {}

        with open(self.path, "r", encoding="utf-8") as state_file:
            data = json.load(state_file)

        branches = {}
        for branch, entry in data.get("branches", {}).items():
            branches[branch] = {
                "last_version": int(entry.get("last_version", 0)),
                "commits": {int(version): sha for version, sha in entry.get("commits", {}).items()},
            }
        return branches

    def get(self, branch):
        """
        This function returns the last replicated version of a branch (0 when the branch was never replicated).
        """
        entry = self._branches.get(branch)
        return entry["last_version"] if entry else 0

    def commits(self, branch):
        """
        This function returns the replicated history of a branch as {version: commit sha}, for versions that produced a commit.
        """
        entry = self._branches.get(branch)
        return dict(entry["commits"]) if entry else {}

    def branches(self):
        return list(self._branches)

    def commit(self, branch, version, sha=None):
        """
        This function records 'version' as replicated on 'branch' and persists the table before returning.

        Recording the current version again is a no-op (apart from filling in a missing sha). A lower version is rejected.
        """
        if version < 0:
            raise ValueError(f"Version must be >= 0, got {version}")

        current = self.get(branch)

        if version < current:
            raise ValueError(f"Checkpoint of '{branch}' cannot move back from {current} to {version}")

        entry = self._branches.get(branch)

        if version == current and entry is not None:
            if sha is None or entry["commits"].get(version) == sha:
                return
            entry["commits"][version] = sha

        else:
            entry = self._branches.setdefault(branch, {"last_version": 0, "commits": {}})
            entry["last_version"] = version
            if sha is not None:
                entry["commits"][version] = sha

        self._save()

    def _save(self):
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)

        data = {
            "branches": {
                branch: {
                    "last_version": entry["last_version"],
                    "commits": {str(version): sha for version, sha in sorted(entry["commits"].items())},
                }
                for branch, entry in self._branches.items()
            }
        }

        # The temporary file sits next to the target so that os.replace() stays on one filesystem.
        descriptor, temp_path = tempfile.mkstemp(prefix=".checkpoints-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(descriptor, "w", encoding="utf-8") as temp_file:
                json.dump(data, temp_file, indent=4)
                temp_file.flush()
                os.fsync(temp_file.fileno())
            os.replace(temp_path, self.path)

        except BaseException:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

        self._sync_directory(directory)

    @staticmethod
    def _sync_directory(directory):
        # Directories cannot be opened for fsync on Windows.
        if os.name == "nt":
            return

        fd = os.open(directory, os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
