"""
Access to the target Git repository through the git executable.
"""
import os
import subprocess
from pathlib import Path

from .errors import CommitFailed, TagConflict


class GitRepository:
    def __init__(self, work_tree, git_cmd="git", timeout=None, console=None, runner=subprocess.run):
        self.work_tree = Path(work_tree)
        self.git_cmd = git_cmd
        self.timeout = timeout or None
        self.console = console
        self._runner = runner

    def _run(self, args, stdin=None, env=None, check=True):
        """
        This function runs a git command inside the work tree.

        With 'check', a non-zero exit code raises CommitFailed; otherwise the caller inspects the return code.
        """
        cmd = [self.git_cmd] + args

        if self.console:
            self.console.debug(f"Executing the following command: git {' '.join(args)}")

        try:
            result = self._runner(
                cmd,
                cwd=self.work_tree,
                input=stdin,
                capture_output=True,
                text=True,
                env={**os.environ, **env} if env else None,
                timeout=self.timeout,
                # Own session: a Ctrl+C on the terminal reaches only vault2git, which stops between versions.
                start_new_session=True,
            )

        except FileNotFoundError:
            raise CommitFailed(f"Git executable '{self.git_cmd}' is not installed or not in PATH")

        except subprocess.TimeoutExpired:
            raise CommitFailed(f"'git {' '.join(args)}' timed out after {self.timeout} seconds")

        if check and result.returncode != 0:
            error_msg = (result.stderr or result.stdout or "").strip() or "Unknown error"
            raise CommitFailed(f"'git {' '.join(args)}' failed: {error_msg}")

        return result

    def ensure_repository(self):
        """
        This function initializes the work tree as a Git repository unless it already is one.
        """
        self.work_tree.mkdir(parents=True, exist_ok=True)
        result = self._run(["rev-parse", "--git-dir"], check=False)

        if result.returncode != 0:
            if self.console:
                self.console.info(f"Initializing a new Git repository in '{self.work_tree}'...")
            self._run(["init", "--quiet"])

    def git_dir(self):
        path = Path(self._run(["rev-parse", "--git-dir"]).stdout.strip())
        return path if path.is_absolute() else self.work_tree / path

    def tip(self, branch):
        """
        This function returns the commit a branch points at, or None for a branch without commits.
        """
        result = self._run(["rev-parse", "--verify", "--quiet", f"refs/heads/{branch}^{{commit}}"], check=False)
        return result.stdout.strip() if result.returncode == 0 else None

    def switch_branch(self, branch):
        """
        This function makes 'branch' the current branch.

        A branch that does not exist yet is created unborn (no commits); its first replicated version becomes its root commit.
        """
        if self.tip(branch):
            self._run(["checkout", "--force", "--quiet", branch])
        else:
            self._run(["symbolic-ref", "HEAD", f"refs/heads/{branch}"])

    def stage_all(self):
        self._run(["add", "--all", "--force", "."])

    def has_staged_changes(self, branch):
        """
        This function checks whether the index differs from the tip of 'branch' (or holds any file when the branch has no commits).
        """
        if not self.tip(branch):
            return bool(self._run(["ls-files", "--cached"]).stdout.strip())

        result = self._run(["diff", "--cached", "--quiet", "HEAD", "--"], check=False)

        if result.returncode not in (0, 1):
            error_msg = (result.stderr or "").strip() or "Unknown error"
            raise CommitFailed(f"'git diff --cached' failed: {error_msg}")

        return result.returncode == 1

    def commit(self, branch, message, author_name, author_email, date, allow_empty=False):
        """
        This function commits the index on the current branch and returns the new commit sha.

        Author and committer both carry the Vault user and check-in date.
        """
        env = {
            "GIT_AUTHOR_NAME": author_name,
            "GIT_AUTHOR_EMAIL": author_email,
            "GIT_AUTHOR_DATE": date,
            "GIT_COMMITTER_NAME": author_name,
            "GIT_COMMITTER_EMAIL": author_email,
            "GIT_COMMITTER_DATE": date,
        }

        args = ["-c", "commit.gpgsign=false", "commit", "--quiet", "--no-verify", "--cleanup=verbatim", "--file=-"]
        if allow_empty:
            args.append("--allow-empty")

        self._run(args, stdin=message, env=env)

        sha = self.tip(branch)
        if not sha:
            raise CommitFailed(f"Branch '{branch}' has no tip after committing")
        return sha

    def commit_message(self, ref):
        return self._run(["log", "-1", "--format=%B", ref]).stdout

    def tag_target(self, name):
        result = self._run(["rev-parse", "--verify", "--quiet", f"refs/tags/{name}^{{commit}}"], check=False)
        return result.stdout.strip() if result.returncode == 0 else None

    def is_valid_tag_name(self, name):
        return self._run(["check-ref-format", f"refs/tags/{name}"], check=False).returncode == 0

    def create_tag(self, name, sha, message, tagger_name, tagger_email):
        """
        This function creates an annotated tag pointing at 'sha'.

        Returns False when the tag already points at 'sha'. Raises TagConflict when it points elsewhere; the existing tag is never moved.
        """
        existing = self.tag_target(name)

        if existing == sha:
            return False

        if existing:
            raise TagConflict(name, existing, sha)

        env = {"GIT_COMMITTER_NAME": tagger_name, "GIT_COMMITTER_EMAIL": tagger_email}
        self._run(["-c", "tag.gpgsign=false", "tag", "--annotate", name, sha, "--file=-"], stdin=message, env=env)
        return True

    def gc(self):
        self._run(["gc", "--auto", "--quiet"])

    def reset_work_tree(self, branch):
        """
        This function makes the work tree and index match the tip of 'branch' exactly.
        """
        if self.tip(branch):
            self._run(["reset", "--hard", "--quiet"])
        else:
            self._run(["read-tree", "--empty"])
        self._run(["clean", "-d", "-x", "--force", "--quiet"])
