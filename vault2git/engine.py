"""
The replication engine: replays the Vault history of every mapped folder onto its Git branch, then recreates labels as tags.

Branches are processed one after the other, and versions within a branch one after the other. The checkpoint of a
branch is written after every version, so an interrupted or failed run resumes exactly where it stopped.
"""
from enum import Enum

from .composer import CommitComposer, parse_replicated_version
from .materializer import Materializer
from .models import BranchResult, Phase, ProgressEvent, RunResult, RunStatus
from .progress import Stopwatch
from .tags import TagSynchronizer
from .walker import walk_versions


class BranchState(Enum):
    IDLE = "idle"
    PULLING = "pulling"
    FINALIZING = "finalizing"
    DONE = "done"


class BranchRun:
    """
    Replication state of one branch: its state, the lazily walked versions and a cursor counting the versions consumed.
    """

    def __init__(self, mapping):
        self.mapping = mapping
        self.state = BranchState.IDLE
        self.versions = None
        self.cursor = 0
        self.cancelled = False
        self.result = BranchResult(branch=mapping.target_branch)

    @property
    def branch(self):
        return self.mapping.target_branch


class Processor:
    def __init__(
        self,
        source,
        repository,
        checkpoint_store,
        console,
        progress=None,
        skip_empty_commits=False,
        author_map=None,
        gc_interval=200,
        tagger_name="vault2git",
        tagger_email="vault2git@localhost",
    ):
        self.source = source
        self.repository = repository
        self.checkpoint_store = checkpoint_store
        self.console = console
        self.progress = progress
        self.gc_interval = gc_interval
        self.materializer = Materializer(source, repository.work_tree, console=console)
        self.composer = CommitComposer(repository, skip_empty_commits, author_map, console=console)
        self.tag_synchronizer = TagSynchronizer(repository, checkpoint_store, console, tagger_name, tagger_email)
        self._commits_since_gc = 0

    def _report(self, phase, elapsed_ms, version=None, branch=None):
        """
        This function sends a progress event and returns the cancellation flag (False without a progress callback).
        """
        if self.progress is None:
            return False
        return bool(self.progress(ProgressEvent(phase=phase, elapsed_ms=elapsed_ms, version=version, branch=branch)))

    def run(self, worklist, limit=None, create_tags=True):
        """
        This function replicates every branch of the worklist and, unless cancelled or disabled, creates tags from labels.

        Fatal errors (SourceUnavailable, CommitFailed) propagate immediately; no tag is created in that case.
        """
        self.repository.ensure_repository()

        results, cancelled = self.pull(worklist, limit)

        if cancelled:
            self.console.warning("Migration stopped on request; remaining branches and tag creation were skipped.")
            return RunResult(status=RunStatus.CANCELLED, branches=results)

        tags = self.create_tags_from_labels(worklist) if create_tags else None
        return RunResult(status=RunStatus.COMPLETED, branches=results, tags=tags)

    def pull(self, worklist, limit=None):
        """
        This function replicates the branches of the worklist in order.

        Returns (branch results, cancelled). On cancellation the branches after the current one are not touched.
        """
        results = []

        for mapping in worklist:
            branch_run = BranchRun(mapping)
            self.replicate_branch(branch_run, limit)
            results.append(branch_run.result)

            if branch_run.cancelled:
                return results, True

        return results, False

    def replicate_branch(self, branch_run, limit=None):
        handlers = {
            BranchState.IDLE: self._start,
            BranchState.PULLING: self._pull_next,
            BranchState.FINALIZING: self._finalize,
        }

        stopwatch = Stopwatch()
        while branch_run.state is not BranchState.DONE:
            handlers[branch_run.state](branch_run, limit, stopwatch)

        return branch_run.result

    def _start(self, branch_run, limit, stopwatch):
        mapping = branch_run.mapping

        self.console.separator("-")
        self.console.info(f"PROCESSING '{mapping.source_folder}' -> '{mapping.target_branch}'")
        self.console.separator("-")

        self.repository.switch_branch(branch_run.branch)
        checkpoint = self._reconcile_checkpoint(mapping)
        branch_run.result.last_version = checkpoint

        self.console.info(f"Resuming '{branch_run.branch}' after Vault version {checkpoint}.")
        branch_run.versions = walk_versions(self.source, mapping.source_folder, checkpoint, limit)

        branch_run.cancelled = self._report(Phase.INIT, stopwatch.restart(), branch=branch_run.branch)
        branch_run.state = BranchState.FINALIZING if branch_run.cancelled else BranchState.PULLING

    def _reconcile_checkpoint(self, mapping):
        """
        This function returns the resume point of a branch.

        A branch tip carrying a newer version than the stored checkpoint means the previous run stopped between the commit
        and the checkpoint write; the checkpoint is advanced to the tip so that version is not replicated twice.
        """
        branch = mapping.target_branch
        stored = self.checkpoint_store.get(branch)
        tip = self.repository.tip(branch)

        if tip:
            replicated = parse_replicated_version(self.repository.commit_message(tip), mapping.source_folder)

            if replicated is not None and replicated > stored:
                self.console.warning(
                    f"Checkpoint of '{branch}' ({stored}) is behind its tip (version {replicated}); advancing it."
                )
                self.checkpoint_store.commit(branch, replicated, tip)
                return replicated

        return stored

    def _pull_next(self, branch_run, limit, stopwatch):
        version = next(branch_run.versions, None)

        if version is None:
            branch_run.state = BranchState.FINALIZING
            return

        branch_run.cursor += 1
        mapping = branch_run.mapping

        self.console.progress(f"Fetching version {version.number} of '{mapping.source_folder}'...")
        self.materializer.materialize(mapping.source_folder, version.number)

        outcome = self.composer.compose(mapping, version)

        # Only reached once the commit exists; a failure above leaves the checkpoint on the previous version.
        self.checkpoint_store.commit(branch_run.branch, version.number, outcome.sha)
        branch_run.result.last_version = version.number

        if outcome.skipped:
            branch_run.result.skipped += 1
        else:
            branch_run.result.committed += 1
            self._commits_since_gc += 1

        cancel = self._report(Phase.VERSION, stopwatch.restart(), version=version.number, branch=branch_run.branch)

        if self.gc_interval and self._commits_since_gc >= self.gc_interval:
            self.repository.gc()
            self._commits_since_gc = 0
            cancel = self._report(Phase.GC, stopwatch.restart(), branch=branch_run.branch) or cancel

        if cancel:
            branch_run.cancelled = True
            branch_run.state = BranchState.FINALIZING

    def _finalize(self, branch_run, limit, stopwatch):
        self.repository.reset_work_tree(branch_run.branch)

        result = branch_run.result
        self.console.success(
            f"Branch '{result.branch}' is at Vault version {result.last_version} "
            f"({result.committed} committed, {result.skipped} skipped as empty)."
        )

        cancel = self._report(Phase.FINALIZE, stopwatch.restart(), branch=branch_run.branch)
        branch_run.cancelled = branch_run.cancelled or cancel
        branch_run.state = BranchState.DONE

    def create_tags_from_labels(self, worklist):
        """
        This function fetches the labels of every replicated folder and recreates them as tags.
        """
        stopwatch = Stopwatch()

        labels = []
        for mapping in worklist:
            labels.extend(self.source.labels(mapping.source_folder, mapping.target_branch))

        summary = self.tag_synchronizer.synchronize(labels)
        self._report(Phase.TAG_CREATION, stopwatch.elapsed_ms())
        return summary
