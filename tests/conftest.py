"""Pytest fixtures for git-branch-steward tests"""
import asyncio
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Optional, Set

import pytest
import git

from git_branch_steward.config import Config
from git_branch_steward.core import ReconciliationEngine
from git_branch_steward.exceptions import GitOperationError
from git_branch_steward.models import BranchSnapshot, GoneAction
from git_branch_steward.services.git import RefMetadata
from git_branch_steward.services.state_store import StateStore

DAY = 86400


def make_snapshot(name: str, **kwargs) -> BranchSnapshot:
    """Build a snapshot with neutral defaults."""
    fields = dict(is_merged=False, is_current_branch=False, days_old=1)
    fields.update(kwargs)
    return BranchSnapshot(name=name, **fields)


class FakeBackend:
    """In-memory stand-in for GitOperations.

    ``branches`` maps a name to its attributes; ``failures`` maps an operation
    name (or ``"<operation>:<branch>"``) to the exception it should raise.
    """

    def __init__(self, repo_path: str = "/repo"):
        self.repo_path = repo_path
        self.branches: Dict[str, dict] = {}
        self.current: Optional[str] = "main"
        self.base = "main"
        self.merged: Set[str] = set()
        self.objects: Set[str] = set()
        self.user: Optional[str] = "Test User"
        self.failures: Dict[str, Exception] = {}
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._next_hash = 1

    def add_branch(self, name, days_old=1, author="Test User", upstream=None, gone=False,
                   merged=False, ahead=0, behind=0):
        commit_hash = f"{self._next_hash:040x}"
        self._next_hash += 1
        self.objects.add(commit_hash)
        self.branches[name] = dict(
            hash=commit_hash,
            timestamp=int(time.time()) - days_old * DAY - 60,
            author=author,
            upstream=upstream,
            gone=gone,
            ahead=ahead,
            behind=behind,
        )
        if merged:
            self.merged.add(name)
        return commit_hash

    def _check(self, operation, branch=None):
        self.calls.append(operation if branch is None else f"{operation}:{branch}")
        error = self.failures.get(f"{operation}:{branch}") or self.failures.get(operation)
        if error is not None:
            raise error

    async def list_branches(self):
        self._check("list_branches")
        return list(self.branches)

    async def current_branch(self):
        self._check("current_branch")
        return self.current

    async def base_branch(self, override=None):
        self._check("base_branch")
        return override or self.base

    async def merged_branches(self, base):
        self._check("merged_branches")
        return set(self.merged)

    async def ref_metadata(self):
        self._check("ref_metadata")
        return {
            name: RefMetadata(b["timestamp"], b["author"], b["upstream"], b["gone"])
            for name, b in self.branches.items()
        }

    async def branch_metadata(self, name):
        self._check("branch_metadata", name)
        b = self.branches[name]
        return RefMetadata(b["timestamp"], b["author"], b["upstream"], b["gone"])

    async def ahead_behind(self, base, branch):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            self._check("ahead_behind", branch)
            b = self.branches[branch]
            return b["ahead"], b["behind"]
        finally:
            self.in_flight -= 1

    async def commit_hash(self, branch):
        self._check("commit_hash", branch)
        if branch not in self.branches:
            raise GitOperationError("commit_hash", branch, "unknown revision")
        return self.branches[branch]["hash"]

    async def delete_branch(self, branch):
        self._check("delete_branch", branch)
        del self.branches[branch]
        self.merged.discard(branch)

    async def create_branch_at(self, branch, commit_hash):
        self._check("create_branch", branch)
        self.branches[branch] = dict(
            hash=commit_hash, timestamp=int(time.time()), author=self.user,
            upstream=None, gone=False, ahead=0, behind=0,
        )

    async def branch_exists(self, branch):
        return branch in self.branches

    async def object_exists(self, commit_hash):
        return commit_hash in self.objects

    async def user_name(self):
        self._check("user_name")
        return self.user

    async def remote_url(self):
        return None

    async def git_dir(self):
        self._check("git_dir")
        return f"{self.repo_path}/.git"


class RecordingPresenter:
    """Presenter that records every call and answers from preset values."""

    def __init__(self, gone_action=GoneAction.DISMISS, keep=None):
        self.gone_action = gone_action
        self.keep = keep  # names to select; None selects everything offered
        self.cancel = False
        self.messages: List[str] = []
        self.gone_prompts: List[List[str]] = []
        self.selections: List[List[str]] = []

    def notify(self, message):
        self.messages.append(message)

    def choose_gone_action(self, message, branches):
        self.gone_prompts.append([b.name for b in branches])
        return self.gone_action

    async def select_branches(self, title, branches):
        offered = [b.name for b in branches]
        self.selections.append(offered)
        if self.cancel:
            return None
        if self.keep is None:
            return offered
        return [name for name in offered if name in self.keep]


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def state_store(temp_dir):
    return StateStore(temp_dir / "state")


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def presenter():
    return RecordingPresenter()


@pytest.fixture
def config(temp_dir):
    return Config(debounce_seconds=0.05, state_dir=str(temp_dir / "state"))


@pytest.fixture
def make_engine(config, state_store):
    """Factory for engines whose repositories are FakeBackends."""
    engines = []

    def factory(presenter, backends=None, **overrides):
        backends = backends if backends is not None else {}
        engine_config = Config.from_dict({**config.to_dict(), **overrides})

        def backend_factory(repo_path):
            return backends.setdefault(repo_path, FakeBackend(repo_path))

        engine = ReconciliationEngine(
            engine_config,
            presenter,
            backend_factory=backend_factory,
            state_store=state_store,
            pr_provider_factory=lambda repo_path: None,
        )
        engines.append(engine)
        return engine

    yield factory
    for engine in engines:
        engine.close()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    repo = git.Repo.init(repo_path)

    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    repo.git.branch("-M", "main")

    yield repo

    repo.close()


@pytest.fixture
def git_repo_with_branches(git_repo):
    """Repository with an active, a merged and an unmerged-old branch."""
    repo = git_repo
    repo_path = Path(repo.working_dir)

    repo.git.checkout("-b", "feature/active")
    (repo_path / "feature.txt").write_text("Feature content\n")
    repo.index.add(["feature.txt"])
    repo.index.commit("Add feature")

    repo.git.checkout("main")
    repo.git.checkout("-b", "feature/to-merge")
    (repo_path / "merge.txt").write_text("Merge content\n")
    repo.index.add(["merge.txt"])
    repo.index.commit("Feature to merge")

    repo.git.checkout("main")
    repo.git.merge("feature/to-merge", "--no-ff", "-m", "Merge feature/to-merge")

    yield repo


@pytest.fixture
def git_repo_with_gone_branch(git_repo, temp_dir):
    """Clone with a local branch whose upstream was deleted and pruned."""
    origin = git_repo
    origin.git.branch("feature/gone")
    origin.git.branch("feature/kept")

    clone_path = temp_dir / "clone"
    clone = git.Repo.clone_from(origin.working_dir, clone_path)
    clone.config_writer().set_value("user", "name", "Test User").release()
    clone.config_writer().set_value("user", "email", "test@example.com").release()
    clone.git.branch("--track", "feature/gone", "origin/feature/gone")
    clone.git.branch("--track", "feature/kept", "origin/feature/kept")

    origin.git.branch("-D", "feature/gone")
    clone.git.fetch("--prune")

    yield clone

    clone.close()
