"""Core functionality for git-branch-steward"""
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from git_branch_steward.config import Config
from git_branch_steward.logging_config import get_logger
from git_branch_steward.models import BranchSnapshot, ReconciliationResult
from git_branch_steward.presenters import Presenter
from git_branch_steward.services.branch_deleter import BranchDeleter
from git_branch_steward.services.cleanup_evaluator import CleanupEvaluator
from git_branch_steward.services.git import GitOperations
from git_branch_steward.services.github_service import GitHubService
from git_branch_steward.services.gone_detector import GoneDetector
from git_branch_steward.services.recovery_log import RecoveryLog
from git_branch_steward.services.repository_context import RepositoryContext
from git_branch_steward.services.rule_service import RuleService
from git_branch_steward.services.snapshot_builder import SnapshotBuilder
from git_branch_steward.services.state_store import StateStore

logger = get_logger(__name__)


class ReconciliationEngine:
    """Reconciles the branch lifecycle of one or more repositories.

    All mutable state (known-gone sets, debounce timers, per-repository
    services) lives on the instance and is keyed by repository path, so two
    engines, or two repositories in one engine, never share state.
    """

    def __init__(
        self,
        config: Union[Config, dict],
        presenter: Presenter,
        backend_factory: Callable[[str], GitOperations] = GitOperations,
        state_store: Optional[StateStore] = None,
        pr_provider_factory: Optional[Callable[[str], Optional[GitHubService]]] = None,
    ):
        """Initialize the engine.

        Args:
            config: Configuration dict or Config object
            presenter: Receives notifications and answers confirmation prompts
            backend_factory: Builds the git backend for a repository path
            state_store: Persistence for rules and recovery logs
            pr_provider_factory: Builds a PR status provider for a repository
                path; defaults to GitHub when a token is configured
        """
        self.config = Config.from_dict(config) if isinstance(config, dict) else config
        self.presenter = presenter
        self.backend_factory = backend_factory
        self.state_store = state_store or StateStore(self.config.state_path)
        self.pr_provider_factory = pr_provider_factory or self._default_pr_provider
        self._repositories: Dict[str, RepositoryContext] = {}

        self.gone_detector = GoneDetector(self.config, presenter, self.repository)
        self.cleanup_evaluator = CleanupEvaluator(self.config, presenter, self.repository)

    def _default_pr_provider(self, repo_path: str) -> Optional[GitHubService]:
        service = GitHubService(repo_path, self.config)
        return service if service.github_token else None

    def repository(self, repo_path: Union[str, Path]) -> RepositoryContext:
        """Services for ``repo_path``, created on first use."""
        key = str(repo_path)
        context = self._repositories.get(key)
        if context is None:
            backend = self.backend_factory(key)
            recovery_log = RecoveryLog(key, self.state_store, backend)
            context = RepositoryContext(
                repo_path=key,
                backend=backend,
                builder=SnapshotBuilder(backend, self.config),
                recovery_log=recovery_log,
                rules=RuleService(key, self.state_store),
                deleter=BranchDeleter(backend, recovery_log),
                github=self.pr_provider_factory(key),
            )
            self._repositories[key] = context
            logger.debug(f"Registered repository {key}")
        return context

    async def snapshots(self, repo_path: str) -> List[BranchSnapshot]:
        """Current classified snapshot set, worst health first."""
        return await self.repository(repo_path).snapshots()

    async def initialize(self, repo_paths: Iterable[str]) -> None:
        """Remember which branches are already gone so they are not reported."""
        await self.gone_detector.initialize([str(p) for p in repo_paths])

    async def reconcile(self, repo_path: str) -> ReconciliationResult:
        """Run one full pass: snapshot, gone detection, then rule cleanup.

        Both stages work from the same snapshot; branches the gone stage
        deleted are not offered again to the cleanup stage.
        """
        repo_path = str(repo_path)
        context = self.repository(repo_path)
        result = ReconciliationResult(snapshots=await context.snapshots())
        if not context.builder.available:
            logger.warning(f"Reconciliation of {repo_path} skipped: backend unavailable")
            return result

        result.newly_gone = await self.gone_detector.detect(repo_path, result.snapshots)
        result.gone_outcome = await self.gone_detector.handle(repo_path, result.newly_gone)

        remaining = result.snapshots
        if result.gone_outcome is not None and result.gone_outcome.deleted:
            deleted = set(result.gone_outcome.deleted)
            remaining = [b for b in remaining if b.name not in deleted]

        result.proposal = await self.cleanup_evaluator.propose(repo_path, remaining)
        result.cleanup_outcome = await self.cleanup_evaluator.handle(repo_path, result.proposal)
        return result

    def on_fetch_completed(self, repo_path: str) -> None:
        self.gone_detector.on_fetch_completed(str(repo_path))

    def on_event_triggered(self, repo_path: str, event: str = "fetch") -> None:
        self.cleanup_evaluator.on_event_triggered(str(repo_path), event)

    async def drain(self) -> None:
        """Wait for every pending and running debounced pass."""
        await self.gone_detector.drain()
        await self.cleanup_evaluator.drain()

    def close(self) -> None:
        """Cancel pending passes and release PR providers; running passes complete."""
        self.gone_detector.close()
        self.cleanup_evaluator.close()
        for context in self._repositories.values():
            context.close()
