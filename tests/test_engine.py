"""Tests for full reconciliation passes"""
import asyncio

from git_branch_steward.config import Config
from git_branch_steward.core import ReconciliationEngine
from git_branch_steward.exceptions import BackendUnavailableError
from git_branch_steward.models import GoneAction, RuleConditions
from git_branch_steward.presenters import AutoApprovePresenter
from git_branch_steward.services.state_store import StateStore
from tests.conftest import FakeBackend, RecordingPresenter

REPO = "/repo"


def make_backends():
    backend = FakeBackend(REPO)
    backend.add_branch("gone/merged", days_old=40, merged=True, upstream="origin/gone/merged", gone=True)
    backend.add_branch("merged/local", days_old=40, merged=True)
    backend.add_branch("active", days_old=2, upstream="origin/active")
    return {REPO: backend}


class TestReconcile:
    def test_gone_stage_runs_before_cleanup(self, make_engine):
        """Gone stage runs before cleanup."""
        backends = make_backends()
        presenter = RecordingPresenter(gone_action=GoneAction.CLEAN_ALL)
        engine = make_engine(presenter, backends)
        engine.repository(REPO).rules.add("merged", RuleConditions(merged=True))

        result = asyncio.run(engine.reconcile(REPO))

        assert [b.name for b in result.newly_gone] == ["gone/merged"]
        assert result.gone_outcome.deleted == ["gone/merged"]
        # Already deleted by the gone stage, so only the other merged branch is offered
        assert result.proposal.candidate_names == ["merged/local"]
        assert result.cleanup_outcome.deleted == ["merged/local"]
        assert sorted(result.deleted) == ["gone/merged", "merged/local"]
        assert list(backends[REPO].branches) == ["active"]

    def test_snapshot_sorted_worst_first(self, make_engine, presenter):
        """Snapshot sorted worst first."""
        engine = make_engine(presenter, make_backends())
        result = asyncio.run(engine.reconcile(REPO))
        scores = [b.health_score for b in result.snapshots]
        assert scores == sorted(scores)

    def test_unavailable_backend_yields_empty_result(self, make_engine, presenter):
        """Unavailable backend yields empty result."""
        backends = make_backends()
        backends[REPO].failures["list_branches"] = BackendUnavailableError("list_branches")
        engine = make_engine(presenter, backends)

        result = asyncio.run(engine.reconcile(REPO))

        assert result.snapshots == []
        assert result.newly_gone == []
        assert result.deleted == []
        assert presenter.gone_prompts == []

    def test_recovery_log_allows_undo(self, make_engine):
        """Recovery log allows undo."""
        backends = make_backends()
        engine = make_engine(RecordingPresenter(gone_action=GoneAction.CLEAN_ALL), backends)
        asyncio.run(engine.reconcile(REPO))

        restored = asyncio.run(engine.repository(REPO).recovery_log.undo_last())

        assert restored.branch_name == "gone/merged"
        assert "gone/merged" in backends[REPO].branches


class TestIsolation:
    def test_engines_do_not_share_state(self, make_engine, presenter):
        """Engines do not share state."""
        first = make_engine(presenter, make_backends())
        second = make_engine(presenter, make_backends())

        asyncio.run(first.gone_detector.detect(REPO))

        assert first.gone_detector.known_gone == {REPO: {"gone/merged"}}
        assert second.gone_detector.known_gone == {}
        assert first.repository(REPO) is not second.repository(REPO)

    def test_repository_context_is_cached(self, make_engine, presenter):
        """Repository context is cached."""
        engine = make_engine(presenter, make_backends())
        assert engine.repository(REPO) is engine.repository(REPO)


def test_dict_config_and_default_store(temp_dir):
    """Dict config and default store."""
    engine = ReconciliationEngine(
        {"stale_days": 10, "state_dir": str(temp_dir / "state")},
        AutoApprovePresenter(),
        backend_factory=FakeBackend,
        pr_provider_factory=lambda repo_path: None,
    )
    assert isinstance(engine.config, Config)
    assert engine.config.stale_days == 10
    assert isinstance(engine.state_store, StateStore)
    assert engine.state_store.state_dir == temp_dir / "state"
    engine.close()


def test_github_provider_only_with_token(temp_dir, monkeypatch):
    """GitHub provider only with token."""
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    engine = ReconciliationEngine(
        Config(state_dir=str(temp_dir)), AutoApprovePresenter(), backend_factory=FakeBackend
    )
    assert engine.repository(REPO).github is None

    engine = ReconciliationEngine(
        Config(state_dir=str(temp_dir), github_token="token"), AutoApprovePresenter(),
        backend_factory=FakeBackend,
    )
    assert engine.repository(REPO).github.github_token == "token"
