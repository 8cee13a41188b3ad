"""Tests for GitHubService"""
import asyncio
from datetime import datetime
from unittest.mock import Mock, patch

import pytest

from git_branch_steward.services.github_service import GitHubService, parse_github_repo


@pytest.fixture
def mock_config():
    return {"github_token": "test_token"}


def make_pr(number, created, state="open", merged=False, draft=False):
    pr = Mock()
    pr.number = number
    pr.created_at = created
    pr.state = state
    pr.merged = merged
    pr.draft = draft
    pr.title = f"PR {number}"
    pr.html_url = f"https://github.com/test/repo/pull/{number}"
    return pr


def enabled_service(config):
    service = GitHubService("/repo", config)
    service.github_repo = "test/repo"
    service.gh_repo = Mock()
    service.github_enabled = True
    return service


class TestParseGithubRepo:
    def test_ssh_url(self):
        """Test parsing an SSH remote URL."""
        assert parse_github_repo("git@github.com:test/repo.git") == "test/repo"

    def test_https_url(self):
        """Test parsing an HTTPS remote URL with and without .git."""
        assert parse_github_repo("https://github.com/test/repo.git") == "test/repo"
        assert parse_github_repo("https://github.com/test/repo") == "test/repo"

    def test_other_hosts(self):
        """Non-GitHub remotes are not parsed."""
        assert parse_github_repo("git@gitlab.com:test/repo.git") is None
        assert parse_github_repo("") is None


class TestGitHubServiceInit:
    """Test GitHubService initialization."""

    def test_token_from_config(self, mock_config):
        """Test initialization with token from config."""
        service = GitHubService("/repo", mock_config)
        assert service.github_token == "test_token"

    @patch.dict('os.environ', {'GITHUB_TOKEN': 'env_token'})
    def test_token_from_env(self):
        """Test initialization with token from environment."""
        service = GitHubService("/repo", {"github_token": None})
        assert service.github_token == "env_token"


class TestGitHubServiceSetup:
    """Test GitHub API setup."""

    def test_setup_with_github_url(self, mock_config):
        """Setup with GitHub url."""
        service = GitHubService("/repo", mock_config)

        with patch('git_branch_steward.services.github_service.Github') as mock_github_class:
            mock_gh = Mock()
            mock_github_class.return_value = mock_gh
            mock_gh.get_repo.return_value = Mock()

            service.setup_github_api("git@github.com:test/repo.git")

            assert service.github_repo == "test/repo"
            assert service.github_enabled is True
            mock_gh.get_repo.assert_called_once_with("test/repo")

    def test_non_github_remote_stays_disabled(self, mock_config):
        """Non GitHub remote stays disabled."""
        service = GitHubService("/repo", mock_config)
        with patch('git_branch_steward.services.github_service.Github') as mock_github_class:
            service.setup_github_api("https://example.com/test/repo.git")
            mock_github_class.assert_not_called()
        assert service.github_enabled is False

    def test_api_failure_stays_disabled(self, mock_config):
        """Api failure stays disabled."""
        service = GitHubService("/repo", mock_config)
        with patch('git_branch_steward.services.github_service.Github') as mock_github_class:
            mock_github_class.return_value.get_repo.side_effect = Exception("Bad credentials")
            service.setup_github_api("https://github.com/test/repo.git")
        assert service.github_enabled is False
        assert service.get_bulk_pr_status(["feature/x"]) == {}


class TestPRStatus:
    def test_latest_pr_wins(self, mock_config):
        """The newest pull request for a branch is reported."""
        service = enabled_service(mock_config)
        service.gh_repo.get_pulls.return_value = [
            make_pr(1, datetime(2024, 1, 1), state="closed", merged=True),
            make_pr(2, datetime(2024, 2, 1)),
        ]

        statuses = service.get_bulk_pr_status(["feature/x"])

        assert statuses["feature/x"].number == 2
        assert statuses["feature/x"].state == "open"
        service.gh_repo.get_pulls.assert_called_once_with(state="all", head="test:feature/x")

    def test_merged_and_draft_states(self, mock_config):
        """Merged and draft states."""
        service = enabled_service(mock_config)
        prs = {
            "test:merged": [make_pr(3, datetime(2024, 1, 1), state="closed", merged=True)],
            "test:draft": [make_pr(4, datetime(2024, 1, 1), draft=True)],
            "test:none": [],
        }
        service.gh_repo.get_pulls.side_effect = lambda state, head: prs[head]

        statuses = service.get_bulk_pr_status(["merged", "draft", "none"])

        assert statuses["merged"].state == "merged"
        assert statuses["draft"].state == "draft"
        assert "none" not in statuses

    def test_lookup_error_skips_branch(self, mock_config):
        """Lookup error skips branch."""
        service = enabled_service(mock_config)
        service.gh_repo.get_pulls.side_effect = Exception("rate limited")
        assert service.get_bulk_pr_status(["feature/x"]) == {}

    def test_async_wrapper(self, mock_config):
        """get_pr_statuses runs the bulk lookup off the event loop."""
        service = enabled_service(mock_config)
        service.gh_repo.get_pulls.return_value = [make_pr(5, datetime(2024, 1, 1))]
        statuses = asyncio.run(service.get_pr_statuses(["feature/x"]))
        assert statuses["feature/x"].url.endswith("/5")

    def test_close_disables(self, mock_config):
        """Closing releases the client and disables lookups."""
        service = enabled_service(mock_config)
        client = Mock()
        service.github = client
        service.close()
        client.close.assert_called_once()
        assert service.github_enabled is False
