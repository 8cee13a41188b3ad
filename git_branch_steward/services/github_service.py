"""GitHub pull request status provider"""
import asyncio
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional, List, Dict, Tuple, TYPE_CHECKING, Union
from urllib.parse import urlparse
from github import Auth, Github

from git_branch_steward.logging_config import get_logger
from git_branch_steward.models import PRStatus

if TYPE_CHECKING:
    from github.Repository import Repository
    from git_branch_steward.config import Config

logger = get_logger(__name__)

# Cap concurrent API calls to stay friendly with rate limits
MAX_PR_WORKERS = 10


def parse_github_repo(remote_url: str) -> Optional[str]:
    """Return ``org/repo`` for a GitHub remote URL, or None for other hosts."""
    if not remote_url or "github.com" not in remote_url:
        return None

    if remote_url.startswith("git@"):
        # SSH URL format (git@github.com:org/repo.git)
        path = remote_url.split("github.com:", 1)[1]
    else:
        # HTTPS URL format (https://github.com/org/repo.git)
        path = urlparse(remote_url).path
    path = path.strip("/")

    if path.endswith(".git"):
        path = path[:-4]
    return path or None


class GitHubService:
    """Looks up pull requests for the branches of one repository.

    Entirely optional: without a token or a GitHub remote the service stays
    disabled and every lookup returns nothing.
    """

    def __init__(self, repo_path: str, config: Union['Config', dict]):
        self.repo_path = repo_path
        self.config = config
        self.github_token = config.get("github_token") or os.environ.get("GITHUB_TOKEN")
        self.github_repo: Optional[str] = None
        self.github_enabled = False
        self.github: Optional[Github] = None
        self.gh_repo: Optional['Repository'] = None

    def setup_github_api(self, remote_url: Optional[str]) -> None:
        """Connect to the repository behind ``remote_url``; failures leave the service disabled."""
        self.github_repo = parse_github_repo(remote_url or "")
        if self.github_repo is None:
            logger.debug("[GitHub] Not a GitHub repository")
            return

        if not self.github_token:
            logger.debug("[GitHub] No GitHub token found. PR status disabled")
            return

        try:
            self.github = Github(auth=Auth.Token(self.github_token))
            self.gh_repo = self.github.get_repo(self.github_repo)
            self.github_enabled = True
            logger.debug(f"[GitHub] GitHub integration enabled for: {self.github_repo}")
        except Exception as e:
            logger.debug(f"[GitHub] Failed to setup GitHub API: {e}")
            self.github_enabled = False

    def _fetch_branch_pr(self, branch_name: str) -> Tuple[str, Optional[PRStatus]]:
        """Newest pull request whose head is ``branch_name``."""
        try:
            org_name = self.github_repo.split("/")[0]
            pulls = list(self.gh_repo.get_pulls(state="all", head=f"{org_name}:{branch_name}"))
            if not pulls:
                return branch_name, None

            latest = max(pulls, key=lambda pr: pr.created_at)
            if latest.merged:
                state = "merged"
            elif latest.state == "open" and getattr(latest, "draft", False):
                state = "draft"
            else:
                state = latest.state
            return branch_name, PRStatus(
                number=latest.number,
                state=state,
                title=latest.title,
                url=latest.html_url,
            )
        except Exception as e:
            logger.debug(f"[GitHub] Error fetching PRs for branch {branch_name}: {e}")
            return branch_name, None

    def get_bulk_pr_status(self, branch_names: List[str]) -> Dict[str, PRStatus]:
        """PR status for many branches, fetched in parallel threads."""
        if not self.github_enabled or self.gh_repo is None or not branch_names:
            return {}

        result = {}
        max_workers = min(MAX_PR_WORKERS, len(branch_names))
        logger.debug(f"[GitHub] Fetching PR data for {len(branch_names)} branches")
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(self._fetch_branch_pr, name) for name in branch_names]
            for future in as_completed(futures):
                branch_name, status = future.result()
                if status is not None:
                    result[branch_name] = status

        logger.debug(f"[GitHub] Found PRs for {len(result)} branches")
        return result

    async def get_pr_statuses(self, branch_names: List[str]) -> Dict[str, PRStatus]:
        return await asyncio.to_thread(self.get_bulk_pr_status, branch_names)

    def close(self) -> None:
        if self.github is not None:
            try:
                self.github.close()
            except Exception as e:
                logger.debug(f"[GitHub] Error closing client: {e}")
            self.github = None
            self.github_enabled = False
