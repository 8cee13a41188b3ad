"""Git operations service"""

import asyncio
from typing import Dict, List, NamedTuple, Optional, Set, Tuple

import git

from git_branch_steward.exceptions import BackendUnavailableError, GitOperationError
from git_branch_steward.logging_config import get_logger

logger = get_logger(__name__)

# Field separator for for-each-ref output; git expands %00 to NUL
_SEP = "\x00"
_METADATA_FORMAT = "%00".join(
    [
        "%(refname:short)",
        "%(committerdate:unix)",
        "%(authorname)",
        "%(upstream:short)",
        "%(upstream:track)",
    ]
)


class RefMetadata(NamedTuple):
    """Commit and tracking metadata of one local branch."""
    timestamp: int  # unix seconds, 0 = unknown
    author: Optional[str]
    upstream: Optional[str]
    gone: bool


def _describe_git_error(e: git.exc.GitCommandError) -> str:
    """Build a readable message from a GitCommandError."""
    command = e.command if isinstance(e.command, str) else " ".join(map(str, e.command))
    stderr = (e.stderr or "").strip()
    if stderr:
        return f"'{command}' failed (exit {e.status}): {stderr}"
    return f"'{command}' failed with exit code {e.status}"


def _parse_int(value: str) -> int:
    try:
        return int(value.strip())
    except (TypeError, ValueError):
        return 0


class GitOperations:
    """Async view of a repository, backed by GitPython.

    Every query runs ``git`` in a worker thread via ``asyncio.to_thread`` so the
    event loop never blocks on a subprocess. Failures surface as
    ``GitOperationError`` (or ``BackendUnavailableError`` when the repository
    itself cannot be opened); callers decide how to degrade.
    """

    def __init__(self, repo_path: str, remote_name: str = "origin"):
        self.repo_path = str(repo_path)
        self.remote_name = remote_name

    def _get_repo(self):
        """Get a thread-safe git.Repo instance.

        Creates a new repo instance for each call; GitPython repos are
        lightweight and a shared instance is not safe across threads.
        """
        return git.Repo(self.repo_path)

    def _git(self, operation: str, *args: str, branch: Optional[str] = None) -> str:
        """Run a git command synchronously and return its stripped stdout."""
        try:
            repo = self._get_repo()
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise BackendUnavailableError(operation, branch, f"not a git repository: {e}") from e

        try:
            return repo.git.execute(["git", *args])
        except git.exc.GitCommandError as e:
            raise GitOperationError(operation, branch, _describe_git_error(e)) from e
        finally:
            repo.close()

    async def _run(self, operation: str, *args: str, branch: Optional[str] = None) -> str:
        return await asyncio.to_thread(self._git, operation, *args, branch=branch)

    async def _succeeds(self, operation: str, *args: str, branch: Optional[str] = None) -> bool:
        """Run a yes-or-no git check; a non-zero exit means "no"."""
        try:
            await self._run(operation, *args, branch=branch)
            return True
        except BackendUnavailableError:
            raise
        except GitOperationError as e:
            logger.debug(f"{operation} check negative: {e}")
            return False

    async def list_branches(self) -> List[str]:
        """List local branch names.

        Raises:
            BackendUnavailableError: If branches cannot be listed
        """
        try:
            output = await self._run(
                "list_branches", "for-each-ref", "--format=%(refname:short)", "refs/heads/"
            )
        except BackendUnavailableError:
            raise
        except GitOperationError as e:
            raise BackendUnavailableError("list_branches", message=e.message) from e
        return [line.strip() for line in output.splitlines() if line.strip()]

    async def current_branch(self) -> Optional[str]:
        """Name of the checked-out branch, or None on a detached HEAD."""
        output = await self._run("current_branch", "branch", "--show-current")
        return output.strip() or None

    async def base_branch(self, override: Optional[str] = None) -> str:
        """Resolve the branch that merge state and ahead/behind are measured against.

        Order: explicit override, ``origin/HEAD``, ``origin/main`` or
        ``origin/master``, local ``main`` or ``master``, then ``main``.
        """
        if override:
            return override

        prefix = f"refs/remotes/{self.remote_name}/"
        try:
            head = await self._run("base_branch", "symbolic-ref", f"{prefix}HEAD")
            if head.startswith(prefix):
                return head[len(prefix):]
        except BackendUnavailableError:
            raise
        except GitOperationError as e:
            logger.debug(f"No {self.remote_name}/HEAD: {e}")

        for candidate in ("main", "master"):
            if await self._succeeds(
                "base_branch", "show-ref", "--verify", "--quiet", f"{prefix}{candidate}"
            ):
                return candidate

        for candidate in ("main", "master"):
            if await self.branch_exists(candidate):
                return candidate

        return "main"

    async def merged_branches(self, base: str) -> Set[str]:
        """Names of local branches whose tip is reachable from ``base``."""
        output = await self._run(
            "merged_branches", "branch", "--merged", base, "--format=%(refname:short)",
            branch=base,
        )
        return {line.strip() for line in output.splitlines() if line.strip()}

    async def ref_metadata(self) -> Dict[str, RefMetadata]:
        """Commit and tracking metadata for every local branch in one call."""
        output = await self._run(
            "ref_metadata", "for-each-ref", f"--format={_METADATA_FORMAT}", "refs/heads/"
        )
        metadata = {}
        for line in output.splitlines():
            parts = line.split(_SEP)
            if len(parts) < 5 or not parts[0]:
                continue
            name, timestamp, author, upstream, track = parts[:5]
            metadata[name] = RefMetadata(
                timestamp=_parse_int(timestamp),
                author=author or None,
                upstream=upstream or None,
                gone=track.strip() == "[gone]",
            )
        return metadata

    async def branch_metadata(self, name: str) -> RefMetadata:
        """Per-branch fallback for ``ref_metadata``.

        Reads the last commit with ``git log`` and the tracking configuration
        from ``branch.<name>.remote`` / ``branch.<name>.merge``. A configured
        upstream whose remote-tracking ref no longer exists is reported gone.
        """
        output = await self._run(
            "branch_metadata", "log", "-1", "--format=%ct%x00%an", f"refs/heads/{name}", "--",
            branch=name,
        )
        timestamp, _, author = output.partition(_SEP)

        upstream = None
        gone = False
        try:
            remote = await self._run(
                "branch_metadata", "config", "--get", f"branch.{name}.remote", branch=name
            )
            merge_ref = await self._run(
                "branch_metadata", "config", "--get", f"branch.{name}.merge", branch=name
            )
        except BackendUnavailableError:
            raise
        except GitOperationError:
            remote = merge_ref = ""

        if remote and merge_ref:
            remote_branch = merge_ref.replace("refs/heads/", "", 1)
            upstream = f"{remote}/{remote_branch}"
            if remote != ".":
                gone = not await self._succeeds(
                    "branch_metadata", "show-ref", "--verify", "--quiet",
                    f"refs/remotes/{upstream}", branch=name,
                )

        return RefMetadata(
            timestamp=_parse_int(timestamp),
            author=author.strip() or None,
            upstream=upstream,
            gone=gone,
        )

    async def ahead_behind(self, base: str, branch: str) -> Tuple[int, int]:
        """Return ``(ahead, behind)`` of ``branch`` relative to ``base``."""
        output = await self._run(
            "ahead_behind", "rev-list", "--left-right", "--count", f"{base}...{branch}",
            branch=branch,
        )
        behind, _, ahead = output.strip().partition("\t")
        return _parse_int(ahead), _parse_int(behind)

    async def commit_hash(self, branch: str) -> str:
        """Full SHA the branch currently points at."""
        output = await self._run(
            "commit_hash", "rev-parse", "--verify", f"refs/heads/{branch}^{{commit}}",
            branch=branch,
        )
        return output.strip()

    async def delete_branch(self, branch: str) -> None:
        """Force-delete a local branch."""
        await self._run("delete_branch", "branch", "-D", branch, branch=branch)
        logger.info(f"Deleted branch {branch}")

    async def create_branch_at(self, branch: str, commit_hash: str) -> None:
        """Create a local branch pointing at ``commit_hash``."""
        await self._run("create_branch", "branch", branch, commit_hash, branch=branch)
        logger.info(f"Created branch {branch} at {commit_hash[:12]}")

    async def branch_exists(self, branch: str) -> bool:
        return await self._succeeds(
            "branch_exists", "show-ref", "--verify", "--quiet", f"refs/heads/{branch}",
            branch=branch,
        )

    async def object_exists(self, commit_hash: str) -> bool:
        """True if the commit is still present in the object database."""
        return await self._succeeds("object_exists", "cat-file", "-e", f"{commit_hash}^{{commit}}")

    async def user_name(self) -> Optional[str]:
        """Configured ``user.name``, or None when unset."""
        try:
            output = await self._run("user_name", "config", "user.name")
        except BackendUnavailableError:
            raise
        except GitOperationError:
            return None
        return output.strip() or None

    async def git_dir(self) -> str:
        """Absolute path of the repository's git directory."""
        output = await self._run("git_dir", "rev-parse", "--absolute-git-dir")
        return output.strip()

    async def remote_url(self) -> Optional[str]:
        """URL of the configured remote, or None when it is not set."""
        try:
            output = await self._run(
                "remote_url", "config", "--get", f"remote.{self.remote_name}.url"
            )
        except BackendUnavailableError:
            raise
        except GitOperationError:
            return None
        return output.strip() or None
