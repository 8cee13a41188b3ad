"""Per-repository JSON state: cleanup rules and the recovery log."""
import json
import hashlib
from pathlib import Path
from typing import Any, Callable, Dict, Union
from datetime import datetime
from contextlib import contextmanager

from git_branch_steward.exceptions import StateStoreError
from git_branch_steward.logging_config import get_logger

# Import fcntl for POSIX file locking (Unix/Linux/macOS)
try:
    import fcntl
    HAS_FCNTL = True
except ImportError:
    HAS_FCNTL = False

logger = get_logger(__name__)


class StateStore:
    """Durable key-value store with one JSON file per repository.

    Files live in ``state_dir`` and are named after a hash of the resolved
    repository path, so two checkouts never share state. Every update is a
    locked read-modify-write followed by an atomic rename.
    """

    def __init__(self, state_dir: Union[str, Path]):
        self.state_dir = Path(state_dir).expanduser()

    def _repo_key(self, repo_path: Union[str, Path]) -> str:
        return str(Path(repo_path).resolve())

    def state_file(self, repo_path: Union[str, Path]) -> Path:
        """Path of the state file for a repository."""
        digest = hashlib.md5(self._repo_key(repo_path).encode()).hexdigest()
        return self.state_dir / f"{digest}.json"

    @contextmanager
    def _lock(self, repo_path: Union[str, Path]):
        """Hold an exclusive lock on the repository's lock file."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        lock_file = self.state_file(repo_path).with_suffix(".lock")
        with open(lock_file, "a") as handle:
            if not HAS_FCNTL:
                logger.debug("File locking not available on this platform")
                yield
                return
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                try:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
                except OSError as e:
                    logger.debug(f"Error releasing lock: {e}")

    def load(self, repo_path: Union[str, Path]) -> Dict[str, Any]:
        """Read the whole state of a repository; unreadable files read as empty."""
        path = self.state_file(repo_path)
        if not path.exists():
            return {}

        try:
            with open(path, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON in state file {path}: {e}")
            return {}
        except OSError as e:
            logger.warning(f"Failed to read state file {path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"State file {path} is not a JSON object, ignoring it")
            return {}
        return data

    def get(self, repo_path: Union[str, Path], key: str, default=None):
        return self.load(repo_path).get(key, default)

    def update(self, repo_path: Union[str, Path], key: str,
               mutate: Callable[[Any], Any], default=None) -> Any:
        """Apply ``mutate`` to the stored value of ``key`` and persist the result.

        Returns:
            The new value

        Raises:
            StateStoreError: If the state file cannot be written
        """
        with self._lock(repo_path):
            data = self.load(repo_path)
            value = mutate(data.get(key, default))
            data[key] = value
            data["repo_path"] = self._repo_key(repo_path)
            data["last_updated"] = datetime.now().isoformat()
            self._write(self.state_file(repo_path), data)
        return value

    def set(self, repo_path: Union[str, Path], key: str, value: Any) -> None:
        self.update(repo_path, key, lambda _: value)

    def _write(self, path: Path, data: Dict[str, Any]) -> None:
        # Atomic write: write to temp file, then rename
        temp_file = path.with_suffix(".tmp")
        try:
            with open(temp_file, "w") as f:
                json.dump(data, f, indent=2)
                f.flush()
            temp_file.replace(path)
            logger.debug(f"Saved state file {path}")
        except OSError as e:
            raise StateStoreError(path, str(e)) from e
        finally:
            if temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError:
                    pass
