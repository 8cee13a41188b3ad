"""Recovery log entry model"""
from dataclasses import dataclass, asdict
from typing import Optional


@dataclass(frozen=True)
class RecoveryEntry:
    """A deleted branch and the commit it pointed at."""
    branch_name: str
    commit_hash: str
    deleted_at: int  # unix seconds
    deleted_by: Optional[str] = None
    reason: Optional[str] = None

    def matches(self, branch_name: str, commit_hash: str) -> bool:
        """Exact match on both name and hash; names repeat across recreations."""
        return self.branch_name == branch_name and self.commit_hash == commit_hash

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "RecoveryEntry":
        return cls(
            branch_name=str(data["branch_name"]),
            commit_hash=str(data["commit_hash"]),
            deleted_at=int(data["deleted_at"]),
            deleted_by=data.get("deleted_by"),
            reason=data.get("reason"),
        )
