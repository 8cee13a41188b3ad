"""Presentation boundary: how the engine asks for confirmation.

The engine never renders anything itself. It hands proposals to a presenter
and acts on the answer. Presenter methods may be plain functions or
coroutines; the engine awaits whichever it gets.
"""
import inspect
from typing import Any, List, Optional, Protocol, Sequence

from git_branch_steward.models import BranchSnapshot, GoneAction


class Presenter(Protocol):
    def notify(self, message: str) -> Any:
        """Show an informational message."""

    def choose_gone_action(self, message: str, branches: Sequence[BranchSnapshot]) -> Any:
        """Ask what to do with newly-gone branches; returns a ``GoneAction`` (or None)."""

    def select_branches(self, title: str, branches: Sequence[BranchSnapshot]) -> Any:
        """Offer a pre-checked multi-select.

        Returns the names the user kept checked, or None if cancelled.
        """


async def resolve(value):
    """Await ``value`` if a presenter returned a coroutine."""
    if inspect.isawaitable(value):
        return await value
    return value


class AutoApprovePresenter:
    """Accepts every proposal without asking; used for ``--yes`` runs."""

    def __init__(self, echo=None):
        self.echo = echo
        self.messages: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)
        if self.echo is not None:
            self.echo(message)

    def choose_gone_action(self, message: str, branches: Sequence[BranchSnapshot]) -> GoneAction:
        self.notify(message)
        return GoneAction.CLEAN_ALL

    def select_branches(self, title: str,
                        branches: Sequence[BranchSnapshot]) -> Optional[List[str]]:
        return [b.name for b in branches]
