"""Display and prompting for the command line"""
from datetime import datetime
from typing import List, Optional, Sequence

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from git_branch_steward.constants import (
    COLUMNS,
    HEALTH_COLORS,
    SYMBOL_CURRENT_BRANCH,
    SYMBOL_HAS_REMOTE,
    SYMBOL_NO_REMOTE,
    SYMBOL_REMOTE_GONE,
)
from git_branch_steward.logging_config import get_logger
from git_branch_steward.models import BranchSnapshot, CleanupRule, GoneAction, RecoveryEntry

logger = get_logger(__name__)


def format_remote(branch: BranchSnapshot) -> str:
    if branch.remote_gone:
        return SYMBOL_REMOTE_GONE
    return SYMBOL_HAS_REMOTE if branch.has_remote else SYMBOL_NO_REMOTE


def format_sync(branch: BranchSnapshot) -> str:
    if not branch.ahead and not branch.behind:
        return ""
    return f"↑{branch.ahead} ↓{branch.behind}"


def format_pr(branch: BranchSnapshot) -> str:
    if branch.pr_status is None:
        return ""
    return f"#{branch.pr_status.number} {branch.pr_status.state}"


def format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")


def parse_selection(answer: str, count: int) -> Optional[List[int]]:
    """Turn "2 5-7" into zero-based indexes to uncheck; None if unparseable."""
    indexes = set()
    for token in answer.replace(",", " ").split():
        start, _, end = token.partition("-")
        try:
            low = int(start)
            high = int(end) if end else low
        except ValueError:
            return None
        if low < 1 or high > count or low > high:
            return None
        indexes.update(range(low - 1, high))
    return sorted(indexes)


class DisplayService:
    """Renders snapshots, rules and recovery entries as rich tables."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def display_branch_table(self, branches: Sequence[BranchSnapshot]) -> None:
        table = Table()
        for col in COLUMNS:
            table.add_column(col.label, max_width=col.width or None)

        for branch in branches:
            name = branch.name + (SYMBOL_CURRENT_BRANCH if branch.is_current_branch else "")
            table.add_row(
                name,
                str(branch.health_score),
                branch.health_status.value,
                f"{branch.days_old}d",
                format_sync(branch),
                format_remote(branch),
                branch.author or "",
                format_pr(branch),
                branch.health_reason,
                style=HEALTH_COLORS.get(branch.health_status.value),
            )

        self.console.print(table)
        if not branches:
            self.console.print("[dim]No branches to show[/dim]")

    def display_rules(self, rules: Sequence[CleanupRule]) -> None:
        if not rules:
            self.console.print("[dim]No cleanup rules defined[/dim]")
            return

        table = Table()
        for label in ("ID", "Name", "Enabled", "Conditions", "Action"):
            table.add_column(label)
        for rule in rules:
            table.add_row(
                rule.id,
                rule.name,
                "yes" if rule.enabled else "no",
                rule.conditions.describe(),
                rule.action.value,
                style=None if rule.enabled else "dim",
            )
        self.console.print(table)

    def display_recovery_log(self, entries: Sequence[RecoveryEntry]) -> None:
        if not entries:
            self.console.print("[dim]Recovery log is empty[/dim]")
            return

        table = Table()
        for label in ("Branch", "Commit", "Deleted", "By", "Reason"):
            table.add_column(label)
        for entry in entries:
            table.add_row(
                entry.branch_name,
                entry.commit_hash[:12],
                format_timestamp(entry.deleted_at),
                entry.deleted_by or "",
                entry.reason or "",
            )
        self.console.print(table)


class ConsolePresenter:
    """Asks for confirmation on the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def notify(self, message: str) -> None:
        self.console.print(f"[cyan]ℹ {message}[/cyan]")

    def choose_gone_action(self, message: str,
                           branches: Sequence[BranchSnapshot]) -> GoneAction:
        self.console.print(f"[yellow]{message}[/yellow]")
        for branch in branches:
            tracking = f" (was tracking {branch.tracking_ref})" if branch.tracking_ref else ""
            self.console.print(f"  {branch.name}{tracking}")
        answer = Prompt.ask(
            "Clean all, preview, or dismiss?",
            choices=[a.value for a in GoneAction],
            default=GoneAction.DISMISS.value,
            console=self.console,
        )
        return GoneAction(answer)

    def select_branches(self, title: str,
                        branches: Sequence[BranchSnapshot]) -> Optional[List[str]]:
        """Pre-checked selection: the user names the entries to keep."""
        self.console.print(f"[bold]{title}[/bold]")
        for i, branch in enumerate(branches, 1):
            merged = "merged" if branch.is_merged else "unmerged"
            author = f" · {branch.author}" if branch.author else ""
            self.console.print(f"  [x] {i:>2}. {branch.name} ({branch.days_old}d old · {merged}{author})")

        while True:
            answer = Prompt.ask(
                "Numbers to keep (e.g. 2 4-5), Enter to delete all checked, 'q' to cancel",
                default="",
                show_default=False,
                console=self.console,
            ).strip()
            if answer.lower() in ("q", "quit", "n", "no"):
                return None
            keep = parse_selection(answer, len(branches))
            if keep is not None:
                break
            self.console.print("[red]Invalid selection[/red]")

        return [b.name for i, b in enumerate(branches) if i not in keep]
