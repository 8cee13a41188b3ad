"""Tests for terminal rendering and prompting"""
import io
from unittest.mock import patch

from rich.console import Console

from git_branch_steward.models import GoneAction, PRStatus, RecoveryEntry
from git_branch_steward.services.display_service import (
    ConsolePresenter,
    DisplayService,
    format_pr,
    format_remote,
    format_sync,
    parse_selection,
)
from tests.conftest import make_snapshot


def quiet_console():
    return Console(file=io.StringIO(), width=200)


class TestParseSelection:
    def test_numbers_and_ranges(self):
        """Single numbers and ranges become zero-based indexes."""
        assert parse_selection("2 4-5", 6) == [1, 3, 4]
        assert parse_selection("1,3", 3) == [0, 2]

    def test_empty_keeps_nothing(self):
        """An empty answer unchecks nothing."""
        assert parse_selection("", 3) == []

    def test_invalid(self):
        """Out-of-range or malformed selections are rejected."""
        assert parse_selection("0", 3) is None
        assert parse_selection("4", 3) is None
        assert parse_selection("3-1", 3) is None
        assert parse_selection("abc", 3) is None


class TestFormatters:
    def test_remote_symbols(self):
        """Remote column shows gone, tracked or local-only."""
        assert format_remote(make_snapshot("a", has_remote=True, remote_gone=True)) == "gone"
        assert format_remote(make_snapshot("a", has_remote=True)) == "✓"
        assert format_remote(make_snapshot("a")) == "✗"

    def test_sync_and_pr(self):
        """Ahead/behind and PR columns are blank when there is nothing to show."""
        assert format_sync(make_snapshot("a")) == ""
        assert format_sync(make_snapshot("a", ahead=1, behind=3)) == "↑1 ↓3"
        pr = PRStatus(number=9, state="draft", title="t", url="u")
        assert format_pr(make_snapshot("a", pr_status=pr)) == "#9 draft"


class TestDisplayService:
    def test_tables_render(self):
        """Branch, recovery and rule tables render to the console."""
        console = quiet_console()
        display = DisplayService(console)
        display.display_branch_table([make_snapshot("feature/x", is_current_branch=True)])
        display.display_recovery_log([RecoveryEntry("feature/y", "a" * 40, 0, "me", "cleanup rule")])
        display.display_rules([])

        text = console.file.getvalue()
        assert "feature/x" in text
        assert "aaaaaaaaaaaa" in text
        assert "No cleanup rules defined" in text


class TestConsolePresenter:
    branches = [make_snapshot("a"), make_snapshot("b"), make_snapshot("c")]

    def test_enter_deletes_all(self):
        """Pressing Enter keeps every branch checked for deletion."""
        presenter = ConsolePresenter(quiet_console())
        with patch("git_branch_steward.services.display_service.Prompt.ask", return_value=""):
            assert presenter.select_branches("Delete?", self.branches) == ["a", "b", "c"]

    def test_unchecking_keeps_branches(self):
        """Numbers entered are unchecked and kept."""
        presenter = ConsolePresenter(quiet_console())
        with patch("git_branch_steward.services.display_service.Prompt.ask", return_value="2"):
            assert presenter.select_branches("Delete?", self.branches) == ["a", "c"]

    def test_invalid_then_cancel(self):
        """An invalid answer asks again; q cancels."""
        presenter = ConsolePresenter(quiet_console())
        with patch("git_branch_steward.services.display_service.Prompt.ask",
                   side_effect=["9", "q"]) as ask:
            assert presenter.select_branches("Delete?", self.branches) is None
        assert ask.call_count == 2

    def test_gone_action_choice(self):
        """The prompt answer maps onto a GoneAction."""
        presenter = ConsolePresenter(quiet_console())
        with patch("git_branch_steward.services.display_service.Prompt.ask",
                   return_value="preview"):
            assert presenter.choose_gone_action("gone", self.branches) == GoneAction.PREVIEW
