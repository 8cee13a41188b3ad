"""Command-line argument parsing for git-branch-steward."""

import argparse
from git_branch_steward.__version__ import __version__
from git_branch_steward.constants import GONE_BRANCH_ACTIONS


def _add_rule_commands(subparsers) -> None:
    rules = subparsers.add_parser("rules", help="Manage cleanup rules")
    rule_commands = rules.add_subparsers(dest="rules_command", metavar="ACTION")
    rule_commands.required = True

    rule_commands.add_parser("list", help="List cleanup rules")

    add = rule_commands.add_parser("add", help="Add a cleanup rule")
    add.add_argument("name", help="Rule name")
    merged = add.add_mutually_exclusive_group()
    merged.add_argument("--merged", dest="merged", action="store_const", const=True,
                        help="Only merged branches")
    merged.add_argument("--unmerged", dest="merged", action="store_const", const=False,
                        help="Only unmerged branches")
    add.add_argument("--older-than", type=int, metavar="DAYS",
                     help="Only branches whose last commit is at least DAYS old")
    add.add_argument("--pattern", metavar="REGEX", help="Only branches whose name matches REGEX")
    add.add_argument("--no-remote", action="store_true", default=None,
                     help="Only branches without a remote tracking branch")
    add.add_argument("--action", choices=["delete", "archive", "notify"], default="delete",
                     help="What to do with matches (default: delete)")
    add.add_argument("--disabled", action="store_true", help="Create the rule disabled")

    for name, help_text in (
        ("enable", "Enable a rule"),
        ("disable", "Disable a rule"),
        ("toggle", "Flip a rule's enabled flag"),
        ("remove", "Delete a rule"),
    ):
        command = rule_commands.add_parser(name, help=help_text)
        command.add_argument("rule_id", help="Rule id (see 'rules list')")


def _add_recovery_commands(subparsers) -> None:
    recovery = subparsers.add_parser("recovery", help="Inspect and undo branch deletions")
    recovery_commands = recovery.add_subparsers(dest="recovery_command", metavar="ACTION")
    recovery_commands.required = True

    recovery_commands.add_parser("list", help="List deleted branches, newest first")
    recovery_commands.add_parser("undo", help="Restore the most recently deleted branch")
    recovery_commands.add_parser("clear", help="Forget every recovery entry")

    for name, help_text in (
        ("restore", "Recreate a deleted branch at its recorded commit"),
        ("dismiss", "Forget a recovery entry without restoring it"),
    ):
        command = recovery_commands.add_parser(name, help=help_text)
        command.add_argument("branch", help="Deleted branch name")
        command.add_argument("--commit", help="Recorded commit (prefix) when the name repeats")


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="git-branch-steward",
        description="Branch lifecycle reconciliation: health scores, gone-branch "
        "detection, rule-based cleanup and undo",
        epilog="PR status needs GITHUB_TOKEN or 'github_token' in the config file.",
    )
    parser.add_argument("--version", action="version", version=f"git-branch-steward {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument("--debug", action="store_true",
                        help="Show debug information and write a log file")
    parser.add_argument("-C", "--repo", action="append", dest="repos", metavar="PATH",
                        help="Repository path (repeatable for 'watch'; default: current directory)")
    parser.add_argument("--config", metavar="FILE", help="JSON configuration file")
    parser.add_argument("-y", "--yes", dest="assume_yes", action="store_true", default=None,
                        help="Accept every prompt")
    parser.add_argument("--stale-days", type=int, help="Days until a branch is stale")
    parser.add_argument("--protected", nargs="*", help="Protected branches (never listed or deleted)")
    parser.add_argument("--exclude", nargs="*", dest="exclusion_patterns", metavar="GLOB",
                        help="Branch globs that cleanup rules never delete")
    parser.add_argument("--team-safe", dest="team_safe_mode", action="store_true", default=None,
                        help="Only clean up branches authored by the current git user")
    parser.add_argument("--gone-action", dest="gone_branch_action", choices=GONE_BRANCH_ACTIONS,
                        help="Response to newly-gone branches")
    parser.add_argument("--base-branch", help="Branch to measure merges and ahead/behind against")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.add_parser("status", help="Show branch health (default)")
    subparsers.add_parser("gone", help="Handle branches whose remote was deleted")
    cleanup = subparsers.add_parser("cleanup", help="Apply cleanup rules")
    cleanup.add_argument("--dry-run", action="store_true",
                         help="Only show what the rules would delete")
    subparsers.add_parser("reconcile", help="Run one full pass: gone detection then cleanup")
    watch = subparsers.add_parser("watch", help="Watch repositories and react to fetches and merges")
    watch.add_argument("--poll-interval", type=float, help="Seconds between checks")
    watch.add_argument("--log-file", metavar="FILE",
                       help="Append a debug log of the session to FILE")
    _add_rule_commands(subparsers)
    _add_recovery_commands(subparsers)

    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "status"
    return args
